"""
Tracklog importer.

Walks a parsed tracklog archive, GeoJSON file or Derive Sonora package,
relocates locations and shifts timestamps per ImportOptions, and hands
recordings and breadcrumbs to the injected storage collaborators.

Failures on a single audio entry or breadcrumb are logged and skipped.
Failures reading the container itself raise ImportFailedError; anything
already persisted by that call stays persisted.
"""

import dataclasses
import logging
import uuid
from pathlib import Path
from typing import Optional

import numpy as np

from fieldlog.errors import ImportFailedError, TracklogError
from fieldlog.models.imports import (
    GeoJSONImportSummary,
    ImportedRecording,
    ImportOptions,
    ImportSummary,
    RecordingMetadata,
    SourceKind,
)
from fieldlog.models.tracklog import Breadcrumb, TracklogData
from fieldlog.services.repository import BreadcrumbSink, RecordingStore
from fieldlog.services.summary import summarize_breadcrumbs
from fieldlog.services.tracklog_parser import (
    AUDIO_PREFIX,
    METADATA_PREFIX,
    METADATA_SUFFIX,
    SESSION_ENTRY,
    SESSION_GEOJSON_ENTRY,
    TracklogArchive,
    normalize_derive_recording,
    read_geojson,
    split_geojson_features,
    strip_extension,
)
from fieldlog.utils.coordinates import transform_location, transform_locations
from fieldlog.utils.timestamps import now_iso, now_ms, shift_iso


logger = logging.getLogger(__name__)


def new_session_id() -> str:
    """Session id for one import batch; unique across calls."""
    return f"imported-{now_ms()}-{uuid.uuid4().hex[:8]}"


class TracklogImporter:
    """
    Imports tracklogs into a recording store and a breadcrumb sink.

    Holds no state between imports apart from its two collaborators.
    """

    def __init__(self, recording_store: RecordingStore, breadcrumb_sink: BreadcrumbSink):
        self.recording_store = recording_store
        self.breadcrumb_sink = breadcrumb_sink

    def import_file(
        self,
        filepath: Path,
        kind: SourceKind,
        options: Optional[ImportOptions] = None,
    ):
        """Import a file whose kind was already resolved by validation."""
        if kind is SourceKind.ZIP:
            return self.import_from_archive(filepath, options)
        if kind is SourceKind.GEOJSON:
            return self.import_from_geojson(filepath, options)
        if kind is SourceKind.DERIVE_SONORA:
            return self.import_derive_package(filepath, options)
        raise ImportFailedError(f"Unsupported source kind: {kind}")

    # ------------------------------------------------------------------
    # Tracklog archives
    # ------------------------------------------------------------------

    def import_from_archive(self, filepath: Path, options: Optional[ImportOptions] = None) -> ImportSummary:
        """
        Import a tracklog export archive.

        Raises:
            ImportFailedError: if the archive cannot be opened or its
                tracklog/tracklog.json or export_summary.json entries are
                missing or unreadable
        """
        options = options or ImportOptions()
        try:
            with TracklogArchive(filepath) as archive:
                tracklog = archive.read_tracklog()
                export_summary = archive.read_export_summary()
                logger.info(
                    f"Importing tracklog {tracklog.session_id} from {filepath.name} "
                    f"({len(tracklog.breadcrumbs)} breadcrumbs, "
                    f"{export_summary.get('totalRecordings', 'unknown')} recordings)"
                )

                recordings = self.import_audio_files(archive, options)

            session_id = new_session_id()
            breadcrumbs = self.import_breadcrumbs(tracklog, session_id, options)
        except Exception as e:
            logger.error(f"Error importing tracklog {filepath.name}: {e}")
            raise ImportFailedError(f"Failed to import tracklog: {e}") from e

        summary = ImportSummary(
            original_session_id=tracklog.session_id,
            new_session_id=session_id,
            imported_recordings=len(recordings),
            imported_breadcrumbs=len(breadcrumbs),
            import_date=now_iso(),
            recordings=recordings,
            options=options,
        )
        logger.info(
            f"Import completed: {summary.imported_recordings} recordings, "
            f"{summary.imported_breadcrumbs} breadcrumbs -> {session_id}"
        )
        return summary

    def import_audio_files(self, archive: TracklogArchive, options: ImportOptions) -> list[ImportedRecording]:
        """Import every audio/ entry, pairing it with metadata where present."""
        by_filename, by_unique_id = archive.read_metadata_index()
        imported: list[ImportedRecording] = []

        for audio_path in archive.audio_entries():
            try:
                audio = archive.read_bytes(audio_path)
                filename = audio_path[len(AUDIO_PREFIX):]
                recording_id = strip_extension(filename)

                raw = self._lookup_metadata(archive, filename, recording_id, by_filename, by_unique_id)
                if raw is None:
                    logger.debug(f"No metadata for {filename}, using defaults")
                    metadata = RecordingMetadata.default_for(recording_id, filename)
                else:
                    metadata = RecordingMetadata.from_dict(raw, recording_id, filename)

                metadata = self._apply_options(metadata, options)
                new_id = self.recording_store.save(metadata, audio)
                imported.append(ImportedRecording(
                    original_id=metadata.unique_id or recording_id,
                    new_id=new_id,
                    filename=filename,
                ))
            except Exception as e:
                logger.warning(f"Failed to import audio file {audio_path}: {e}")

        return imported

    def _lookup_metadata(
        self,
        archive: TracklogArchive,
        filename: str,
        recording_id: str,
        by_filename: dict[str, dict],
        by_unique_id: dict[str, dict],
    ) -> Optional[dict]:
        meta = by_filename.get(filename) or by_unique_id.get(recording_id) or by_filename.get(recording_id)
        if meta is not None:
            return meta

        entry = f"{METADATA_PREFIX}{recording_id}{METADATA_SUFFIX}"
        if not archive.has(entry):
            return None
        try:
            meta = archive.read_json(entry)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable metadata {entry}: {e}")
            return None
        return meta if isinstance(meta, dict) else None

    def _apply_options(self, metadata: RecordingMetadata, options: ImportOptions) -> RecordingMetadata:
        if options.location_transform is not None:
            metadata.location = transform_location(metadata.location, options.location_transform)
        if options.time_offset:
            metadata.timestamp = shift_iso(metadata.timestamp, options.time_offset)
        return metadata

    # ------------------------------------------------------------------
    # Breadcrumbs
    # ------------------------------------------------------------------

    def import_breadcrumbs(
        self,
        tracklog: TracklogData,
        session_id: str,
        options: ImportOptions,
    ) -> list[Breadcrumb]:
        """
        Relocate, re-time and re-stamp every breadcrumb, then persist the batch.

        Returns:
            The breadcrumbs that were stored
        """
        parsed: list[Breadcrumb] = []
        for raw in tracklog.breadcrumbs:
            try:
                parsed.append(Breadcrumb.from_dict(raw))
            except Exception as e:
                logger.warning(f"Failed to import breadcrumb {raw!r}: {e}")

        skipped = len(tracklog.breadcrumbs) - len(parsed)
        if skipped:
            logger.info(f"Skipped {skipped} unusable breadcrumbs")

        lat = np.array([b.lat for b in parsed], dtype=np.float64)
        lng = np.array([b.lng for b in parsed], dtype=np.float64)
        if options.location_transform is not None:
            lat, lng = transform_locations(lat, lng, options.location_transform)

        imported = [
            dataclasses.replace(
                crumb,
                lat=float(lat[i]),
                lng=float(lng[i]),
                timestamp=crumb.timestamp + options.time_offset,
                session_id=session_id,
                imported=True,
                original_session_id=tracklog.session_id,
            )
            for i, crumb in enumerate(parsed)
        ]

        if imported:
            self.breadcrumb_sink.append(imported)
        else:
            logger.warning(f"No breadcrumbs imported for session {tracklog.session_id}")
        return imported

    # ------------------------------------------------------------------
    # GeoJSON
    # ------------------------------------------------------------------

    def import_from_geojson(self, filepath: Path, options: Optional[ImportOptions] = None) -> GeoJSONImportSummary:
        """
        Import breadcrumbs from a GeoJSON FeatureCollection.

        Audio-recording point features are counted but not imported,
        since GeoJSON carries no audio.

        Raises:
            ImportFailedError: if the file is not JSON or not a FeatureCollection
        """
        options = options or ImportOptions()
        try:
            geojson = read_geojson(filepath)
            raw_breadcrumbs, audio_markers = split_geojson_features(geojson)
            tracklog = build_tracklog(f"imported-geojson-{now_ms()}", raw_breadcrumbs)

            session_id = new_session_id()
            breadcrumbs = self.import_breadcrumbs(tracklog, session_id, options)
        except Exception as e:
            logger.error(f"Error importing GeoJSON tracklog {filepath.name}: {e}")
            raise ImportFailedError(f"Failed to import GeoJSON: {e}") from e

        logger.info(
            f"GeoJSON import completed: {len(breadcrumbs)} breadcrumbs, "
            f"{len(audio_markers)} audio markers -> {session_id}"
        )
        return GeoJSONImportSummary(
            imported_breadcrumbs=len(breadcrumbs),
            audio_recordings=len(audio_markers),
            import_date=now_iso(),
            new_session_id=session_id,
        )

    # ------------------------------------------------------------------
    # Derive Sonora packages
    # ------------------------------------------------------------------

    def import_derive_package(self, filepath: Path, options: Optional[ImportOptions] = None) -> ImportSummary:
        """
        Import a Derive Sonora package (manifest.json + session/ + audio/ + metadata/).

        Raises:
            ImportFailedError: if the manifest or session data is missing
        """
        options = options or ImportOptions()
        try:
            with TracklogArchive(filepath) as archive:
                manifest = archive.read_manifest()
                if manifest is None:
                    raise TracklogError("Not a valid Derive Sonora package (missing manifest.json)")
                session = archive.require_json(SESSION_ENTRY)
                manifest_session = manifest.get("session") or {}
                original_session_id = session.get("sessionId") or manifest_session.get("sessionId")

                raw_breadcrumbs = []
                if archive.has(SESSION_GEOJSON_ENTRY):
                    try:
                        raw_breadcrumbs, _ = split_geojson_features(archive.read_json(SESSION_GEOJSON_ENTRY))
                    except (ValueError, AttributeError) as e:
                        logger.warning(f"Failed to parse GeoJSON breadcrumbs in {filepath.name}: {e}")

                session_id = new_session_id()
                recordings = self._import_derive_recordings(
                    archive,
                    options,
                    session_id=session_id,
                    original_session_id=original_session_id,
                    imported_from=(manifest.get("createdBy") or {}).get("alias") or "unknown",
                )

            tracklog = build_tracklog(original_session_id, raw_breadcrumbs)
            breadcrumbs = self.import_breadcrumbs(tracklog, session_id, options)
        except Exception as e:
            logger.error(f"Error importing Derive Sonora package {filepath.name}: {e}")
            raise ImportFailedError(f"Failed to import Derive Sonora package: {e}") from e

        logger.info(
            f"Derive import completed: {len(recordings)} recordings, "
            f"{len(breadcrumbs)} breadcrumbs -> {session_id}"
        )
        return ImportSummary(
            original_session_id=original_session_id,
            new_session_id=session_id,
            imported_recordings=len(recordings),
            imported_breadcrumbs=len(breadcrumbs),
            import_date=now_iso(),
            recordings=recordings,
            options=options,
        )

    def _import_derive_recordings(
        self,
        archive: TracklogArchive,
        options: ImportOptions,
        session_id: str,
        original_session_id: Optional[str],
        imported_from: str,
    ) -> list[ImportedRecording]:
        imported: list[ImportedRecording] = []
        for entry in archive.metadata_entries():
            if not entry.endswith(METADATA_SUFFIX):
                continue
            try:
                raw = normalize_derive_recording(archive.read_json(entry))
                fallback_id = entry[len(METADATA_PREFIX):-len(METADATA_SUFFIX)]
                original_id = raw.get("uniqueId") or fallback_id
                filename = raw.get("filename") or f"{original_id}.webm"

                audio_entry = f"{AUDIO_PREFIX}{filename}"
                audio = archive.read_bytes(audio_entry) if archive.has(audio_entry) else b""

                metadata = RecordingMetadata.from_dict(raw, original_id, filename)
                metadata.extra.update({
                    "importedFrom": imported_from,
                    "importedSessionId": original_session_id,
                    "walkSessionId": session_id,
                })
                metadata = self._apply_options(metadata, options)

                new_id = self.recording_store.save(metadata, audio)
                imported.append(ImportedRecording(original_id=original_id, new_id=new_id, filename=filename))
            except Exception as e:
                logger.warning(f"Failed to import recording {entry}: {e}")
        return imported


def build_tracklog(session_id: Optional[str], raw_breadcrumbs: list[dict]) -> TracklogData:
    """
    Wrap loose breadcrumbs in a TracklogData with time range and summary.

    Breadcrumbs that cannot be parsed are left in place for the import step
    to skip and log; they do not count toward the range or summary.
    """
    parsed = []
    for raw in raw_breadcrumbs:
        try:
            parsed.append(Breadcrumb.from_dict(raw))
        except (KeyError, TypeError, ValueError):
            continue

    timestamps = [b.timestamp for b in parsed]
    return TracklogData(
        session_id=session_id,
        breadcrumbs=raw_breadcrumbs,
        start_time=min(timestamps) if timestamps else None,
        end_time=max(timestamps) if timestamps else None,
        summary=summarize_breadcrumbs(parsed).to_dict(),
    )
