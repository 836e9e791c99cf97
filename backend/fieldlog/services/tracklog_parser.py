"""
Tracklog file readers.

Reads tracklog export archives, Derive Sonora packages and GeoJSON
FeatureCollections into TracklogData and raw metadata dicts. Transforms
and persistence happen in fieldlog.services.importer.
"""

import json
import logging
import zipfile
from pathlib import Path, PurePosixPath
from typing import Optional

from fieldlog.errors import (
    InvalidGeoJSONError,
    MalformedTracklogError,
    MissingRequiredEntryError,
    UnsupportedFormatError,
)
from fieldlog.models.imports import SourceKind
from fieldlog.models.tracklog import TracklogData


logger = logging.getLogger(__name__)


# Archive layout written by the tracklog exporter
TRACKLOG_ENTRY = "tracklog/tracklog.json"
EXPORT_SUMMARY_ENTRY = "export_summary.json"
AUDIO_PREFIX = "audio/"
METADATA_PREFIX = "metadata/"
METADATA_SUFFIX = "_metadata.json"

# Derive Sonora package layout
MANIFEST_ENTRY = "manifest.json"
DERIVE_PACKAGE_TYPE = "derive_sonora"
SESSION_ENTRY = "session/session.json"
SESSION_GEOJSON_ENTRY = "session/tracklog.geojson"

AUDIO_RECORDING_TYPE = "audio_recording"

ARCHIVE_SUFFIXES = {".zip"}
GEOJSON_SUFFIXES = {".geojson", ".json"}


def detect_file_kind(filename: str) -> SourceKind:
    """
    Map a file name to the reader that handles it, by suffix.

    Archives report ZIP here; Derive Sonora packages are told apart only
    once the archive is opened.

    Raises:
        UnsupportedFormatError: for any other suffix
    """
    suffix = PurePosixPath(filename).suffix.lower()
    if suffix in ARCHIVE_SUFFIXES:
        return SourceKind.ZIP
    if suffix in GEOJSON_SUFFIXES:
        return SourceKind.GEOJSON
    raise UnsupportedFormatError()


def strip_extension(filename: str) -> str:
    """recording_001.webm -> recording_001"""
    name = PurePosixPath(filename).name
    stem, dot, _ = name.rpartition(".")
    return stem if dot and stem else name


class TracklogArchive:
    """Read-only view of a tracklog export archive."""

    def __init__(self, filepath: Path):
        self.filepath = filepath
        self._zip = zipfile.ZipFile(filepath, "r")

    def __enter__(self) -> "TracklogArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def names(self) -> list[str]:
        return self._zip.namelist()

    def has(self, name: str) -> bool:
        try:
            self._zip.getinfo(name)
        except KeyError:
            return False
        return True

    def read_bytes(self, name: str) -> bytes:
        return self._zip.read(name)

    def read_json(self, name: str):
        """Read and decode a JSON entry."""
        return json.loads(self._zip.read(name).decode("utf-8-sig"))

    def require_json(self, name: str):
        if not self.has(name):
            raise MissingRequiredEntryError(name)
        return self.read_json(name)

    def audio_entries(self) -> list[str]:
        return [
            name for name in self.names()
            if name.startswith(AUDIO_PREFIX) and not name.endswith("/")
        ]

    def metadata_entries(self) -> list[str]:
        return [
            name for name in self.names()
            if name.startswith(METADATA_PREFIX) and name.endswith(".json")
        ]

    def read_manifest(self) -> Optional[dict]:
        """Return the Derive Sonora manifest, or None for other archives."""
        if not self.has(MANIFEST_ENTRY):
            return None
        try:
            manifest = self.read_json(MANIFEST_ENTRY)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable manifest in {self.filepath.name}: {e}")
            return None
        if isinstance(manifest, dict) and manifest.get("packageType") == DERIVE_PACKAGE_TYPE:
            return manifest
        return None

    def read_tracklog(self) -> TracklogData:
        """
        Read tracklog/tracklog.json, requiring export_summary.json too.

        Raises:
            MissingRequiredEntryError: if either entry is absent
            MalformedTracklogError: if breadcrumbs is absent or not a list
            ValueError: if either entry is not valid JSON
        """
        for entry in (TRACKLOG_ENTRY, EXPORT_SUMMARY_ENTRY):
            if not self.has(entry):
                raise MissingRequiredEntryError(entry)

        data = self.read_json(TRACKLOG_ENTRY)
        if not isinstance(data, dict) or not isinstance(data.get("breadcrumbs"), list):
            raise MalformedTracklogError()
        return TracklogData.from_dict(data)

    def read_export_summary(self) -> dict:
        return self.require_json(EXPORT_SUMMARY_ENTRY)

    def read_metadata_index(self) -> tuple[dict[str, dict], dict[str, dict]]:
        """
        Index all metadata entries by filename and by uniqueId.

        The exporter names audio by recording filename but metadata by
        recording id, so audio entries cannot be matched by name alone.
        """
        by_filename: dict[str, dict] = {}
        by_unique_id: dict[str, dict] = {}
        for name in self.metadata_entries():
            try:
                meta = self.read_json(name)
            except (ValueError, zipfile.BadZipFile) as e:
                logger.warning(f"Skipping malformed metadata entry {name}: {e}")
                continue
            if not isinstance(meta, dict):
                logger.warning(f"Skipping metadata entry {name}: not an object")
                continue
            if meta.get("filename"):
                by_filename[meta["filename"]] = meta
            if meta.get("uniqueId"):
                by_unique_id[meta["uniqueId"]] = meta
        return by_filename, by_unique_id


def read_geojson(filepath: Path) -> dict:
    """
    Load a GeoJSON FeatureCollection.

    Raises:
        ValueError: if the file is not valid JSON
        InvalidGeoJSONError: if the root is not a FeatureCollection
    """
    with open(filepath, "r", encoding="utf-8-sig") as f:
        geojson = json.load(f)
    if not isinstance(geojson, dict) or geojson.get("type") != "FeatureCollection":
        raise InvalidGeoJSONError()
    return geojson


def _point_features(geojson: dict) -> list[dict]:
    points = []
    for feature in geojson.get("features") or []:
        if not isinstance(feature, dict):
            continue
        geometry = feature.get("geometry") or {}
        if geometry.get("type") == "Point":
            points.append(feature)
    return points


def _is_audio_marker(feature: dict) -> bool:
    return (feature.get("properties") or {}).get("type") == AUDIO_RECORDING_TYPE


def count_geojson_breadcrumbs(geojson: dict) -> int:
    return sum(1 for f in _point_features(geojson) if not _is_audio_marker(f))


def feature_to_breadcrumb(feature: dict) -> dict:
    """Convert a GeoJSON point feature to a breadcrumb in wire form."""
    coords = feature["geometry"]["coordinates"]
    props = feature.get("properties") or {}
    return {
        "lat": coords[1],
        "lng": coords[0],
        "timestamp": props.get("timestamp"),
        "audioLevel": props.get("audioLevel") or 0,
        "isMoving": props.get("isMoving") or False,
        "movementSpeed": props.get("movementSpeed") or 0,
        "direction": props.get("direction"),
        "accuracy": props.get("accuracy"),
        "altitude": props.get("altitude"),
    }


def split_geojson_features(geojson: dict) -> tuple[list[dict], list[dict]]:
    """
    Partition point features into breadcrumbs and audio-recording markers.

    Returns:
        Tuple of (breadcrumb dicts, audio marker features)
    """
    breadcrumbs = []
    audio_markers = []
    for feature in _point_features(geojson):
        if _is_audio_marker(feature):
            audio_markers.append(feature)
            continue
        try:
            breadcrumbs.append(feature_to_breadcrumb(feature))
        except (KeyError, IndexError, TypeError) as e:
            logger.warning(f"Skipping point feature without usable coordinates: {e}")
    return breadcrumbs, audio_markers


def normalize_derive_recording(raw: dict) -> dict:
    """
    Flatten Derive Sonora v2.1 structured metadata into the v2.0 flat form.

    Structured blocks take precedence where the flat form has no value.
    Flat (v2.0) metadata passes through unchanged apart from speciesTags
    being forced to a list.
    """
    rec = dict(raw)

    capture = raw.get("capture")
    if capture:
        if not rec.get("location") and (capture.get("lat") is not None or capture.get("lng") is not None):
            rec["location"] = {"lat": capture.get("lat"), "lng": capture.get("lng")}
        if capture.get("timestamp") and not rec.get("timestamp"):
            rec["timestamp"] = capture["timestamp"]
        if capture.get("altitude") is not None:
            rec["altitude"] = capture["altitude"]
        if capture.get("gpsAccuracy") is not None:
            rec["gpsAccuracy"] = capture["gpsAccuracy"]
        if capture.get("deviceModel"):
            rec["deviceModel"] = capture["deviceModel"]

    bio = raw.get("bioacoustic")
    if bio:
        if bio.get("speciesTags"):
            rec["speciesTags"] = bio["speciesTags"]
        if bio.get("verticalStratum"):
            rec["heightPosition"] = bio["verticalStratum"]
        for key in (
            "habitat",
            "distanceEstimate",
            "activityType",
            "anthropophony",
            "weather",
            "temperature",
            "quality",
            "movementPattern",
        ):
            if bio.get(key):
                rec[key] = bio[key]

    provenance = raw.get("provenance")
    if provenance:
        if provenance.get("recordedBy"):
            rec["importedFrom"] = provenance["recordedBy"]
        if provenance.get("importedAt"):
            rec["importedAt"] = provenance["importedAt"]

    session = raw.get("session")
    if session:
        if session.get("walkSessionId"):
            rec["walkSessionId"] = session["walkSessionId"]
        if session.get("originalSessionId"):
            rec["importedSessionId"] = session["originalSessionId"]

    if not rec.get("uniqueId") and raw.get("id"):
        rec["uniqueId"] = raw["id"]

    if not isinstance(rec.get("speciesTags"), list):
        rec["speciesTags"] = []

    for block in ("capture", "bioacoustic", "provenance", "session"):
        rec.pop(block, None)

    return rec
