"""
Tracklog file validation.

Classifies an uploaded file and checks its structure without importing
anything. Problems are reported in the result, never raised, so callers
can show the message directly.
"""

import logging
from pathlib import Path
from typing import Optional

from fieldlog.models.imports import SourceKind, ValidationResult
from fieldlog.services.tracklog_parser import (
    TracklogArchive,
    count_geojson_breadcrumbs,
    detect_file_kind,
    read_geojson,
)
from fieldlog.utils.timestamps import now_ms


logger = logging.getLogger(__name__)


class TracklogValidator:
    """Read-only format checks for tracklog archives and GeoJSON files."""

    def validate(self, filepath: Path, filename: Optional[str] = None) -> ValidationResult:
        """
        Validate a tracklog file.

        Args:
            filepath: Location of the file on disk
            filename: Name used for format detection (defaults to the
                path's own name; uploads keep their original name here)

        Returns:
            ValidationResult; valid=False with an error message on failure
        """
        name = filename or filepath.name
        try:
            kind = detect_file_kind(name)
            if kind is SourceKind.ZIP:
                return self._validate_archive(filepath)
            return self._validate_geojson(filepath)
        except Exception as e:
            logger.info(f"Validation failed for {name}: {e}")
            return ValidationResult.failure(str(e))

    def _validate_archive(self, filepath: Path) -> ValidationResult:
        with TracklogArchive(filepath) as archive:
            manifest = archive.read_manifest()
            if manifest is not None:
                session = manifest.get("session") or {}
                created_by = manifest.get("createdBy") or {}
                return ValidationResult(
                    valid=True,
                    type=SourceKind.DERIVE_SONORA,
                    breadcrumb_count=int(session.get("breadcrumbCount") or 0),
                    session_id=session.get("sessionId"),
                    recording_count=int(session.get("recordingCount") or 0),
                    title=session.get("title"),
                    user_alias=created_by.get("alias"),
                )

            tracklog = archive.read_tracklog()

        return ValidationResult(
            valid=True,
            type=SourceKind.ZIP,
            breadcrumb_count=len(tracklog.breadcrumbs),
            session_id=tracklog.session_id,
        )

    def _validate_geojson(self, filepath: Path) -> ValidationResult:
        geojson = read_geojson(filepath)
        return ValidationResult(
            valid=True,
            type=SourceKind.GEOJSON,
            breadcrumb_count=count_geojson_breadcrumbs(geojson),
            session_id=f"geojson-{now_ms()}",
        )


def validate_tracklog_file(filepath: Path, filename: Optional[str] = None) -> ValidationResult:
    """Validate a tracklog file with a fresh TracklogValidator."""
    return TracklogValidator().validate(filepath, filename)
