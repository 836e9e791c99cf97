"""
Helpers shared by the FastAPI and Flask import routes.
"""

import tempfile
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import Iterator, Optional

from fieldlog.models.imports import (
    GeoJSONImportSummary,
    ImportOptions,
    SourceKind,
    TransformOptions,
    ValidationResult,
)
from fieldlog.models.tracklog import Breadcrumb, GeoPoint


@contextmanager
def spooled_upload(filename: str, content: bytes) -> Iterator[Path]:
    """
    Write an uploaded file to a temporary path that keeps its suffix.

    The file is removed when the context exits.
    """
    suffix = PurePosixPath(filename or "").suffix.lower()
    with tempfile.TemporaryDirectory(prefix="fieldlog-") as tmp:
        path = Path(tmp) / f"upload{suffix}"
        path.write_bytes(content)
        yield path


def _point_or_none(lat: Optional[float], lng: Optional[float]) -> Optional[GeoPoint]:
    if lat is None and lng is None:
        return None
    return GeoPoint(lat=lat or 0.0, lng=lng or 0.0)


def build_import_options(
    translate_lat: Optional[float] = None,
    translate_lng: Optional[float] = None,
    scale: Optional[float] = None,
    rotate: Optional[float] = None,
    center_lat: Optional[float] = None,
    center_lng: Optional[float] = None,
    time_offset: Optional[int] = None,
) -> ImportOptions:
    """Build ImportOptions from flat form fields; unset fields stay no-ops."""
    transform = TransformOptions(
        translate=_point_or_none(translate_lat, translate_lng),
        scale=scale,
        rotate=rotate,
        center=_point_or_none(center_lat, center_lng),
    )
    if transform == TransformOptions():
        transform = None
    return ImportOptions(location_transform=transform, time_offset=time_offset or 0)


def validation_to_response(result: ValidationResult) -> dict:
    return {
        "valid": result.valid,
        "type": result.type.value if result.type else None,
        "breadcrumb_count": result.breadcrumb_count,
        "session_id": result.session_id,
        "error": result.error,
        "recording_count": result.recording_count,
        "title": result.title,
        "user_alias": result.user_alias,
    }


def import_to_response(kind: SourceKind, summary) -> dict:
    """Flatten an ImportSummary or GeoJSONImportSummary for the API."""
    if isinstance(summary, GeoJSONImportSummary):
        return {
            "type": kind.value,
            "new_session_id": summary.new_session_id,
            "original_session_id": None,
            "imported_recordings": 0,
            "imported_breadcrumbs": summary.imported_breadcrumbs,
            "audio_recordings": summary.audio_recordings,
            "import_date": summary.import_date,
            "recordings": [],
        }
    return {
        "type": kind.value,
        "new_session_id": summary.new_session_id,
        "original_session_id": summary.original_session_id,
        "imported_recordings": summary.imported_recordings,
        "imported_breadcrumbs": summary.imported_breadcrumbs,
        "audio_recordings": None,
        "import_date": summary.import_date,
        "recordings": [
            {"original_id": r.original_id, "new_id": r.new_id, "filename": r.filename}
            for r in summary.recordings
        ],
    }


def breadcrumb_to_response(crumb: Breadcrumb) -> dict:
    return {
        "lat": crumb.lat,
        "lng": crumb.lng,
        "timestamp": crumb.timestamp,
        "audio_level": crumb.audio_level,
        "is_moving": crumb.is_moving,
        "movement_speed": crumb.movement_speed,
        "direction": crumb.direction,
        "accuracy": crumb.accuracy,
        "altitude": crumb.altitude,
        "session_id": crumb.session_id,
        "imported": crumb.imported,
        "original_session_id": crumb.original_session_id,
    }


def session_to_response(session: dict) -> dict:
    return {
        "session_id": session["sessionId"],
        "breadcrumb_count": session["breadcrumbCount"],
        "start_time": session["startTime"],
        "end_time": session["endTime"],
        "original_session_id": session["originalSessionId"],
    }
