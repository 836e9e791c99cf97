"""
Import data model: options, recording metadata, validation and import results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from fieldlog.models.tracklog import GeoPoint
from fieldlog.utils.timestamps import from_epoch_ms, now_iso


DEFAULT_RECORDING_NOTES = "Imported recording"


class SourceKind(Enum):
    """Kind of import file, resolved once by the validator."""

    ZIP = "zip"
    GEOJSON = "geojson"
    DERIVE_SONORA = "derive_sonora"


@dataclass(frozen=True)
class TransformOptions:
    """
    Geographic transform applied to every imported location.

    Applied as translate, then scale about center, then rotate about center.
    A field left as None does not touch its axis; a scale of 0 counts as unset.
    """

    translate: Optional[GeoPoint] = None
    scale: Optional[float] = None   # 1 = no-op
    rotate: Optional[float] = None  # degrees, 0 = no-op
    center: Optional[GeoPoint] = None  # pivot, defaults to (0, 0)

    @property
    def pivot(self) -> GeoPoint:
        return self.center if self.center is not None else GeoPoint(0.0, 0.0)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["TransformOptions"]:
        if not data:
            return None
        translate = data.get("translate")
        return cls(
            translate=GeoPoint(float(translate.get("lat") or 0.0), float(translate.get("lng") or 0.0))
            if translate
            else None,
            scale=float(data["scale"]) if data.get("scale") else None,
            rotate=float(data["rotate"]) if data.get("rotate") is not None else None,
            center=GeoPoint.from_dict(data.get("center")),
        )


@dataclass(frozen=True)
class ImportOptions:
    """Caller-supplied options for a single import."""

    location_transform: Optional[TransformOptions] = None
    time_offset: int = 0  # ms added to every timestamp

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ImportOptions":
        data = data or {}
        return cls(
            location_transform=TransformOptions.from_dict(data.get("locationTransform")),
            time_offset=int(data.get("timeOffset") or 0),
        )


_METADATA_FIELDS = {"uniqueId", "filename", "timestamp", "duration", "location", "speciesTags", "notes"}


def _timestamp_from(value: Any) -> str:
    # Some exporters write epoch ms instead of ISO-8601
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return from_epoch_ms(value)
    return value or now_iso()


def _location_from_dict(data: Any) -> Optional[GeoPoint]:
    if not isinstance(data, dict):
        return None
    if data.get("lat") is None or data.get("lng") is None:
        return None
    return GeoPoint.from_dict(data)


@dataclass
class RecordingMetadata:
    """Metadata for one audio recording inside an archive."""

    unique_id: str
    filename: str
    timestamp: str  # ISO-8601
    duration: float = 0.0  # seconds
    location: Optional[GeoPoint] = None
    species_tags: list[str] = field(default_factory=list)
    notes: str = ""

    # Any other fields found in the metadata entry (habitat, weather, ...)
    extra: dict = field(default_factory=dict)

    @classmethod
    def default_for(cls, recording_id: str, filename: str) -> "RecordingMetadata":
        """Metadata for an audio entry that has no metadata file."""
        return cls(
            unique_id=recording_id,
            filename=filename,
            timestamp=now_iso(),
            duration=0.0,
            location=None,
            species_tags=[],
            notes=DEFAULT_RECORDING_NOTES,
        )

    @classmethod
    def from_dict(cls, data: dict, fallback_id: str = "", fallback_filename: str = "") -> "RecordingMetadata":
        tags = data.get("speciesTags")
        return cls(
            unique_id=str(data.get("uniqueId") or fallback_id),
            filename=str(data.get("filename") or fallback_filename),
            timestamp=_timestamp_from(data.get("timestamp")),
            duration=float(data.get("duration") or 0.0),
            location=_location_from_dict(data.get("location")),
            species_tags=list(tags) if isinstance(tags, list) else [],
            notes=data.get("notes") or "",
            extra={k: v for k, v in data.items() if k not in _METADATA_FIELDS},
        )

    def to_dict(self) -> dict:
        result = dict(self.extra)
        result.update({
            "uniqueId": self.unique_id,
            "filename": self.filename,
            "timestamp": self.timestamp,
            "duration": self.duration,
            "location": self.location.to_dict() if self.location else None,
            "speciesTags": list(self.species_tags),
            "notes": self.notes,
        })
        return result


@dataclass
class ValidationResult:
    """Outcome of a read-only format check."""

    valid: bool
    type: Optional[SourceKind] = None
    breadcrumb_count: int = 0
    session_id: Optional[str] = None
    error: Optional[str] = None

    # Only reported for Derive Sonora packages
    recording_count: Optional[int] = None
    title: Optional[str] = None
    user_alias: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "ValidationResult":
        return cls(valid=False, error=error)

    def to_dict(self) -> dict:
        if not self.valid:
            return {"valid": False, "error": self.error}
        result = {
            "valid": True,
            "type": self.type.value if self.type else None,
            "breadcrumbCount": self.breadcrumb_count,
            "sessionId": self.session_id,
        }
        if self.type is SourceKind.DERIVE_SONORA:
            result.update({
                "recordingCount": self.recording_count,
                "title": self.title,
                "userAlias": self.user_alias,
            })
        return result


@dataclass
class ImportedRecording:
    """A recording persisted by an import."""

    original_id: str
    new_id: str
    filename: str


@dataclass
class ImportSummary:
    """Result of an archive import."""

    original_session_id: Optional[str]
    new_session_id: str
    imported_recordings: int
    imported_breadcrumbs: int
    import_date: str
    recordings: list[ImportedRecording] = field(default_factory=list)
    options: Optional[ImportOptions] = None

    def to_dict(self) -> dict:
        return {
            "originalSessionId": self.original_session_id,
            "newSessionId": self.new_session_id,
            "importedRecordings": self.imported_recordings,
            "importedBreadcrumbs": self.imported_breadcrumbs,
            "importDate": self.import_date,
        }


@dataclass
class GeoJSONImportSummary:
    """Result of a GeoJSON import; audio markers are counted, not imported."""

    imported_breadcrumbs: int
    audio_recordings: int
    import_date: str
    new_session_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "importedBreadcrumbs": self.imported_breadcrumbs,
            "audioRecordings": self.audio_recordings,
            "importDate": self.import_date,
            "newSessionId": self.new_session_id,
        }
