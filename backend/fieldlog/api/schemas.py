"""
API schemas (Pydantic models) for request/response validation.
"""

from typing import Optional
from pydantic import BaseModel


# ============================================================================
# Import Schemas
# ============================================================================

class ValidationResponse(BaseModel):
    """Result of checking an uploaded tracklog file."""
    valid: bool
    type: Optional[str] = None  # "zip", "geojson" or "derive_sonora"
    breadcrumb_count: int = 0
    session_id: Optional[str] = None
    error: Optional[str] = None
    recording_count: Optional[int] = None
    title: Optional[str] = None
    user_alias: Optional[str] = None


class ImportedRecordingResponse(BaseModel):
    """A recording stored by an import."""
    original_id: str
    new_id: str
    filename: str


class ImportResponse(BaseModel):
    """Outcome of an import, whatever the source kind."""
    type: str
    new_session_id: Optional[str] = None
    original_session_id: Optional[str] = None
    imported_recordings: int = 0
    imported_breadcrumbs: int = 0
    audio_recordings: Optional[int] = None  # GeoJSON audio markers (counted only)
    import_date: str
    recordings: list[ImportedRecordingResponse] = []


# ============================================================================
# Stored Data Schemas
# ============================================================================

class BreadcrumbResponse(BaseModel):
    """Single stored breadcrumb."""
    lat: float
    lng: float
    timestamp: int
    audio_level: float
    is_moving: bool
    movement_speed: float
    direction: Optional[float] = None
    accuracy: Optional[float] = None
    altitude: Optional[float] = None
    session_id: Optional[str] = None
    imported: bool
    original_session_id: Optional[str] = None


class SessionResponse(BaseModel):
    """Imported breadcrumb session."""
    session_id: str
    breadcrumb_count: int
    start_time: int
    end_time: int
    original_session_id: Optional[str] = None


class MovementSummaryResponse(BaseModel):
    """Movement statistics for a session."""
    session_id: str
    total_distance: float
    average_speed: float
    max_speed: float
    stationary_time: float
    moving_time: float
    pattern: str


# ============================================================================
# Error Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    code: Optional[str] = None
