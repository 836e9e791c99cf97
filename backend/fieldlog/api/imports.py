"""
API routes for tracklog import and imported data.
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import FileResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from fieldlog.api.schemas import (
    BreadcrumbResponse,
    ErrorResponse,
    ImportResponse,
    MovementSummaryResponse,
    SessionResponse,
    ValidationResponse,
)
from fieldlog.api.uploads import (
    breadcrumb_to_response,
    build_import_options,
    import_to_response,
    session_to_response,
    spooled_upload,
    validation_to_response,
)
from fieldlog.errors import ImportFailedError
from fieldlog.models.imports import ImportOptions
from fieldlog.services.importer import TracklogImporter
from fieldlog.services.repository import ImportStorage
from fieldlog.services.summary import summarize_breadcrumbs
from fieldlog.services.validator import TracklogValidator


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/imports", tags=["imports"])


def get_storage(request: Request) -> ImportStorage:
    """Storage configured on the app, or 503 if none is set."""
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise HTTPException(status_code=503, detail="No data folder configured")
    return storage


def _validate_and_import(storage: ImportStorage, upload_name: str, content: bytes, options: ImportOptions) -> dict:
    with spooled_upload(upload_name, content) as path:
        validation = TracklogValidator().validate(path, upload_name)
        if not validation.valid:
            raise HTTPException(status_code=400, detail=validation.error)

        importer = TracklogImporter(storage.recordings, storage.breadcrumbs)
        try:
            summary = importer.import_file(path, validation.type, options)
        except ImportFailedError as e:
            raise HTTPException(status_code=422, detail=str(e))
    return import_to_response(validation.type, summary)


@router.post("/validate", response_model=ValidationResponse)
async def validate_upload(file: UploadFile = File(...)):
    """
    Check an uploaded tracklog without importing it.

    Invalid files still return 200 with valid=false and an error message.
    """
    content = await file.read()
    with spooled_upload(file.filename, content) as path:
        result = TracklogValidator().validate(path, file.filename)
    return ValidationResponse(**validation_to_response(result))


@router.post(
    "",
    response_model=ImportResponse,
    responses={
        400: {"model": ErrorResponse, "description": "File failed validation"},
        422: {"model": ErrorResponse, "description": "Import failed"},
        503: {"model": ErrorResponse, "description": "No data folder configured"},
    },
)
async def import_upload(
    request: Request,
    file: UploadFile = File(...),
    translate_lat: Optional[float] = Form(None),
    translate_lng: Optional[float] = Form(None),
    scale: Optional[float] = Form(None, gt=0),
    rotate: Optional[float] = Form(None, description="Rotation in degrees"),
    center_lat: Optional[float] = Form(None),
    center_lng: Optional[float] = Form(None),
    time_offset: Optional[int] = Form(None, description="Milliseconds added to every timestamp"),
):
    """
    Validate and import an uploaded tracklog archive, GeoJSON file or
    Derive Sonora package.

    Optional form fields relocate the track (translate, then scale and
    rotate about the center) and shift its timestamps.
    """
    storage = get_storage(request)
    options = build_import_options(
        translate_lat=translate_lat,
        translate_lng=translate_lng,
        scale=scale,
        rotate=rotate,
        center_lat=center_lat,
        center_lng=center_lng,
        time_offset=time_offset,
    )
    content = await file.read()
    logger.info(f"Import requested for {file.filename} ({len(content)} bytes)")

    result = await run_in_threadpool(_validate_and_import, storage, file.filename, content, options)
    return ImportResponse(**result)


# ============================================================================
# Imported Breadcrumb Routes
# ============================================================================

breadcrumb_router = APIRouter(prefix="/breadcrumbs", tags=["breadcrumbs"])


@breadcrumb_router.get("", response_model=list[BreadcrumbResponse])
async def list_breadcrumbs(
    request: Request,
    session_id: Optional[str] = Query(None, description="Only this import session"),
):
    """List imported breadcrumbs."""
    storage = get_storage(request)
    crumbs = storage.breadcrumbs.list_breadcrumbs(session_id)
    return [BreadcrumbResponse(**breadcrumb_to_response(b)) for b in crumbs]


@breadcrumb_router.get("/sessions", response_model=list[SessionResponse])
async def list_sessions(request: Request):
    """List import sessions, newest first."""
    storage = get_storage(request)
    return [SessionResponse(**session_to_response(s)) for s in storage.breadcrumbs.list_sessions()]


@breadcrumb_router.get("/sessions/{session_id}/summary", response_model=MovementSummaryResponse)
async def get_session_summary(request: Request, session_id: str):
    """Movement statistics for one import session."""
    storage = get_storage(request)
    crumbs = storage.breadcrumbs.list_breadcrumbs(session_id)
    if not crumbs:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")

    summary = summarize_breadcrumbs(crumbs)
    return MovementSummaryResponse(
        session_id=session_id,
        total_distance=summary.total_distance,
        average_speed=summary.average_speed,
        max_speed=summary.max_speed,
        stationary_time=summary.stationary_time,
        moving_time=summary.moving_time,
        pattern=summary.pattern,
    )


@breadcrumb_router.get("/export.csv", response_class=PlainTextResponse)
async def export_breadcrumbs_csv(
    request: Request,
    session_id: Optional[str] = Query(None),
):
    """Export imported breadcrumbs as CSV."""
    storage = get_storage(request)
    return PlainTextResponse(storage.breadcrumbs.export_csv(session_id), media_type="text/csv")


# ============================================================================
# Imported Recording Routes
# ============================================================================

recording_router = APIRouter(prefix="/recordings", tags=["recordings"])


@recording_router.get("")
async def list_recordings(request: Request) -> list[dict]:
    """List metadata of imported recordings."""
    storage = get_storage(request)
    return storage.recordings.list_recordings()


@recording_router.get("/{recording_id}/audio", response_class=FileResponse)
async def get_recording_audio(request: Request, recording_id: str):
    """Download the audio file of an imported recording."""
    storage = get_storage(request)
    audio_path = storage.recordings.get_audio_path(recording_id)
    if audio_path is None or not audio_path.exists():
        raise HTTPException(status_code=404, detail=f"Recording not found: {recording_id}")
    return FileResponse(audio_path, filename=audio_path.name)
