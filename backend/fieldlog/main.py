"""
Fieldlog Import Backend - FastAPI application

Main application entry point and configuration.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from fieldlog.api.imports import router as imports_router, breadcrumb_router, recording_router
from fieldlog.services.repository import ImportStorage


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Default data folder (can be overridden via environment or create_app)
DEFAULT_DATA_FOLDER = Path("./data/imports")
DATA_FOLDER_ENV = "FIELDLOG_DATA_FOLDER"

APP_NAME = "Fieldlog Import Backend"
APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"Starting {APP_NAME}")

    if app.state.storage is None:
        data_folder = Path(os.getenv(DATA_FOLDER_ENV, str(DEFAULT_DATA_FOLDER)))
        app.state.storage = ImportStorage(data_folder)
        logger.info(f"Initialized storage in folder: {data_folder}")

    yield

    logger.info(f"Shutting down {APP_NAME}")


def create_app(data_folder: Optional[Path] = None) -> FastAPI:
    """
    Create the FastAPI app.

    Args:
        data_folder: Storage root. If None, the lifespan handler reads
            FIELDLOG_DATA_FOLDER (default ./data/imports) at startup.
    """
    app = FastAPI(
        title=APP_NAME,
        description="""
        Backend API for importing field-recording tracklogs.

        ## Features
        - Validate tracklog archives, GeoJSON tracks and Derive Sonora packages
        - Relocate imported tracks (translate, scale, rotate) and shift their timestamps
        - Store imported recordings and breadcrumbs
        - Summarize movement per import session

        ## Data Flow
        1. Check a file via POST /imports/validate
        2. Import it via POST /imports
        3. Browse results via GET /breadcrumbs and GET /recordings
        """,
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.storage = ImportStorage(data_folder) if data_folder is not None else None

    # CORS middleware (allow all origins for development)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(imports_router)
    app.include_router(breadcrumb_router)
    app.include_router(recording_router)

    @app.get("/")
    async def root():
        """Root endpoint - basic health check."""
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "status": "running",
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        storage = request.app.state.storage
        return {
            "status": "healthy",
            "data_folder": str(storage.data_folder) if storage else None,
        }

    return app


app = create_app()
