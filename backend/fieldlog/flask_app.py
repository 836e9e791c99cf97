"""
Fieldlog Import Backend - Flask application

Alternative to FastAPI for environments where FastAPI isn't available.
Same import API, different framework.
"""

import logging
from pathlib import Path
from typing import Optional

from flask import Flask, Response, jsonify, request, send_file

from fieldlog.api.uploads import (
    breadcrumb_to_response,
    build_import_options,
    import_to_response,
    session_to_response,
    spooled_upload,
    validation_to_response,
)
from fieldlog.errors import ImportFailedError
from fieldlog.services.importer import TracklogImporter
from fieldlog.services.repository import ImportStorage
from fieldlog.services.validator import TracklogValidator


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Create Flask app
app = Flask(__name__)


# Default data folder
DEFAULT_DATA_FOLDER = Path("./data/imports")

FLOAT_FIELDS = ("translate_lat", "translate_lng", "scale", "rotate", "center_lat", "center_lng")


def _storage() -> Optional[ImportStorage]:
    return app.config.get("STORAGE")


def _form_options() -> dict:
    """Read optional transform fields from the multipart form."""
    values = {}
    for name in FLOAT_FIELDS:
        raw = request.form.get(name)
        values[name] = float(raw) if raw not in (None, "") else None
    raw_offset = request.form.get("time_offset")
    values["time_offset"] = int(raw_offset) if raw_offset not in (None, "") else None
    return values


# ============================================================================
# Health Endpoints
# ============================================================================

@app.route("/")
def root():
    """Root endpoint - basic health check."""
    return jsonify({
        "name": "Fieldlog Import Backend",
        "version": "0.1.0",
        "status": "running",
    })


@app.route("/health")
def health_check():
    """Health check endpoint."""
    storage = _storage()
    return jsonify({
        "status": "healthy",
        "data_folder": str(storage.data_folder) if storage else None,
    })


# ============================================================================
# Import Endpoints
# ============================================================================

@app.route("/imports/validate", methods=["POST"])
def validate_upload():
    """Check an uploaded tracklog without importing it."""
    upload = request.files.get("file")
    if upload is None:
        return jsonify({"detail": "file is required"}), 400

    with spooled_upload(upload.filename, upload.read()) as path:
        result = TracklogValidator().validate(path, upload.filename)
    return jsonify(validation_to_response(result))


@app.route("/imports", methods=["POST"])
def import_upload():
    """Validate and import an uploaded tracklog."""
    storage = _storage()
    if storage is None:
        return jsonify({"detail": "No data folder configured"}), 503

    upload = request.files.get("file")
    if upload is None:
        return jsonify({"detail": "file is required"}), 400

    try:
        form = _form_options()
    except ValueError as e:
        return jsonify({"detail": f"Invalid import options: {e}"}), 400
    if form["scale"] is not None and form["scale"] <= 0:
        return jsonify({"detail": "scale must be greater than 0"}), 400
    options = build_import_options(**form)

    with spooled_upload(upload.filename, upload.read()) as path:
        validation = TracklogValidator().validate(path, upload.filename)
        if not validation.valid:
            return jsonify({"detail": validation.error}), 400

        importer = TracklogImporter(storage.recordings, storage.breadcrumbs)
        try:
            summary = importer.import_file(path, validation.type, options)
        except ImportFailedError as e:
            return jsonify({"detail": str(e)}), 422

    return jsonify(import_to_response(validation.type, summary))


# ============================================================================
# Imported Data Endpoints
# ============================================================================

@app.route("/breadcrumbs", methods=["GET"])
def list_breadcrumbs():
    """List imported breadcrumbs, optionally for one session."""
    storage = _storage()
    if storage is None:
        return jsonify({"detail": "No data folder configured"}), 503

    crumbs = storage.breadcrumbs.list_breadcrumbs(request.args.get("session_id"))
    return jsonify([breadcrumb_to_response(b) for b in crumbs])


@app.route("/breadcrumbs/sessions", methods=["GET"])
def list_sessions():
    """List import sessions, newest first."""
    storage = _storage()
    if storage is None:
        return jsonify({"detail": "No data folder configured"}), 503

    return jsonify([session_to_response(s) for s in storage.breadcrumbs.list_sessions()])


@app.route("/breadcrumbs/export.csv", methods=["GET"])
def export_breadcrumbs_csv():
    """Export imported breadcrumbs as CSV."""
    storage = _storage()
    if storage is None:
        return jsonify({"detail": "No data folder configured"}), 503

    csv_text = storage.breadcrumbs.export_csv(request.args.get("session_id"))
    return Response(csv_text, mimetype="text/csv")


@app.route("/recordings", methods=["GET"])
def list_recordings():
    """List metadata of imported recordings."""
    storage = _storage()
    if storage is None:
        return jsonify({"detail": "No data folder configured"}), 503

    return jsonify(storage.recordings.list_recordings())


@app.route("/recordings/<recording_id>/audio", methods=["GET"])
def get_recording_audio(recording_id):
    """Download the audio file of an imported recording."""
    storage = _storage()
    if storage is None:
        return jsonify({"detail": "No data folder configured"}), 503

    audio_path = storage.recordings.get_audio_path(recording_id)
    if audio_path is None or not audio_path.exists():
        return jsonify({"detail": f"Recording not found: {recording_id}"}), 404
    return send_file(audio_path.resolve(), download_name=audio_path.name)


# ============================================================================
# Startup
# ============================================================================

def create_app(data_folder: Optional[Path] = None) -> Flask:
    """Configure the Flask app with a storage folder."""
    if data_folder is None:
        data_folder = DEFAULT_DATA_FOLDER

    app.config["STORAGE"] = ImportStorage(data_folder)
    logger.info(f"Initialized storage in folder: {data_folder}")
    return app


if __name__ == "__main__":
    import sys

    # Allow specifying data folder as argument
    data_folder = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_DATA_FOLDER

    create_app(data_folder)
    app.run(host="0.0.0.0", port=8000, debug=True)
