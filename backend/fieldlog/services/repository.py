"""
Storage collaborators for imported recordings and breadcrumbs.

The importer only depends on the RecordingStore and BreadcrumbSink
protocols. The folder-backed implementations here are what the API
wires in; any object with the same methods can be injected instead.
"""

import io
import json
import logging
import os
import tempfile
import threading
import uuid
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol, Sequence

import pandas as pd

from fieldlog.models.imports import RecordingMetadata
from fieldlog.models.tracklog import Breadcrumb


logger = logging.getLogger(__name__)


CSV_COLUMNS = [
    "timestamp",
    "lat",
    "lng",
    "audioLevel",
    "isMoving",
    "movementSpeed",
    "direction",
    "accuracy",
    "altitude",
    "sessionId",
]


class RecordingStore(Protocol):
    """Blob + metadata store for audio recordings."""

    def save(self, metadata: RecordingMetadata, audio: bytes) -> str:
        """Persist one recording atomically and return its new id."""
        ...


class BreadcrumbSink(Protocol):
    """Append-only destination for imported breadcrumbs."""

    def append(self, breadcrumbs: Sequence[Breadcrumb]) -> int:
        """Append a batch and return how many were stored."""
        ...


class FolderRecordingStore:
    """
    Stores each recording as an audio file plus a JSON metadata file.

    Layout:
        <folder>/<id><ext>   audio blob
        <folder>/<id>.json   metadata (written last, marks the record complete)
    """

    def __init__(self, folder: Path):
        self.folder = folder
        self.folder.mkdir(parents=True, exist_ok=True)

    def save(self, metadata: RecordingMetadata, audio: bytes) -> str:
        new_id = f"rec-{uuid.uuid4().hex}"
        extension = PurePosixPath(metadata.filename).suffix.lower() or ".bin"
        audio_path = self.folder / f"{new_id}{extension}"
        meta_path = self.folder / f"{new_id}.json"

        record = metadata.to_dict()
        record["id"] = new_id
        record["audioFile"] = audio_path.name

        try:
            audio_path.write_bytes(audio or b"")
            meta_path.write_text(json.dumps(record, indent=2))
        except OSError:
            audio_path.unlink(missing_ok=True)
            meta_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Saved recording {metadata.unique_id} as {new_id}")
        return new_id

    def list_recordings(self) -> list[dict]:
        """All stored metadata records, oldest first by timestamp."""
        records = []
        for meta_path in self.folder.glob("*.json"):
            try:
                records.append(json.loads(meta_path.read_text()))
            except (OSError, ValueError) as e:
                logger.error(f"Failed to load recording metadata {meta_path.name}: {e}")
        records.sort(key=lambda r: (r.get("timestamp") or "", r.get("id", "")))
        return records

    def get_audio_path(self, recording_id: str) -> Optional[Path]:
        """Audio file of a stored recording, or None if the id is unknown."""
        if PurePosixPath(recording_id).name != recording_id or recording_id.startswith("."):
            return None
        meta_path = self.folder / f"{recording_id}.json"
        if not meta_path.exists():
            return None
        record = json.loads(meta_path.read_text())
        return self.folder / record["audioFile"]


class JsonBreadcrumbStore:
    """
    Append-only breadcrumb log in a single JSON file.

    No dedup and no updates: every import adds its batch to the end.
    """

    def __init__(self, path: Path):
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _load(self) -> list[dict]:
        if not self.path.exists():
            return []
        with open(self.path) as f:
            return json.load(f)

    def append(self, breadcrumbs: Sequence[Breadcrumb]) -> int:
        if not breadcrumbs:
            return 0

        # Imports run in a thread pool; read-modify-write must not interleave
        with self._lock:
            existing = self._load()
            existing.extend(b.to_dict() for b in breadcrumbs)

            # One temp file per writer, swapped in atomically
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            tmp_path = Path(tmp_name)
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(existing, f)
                tmp_path.replace(self.path)
            except (OSError, TypeError, ValueError):
                tmp_path.unlink(missing_ok=True)
                raise

        logger.info(f"Stored {len(breadcrumbs)} breadcrumbs ({len(existing)} total)")
        return len(breadcrumbs)

    def list_breadcrumbs(self, session_id: Optional[str] = None) -> list[Breadcrumb]:
        crumbs = [Breadcrumb.from_dict(d) for d in self._load()]
        if session_id is not None:
            crumbs = [b for b in crumbs if b.session_id == session_id]
        return crumbs

    def list_sessions(self) -> list[dict]:
        """Per-session breadcrumb counts and time ranges, newest first."""
        df = pd.DataFrame(self._load(), columns=CSV_COLUMNS + ["originalSessionId"])
        if df.empty:
            return []
        grouped = df.groupby("sessionId", sort=False).agg(
            breadcrumbCount=("timestamp", "size"),
            startTime=("timestamp", "min"),
            endTime=("timestamp", "max"),
            originalSessionId=("originalSessionId", "first"),
        )
        sessions = [
            {
                "sessionId": session_id,
                "breadcrumbCount": int(row.breadcrumbCount),
                "startTime": int(row.startTime),
                "endTime": int(row.endTime),
                "originalSessionId": None if pd.isna(row.originalSessionId) else row.originalSessionId,
            }
            for session_id, row in grouped.iterrows()
        ]
        sessions.sort(key=lambda s: s["startTime"], reverse=True)
        return sessions

    def export_csv(self, session_id: Optional[str] = None) -> str:
        """Breadcrumbs as CSV text, one row per sample."""
        rows = [b.to_dict() for b in self.list_breadcrumbs(session_id)]
        df = pd.DataFrame(rows, columns=CSV_COLUMNS)
        buffer = io.StringIO()
        df.to_csv(buffer, index=False)
        return buffer.getvalue()


class ImportStorage:
    """Recording store and breadcrumb sink rooted at one data folder."""

    def __init__(self, data_folder: Path):
        self.data_folder = data_folder
        self.recordings = FolderRecordingStore(data_folder / "recordings")
        self.breadcrumbs = JsonBreadcrumbStore(data_folder / "imported_breadcrumbs.json")
