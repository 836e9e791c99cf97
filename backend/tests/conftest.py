"""
Shared fixtures: tracklog archives, GeoJSON tracks and storage.
"""

import json
import zipfile
from pathlib import Path
from typing import Optional

import pytest

from fieldlog.services.repository import ImportStorage


SESSION_ID = "session-2024-05-01"


@pytest.fixture
def sample_breadcrumbs():
    """Three breadcrumbs walking north-east, one second apart."""
    return [
        {
            "lat": 4.6097,
            "lng": -74.0817,
            "timestamp": 1714557600000,
            "audioLevel": 0.2,
            "isMoving": False,
            "movementSpeed": 0.0,
            "direction": None,
            "accuracy": 5.0,
            "altitude": 2600.0,
            "sessionId": SESSION_ID,
        },
        {
            "lat": 4.6098,
            "lng": -74.0816,
            "timestamp": 1714557601000,
            "audioLevel": 0.4,
            "isMoving": True,
            "movementSpeed": 1.4,
            "direction": 45.0,
            "accuracy": 4.0,
            "altitude": 2601.0,
            "sessionId": SESSION_ID,
        },
        {
            "lat": 4.6099,
            "lng": -74.0815,
            "timestamp": 1714557602000,
            "audioLevel": 0.3,
            "isMoving": True,
            "movementSpeed": 1.5,
            "direction": 45.0,
            "accuracy": 4.0,
            "altitude": 2602.0,
            "sessionId": SESSION_ID,
        },
    ]


@pytest.fixture
def make_tracklog_zip(tmp_path, sample_breadcrumbs):
    """
    Factory for tracklog export archives.

    Audio entries are stored uncompressed so tests can corrupt them in place.
    """

    def _make(
        name: str = "tracklog.zip",
        tracklog: Optional[dict] = None,
        audio: Optional[dict[str, bytes]] = None,
        metadata: Optional[dict[str, dict]] = None,
        include_tracklog: bool = True,
        include_summary: bool = True,
        extra: Optional[dict[str, bytes]] = None,
    ) -> Path:
        if tracklog is None:
            tracklog = {"sessionId": SESSION_ID, "breadcrumbs": sample_breadcrumbs}

        path = tmp_path / name
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as zf:
            if include_tracklog:
                zf.writestr("tracklog/tracklog.json", json.dumps(tracklog))
            if include_summary:
                zf.writestr("export_summary.json", json.dumps({
                    "sessionId": tracklog.get("sessionId"),
                    "totalRecordings": len(audio or {}),
                }))
            for filename, content in (audio or {}).items():
                zf.writestr(f"audio/{filename}", content)
            for recording_id, meta in (metadata or {}).items():
                zf.writestr(f"metadata/{recording_id}_metadata.json", json.dumps(meta))
            for entry, content in (extra or {}).items():
                zf.writestr(entry, content)
        return path

    return _make


def corrupt_entry(path: Path, payload: bytes) -> None:
    """Overwrite a stored entry's bytes in place so its CRC no longer matches."""
    data = path.read_bytes()
    assert data.count(payload) == 1
    path.write_bytes(data.replace(payload, bytes(len(payload))))


@pytest.fixture
def corrupt():
    return corrupt_entry


@pytest.fixture
def sample_geojson():
    """FeatureCollection with two breadcrumbs, one audio marker and a line."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [-74.0817, 4.6097]},
                "properties": {
                    "timestamp": 1714557600000,
                    "audioLevel": 0.1,
                    "isMoving": False,
                    "movementSpeed": 0,
                    "accuracy": 5,
                },
            },
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [-74.0816, 4.6098]},
                "properties": {
                    "timestamp": 1714557605000,
                    "audioLevel": 0.5,
                    "isMoving": True,
                    "movementSpeed": 1.2,
                    "direction": 30,
                },
            },
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [-74.0816, 4.6098]},
                "properties": {"type": "audio_recording", "uniqueId": "rec-1"},
            },
            {
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[-74.0817, 4.6097], [-74.0816, 4.6098]],
                },
                "properties": {"type": "track"},
            },
        ],
    }


@pytest.fixture
def geojson_file(tmp_path, sample_geojson):
    path = tmp_path / "track.geojson"
    path.write_text(json.dumps(sample_geojson))
    return path


@pytest.fixture
def storage(tmp_path):
    return ImportStorage(tmp_path / "storage")
