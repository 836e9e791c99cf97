"""
Tests for the Flask alternative app.
"""

import io
import json

import pytest

from fieldlog import flask_app


@pytest.fixture
def client(tmp_path):
    app = flask_app.create_app(tmp_path / "imports")
    app.config["TESTING"] = True
    yield app.test_client()
    app.config.pop("STORAGE", None)


@pytest.fixture
def client_without_storage():
    flask_app.app.config.pop("STORAGE", None)
    flask_app.app.config["TESTING"] = True
    return flask_app.app.test_client()


def upload(path, name=None):
    return {"file": (io.BytesIO(path.read_bytes()), name or path.name)}


class TestFlaskApp:
    """Tests for the Flask routes."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.get_json()["name"] == "Fieldlog Import Backend"

    def test_validate(self, client, make_tracklog_zip):
        response = client.post(
            "/imports/validate",
            data=upload(make_tracklog_zip()),
            content_type="multipart/form-data",
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["valid"] is True
        assert data["breadcrumb_count"] == 3

    def test_import_and_list(self, client, make_tracklog_zip):
        path = make_tracklog_zip(audio={"a.webm": b"a"})

        response = client.post(
            "/imports",
            data={**upload(path), "time_offset": "1000"},
            content_type="multipart/form-data",
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["imported_breadcrumbs"] == 3
        assert data["imported_recordings"] == 1

        crumbs = client.get("/breadcrumbs", query_string={"session_id": data["new_session_id"]}).get_json()
        assert len(crumbs) == 3
        assert crumbs[0]["timestamp"] == 1714557601000

        sessions = client.get("/breadcrumbs/sessions").get_json()
        assert sessions[0]["session_id"] == data["new_session_id"]

        assert len(client.get("/recordings").get_json()) == 1

        csv_response = client.get("/breadcrumbs/export.csv")
        assert csv_response.mimetype == "text/csv"

    def test_recording_audio(self, client, make_tracklog_zip):
        path = make_tracklog_zip(audio={"a.webm": b"flask-audio"})
        data = client.post("/imports", data=upload(path), content_type="multipart/form-data").get_json()

        response = client.get(f"/recordings/{data['recordings'][0]['new_id']}/audio")

        assert response.status_code == 200
        assert response.data == b"flask-audio"
        response.close()

        assert client.get("/recordings/rec-missing/audio").status_code == 404

    def test_import_geojson(self, client, geojson_file):
        response = client.post(
            "/imports",
            data=upload(geojson_file),
            content_type="multipart/form-data",
        )

        assert response.status_code == 200
        assert response.get_json()["audio_recordings"] == 1

    def test_invalid_file(self, client, tmp_path):
        path = tmp_path / "bad.geojson"
        path.write_text(json.dumps({"type": "Feature"}))

        response = client.post("/imports", data=upload(path), content_type="multipart/form-data")

        assert response.status_code == 400

    @pytest.mark.parametrize("form", [{"scale": "0"}, {"rotate": "ninety"}])
    def test_invalid_options(self, client, make_tracklog_zip, form):
        response = client.post(
            "/imports",
            data={**upload(make_tracklog_zip()), **form},
            content_type="multipart/form-data",
        )

        assert response.status_code == 400

    def test_missing_file(self, client):
        response = client.post("/imports", data={}, content_type="multipart/form-data")

        assert response.status_code == 400

    def test_without_storage(self, client_without_storage, make_tracklog_zip):
        response = client_without_storage.post(
            "/imports",
            data=upload(make_tracklog_zip()),
            content_type="multipart/form-data",
        )

        assert response.status_code == 503
        assert client_without_storage.get("/breadcrumbs").status_code == 503
