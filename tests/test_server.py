"""HTTP preview service."""

import base64
import io

import pytest
from PIL import Image

from qrstyle.options import StyleOptions
from qrstyle.server import MAX_TEXT_LENGTH, create_app


@pytest.fixture
def client():
    app = create_app(StyleOptions(module_px=4))
    app.config["TESTING"] = True
    return app.test_client()


class TestGenerateEndpoint:
    def test_health(self, client):
        assert client.get("/api/health").get_json() == {"status": "ok"}

    def test_png_bytes(self, client):
        resp = client.post("/api/generate", json={"text": "https://example.com"})
        assert resp.status_code == 200
        assert resp.mimetype == "image/png"
        img = Image.open(io.BytesIO(resp.data))
        assert img.width == img.height

    def test_options_and_json_response(self, client):
        resp = client.post("/api/generate", json={
            "text": "https://example.com",
            "options": {"dotStyle": "dots", "cornerStyle": "rounded", "format": "jpeg"},
            "caption": "Scan me",
            "as": "json",
        })
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["ecc_level"] == "HIGH"
        assert body["height"] == body["width"] + 40
        assert body["data_url"].startswith("data:image/jpeg;base64,")
        raw = base64.b64decode(body["data_url"].split(",", 1)[1])
        assert raw.startswith(b"\xff\xd8")

    def test_defaults_are_kept_under_overrides(self, client):
        resp = client.post("/api/generate", json={"text": "abc", "options": {"frameStyle": "simple"}, "as": "json"})
        plain = client.post("/api/generate", json={"text": "abc", "as": "json"}).get_json()
        assert resp.get_json()["width"] > plain["width"]
        # module_px=4 from the app defaults still applies
        assert plain["width"] == (21 + 8) * 4

    def test_clipart_allowed(self, client):
        resp = client.post("/api/generate", json={"text": "abc", "options": {"centerImage": "clipart:star"}})
        assert resp.status_code == 200


class TestErrors:
    @pytest.mark.parametrize("payload", [None, {}, {"text": ""}])
    def test_missing_text(self, client, payload):
        resp = client.post("/api/generate", json=payload)
        assert resp.status_code == 400

    def test_text_too_long(self, client):
        resp = client.post("/api/generate", json={"text": "x" * (MAX_TEXT_LENGTH + 1)})
        assert resp.status_code == 400

    def test_bad_options(self, client):
        resp = client.post("/api/generate", json={"text": "abc", "options": {"format": "gif"}})
        assert resp.status_code == 400
        assert "Invalid options" in resp.get_json()["error"]

    def test_file_paths_rejected(self, client):
        resp = client.post("/api/generate", json={"text": "abc", "options": {"centerImage": "/etc/passwd"}})
        assert resp.status_code == 400

    def test_capacity_is_422(self, client):
        resp = client.post("/api/generate", json={"text": "x" * 4000})
        assert resp.status_code == 422
