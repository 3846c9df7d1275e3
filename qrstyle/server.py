"""HTTP preview service: POST options, get the rendered code back."""

import base64
from dataclasses import fields

from qrstyle.errors import EncodingError
from qrstyle.logging import audit, get_logger, trace
from qrstyle.options import StyleOptions
from qrstyle.pipeline import generate

log = get_logger("server")

MAX_TEXT_LENGTH = 4296  # alphanumeric capacity of a version 40-L symbol


@trace
def create_app(defaults: StyleOptions | None = None):
    """Create a Flask app exposing ``POST /api/generate``.

    Request JSON: ``{"text": ..., "options": {...}, "caption": ..., "as": "image"|"json"}``.
    ``as=json`` returns metadata plus a base64 data URL instead of raw bytes.
    """
    from flask import Flask, Response, jsonify, request

    app = Flask(__name__)
    base = defaults or StyleOptions()

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/generate", methods=["POST"])
    def generate_code():
        payload = request.get_json(silent=True)
        if not payload or not payload.get("text"):
            return jsonify({"error": "Missing 'text' field"}), 400
        text = str(payload["text"])
        if len(text) > MAX_TEXT_LENGTH:
            return jsonify({"error": f"'text' longer than {MAX_TEXT_LENGTH} characters"}), 400

        try:
            overrides = payload.get("options") or {}
            options = StyleOptions.from_dict({**_as_dict(base), **overrides}) if overrides else base
        except (TypeError, ValueError) as exc:
            return jsonify({"error": f"Invalid options: {exc}"}), 400
        # no server-side file paths over HTTP
        source = overrides.get("centerImage", overrides.get("center_image"))
        if source and not (isinstance(source, str) and source.startswith(("data:", "clipart:"))):
            return jsonify({"error": "centerImage must be a data: URI or clipart:<name>"}), 400

        try:
            code = generate(text, options, payload.get("caption"))
        except EncodingError as exc:
            audit("server.encode_failed", logger=log, length=len(text), error=str(exc))
            return jsonify({"error": str(exc)}), 422

        audit("server.generated", logger=log, length=len(text),
              image_px=f"{code.image.width}x{code.image.height}", degraded=len(code.errors))
        if payload.get("as") == "json":
            return jsonify({
                "data_url": f"data:{code.mime_type};base64,{base64.b64encode(code.data).decode('ascii')}",
                "width": code.image.width,
                "height": code.image.height,
                "ecc_level": code.ecc_level.name if code.ecc_level else None,
                "degraded": code.degraded,
            })
        return Response(code.data, mimetype=code.mime_type)

    return app


def _as_dict(options: StyleOptions) -> dict:
    return {f.name: getattr(options, f.name) for f in fields(options)}
