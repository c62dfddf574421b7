"""
Flask backend for the virtual photo evaluation service.
Accepts one photo plus context and returns a text report or JSON result.
"""
from __future__ import annotations

import atexit
import hmac
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from photo_eval.config import AppConfig, load_config
from photo_eval.io.archive import (
    Archiver,
    DropboxArchive,
    LocalArchive,
    build_upload_key,
    join_archival,
    start_archival,
)
from photo_eval.io.image_loader import ImageValidationError, validate_upload
from photo_eval.llm_client.invoker import ModelInvocationError
from photo_eval.llm_client.responses import create_client
from photo_eval.pipeline.evaluator import PhotoEvaluator, build_evaluator
from photo_eval.pipeline.models import ContextError, EvaluationContext
from photo_eval.pipeline.report import render_report
from photo_eval.utils.logging import configure_logging

OUTPUT_FORMATS = ("human", "json")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "X-Robots-Tag": "noindex, nofollow",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), interest-cohort=()",
    "Content-Security-Policy": (
        "default-src 'none'; img-src 'self' blob: data: https:; style-src 'unsafe-inline'; "
        "script-src 'self' 'unsafe-inline'; connect-src 'self'; form-action 'self'; "
        "base-uri 'none'; font-src data: https:"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
}


def default_archivers(config: AppConfig) -> list[Archiver]:
    archivers: list[Archiver] = []
    if config.archive_dir:
        archivers.append(LocalArchive(config.archive_dir))
    if config.dropbox_token:
        archivers.append(
            DropboxArchive(config.dropbox_token, config.dropbox_upload_path, config.request_timeout_seconds)
        )
    return archivers


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def create_app(
    config: AppConfig,
    evaluator: PhotoEvaluator | None = None,
    archivers: Sequence[Archiver] | None = None,
) -> Flask:
    if archivers is None:
        archivers = default_archivers(config)

    app = Flask(__name__)
    if evaluator is None:
        try:
            evaluator = build_evaluator(config, create_client(config))
        except ValueError as exc:
            app.logger.warning("No vision client configured: %s", exc)
    # room for the multipart envelope around a maximum-size image
    app.config["MAX_CONTENT_LENGTH"] = config.max_image_bytes + 1024 * 1024
    CORS(
        app,
        origins=list(config.allowed_origins),
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["content-type", "accept"],
    )
    executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="photo-archive")
    atexit.register(executor.shutdown, wait=True)
    app.extensions["photo_eval_archive_executor"] = executor

    @app.after_request
    def add_security_headers(response: Response) -> Response:
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.errorhandler(413)
    def payload_too_large(_exc):
        return _error("image too large", 413)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"ok": True})

    @app.route("/evaluate", methods=["POST"])
    def evaluate():
        """Evaluate one uploaded photo.

        Query parameters: ``model`` overrides the configured model, ``format``
        is ``human`` (default) or ``json``, ``token`` unlocks JSON output when
        JSON_TOKEN is configured.
        """
        if not (request.content_type or "").lower().startswith("multipart/form-data"):
            return _error("multipart/form-data required", 400)

        output_format = (request.args.get("format") or "human").lower()
        if output_format not in OUTPUT_FORMATS:
            return _error(f"format must be one of: {', '.join(OUTPUT_FORMATS)}", 400)

        upload = request.files.get("image")
        if upload is None or not upload.filename:
            return _error("image file required", 400)

        try:
            context = EvaluationContext.from_json(request.form.get("meta"))
            image = validate_upload(
                upload.read(config.max_image_bytes + 1),
                upload.mimetype,
                filename=upload.filename,
                max_bytes=config.max_image_bytes,
            )
        except (ContextError, ImageValidationError) as exc:
            return _error(str(exc), 400)

        if evaluator is None:
            return _error("AI binding not configured", 500)

        if output_format == "json" and config.json_token:
            token = request.args.get("token") or ""
            if not hmac.compare_digest(token, config.json_token):
                return _error("forbidden", 403)

        key = build_upload_key(image.filename)
        futures = start_archival(executor, archivers, key, image.data, image.mime_type)
        try:
            result = evaluator.evaluate(image, context, key, model=request.args.get("model") or None)
        except ModelInvocationError as exc:
            app.logger.error("Evaluation %s failed: %s", key, exc)
            return _error("model invocation failed", 502)
        finally:
            join_archival(futures)

        if output_format == "json":
            return jsonify(result.to_dict())
        return Response(render_report(result), status=200, mimetype="text/plain")

    return app


if __name__ == "__main__":
    cfg = load_config()
    configure_logging(cfg.log_level, cfg.log_file)
    create_app(cfg).run(debug=False, port=8787)
