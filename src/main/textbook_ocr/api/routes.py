"""HTTP routes: login, OCR submission, result browsing, preview and export."""

from __future__ import annotations

import logging
from functools import wraps
from io import BytesIO
from typing import Any, Callable

from flask import Blueprint, current_app, g, jsonify, redirect, render_template, request, send_file, url_for

from src.main.textbook_ocr.api.schemas import (
    parse_export_request,
    parse_login_request,
    parse_preview_request,
    validate_ocr_response,
)
from src.main.textbook_ocr.auth import api_login_required, authenticate, current_username, login_required
from src.main.textbook_ocr.errors import AuthenticationFailure, ResultNotFound
from src.main.textbook_ocr.services import export_packager
from src.main.textbook_ocr.services.capture import read_frame
from src.main.textbook_ocr.services.markdown_renderer import render_markdown
from src.main.textbook_ocr.utils.validators import content_type_for

LOGGER = logging.getLogger(__name__)
api_bp = Blueprint("api", __name__)

IMAGE_CACHE_SECONDS = 31536000


def _get_client_id() -> str:
    # Forwarded headers are only honoured through ProxyFix (TRUSTED_PROXY_COUNT).
    return request.remote_addr or "unknown"


def rate_limited(scope: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            if request.method == "OPTIONS":
                return current_app.make_default_options_response()

            rate_limiter = current_app.extensions["rate_limiter"]
            if not rate_limiter.hit(scope, _get_client_id()):
                LOGGER.warning("Rate limit exceeded for %s on %s", _get_client_id(), scope)
                return jsonify({"error": "Rate limit exceeded"}), 429
            return func(*args, **kwargs)

        return wrapper

    return decorator


def _get_result_or_404(result_id: int):
    result = current_app.extensions["result_store"].get_by_id(result_id)
    if result is None:
        raise ResultNotFound()
    return result


@api_bp.route("/health", methods=["GET"])
def health() -> Any:
    return jsonify({"status": "ok", "service": "textbook-ocr"})


@api_bp.route("/login", methods=["GET"])
def login_page() -> Any:
    if current_username() is not None:
        return redirect(url_for("api.index_page"))
    next_url = request.args.get("next", "/")
    # Only same-site paths; "//host" would be protocol-relative.
    if not next_url.startswith("/") or next_url.startswith("//"):
        next_url = "/"
    return render_template("login.html", next_url=next_url)


@api_bp.route("/api/auth/login", methods=["POST"])
@rate_limited("login")
def login() -> Any:
    username, password = parse_login_request(request.get_json(silent=True))

    if not authenticate(current_app.extensions["credentials"], username, password):
        LOGGER.info("Rejected login attempt from %s", _get_client_id())
        raise AuthenticationFailure("Invalid username or password.")

    token = current_app.extensions["token_service"].issue(username)
    response = jsonify({"success": True, "message": "Logged in."})
    response.set_cookie(
        current_app.config["AUTH_COOKIE_NAME"],
        token,
        max_age=current_app.config["TOKEN_TTL_SECONDS"],
        path="/",
        httponly=True,
        secure=current_app.config["AUTH_COOKIE_SECURE"],
        samesite="Strict",
    )
    return response


@api_bp.route("/logout", methods=["GET", "POST"])
def logout() -> Any:
    response = redirect(url_for("api.index_page"))
    if request.method == "POST":
        response.delete_cookie(
            current_app.config["AUTH_COOKIE_NAME"],
            path="/",
            httponly=True,
            secure=current_app.config["AUTH_COOKIE_SECURE"],
            samesite="Strict",
        )
    return response


@api_bp.route("/", methods=["GET"])
@login_required
def index_page() -> Any:
    return render_template("index.html", username=g.username)


@api_bp.route("/editor", methods=["GET"])
@login_required
def editor_page() -> Any:
    results = current_app.extensions["result_store"].list_all()
    selected = None
    selected_id = request.args.get("id", type=int)
    if selected_id is not None:
        selected = next((result for result in results if result.id == selected_id), None)
    elif results:
        selected = results[0]

    return render_template(
        "editor.html",
        username=g.username,
        results=results,
        selected=selected,
        preview_html=render_markdown(selected.markdown_text) if selected else "",
    )


@api_bp.route("/api/ocr", methods=["POST"])
@api_login_required
@rate_limited("ocr")
def submit_ocr() -> Any:
    """Recognize the captured frame and return the generated Markdown."""
    image_bytes = read_frame(request)
    outcome = current_app.extensions["ocr_gateway"].process(image_bytes)
    LOGGER.info("OCR result %s created by %s", outcome.result_id, g.username)
    return jsonify(validate_ocr_response(outcome.to_dict())), 200


@api_bp.route("/api/results", methods=["GET"])
@api_login_required
def list_results() -> Any:
    results = current_app.extensions["result_store"].list_all()
    return jsonify({"results": [result.to_dict() for result in results]})


@api_bp.route("/api/results/<int:result_id>", methods=["GET"])
@api_login_required
def get_result(result_id: int) -> Any:
    return jsonify(_get_result_or_404(result_id).to_dict())


@api_bp.route("/images/<path:filename>", methods=["GET"])
@login_required
def download_image(filename: str) -> Any:
    image_path = current_app.extensions["ocr_gateway"].image_path(filename)
    return send_file(image_path, mimetype=content_type_for(filename), max_age=IMAGE_CACHE_SECONDS)


@api_bp.route("/api/preview", methods=["POST"])
@api_login_required
def preview() -> Any:
    markdown = parse_preview_request(request.get_json(silent=True))
    return jsonify({"html": render_markdown(markdown)})


@api_bp.route("/api/download-zip", methods=["POST"])
@api_login_required
def download_zip() -> Any:
    """Export the (possibly edited) Markdown together with its source image."""
    result_id, markdown = parse_export_request(request.get_json(silent=True))
    result = _get_result_or_404(result_id)
    image_path = current_app.extensions["ocr_gateway"].image_path(result.image_filename)

    archive = export_packager.pack(markdown or result.markdown_text, image_path, result.id)
    response = send_file(
        BytesIO(archive),
        mimetype="application/zip",
        as_attachment=True,
        download_name=export_packager.archive_name(result.id),
    )
    response.headers["Cache-Control"] = "no-cache"
    return response
