from __future__ import annotations

"""
Shared plumbing for token-gated content:
  wrapper page  -> issues a fresh token, renders an iframe pointing at .../content?token=...
  content route -> validates the token against the path's own resource id, proxies blob HTML
"""

import logging
from typing import Any, Dict, Optional

from flask import current_app, jsonify, make_response, render_template, request, url_for

from impactdeck.security.deck_token import current_signer
from impactdeck.security.headers import apply_content_headers, apply_no_store
from impactdeck.services.blob_storage import BlobFetchError, BlobStorage

log = logging.getLogger(__name__)


def json_error(message: str, status: int, **extra: Any):
    resp = jsonify({"error": message, **extra})
    resp.status_code = status
    return resp


def access_denied():
    """Same body for every failure reason."""
    resp = make_response(render_template("errors/access_denied.html"), 403)
    resp.headers["Content-Type"] = "text/html; charset=utf-8"
    return apply_no_store(resp)


def token_is_valid(resource_id: str) -> bool:
    token = request.args.get("token") or ""
    if not token:
        return False
    return current_signer().validate(token, resource_id)


def content_url(endpoint: str, resource_id: str, **values: Any) -> str:
    """URL of a content route with a freshly issued token for `resource_id`."""
    token = current_signer().issue(resource_id)
    return url_for(endpoint, token=token, **values)


def public_url(path: str) -> str:
    base = (current_app.config.get("PUBLIC_BASE_URL") or request.host_url).rstrip("/")
    return f"{base}{path}"


def serve_blob_html(blob_url: str, failure_message: str = "Failed to fetch deck"):
    try:
        html = BlobStorage.fetch_html(blob_url)
    except BlobFetchError:
        return json_error(failure_message, 502)
    return apply_content_headers(make_response(html, 200))


def render_wrapper(
    *,
    title: str,
    iframe_title: str,
    content_src: str,
    description: Optional[str] = None,
    og: Optional[Dict[str, Any]] = None,
    favicon_url: str = "",
    background: str = "#000",
    show_claim_toast: bool = False,
):
    html = render_template(
        "decks/wrapper.html",
        title=title,
        iframe_title=iframe_title,
        content_url=content_src,
        description=(description or "")[:160],
        og=og,
        favicon_url=favicon_url,
        background=background,
        show_claim_toast=show_claim_toast,
    )
    resp = make_response(html, 200)
    resp.headers["Content-Type"] = "text/html; charset=utf-8"
    return apply_no_store(resp)


def flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() == "true"
