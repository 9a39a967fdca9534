# impactdeck/security/headers.py
# Baseline security headers + the no-cache / same-origin framing headers
# used by every proxied deck or site content response.

from __future__ import annotations

from flask import Flask, Response

NO_STORE = "no-cache, no-store, must-revalidate"


def _is_prod(app: Flask) -> bool:
    env = str(app.config.get("ENV") or "").strip().lower()
    return env in {"prod", "production", "live"}


def apply_content_headers(resp: Response) -> Response:
    """Headers for HTML served into the wrapper iframe: never cached, framable only by us."""
    resp.headers["Content-Type"] = "text/html; charset=utf-8"
    resp.headers["Content-Disposition"] = "inline"
    resp.headers["Cache-Control"] = NO_STORE
    resp.headers["X-Frame-Options"] = "SAMEORIGIN"
    resp.headers["Content-Security-Policy"] = "frame-ancestors 'self'"
    return resp


def apply_no_store(resp: Response) -> Response:
    resp.headers["Cache-Control"] = NO_STORE
    return resp


def _apply_security_headers(app: Flask, resp: Response) -> Response:
    """
    Baseline headers. These use setdefault so route-level headers win.
    """
    resp.headers.setdefault("X-Content-Type-Options", "nosniff")
    resp.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    resp.headers.setdefault(
        "Permissions-Policy",
        "camera=(), microphone=(), geolocation=(), payment=(), usb=(), interest-cohort=()",
    )

    # HSTS only when truly HTTPS in production
    if _is_prod(app):
        resp.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains; preload")

    return resp


def install_security_middleware(app: Flask) -> None:
    if app.extensions.get("impactdeck_security_installed") is True:
        return
    app.extensions["impactdeck_security_installed"] = True

    @app.after_request
    def _security_after(resp: Response):
        return _apply_security_headers(app, resp)
