# impactdeck/routes/api.py
from __future__ import annotations

"""
ImpactDeck API Blueprint
────────────────────────────────────────────────────────────
• Mounted at /api via app factory
• POST /api/track              analytics beacons from deck pages (rate limited per IP)
• GET  /api/decks/<slug>/stats view/click counters + event breakdown
"""

import logging
from typing import Any

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func

from impactdeck.extensions import db, with_db_retry
from impactdeck.models import Deck, DeckEvent
from impactdeck.security.deck_token import now_ms
from impactdeck.security.rate_limit import current_limiter

log = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)
bp = api_bp

VIEW_EVENTS = {"view"}
CLICK_EVENTS = {"click", "cta_click"}

_MAX_FIELD = 120


def _client_ip() -> str:
    # ProxyFix (TRUST_PROXY) already rewrote remote_addr from X-Forwarded-For
    return request.remote_addr or "unknown"


def _clip(v: Any, limit: int = _MAX_FIELD) -> str:
    return str(v).strip()[:limit]


@with_db_retry(retries=1)
def _record_event(slug: str, event: str, session_id: str) -> None:
    db.session.add(
        DeckEvent(
            slug=slug,
            event_type=event,
            session_id=session_id,
            referrer=request.headers.get("Referer"),
            user_agent=request.headers.get("User-Agent"),
        )
    )
    if event in VIEW_EVENTS:
        Deck.increment_views(slug)
    elif event in CLICK_EVENTS:
        Deck.increment_clicks(slug)
    db.session.commit()


@api_bp.post("/track")
def track():
    limit = int(current_app.config.get("TRACK_RATE_LIMIT", 120))
    rl = current_limiter().check(f"track:{_client_ip()}", limit=limit, window_ms=60 * 1000)
    if not rl.allowed:
        resp = jsonify({"error": "Too many requests"})
        resp.status_code = 429
        resp.headers["Retry-After"] = str(rl.retry_after_seconds(now_ms()))
        return resp

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    slug = _clip(body.get("slug") or "")
    event = _clip(body.get("event") or "", 64)
    if not slug or not event:
        resp = jsonify({"error": "Missing required fields"})
        resp.status_code = 400
        return resp

    session_id = _clip(body.get("sessionId") or "unknown")
    try:
        _record_event(slug, event, session_id)
    except Exception:
        # Tracking must never break the deck
        db.session.rollback()
        log.exception("Track error for %s/%s", slug, event)

    return jsonify({"success": True})


@api_bp.get("/decks/<slug>/stats")
def deck_stats(slug: str):
    deck = Deck.get_by_slug(slug)
    if not deck:
        resp = jsonify({"error": "Deck not found"})
        resp.status_code = 404
        return resp

    rows = (
        db.session.query(DeckEvent.event_type, func.count(DeckEvent.id))
        .filter(DeckEvent.slug == slug)
        .group_by(DeckEvent.event_type)
        .all()
    )
    return jsonify(
        {
            "slug": deck.slug,
            "views": deck.view_count or 0,
            "clicks": deck.click_count or 0,
            "events": {event_type: int(count) for event_type, count in rows},
        }
    )
