import json
from unittest.mock import patch

import pytest

from impactdeck.extensions import db
from impactdeck.models import DeckEvent


@pytest.fixture
def deck(make_deck):
    return make_deck("acme-impact")


def _track(client, **body):
    return client.post("/api/track", json=body)


def test_track_view_and_click(client, deck):
    assert _track(client, slug="acme-impact", event="view", sessionId="s1").get_json() == {"success": True}
    _track(client, slug="acme-impact", event="cta_click", sessionId="s1")
    _track(client, slug="acme-impact", event="scroll_50")

    db.session.refresh(deck)
    assert deck.view_count == 1
    assert deck.click_count == 1

    events = DeckEvent.query.order_by(DeckEvent.id).all()
    assert [e.event_type for e in events] == ["view", "cta_click", "scroll_50"]
    assert events[2].session_id == "unknown"


def test_track_records_request_context(client, deck):
    client.post(
        "/api/track",
        json={"slug": "acme-impact", "event": "view"},
        headers={"Referer": "https://news.example.com/", "User-Agent": "pytest-agent"},
    )

    event = DeckEvent.query.one()
    assert event.referrer == "https://news.example.com/"
    assert event.user_agent == "pytest-agent"


@pytest.mark.parametrize("body", [{}, {"slug": "acme-impact"}, {"event": "view"}, {"slug": " ", "event": "view"}])
def test_track_requires_slug_and_event(client, body):
    resp = _track(client, **body)

    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Missing required fields"}


def test_track_non_json_body(client):
    resp = client.post("/api/track", data="slug=x", content_type="text/plain")
    assert resp.status_code == 400


@pytest.mark.parametrize("payload", [["view"], "view", 42, None])
def test_track_rejects_non_object_json(client, payload):
    resp = client.post("/api/track", data=json.dumps(payload), content_type="application/json")

    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Missing required fields"}


def test_track_is_rate_limited_per_ip(app, client, deck):
    app.config["TRACK_RATE_LIMIT"] = 2

    assert _track(client, slug="acme-impact", event="view").status_code == 200
    assert _track(client, slug="acme-impact", event="view").status_code == 200

    resp = _track(client, slug="acme-impact", event="view")
    assert resp.status_code == 429
    assert resp.get_json() == {"error": "Too many requests"}
    assert int(resp.headers["Retry-After"]) >= 1

    other = client.post(
        "/api/track",
        json={"slug": "acme-impact", "event": "view"},
        environ_base={"REMOTE_ADDR": "10.1.2.3"},
    )
    assert other.status_code == 200


def test_track_rate_limit_window_resets(app, client, deck, clock):
    app.config["TRACK_RATE_LIMIT"] = 1
    _track(client, slug="acme-impact", event="view")
    assert _track(client, slug="acme-impact", event="view").status_code == 429

    clock.advance(minutes=1, ms=1)
    assert _track(client, slug="acme-impact", event="view").status_code == 200


def test_track_storage_failure_still_succeeds(client, deck):
    with patch("impactdeck.routes.api.Deck.increment_views", side_effect=RuntimeError("db down")):
        resp = _track(client, slug="acme-impact", event="view")

    assert resp.status_code == 200
    assert resp.get_json() == {"success": True}


def test_track_unknown_deck_still_records_event(client):
    assert _track(client, slug="ghost", event="view").status_code == 200
    assert DeckEvent.query.filter_by(slug="ghost").count() == 1


def test_stats(client, deck):
    for event in ("view", "view", "click", "scroll_50"):
        _track(client, slug="acme-impact", event=event)

    data = client.get("/api/decks/acme-impact/stats").get_json()

    assert data == {
        "slug": "acme-impact",
        "views": 2,
        "clicks": 1,
        "events": {"view": 2, "click": 1, "scroll_50": 1},
    }


def test_stats_unknown_deck(client):
    resp = client.get("/api/decks/ghost/stats")

    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Deck not found"}
