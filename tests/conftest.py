"""
Shared pytest fixtures for ImpactDeck tests.

- app / client: a fresh app per test (TestingConfig, in-memory SQLite)
- clock: controllable millisecond clock wired into the deck token signer and rate limiter
- blob: stubbed requests.get for blob storage fetches
- make_org / make_deck: model factories
"""

import re
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from impactdeck import create_app
from impactdeck.config import TestingConfig
from impactdeck.extensions import db
from impactdeck.security.deck_token import DeckTokenSigner
from impactdeck.security.rate_limit import RateLimiter

START_MS = 1_760_000_000_000
TOKEN_RE = re.compile(r"token=([A-Za-z0-9_-]+)")


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 0, *, seconds: float = 0, minutes: float = 0) -> None:
        self.now += int(ms + seconds * 1000 + minutes * 60_000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(clock):
    app = create_app(TestingConfig)
    signer = app.extensions["deck_tokens"]
    app.extensions["deck_tokens"] = DeckTokenSigner(signer.config, clock=clock)
    app.extensions["rate_limiter"] = RateLimiter(clock=clock)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def signer(app):
    return app.extensions["deck_tokens"]


@pytest.fixture
def blob():
    """
    Stub for outbound blob fetches. Set `blob.responses[url_prefix] = body` (str or bytes),
    or `blob.fail = True` to simulate an upstream error.
    """
    import requests

    state = SimpleNamespace(responses={}, fail=False, calls=[])

    def _fake_get(url, params=None, headers=None, timeout=None):
        state.calls.append({"url": url, "params": params, "timeout": timeout})
        if state.fail:
            raise requests.ConnectionError("blob storage unreachable")

        body = None
        for prefix, value in state.responses.items():
            if url.startswith(prefix):
                body = value
                break

        resp = MagicMock()
        if body is None:
            resp.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
            return resp

        resp.raise_for_status.return_value = None
        resp.content = body.encode("utf-8") if isinstance(body, str) else body
        return resp

    with patch("impactdeck.services.blob_storage.requests.get", side_effect=_fake_get):
        yield state


@pytest.fixture
def make_org(app):
    from impactdeck.models import Organization

    def _make(name: str = "Acme Nonprofit", **fields: Any) -> Organization:
        slug = fields.pop("slug", None)
        if slug:
            org = Organization(name=name, slug=slug, **fields)
            db.session.add(org)
        else:
            org = Organization.create(name=name, **fields)
        db.session.commit()
        return org

    return _make


@pytest.fixture
def make_deck(app):
    from impactdeck.models import Deck

    def _make(slug: str, org=None, **fields: Any) -> Deck:
        fields.setdefault("org_name", org.name if org else "Acme Nonprofit")
        fields.setdefault("status", Deck.STATUS_COMPLETE)
        fields.setdefault("deck_type", Deck.TYPE_IMPACT)
        fields.setdefault("deck_url", f"https://blob.example.com/decks/{slug}.html")
        deck = Deck(slug=slug, organization=org, **fields)
        db.session.add(deck)
        db.session.commit()
        return deck

    return _make


@pytest.fixture
def extract_token():
    """Pull the iframe content token out of a wrapper page."""

    def _extract(html: str) -> str:
        m = TOKEN_RE.search(html)
        assert m, "no token in wrapper page"
        return m.group(1)

    return _extract
