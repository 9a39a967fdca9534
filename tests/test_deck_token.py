import base64

import pytest

from impactdeck import create_app
from impactdeck.config import TestingConfig
from impactdeck.security.deck_token import (
    AccessToken,
    DeckTokenConfig,
    DeckTokenConfigError,
    DeckTokenSigner,
    load_deck_token_config,
)

FIVE_MINUTES_MS = 5 * 60 * 1000


def _raw(token: str) -> str:
    return base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode("utf-8")


def _encode(raw: str) -> str:
    return base64.urlsafe_b64encode(raw.encode("utf-8")).rstrip(b"=").decode("ascii")


@pytest.fixture
def tokens(clock):
    return DeckTokenSigner(DeckTokenConfig(secret=b"unit-test-secret"), clock=clock)


# ─────────────────────────────────────────────────────────────
# Issue / validate
# ─────────────────────────────────────────────────────────────
@pytest.mark.parametrize("resource", ["acme-nonprofit", "deck:acme-nonprofit", "site:a", "ünïcode-org"])
def test_fresh_token_is_valid_for_its_resource(tokens, resource):
    assert tokens.validate(tokens.issue(resource), resource) is True


def test_token_is_not_valid_for_other_resources(tokens):
    token = tokens.issue("acme-nonprofit")

    assert tokens.validate(token, "other-org") is False
    assert tokens.validate(token, "acme") is False
    assert tokens.validate(token, "acme-nonprofit-2") is False
    assert tokens.validate(token, "") is False


def test_token_shape(tokens, clock):
    token = tokens.issue("acme-nonprofit")

    assert "=" not in token
    assert set(token) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")

    resource, ts, nonce, sig = _raw(token).split(":")
    assert resource == "acme-nonprofit"
    assert int(ts) == clock.now
    assert len(nonce) == 16 and int(nonce, 16) >= 0
    assert len(sig) == 16 and int(sig, 16) >= 0


def test_issue_rejects_empty_resource(tokens):
    with pytest.raises(ValueError):
        tokens.issue("")


def test_two_tokens_for_same_resource_differ_and_both_validate(tokens):
    a = tokens.issue("acme-nonprofit")
    b = tokens.issue("acme-nonprofit")

    assert a != b
    assert tokens.validate(a, "acme-nonprofit")
    assert tokens.validate(b, "acme-nonprofit")


# ─────────────────────────────────────────────────────────────
# Expiry window
# ─────────────────────────────────────────────────────────────
def test_token_valid_up_to_the_end_of_the_window(tokens, clock):
    token = tokens.issue("acme-nonprofit")
    clock.advance(FIVE_MINUTES_MS)
    assert tokens.validate(token, "acme-nonprofit") is True


def test_token_expires_after_the_window(tokens, clock):
    token = tokens.issue("acme-nonprofit")
    clock.advance(FIVE_MINUTES_MS + 1)
    assert tokens.validate(token, "acme-nonprofit") is False


def test_future_timestamp_is_rejected(tokens, clock):
    clock.advance(minutes=1)
    token = tokens.issue("acme-nonprofit")
    clock.advance(minutes=-2)
    assert tokens.validate(token, "acme-nonprofit") is False


def test_concrete_scenario(tokens, clock):
    token = tokens.issue("acme-nonprofit")

    assert tokens.validate(token, "acme-nonprofit") is True
    assert tokens.validate(token, "other-org") is False

    clock.advance(minutes=6)
    assert tokens.validate(token, "acme-nonprofit") is False


# ─────────────────────────────────────────────────────────────
# Tampering
# ─────────────────────────────────────────────────────────────
@pytest.mark.parametrize("position", range(16))
def test_any_signature_character_change_invalidates(tokens, position):
    token = tokens.issue("acme-nonprofit")
    resource, ts, nonce, sig = _raw(token).split(":")

    flipped = "0" if sig[position] != "0" else "1"
    bad_sig = sig[:position] + flipped + sig[position + 1 :]
    forged = _encode(":".join((resource, ts, nonce, bad_sig)))

    assert tokens.validate(forged, "acme-nonprofit") is False


def test_swapping_resource_without_resigning_invalidates(tokens):
    token = tokens.issue("acme-nonprofit")
    _, ts, nonce, sig = _raw(token).split(":")

    forged = _encode(":".join(("other-org", ts, nonce, sig)))
    assert tokens.validate(forged, "other-org") is False


def test_changed_timestamp_or_nonce_invalidates(tokens):
    token = tokens.issue("acme-nonprofit")
    resource, ts, nonce, sig = _raw(token).split(":")

    later = _encode(":".join((resource, str(int(ts) + 1), nonce, sig)))
    other_nonce = _encode(":".join((resource, ts, "0" * 16, sig)))

    assert tokens.validate(later, resource) is False
    assert tokens.validate(other_nonce, resource) is False


def test_token_from_another_secret_is_rejected(tokens, clock):
    other = DeckTokenSigner(DeckTokenConfig(secret=b"some-other-secret"), clock=clock)
    assert tokens.validate(other.issue("acme-nonprofit"), "acme-nonprofit") is False


def test_scoped_resource_ids_do_not_collide(tokens):
    deck_token = tokens.issue("deck:acme-site")
    assert tokens.validate(deck_token, "site:acme") is False
    assert tokens.validate(deck_token, "deck:acme-site") is True


# ─────────────────────────────────────────────────────────────
# Malformed input never raises
# ─────────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "token",
    [
        "",
        "not base64 at all!",
        "%%%%",
        _encode("acme-nonprofit"),
        _encode("acme-nonprofit:123"),
        _encode("acme-nonprofit:123:abcd"),
        _encode("acme-nonprofit:notanumber:0011223344556677:0011223344556677"),
        _encode("acme-nonprofit:-5:0011223344556677:0011223344556677"),
        _encode("acme-nonprofit:12 3:0011223344556677:0011223344556677"),
        _encode("acme-nonprofit:123:nothex!:0011223344556677"),
        _encode(":123:0011223344556677:0011223344556677"),
        base64.urlsafe_b64encode(b"\xff\xfe\xfd:1:2:3").decode("ascii"),
    ],
)
def test_malformed_tokens_are_rejected_without_raising(tokens, token):
    assert tokens.validate(token, "acme-nonprofit") is False


def test_non_string_token_is_rejected(tokens):
    assert tokens.validate(None, "acme-nonprofit") is False  # type: ignore[arg-type]


def test_standard_base64_alphabet_is_rejected(tokens):
    token = next(t for t in (tokens.issue("acme-nonprofit") for _ in range(200)) if "-" in t or "_" in t)
    standard = token.replace("-", "+").replace("_", "/")

    assert tokens.validate(token, "acme-nonprofit") is True
    assert tokens.validate(standard, "acme-nonprofit") is False


def test_padded_token_is_accepted(tokens):
    token = next(t for t in (tokens.issue("acme-nonprofit") for _ in range(200)) if len(t) % 4)
    padded = token + "=" * (-len(token) % 4)

    assert tokens.validate(padded, "acme-nonprofit") is True


def test_access_token_decode_splits_from_the_right():
    parsed = AccessToken.decode(_encode("deck:acme:1700000000000:0011223344556677:aabbccddeeff0011"))

    assert parsed is not None
    assert parsed.resource_id == "deck:acme"
    assert parsed.issued_at_ms == 1700000000000


# ─────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────
def test_config_prefers_deck_token_secret_over_cron_secret():
    cfg = load_deck_token_config({"DECK_TOKEN_SECRET": "primary", "CRON_SECRET": "fallback"})
    assert cfg.secret == b"primary"


def test_config_falls_back_to_cron_secret():
    cfg = load_deck_token_config({"DECK_TOKEN_SECRET": "  ", "CRON_SECRET": "fallback"})
    assert cfg.secret == b"fallback"
    assert cfg.ttl_ms == 5 * 60 * 1000
    assert cfg.signature_length == 16


def test_missing_secret_is_a_config_error():
    with pytest.raises(DeckTokenConfigError):
        load_deck_token_config({})


@pytest.mark.parametrize("length", [0, 8, 15, 66, "0"])
def test_signature_length_is_bounded(length):
    with pytest.raises(DeckTokenConfigError):
        load_deck_token_config({"DECK_TOKEN_SECRET": "s", "DECK_TOKEN_SIGNATURE_LENGTH": length})


@pytest.mark.parametrize("ttl", [0, -1, "0"])
def test_non_positive_ttl_is_a_config_error(ttl):
    with pytest.raises(DeckTokenConfigError):
        load_deck_token_config({"DECK_TOKEN_SECRET": "s", "DECK_TOKEN_TTL_SECONDS": ttl})


def test_non_numeric_ttl_is_a_config_error():
    with pytest.raises(DeckTokenConfigError):
        load_deck_token_config({"DECK_TOKEN_SECRET": "s", "DECK_TOKEN_TTL_SECONDS": "five"})


def test_unset_numeric_settings_use_defaults():
    cfg = load_deck_token_config(
        {"DECK_TOKEN_SECRET": "s", "DECK_TOKEN_TTL_SECONDS": None, "DECK_TOKEN_SIGNATURE_LENGTH": ""}
    )
    assert cfg.ttl_ms == FIVE_MINUTES_MS
    assert cfg.signature_length == 16


def test_longer_signatures_still_validate(clock):
    cfg = load_deck_token_config({"DECK_TOKEN_SECRET": "s", "DECK_TOKEN_SIGNATURE_LENGTH": 64})
    signer = DeckTokenSigner(cfg, clock=clock)
    token = signer.issue("acme-nonprofit")

    assert len(_raw(token).rsplit(":", 1)[1]) == 64
    assert signer.validate(token, "acme-nonprofit")


def test_app_refuses_to_start_without_a_secret():
    class NoSecretConfig(TestingConfig):
        DECK_TOKEN_SECRET = None
        CRON_SECRET = None

    with pytest.raises(DeckTokenConfigError):
        create_app(NoSecretConfig)


def test_secret_is_not_exposed_in_repr():
    assert "unit-test-secret" not in repr(DeckTokenConfig(secret=b"unit-test-secret"))
