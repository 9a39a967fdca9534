# impactdeck/security/deck_token.py
# Short-lived signed tokens for iframe deck/site content.
#
# Wire format (unpadded base64url):
#     <resource_id>:<issued_at_ms>:<nonce>:<signature>
#
# - nonce: 8 random bytes, lowercase hex
# - signature: HMAC-SHA256(secret, "<resource_id>:<issued_at_ms>:<nonce>") hex, truncated
# - resource ids may contain ':' (e.g. "deck:acme"); the token is split from the right,
#   and issued_at_ms / nonce are validated as digits / hex so the split is unambiguous.

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import re
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from flask import Flask, current_app

log = logging.getLogger(__name__)

DEFAULT_TTL_MS = 5 * 60 * 1000
DEFAULT_SIGNATURE_LENGTH = 16
NONCE_BYTES = 8

_SEP = ":"
_HEX_RE = re.compile(r"^[0-9a-f]+$")
_B64URL_RE = re.compile(r"^[A-Za-z0-9_-]+={0,2}\Z")
_EXTENSION_KEY = "deck_tokens"


class DeckTokenConfigError(RuntimeError):
    """Deck token settings are missing or invalid. Deployment error, not a request error."""


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class DeckTokenConfig:
    secret: bytes = field(repr=False)
    ttl_ms: int = DEFAULT_TTL_MS
    signature_length: int = DEFAULT_SIGNATURE_LENGTH

    def __post_init__(self) -> None:
        if not self.secret:
            raise DeckTokenConfigError("Deck token secret must not be empty.")
        if self.ttl_ms <= 0:
            raise DeckTokenConfigError("Deck token TTL must be positive.")
        if not (16 <= self.signature_length <= 64) or self.signature_length % 2:
            raise DeckTokenConfigError("DECK_TOKEN_SIGNATURE_LENGTH must be an even number between 16 and 64.")


@dataclass(frozen=True)
class AccessToken:
    resource_id: str
    issued_at_ms: int
    nonce: str
    signature: str

    def encode(self) -> str:
        raw = _SEP.join((self.resource_id, str(self.issued_at_ms), self.nonce, self.signature))
        return base64.urlsafe_b64encode(raw.encode("utf-8")).rstrip(b"=").decode("ascii")

    @classmethod
    def decode(cls, token: str) -> Optional["AccessToken"]:
        """Parse a token string. Returns None for anything structurally wrong."""
        if not token or not isinstance(token, str) or not _B64URL_RE.match(token):
            return None
        try:
            padded = token + "=" * (-len(token) % 4)
            raw = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True).decode("utf-8")
        except (UnicodeError, binascii.Error, ValueError):
            return None

        parts = raw.rsplit(_SEP, 3)
        if len(parts) != 4:
            return None

        resource_id, ts, nonce, signature = parts
        if not resource_id or not (ts.isascii() and ts.isdigit()):
            return None
        if not _HEX_RE.match(nonce) or not _HEX_RE.match(signature):
            return None
        return cls(resource_id=resource_id, issued_at_ms=int(ts), nonce=nonce, signature=signature)


class DeckTokenSigner:
    """
    Issues and validates deck content tokens.

    Stateless apart from the immutable config and the clock; safe to share across
    request threads.
    """

    def __init__(self, config: DeckTokenConfig, clock: Callable[[], int] = now_ms) -> None:
        self.config = config
        self._clock = clock

    def _sign(self, resource_id: str, issued_at_ms: int, nonce: str) -> str:
        data = _SEP.join((resource_id, str(issued_at_ms), nonce)).encode("utf-8")
        digest = hmac.new(self.config.secret, data, hashlib.sha256).hexdigest()
        return digest[: self.config.signature_length]

    def issue(self, resource_id: str) -> str:
        if not isinstance(resource_id, str) or not resource_id:
            raise ValueError("resource_id must be a non-empty string")

        issued_at = int(self._clock())
        nonce = secrets.token_hex(NONCE_BYTES)
        signature = self._sign(resource_id, issued_at, nonce)
        return AccessToken(resource_id, issued_at, nonce, signature).encode()

    def validate(self, token: str, expected_resource_id: str) -> bool:
        try:
            reason = self._rejection_reason(token, expected_resource_id)
        except Exception:
            log.exception("deck token validation failed unexpectedly")
            return False

        if reason:
            log.debug("deck token rejected for %r: %s", expected_resource_id, reason)
            return False
        return True

    def _rejection_reason(self, token: str, expected_resource_id: str) -> Optional[str]:
        parsed = AccessToken.decode(token)
        if parsed is None:
            return "malformed"

        if parsed.resource_id != expected_resource_id:
            return "resource mismatch"

        age = int(self._clock()) - parsed.issued_at_ms
        if age < 0:
            return "issued in the future"
        if age > self.config.ttl_ms:
            return "expired"

        expected_sig = self._sign(parsed.resource_id, parsed.issued_at_ms, parsed.nonce)
        if not hmac.compare_digest(expected_sig, parsed.signature):
            return "bad signature"
        return None


# -----------------------------------------------------------------------------
# Resource ids (always derived from the request path)
# -----------------------------------------------------------------------------
def deck_resource(slug: str) -> str:
    return f"deck:{slug}"


def org_resource(org_slug: str) -> str:
    return f"org:{org_slug}"


def site_resource(org_slug: str) -> str:
    return f"site:{org_slug}"


# -----------------------------------------------------------------------------
# Flask wiring
# -----------------------------------------------------------------------------
def _int_setting(source: Mapping[str, Any], key: str, default: int) -> int:
    # unset falls back to the default; an explicit 0 must reach validation
    raw = source.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise DeckTokenConfigError(f"{key} must be an integer, got {raw!r}.") from None


def load_deck_token_config(source: Mapping[str, Any]) -> DeckTokenConfig:
    secret = str(source.get("DECK_TOKEN_SECRET") or "").strip() or str(source.get("CRON_SECRET") or "").strip()
    if not secret:
        raise DeckTokenConfigError("Missing DECK_TOKEN_SECRET or CRON_SECRET; deck content cannot be served.")

    ttl_seconds = _int_setting(source, "DECK_TOKEN_TTL_SECONDS", DEFAULT_TTL_MS // 1000)
    sig_len = _int_setting(source, "DECK_TOKEN_SIGNATURE_LENGTH", DEFAULT_SIGNATURE_LENGTH)
    return DeckTokenConfig(secret=secret.encode("utf-8"), ttl_ms=ttl_seconds * 1000, signature_length=sig_len)


def init_deck_tokens(app: Flask, clock: Callable[[], int] = now_ms) -> DeckTokenSigner:
    signer = DeckTokenSigner(load_deck_token_config(app.config), clock=clock)
    app.extensions[_EXTENSION_KEY] = signer
    app.logger.info(
        "Deck tokens ready (ttl=%ss, signature=%s hex chars)",
        signer.config.ttl_ms // 1000,
        signer.config.signature_length,
    )
    return signer


def current_signer() -> DeckTokenSigner:
    signer = current_app.extensions.get(_EXTENSION_KEY)
    if signer is None:
        raise DeckTokenConfigError("Deck tokens were not initialized on this app.")
    return signer


__all__ = [
    "AccessToken",
    "DeckTokenConfig",
    "DeckTokenConfigError",
    "DeckTokenSigner",
    "current_signer",
    "deck_resource",
    "init_deck_tokens",
    "load_deck_token_config",
    "now_ms",
    "org_resource",
    "site_resource",
]
