# impactdeck/services/blob_storage.py
import logging
import time

import requests
from flask import current_app

from impactdeck.helpers.urls import is_private_url, sanitize_url

log = logging.getLogger(__name__)


class BlobFetchError(RuntimeError):
    """Upstream blob could not be fetched (bad URL, network error, non-2xx)."""


class BlobStorage:
    """Read-only access to generated deck/site assets in blob storage."""

    @staticmethod
    def _timeout() -> int:
        return int(current_app.config.get("BLOB_FETCH_TIMEOUT", 15))

    @staticmethod
    def _checked_url(url: str) -> str:
        clean = sanitize_url(url)
        if not clean or clean.startswith("/"):
            raise BlobFetchError("Blob URL must be an absolute http(s) URL")
        if is_private_url(clean):
            raise BlobFetchError("Refusing to fetch blob from a private address")
        return clean

    @staticmethod
    def _get(url: str, bust_cache: bool) -> requests.Response:
        target = BlobStorage._checked_url(url)
        params = {"t": str(int(time.time() * 1000))} if bust_cache else None
        try:
            resp = requests.get(
                target,
                params=params,
                headers={"Cache-Control": "no-cache"},
                timeout=BlobStorage._timeout(),
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            log.warning("Blob fetch failed for %s: %s", target, e)
            raise BlobFetchError(str(e)) from e
        return resp

    @staticmethod
    def fetch_html(url: str) -> bytes:
        """Raw deck/site HTML, cache-busted. Bytes are passed through untouched."""
        return BlobStorage._get(url, bust_cache=True).content

    @staticmethod
    def fetch_bytes(url: str) -> bytes:
        return BlobStorage._get(url, bust_cache=False).content
