# impactdeck/security/rate_limit.py
# Fixed-window in-memory rate limiter (per process).

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from flask import Flask, current_app

from impactdeck.security.deck_token import now_ms

_PRUNE_EVERY_MS = 60 * 1000
_EXTENSION_KEY = "rate_limiter"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at_ms: int

    def retry_after_seconds(self, now: int) -> int:
        return max(1, -(-(self.reset_at_ms - now) // 1000))


@dataclass
class _Window:
    count: int
    reset_at_ms: int


class RateLimiter:
    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_prune_ms = 0

    def check(self, key: str, limit: int = 10, window_ms: int = 60 * 60 * 1000) -> RateLimitResult:
        now = int(self._clock())
        with self._lock:
            self._maybe_prune(now)

            win = self._windows.get(key)
            if win is None or now > win.reset_at_ms:
                win = _Window(count=1, reset_at_ms=now + window_ms)
                self._windows[key] = win
                return RateLimitResult(True, limit - 1, win.reset_at_ms)

            if win.count >= limit:
                return RateLimitResult(False, 0, win.reset_at_ms)

            win.count += 1
            return RateLimitResult(True, limit - win.count, win.reset_at_ms)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def __len__(self) -> int:
        return len(self._windows)

    def _maybe_prune(self, now: int) -> None:
        if now - self._last_prune_ms < _PRUNE_EVERY_MS:
            return
        self._last_prune_ms = now
        expired = [k for k, w in self._windows.items() if now > w.reset_at_ms]
        for k in expired:
            del self._windows[k]


def init_rate_limiter(app: Flask, clock: Callable[[], int] = now_ms) -> RateLimiter:
    limiter = RateLimiter(clock=clock)
    app.extensions[_EXTENSION_KEY] = limiter
    return limiter


def current_limiter() -> RateLimiter:
    return current_app.extensions[_EXTENSION_KEY]
