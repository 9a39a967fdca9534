"""
Liveness / readiness probes.

/live   process is up (no dependencies touched)
/ready  every check passes, else 503
/health same payload as /ready but always 200, for dashboards
"""

from __future__ import annotations

import os
import socket
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Tuple

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from impactdeck.extensions import db

bp = Blueprint("health", __name__)

STARTED_AT = time.time()
HOSTNAME = socket.gethostname()
VERSION = os.getenv("GIT_COMMIT") or os.getenv("BUILD_VERSION") or "dev"

Check = Callable[[], Dict[str, Any]]


def _database() -> Dict[str, Any]:
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        db.session.rollback()
        return {"ok": False, "error": e.__class__.__name__}
    return {"ok": True}


def _deck_tokens() -> Dict[str, Any]:
    signer = current_app.extensions.get("deck_tokens")
    if signer is None:
        return {"ok": False, "error": "not initialized"}
    return {"ok": True, "ttl_s": signer.config.ttl_ms // 1000}


CHECKS: List[Tuple[str, Check]] = [
    ("database", _database),
    ("deck_tokens", _deck_tokens),
]


def _report() -> Dict[str, Any]:
    parts = {name: check() for name, check in CHECKS}
    return {
        "status": "ok" if all(p["ok"] for p in parts.values()) else "fail",
        "version": VERSION,
        "hostname": HOSTNAME,
        "uptime_s": int(time.time() - STARTED_AT),
        "now": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "parts": parts,
    }


@bp.get("/live")
def live():
    return jsonify({"status": "ok", "uptime_s": int(time.time() - STARTED_AT)})


@bp.get("/ready")
def ready():
    report = _report()
    return jsonify(report), (200 if report["status"] == "ok" else 503)


@bp.get("/health")
def health():
    return jsonify(_report())
