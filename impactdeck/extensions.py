import functools
import logging
import time
from typing import Any, Callable, TypeVar

from flask_cors import CORS
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import OperationalError

log = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# ─────────────────────────────────────────────────────────────
# Extension singletons (bound in create_app)
# ─────────────────────────────────────────────────────────────
db = SQLAlchemy()
migrate = Migrate()
cors = CORS()


def safe_commit() -> bool:
    """Commit, or roll back and log. For best-effort writes such as view counters."""
    try:
        db.session.commit()
        return True
    except Exception:
        log.error("DB commit failed", exc_info=True)
        db.session.rollback()
        return False


def with_db_retry(retries: int = 2, backoff: float = 0.2) -> Callable[[F], F]:
    """Re-run a unit of DB work when the connection drops (OperationalError)."""

    def _wrap(fn: F) -> F:
        @functools.wraps(fn)
        def _inner(*args: Any, **kwargs: Any):
            for attempt in range(retries + 1):
                try:
                    return fn(*args, **kwargs)
                except OperationalError:
                    db.session.rollback()
                    if attempt == retries:
                        raise
                    log.warning("DB call %s failed, retrying (%d/%d)", fn.__name__, attempt + 1, retries)
                    time.sleep(backoff * (attempt + 1))

        return _inner  # type: ignore[return-value]

    return _wrap


__all__ = ["cors", "db", "migrate", "safe_commit", "with_db_retry"]
