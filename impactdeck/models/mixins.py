# impactdeck/models/mixins.py
"""Column mixins shared by the ImpactDeck models."""

from datetime import datetime, timezone

from impactdeck.extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class SoftDeleteMixin:
    """
    Organizations are never hard-deleted: their slugs stay reserved so old
    share links don't start pointing at a different nonprofit.
    """

    deleted = db.Column(db.Boolean, default=False, nullable=False, index=True)
    deleted_at = db.Column(db.DateTime, nullable=True)

    def soft_delete(self, commit: bool = True) -> None:
        self.deleted = True
        self.deleted_at = utcnow()
        if commit:
            db.session.commit()

    @classmethod
    def active(cls):
        return cls.query.filter_by(deleted=False)
