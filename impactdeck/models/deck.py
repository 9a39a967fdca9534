from __future__ import annotations

from typing import Optional

from sqlalchemy import Index

from impactdeck.extensions import db
from impactdeck.models.mixins import TimestampMixin


class Deck(db.Model, TimestampMixin):
    """A generated impact or thank-you deck whose HTML lives in blob storage."""

    __tablename__ = "decks"
    __table_args__ = (Index("ix_decks_org_type_status", "organization_id", "deck_type", "status"),)

    TYPE_IMPACT = "impact"
    TYPE_THANKYOU = "thankyou"

    STATUS_GENERATING = "generating"
    STATUS_COMPLETE = "complete"
    STATUS_FAILED = "failed"

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(120), unique=True, nullable=False, index=True)
    organization_id = db.Column(
        db.Integer,
        db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    organization = db.relationship("Organization", back_populates="decks")

    org_name = db.Column(db.String(200), nullable=False)
    org_url = db.Column(db.Text, nullable=True)
    sector = db.Column(db.String(80), nullable=True)
    deck_type = db.Column(db.String(20), nullable=False, default=TYPE_IMPACT)
    status = db.Column(db.String(20), nullable=False, default=STATUS_GENERATING, index=True)

    # blob storage
    deck_url = db.Column(db.Text, nullable=True)
    og_image_url = db.Column(db.Text, nullable=True)
    brand_data = db.Column(db.JSON, nullable=True)
    error_message = db.Column(db.Text, nullable=True)

    # personalized thank-you decks
    donor_slug = db.Column(db.String(60), nullable=True, index=True)
    donor_name = db.Column(db.String(200), nullable=True)
    donor_amount = db.Column(db.String(40), nullable=True)

    view_count = db.Column(db.Integer, nullable=False, default=0)
    click_count = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Deck {self.slug} ({self.deck_type}/{self.status})>"

    @property
    def is_servable(self) -> bool:
        return bool(self.deck_url)

    @property
    def mission(self) -> Optional[str]:
        data = self.brand_data or {}
        return data.get("mission") if isinstance(data, dict) else None

    @classmethod
    def get_by_slug(cls, slug: str) -> Optional[Deck]:
        return cls.query.filter_by(slug=slug).first()

    # Counter updates are single UPDATE statements so concurrent beacons don't lose hits.
    @classmethod
    def increment_views(cls, slug: str) -> int:
        return cls.query.filter_by(slug=slug).update(
            {cls.view_count: cls.view_count + 1}, synchronize_session=False
        )

    @classmethod
    def increment_clicks(cls, slug: str) -> int:
        return cls.query.filter_by(slug=slug).update(
            {cls.click_count: cls.click_count + 1}, synchronize_session=False
        )
