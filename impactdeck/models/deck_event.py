from __future__ import annotations

# -----------------------------------------------------------------------------
# DeckEvent: analytics beacons from deck pages (views, CTA clicks, shares).
# Keyed by deck slug rather than FK so beacons for deleted decks still land.
# -----------------------------------------------------------------------------

from sqlalchemy import Index

from impactdeck.extensions import db

from .mixins import TimestampMixin


class DeckEvent(db.Model, TimestampMixin):
    __tablename__ = "deck_events"
    __table_args__ = (Index("ix_deck_events_slug_type", "slug", "event_type"),)

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(120), nullable=False, index=True, doc="Deck slug")
    event_type = db.Column(db.String(64), nullable=False, doc="view | click | cta_click | share | ...")
    session_id = db.Column(db.String(120), nullable=False, default="unknown")
    referrer = db.Column(db.Text, nullable=True, doc="HTTP Referer seen by server")
    user_agent = db.Column(db.Text, nullable=True)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<DeckEvent {self.slug}:{self.event_type}>"
