from __future__ import annotations

from typing import Any, Optional

from impactdeck.extensions import db
from impactdeck.helpers.slugs import org_slug, unique_slug
from impactdeck.models.mixins import SoftDeleteMixin, TimestampMixin


class Organization(db.Model, TimestampMixin, SoftDeleteMixin):
    """A nonprofit with a public deck page (/s/<slug>) and optional generated website."""

    __tablename__ = "organizations"

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(80), unique=True, nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    website_url = db.Column(db.Text, nullable=True, doc="The nonprofit's own website")
    website_html_url = db.Column(db.Text, nullable=True, doc="Blob URL of the generated microsite")

    decks = db.relationship(
        "Deck",
        back_populates="organization",
        lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="Deck.id",
    )

    def __repr__(self) -> str:
        return f"<Organization slug={self.slug!r} name={self.name!r}>"

    def primary_deck(self):
        """The completed impact deck, else the first deck the org has."""
        from impactdeck.models.deck import Deck

        deck = self.decks.filter_by(deck_type=Deck.TYPE_IMPACT, status=Deck.STATUS_COMPLETE).first()
        return deck or self.decks.first()

    def thankyou_deck(self, donor_slug: Optional[str] = None):
        from impactdeck.models.deck import Deck

        q = self.decks.filter_by(deck_type=Deck.TYPE_THANKYOU, status=Deck.STATUS_COMPLETE)
        if donor_slug:
            return q.filter_by(donor_slug=donor_slug).first()
        return q.filter(Deck.donor_slug.is_(None)).first()

    @classmethod
    def get_by_slug(cls, slug: str) -> Optional[Organization]:
        return cls.active().filter_by(slug=slug).first()

    @classmethod
    def slug_taken(cls, slug: str) -> bool:
        return db.session.query(cls.id).filter_by(slug=slug).first() is not None

    @classmethod
    def create(cls, name: str, **fields: Any) -> Organization:
        """Add (not commit) an organization with a collision-free slug derived from its name."""
        org = cls(name=name, slug=unique_slug(org_slug(name), cls.slug_taken), **fields)
        db.session.add(org)
        db.session.flush()
        return org
