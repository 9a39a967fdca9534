from __future__ import annotations

from impactdeck.extensions import db
from impactdeck.models.deck import Deck
from impactdeck.models.deck_event import DeckEvent
from impactdeck.models.organization import Organization

__all__ = ["db", "Deck", "DeckEvent", "Organization"]
