"""Flashdeck - practice OFS flashcard decks with spaced repetition."""

from .deck_models import Card, Deck, ResolvedDeck
from .models import (
    ActivitySnapshot,
    CardState,
    NormalizedCard,
    Rating,
    ReviewLogEntry,
)
from .projection import project, project_cards
from .resolver import DeckResolver
from .store import ActivityStore, activity_path_for

__all__ = [
    "Card",
    "Deck",
    "ResolvedDeck",
    "ActivitySnapshot",
    "CardState",
    "NormalizedCard",
    "Rating",
    "ReviewLogEntry",
    "project",
    "project_cards",
    "DeckResolver",
    "ActivityStore",
    "activity_path_for",
]
