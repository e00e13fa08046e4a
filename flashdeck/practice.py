"""
This module defines the PracticeEngine, which decides which cards of a
resolved deck are due and records grading events. It composes the deck
projection, the activity store and a scheduler; none of those call each
other directly.
"""

import logging
import random
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .constants import PRACTICE_MODES, PRACTICE_ORDERS
from .deck_models import Deck
from .models import CardState, NormalizedCard, Rating
from .projection import project_cards
from .scheduler import BaseScheduler, FSRSScheduler, SchedulerOutput
from .store import ActivityStore

logger = logging.getLogger(__name__)


class PracticeEngine:
    """
    Selects due cards and processes grading for one deck's activity store.

    The store must already be bound and loaded; the engine never performs
    deck or activity I/O of its own apart from the saves a grading triggers.
    """

    def __init__(
        self,
        store: ActivityStore,
        scheduler: Optional[BaseScheduler] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the PracticeEngine.

        Args:
            store: Bound and loaded activity store of the deck being practiced
            scheduler: Computes next states; FSRSScheduler when omitted
            rng: Random source for the "random" order
        """
        self.store = store
        self.scheduler = scheduler or FSRSScheduler()
        self.rng = rng or random.Random()

    def get_due_cards(
        self,
        deck: Deck,
        mode: str = "mixed",
        order: str = "standard",
        now: Optional[datetime] = None,
    ) -> List[NormalizedCard]:
        """
        Return the practice-ready cards of ``deck`` that are due.

        Args:
            deck: A resolved deck
            mode: "new" (never graded), "review" (graded and due) or "mixed"
            order: "standard" puts review cards first, oldest due first,
                then new cards in deck order; "random" shuffles them
            now: Reference time (defaults to the current time)

        Raises:
            ValueError: If mode or order is unknown
        """
        if mode not in PRACTICE_MODES:
            raise ValueError(
                f"Invalid mode: '{mode}'. Allowed: {', '.join(PRACTICE_MODES)}."
            )
        if order not in PRACTICE_ORDERS:
            raise ValueError(
                f"Invalid order: '{order}'. Allowed: {', '.join(PRACTICE_ORDERS)}."
            )
        now = _as_utc(now or datetime.now(timezone.utc))

        review_cards: List[Tuple[datetime, NormalizedCard]] = []
        new_cards: List[NormalizedCard] = []
        for card in project_cards(deck.cards):
            state = self.store.get_card_state(card.id)
            if state is None:
                if mode != "review":
                    new_cards.append(card)
            elif mode != "new" and _is_due(state, now):
                review_cards.append((_due_of(state, now), card))

        review_cards.sort(key=lambda item: item[0])
        due = [card for _, card in review_cards] + new_cards
        if order == "random":
            self.rng.shuffle(due)

        logger.info(
            "Deck '%s': %s review and %s new cards due (mode=%s, order=%s).",
            deck.id,
            len(review_cards),
            len(new_cards),
            mode,
            order,
        )
        return due

    def grade_card(
        self,
        card_id: str,
        rating: int,
        reviewed_at: Optional[datetime] = None,
    ) -> CardState:
        """
        Grade a card and durably record the outcome.

        Args:
            card_id: Id of the graded card
            rating: 1-4 (Again, Hard, Good, Easy)
            reviewed_at: Grading time (defaults to now)

        Returns:
            The card's new state

        Raises:
            ValueError: If rating is invalid
            ActivityStoreError: If the outcome cannot be saved; the grading
                must then be reported as failed
        """
        if rating not in set(Rating):
            raise ValueError(
                f"Invalid rating: {rating}. Must be 1-4 (1=Again, 2=Hard, 3=Good, 4=Easy)."
            )
        ts = reviewed_at or datetime.now(timezone.utc)
        logger.debug("Grading card %s with rating %s", card_id, rating)

        try:
            output: SchedulerOutput = self.scheduler.compute_next_state(
                state=self.store.get_card_state(card_id),
                new_rating=rating,
                review_ts=ts,
            )
            self.store.record_review(card_id, output.state, output.log)
        except Exception:
            logger.exception("Failed to grade card %s", card_id)
            raise

        logger.info(
            "Graded card %s with rating %s; next due %s.",
            card_id,
            rating,
            output.state.due,
        )
        return output.state


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _due_of(state: CardState, now: datetime) -> datetime:
    return _as_utc(state.due) if state.due is not None else now


def _is_due(state: CardState, now: datetime) -> bool:
    # A state without a due timestamp is treated as due.
    return _due_of(state, now) <= now
