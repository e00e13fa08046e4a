# flashdeck/scheduler.py

"""
Defines the BaseScheduler abstract class and the FSRSScheduler, which
delegates interval and difficulty computation to py-fsrs.

The scheduler only computes; persisting its output is the caller's job.
"""

import datetime
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from fsrs import Card as FSRSCard  # type: ignore
from fsrs import Rating as FSRSRating  # type: ignore
from fsrs import Scheduler as PyFSRSScheduler  # type: ignore
from fsrs import State as FSRSState  # type: ignore
from pydantic import BaseModel, Field

from .constants import DEFAULT_DESIRED_RETENTION, DEFAULT_MAXIMUM_INTERVAL
from .models import CardState, ReviewLogEntry

logger = logging.getLogger(__name__)


@dataclass
class SchedulerOutput:
    state: CardState
    log: ReviewLogEntry


class BaseScheduler(ABC):
    """
    Abstract base class for all schedulers in flashdeck.
    """

    @abstractmethod
    def compute_next_state(
        self,
        state: Optional[CardState],
        new_rating: int,
        review_ts: datetime.datetime,
    ) -> SchedulerOutput:
        """
        Computes the next state of a card from its stored state and a new rating.

        Args:
            state: The card's stored CardState, or None for a card never graded.
            new_rating: The rating given for the current review (1=Again, 2=Hard, 3=Good, 4=Easy).
            review_ts: The timestamp of the current review.

        Returns:
            A SchedulerOutput with the new state and the log entry to append.

        Raises:
            ValueError: If the new_rating is invalid.
        """
        pass


class FSRSSchedulerConfig(BaseModel):
    """Configuration for the FSRS Scheduler."""

    # None keeps py-fsrs' own default weights.
    parameters: Optional[Tuple[float, ...]] = None
    desired_retention: float = DEFAULT_DESIRED_RETENTION
    learning_steps: Tuple[datetime.timedelta, ...] = Field(
        default_factory=lambda: (datetime.timedelta(minutes=1), datetime.timedelta(minutes=10))
    )
    relearning_steps: Tuple[datetime.timedelta, ...] = Field(
        default_factory=lambda: (datetime.timedelta(minutes=10),)
    )
    max_interval: int = DEFAULT_MAXIMUM_INTERVAL
    enable_fuzzing: bool = True


class FSRSScheduler(BaseScheduler):
    """
    FSRS (Free Spaced Repetition Scheduler) implementation for flashdeck.

    The opaque fields it stores in CardState are ``state``, ``step``,
    ``stability`` and ``difficulty``; log entries additionally carry the
    rating and the review type.
    """

    REVIEW_TYPE_MAP = {
        "learning": "learn",
        "review": "review",
        "relearning": "relearn",
    }

    RATING_MAP = {
        1: FSRSRating.Again,
        2: FSRSRating.Hard,
        3: FSRSRating.Good,
        4: FSRSRating.Easy,
    }

    def __init__(self, config: Optional[FSRSSchedulerConfig] = None):
        if config is None:
            config = FSRSSchedulerConfig()
        self.config = config

        kwargs: Dict[str, Any] = dict(
            desired_retention=self.config.desired_retention,
            learning_steps=self.config.learning_steps,
            relearning_steps=self.config.relearning_steps,
            maximum_interval=self.config.max_interval,
            enable_fuzzing=self.config.enable_fuzzing,
        )
        if self.config.parameters is not None:
            kwargs["parameters"] = tuple(self.config.parameters)
        self.fsrs_scheduler = PyFSRSScheduler(**kwargs)

    def _ensure_utc(self, ts: datetime.datetime) -> datetime.datetime:
        """Ensures the given datetime is UTC. Assumes UTC if naive."""
        if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
            return ts.replace(tzinfo=datetime.timezone.utc)
        if ts.tzinfo != datetime.timezone.utc:
            return ts.astimezone(datetime.timezone.utc)
        return ts

    def _map_rating_to_fsrs(self, rating: int) -> FSRSRating:
        """Maps a 1-4 rating to FSRSRating and validates."""
        if rating not in self.RATING_MAP:
            raise ValueError(f"Invalid rating: {rating}. Must be 1-4 (1=Again, 2=Hard, 3=Good, 4=Easy).")

        return self.RATING_MAP[rating]

    def _to_fsrs_card(self, state: CardState) -> FSRSCard:
        """Rebuild a py-fsrs card from the pass-through fields of a CardState."""
        extra = state.model_extra or {}
        if extra.get("stability") is None or extra.get("difficulty") is None:
            # No memory state to continue from: schedule as a fresh card.
            fsrs_state = FSRSState.Learning
        else:
            fsrs_state = FSRSState(int(extra.get("state", FSRSState.Review)))
        step = extra.get("step")
        if step is None and fsrs_state != FSRSState.Review:
            step = 0
        return FSRSCard(
            state=fsrs_state,
            step=step,
            stability=extra.get("stability"),
            difficulty=extra.get("difficulty"),
            due=self._ensure_utc(state.due) if state.due else None,
            last_review=(
                self._ensure_utc(state.last_review) if state.last_review else None
            ),
        )

    def compute_next_state(
        self,
        state: Optional[CardState],
        new_rating: int,
        review_ts: datetime.datetime,
    ) -> SchedulerOutput:
        fsrs_rating = self._map_rating_to_fsrs(new_rating)
        utc_review_ts = self._ensure_utc(review_ts)

        if state is None:
            fsrs_card = FSRSCard()
            review_type = "learn"
        else:
            fsrs_card = self._to_fsrs_card(state)
            review_type = self.REVIEW_TYPE_MAP.get(
                fsrs_card.state.name.lower(), "review"
            )

        if fsrs_card.last_review is not None:
            elapsed_days = max(
                (utc_review_ts.date() - fsrs_card.last_review.date()).days, 0
            )
        else:
            elapsed_days = 0

        updated, _ = self.fsrs_scheduler.review_card(
            fsrs_card, fsrs_rating, utc_review_ts
        )
        scheduled_days = (updated.due.date() - utc_review_ts.date()).days

        logger.debug(
            "FSRS: rating %s -> state %s, due %s",
            new_rating,
            updated.state.name,
            updated.due,
        )

        new_state = CardState(
            due=updated.due,
            last_review=updated.last_review or utc_review_ts,
            state=int(updated.state),
            step=updated.step,
            stability=updated.stability,
            difficulty=updated.difficulty,
        )
        log = ReviewLogEntry(
            review=utc_review_ts,
            due=updated.due,
            rating=new_rating,
            review_type=review_type,
            state=int(updated.state),
            stability=updated.stability,
            difficulty=updated.difficulty,
            elapsed_days=elapsed_days,
            scheduled_days=scheduled_days,
        )
        return SchedulerOutput(state=new_state, log=log)
