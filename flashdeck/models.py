"""
Practice-side models: the normalized card a session presents, and the
per-card scheduling state and review history the activity store persists.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, List, Literal, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import CARD_STATE_TIMESTAMP_FIELDS, REVIEW_LOG_TIMESTAMP_FIELDS
from .deck_models import (
    AudioContent,
    HtmlContent,
    MarkdownContent,
    TextContent,
)

Format = Literal["plain", "markdown", "html"]

PracticeContent = Union[TextContent, MarkdownContent, HtmlContent, AudioContent]


class Rating(IntEnum):
    """
    Represents the user's rating of their recall performance.
    """

    Again = 1
    Hard = 2
    Good = 3
    Easy = 4


def parse_timestamp(value: Any) -> Any:
    """
    Turn an ISO 8601 text timestamp into an aware datetime.

    A trailing ``Z`` is accepted and naive values are taken as UTC.
    Non-string values are returned unchanged so downstream validation can
    deal with them.
    """
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CardState(BaseModel):
    """
    Scheduling snapshot for one card of one deck.

    Only ``due`` and ``last_review`` are interpreted here; everything else
    (stability, difficulty, step, ...) belongs to the scheduler and is
    carried through untouched.
    """

    model_config = ConfigDict(extra="allow")

    due: Optional[datetime] = Field(
        default=None, description="When the card is next due."
    )
    last_review: Optional[datetime] = Field(
        default=None, description="When the card was last graded."
    )

    @field_validator(*CARD_STATE_TIMESTAMP_FIELDS, mode="before")
    @classmethod
    def hydrate_timestamp(cls, v: Any) -> Any:
        return parse_timestamp(v)


class ReviewLogEntry(BaseModel):
    """Immutable record of one grading event."""

    model_config = ConfigDict(extra="allow", frozen=True)

    review: Optional[datetime] = Field(
        default=None, description="When the grading happened."
    )
    due: Optional[datetime] = Field(
        default=None, description="Resulting due timestamp."
    )

    @field_validator(*REVIEW_LOG_TIMESTAMP_FIELDS, mode="before")
    @classmethod
    def hydrate_timestamp(cls, v: Any) -> Any:
        return parse_timestamp(v)


class ActivitySnapshot(BaseModel):
    """Everything persisted for one deck: states and logs keyed by card id."""

    states: Dict[str, CardState] = Field(default_factory=dict)
    logs: Dict[str, List[ReviewLogEntry]] = Field(default_factory=dict)

    def clear(self) -> None:
        self.states.clear()
        self.logs.clear()

    def update_from(self, other: "ActivitySnapshot") -> None:
        self.states.update(other.states)
        self.logs.update(other.logs)


class QuizOption(BaseModel):
    id: str
    content: str
    format: Format = "plain"
    description: Optional[str] = None
    hint: Optional[str] = None


class NormalizedCard(BaseModel):
    """Practice-ready projection of a deck card."""

    id: str
    question_content: List[PracticeContent] = Field(default_factory=list)
    answer_content: Optional[List[PracticeContent]] = None
    options: Optional[List[QuizOption]] = None
    correct_ids: Set[str] = Field(default_factory=set)
    hint: Optional[str] = None
    explanation: Optional[str] = None
    explanation_format: Format = "plain"

    @property
    def is_multiple_choice(self) -> bool:
        return bool(self.options)

    def is_correct(self, option_id: str) -> bool:
        return option_id in self.correct_ids
