import pytest
from datetime import datetime, timezone, timedelta

from pydantic import ValidationError

from flashdeck.models import (
    ActivitySnapshot,
    CardState,
    NormalizedCard,
    QuizOption,
    Rating,
    ReviewLogEntry,
    parse_timestamp,
)


# --- Timestamp hydration ---

class TestParseTimestamp:
    def test_zulu_suffix(self):
        assert parse_timestamp("2024-01-01T10:00:00Z") == datetime(
            2024, 1, 1, 10, 0, tzinfo=timezone.utc
        )

    def test_offset_is_kept_as_same_instant(self):
        parsed = parse_timestamp("2024-01-01T12:00:00+02:00")
        assert parsed == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(hours=2)

    def test_naive_text_is_utc(self):
        parsed = parse_timestamp("2024-01-01T10:00:00")
        assert parsed.tzinfo == timezone.utc

    def test_non_strings_pass_through(self):
        now = datetime.now(timezone.utc)
        assert parse_timestamp(now) is now
        assert parse_timestamp(None) is None


# --- CardState Tests ---

class TestCardState:
    def test_hydrates_timestamps(self):
        state = CardState.model_validate(
            {"due": "2024-01-02T10:00:00Z", "last_review": "2024-01-01T10:00:00.000Z"}
        )
        assert state.due == datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)
        assert state.last_review == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_scheduler_fields_pass_through(self):
        state = CardState.model_validate(
            {"due": "2024-01-02T10:00:00Z", "stability": 3.1, "reps": 4, "custom": {"a": 1}}
        )
        assert state.model_extra == {"stability": 3.1, "reps": 4, "custom": {"a": 1}}
        dumped = state.model_dump(mode="json", exclude_unset=True)
        assert dumped["reps"] == 4
        assert dumped["custom"] == {"a": 1}
        assert "last_review" not in dumped

    def test_invalid_timestamp_rejected(self):
        with pytest.raises(ValidationError):
            CardState.model_validate({"due": "yesterday-ish"})

    def test_empty_state(self):
        state = CardState()
        assert state.due is None
        assert state.model_dump(exclude_unset=True) == {}


class TestReviewLogEntry:
    def test_entries_are_immutable(self, sample_log_entry: ReviewLogEntry):
        with pytest.raises(ValidationError):
            sample_log_entry.review = datetime.now(timezone.utc)

    def test_hydrates_timestamps(self):
        entry = ReviewLogEntry.model_validate(
            {"review": "2024-01-02T10:00:00Z", "due": "2024-01-05T10:00:00Z", "rating": 3}
        )
        assert entry.review.tzinfo is not None
        assert entry.model_extra["rating"] == 3


class TestActivitySnapshot:
    def test_update_from_replaces_per_card(self, sample_state, sample_log_entry):
        snapshot = ActivitySnapshot(
            states={"a": CardState(), "b": CardState()},
            logs={"a": [sample_log_entry]},
        )
        other = ActivitySnapshot(states={"a": sample_state}, logs={"a": []})

        snapshot.update_from(other)

        assert snapshot.states["a"] is sample_state
        assert "b" in snapshot.states
        assert snapshot.logs["a"] == []

    def test_clear(self, sample_state):
        snapshot = ActivitySnapshot(states={"a": sample_state})
        snapshot.clear()
        assert snapshot.states == {}
        assert snapshot.logs == {}


def test_rating_values():
    assert [int(r) for r in Rating] == [1, 2, 3, 4]
    assert Rating(3) is Rating.Good


def test_normalized_card_correctness():
    card = NormalizedCard(
        id="c1",
        options=[QuizOption(id="a", content="x"), QuizOption(id="b", content="y")],
        correct_ids={"b"},
    )
    assert card.is_multiple_choice
    assert card.is_correct("b")
    assert not card.is_correct("a")
    assert not NormalizedCard(id="c2").is_multiple_choice
