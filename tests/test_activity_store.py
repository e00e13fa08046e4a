import json
import os
import pytest
from pathlib import Path
from unittest.mock import patch

from flashdeck.exceptions import (
    ActivityConflictError,
    ActivityFileError,
    ActivityWriteError,
    DeckNotFoundError,
    StoreNotBoundError,
)
from flashdeck.models import CardState, ReviewLogEntry
from flashdeck.store import ActivityStore, activity_path_for, deck_path_for

from conftest import T0, T1, T2, deck_document, flashcard


class TestPaths:
    def test_activity_path_replaces_extension(self):
        assert activity_path_for("decks/spanish.json") == Path("decks/spanish.review.json")
        assert activity_path_for(Path("/d/x.yaml")) == Path("/d/x.review.json")

    def test_deck_path_relative_and_absolute(self, tmp_path: Path):
        assert deck_path_for("flashcards/a.json", tmp_path) == tmp_path / "flashcards/a.json"
        assert deck_path_for("/abs/a.json", tmp_path) == Path("/abs/a.json")


class TestUnboundStore:
    def test_lookups_return_nothing(self, store: ActivityStore):
        assert store.get_card_state("c1") is None
        assert store.get_review_log("c1") == []
        assert not store.is_bound

    def test_writes_require_binding(self, store: ActivityStore, sample_state):
        with pytest.raises(StoreNotBoundError):
            store.save_card_state("c1", sample_state)
        with pytest.raises(StoreNotBoundError):
            store.load()


class TestLoad:
    def test_missing_activity_file_is_empty(self, store: ActivityStore, tmp_path: Path):
        store.bind("deck.json")
        store.load()
        assert store.is_loaded
        assert store.get_card_state("c1") is None
        assert not (tmp_path / "deck.review.json").exists()

    def test_lookup_before_load_knows_nothing(self, store: ActivityStore, tmp_path: Path, sample_state):
        writer = ActivityStore(root=tmp_path)
        writer.bind("deck.json")
        writer.save_card_state("c1", sample_state)

        store.bind("deck.json")
        assert store.get_card_state("c1") is None
        store.load()
        assert store.get_card_state("c1") == sample_state

    def test_corrupt_file_raises(self, store: ActivityStore, tmp_path: Path):
        (tmp_path / "deck.review.json").write_text("{oops", encoding="utf-8")
        store.bind("deck.json")
        with pytest.raises(ActivityFileError, match="not valid JSON"):
            store.load()

    def test_wrong_shape_raises(self, store: ActivityStore, tmp_path: Path):
        (tmp_path / "deck.review.json").write_text(
            json.dumps({"states": {"c1": {"due": "not a date"}}}), encoding="utf-8"
        )
        store.bind("deck.json")
        with pytest.raises(ActivityFileError, match="states.c1"):
            store.load()

    def test_missing_sections_count_as_empty(self, store: ActivityStore, tmp_path: Path):
        (tmp_path / "deck.review.json").write_text("{}", encoding="utf-8")
        store.bind("deck.json")
        store.load()
        assert store.snapshot.states == {}


class TestSaveAndRoundTrip:
    def test_saved_state_visible_to_fresh_store(self, store: ActivityStore, tmp_path: Path, sample_state):
        store.bind("flashcards/deck.json")
        store.save_card_state("c1", sample_state)

        fresh = ActivityStore(root=tmp_path)
        fresh.bind("flashcards/deck.json")
        fresh.load()
        loaded = fresh.get_card_state("c1")

        assert loaded.due == T1
        assert loaded.last_review == T0
        assert loaded.model_extra == {"stability": 2.5, "difficulty": 5.0, "state": 2}

    def test_file_is_json_with_iso_timestamps(self, store: ActivityStore, tmp_path: Path, sample_state):
        store.bind("deck.json")
        store.save_card_state("c1", sample_state)

        document = json.loads((tmp_path / "deck.review.json").read_text(encoding="utf-8"))
        assert set(document) == {"states", "logs"}
        assert document["states"]["c1"]["due"].startswith("2024-01-02T10:00:00")

    def test_persisting_twice_is_byte_identical(self, store: ActivityStore, tmp_path: Path, sample_state, sample_log_entry):
        store.bind("deck.json")
        store.record_review("c1", sample_state, sample_log_entry)
        first = (tmp_path / "deck.review.json").read_bytes()

        reloaded = ActivityStore(root=tmp_path)
        reloaded.bind("deck.json")
        reloaded.load()
        reloaded.persist()

        assert (tmp_path / "deck.review.json").read_bytes() == first

    def test_logs_append_in_order(self, store: ActivityStore, tmp_path: Path):
        store.bind("deck.json")
        first = ReviewLogEntry(review=T0, due=T1, rating=3)
        second = ReviewLogEntry(review=T1, due=T2, rating=4)
        store.append_review_log("c1", first)
        store.append_review_log("c1", second)

        fresh = ActivityStore(root=tmp_path)
        fresh.bind("deck.json")
        fresh.load()

        assert [e.review for e in fresh.get_review_log("c1")] == [T0, T1]
        assert fresh.get_review_log("c2") == []
        assert fresh.get_card_state("c1") is None

    def test_review_log_is_a_copy(self, store: ActivityStore, sample_log_entry):
        store.bind("deck.json")
        store.append_review_log("c1", sample_log_entry)
        store.get_review_log("c1").append(sample_log_entry)
        assert len(store.get_review_log("c1")) == 1

    def test_record_review_saves_once(self, store: ActivityStore, sample_state, sample_log_entry):
        store.bind("deck.json")
        with patch.object(store, "persist") as persist:
            store.record_review("c1", sample_state, sample_log_entry)
        persist.assert_called_once_with()
        assert store.get_card_state("c1") is sample_state

    def test_no_temp_files_left_behind(self, store: ActivityStore, tmp_path: Path, sample_state):
        store.bind("deck.json")
        store.save_card_state("c1", sample_state)
        store.save_card_state("c2", sample_state)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["deck.review.json"]


class TestWriteFailures:
    def test_write_failure_raises(self, store: ActivityStore, sample_state):
        store.bind("deck.json")
        with patch("flashdeck.store.file_utils.os.replace", side_effect=PermissionError("read-only")):
            with pytest.raises(ActivityWriteError, match="read-only"):
                store.save_card_state("c1", sample_state)

    def test_failed_write_keeps_previous_file(self, store: ActivityStore, tmp_path: Path, sample_state):
        store.bind("deck.json")
        store.save_card_state("c1", sample_state)
        before = (tmp_path / "deck.review.json").read_bytes()

        with patch("flashdeck.store.file_utils.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(ActivityWriteError):
                store.save_card_state("c2", sample_state)

        assert (tmp_path / "deck.review.json").read_bytes() == before
        assert [p.name for p in tmp_path.iterdir()] == ["deck.review.json"]


class TestRebinding:
    def test_rebinding_same_deck_keeps_cache(self, store: ActivityStore, sample_state):
        store.bind("deck.json")
        store.snapshot.states["c1"] = sample_state
        store.bind("deck.json")
        assert store.get_card_state("c1") is sample_state

    def test_rebinding_other_deck_clears_cache(self, store: ActivityStore, sample_state):
        store.bind("a.json")
        store.save_card_state("c1", sample_state)
        store.bind("b.json")
        assert store.get_card_state("c1") is None
        assert not store.is_loaded

    def test_rebinding_with_merge_keeps_cache(self, store: ActivityStore, tmp_path: Path, sample_state):
        store.bind("a.json")
        store.save_card_state("c1", sample_state)
        store.bind("b.json", merge=True)
        assert store.get_card_state("c1") is sample_state
        assert store.activity_path == tmp_path / "b.review.json"


class TestConflictDetection:
    def test_concurrent_change_detected(self, tmp_path: Path, sample_state):
        mine = ActivityStore(root=tmp_path, detect_conflicts=True)
        theirs = ActivityStore(root=tmp_path)
        mine.bind("deck.json")
        mine.load()
        theirs.bind("deck.json")
        theirs.save_card_state("c9", sample_state)

        with pytest.raises(ActivityConflictError):
            mine.save_card_state("c1", sample_state)

    def test_own_writes_are_not_conflicts(self, tmp_path: Path, sample_state):
        store = ActivityStore(root=tmp_path, detect_conflicts=True)
        store.bind("deck.json")
        store.load()
        store.save_card_state("c1", sample_state)
        store.save_card_state("c2", sample_state)
        assert store.get_card_state("c2") is sample_state

    def test_last_writer_wins_by_default(self, tmp_path: Path, sample_state):
        a = ActivityStore(root=tmp_path)
        b = ActivityStore(root=tmp_path)
        a.bind("deck.json")
        b.bind("deck.json")
        a.save_card_state("from_a", sample_state)
        b.save_card_state("from_b", sample_state)

        fresh = ActivityStore(root=tmp_path)
        fresh.bind("deck.json")
        fresh.load()
        assert fresh.get_card_state("from_a") is None
        assert fresh.get_card_state("from_b") is not None


class TestGetDeck:
    def test_binds_loads_and_parses(self, store: ActivityStore, write_deck, sample_state):
        write_deck("flashcards/deck.json", deck_document("d", flashcard("c1")))
        seeded = ActivityStore(root=store.root)
        seeded.bind("flashcards/deck.json")
        seeded.save_card_state("c1", sample_state)

        deck = store.get_deck("flashcards/deck.json")

        assert deck.id == "d"
        assert store.is_loaded
        assert store.get_card_state("c1") == sample_state

    def test_missing_deck(self, store: ActivityStore):
        with pytest.raises(DeckNotFoundError):
            store.get_deck("nope.json")

    def test_deck_file_is_not_modified(self, store: ActivityStore, write_deck, sample_state):
        path = write_deck("deck.json", deck_document("d", flashcard("c1")))
        before = path.read_bytes()
        store.get_deck("deck.json")
        store.save_card_state("c1", sample_state)
        assert path.read_bytes() == before
        assert os.path.exists(activity_path_for(path))
