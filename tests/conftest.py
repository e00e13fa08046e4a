import json
import pytest
from pathlib import Path
from typing import Any, Callable, Dict
from datetime import datetime, timezone

from flashdeck.models import CardState, ReviewLogEntry
from flashdeck.store import ActivityStore


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(tmp_path: Path, monkeypatch):
    """
    Run every test inside its own temporary directory with no FLASHCARD_*
    settings leaking in from the environment.
    """
    monkeypatch.chdir(tmp_path)
    for var in ("FLASHCARD_DATA_DIR", "FLASHCARD_DETECT_CONFLICTS"):
        monkeypatch.delenv(var, raising=False)
    yield


# --- Deck document builders ---


def flashcard(card_id: str, question: str = "Q", answer: str = "A") -> Dict[str, Any]:
    """A plain term/definition card document."""
    return {
        "id": card_id,
        "sides": [
            {"type": "term", "content": [{"type": "text", "inline": question}]},
            {"type": "definition", "content": [{"type": "text", "inline": answer}]},
        ],
    }


def deck_document(deck_id: str, *cards: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "id": deck_id,
        "version": "1.0",
        "name": f"Deck {deck_id}",
        "cards": list(cards),
    }
    doc.update(extra)
    return doc


@pytest.fixture
def write_deck(tmp_path: Path) -> Callable[..., Path]:
    """
    Return a helper writing a deck document as JSON under ``tmp_path``.

    Usage: ``write_deck("decks/a.json", deck_document(...))``.
    """

    def _write(relative: str, document: Dict[str, Any]) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def multiple_choice_card() -> Dict[str, Any]:
    return {
        "id": "mc1",
        "hint": "card-level hint",
        "sides": [
            {
                "type": "term",
                "content": [
                    {"type": "markdown", "inline": "Which is **B**?"},
                    {
                        "type": "multiple-choice",
                        "options": [
                            {"id": "A", "content": "Alpha"},
                            {"id": "B", "content": {"type": "markdown", "inline": "*Beta*"}},
                            {"id": "C", "content": {"type": "html", "inline": "<b>Gamma</b>"}},
                        ],
                        "correct": "B",
                        "hint": "It is the second letter.",
                        "explanation": "B comes after A.",
                    },
                ],
            }
        ],
    }


# --- Activity fixtures ---

T0 = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)
T2 = datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path: Path) -> ActivityStore:
    """An activity store rooted at the test's temp dir."""
    return ActivityStore(root=tmp_path)


@pytest.fixture
def sample_state() -> CardState:
    return CardState(due=T1, last_review=T0, stability=2.5, difficulty=5.0, state=2)


@pytest.fixture
def sample_log_entry() -> ReviewLogEntry:
    return ReviewLogEntry(review=T1, due=T2, rating=3)
