"""
This module defines the ActivityStore class, which persists per-card
scheduling state and review history for one deck in an activity file stored
next to the deck file.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from ..deck_models import Deck
from ..exceptions import (
    ActivityConflictError,
    StoreNotBoundError,
)
from ..loader import DeckFetcher
from ..models import ActivitySnapshot, CardState, ReviewLogEntry
from .file_utils import (
    Generation,
    activity_path_for,
    deck_path_for,
    file_generation,
    read_snapshot,
    serialize_snapshot,
    write_atomically,
)

logger = logging.getLogger(__name__)


class ActivityStore:
    """
    Deck-scoped store for CardState and ReviewLog data.

    A store is meant to live for one request or practice session: bind it to
    a deck, load once, then save after every grading event. Each save
    rewrites the whole snapshot and is durable before returning.

    Lookups never perform I/O; a store that was not loaded simply knows
    nothing.

    Two stores on the same deck do not see each other's changes and the last
    save wins. Set ``detect_conflicts`` to refuse overwriting an activity
    file that changed since this store last read or wrote it.
    """

    def __init__(
        self,
        root: Union[str, Path, None] = None,
        detect_conflicts: bool = False,
    ):
        """
        Parameters:
            root: Directory that relative deck ids are joined onto; the
                working directory when omitted.
            detect_conflicts: Raise ActivityConflictError instead of
                overwriting a concurrently modified activity file.
        """
        self.root = Path(root) if root is not None else Path.cwd()
        self.detect_conflicts = detect_conflicts
        self.deck_path: Optional[Path] = None
        self.activity_path: Optional[Path] = None
        self.snapshot = ActivitySnapshot()
        self._generation: Generation = None
        self._loaded = False

    @property
    def is_bound(self) -> bool:
        return self.deck_path is not None

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def bind(self, deck_id: Union[str, Path], merge: bool = False) -> Path:
        """
        Scope the store to a deck.

        Rebinding to the same deck keeps everything. Rebinding to another
        deck starts from an empty snapshot unless ``merge`` is True, in which
        case the cached states and logs are carried over.

        Returns:
            Path: The resolved deck path.
        """
        deck_path = deck_path_for(deck_id, self.root)
        if deck_path == self.deck_path:
            return deck_path

        if self.deck_path is not None:
            if merge:
                logger.info(
                    "Rebinding activity store from %s to %s, keeping %s cached states.",
                    self.deck_path,
                    deck_path,
                    len(self.snapshot.states),
                )
            else:
                self.snapshot = ActivitySnapshot()
                self._loaded = False

        self.deck_path = deck_path
        self.activity_path = activity_path_for(deck_path)
        self._generation = None
        logger.debug(
            "Bound activity store to %s (activity file %s)",
            self.deck_path,
            self.activity_path,
        )
        return deck_path

    def load(self) -> None:
        """
        Read the bound deck's activity file into memory.

        A missing file is not an error: the snapshot stays as it is. States
        and logs from the file replace cached entries of the same card.

        Raises:
            StoreNotBoundError: If no deck is bound.
            ActivityFileError: If the file exists but cannot be understood.
        """
        activity_path = self._require_bound()
        generation = file_generation(activity_path)
        loaded = read_snapshot(activity_path)
        if loaded is None:
            logger.debug("No activity file at %s yet.", activity_path)
        else:
            self.snapshot.update_from(loaded)
            logger.info(
                "Loaded activity for %s cards from %s",
                len(loaded.states),
                activity_path,
            )
        self._generation = generation
        self._loaded = True

    def get_deck(self, deck_id: Union[str, Path]) -> Deck:
        """
        Bind to a deck, load its activity and return the parsed deck.

        The deck file itself is only read.

        Raises:
            DeckNotFoundError: If the deck file does not exist.
            DeckValidationError: If the deck file is not a valid deck.
            ActivityFileError: If the activity file cannot be understood.
        """
        deck_path = self.bind(deck_id)
        self.load()
        return DeckFetcher().fetch(deck_path)

    def get_card_state(self, card_id: str) -> Optional[CardState]:
        """In-memory lookup; None for unknown cards or an unloaded store."""
        return self.snapshot.states.get(card_id)

    def get_review_log(self, card_id: str) -> List[ReviewLogEntry]:
        """The card's review log in append order (a copy)."""
        return list(self.snapshot.logs.get(card_id, []))

    def save_card_state(self, card_id: str, state: CardState) -> None:
        """Upsert a card's state and persist the whole snapshot."""
        self._require_bound()
        self.snapshot.states[card_id] = state
        self.persist()

    def append_review_log(self, card_id: str, entry: ReviewLogEntry) -> None:
        """Append a grading event to a card's log and persist."""
        self._require_bound()
        self.snapshot.logs.setdefault(card_id, []).append(entry)
        self.persist()

    def record_review(
        self, card_id: str, state: CardState, entry: ReviewLogEntry
    ) -> None:
        """Upsert state and append the log entry with a single save."""
        self._require_bound()
        self.snapshot.states[card_id] = state
        self.snapshot.logs.setdefault(card_id, []).append(entry)
        self.persist()

    def persist(self) -> None:
        """
        Write the entire in-memory snapshot to the activity file.

        Raises:
            StoreNotBoundError: If no deck is bound.
            ActivityConflictError: If conflict detection is on and the file
                changed since this store last read or wrote it.
            ActivityWriteError: If the file cannot be written.
        """
        activity_path = self._require_bound()
        if self.detect_conflicts:
            current = file_generation(activity_path)
            if current != self._generation:
                raise ActivityConflictError(
                    f"Activity file {activity_path} was modified by another "
                    "session; reload before saving."
                )

        write_atomically(activity_path, serialize_snapshot(self.snapshot))
        self._generation = file_generation(activity_path)
        logger.debug(
            "Persisted activity for %s cards to %s",
            len(self.snapshot.states),
            activity_path,
        )

    def _require_bound(self) -> Path:
        if self.activity_path is None:
            raise StoreNotBoundError(
                "Activity store is not bound to a deck; call bind() first."
            )
        return self.activity_path
