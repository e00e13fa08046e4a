"""
Resolves decks that extend other decks into one flattened card sequence.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .deck_models import Card, Deck, ResolvedDeck
from .exceptions import DeckError
from .loader import (
    DeckFetcher,
    Location,
    join_location,
    normalize_location,
    parent_location,
)

logger = logging.getLogger(__name__)


class DeckResolver:
    """
    Flattens a deck and everything it extends.

    Broken extensions (unreachable, unreadable or invalid) are logged and
    skipped so the rest of the deck still resolves. Only an invalid root deck
    is an error.
    """

    def __init__(self, fetcher: Optional[DeckFetcher] = None):
        self.fetcher = fetcher or DeckFetcher()

    def resolve(
        self,
        root: Deck,
        base_location: Location,
        root_location: Optional[Location] = None,
    ) -> ResolvedDeck:
        """
        Merge the cards of ``root`` and all decks it extends.

        Parameters:
            root (Deck): The already-validated root deck.
            base_location (Location): Directory (path or URL prefix) the root
                was loaded from; relative extension references are joined
                onto it.
            root_location (Location, optional): Where the root itself was
                loaded from; an extension leading back to it is skipped as a
                cycle.

        Returns:
            ResolvedDeck: The root's own metadata with the merged cards.
                Extension cards come first in declaration order, then the
                root's cards. A card id seen again replaces the earlier
                content but keeps its first position.
        """
        skipped: List[str] = []
        ancestors: Tuple[str, ...] = ()
        if root_location is not None:
            ancestors = (normalize_location(root_location),)
        cards = self._resolve_cards(root, str(base_location), ancestors, skipped)
        logger.info(
            "Resolved deck '%s' with %s cards (%s extensions skipped).",
            root.id,
            len(cards),
            len(skipped),
        )
        data = root.model_dump(exclude={"cards"})
        data.pop("skipped_extensions", None)
        return ResolvedDeck.model_validate(
            {**data, "cards": cards, "skipped_extensions": skipped}
        )

    def resolve_location(self, location: Location) -> ResolvedDeck:
        """
        Fetch the root deck at ``location`` and resolve it.

        Raises:
            DeckFetchError: If the root cannot be read.
            DeckValidationError: If the root is not a valid deck.
        """
        root = self.fetcher.fetch(location)
        return self.resolve(root, parent_location(location), root_location=location)

    def _resolve_cards(
        self,
        deck: Deck,
        base_location: str,
        ancestors: Tuple[str, ...],
        skipped: List[str],
    ) -> List[Card]:
        inherited: List[Card] = []
        for reference in deck.extends or []:
            location = join_location(base_location, reference)
            if location in ancestors:
                logger.warning(
                    "Skipping extension %s of deck '%s': extension cycle.",
                    location,
                    deck.id,
                )
                skipped.append(location)
                continue
            try:
                parent = self.fetcher.fetch(location)
            except DeckError as e:
                logger.warning(
                    "Skipping extension %s of deck '%s': %s",
                    location,
                    deck.id,
                    e,
                )
                skipped.append(location)
                continue
            inherited.extend(
                self._resolve_cards(
                    parent,
                    parent_location(location),
                    ancestors + (location,),
                    skipped,
                )
            )

        return merge_cards(inherited, deck.cards)


def merge_cards(*card_groups: List[Card]) -> List[Card]:
    """Insert cards by id in order; later ids override content, not position."""
    merged: Dict[str, Card] = {}
    for group in card_groups:
        for card in group:
            merged[card.id] = card
    return list(merged.values())
