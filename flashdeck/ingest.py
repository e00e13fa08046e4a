"""
Registration of uploaded deck files.

The raw bytes are validated against the minimal deck invariants and then
stored verbatim under ``<data_dir>/flashcards/``.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .constants import UPLOAD_SUBDIRECTORY
from .deck_models import Deck
from .exceptions import DeckValidationError
from .loader import parse_document, validate_deck

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.\-_]")


@dataclass
class RegisteredDeck:
    deck_id: str
    path: Path
    deck: Deck


def sanitize_filename(filename: str) -> str:
    """
    Make an uploaded file name safe to store.

    Every character outside ``[A-Za-z0-9.-_]`` becomes ``_`` and ``.json`` is
    appended when missing. Directory parts are dropped.
    """
    name = Path(filename.replace("\\", "/")).name
    safe = _UNSAFE_FILENAME_CHARS.sub("_", name).lstrip(".")
    if not safe:
        safe = "deck"
    if not safe.endswith(".json"):
        safe = f"{safe}.json"
    return safe


def register_deck(raw: bytes, filename: str, data_dir: Path) -> RegisteredDeck:
    """
    Validate and store an uploaded deck.

    Parameters:
        raw (bytes): The uploaded file content.
        filename (str): The client-side file name.
        data_dir (Path): Root the returned deck id is relative to.

    Returns:
        RegisteredDeck: Deck id (``flashcards/<name>``), stored path and the
            parsed deck. An existing file with the same name is overwritten.

    Raises:
        DeckValidationError: If the content is not UTF-8 JSON describing a
            valid deck.
        OSError: If the file cannot be stored.
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DeckValidationError(
            "Uploaded deck is not UTF-8 text.", location=filename,
            original_exception=e,
        ) from e

    stored_name = sanitize_filename(filename)
    deck = validate_deck(parse_document(text, stored_name), filename)

    save_dir = Path(data_dir) / UPLOAD_SUBDIRECTORY
    save_dir.mkdir(parents=True, exist_ok=True)
    save_path = save_dir / stored_name
    save_path.write_bytes(raw)

    deck_id = f"{UPLOAD_SUBDIRECTORY}/{stored_name}"
    logger.info(
        "Registered deck '%s' (%s cards) as %s", deck.id, len(deck.cards), deck_id
    )
    return RegisteredDeck(deck_id=deck_id, path=save_path, deck=deck)
