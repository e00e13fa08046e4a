"""
Fetching and parsing of deck documents.

A location is either an ``http(s)://`` URL or a filesystem path. Documents
are JSON, or YAML when the location ends in ``.yaml``/``.yml``.
"""

import json
import logging
import os
import posixpath
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.parse import urlsplit, urlunsplit

import requests
import yaml
from pydantic import ValidationError

from .constants import DEFAULT_FETCH_TIMEOUT
from .deck_models import Deck
from .exceptions import DeckFetchError, DeckNotFoundError, DeckValidationError

logger = logging.getLogger(__name__)

_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_YAML_SUFFIXES = (".yaml", ".yml")

Location = Union[str, Path]


def is_url(location: Location) -> bool:
    return bool(_URL_PATTERN.match(str(location)))


def is_absolute(location: Location) -> bool:
    return is_url(location) or Path(location).is_absolute()


def normalize_location(location: Location) -> str:
    """
    Collapse ``.`` and ``..`` segments so equal locations compare equal.

    For URLs only the path part is normalized.
    """
    location = str(location)
    if is_url(location):
        parts = urlsplit(location)
        path = posixpath.normpath(parts.path) if parts.path else ""
        if path == ".":
            path = ""
        return urlunsplit(parts._replace(path=path))
    return os.path.normpath(location)


def join_location(base: Location, reference: str) -> str:
    """
    Resolve an extension reference against the directory it was declared in.

    Absolute references are used as they are. A leading ``./`` is stripped
    from relative references before joining. The result is normalized.
    """
    if is_absolute(reference):
        return normalize_location(reference)
    if reference.startswith("./"):
        reference = reference[2:]
    base = str(base)
    if not base:
        return normalize_location(reference)
    if is_url(base):
        return normalize_location(base.rstrip("/") + "/" + reference)
    return normalize_location(Path(base) / reference)


def parent_location(location: Location) -> str:
    """The directory part of a location, used as base for its extensions."""
    location = str(location)
    if is_url(location):
        return location[: location.rfind("/")]
    return str(Path(location).parent)


def parse_document(text: str, location: Location = "") -> Dict[str, Any]:
    """
    Parse the raw text of a deck document into a mapping.

    Raises:
        DeckValidationError: If the text is not valid JSON/YAML or its top
            level is not a mapping.
    """
    name = str(location)
    path_part = name.split("?", 1)[0].lower()
    try:
        if path_part.endswith(_YAML_SUFFIXES):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise DeckValidationError(
            f"Invalid document syntax: {e}", location=name or None,
            original_exception=e,
        ) from e

    if not isinstance(data, dict):
        raise DeckValidationError(
            "Top level of a deck document must be an object.",
            location=name or None,
        )
    return data


def validate_deck(data: Dict[str, Any], location: Location = "") -> Deck:
    """
    Validate a parsed document against the deck invariants.

    Raises:
        DeckValidationError: With the first offending field path.
    """
    try:
        return Deck.model_validate(data)
    except ValidationError as e:
        error_details = e.errors()[0]
        field = ".".join(map(str, error_details["loc"])) or "<deck>"
        msg = error_details["msg"]
        raise DeckValidationError(
            f"Validation error in field '{field}': {msg}",
            location=str(location) or None,
            original_exception=e,
        ) from e


class DeckFetcher:
    """Reads deck documents from the filesystem or over HTTP."""

    def __init__(
        self,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_text(self, location: Location) -> str:
        if is_url(location):
            return self._fetch_url(str(location))
        return self._read_file(Path(location))

    def fetch(self, location: Location) -> Deck:
        """
        Fetch, parse and validate the deck at ``location``.

        Raises:
            DeckFetchError: If the document cannot be read.
            DeckValidationError: If it is not a valid deck.
        """
        text = self.fetch_text(location)
        return validate_deck(parse_document(text, location), location)

    def _fetch_url(self, url: str) -> str:
        logger.debug("Fetching deck from %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise DeckFetchError(
                f"Could not fetch deck: {e}", location=url,
                original_exception=e,
            ) from e
        return response.text

    def _read_file(self, path: Path) -> str:
        logger.debug("Reading deck from %s", path)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise DeckNotFoundError(
                "Deck file not found.", location=str(path)
            ) from None
        except (OSError, UnicodeDecodeError) as e:
            raise DeckFetchError(
                f"Could not read file: {e}", location=str(path),
                original_exception=e,
            ) from e

