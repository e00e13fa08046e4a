"""
Static constants for deck resolution, activity storage and scheduling.

No runtime configuration here - see flashdeck.config for settings.
"""
from typing import Tuple

# Activity file lives next to the deck: "<deck stem>.review.json".
ACTIVITY_FILE_SUFFIX: str = ".review.json"

# Uploaded decks are stored under this directory of the data dir.
UPLOAD_SUBDIRECTORY: str = "flashcards"

# Side roles used by the practice projection.
TERM_SIDE: str = "term"
DEFINITION_SIDE: str = "definition"

# Timestamp fields hydrated from text on load.
CARD_STATE_TIMESTAMP_FIELDS: Tuple[str, ...] = ("due", "last_review")
REVIEW_LOG_TIMESTAMP_FIELDS: Tuple[str, ...] = ("review", "due")

PRACTICE_MODES: Tuple[str, ...] = ("mixed", "review", "new")
PRACTICE_ORDERS: Tuple[str, ...] = ("standard", "random")

DEFAULT_FETCH_TIMEOUT: float = 10.0

# Default desired retention rate if not specified elsewhere.
DEFAULT_DESIRED_RETENTION: float = 0.9

# Maximum interval (days) the scheduler may assign.
DEFAULT_MAXIMUM_INTERVAL: int = 36500
