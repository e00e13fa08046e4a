"""Activity persistence for flashdeck.

Only ActivityStore and the path helpers are part of the public API.
"""

from .activity_store import ActivityStore
from .file_utils import activity_path_for, deck_path_for

__all__ = ["ActivityStore", "activity_path_for", "deck_path_for"]
