from typing import Optional


class FlashdeckError(Exception):
    """Base exception for flashdeck errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DeckError(FlashdeckError):
    """Base exception for deck loading and resolution errors."""

    pass


class DeckValidationError(DeckError):
    """Raised when a deck document is structurally invalid."""

    def __init__(
        self,
        message: str,
        location: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        if location:
            message = f"{location}: {message}"
        super().__init__(message, original_exception)
        self.location = location


class DeckFetchError(DeckError):
    """Raised when a deck document cannot be fetched or read."""

    def __init__(
        self,
        message: str,
        location: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ):
        if location:
            message = f"{location}: {message}"
        super().__init__(message, original_exception)
        self.location = location


class DeckNotFoundError(DeckFetchError):
    """Raised when a specified deck does not exist."""

    pass


class ActivityStoreError(FlashdeckError):
    """Base exception for activity store errors."""

    pass


class StoreNotBoundError(ActivityStoreError):
    """Raised when an operation needs a bound deck scope and there is none."""

    pass


class ActivityFileError(ActivityStoreError):
    """Raised when an existing activity file cannot be read or understood."""

    pass


class ActivityWriteError(ActivityStoreError):
    """Raised when the activity file cannot be created or written."""

    pass


class ActivityConflictError(ActivityStoreError):
    """Raised when the activity file changed since this store last saw it."""

    pass
