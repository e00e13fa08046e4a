"""
Helpers for the activity file: path derivation, marshalling between the
snapshot models and the on-disk document, and atomic writes.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import ValidationError

from ..constants import ACTIVITY_FILE_SUFFIX
from ..exceptions import ActivityFileError, ActivityWriteError
from ..models import ActivitySnapshot

Generation = Optional[Tuple[int, int]]


def deck_path_for(deck_id: Union[str, Path], root: Path) -> Path:
    """Absolute deck ids are used verbatim; others are joined onto ``root``."""
    path = Path(deck_id)
    if path.is_absolute():
        return path
    return Path(root) / path


def activity_path_for(deck_path: Union[str, Path]) -> Path:
    """
    Location of a deck's activity file.

    Same directory and base name as the deck, with the extension replaced by
    ``.review.json``. Depends on the deck path only, so every process opening
    the same deck agrees on it.
    """
    deck_path = Path(deck_path)
    return deck_path.with_name(deck_path.stem + ACTIVITY_FILE_SUFFIX)


def snapshot_to_document(snapshot: ActivitySnapshot) -> Dict[str, Any]:
    """
    Convert a snapshot into the JSON-ready activity document.

    Timestamps become ISO 8601 text. Fields that were never set stay absent.
    """
    return {
        "states": {
            card_id: state.model_dump(mode="json", exclude_unset=True)
            for card_id, state in snapshot.states.items()
        },
        "logs": {
            card_id: [
                entry.model_dump(mode="json", exclude_unset=True)
                for entry in entries
            ]
            for card_id, entries in snapshot.logs.items()
        },
    }


def serialize_snapshot(snapshot: ActivitySnapshot) -> str:
    """Deterministic text form: insertion order, 2-space indent."""
    return json.dumps(
        snapshot_to_document(snapshot), indent=2, ensure_ascii=False
    ) + "\n"


def document_to_snapshot(
    document: Any, source: Optional[Path] = None
) -> ActivitySnapshot:
    """
    Build a snapshot from a parsed activity document, hydrating timestamps.

    Missing ``states``/``logs`` sections count as empty.

    Raises:
        ActivityFileError: If the document does not have the expected shape.
    """
    where = f" in {source}" if source else ""
    if not isinstance(document, dict):
        raise ActivityFileError(
            f"Activity document{where} must be an object."
        )
    data = {
        "states": document.get("states") or {},
        "logs": document.get("logs") or {},
    }
    try:
        return ActivitySnapshot.model_validate(data)
    except ValidationError as e:
        error_details = e.errors()[0]
        field = ".".join(map(str, error_details["loc"]))
        raise ActivityFileError(
            f"Invalid activity data{where} at '{field}': "
            f"{error_details['msg']}",
            original_exception=e,
        ) from e


def read_snapshot(path: Path) -> Optional[ActivitySnapshot]:
    """
    Read the activity file at ``path``.

    Returns:
        Optional[ActivitySnapshot]: None when the file does not exist.

    Raises:
        ActivityFileError: If the file exists but is unreadable or invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        raise ActivityFileError(
            f"Could not read activity file {path}: {e}", original_exception=e
        ) from e

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ActivityFileError(
            f"Activity file {path} is not valid JSON: {e}",
            original_exception=e,
        ) from e
    return document_to_snapshot(document, source=path)


def file_generation(path: Path) -> Generation:
    """(mtime_ns, size) of ``path``, or None when it does not exist."""
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    return stat.st_mtime_ns, stat.st_size


def write_atomically(path: Path, text: str) -> None:
    """
    Replace ``path`` with ``text``, creating parent directories first.

    Data goes to a temporary file in the same directory which is then moved
    over the target, so readers never see a partial file.

    Raises:
        ActivityWriteError: If the directory or file cannot be written.
    """
    tmp_name: Optional[str] = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise ActivityWriteError(
            f"Failed to write activity file {path}: {e}", original_exception=e
        ) from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
