"""Persist and load tag-to-action mappings (JSON).

The MappingStore exclusively owns the in-memory table and the backing
file. The file is a flat, human-readable JSON object and is rewritten in
full on every update through a temp-file-then-rename, so a crash never
leaves a half-written mapping file behind.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .events import normalize_action_name, normalize_tag_id
from .exceptions import PersistenceError


logger = logging.getLogger(__name__)


DEFAULT_MAPPINGS_FILE = "tag-key-mappings.json"


class MappingStore:
    """Durable TagIdentifier -> ActionName table.

    Keys are normalized with normalize_tag_id() on load, get and set, so
    files written with lowercase UIDs still match.

    Example:
        >>> store = MappingStore("tag-key-mappings.json")
        >>> store.load()
        0
        >>> store.set("04A224B2", "right")
        >>> store.get("04a224b2")
        'right'
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_MAPPINGS_FILE) -> None:
        self._path = Path(path)
        self._mappings: Dict[str, str] = {}
        self._dirty = False

    @property
    def path(self) -> Path:
        """Location of the backing file."""
        return self._path

    @property
    def is_dirty(self) -> bool:
        """True when the in-memory table holds changes the file does not."""
        return self._dirty

    def load(self) -> int:
        """Read the backing file into memory.

        A missing file is created empty. On malformed content the
        in-memory table stays empty and PersistenceError is raised; the
        caller decides whether to continue in memory only.

        Returns:
            Number of loaded assignments.

        Raises:
            PersistenceError: If the file cannot be read, parsed or created.
        """
        self._mappings = {}
        self._dirty = False

        if not self._path.exists():
            self._write()
            logger.info("Created new mappings file: %s", self._path)
            return 0

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PersistenceError(
                "Mappings file is not valid JSON", path=str(self._path), cause=e
            ) from e
        except OSError as e:
            raise PersistenceError(
                "Could not read mappings file", path=str(self._path), cause=e
            ) from e

        if not isinstance(data, dict):
            raise PersistenceError(
                f"Mappings file must contain a JSON object, got {type(data).__name__}",
                path=str(self._path),
            )

        loaded: Dict[str, str] = {}
        for raw_id, raw_action in data.items():
            if not isinstance(raw_action, str):
                raise PersistenceError(
                    f"Action for tag '{raw_id}' must be a string, "
                    f"got {type(raw_action).__name__}",
                    path=str(self._path),
                )
            tag_id = normalize_tag_id(raw_id)
            action = normalize_action_name(raw_action)
            if not tag_id or not action:
                raise PersistenceError(
                    f"Empty tag identifier or action in entry '{raw_id}'",
                    path=str(self._path),
                )
            if tag_id in loaded:
                logger.warning(
                    "Duplicate entry for tag %s in %s: '%s' replaces '%s'",
                    tag_id,
                    self._path,
                    action,
                    loaded[tag_id],
                )
            loaded[tag_id] = action

        self._mappings = loaded
        logger.info("Loaded %d tag assignment(s) from %s", len(loaded), self._path)
        return len(loaded)

    def get(self, tag_id: str) -> Optional[str]:
        """Return the action assigned to a tag, or None."""
        return self._mappings.get(normalize_tag_id(tag_id))

    def set(self, tag_id: str, action: str) -> None:
        """Assign an action to a tag and persist the full table.

        The in-memory update is kept even if the write fails.

        Args:
            tag_id: Tag identifier.
            action: Action name (already validated by the caller).

        Raises:
            PersistenceError: If the file cannot be written.
        """
        key = normalize_tag_id(tag_id)
        self._mappings[key] = normalize_action_name(action)
        self._dirty = True
        self._write()
        logger.debug("Saved %d assignment(s) to %s", len(self._mappings), self._path)

    def items(self) -> List[Tuple[str, str]]:
        """Sorted snapshot of (tag_id, action) pairs."""
        return sorted(self._mappings.items())

    def _write(self) -> None:
        """Atomically rewrite the backing file from the in-memory table."""
        payload = json.dumps(self._mappings, indent=2, sort_keys=True) + "\n"
        tmp_name = None
        try:
            directory = self._path.parent
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=str(directory)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(
                "Error saving mappings file", path=str(self._path), cause=e
            ) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temp file %s", tmp_name)

        self._dirty = False

    def __len__(self) -> int:
        return len(self._mappings)

    def __contains__(self, tag_id: object) -> bool:
        return isinstance(tag_id, str) and normalize_tag_id(tag_id) in self._mappings

    def __repr__(self) -> str:
        return f"MappingStore(path={str(self._path)!r}, entries={len(self)})"
