"""Action registry: the canonical set of assignable action names.

Every key-injection backend ships a static table mapping each canonical
action name to its own payload. The registry is built from one of those
tables and refuses tables that do not cover exactly the canonical set, so
a mapping file written on one platform resolves on every other.
"""

import logging
import string
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from .events import KeyDescriptor, normalize_action_name
from .exceptions import ConfigurationError


logger = logging.getLogger(__name__)


CANONICAL_ACTIONS: Tuple[str, ...] = (
    "left", "right", "down", "up",
    "enter", "return", "space", "escape", "esc", "tab",
    "delete", "backspace", "home", "end", "pageup", "pagedown",
    # Arrow keys (alternative names)
    "arrowleft", "arrowright", "arrowdown", "arrowup",
    *string.digits,
    *string.ascii_lowercase,
)

# Alternative spellings: valid everywhere, hidden from the operator's short list
ACTION_ALIASES: Dict[str, str] = {
    "return": "enter",
    "esc": "escape",
    "arrowleft": "left",
    "arrowright": "right",
    "arrowdown": "down",
    "arrowup": "up",
}


class ActionRegistry:
    """Static table of action names to backend key descriptors.

    Attributes:
        backend: Name of the backend whose payloads this registry holds.

    Example:
        >>> from nfckeys.injectors.console import CONSOLE_KEYS
        >>> registry = ActionRegistry(CONSOLE_KEYS, backend="console")
        >>> registry.resolve("  Right ").code
        'RIGHT'
        >>> registry.resolve("banana") is None
        True
    """

    def __init__(
        self,
        table: Mapping[str, Union[int, str]],
        backend: str,
    ) -> None:
        """Build the registry from a backend descriptor table.

        Args:
            table: Mapping of canonical action name to backend payload.
            backend: Backend name recorded on each descriptor.

        Raises:
            ConfigurationError: If the table does not cover exactly the
                canonical action set.
        """
        missing = [name for name in CANONICAL_ACTIONS if name not in table]
        extra = sorted(set(table) - set(CANONICAL_ACTIONS))
        if missing or extra:
            details = []
            if missing:
                details.append(f"missing: {', '.join(missing)}")
            if extra:
                details.append(f"unknown: {', '.join(extra)}")
            raise ConfigurationError(
                f"Key table for backend '{backend}' does not match the "
                f"canonical action set ({'; '.join(details)})",
                parameter="backend",
            )

        self.backend = backend
        self._descriptors: Dict[str, KeyDescriptor] = {
            name: KeyDescriptor(action=name, code=table[name], backend=backend)
            for name in CANONICAL_ACTIONS
        }
        logger.debug(
            "ActionRegistry built for backend=%s with %d actions",
            backend,
            len(self._descriptors),
        )

    def resolve(self, name: Optional[str]) -> Optional[KeyDescriptor]:
        """Look up the descriptor for an action name.

        Args:
            name: Action name, trimmed and matched case-insensitively.

        Returns:
            The descriptor, or None if the name is not recognized.
        """
        return self._descriptors.get(normalize_action_name(name))

    def is_valid(self, name: Optional[str]) -> bool:
        """Whether the name resolves to a known action."""
        return self.resolve(name) is not None

    def known_action_names(self) -> Tuple[str, ...]:
        """All recognized action names, in declaration order."""
        return CANONICAL_ACTIONS

    def primary_action_names(self) -> Tuple[str, ...]:
        """Recognized action names without the alternative spellings."""
        return tuple(name for name in CANONICAL_ACTIONS if name not in ACTION_ALIASES)

    def unknown_actions(self, names: Iterable[str]) -> Tuple[str, ...]:
        """Return the names from ``names`` that do not resolve."""
        return tuple(name for name in names if not self.is_valid(name))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_valid(name)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __repr__(self) -> str:
        return f"ActionRegistry(backend={self.backend!r}, actions={len(self)})"
