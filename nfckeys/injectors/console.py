"""Console key injector for dry runs and development.

Prints each key press instead of sending it to the operating system.
Useful with ``--simulate-tag`` or on machines without a supported backend.
"""

import sys
from datetime import datetime
from typing import TextIO, Union

from nfckeys.injectors.base import KeyInjector
from nfckeys.core.registry import CANONICAL_ACTIONS


CONSOLE_KEYS: dict[str, str] = {name: name.upper() for name in CANONICAL_ACTIONS}


class ConsoleKeyInjector(KeyInjector):
    """Injector that prints key presses to a stream.

    Attributes:
        stream: Output stream (defaults to sys.stdout)
        prefix: Optional prefix for all messages

    Example:
        injector = ConsoleKeyInjector(prefix="DRY-RUN")
        with injector:
            injector.press(registry.resolve("right"))
        # Output: DRY-RUN [2024-01-15T10:30:00] Key press: RIGHT
    """

    backend_name = "console"
    KEY_TABLE = CONSOLE_KEYS

    def __init__(
        self,
        hold_time: float = 0.0,
        stream: TextIO | None = None,
        prefix: str | None = None,
        include_timestamp: bool = True,
    ) -> None:
        """Initialize the console injector.

        Args:
            hold_time: Accepted for interface parity. Nothing is held.
            stream: Output stream. Defaults to sys.stdout.
            prefix: Optional prefix prepended to all output lines.
            include_timestamp: Whether to include a timestamp in each line.
        """
        super().__init__(hold_time=hold_time)
        self._stream = stream or sys.stdout
        self._prefix = prefix
        self._include_timestamp = include_timestamp
        self._press_count = 0

    @property
    def press_count(self) -> int:
        """Number of key presses since start()."""
        return self._press_count

    def start(self) -> None:
        self._is_ready = True
        self._press_count = 0

    def stop(self) -> None:
        """Flush the output stream and mark as not ready."""
        if self._is_ready:
            self._stream.flush()
            self._is_ready = False

    def _send(self, code: Union[int, str]) -> None:
        if self._include_timestamp:
            message = f"[{datetime.now().isoformat()}] Key press: {code}"
        else:
            message = f"Key press: {code}"
        if self._prefix:
            message = f"{self._prefix} {message}"
        self._stream.write(message + "\n")
        self._press_count += 1
