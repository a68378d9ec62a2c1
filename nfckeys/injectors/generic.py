"""Cross-platform key injector backed by pynput.

Used on Linux (X11) and anywhere the native backends are unavailable.
"""

import logging
import time
from typing import Any, Union

from nfckeys.injectors.base import KeyInjector


logger = logging.getLogger(__name__)


# Named keys map to attributes of pynput.keyboard.Key; single characters
# are sent as-is.
PYNPUT_KEYS: dict[str, str] = {
    "left": "left", "right": "right", "down": "down", "up": "up",
    "arrowleft": "left", "arrowright": "right",
    "arrowdown": "down", "arrowup": "up",
    "enter": "enter", "return": "enter",
    "space": "space",
    "escape": "esc", "esc": "esc",
    "tab": "tab",
    "delete": "delete", "backspace": "backspace",
    "home": "home", "end": "end",
    "pageup": "page_up", "pagedown": "page_down",
}
PYNPUT_KEYS.update({c: c for c in "0123456789abcdefghijklmnopqrstuvwxyz"})


class PynputKeyInjector(KeyInjector):
    """Key injector using ``pynput.keyboard.Controller``."""

    backend_name = "pynput"
    KEY_TABLE = PYNPUT_KEYS

    def __init__(self, hold_time: float = 0.05) -> None:
        super().__init__(hold_time=hold_time)
        self._controller: Any = None
        self._key_class: Any = None

    def start(self) -> None:
        """Create the pynput keyboard controller.

        Raises:
            ImportError: If pynput is not installed.
        """
        try:
            from pynput.keyboard import Controller, Key
        except ImportError as e:
            raise ImportError(
                "pynput is required for PynputKeyInjector. "
                "Install it with: pip install pynput"
            ) from e

        self._controller = Controller()
        self._key_class = Key
        self._is_ready = True

    def stop(self) -> None:
        self._is_ready = False
        self._controller = None

    def _send(self, code: Union[int, str]) -> None:
        name = str(code)
        key = getattr(self._key_class, name) if len(name) > 1 else name

        self._controller.press(key)
        if self._hold_time > 0:
            time.sleep(self._hold_time)
        self._controller.release(key)
