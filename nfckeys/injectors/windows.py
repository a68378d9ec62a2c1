"""Windows key injector.

Uses pywin32 to synthesize key presses for whatever window has focus.
The win32 modules are imported in start() so this module can be imported
on any platform.
"""

import logging
import time
from typing import Any, Union

from nfckeys.injectors.base import KeyInjector


logger = logging.getLogger(__name__)


# Virtual key codes for Windows
# Reference: https://docs.microsoft.com/en-us/windows/win32/inputdev/virtual-key-codes
VK_CODES: dict[str, int] = {
    # Arrow keys
    "left": 0x25, "up": 0x26, "right": 0x27, "down": 0x28,
    "arrowleft": 0x25, "arrowup": 0x26, "arrowright": 0x27, "arrowdown": 0x28,
    # Special keys
    "space": 0x20, "enter": 0x0D, "return": 0x0D,
    "tab": 0x09, "escape": 0x1B, "esc": 0x1B,
    "backspace": 0x08, "delete": 0x2E,
    "home": 0x24, "end": 0x23,
    "pageup": 0x21, "pagedown": 0x22,
    # Numbers (0-9)
    "0": 0x30, "1": 0x31, "2": 0x32, "3": 0x33, "4": 0x34,
    "5": 0x35, "6": 0x36, "7": 0x37, "8": 0x38, "9": 0x39,
    # Letters (A-Z)
    "a": 0x41, "b": 0x42, "c": 0x43, "d": 0x44, "e": 0x45,
    "f": 0x46, "g": 0x47, "h": 0x48, "i": 0x49, "j": 0x4A,
    "k": 0x4B, "l": 0x4C, "m": 0x4D, "n": 0x4E, "o": 0x4F,
    "p": 0x50, "q": 0x51, "r": 0x52, "s": 0x53, "t": 0x54,
    "u": 0x55, "v": 0x56, "w": 0x57, "x": 0x58, "y": 0x59,
    "z": 0x5A,
}


class WindowsKeyInjector(KeyInjector):
    """Windows key injector using ``win32api.keybd_event``.

    Note:
        This class imports win32api and win32con at runtime to avoid
        import errors on non-Windows platforms.

    Example:
        injector = WindowsKeyInjector(hold_time=0.05)
        with injector:
            injector.press(registry.resolve("space"))
    """

    backend_name = "windows"
    KEY_TABLE = VK_CODES

    def __init__(self, hold_time: float = 0.05) -> None:
        super().__init__(hold_time=hold_time)
        self._win32api: Any = None
        self._win32con: Any = None

    def start(self) -> None:
        """Import the win32 modules.

        Raises:
            ImportError: If pywin32 is not installed.
        """
        try:
            import win32api
            import win32con
            self._win32api = win32api
            self._win32con = win32con
        except ImportError as e:
            raise ImportError(
                "pywin32 is required for WindowsKeyInjector. "
                "Install it with: pip install pywin32"
            ) from e

        self._is_ready = True

    def stop(self) -> None:
        self._is_ready = False
        self._win32api = None
        self._win32con = None

    def _send(self, code: Union[int, str]) -> None:
        vk_code = int(code)

        # Key down
        self._win32api.keybd_event(vk_code, 0, 0, 0)

        if self._hold_time > 0:
            time.sleep(self._hold_time)

        # Key up
        self._win32api.keybd_event(vk_code, 0, self._win32con.KEYEVENTF_KEYUP, 0)
