"""macOS key injector.

Simulates key presses through AppleScript (``osascript``) and the
System Events application. The calling terminal needs Accessibility
permission in System Settings.
"""

import logging
import shutil
import subprocess
import time
from typing import Union

from nfckeys.core.exceptions import ConfigurationError, DispatchError
from nfckeys.injectors.base import KeyInjector


logger = logging.getLogger(__name__)


# AppleScript virtual key codes (US layout)
MACOS_KEY_CODES: dict[str, int] = {
    "left": 123, "right": 124, "down": 125, "up": 126,
    "enter": 36, "return": 36,
    "space": 49,
    "escape": 53, "esc": 53,
    "tab": 48,
    "delete": 117, "backspace": 51,
    "home": 115, "end": 119,
    "pageup": 116, "pagedown": 121,
    # Arrow keys (alternative names)
    "arrowleft": 123, "arrowright": 124, "arrowdown": 125, "arrowup": 126,
    # Number keys
    "0": 29, "1": 18, "2": 19, "3": 20, "4": 21,
    "5": 23, "6": 22, "7": 26, "8": 28, "9": 25,
    # Letter keys
    "a": 0, "b": 11, "c": 8, "d": 2, "e": 14, "f": 3,
    "g": 5, "h": 4, "i": 34, "j": 38, "k": 40, "l": 37,
    "m": 46, "n": 45, "o": 31, "p": 35, "q": 12, "r": 15,
    "s": 1, "t": 17, "u": 32, "v": 9, "w": 13, "x": 7,
    "y": 16, "z": 6,
}


class MacOSKeyInjector(KeyInjector):
    """Key injector using ``osascript`` and System Events.

    Example:
        injector = MacOSKeyInjector()
        with injector:
            injector.press(registry.resolve("right"))
    """

    backend_name = "macos"
    KEY_TABLE = MACOS_KEY_CODES
    PERMISSION_HINT = "Make sure Terminal has Accessibility permissions in System Settings"

    def __init__(self, hold_time: float = 0.0, timeout: float = 5.0) -> None:
        """Initialize the macOS injector.

        Args:
            hold_time: Extra pause after each key press, in seconds.
                       System Events sends down and up itself.
            timeout: Seconds to wait for osascript before giving up.
        """
        super().__init__(hold_time=hold_time)
        self._timeout = timeout
        self._osascript = "osascript"

    def start(self) -> None:
        """Check that osascript is available.

        Raises:
            ConfigurationError: If osascript cannot be found.
        """
        osascript = shutil.which("osascript")
        if osascript is None:
            raise ConfigurationError(
                "osascript not found. The macOS backend only works on macOS.",
                parameter="backend",
            )
        self._osascript = osascript
        self._is_ready = True

    def _send(self, code: Union[int, str]) -> None:
        script = f'tell application "System Events" to key code {int(code)}'
        try:
            result = subprocess.run(
                [self._osascript, "-e", script],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise DispatchError(
                f"osascript did not finish within {self._timeout}s", cause=e
            ) from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise DispatchError(
                f"osascript exited with status {result.returncode}: {stderr or 'no output'}"
            )

        if self._hold_time > 0:
            time.sleep(self._hold_time)
