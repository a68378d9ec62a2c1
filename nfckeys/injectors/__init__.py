"""Key-injection backends.

Each backend turns a KeyDescriptor into a synthetic key press on the host.

Available Backends:
    - MacOSKeyInjector: osascript / System Events
    - WindowsKeyInjector: pywin32 keybd_event
    - PynputKeyInjector: pynput Controller (Linux and fallback)
    - ConsoleKeyInjector: prints presses (dry run)
"""

from nfckeys.injectors.base import (
    KeyInjector,
    create_key_injector,
    get_backend_class,
    get_key_injector_class,
)
from nfckeys.injectors.console import CONSOLE_KEYS, ConsoleKeyInjector
from nfckeys.injectors.generic import PYNPUT_KEYS, PynputKeyInjector
from nfckeys.injectors.macos import MACOS_KEY_CODES, MacOSKeyInjector
from nfckeys.injectors.windows import VK_CODES, WindowsKeyInjector

__all__ = [
    "KeyInjector",
    "create_key_injector",
    "get_backend_class",
    "get_key_injector_class",
    "ConsoleKeyInjector",
    "MacOSKeyInjector",
    "PynputKeyInjector",
    "WindowsKeyInjector",
    "CONSOLE_KEYS",
    "MACOS_KEY_CODES",
    "PYNPUT_KEYS",
    "VK_CODES",
]
