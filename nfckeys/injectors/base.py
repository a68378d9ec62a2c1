"""Abstract key injector for nfckeys.

This module defines the KeyInjector interface that platform-specific
implementations must follow, and the platform detection used to pick one
at startup. Each backend ships a static key table covering the canonical
action set; the engine builds its ActionRegistry from that table.
"""

import logging
import sys
from abc import ABC, abstractmethod
from typing import Callable, ClassVar, Mapping, Optional, Union

from nfckeys.core.events import KeyDescriptor
from nfckeys.core.exceptions import DispatchError
from nfckeys.core.registry import ActionRegistry


logger = logging.getLogger(__name__)


class KeyInjector(ABC):
    """Abstract base class for key-injection backends.

    Subclasses set ``backend_name`` and ``KEY_TABLE`` and implement
    ``_send()``. ``press()`` takes care of readiness checks, wraps backend
    failures in DispatchError and notifies the optional callback.

    Lifecycle:
        1. Create injector instance
        2. Call start() to acquire platform resources
        3. Call press() for each dispatch
        4. Call stop() to release resources

    Attributes:
        backend_name: Name recorded on the descriptors this backend accepts.
        KEY_TABLE: Canonical action name -> backend payload.
        PERMISSION_HINT: Shown to the operator when a press fails.
    """

    backend_name: ClassVar[str] = "abstract"
    KEY_TABLE: ClassVar[Mapping[str, Union[int, str]]] = {}
    PERMISSION_HINT: ClassVar[str] = (
        "Make sure the application has proper permissions to simulate keyboard input."
    )

    def __init__(self, hold_time: float = 0.05) -> None:
        """Initialize the injector.

        Args:
            hold_time: Seconds to hold each key before releasing it.

        Raises:
            ValueError: If hold_time is negative.
        """
        if hold_time < 0:
            raise ValueError(f"hold_time must not be negative, got {hold_time}")

        self._hold_time = hold_time
        self._is_ready = False
        self._on_key_press: Optional[Callable[[KeyDescriptor], None]] = None

    @property
    def hold_time(self) -> float:
        """Seconds each key is held."""
        return self._hold_time

    @hold_time.setter
    def hold_time(self, hold_time: float) -> None:
        if hold_time < 0:
            raise ValueError(f"hold_time must not be negative, got {hold_time}")
        self._hold_time = hold_time

    @property
    def is_ready(self) -> bool:
        """Check if the injector is ready."""
        return self._is_ready

    def create_registry(self) -> ActionRegistry:
        """Build the action registry for this backend's key table."""
        return ActionRegistry(self.KEY_TABLE, backend=self.backend_name)

    def set_key_press_callback(
        self, callback: Optional[Callable[[KeyDescriptor], None]]
    ) -> None:
        """Set a callback invoked after each successful key press.

        Args:
            callback: Function taking the pressed descriptor, or None to clear.
        """
        self._on_key_press = callback

    def start(self) -> None:
        """Acquire platform resources. Default marks the injector ready."""
        self._is_ready = True

    def stop(self) -> None:
        """Release platform resources. Safe to call multiple times."""
        self._is_ready = False

    def press(self, descriptor: KeyDescriptor) -> None:
        """Simulate a key press and release.

        Args:
            descriptor: Descriptor resolved from this backend's registry.

        Raises:
            RuntimeError: If the injector is not started.
            DispatchError: If the platform rejected the key press.
        """
        if not self._is_ready:
            raise RuntimeError("Key injector not started. Call start() first.")

        if descriptor.backend != self.backend_name:
            raise DispatchError(
                f"Descriptor belongs to backend '{descriptor.backend}', "
                f"not '{self.backend_name}'",
                action=descriptor.action,
            )

        try:
            self._send(descriptor.code)
        except DispatchError as e:
            if e.hint is None:
                e.hint = self.PERMISSION_HINT
            raise
        except Exception as e:
            raise DispatchError(
                "Error simulating keyboard input",
                action=descriptor.action,
                cause=e,
                hint=self.PERMISSION_HINT,
            ) from e

        logger.debug("%s key pressed via %s", descriptor.action, self.backend_name)

        if self._on_key_press:
            self._on_key_press(descriptor)

    @abstractmethod
    def _send(self, code: Union[int, str]) -> None:
        """Send the backend-specific key press for ``code``."""
        pass

    def __enter__(self) -> "KeyInjector":
        """Context manager entry - starts the injector."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - stops the injector."""
        self.stop()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(ready={self._is_ready})"


def get_key_injector_class(platform: Optional[str] = None) -> type[KeyInjector]:
    """Get the appropriate KeyInjector class for a platform.

    Args:
        platform: A ``sys.platform`` value. Defaults to the running platform.

    Returns:
        The platform-specific KeyInjector subclass.

    Raises:
        NotImplementedError: If the platform is not supported.
    """
    platform = platform or sys.platform

    if platform == "win32":
        from nfckeys.injectors.windows import WindowsKeyInjector
        return WindowsKeyInjector
    elif platform == "darwin":
        from nfckeys.injectors.macos import MacOSKeyInjector
        return MacOSKeyInjector
    elif platform.startswith("linux"):
        from nfckeys.injectors.generic import PynputKeyInjector
        return PynputKeyInjector
    else:
        raise NotImplementedError(
            f"Unsupported platform: {platform}. Use the 'console' backend instead."
        )


def get_backend_class(backend: str) -> type[KeyInjector]:
    """Get a KeyInjector class by backend name.

    Args:
        backend: One of "auto", "macos", "windows", "pynput", "console".

    Returns:
        The matching KeyInjector subclass.

    Raises:
        ValueError: If the backend name is unknown.
        NotImplementedError: If "auto" is used on an unsupported platform.
    """
    name = backend.strip().lower()

    if name == "auto":
        return get_key_injector_class()
    elif name == "macos":
        from nfckeys.injectors.macos import MacOSKeyInjector
        return MacOSKeyInjector
    elif name == "windows":
        from nfckeys.injectors.windows import WindowsKeyInjector
        return WindowsKeyInjector
    elif name == "pynput":
        from nfckeys.injectors.generic import PynputKeyInjector
        return PynputKeyInjector
    elif name == "console":
        from nfckeys.injectors.console import ConsoleKeyInjector
        return ConsoleKeyInjector

    raise ValueError(
        f"Unknown key injection backend: '{backend}'. "
        "Available: auto, console, macos, pynput, windows"
    )


def create_key_injector(backend: str = "auto", **kwargs) -> KeyInjector:
    """Factory function to create a KeyInjector.

    Args:
        backend: Backend name, or "auto" to pick one for the running platform.
        **kwargs: Arguments to pass to the injector constructor.

    Returns:
        A KeyInjector instance (not started).

    Raises:
        ValueError: If the backend name is unknown.
        NotImplementedError: If the platform is not supported.
    """
    cls = get_backend_class(backend)
    return cls(**kwargs)
