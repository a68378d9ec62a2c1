"""Base protocol and types for NFC tag readers.

This module defines the interface every reader must implement. It follows
the Protocol pattern from typing to enable structural subtyping, so a
reader does not have to inherit from anything to work with the engine.
"""

import logging
from abc import abstractmethod
from typing import Callable, Protocol, runtime_checkable

from nfckeys.core.events import TagEvent


logger = logging.getLogger(__name__)


# Type alias for event callback functions
EventCallback = Callable[[TagEvent], None]


@runtime_checkable
class TagReader(Protocol):
    """Protocol defining the interface for NFC tag readers.

    Each physical reader is one TagReader. Readers report independently;
    there is no cross-reader coordination.

    The lifecycle of a reader is:
        1. Create instance
        2. subscribe() - Register callbacks for events
        3. connect() - Open the device and start polling
        4. ... TagPresentEvent / TagRemovedEvent flow to subscribers ...
        5. disconnect() - Stop polling and release the device
        6. unsubscribe() - Remove callbacks

    Thread Safety:
        Callbacks may be invoked from a background polling thread.
    """

    @property
    @abstractmethod
    def reader_id(self) -> str:
        """Unique identifier for this reader instance."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the reader is open and polling for tags."""
        ...

    @abstractmethod
    def connect(self) -> None:
        """Open the reader and start emitting events.

        Idempotent: calling when already connected is safe.

        Raises:
            ReaderError: If the device or its driver is unavailable.
        """
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Stop polling and release the reader. Idempotent."""
        ...

    @abstractmethod
    def subscribe(self, callback: EventCallback) -> None:
        """Register a callback to receive reader events."""
        ...

    @abstractmethod
    def unsubscribe(self, callback: EventCallback) -> None:
        """Remove a previously registered callback. Safe if not registered."""
        ...


class BaseTagReader:
    """Base implementation providing subscriber management for readers.

    Concrete readers inherit from this and focus on device-specific
    polling logic.
    """

    def __init__(self, reader_id: str) -> None:
        """Initialize the base reader.

        Args:
            reader_id: Unique identifier for this reader instance.
        """
        self._reader_id = reader_id
        self._subscribers: list[EventCallback] = []
        self._connected = False

    @property
    def reader_id(self) -> str:
        """Unique identifier for this reader instance."""
        return self._reader_id

    @property
    def is_connected(self) -> bool:
        """Whether the reader is currently connected."""
        return self._connected

    def subscribe(self, callback: EventCallback) -> None:
        """Register a callback to receive reader events."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: EventCallback) -> None:
        """Remove a previously registered callback."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _emit(self, event: TagEvent) -> None:
        """Emit an event to all subscribers.

        Errors in individual callbacks are logged but don't prevent other
        callbacks from receiving the event.
        """
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.exception("Error in subscriber callback: %s", e)

    def connect(self) -> None:
        """Override this method to implement device connection."""
        raise NotImplementedError("Subclasses must implement connect()")

    def disconnect(self) -> None:
        """Override this method to implement device disconnection."""
        raise NotImplementedError("Subclasses must implement disconnect()")
