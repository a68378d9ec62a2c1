"""Mock NFC reader for testing and development.

This module provides a MockReader that emits synthetic tag events without
requiring reader hardware. It's useful for:
- Unit and integration testing
- Trying out mappings on a machine with no reader attached
- Simulating specific tap sequences
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from nfckeys.core.events import (
    ReaderEvent,
    TagPresentEvent,
    TagRemovedEvent,
    TagType,
)
from nfckeys.readers.base import BaseTagReader


logger = logging.getLogger(__name__)


@dataclass
class ScriptedTap:
    """A scripted tap to emit at a specific time.

    Attributes:
        delay: Seconds to wait before emitting this tap.
        uid: Tag identifier (hex string or raw bytes).
        tag_type: Protocol family to report.
    """

    delay: float
    uid: Union[str, bytes]
    tag_type: TagType = TagType.ISO_14443_3


class MockReader(BaseTagReader):
    """Mock reader that emits scripted or manual taps.

    Each tap is reported as a TagPresentEvent immediately followed by a
    TagRemovedEvent, like a tag briefly held against a reader.

    Example - Scripted mode:
        >>> script = [
        ...     ScriptedTap(0.5, "04A224B2"),
        ...     ScriptedTap(2.0, "04A224B2"),
        ... ]
        >>> reader = MockReader(script=script)
        >>> reader.subscribe(print)
        >>> reader.connect()

    Example - Manual mode:
        >>> reader = MockReader()
        >>> reader.subscribe(print)
        >>> reader.connect()
        >>> reader.tap("04A224B2")
    """

    def __init__(
        self,
        reader_id: str = "mock-reader",
        script: Optional[Sequence[ScriptedTap]] = None,
        loop_script: bool = False,
    ) -> None:
        """Initialize the mock reader.

        Args:
            reader_id: Identifier for this reader instance.
            script: Optional sequence of scripted taps to play on connect().
            loop_script: Whether to loop the script or stop after one pass.
        """
        super().__init__(reader_id)

        self._script = list(script) if script else None
        self._loop_script = loop_script

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_scripted(self) -> bool:
        """Whether this reader plays a script on connect()."""
        return self._script is not None

    def connect(self) -> None:
        """Report the reader as attached and start the script, if any."""
        if self._connected:
            logger.warning("MockReader already connected")
            return

        logger.info("MockReader connecting (mode: %s)", "scripted" if self._script else "manual")

        self._connected = True
        self._stop_event.clear()

        self._emit(ReaderEvent(reader_id=self._reader_id, connected=True,
                               message=f"{self._reader_id} device attached"))

        if self._script:
            self._thread = threading.Thread(
                target=self._run_scripted,
                daemon=True,
                name=f"MockReader-{self._reader_id}",
            )
            self._thread.start()

    def disconnect(self) -> None:
        """Stop the script and report the reader as removed."""
        if not self._connected:
            return

        logger.info("MockReader disconnecting")

        self._stop_event.set()
        self._connected = False

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None

        self._emit(ReaderEvent(reader_id=self._reader_id, connected=False,
                               message=f"{self._reader_id} device removed"))

    def tap(
        self,
        uid: Union[str, bytes, None],
        tag_type: TagType = TagType.ISO_14443_3,
        data: Optional[bytes] = None,
    ) -> None:
        """Manually emit a tap (presence followed by removal).

        Args:
            uid: Tag identifier, or None to simulate an unreadable tag.
            tag_type: Protocol family to report.
            data: Optional application-data blob.
        """
        if not self._connected:
            logger.warning("Cannot tap: MockReader not connected")
            return

        now = time.time()
        self._emit(TagPresentEvent(
            reader_id=self._reader_id,
            timestamp=now,
            tag_type=tag_type,
            uid=uid,
            data=data,
        ))
        self._emit(TagRemovedEvent(reader_id=self._reader_id, timestamp=now, uid=uid))

    def _run_scripted(self) -> None:
        """Run the scripted tap sequence."""
        if not self._script:
            return

        while not self._stop_event.is_set():
            for scripted in self._script:
                if self._stop_event.wait(timeout=scripted.delay):
                    return  # Stop signal received

                if not self._connected:
                    return

                self.tap(scripted.uid, scripted.tag_type)

            if not self._loop_script:
                logger.info("Script completed")
                return

    def __enter__(self) -> "MockReader":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()


def create_tap_script(
    uids: Sequence[Union[str, bytes]],
    interval: float = 1.0,
    tag_type: TagType = TagType.ISO_14443_3,
) -> List[ScriptedTap]:
    """Helper function to create a scripted tap sequence.

    Args:
        uids: Tag identifiers to tap, in order.
        interval: Delay before each tap.
        tag_type: Protocol family for all taps.

    Returns:
        List of ScriptedTap objects ready for MockReader.

    Example:
        >>> reader = MockReader(script=create_tap_script(["04A224B2", "04B3C1D2"]))
    """
    return [ScriptedTap(delay=interval, uid=uid, tag_type=tag_type) for uid in uids]
