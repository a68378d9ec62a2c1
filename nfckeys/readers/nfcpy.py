"""NFC reader backed by nfcpy.

Drives USB, serial and tty contactless readers through
``nfc.ContactlessFrontend``. The device is opened in connect() so that a
missing reader is reported at startup; polling then runs on a background
thread and each tag is reported on connect and on release.
"""

import logging
import threading
from typing import Any, Optional

from nfckeys.core.events import (
    ReaderEvent,
    TagPresentEvent,
    TagRemovedEvent,
    TagType,
)
from nfckeys.core.exceptions import ReaderError
from nfckeys.readers.base import BaseTagReader


logger = logging.getLogger(__name__)


class NfcpyReader(BaseTagReader):
    """Reader for nfcpy-supported devices.

    Attributes:
        path: nfcpy device path, e.g. "usb", "usb:072f:2200", "tty:USB0:pn532".

    Example:
        reader = NfcpyReader(path="usb")
        reader.subscribe(engine.submit)
        reader.connect()
    """

    def __init__(
        self,
        path: str = "usb",
        reader_id: Optional[str] = None,
        poll_interval: float = 0.5,
    ) -> None:
        """Initialize the nfcpy reader.

        Args:
            path: nfcpy device path.
            reader_id: Identifier for this reader. Defaults to "nfcpy:<path>".
            poll_interval: Seconds between polls for a new tag.
        """
        super().__init__(reader_id or f"nfcpy:{path}")
        self._path = path
        self._poll_interval = poll_interval
        self._clf: Any = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def path(self) -> str:
        return self._path

    def connect(self) -> None:
        """Open the device and start the polling thread.

        Raises:
            ReaderError: If nfcpy is not installed or the device cannot be opened.
        """
        if self._connected:
            logger.warning("NfcpyReader %s already connected", self._reader_id)
            return

        try:
            import nfc
        except ImportError as e:
            raise ReaderError(
                "nfcpy is required for NfcpyReader. Install it with: pip install nfcpy",
                reader_id=self._reader_id,
                cause=e,
            ) from e

        try:
            self._clf = nfc.ContactlessFrontend(self._path)
        except (IOError, OSError) as e:
            raise ReaderError(
                f"No NFC reader found at '{self._path}'",
                reader_id=self._reader_id,
                cause=e,
            ) from e

        self._connected = True
        self._stop_event.clear()

        device_name = str(getattr(self._clf, "device", self._path))
        logger.info("%s device attached", device_name)
        self._emit(ReaderEvent(reader_id=self._reader_id, connected=True,
                               message=f"{device_name} device attached"))

        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name=f"NfcpyReader-{self._reader_id}",
        )
        self._thread.start()

    def disconnect(self) -> None:
        """Stop polling and close the device."""
        if not self._connected:
            return

        logger.info("NfcpyReader %s disconnecting", self._reader_id)

        self._stop_event.set()
        self._connected = False

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None

        self._close_frontend()
        self._emit(ReaderEvent(reader_id=self._reader_id, connected=False,
                               message=f"{self._reader_id} device removed"))

    def _run(self) -> None:
        """Polling loop: one clf.connect() per tag until stopped."""
        rdwr = {
            "on-connect": self._on_connect,
            "on-release": self._on_release,
            "interval": self._poll_interval,
        }
        while not self._stop_event.is_set():
            try:
                result = self._clf.connect(rdwr=rdwr, terminate=self._stop_event.is_set)
            except Exception as e:
                logger.error("%s an error occurred: %s", self._reader_id, e, exc_info=True)
                self._emit(ReaderEvent(reader_id=self._reader_id, connected=False,
                                       message=f"{self._reader_id} an error occurred: {e}"))
                self._connected = False
                self._close_frontend()
                return

            if result is False:
                # nfcpy returns False when the wait was interrupted
                logger.debug("nfcpy connect() interrupted on %s", self._reader_id)
                return

    def _on_connect(self, tag: Any) -> bool:
        """nfcpy callback: a tag entered the field."""
        tag_type = TagType.from_string(getattr(tag, "type", None))
        uid = getattr(tag, "identifier", None) or None
        logger.debug("%s card detected (type=%s)", self._reader_id, tag_type.value)

        self._emit(TagPresentEvent(
            reader_id=self._reader_id,
            tag_type=tag_type,
            uid=uid,
        ))
        # True keeps nfcpy waiting until the tag is removed
        return True

    def _on_release(self, tag: Any) -> bool:
        """nfcpy callback: the tag left the field."""
        logger.debug("%s card removed", self._reader_id)
        self._emit(TagRemovedEvent(
            reader_id=self._reader_id,
            uid=getattr(tag, "identifier", None) or None,
        ))
        return True

    def _close_frontend(self) -> None:
        if self._clf is None:
            return
        try:
            self._clf.close()
        except Exception as e:
            logger.warning("Error closing reader %s: %s", self._reader_id, e)
        self._clf = None
