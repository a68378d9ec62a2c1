"""NFC tag readers.

All readers implement the TagReader protocol, providing a consistent
interface regardless of the underlying hardware.

Available Readers:
    - NfcpyReader: USB/serial readers through nfcpy
    - MockReader: Scripted or manual taps for testing

Example usage:
    >>> from nfckeys.readers import MockReader, NfcpyReader
    >>>
    >>> reader = NfcpyReader(path="usb")
    >>> reader.subscribe(lambda event: print(event))
    >>> reader.connect()
"""

from nfckeys.readers.base import BaseTagReader, EventCallback, TagReader
from nfckeys.readers.mock import MockReader, ScriptedTap, create_tap_script
from nfckeys.readers.nfcpy import NfcpyReader

__all__ = [
    # Protocol and base class
    "TagReader",
    "BaseTagReader",
    "EventCallback",
    # Hardware
    "NfcpyReader",
    # Mock
    "MockReader",
    "ScriptedTap",
    "create_tap_script",
]
