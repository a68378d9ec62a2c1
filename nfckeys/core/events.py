"""Event data classes for the NFC key dispatcher.

This module defines the event types readers emit (tag presence, tag
removal, reader state changes), the key descriptor handed to key
injectors, and the per-event dispatch result. It also owns the single
normalization point for tag identifiers and action names.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .exceptions import IdentityExtractionError


class TagType(Enum):
    """Tag protocol families a reader can report.

    ISO 14443-3 tags (MIFARE Ultralight, NTAG) expose their UID directly.
    ISO 14443-4 tags (DESFire, smart cards, phones) may only expose an
    application-data blob.
    """

    ISO_14443_3 = "iso14443-3"
    ISO_14443_4 = "iso14443-4"
    FELICA = "felica"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, type_name: Optional[str]) -> "TagType":
        """Convert a driver-specific tag type name to a TagType.

        Accepts PC/SC style names (``TAG_ISO_14443_3``), nfcpy class names
        (``Type2Tag``) and the enum values themselves. Unrecognized names
        map to UNKNOWN rather than raising, because identifier extraction
        can still fall back to the UID.

        Args:
            type_name: Type name reported by the reader driver.

        Returns:
            The corresponding TagType.
        """
        if not type_name:
            return cls.UNKNOWN

        name_mapping = {
            "tag_iso_14443_3": cls.ISO_14443_3,
            "tag_iso_14443_4": cls.ISO_14443_4,
            "type1tag": cls.ISO_14443_3,
            "type2tag": cls.ISO_14443_3,
            "type3tag": cls.FELICA,
            "type4tag": cls.ISO_14443_4,
        }

        normalized = type_name.strip().lower()
        mapped = name_mapping.get(normalized)
        if mapped:
            return mapped

        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN


def normalize_tag_id(raw: Union[str, bytes, bytearray]) -> str:
    """Normalize a tag identifier to its canonical form.

    Byte sequences are hex encoded. Strings are trimmed. The result is
    uppercased, so ``b"\\x04\\xa2\\x24\\xb2"``, ``"04a224b2"`` and
    ``" 04A224B2 "`` all become ``"04A224B2"``.

    Args:
        raw: UID bytes or identifier string.

    Returns:
        The canonical identifier (may be empty if the input was empty).
    """
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).hex().upper()
    return str(raw).strip().upper()


def normalize_action_name(name: Optional[str]) -> str:
    """Normalize an action name: trimmed and lowercased."""
    if name is None:
        return ""
    return name.strip().lower()


@dataclass(frozen=True)
class TagEvent:
    """Base event class for everything a reader emits.

    Attributes:
        reader_id: Identifier of the reader that generated this event.
        timestamp: Unix timestamp in seconds when the event occurred.
    """

    reader_id: str
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class TagPresentEvent(TagEvent):
    """A tag came into range of a reader.

    Depending on the protocol family the reader reports the raw UID, an
    application-data blob, or both.

    Attributes:
        tag_type: Protocol family of the tag.
        uid: Raw identifier bytes (or a decoder-specific string).
        data: Application-data blob, for families without a usable UID.
    """

    tag_type: TagType = TagType.UNKNOWN
    uid: Optional[Union[bytes, str]] = None
    data: Optional[bytes] = None


@dataclass(frozen=True)
class TagRemovedEvent(TagEvent):
    """A tag left the range of a reader. Informational only.

    Attributes:
        uid: Raw identifier bytes, if the reader still knows them.
    """

    uid: Optional[Union[bytes, str]] = None


@dataclass(frozen=True)
class ReaderEvent(TagEvent):
    """A reader was attached, detached or reported an error.

    Attributes:
        connected: True if the reader is now available.
        message: Optional human-readable description.
    """

    connected: bool = True
    message: Optional[str] = None


def extract_tag_id(event: TagPresentEvent) -> str:
    """Extract the canonical TagIdentifier from a tag-presence event.

    ISO 14443-3 tags are identified by their UID. ISO 14443-4 tags are
    identified by their application-data blob, falling back to the UID
    when the reader supplies one. Other families use the UID.

    Args:
        event: The tag-presence event.

    Returns:
        The normalized identifier.

    Raises:
        IdentityExtractionError: If the payload carries no usable identifier.
    """
    if event.tag_type is TagType.ISO_14443_4:
        candidates = [event.data, event.uid]
    else:
        candidates = [event.uid]

    for candidate in candidates:
        if candidate is None:
            continue
        tag_id = normalize_tag_id(candidate)
        if tag_id:
            return tag_id

    raise IdentityExtractionError(
        reader_id=event.reader_id,
        tag_type=event.tag_type.value,
    )


@dataclass(frozen=True)
class KeyDescriptor:
    """Backend-specific description of how to simulate an action.

    Attributes:
        action: Canonical action name (e.g. "right").
        code: Backend payload: AppleScript key code, Windows virtual-key
              code, pynput key name or console label.
        backend: Name of the backend the payload belongs to.
    """

    action: str
    code: Union[int, str]
    backend: str


class DispatchStatus(Enum):
    """Terminal state of a single tag-presence event."""

    DISPATCHED = "dispatched"
    SKIPPED = "skipped"
    REJECTED = "rejected"
    FAILED = "failed"
    IGNORED = "ignored"


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of processing one reader event.

    Attributes:
        status: Terminal state of the event.
        tag_id: Extracted identifier, if extraction succeeded.
        action: Resolved or attempted action name.
        error: The exception that ended the event, if any.
        reader_id: Reader that reported the event.
    """

    status: DispatchStatus
    tag_id: Optional[str] = None
    action: Optional[str] = None
    error: Optional[Exception] = None
    reader_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True only when a key press was dispatched."""
        return self.status is DispatchStatus.DISPATCHED
