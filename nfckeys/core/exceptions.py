"""Exception hierarchy for the NFC key dispatcher.

This module defines a structured exception hierarchy for the errors that
can occur while turning a tag tap into a key press. All exceptions inherit
from NFCKeysError, enabling catch-all handlers while preserving specific
error information.

Every failure except a startup failure is local to a single tag-presence
event: the engine reports it and keeps listening.
"""

from typing import Optional, Sequence


class NFCKeysError(Exception):
    """Base exception for all nfckeys errors.

    Attributes:
        message: Human-readable error description.
        reader_id: Optional identifier of the reader the event came from.
    """

    def __init__(
        self,
        message: str,
        reader_id: Optional[str] = None
    ) -> None:
        self.message = message
        self.reader_id = reader_id
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with optional reader context."""
        if self.reader_id:
            return f"[{self.reader_id}] {self.message}"
        return self.message


class PersistenceError(NFCKeysError):
    """Error raised when the mapping file cannot be read or written.

    The engine degrades to its in-memory table when this happens.

    Attributes:
        message: Description of the failure.
        path: Path of the mapping file involved.
        cause: Optional underlying exception.
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        cause: Optional[Exception] = None
    ) -> None:
        self.path = path
        self.cause = cause
        super().__init__(message)

    def _format_message(self) -> str:
        """Format message including path and cause information."""
        base_msg = super()._format_message()
        if self.path:
            base_msg = f"{base_msg} (file: {self.path})"
        if self.cause:
            return f"{base_msg} (caused by: {type(self.cause).__name__}: {self.cause})"
        return base_msg


class IdentityExtractionError(NFCKeysError):
    """Error raised when a tag payload carries no usable identifier.

    Attributes:
        message: Description of the error.
        reader_id: Reader that reported the tag.
        tag_type: Tag protocol family reported by the reader.
    """

    def __init__(
        self,
        message: str = "Could not extract an identifier from the tag",
        reader_id: Optional[str] = None,
        tag_type: Optional[str] = None
    ) -> None:
        self.tag_type = tag_type
        super().__init__(message, reader_id)

    def _format_message(self) -> str:
        base_msg = super()._format_message()
        if self.tag_type:
            return f"{base_msg} (tag type: {self.tag_type})"
        return base_msg


class ValidationError(NFCKeysError):
    """Error raised when an operator assigns an unrecognized action name.

    The assignment is rejected: nothing is stored and no key is pressed.

    Attributes:
        action: The rejected action name.
        tag_id: Identifier of the tag being assigned.
        valid_actions: Action names that would have been accepted.
    """

    def __init__(
        self,
        action: str,
        tag_id: Optional[str] = None,
        valid_actions: Optional[Sequence[str]] = None
    ) -> None:
        self.action = action
        self.tag_id = tag_id
        self.valid_actions = list(valid_actions or [])
        message = f"Invalid key: '{action}'"
        if tag_id:
            message = f"{message} for tag {tag_id}"
        super().__init__(f"{message}. Key not assigned.")


class DispatchError(NFCKeysError):
    """Error raised when the platform key injection fails.

    Typically a permissions problem (e.g. missing Accessibility access on
    macOS). The engine reports it and keeps listening for further taps.

    Attributes:
        message: Description of the failure.
        action: Action that was being dispatched.
        tag_id: Identifier of the tag that triggered the dispatch.
        cause: Optional underlying exception.
        hint: Optional remediation hint for the operator.
    """

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        tag_id: Optional[str] = None,
        cause: Optional[Exception] = None,
        hint: Optional[str] = None
    ) -> None:
        self.action = action
        self.tag_id = tag_id
        self.cause = cause
        self.hint = hint
        super().__init__(message)

    def _format_message(self) -> str:
        """Format message including action, tag and cause information."""
        base_msg = super()._format_message()
        if self.action:
            base_msg = f"{base_msg} (action: {self.action}"
            if self.tag_id:
                base_msg = f"{base_msg}, tag: {self.tag_id}"
            base_msg = f"{base_msg})"
        if self.cause:
            base_msg = f"{base_msg} (caused by: {type(self.cause).__name__}: {self.cause})"
        return base_msg


class InvariantViolation(NFCKeysError):
    """Raised when a stored or assigned action is missing from the registry.

    Both persisted and freshly assigned actions are validated against the
    same registry, so this indicates a registry/table desynchronization bug
    (or a hand-edited mapping file).

    Attributes:
        action: The action that failed to resolve.
        tag_id: Identifier of the tag it is mapped to.
    """

    def __init__(
        self,
        action: str,
        tag_id: Optional[str] = None
    ) -> None:
        self.action = action
        self.tag_id = tag_id
        message = f"Action '{action}' is not in the action registry"
        if tag_id:
            message = f"{message} (mapped from tag {tag_id})"
        super().__init__(message)


class ConfigurationError(NFCKeysError):
    """Error raised when configuration is invalid or missing.

    Attributes:
        message: Description of the configuration error.
        parameter: Optional name of the invalid parameter.
    """

    def __init__(
        self,
        message: str,
        reader_id: Optional[str] = None,
        parameter: Optional[str] = None
    ) -> None:
        self.parameter = parameter
        super().__init__(message, reader_id)

    def _format_message(self) -> str:
        """Format message including parameter information."""
        base_msg = super()._format_message()
        if self.parameter:
            return f"{base_msg} (parameter: {self.parameter})"
        return base_msg


class ReaderError(NFCKeysError):
    """Error raised when an NFC reader cannot be opened or fails.

    Attributes:
        message: Description of the reader failure.
        reader_id: Identifier of the reader.
        cause: Optional underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        reader_id: Optional[str] = None,
        cause: Optional[Exception] = None
    ) -> None:
        self.cause = cause
        super().__init__(message, reader_id)

    def _format_message(self) -> str:
        """Format message including cause information."""
        base_msg = super()._format_message()
        if self.cause:
            return f"{base_msg} (caused by: {type(self.cause).__name__}: {self.cause})"
        return base_msg
