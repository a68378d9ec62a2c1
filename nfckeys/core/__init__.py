"""Core module for nfckeys.

This module provides the foundational components of nfckeys:
- Event data classes for reader events and dispatch results
- The mapping store and action registry
- DispatchEngine for turning taps into key presses
- Configuration management
- Factory functions for engine creation
- Custom exceptions for error handling

Example usage:
    >>> from nfckeys.core import Config, create_engine
    >>>
    >>> config = Config.from_yaml("nfckeys.yaml")
    >>> engine = create_engine(config)
    >>>
    >>> with engine:
    ...     engine.run()
"""

from .events import (
    DispatchResult,
    DispatchStatus,
    KeyDescriptor,
    ReaderEvent,
    TagEvent,
    TagPresentEvent,
    TagRemovedEvent,
    TagType,
    extract_tag_id,
    normalize_action_name,
    normalize_tag_id,
)
from .exceptions import (
    ConfigurationError,
    DispatchError,
    IdentityExtractionError,
    InvariantViolation,
    NFCKeysError,
    PersistenceError,
    ReaderError,
    ValidationError,
)
from .registry import ACTION_ALIASES, CANONICAL_ACTIONS, ActionRegistry
from .store import DEFAULT_MAPPINGS_FILE, MappingStore
from .assignment import AssignmentFlow
from .config import (
    Config,
    InjectorConfig,
    ReaderConfig,
)
from .engine import DispatchEngine
from .factory import (
    create_engine,
    create_engine_from_env,
    create_engine_from_yaml,
    create_injector,
    create_readers,
    create_store,
    get_available_injectors,
    get_available_readers,
    register_injector,
    register_reader,
)

__all__ = [
    # Events
    "DispatchResult",
    "DispatchStatus",
    "KeyDescriptor",
    "ReaderEvent",
    "TagEvent",
    "TagPresentEvent",
    "TagRemovedEvent",
    "TagType",
    "extract_tag_id",
    "normalize_action_name",
    "normalize_tag_id",
    # Mappings
    "ACTION_ALIASES",
    "CANONICAL_ACTIONS",
    "ActionRegistry",
    "DEFAULT_MAPPINGS_FILE",
    "MappingStore",
    "AssignmentFlow",
    # Engine
    "DispatchEngine",
    # Configuration
    "Config",
    "InjectorConfig",
    "ReaderConfig",
    # Factory functions
    "create_engine",
    "create_engine_from_env",
    "create_engine_from_yaml",
    "create_injector",
    "create_readers",
    "create_store",
    "get_available_injectors",
    "get_available_readers",
    "register_injector",
    "register_reader",
    # Exceptions
    "ConfigurationError",
    "DispatchError",
    "IdentityExtractionError",
    "InvariantViolation",
    "NFCKeysError",
    "PersistenceError",
    "ReaderError",
    "ValidationError",
]
