"""Factory functions for creating nfckeys components.

This module provides factory functions that create engine components
based on configuration. These functions encapsulate the logic for
selecting appropriate implementations and configuring them correctly.

Usage:
    >>> from nfckeys.core.config import Config
    >>> from nfckeys.core.factory import create_engine
    >>>
    >>> config = Config.from_yaml("nfckeys.yaml")
    >>> engine = create_engine(config)
    >>> with engine:
    ...     engine.run()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Type

from nfckeys.core.config import Config
from nfckeys.core.engine import DispatchEngine
from nfckeys.core.exceptions import ConfigurationError
from nfckeys.core.store import MappingStore

if TYPE_CHECKING:
    from nfckeys.injectors.base import KeyInjector
    from nfckeys.prompts.base import AssignmentPrompt
    from nfckeys.readers.base import TagReader


logger = logging.getLogger(__name__)


# Maps reader kind to reader class
_READER_REGISTRY: Dict[str, Type] = {}

# Maps backend name to key injector class
_INJECTOR_REGISTRY: Dict[str, Type[KeyInjector]] = {}


def register_reader(name: str, reader_class: Type) -> None:
    """Register a reader implementation for factory use.

    Args:
        name: Name to register the reader under (e.g., "nfcpy", "mock").
        reader_class: The reader class to register.
    """
    _READER_REGISTRY[name.lower()] = reader_class
    logger.debug("Registered reader: %s -> %s", name, reader_class.__name__)


def register_injector(name: str, injector_class: Type[KeyInjector]) -> None:
    """Register a key injector implementation for factory use.

    Args:
        name: Backend name to register under (e.g., "macos", "console").
        injector_class: The injector class to register.
    """
    _INJECTOR_REGISTRY[name.lower()] = injector_class
    logger.debug("Registered injector: %s -> %s", name, injector_class.__name__)


def _register_defaults() -> None:
    """Register the built-in readers and injectors."""
    from nfckeys.readers import MockReader, NfcpyReader
    register_reader("nfcpy", NfcpyReader)
    register_reader("mock", MockReader)

    from nfckeys.injectors import (
        ConsoleKeyInjector,
        MacOSKeyInjector,
        PynputKeyInjector,
        WindowsKeyInjector,
    )
    register_injector("macos", MacOSKeyInjector)
    register_injector("windows", WindowsKeyInjector)
    register_injector("pynput", PynputKeyInjector)
    register_injector("console", ConsoleKeyInjector)


# Track whether defaults have been registered
_defaults_registered = False


def _ensure_defaults_registered() -> None:
    """Ensure default implementations are registered."""
    global _defaults_registered
    if not _defaults_registered:
        _register_defaults()
        _defaults_registered = True


def create_readers(config: Config) -> List[TagReader]:
    """Create the readers described by the configuration.

    Args:
        config: Configuration containing reader settings.

    Returns:
        List with one configured reader.

    Raises:
        ConfigurationError: If the reader kind is unknown.
    """
    _ensure_defaults_registered()

    kind = config.reader.kind.lower()
    logger.debug("Creating reader of kind: %s", kind)

    if kind == "nfcpy":
        from nfckeys.readers import NfcpyReader
        return [NfcpyReader(path=config.reader.device, poll_interval=config.reader.poll_interval)]
    elif kind == "mock":
        from nfckeys.readers import MockReader, create_tap_script
        script = create_tap_script(config.reader.simulate_tags) if config.reader.simulate_tags else None
        return [MockReader(script=script)]
    elif kind in _READER_REGISTRY:
        return [_READER_REGISTRY[kind](reader_id=f"{kind}-reader")]

    raise ConfigurationError(
        f"Unknown reader kind: '{config.reader.kind}'. "
        f"Available kinds: {', '.join(get_available_readers())}",
        parameter="reader.kind",
    )


def create_injector(config: Config) -> KeyInjector:
    """Create the key injector described by the configuration.

    Args:
        config: Configuration containing injector settings.

    Returns:
        A configured KeyInjector (not started).

    Raises:
        ConfigurationError: If the backend is unknown or the platform is
            not supported by "auto".
    """
    _ensure_defaults_registered()

    backend = config.injector.backend.lower()
    logger.debug("Creating key injector for backend: %s", backend)

    if backend == "auto":
        from nfckeys.injectors.base import get_key_injector_class
        try:
            injector_class = get_key_injector_class()
        except NotImplementedError as e:
            raise ConfigurationError(str(e), parameter="injector.backend") from e
    elif backend in _INJECTOR_REGISTRY:
        injector_class = _INJECTOR_REGISTRY[backend]
    else:
        raise ConfigurationError(
            f"Unknown key injection backend: '{config.injector.backend}'. "
            f"Available backends: {', '.join(get_available_injectors())}",
            parameter="injector.backend",
        )

    return injector_class(hold_time=config.injector.hold_time)


def create_store(config: Config) -> MappingStore:
    """Create the mapping store for the configured file."""
    return MappingStore(config.mappings_path)


def create_engine(
    config: Config,
    prompt: Optional[AssignmentPrompt] = None,
) -> DispatchEngine:
    """Create a complete dispatch engine from configuration.

    Args:
        config: Configuration for all components.
        prompt: Assignment prompt. Defaults to a ConsolePrompt on stdin.

    Returns:
        A configured DispatchEngine ready to start.

    Raises:
        ConfigurationError: If any component cannot be created.

    Example:
        >>> engine = create_engine(Config())
        >>> engine.start()
    """
    if prompt is None:
        from nfckeys.prompts import ConsolePrompt
        prompt = ConsolePrompt()

    injector = create_injector(config)
    readers = create_readers(config)
    store = create_store(config)

    engine = DispatchEngine(
        store=store,
        injector=injector,
        prompt=prompt,
        readers=readers,
        fixed_action=config.fixed_action,
    )

    logger.info(
        "Engine created: backend=%s, readers=%s, mappings=%s",
        injector.backend_name,
        ", ".join(reader.reader_id for reader in readers),
        store.path,
    )

    return engine


def create_engine_from_yaml(
    yaml_path: str,
    prompt: Optional[AssignmentPrompt] = None,
) -> DispatchEngine:
    """Create an engine from a YAML configuration file.

    Raises:
        ConfigurationError: If config cannot be loaded or the engine cannot be created.
    """
    return create_engine(Config.from_yaml(yaml_path), prompt)


def create_engine_from_env(prompt: Optional[AssignmentPrompt] = None) -> DispatchEngine:
    """Create an engine from NFCKEYS_* environment variables."""
    return create_engine(Config.from_env(), prompt)


def get_available_readers() -> List[str]:
    """Get list of available reader kinds."""
    _ensure_defaults_registered()
    return sorted(_READER_REGISTRY.keys())


def get_available_injectors() -> List[str]:
    """Get list of available injector backends, including "auto"."""
    _ensure_defaults_registered()
    return sorted(set(_INJECTOR_REGISTRY.keys()) | {"auto"})
