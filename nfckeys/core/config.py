"""Configuration management for nfckeys.

This module provides configuration dataclasses and utilities for loading
configuration from YAML files and environment variables.

Example YAML file:

    mappings_path: ~/tag-key-mappings.json
    log_level: INFO
    reader:
      kind: nfcpy
      device: usb
      poll_interval: 0.5
    injector:
      backend: auto
      hold_time: 0.05
    # fixed_action: right
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from .exceptions import ConfigurationError
from .store import DEFAULT_MAPPINGS_FILE


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ReaderConfig:
    """Configuration for the NFC reader.

    Attributes:
        kind: Reader implementation name ("nfcpy" or "mock").
        device: nfcpy device path, e.g. "usb" or "tty:USB0:pn532".
        poll_interval: Seconds between polls for a new tag.
        simulate_tags: Tag identifiers to tap once each with the mock reader.
    """

    kind: str = "nfcpy"
    device: str = "usb"
    poll_interval: float = 0.5
    simulate_tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.kind:
            raise ConfigurationError("Reader kind is required", parameter="reader.kind")
        if not self.device:
            raise ConfigurationError("Reader device is required", parameter="reader.device")
        if self.poll_interval <= 0:
            raise ConfigurationError(
                f"poll_interval must be positive, got {self.poll_interval}",
                parameter="reader.poll_interval",
            )


@dataclass(frozen=True)
class InjectorConfig:
    """Configuration for key injection.

    Attributes:
        backend: Backend name ("auto", "macos", "windows", "pynput", "console").
        hold_time: Seconds each key is held before release.
    """

    backend: str = "auto"
    hold_time: float = 0.05

    def __post_init__(self) -> None:
        if not self.backend:
            raise ConfigurationError("Injector backend is required", parameter="injector.backend")
        if self.hold_time < 0:
            raise ConfigurationError(
                f"hold_time must not be negative, got {self.hold_time}",
                parameter="injector.hold_time",
            )


@dataclass
class Config:
    """Main configuration container for nfckeys.

    Attributes:
        reader: NFC reader configuration.
        injector: Key injection configuration.
        mappings_path: Location of the tag-key mappings file.
        log_level: Logging level name.
        fixed_action: Key pressed for every tag. When set, the mappings
                      file is not used and nobody is prompted.
    """

    reader: ReaderConfig = field(default_factory=ReaderConfig)
    injector: InjectorConfig = field(default_factory=InjectorConfig)
    mappings_path: str = DEFAULT_MAPPINGS_FILE
    log_level: str = "INFO"
    fixed_action: Optional[str] = None

    # Environment variable names
    ENV_MAPPINGS = "NFCKEYS_MAPPINGS"
    ENV_BACKEND = "NFCKEYS_BACKEND"
    ENV_READER = "NFCKEYS_READER"
    ENV_DEVICE = "NFCKEYS_DEVICE"
    ENV_HOLD = "NFCKEYS_HOLD"
    ENV_LOG_LEVEL = "NFCKEYS_LOG_LEVEL"
    ENV_KEY = "NFCKEYS_KEY"

    def __post_init__(self) -> None:
        """Validate the log level and normalize it to upper case."""
        level = str(self.log_level).upper()
        if level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: '{self.log_level}'. Valid levels: {', '.join(LOG_LEVELS)}",
                parameter="log_level",
            )
        self.log_level = level
        if not self.mappings_path:
            raise ConfigurationError("mappings_path is required", parameter="mappings_path")
        if self.fixed_action is not None:
            self.fixed_action = str(self.fixed_action).strip().lower() or None

    @property
    def logging_level(self) -> int:
        """The numeric logging level."""
        return getattr(logging, self.log_level)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Config:
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            Config instance populated from the YAML file.

        Raises:
            ConfigurationError: If the file cannot be read or parsed.
        """
        try:
            import yaml
        except ImportError as e:
            raise ConfigurationError(
                "PyYAML is required for YAML configuration. "
                "Install it with: pip install pyyaml"
            ) from e

        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file: {e}") from e

        if data is None:
            raise ConfigurationError("Configuration file is empty")
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        return cls._from_dict(data)

    @classmethod
    def from_env(cls, base: Optional[Config] = None) -> Config:
        """Load configuration from environment variables.

        Reads the following optional variables and applies them on top of
        ``base`` (or the defaults):
        - NFCKEYS_MAPPINGS
        - NFCKEYS_BACKEND
        - NFCKEYS_READER
        - NFCKEYS_DEVICE
        - NFCKEYS_HOLD
        - NFCKEYS_LOG_LEVEL
        - NFCKEYS_KEY

        Args:
            base: Configuration to start from.

        Returns:
            Config instance with environment overrides applied.

        Raises:
            ConfigurationError: If a variable holds an invalid value.
        """
        hold_time: Optional[float] = None
        raw_hold = os.environ.get(cls.ENV_HOLD)
        if raw_hold:
            try:
                hold_time = float(raw_hold)
            except ValueError as e:
                raise ConfigurationError(
                    f"Environment variable {cls.ENV_HOLD} must be a number, got '{raw_hold}'",
                    parameter=cls.ENV_HOLD,
                ) from e

        return (base or cls()).with_overrides(
            mappings_path=os.environ.get(cls.ENV_MAPPINGS) or None,
            backend=os.environ.get(cls.ENV_BACKEND) or None,
            reader=os.environ.get(cls.ENV_READER) or None,
            device=os.environ.get(cls.ENV_DEVICE) or None,
            hold_time=hold_time,
            log_level=os.environ.get(cls.ENV_LOG_LEVEL) or None,
            fixed_action=os.environ.get(cls.ENV_KEY) or None,
        )

    def with_overrides(
        self,
        mappings_path: Optional[str] = None,
        backend: Optional[str] = None,
        reader: Optional[str] = None,
        device: Optional[str] = None,
        hold_time: Optional[float] = None,
        log_level: Optional[str] = None,
        simulate_tags: Optional[tuple[str, ...]] = None,
        fixed_action: Optional[str] = None,
    ) -> Config:
        """Return a copy with the given values replaced. None keeps the current value."""
        reader_config = self.reader
        if reader is not None:
            reader_config = replace(reader_config, kind=reader)
        if device is not None:
            reader_config = replace(reader_config, device=device)
        if simulate_tags:
            reader_config = replace(reader_config, kind="mock", simulate_tags=tuple(simulate_tags))

        injector_config = self.injector
        if backend is not None:
            injector_config = replace(injector_config, backend=backend)
        if hold_time is not None:
            injector_config = replace(injector_config, hold_time=hold_time)

        return replace(
            self,
            reader=reader_config,
            injector=injector_config,
            mappings_path=(
                os.path.expanduser(mappings_path) if mappings_path is not None
                else self.mappings_path
            ),
            log_level=log_level if log_level is not None else self.log_level,
            fixed_action=fixed_action if fixed_action is not None else self.fixed_action,
        )

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Config:
        """Create Config from a dictionary.

        Args:
            data: Configuration dictionary, typically from YAML.

        Returns:
            Config instance populated from the dictionary.

        Raises:
            ConfigurationError: If fields are missing or invalid.
        """
        reader_data = data.get("reader") or {}
        injector_data = data.get("injector") or {}

        try:
            reader = ReaderConfig(**reader_data) if reader_data else ReaderConfig()
            if reader.simulate_tags:
                reader = replace(reader, simulate_tags=tuple(str(t) for t in reader.simulate_tags))
            injector = InjectorConfig(**injector_data) if injector_data else InjectorConfig()
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        mappings_path = data.get("mappings_path") or DEFAULT_MAPPINGS_FILE

        return cls(
            reader=reader,
            injector=injector,
            mappings_path=os.path.expanduser(str(mappings_path)),
            log_level=data.get("log_level", "INFO"),
            fixed_action=data.get("fixed_action"),
        )
