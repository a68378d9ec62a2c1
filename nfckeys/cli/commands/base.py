"""
Base command class for CLI commands.

Provides common interface and utilities for all commands.
"""

import argparse
import sys
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from nfckeys.core.config import Config

if TYPE_CHECKING:
    from ..main import CLI


class BaseCommand(ABC):
    """
    Abstract base class for CLI commands.

    All commands should inherit from this class and implement the execute method.
    """

    def __init__(self, cli: "CLI"):
        """
        Initialize the command.

        Args:
            cli: The parent CLI instance.
        """
        self._cli = cli

    @property
    def cli(self) -> "CLI":
        """Get the parent CLI instance."""
        return self._cli

    @property
    def shutdown_requested(self) -> bool:
        """Check if shutdown was requested."""
        return self._cli.shutdown_requested

    @abstractmethod
    def execute(self, args: argparse.Namespace) -> int:
        """
        Execute the command.

        Args:
            args: Parsed command-line arguments.

        Returns:
            Exit code (0 for success, non-zero for failure).
        """
        pass

    def build_config(self, args: argparse.Namespace) -> Config:
        """
        Build the configuration from file, environment and flags.

        Later sources win: defaults, then --config, then NFCKEYS_* variables,
        then command-line flags.

        Raises:
            ConfigurationError: If any source holds an invalid value.
        """
        config = Config.from_yaml(args.config) if args.config else Config()
        config = Config.from_env(base=config)
        return config.with_overrides(
            mappings_path=args.mappings,
            backend=args.backend,
            reader=args.reader,
            device=args.device,
            hold_time=args.hold,
            simulate_tags=tuple(args.simulate_tags) if args.simulate_tags else None,
            fixed_action=args.fixed_action,
        )

    def error(self, message: str) -> None:
        """
        Log an error message to stderr.

        Args:
            message: The error message.
        """
        print(f"Error: {message}", file=sys.stderr)
