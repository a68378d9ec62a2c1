"""
List actions command implementation.

Prints the key names that can be assigned to a tag, with the payload the
selected backend sends for each.
"""

import argparse

from nfckeys.core.exceptions import ConfigurationError
from nfckeys.core.factory import create_injector
from nfckeys.core.registry import ACTION_ALIASES

from .base import BaseCommand


class ListActionsCommand(BaseCommand):
    """Command to list assignable actions."""

    def execute(self, args: argparse.Namespace) -> int:
        """
        Execute the list-actions command.

        Args:
            args: Parsed command-line arguments.

        Returns:
            Exit code.
        """
        try:
            config = self.build_config(args)
            injector = create_injector(config)
            registry = injector.create_registry()
        except ConfigurationError as e:
            self.error(str(e))
            return 1

        print(f"Assignable keys (backend: {registry.backend}):")
        for name in registry.known_action_names():
            descriptor = registry.resolve(name)
            alias_of = ACTION_ALIASES.get(name)
            if alias_of:
                print(f"  {name:<12} {descriptor.code!s:<10} (same as {alias_of})")
            else:
                print(f"  {name:<12} {descriptor.code}")

        print(f"\n{len(registry)} keys")
        return 0
