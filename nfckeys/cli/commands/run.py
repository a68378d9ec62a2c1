"""
Run command implementation.

Loads the mappings, connects the reader and presses keys for tapped tags
until the process is interrupted.
"""

import argparse
import logging
import traceback

from nfckeys.core.config import Config
from nfckeys.core.engine import DispatchEngine
from nfckeys.core.exceptions import ConfigurationError
from nfckeys.core.factory import create_engine

from .base import BaseCommand


logger = logging.getLogger(__name__)


class RunCommand(BaseCommand):
    """Command to run the dispatch engine."""

    def execute(self, args: argparse.Namespace) -> int:
        """
        Execute the run command.

        Args:
            args: Parsed command-line arguments.

        Returns:
            Exit code: 0 after a clean shutdown, 1 if startup failed.
        """
        verbose = args.verbose

        try:
            config = self.build_config(args)
        except ConfigurationError as e:
            self.error(str(e))
            return 1

        self.cli.configure_logging(logging.DEBUG if verbose else config.logging_level)

        try:
            engine = create_engine(config)
        except ConfigurationError as e:
            self.error(str(e))
            return 1

        try:
            engine.start()
        except Exception as e:
            self.error(f"Failed to start: {e}")
            if verbose:
                traceback.print_exc()
            return 1

        self._print_banner(config, engine)
        return self._run_engine(engine)

    def _print_banner(self, config: Config, engine: DispatchEngine) -> None:
        """Print startup summary."""
        if engine.fixed_action:
            print(f"Fixed key: {engine.fixed_action} (mappings file not used)")
        else:
            print(f"Mappings file: {engine.store.path} ({len(engine.store)} tags assigned)")
        print(f"Key backend: {engine.registry.backend}")
        readers = ", ".join(reader.reader_id for reader in engine.readers)
        print(f"Reader: {readers}")
        if config.reader.simulate_tags:
            print(f"Simulating taps: {', '.join(config.reader.simulate_tags)}")
        print("Waiting for NFC tags. Press Ctrl+C to stop.")

    def _run_engine(self, engine: DispatchEngine) -> int:
        """Process events until shutdown is requested."""
        try:
            engine.run(should_stop=lambda: self.shutdown_requested)
        except KeyboardInterrupt:
            print()
        finally:
            print("Shutting down...")
            engine.stop()

        stats = engine.statistics
        logger.debug("Final statistics: %s", stats)
        print(
            f"Stopped. {stats['events_dispatched']} keys pressed, "
            f"{stats['events_failed']} failures."
        )
        return 0
