"""
Entry point for the ``nfckeys`` command.

There are no subcommands: the process loads the mappings, then listens for
tags until interrupted. ``--list-actions`` prints the assignable keys and
exits.
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from nfckeys import __version__

from .commands import ListActionsCommand, RunCommand


LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class CLI:
    """
    Command-line application.

    Owns argument parsing, logging setup and signal handling, and hands
    the parsed arguments to a command.
    """

    def __init__(self) -> None:
        self._shutdown_requested = False
        self._parser = self._create_parser()

    @property
    def shutdown_requested(self) -> bool:
        """Whether SIGINT or SIGTERM has been received."""
        return self._shutdown_requested

    @property
    def parser(self) -> argparse.ArgumentParser:
        return self._parser

    def request_shutdown(self) -> None:
        self._shutdown_requested = True

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="nfckeys",
            description="Press a keyboard key when an NFC tag is tapped on a reader.",
        )
        parser.add_argument(
            "--config",
            metavar="FILE",
            help="YAML configuration file",
        )
        parser.add_argument(
            "--mappings",
            metavar="FILE",
            help="Tag-key mappings file (default: tag-key-mappings.json)",
        )
        parser.add_argument(
            "--backend",
            metavar="NAME",
            help="Key injection backend: auto, macos, windows, pynput, console",
        )
        parser.add_argument(
            "--reader",
            metavar="NAME",
            help="Reader kind: nfcpy or mock",
        )
        parser.add_argument(
            "--device",
            metavar="PATH",
            help="nfcpy device path, e.g. usb or tty:USB0:pn532",
        )
        parser.add_argument(
            "--simulate-tag",
            metavar="UID",
            action="append",
            dest="simulate_tags",
            help="Tap this UID with the mock reader instead of using hardware (repeatable)",
        )
        parser.add_argument(
            "--key",
            metavar="NAME",
            dest="fixed_action",
            help="Press this key for every tag, without a mappings file or prompt",
        )
        parser.add_argument(
            "--hold",
            metavar="SECONDS",
            type=float,
            help="Seconds to hold each key",
        )
        parser.add_argument(
            "--list-actions",
            action="store_true",
            help="List the keys that can be assigned and exit",
        )
        parser.add_argument(
            "-v", "--verbose",
            action="store_true",
            help="Enable debug logging",
        )
        parser.add_argument(
            "--version",
            action="version",
            version=f"%(prog)s {__version__}",
        )
        return parser

    def configure_logging(self, level: int) -> None:
        """Configure root logging for the process."""
        logging.basicConfig(level=level, format=LOG_FORMAT, force=True)

    def _install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self._handle_signal)
        if hasattr(signal, "SIGTERM"):
            signal.signal(signal.SIGTERM, self._handle_signal)

    def _handle_signal(self, signum: int, frame) -> None:
        already_requested = self._shutdown_requested
        self._shutdown_requested = True
        if not already_requested:
            # Interrupts a blocking prompt read
            raise KeyboardInterrupt

    def run(self, argv: Optional[List[str]] = None) -> int:
        """
        Parse arguments and execute the selected command.

        Args:
            argv: Command-line arguments. Defaults to sys.argv[1:].

        Returns:
            Exit code.
        """
        args = self._parser.parse_args(argv)

        if args.list_actions:
            return ListActionsCommand(self).execute(args)

        self._install_signal_handlers()
        return RunCommand(self).execute(args)


def run_cli(argv: Optional[List[str]] = None) -> None:
    """Console script entry point."""
    sys.exit(CLI().run(argv))


if __name__ == "__main__":
    run_cli()
