"""
Command-line interface for nfckeys.

Provides the ``nfckeys`` command.
"""

from .main import CLI, run_cli

__all__ = ["CLI", "run_cli"]
