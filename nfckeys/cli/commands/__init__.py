"""
CLI command implementations.

Each command is implemented as a separate module with a consistent interface.
"""

from .base import BaseCommand
from .list_actions import ListActionsCommand
from .run import RunCommand

__all__ = ["BaseCommand", "ListActionsCommand", "RunCommand"]
