"""Prompts used to assign an action to an unmapped tag.

Available Prompts:
    - AssignmentPrompt: Abstract base class defining the prompt protocol
    - ConsolePrompt: Reads the answer from a terminal (stdin by default)
"""

from nfckeys.prompts.base import AssignmentPrompt
from nfckeys.prompts.console import ConsolePrompt

__all__ = [
    "AssignmentPrompt",
    "ConsolePrompt",
]
