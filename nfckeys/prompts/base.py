"""Base prompt protocol for interactive tag assignment.

A prompt is asked for an action name whenever a tag with no stored
mapping is tapped. It blocks until the operator answers; there is no
timeout.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence


class AssignmentPrompt(ABC):
    """Abstract base class for assignment prompts.

    Lifecycle:
        1. Create the prompt
        2. ask() once per unmapped tag
        3. close() on shutdown (before readers are disconnected)
    """

    @abstractmethod
    def ask(self, tag_id: str, choices: Sequence[str]) -> Optional[str]:
        """Ask the operator which action to assign to a tag.

        Args:
            tag_id: Identifier of the unmapped tag.
            choices: Action names to present to the operator.

        Returns:
            The raw answer, or None / an empty string to decline.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the prompt. Later ask() calls decline. Safe to call twice."""
        pass

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """Whether close() has been called."""
        pass

    def __enter__(self) -> "AssignmentPrompt":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
