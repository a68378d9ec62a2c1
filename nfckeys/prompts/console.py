"""Console prompt that reads assignments from a terminal."""

import logging
import sys
from typing import Optional, Sequence, TextIO

from nfckeys.prompts.base import AssignmentPrompt


logger = logging.getLogger(__name__)


class ConsolePrompt(AssignmentPrompt):
    """Prompt the operator on a text stream, one line per answer.

    An empty line declines the assignment. End of input (e.g. stdin
    closed) also declines.

    Example:
        prompt = ConsolePrompt()
        answer = prompt.ask("04A224B2", ["left", "right", "space"])
    """

    QUESTION = (
        "Enter the key to assign to this tag "
        "(press Enter to assign, or just Enter to skip): "
    )

    def __init__(
        self,
        input_stream: Optional[TextIO] = None,
        output_stream: Optional[TextIO] = None,
    ) -> None:
        """Initialize the console prompt.

        Args:
            input_stream: Stream to read answers from. Defaults to sys.stdin.
            output_stream: Stream to write questions to. Defaults to sys.stdout.
        """
        self._input = input_stream or sys.stdin
        self._output = output_stream or sys.stdout
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def ask(self, tag_id: str, choices: Sequence[str]) -> Optional[str]:
        if self._closed:
            logger.warning("Prompt is closed, skipping assignment for tag %s", tag_id)
            return None

        self._write(f"\nTag detected with UID: {tag_id}\n")
        if choices:
            self._write(f"Available keys: {', '.join(choices)}\n")
        self._write(self.QUESTION)
        self._output.flush()

        try:
            line = self._input.readline()
        except (OSError, ValueError) as e:
            # Undecodable bytes, a closed stream or a lost terminal
            logger.warning("Could not read an answer for tag %s: %s", tag_id, e)
            self._write("\nCould not read the answer. Skipped assignment.\n")
            return None

        if line == "":
            logger.info("End of input while waiting for an assignment for tag %s", tag_id)
            return None

        answer = line.strip()
        if not answer:
            self._write("Skipped assignment.\n")
        return answer

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._output.flush()
        except ValueError:
            # Output stream already closed
            pass

    def _write(self, text: str) -> None:
        self._output.write(text)
