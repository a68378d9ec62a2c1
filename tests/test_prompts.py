"""Tests for ConsolePrompt."""

import io

import pytest

from nfckeys.prompts import ConsolePrompt


@pytest.fixture
def make_console():
    def _make(text=""):
        out = io.StringIO()
        return ConsolePrompt(input_stream=io.StringIO(text), output_stream=out), out
    return _make


class TestConsolePrompt:
    """Tests for ConsolePrompt.ask() and close()."""

    def test_returns_stripped_answer(self, make_console):
        prompt, out = make_console(" right \n")

        assert prompt.ask("04A224B2", ["left", "right"]) == "right"

        text = out.getvalue()
        assert "Tag detected with UID: 04A224B2" in text
        assert "Available keys: left, right" in text
        assert text.endswith(ConsolePrompt.QUESTION)

    def test_blank_line_declines(self, make_console):
        prompt, out = make_console("\n")

        assert prompt.ask("04A224B2", ["left"]) == ""
        assert out.getvalue().endswith("Skipped assignment.\n")

    def test_end_of_input_declines(self, make_console):
        prompt, _ = make_console("")
        assert prompt.ask("04A224B2", ["left"]) is None

    def test_undecodable_input_declines(self):
        out = io.StringIO()
        prompt = ConsolePrompt(
            input_stream=io.TextIOWrapper(io.BytesIO(b"\xff\xfe\n"), encoding="utf-8"),
            output_stream=out,
        )

        assert prompt.ask("04A224B2", ["left"]) is None
        assert out.getvalue().endswith("Could not read the answer. Skipped assignment.\n")

    def test_closed_input_stream_declines(self, make_console):
        prompt, _ = make_console("right\n")
        prompt._input.close()

        assert prompt.ask("04A224B2", ["right"]) is None

    def test_one_line_per_question(self, make_console):
        prompt, _ = make_console("left\nright\n")

        assert prompt.ask("01", []) == "left"
        assert prompt.ask("02", []) == "right"

    def test_closed_prompt_declines_without_reading(self, make_console):
        prompt, out = make_console("right\n")
        prompt.close()
        prompt.close()

        assert prompt.is_closed
        assert prompt.ask("04A224B2", ["right"]) is None
        assert out.getvalue() == ""

    def test_context_manager_closes(self, make_console):
        prompt, _ = make_console()
        with prompt:
            assert not prompt.is_closed
        assert prompt.is_closed
