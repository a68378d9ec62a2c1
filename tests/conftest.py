"""Shared fixtures for the nfckeys test suite."""

import io
from typing import Callable, List, Optional, Sequence

import pytest

from nfckeys.core.registry import ActionRegistry
from nfckeys.core.store import MappingStore
from nfckeys.injectors.console import CONSOLE_KEYS, ConsoleKeyInjector
from nfckeys.prompts.base import AssignmentPrompt


class ScriptedPrompt(AssignmentPrompt):
    """Prompt that returns canned answers and records what it was asked."""

    def __init__(self, answers: Sequence[Optional[str]] = ()) -> None:
        self.answers = list(answers)
        self.asked: List[str] = []
        self.choices: List[Sequence[str]] = []
        self.on_ask: Optional[Callable[[str], None]] = None
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def ask(self, tag_id, choices):
        self.asked.append(tag_id)
        self.choices.append(tuple(choices))
        if self.on_ask:
            self.on_ask(tag_id)
        if self._closed or not self.answers:
            return None
        return self.answers.pop(0)

    def close(self) -> None:
        self._closed = True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove NFCKEYS_* variables so tests see the defaults."""
    for name in (
        "NFCKEYS_MAPPINGS",
        "NFCKEYS_BACKEND",
        "NFCKEYS_READER",
        "NFCKEYS_DEVICE",
        "NFCKEYS_HOLD",
        "NFCKEYS_LOG_LEVEL",
        "NFCKEYS_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mappings_path(tmp_path):
    """Path of a mappings file inside a temporary directory."""
    return tmp_path / "tag-key-mappings.json"


@pytest.fixture
def store(mappings_path):
    """An empty MappingStore backed by a temporary file."""
    return MappingStore(mappings_path)


@pytest.fixture
def registry():
    """Action registry built from the console key table."""
    return ActionRegistry(CONSOLE_KEYS, backend="console")


@pytest.fixture
def output():
    """StringIO capturing console injector output."""
    return io.StringIO()


@pytest.fixture
def injector(output):
    """Console injector writing to a StringIO, without timestamps."""
    return ConsoleKeyInjector(stream=output, include_timestamp=False)


@pytest.fixture
def make_prompt():
    """Factory for ScriptedPrompt instances."""
    return ScriptedPrompt
