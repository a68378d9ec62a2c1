"""Tests for the DispatchEngine.

This module covers:
- Per-event dispatch: lookup hit, assignment, decline, rejection, failures
- Fixed-action mode
- FIFO processing of taps that arrive while a prompt is open
- Lifecycle: start/stop ordering, rollback and idempotency
"""

import io
import json
import logging
import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from nfckeys.core.engine import DispatchEngine
from nfckeys.core.events import (
    DispatchStatus,
    ReaderEvent,
    TagPresentEvent,
    TagRemovedEvent,
    TagType,
)
from nfckeys.core.exceptions import (
    ConfigurationError,
    DispatchError,
    IdentityExtractionError,
    InvariantViolation,
    ReaderError,
    ValidationError,
)
from nfckeys.core.store import MappingStore
from nfckeys.injectors.console import ConsoleKeyInjector
from nfckeys.prompts.console import ConsolePrompt
from nfckeys.readers.base import BaseTagReader
from nfckeys.readers.mock import MockReader


# ===========================================================================
# Fixtures
# ===========================================================================


@pytest.fixture
def reader():
    return MockReader(reader_id="test-reader")


@pytest.fixture
def make_engine(store, injector, reader, make_prompt):
    """Build an engine around the shared store, injector and mock reader."""
    def _make(answers=(), prompt=None, fixed_action=None):
        prompt = prompt or make_prompt(answers)
        return DispatchEngine(
            store=store,
            injector=injector,
            prompt=prompt,
            readers=[reader],
            fixed_action=fixed_action,
        )
    return _make


def tag_event(uid="04A224B2", reader_id="test-reader"):
    """A tag-presence event for an ISO 14443-3 tag with a hex UID."""
    return TagPresentEvent(
        reader_id=reader_id,
        tag_type=TagType.ISO_14443_3,
        uid=bytes.fromhex(uid),
    )


def process_all(engine):
    """Process queued events until the queue is empty."""
    results = []
    while engine.pending:
        results.append(engine.process_next(timeout=0))
    return results


class ThreadedReader(BaseTagReader):
    """Reader whose polling thread reports one last tap while disconnecting."""

    def __init__(self, reader_id="threaded"):
        super().__init__(reader_id)
        self._release = threading.Event()
        self._thread = None
        self.joined = None

    def connect(self):
        self._connected = True
        self._thread = threading.Thread(target=self._poll, daemon=True)
        self._thread.start()

    def _poll(self):
        self._release.wait(timeout=5.0)
        self._emit(tag_event(reader_id=self.reader_id))

    def disconnect(self):
        self._connected = False
        self._release.set()
        self._thread.join(timeout=2.0)
        self.joined = not self._thread.is_alive()


# ===========================================================================
# Dispatch Scenarios
# ===========================================================================


class TestDispatch:
    """Tests for DispatchEngine.on_tag_present()."""

    def test_first_tap_assigns_and_presses(self, make_engine, store, mappings_path, output):
        engine = make_engine(["right"])
        engine.start()

        result = engine.on_tag_present(tag_event("04A224B2"))

        assert result.status is DispatchStatus.DISPATCHED
        assert result.ok
        assert result.tag_id == "04A224B2"
        assert result.action == "right"
        assert store.get("04A224B2") == "right"
        assert json.loads(mappings_path.read_text(encoding="utf-8")) == {"04A224B2": "right"}
        assert "Key press: RIGHT" in output.getvalue()
        engine.stop()

    def test_known_tag_presses_without_prompt(self, make_engine, mappings_path, make_prompt, output):
        mappings_path.write_text('{"04A224B2": "right"}', encoding="utf-8")
        prompt = make_prompt()
        engine = make_engine(prompt=prompt)
        engine.start()

        result = engine.on_tag_present(tag_event("04A224B2"))

        assert result.status is DispatchStatus.DISPATCHED
        assert result.action == "right"
        assert prompt.asked == []
        assert output.getvalue().count("Key press: RIGHT") == 1
        engine.stop()

    def test_repeated_taps_prompt_once(self, make_engine, make_prompt, injector):
        prompt = make_prompt(["space"])
        engine = make_engine(prompt=prompt)
        engine.start()

        results = [engine.on_tag_present(tag_event("04A224B2")) for _ in range(3)]

        assert [r.action for r in results] == ["space", "space", "space"]
        assert all(r.ok for r in results)
        assert prompt.asked == ["04A224B2"]
        assert injector.press_count == 3
        engine.stop()

    def test_invalid_answer_is_rejected(self, make_engine, store, injector):
        engine = make_engine(["banana"])
        engine.start()

        result = engine.on_tag_present(tag_event("04A224B2"))

        assert result.status is DispatchStatus.REJECTED
        assert isinstance(result.error, ValidationError)
        assert result.action == "banana"
        assert len(store) == 0
        assert injector.press_count == 0
        engine.stop()

    def test_invalid_answer_logs_valid_keys(self, make_engine, caplog):
        engine = make_engine(["banana"])
        engine.start()

        with caplog.at_level(logging.INFO, logger="nfckeys.core.engine"):
            engine.on_tag_present(tag_event("04A224B2"))

        assert "Invalid key: 'banana'" in caplog.text
        assert "Valid keys: left, right" in caplog.text
        engine.stop()

    def test_declined_assignment_is_skipped(self, make_engine, store, injector):
        engine = make_engine([""])
        engine.start()

        result = engine.on_tag_present(tag_event("04A224B2"))

        assert result.status is DispatchStatus.SKIPPED
        assert result.error is None
        assert len(store) == 0
        assert injector.press_count == 0
        engine.stop()

    def test_prompt_error_fails_and_engine_continues(self, make_engine, make_prompt, store):
        prompt = make_prompt(["right"])

        def lose_terminal(tag_id):
            if tag_id == "01":
                raise OSError(5, "Input/output error")

        prompt.on_ask = lose_terminal
        engine = make_engine(prompt=prompt)
        engine.start()

        failed = engine.on_tag_present(tag_event("01"))
        later = engine.on_tag_present(tag_event("02"))

        assert failed.status is DispatchStatus.FAILED
        assert isinstance(failed.error, OSError)
        assert failed.tag_id == "01"
        assert later.ok
        assert store.get("02") == "right"
        assert engine.statistics["events_failed"] == 1
        engine.stop()

    def test_undecodable_console_answer_is_skipped(self, make_engine, reader, store, injector):
        prompt = ConsolePrompt(
            input_stream=io.TextIOWrapper(io.BytesIO(b"\xff\xfe\n"), encoding="utf-8"),
            output_stream=io.StringIO(),
        )
        engine = make_engine(prompt=prompt)
        engine.start()

        reader.tap("04A224B2")
        results = [r for r in process_all(engine) if r.status is not DispatchStatus.IGNORED]

        assert [r.status for r in results] == [DispatchStatus.SKIPPED]
        assert len(store) == 0
        assert injector.press_count == 0
        engine.stop()

    def test_unreadable_tag_fails_and_engine_continues(self, make_engine):
        engine = make_engine(["right"])
        engine.start()

        bad = engine.on_tag_present(TagPresentEvent(reader_id="test-reader"))
        good = engine.on_tag_present(tag_event("04A224B2"))

        assert bad.status is DispatchStatus.FAILED
        assert isinstance(bad.error, IdentityExtractionError)
        assert bad.reader_id == "test-reader"
        assert good.ok
        engine.stop()

    def test_unknown_stored_action_is_invariant_violation(
        self, make_engine, mappings_path, injector, caplog
    ):
        mappings_path.write_text('{"04A224B2": "f13"}', encoding="utf-8")
        engine = make_engine()

        with caplog.at_level(logging.WARNING, logger="nfckeys.core.engine"):
            engine.start()
            result = engine.on_tag_present(tag_event("04A224B2"))

        assert result.status is DispatchStatus.FAILED
        assert isinstance(result.error, InvariantViolation)
        assert injector.press_count == 0
        assert "Stored action 'f13' is not a known key" in caplog.text
        assert any(r.levelno == logging.CRITICAL for r in caplog.records)
        engine.stop()

    def test_injection_failure_reports_and_continues(self, make_engine, injector):
        engine = make_engine(["right"])
        engine.start()

        with patch.object(
            injector,
            "_send",
            side_effect=[DispatchError("osascript exited with status 1: not allowed"), None],
        ):
            failed = engine.on_tag_present(tag_event("04A224B2"))
            succeeded = engine.on_tag_present(tag_event("04A224B2"))

        assert failed.status is DispatchStatus.FAILED
        assert isinstance(failed.error, DispatchError)
        assert failed.error.tag_id == "04A224B2"
        assert failed.error.action == "right"
        assert failed.error.hint == ConsoleKeyInjector.PERMISSION_HINT
        assert succeeded.ok
        engine.stop()

    def test_unexpected_injector_exception_is_wrapped(self, make_engine, injector):
        engine = make_engine(["right"])
        engine.start()

        with patch.object(injector, "_send", side_effect=OSError("no display")):
            result = engine.on_tag_present(tag_event("04A224B2"))

        assert result.status is DispatchStatus.FAILED
        assert isinstance(result.error, DispatchError)
        assert isinstance(result.error.cause, OSError)
        engine.stop()

    def test_injector_not_started_fails(self, store, injector, make_prompt):
        store.load()
        store.set("04A224B2", "right")
        engine = DispatchEngine(store=store, injector=injector, prompt=make_prompt())

        result = engine.on_tag_present(tag_event("04A224B2"))

        assert result.status is DispatchStatus.FAILED
        assert isinstance(result.error.cause, RuntimeError)

    def test_unwritable_store_still_dispatches(self, make_engine, store, injector):
        engine = make_engine(["right"])
        engine.start()

        with patch("nfckeys.core.store.os.replace", side_effect=OSError("read-only")):
            result = engine.on_tag_present(tag_event("04A224B2"))

        assert result.ok
        assert store.get("04A224B2") == "right"
        assert store.is_dirty
        assert injector.press_count == 1
        engine.stop()

    def test_corrupt_store_degrades_to_empty(self, make_engine, mappings_path, store, caplog):
        mappings_path.write_text("{corrupt", encoding="utf-8")
        engine = make_engine(["left"])

        with caplog.at_level(logging.WARNING, logger="nfckeys.core.engine"):
            engine.start()

        assert engine.is_running
        assert "Continuing with an empty mapping table" in caplog.text

        result = engine.on_tag_present(tag_event("04A224B2"))
        assert result.ok
        assert store.get("04A224B2") == "left"
        engine.stop()


# ===========================================================================
# Fixed Action
# ===========================================================================


class TestFixedAction:
    """Tests for engines that press one key for every tag."""

    def test_every_tag_presses_fixed_key(self, make_engine, make_prompt, mappings_path, output):
        prompt = make_prompt(["left"])
        engine = make_engine(prompt=prompt, fixed_action=" Right ")
        engine.start()

        results = [engine.on_tag_present(tag_event(uid)) for uid in ("01", "02", "01")]

        assert engine.fixed_action == "right"
        assert [(r.status, r.action) for r in results] == [
            (DispatchStatus.DISPATCHED, "right"),
            (DispatchStatus.DISPATCHED, "right"),
            (DispatchStatus.DISPATCHED, "right"),
        ]
        assert prompt.asked == []
        assert output.getvalue().count("Key press: RIGHT") == 3
        engine.stop()
        assert not mappings_path.exists()

    def test_stored_mappings_are_not_used(self, make_engine, mappings_path, store):
        mappings_path.write_text('{"04A224B2": "left"}', encoding="utf-8")
        engine = make_engine(fixed_action="space")
        engine.start()

        result = engine.on_tag_present(tag_event("04A224B2"))

        assert result.action == "space"
        assert len(store) == 0
        engine.stop()

    def test_unknown_fixed_key_fails_start(self, make_engine, injector, reader):
        engine = make_engine(fixed_action="banana")

        with pytest.raises(ConfigurationError, match="Unknown key: 'banana'") as exc_info:
            engine.start()

        assert exc_info.value.parameter == "fixed_action"
        assert not engine.is_running
        assert not injector.is_ready
        assert not reader.is_connected


# ===========================================================================
# Event Routing and Queue
# ===========================================================================


class TestEventQueue:
    """Tests for submit(), process_next(), handle_event() and run()."""

    def test_removal_and_reader_events_are_ignored(self, make_engine):
        engine = make_engine()

        removed = engine.handle_event(TagRemovedEvent(reader_id="r1"))
        attached = engine.handle_event(ReaderEvent(reader_id="r1", message="r1 device attached"))

        assert removed.status is DispatchStatus.IGNORED
        assert attached.status is DispatchStatus.IGNORED
        assert attached.reader_id == "r1"

    def test_tap_is_queued_and_processed(self, make_engine, reader):
        engine = make_engine(["right"])
        engine.start()

        reader.tap("04A224B2")
        results = process_all(engine)

        statuses = [r.status for r in results]
        # attach notice, presence, removal
        assert statuses == [
            DispatchStatus.IGNORED,
            DispatchStatus.DISPATCHED,
            DispatchStatus.IGNORED,
        ]
        engine.stop()

    def test_submit_when_stopped_is_dropped(self, make_engine):
        engine = make_engine()

        engine.submit(tag_event())

        assert engine.pending == 0

    def test_process_next_times_out(self, make_engine):
        engine = make_engine()
        assert engine.process_next(timeout=0.01) is None

    def test_tap_during_prompt_is_processed_after(self, make_engine, make_prompt, reader, store):
        prompt = make_prompt(["right", "left"])

        def tap_second_tag(tag_id):
            if tag_id == "04A224B2":
                reader.tap("04B3C1D2")

        prompt.on_ask = tap_second_tag
        engine = make_engine(prompt=prompt)
        engine.start()

        reader.tap("04A224B2")
        results = [r for r in process_all(engine) if r.status is not DispatchStatus.IGNORED]

        assert [(r.tag_id, r.action) for r in results] == [
            ("04A224B2", "right"),
            ("04B3C1D2", "left"),
        ]
        assert prompt.asked == ["04A224B2", "04B3C1D2"]
        assert store.get("04B3C1D2") == "left"
        engine.stop()

    def test_run_until_should_stop(self, make_engine, reader, injector):
        engine = make_engine(["right"])
        engine.start()
        reader.tap("04A224B2")
        reader.tap("04A224B2")

        engine.run(should_stop=lambda: engine.pending == 0, poll_interval=0.01)

        assert injector.press_count == 2
        engine.stop()

    def test_run_returns_when_not_running(self, make_engine):
        engine = make_engine()
        engine.run(should_stop=None, poll_interval=0.01)
        assert not engine.is_running

    def test_statistics(self, make_engine):
        engine = make_engine(["right", "", "banana"])
        engine.start()

        engine.on_tag_present(tag_event("01"))
        engine.on_tag_present(tag_event("01"))
        engine.on_tag_present(tag_event("02"))
        engine.on_tag_present(tag_event("03"))
        engine.on_tag_present(TagPresentEvent(reader_id="test-reader"))

        assert engine.statistics == {
            "events_received": 5,
            "events_dispatched": 2,
            "events_skipped": 1,
            "events_rejected": 1,
            "events_failed": 1,
        }
        engine.stop()


# ===========================================================================
# Lifecycle
# ===========================================================================


class TestLifecycle:
    """Tests for start/stop ordering and rollback."""

    def test_start_loads_store_and_starts_injector(self, make_engine, mappings_path, injector, reader):
        mappings_path.write_text('{"04A224B2": "right"}', encoding="utf-8")
        engine = make_engine()

        engine.start()

        assert engine.is_running
        assert len(engine.store) == 1
        assert injector.is_ready
        assert reader.is_connected
        engine.stop()

    def test_start_is_idempotent(self, make_engine):
        engine = make_engine()
        engine.start()
        engine.start()
        assert engine.is_running
        engine.stop()

    def test_stop_is_idempotent(self, make_engine):
        engine = make_engine()
        engine.stop()
        engine.start()
        engine.stop()
        engine.stop()
        assert not engine.is_running

    def test_stop_order(self, store, registry):
        calls = []
        prompt = MagicMock()
        prompt.close.side_effect = lambda: calls.append("prompt.close")
        reader = MagicMock()
        reader.reader_id = "r1"
        reader.disconnect.side_effect = lambda: calls.append("reader.disconnect")
        injector = MagicMock()
        injector.stop.side_effect = lambda: calls.append("injector.stop")

        engine = DispatchEngine(
            store=store, injector=injector, prompt=prompt, readers=[reader], registry=registry
        )
        engine.start()
        engine.stop()

        assert calls == ["prompt.close", "reader.disconnect", "injector.stop"]
        reader.unsubscribe.assert_called_once_with(engine.submit)

    def test_stop_continues_after_errors(self, store, registry):
        prompt = MagicMock()
        prompt.close.side_effect = RuntimeError("prompt broke")
        reader = MagicMock()
        reader.reader_id = "r1"
        reader.disconnect.side_effect = RuntimeError("usb gone")
        injector = MagicMock()

        engine = DispatchEngine(
            store=store, injector=injector, prompt=prompt, readers=[reader], registry=registry
        )
        engine.start()
        engine.stop()

        injector.stop.assert_called_once()
        assert not engine.is_running

    def test_reader_failure_rolls_back(self, store, registry, injector, make_prompt):
        good = MockReader(reader_id="good")
        bad = MagicMock()
        bad.reader_id = "bad"
        bad.connect.side_effect = ReaderError("No NFC reader found at 'usb'", reader_id="bad")

        engine = DispatchEngine(
            store=store,
            injector=injector,
            prompt=make_prompt(),
            readers=[good, bad],
            registry=registry,
        )

        with pytest.raises(ReaderError):
            engine.start()

        assert not engine.is_running
        assert not good.is_connected
        assert not injector.is_ready
        assert engine.pending == 0
        bad.unsubscribe.assert_called_once_with(engine.submit)

    def test_injector_failure_propagates(self, store, registry, make_prompt):
        injector = MagicMock()
        injector.start.side_effect = ImportError("pywin32 is required")
        reader = MagicMock()

        engine = DispatchEngine(
            store=store,
            injector=injector,
            prompt=make_prompt(),
            readers=[reader],
            registry=registry,
        )

        with pytest.raises(ImportError):
            engine.start()

        assert not engine.is_running
        reader.connect.assert_not_called()

    def test_stop_does_not_block_reader_thread(self, store, injector, make_prompt):
        reader = ThreadedReader()
        engine = DispatchEngine(
            store=store, injector=injector, prompt=make_prompt(), readers=[reader]
        )
        engine.start()

        started = time.monotonic()
        engine.stop()
        elapsed = time.monotonic() - started

        assert reader.joined
        assert elapsed < 1.0
        assert not engine.is_running
        assert engine.pending == 0

    def test_stop_discards_queued_events(self, make_engine, reader):
        engine = make_engine()
        engine.start()
        reader.tap("04A224B2")

        engine.stop()

        assert engine.pending == 0

    def test_context_manager(self, make_engine, make_prompt):
        prompt = make_prompt()
        engine = make_engine(prompt=prompt)

        with engine:
            assert engine.is_running

        assert not engine.is_running
        assert prompt.is_closed

    def test_registry_defaults_to_injector_table(self, store, injector, make_prompt):
        engine = DispatchEngine(store=store, injector=injector, prompt=make_prompt())
        assert engine.registry.backend == "console"

    def test_repr(self, make_engine):
        assert "running=False" in repr(make_engine())


def test_end_to_end_with_fresh_process(mappings_path, make_prompt, output):
    """An assignment made in one run is used without prompting in the next."""
    first = DispatchEngine(
        store=MappingStore(mappings_path),
        injector=ConsoleKeyInjector(stream=output, include_timestamp=False),
        prompt=make_prompt(["pagedown"]),
    )
    with first:
        assert first.on_tag_present(tag_event("04A224B2")).ok

    prompt = make_prompt()
    second = DispatchEngine(
        store=MappingStore(mappings_path),
        injector=ConsoleKeyInjector(stream=output, include_timestamp=False),
        prompt=prompt,
    )
    with second:
        result = second.on_tag_present(tag_event("04a224b2"))

    assert result.action == "pagedown"
    assert prompt.asked == []
    assert output.getvalue().count("Key press: PAGEDOWN") == 2
