"""Tests for nfckeys readers.

This module contains tests for:
- MockReader: manual and scripted taps
- BaseTagReader: subscriber management
- NfcpyReader: device opening and the polling thread, with nfc mocked
"""

import sys
import threading
from unittest.mock import MagicMock, patch

import pytest

from nfckeys.core.events import ReaderEvent, TagPresentEvent, TagRemovedEvent, TagType
from nfckeys.core.exceptions import ReaderError
from nfckeys.readers import (
    MockReader,
    NfcpyReader,
    ScriptedTap,
    TagReader,
    create_tap_script,
)


# ===========================================================================
# Fixtures
# ===========================================================================


class EventCollector:
    """Subscriber that records events and signals when one of a type arrives."""

    def __init__(self, wait_for=lambda event: isinstance(event, TagRemovedEvent)):
        self.events = []
        self.wait_for = wait_for
        self.arrived = threading.Event()

    def __call__(self, event):
        self.events.append(event)
        if self.wait_for(event):
            self.arrived.set()

    def of_type(self, event_type):
        return [e for e in self.events if isinstance(e, event_type)]


@pytest.fixture
def collector():
    return EventCollector()


@pytest.fixture
def mock_nfc():
    """Create mock nfc module with a frontend that reports one tag."""
    tag = MagicMock()
    tag.type = "Type2Tag"
    tag.identifier = bytes.fromhex("04A224B2")

    def connect(rdwr, terminate):
        rdwr["on-connect"](tag)
        rdwr["on-release"](tag)
        return False

    mock = MagicMock()
    clf = mock.ContactlessFrontend.return_value
    clf.device = "SONY RC-S380/P on usb:001:004"
    clf.connect.side_effect = connect
    return mock


# ===========================================================================
# Protocol
# ===========================================================================


class TestProtocol:
    """Readers satisfy the TagReader protocol structurally."""

    def test_mock_reader(self):
        assert isinstance(MockReader(), TagReader)

    def test_nfcpy_reader(self):
        assert isinstance(NfcpyReader(), TagReader)

    def test_reader_ids(self):
        assert MockReader().reader_id == "mock-reader"
        assert NfcpyReader().reader_id == "nfcpy:usb"
        assert NfcpyReader(path="tty:USB0:pn532").reader_id == "nfcpy:tty:USB0:pn532"
        assert NfcpyReader(reader_id="front-door").reader_id == "front-door"


# ===========================================================================
# MockReader
# ===========================================================================


class TestMockReader:
    """Tests for MockReader."""

    def test_connect_reports_attached(self, collector):
        reader = MockReader(reader_id="r1")
        reader.subscribe(collector)

        reader.connect()

        assert reader.is_connected
        assert len(collector.events) == 1
        event = collector.events[0]
        assert isinstance(event, ReaderEvent)
        assert event.connected
        assert event.message == "r1 device attached"

    def test_tap_emits_present_then_removed(self, collector):
        reader = MockReader()
        reader.subscribe(collector)
        reader.connect()

        reader.tap("04A224B2")

        present, removed = collector.events[1:]
        assert isinstance(present, TagPresentEvent)
        assert present.uid == "04A224B2"
        assert present.tag_type is TagType.ISO_14443_3
        assert isinstance(removed, TagRemovedEvent)
        assert removed.timestamp == present.timestamp

    def test_tap_with_data_blob(self, collector):
        reader = MockReader()
        reader.subscribe(collector)
        reader.connect()

        reader.tap(None, tag_type=TagType.ISO_14443_4, data=b"\x01\x02")

        present = collector.of_type(TagPresentEvent)[0]
        assert present.uid is None
        assert present.data == b"\x01\x02"

    def test_tap_when_disconnected_is_ignored(self, collector):
        reader = MockReader()
        reader.subscribe(collector)

        reader.tap("04A224B2")

        assert collector.events == []

    def test_disconnect_reports_removed(self, collector):
        reader = MockReader()
        reader.subscribe(collector)
        reader.connect()

        reader.disconnect()
        reader.disconnect()

        removed = [e for e in collector.of_type(ReaderEvent) if not e.connected]
        assert len(removed) == 1
        assert not reader.is_connected

    def test_connect_is_idempotent(self, collector):
        reader = MockReader()
        reader.subscribe(collector)

        reader.connect()
        reader.connect()

        assert len(collector.events) == 1
        reader.disconnect()

    def test_scripted_taps(self, collector):
        reader = MockReader(script=[ScriptedTap(0.01, "04A224B2")])
        reader.subscribe(collector)

        reader.connect()
        assert collector.arrived.wait(timeout=2.0)
        reader.disconnect()

        assert [e.uid for e in collector.of_type(TagPresentEvent)] == ["04A224B2"]
        assert reader.is_scripted

    def test_context_manager(self):
        with MockReader() as reader:
            assert reader.is_connected
        assert not reader.is_connected


class TestSubscribers:
    """Tests for BaseTagReader subscriber management."""

    def test_failing_subscriber_does_not_block_others(self, collector):
        reader = MockReader()
        reader.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        reader.subscribe(collector)
        reader.connect()

        reader.tap("04A224B2")

        assert len(collector.of_type(TagPresentEvent)) == 1

    def test_subscribe_twice_delivers_once(self, collector):
        reader = MockReader()
        reader.subscribe(collector)
        reader.subscribe(collector)

        reader.connect()

        assert len(collector.events) == 1

    def test_unsubscribe(self, collector):
        reader = MockReader()
        reader.subscribe(collector)
        reader.unsubscribe(collector)
        reader.unsubscribe(collector)

        reader.connect()

        assert collector.events == []


def test_create_tap_script():
    script = create_tap_script(["01", "02"], interval=0.5)

    assert [tap.uid for tap in script] == ["01", "02"]
    assert all(tap.delay == 0.5 for tap in script)
    assert all(tap.tag_type is TagType.ISO_14443_3 for tap in script)


# ===========================================================================
# NfcpyReader
# ===========================================================================


class TestNfcpyReader:
    """Tests for NfcpyReader with the nfc module mocked."""

    def test_missing_nfcpy(self):
        reader = NfcpyReader()
        with patch.dict(sys.modules, {"nfc": None}):
            with pytest.raises(ReaderError, match="pip install nfcpy"):
                reader.connect()
        assert not reader.is_connected

    def test_no_device(self, mock_nfc):
        mock_nfc.ContactlessFrontend.side_effect = IOError(19, "No such device")
        reader = NfcpyReader(path="usb")

        with patch.dict(sys.modules, {"nfc": mock_nfc}):
            with pytest.raises(ReaderError, match="No NFC reader found at 'usb'"):
                reader.connect()

        assert not reader.is_connected

    def test_opens_configured_path(self, mock_nfc):
        reader = NfcpyReader(path="usb:072f:2200")

        with patch.dict(sys.modules, {"nfc": mock_nfc}):
            reader.connect()
        reader.disconnect()

        mock_nfc.ContactlessFrontend.assert_called_once_with("usb:072f:2200")

    def test_tag_events(self, mock_nfc, collector):
        reader = NfcpyReader(poll_interval=0.2)
        reader.subscribe(collector)

        with patch.dict(sys.modules, {"nfc": mock_nfc}):
            reader.connect()
        assert collector.arrived.wait(timeout=2.0)
        reader.disconnect()

        attached = collector.events[0]
        assert isinstance(attached, ReaderEvent)
        assert attached.message == "SONY RC-S380/P on usb:001:004 device attached"

        present = collector.of_type(TagPresentEvent)[0]
        assert present.reader_id == "nfcpy:usb"
        assert present.tag_type is TagType.ISO_14443_3
        assert present.uid == bytes.fromhex("04A224B2")

        rdwr = mock_nfc.ContactlessFrontend.return_value.connect.call_args.kwargs["rdwr"]
        assert rdwr["interval"] == 0.2

    def test_disconnect_closes_device(self, mock_nfc, collector):
        reader = NfcpyReader()
        reader.subscribe(collector)

        with patch.dict(sys.modules, {"nfc": mock_nfc}):
            reader.connect()
        reader.disconnect()

        mock_nfc.ContactlessFrontend.return_value.close.assert_called_once()
        assert not reader.is_connected
        assert collector.events[-1] == ReaderEvent(
            reader_id="nfcpy:usb",
            timestamp=collector.events[-1].timestamp,
            connected=False,
            message="nfcpy:usb device removed",
        )

    def test_driver_error_reports_reader_lost(self, mock_nfc):
        collector = EventCollector(
            wait_for=lambda event: isinstance(event, ReaderEvent) and not event.connected
        )
        clf = mock_nfc.ContactlessFrontend.return_value
        clf.connect.side_effect = IOError("device disconnected")
        reader = NfcpyReader()
        reader.subscribe(collector)

        with patch.dict(sys.modules, {"nfc": mock_nfc}):
            reader.connect()
        assert collector.arrived.wait(timeout=2.0)
        reader._thread.join(timeout=2.0)

        lost = [e for e in collector.of_type(ReaderEvent) if not e.connected]
        assert len(lost) == 1
        assert "device disconnected" in lost[0].message
        assert not reader.is_connected
        clf.close.assert_called_once()
