"""Tests for the serial connection and connection manager."""

import threading
import time
from unittest.mock import Mock

import pytest

from arcadelink.devices import ConnectionManager, LineFramer, SerialConnection
from arcadelink.exceptions import DeviceStateError, PortOpenError, SerialTransportError
from arcadelink.models import AppConfig, ConnectionState, Role


@pytest.mark.unit
class TestLineFramer:
    def test_complete_lines(self):
        framer = LineFramer()
        assert framer.feed(b"BUTTON_1_PRESSED\nBUTTON_1_RELEASED\n") == ["BUTTON_1_PRESSED", "BUTTON_1_RELEASED"]

    def test_partial_reads_are_buffered(self):
        framer = LineFramer()
        assert framer.feed(b"BIKE_RE") == []
        assert framer.feed(b"V:5:80") == []
        assert framer.feed(b":1001\r\nPON") == ["BIKE_REV:5:80:1001"]
        assert framer.pending == b"PON"

    def test_empty_lines_skipped(self):
        assert LineFramer().feed(b"\n\r\n\n") == []

    def test_invalid_utf8_is_replaced(self):
        lines = LineFramer().feed(b"\xffBUTTON\n")
        assert len(lines) == 1
        assert lines[0].endswith("BUTTON")

    def test_overlong_partial_line_discarded(self):
        framer = LineFramer(max_length=8)
        assert framer.feed(b"0123456789") == []
        assert framer.pending == b""
        assert framer.feed(b"OK\n") == ["OK"]

    def test_overlong_complete_line_discarded(self):
        framer = LineFramer(max_length=8)
        assert framer.feed(b"BUTTON_" + b"1" * 20 + b"_PRESSED\nPONG_1\n") == ["PONG_1"]
        assert framer.pending == b""


@pytest.mark.integration
class TestSerialConnection:
    def test_lines_are_delivered(self, serial_factory, wait_until):
        received = []
        conn = SerialConnection("/dev/ttyACM0", on_line=received.append, serial_factory=serial_factory)
        conn.open(timeout=1.0)
        try:
            serial_factory["/dev/ttyACM0"].feed("BUTTON_1_")
            serial_factory["/dev/ttyACM0"].feed("PRESSED\n")
            assert wait_until(lambda: received == ["BUTTON_1_PRESSED"])
        finally:
            conn.close()

    def test_writes_are_ordered_and_terminated(self, serial_factory):
        conn = SerialConnection("/dev/ttyACM0", serial_factory=serial_factory)
        conn.open(timeout=1.0)
        for command in ["LED_ON", "LED_OFF", "PING"]:
            assert conn.write(command)
        assert conn.flush(timeout=1.0)
        assert serial_factory["/dev/ttyACM0"].written == [b"LED_ON\n", b"LED_OFF\n", b"PING\n"]
        conn.close()

    def test_close_drains_queue_and_fires_closed_once(self, serial_factory):
        closed = []
        conn = SerialConnection("/dev/ttyACM0", on_closed=lambda: closed.append(True), serial_factory=serial_factory)
        conn.open(timeout=1.0)
        conn.write("LED_OFF")
        conn.close()
        conn.close()
        assert serial_factory["/dev/ttyACM0"].lines == ["LED_OFF"]
        assert closed == [True]
        assert not conn.is_open

    def test_write_after_close_fails(self, serial_factory):
        conn = SerialConnection("/dev/ttyACM0", serial_factory=serial_factory)
        conn.open(timeout=1.0)
        conn.close()
        assert conn.write("LED_ON") is False

    def test_open_failure_raises_port_open_error(self, serial_factory):
        serial_factory.failing.add("/dev/ttyACM0")
        conn = SerialConnection("/dev/ttyACM0", serial_factory=serial_factory)
        with pytest.raises(PortOpenError) as exc_info:
            conn.open(timeout=1.0)
        assert exc_info.value.port == "/dev/ttyACM0"
        assert not exc_info.value.timed_out

    def test_open_times_out(self):
        release = threading.Event()

        def hanging_factory(port, baud_rate):
            release.wait(5.0)
            raise OSError("never opened")

        conn = SerialConnection("/dev/ttyACM0", serial_factory=hanging_factory)
        started = time.monotonic()
        with pytest.raises(PortOpenError) as exc_info:
            conn.open(timeout=0.2)
        release.set()
        assert exc_info.value.timed_out
        assert time.monotonic() - started < 2.0

    def test_handle_opened_after_timeout_is_closed(self):
        late = Mock()
        opened = threading.Event()

        def slow_factory(port, baud_rate):
            time.sleep(0.3)
            opened.set()
            return late

        conn = SerialConnection("/dev/ttyACM0", serial_factory=slow_factory)
        with pytest.raises(PortOpenError) as exc_info:
            conn.open(timeout=0.05)
        assert exc_info.value.timed_out

        assert opened.wait(2.0)
        deadline = time.monotonic() + 2.0
        while not late.close.called and time.monotonic() < deadline:
            time.sleep(0.01)
        late.close.assert_called_once()
        assert not conn.is_open

    def test_read_failure_reports_error_then_closed(self, serial_factory, wait_until):
        events = []
        conn = SerialConnection(
            "/dev/ttyACM0",
            on_closed=lambda: events.append("closed"),
            on_error=lambda error: events.append(type(error)),
            serial_factory=serial_factory,
        )
        conn.open(timeout=1.0)
        serial_factory["/dev/ttyACM0"].unplug()
        assert wait_until(lambda: "closed" in events)
        assert events == [SerialTransportError, "closed"]
        assert not conn.is_open

    def test_write_failure_closes_connection(self, serial_factory, wait_until):
        closed = threading.Event()
        conn = SerialConnection("/dev/ttyACM0", on_closed=closed.set, serial_factory=serial_factory)
        conn.open(timeout=1.0)
        serial_factory["/dev/ttyACM0"].fail_writes = True
        conn.write("LED_ON")
        assert closed.wait(2.0)
        assert conn.write("LED_OFF") is False

    def test_callback_errors_do_not_kill_reader(self, serial_factory, wait_until):
        received = []

        def on_line(line):
            received.append(line)
            if line == "BAD":
                raise RuntimeError("observer bug")

        conn = SerialConnection("/dev/ttyACM0", on_line=on_line, serial_factory=serial_factory)
        conn.open(timeout=1.0)
        serial_factory["/dev/ttyACM0"].feed("BAD\nGOOD\n")
        assert wait_until(lambda: received == ["BAD", "GOOD"])
        conn.close()


@pytest.fixture
def manager(serial_factory):
    mgr = ConnectionManager(AppConfig(identify_delay=0, open_timeout=1.0), serial_factory=serial_factory)
    yield mgr
    mgr.close_all()


@pytest.mark.integration
class TestConnectionManager:
    def test_open_sends_identify(self, manager, serial_factory):
        device = manager.open("/dev/ttyACM0")
        assert device.state == ConnectionState.OPEN
        assert manager.flush("/dev/ttyACM0")
        assert serial_factory["/dev/ttyACM0"].lines == ["IDENTIFY"]

    def test_identify_is_delayed(self, serial_factory, wait_until):
        mgr = ConnectionManager(AppConfig(identify_delay=0.1), serial_factory=serial_factory)
        try:
            mgr.open("/dev/ttyACM0")
            assert serial_factory["/dev/ttyACM0"].lines == []
            assert wait_until(lambda: serial_factory["/dev/ttyACM0"].lines == ["IDENTIFY"])
        finally:
            mgr.close_all()

    def test_failed_open_leaves_no_device(self, manager, serial_factory):
        serial_factory.failing.add("/dev/ttyACM0")
        with pytest.raises(PortOpenError):
            manager.open("/dev/ttyACM0")
        assert manager.device("/dev/ttyACM0") is None

    def test_double_open_rejected(self, manager):
        manager.open("/dev/ttyACM0")
        with pytest.raises(DeviceStateError):
            manager.open("/dev/ttyACM0")

    def test_lines_forwarded_with_port(self, manager, serial_factory, wait_until):
        received = []
        manager.on_line(lambda port, line: received.append((port, line)))
        manager.open("/dev/ttyACM0")
        serial_factory["/dev/ttyACM0"].send_line("PONG_1")
        assert wait_until(lambda: received == [("/dev/ttyACM0", "PONG_1")])

    def test_close_removes_device_and_notifies(self, manager):
        closed = []
        manager.on_closed(closed.append)
        device = manager.open("/dev/ttyACM0")
        manager.close("/dev/ttyACM0")
        assert closed == ["/dev/ttyACM0"]
        assert device.state == ConnectionState.CLOSED
        assert manager.device("/dev/ttyACM0") is None
        assert manager.write("/dev/ttyACM0", "LED_ON") is False

    def test_reopen_creates_new_device(self, manager):
        first = manager.open("/dev/ttyACM0")
        manager.close("/dev/ttyACM0")
        second = manager.open("/dev/ttyACM0")
        assert second is not first
        assert second.role == Role.unassigned()

    def test_mark_identified_and_clear_role(self, manager):
        device = manager.open("/dev/ttyACM0")
        manager.mark_identified("/dev/ttyACM0", Role.button(2))
        assert device.state == ConnectionState.IDENTIFIED
        assert device.role == Role.button(2)
        manager.clear_role("/dev/ttyACM0")
        assert device.is_orphaned

    def test_record_pong(self, manager):
        device = manager.open("/dev/ttyACM0")
        assert device.last_pong is None
        manager.record_pong("/dev/ttyACM0")
        assert device.last_pong is not None
