"""Tests for device, role and cadence models."""

import pytest

from arcadelink.exceptions import (
    ArcadeLinkError,
    DeviceStateError,
    ErrorCollector,
    ErrorContext,
    PortOpenError,
    PortWriteError,
    SerialTransportError,
    format_error_for_display,
    wrap_serial_error,
)
from arcadelink.models import CadenceSample, ConnectionState, Role, RoleKind, SerialDevice, is_button_id


@pytest.mark.unit
class TestRole:
    def test_roles_are_values(self):
        assert Role.button(2) == Role.button(2)
        assert Role.button(2) != Role.button(3)
        assert len({Role.button(1), Role.button(1), Role.cadence()}) == 2

    def test_str(self):
        assert str(Role.button(4)) == "Button 4"
        assert str(Role.cadence()) == "Cadence sensor"
        assert str(Role.unassigned()) == "Unassigned"

    def test_is_assigned(self):
        assert Role.button(1).is_assigned
        assert Role.cadence().kind == RoleKind.CADENCE
        assert not Role.unassigned().is_assigned

    def test_button_id_range(self):
        with pytest.raises(ValueError):
            Role.button(5)

    @pytest.mark.parametrize("value,expected", [(1, True), (4, True), (0, False), (5, False), (True, False), ("1", False)])
    def test_is_button_id(self, value, expected):
        assert is_button_id(value) is expected


@pytest.mark.unit
class TestSerialDevice:
    def test_full_lifecycle(self):
        device = SerialDevice(port="/dev/ttyACM0")
        for state in [ConnectionState.OPENING, ConnectionState.OPEN, ConnectionState.IDENTIFIED, ConnectionState.CLOSED]:
            device.transition(state)
        assert device.state == ConnectionState.CLOSED

    def test_closed_is_terminal(self):
        device = SerialDevice(port="/dev/ttyACM0")
        device.transition(ConnectionState.CLOSED)
        with pytest.raises(DeviceStateError):
            device.transition(ConnectionState.OPENING)

    def test_cannot_identify_before_open(self):
        device = SerialDevice(port="/dev/ttyACM0")
        with pytest.raises(DeviceStateError) as exc_info:
            device.transition(ConnectionState.IDENTIFIED)
        assert exc_info.value.port == "/dev/ttyACM0"

    def test_reidentification_allowed(self):
        device = SerialDevice(port="P", state=ConnectionState.IDENTIFIED, role=Role.button(1))
        device.transition(ConnectionState.IDENTIFIED)
        assert device.is_live

    def test_orphaned(self):
        device = SerialDevice(port="P", state=ConnectionState.IDENTIFIED)
        assert device.is_orphaned
        device.role = Role.button(1)
        assert not device.is_orphaned

    def test_touch_updates_activity(self):
        device = SerialDevice(port="P")
        before = device.last_activity
        device.touch()
        assert device.last_activity >= before


@pytest.mark.unit
class TestCadenceSample:
    @pytest.mark.parametrize(
        "value,valid",
        [(0, True), (12, True), (3.0, True), (-1, False), (float("nan"), False), (2.5, False), (True, False), (None, False)],
    )
    def test_is_valid_field(self, value, valid):
        assert CadenceSample.is_valid_field(value) is valid

    def test_inactive_until_touched(self):
        sample = CadenceSample()
        assert not sample.is_active
        assert sample.touched().is_active

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            CadenceSample(revolution_count=-1)


@pytest.mark.unit
class TestErrors:
    def test_wrap_open_error(self):
        error = wrap_serial_error(OSError("Permission denied"), "/dev/ttyACM0")
        assert isinstance(error, PortOpenError)
        assert "Permission denied" in error.technical_message
        assert error.recoverable

    def test_wrap_timeout(self):
        error = wrap_serial_error(TimeoutError("slow"), "/dev/ttyACM0")
        assert error.timed_out

    def test_wrap_write_error(self):
        assert isinstance(wrap_serial_error(OSError("gone"), "P", during="write"), PortWriteError)

    def test_wrap_read_error(self):
        error = wrap_serial_error(OSError("gone"), "P", during="read")
        assert type(error) is SerialTransportError
        assert error.port == "P"

    def test_already_wrapped_passes_through(self):
        original = PortWriteError("P", "x")
        assert wrap_serial_error(original, "P") is original

    def test_format_for_display(self):
        message, hint = format_error_for_display(PortOpenError("COM3"))
        assert "COM3" in message
        assert hint is not None
        assert format_error_for_display(ValueError("bad")) == ("ValueError: bad", None)

    def test_error_collector(self):
        collector = ErrorCollector("open ports")
        with collector.try_operation("open A"):
            pass
        with collector.try_operation("open B"):
            raise PortOpenError("B")
        assert collector.success_count == 1
        assert collector.error_count == 1
        assert "open B" in collector.get_summary()
        assert isinstance(collector.errors[0][1], ArcadeLinkError)

    def test_error_context_swallows_when_asked(self):
        with ErrorContext("open port", re_raise=False) as ctx:
            raise PortOpenError("P")
        assert isinstance(ctx.error, PortOpenError)

    def test_error_context_re_raises(self):
        with pytest.raises(ValueError):
            with ErrorContext("parse"):
                raise ValueError("bad")
