"""Pytest fixtures for tests."""

import queue
import random
import time
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import serial

from arcadelink.core import ArcadeController
from arcadelink.devices import PortCandidate
from arcadelink.models import AppConfig, Role


class FakeSerial:
    """In-memory stand-in for serial.Serial."""

    def __init__(self, port: str, baudrate: int = 115200):
        self.port = port
        self.baudrate = baudrate
        self.is_open = True
        self.written: list[bytes] = []
        self.fail_writes = False
        self._incoming: queue.Queue = queue.Queue()
        self._unplugged = False

    @property
    def in_waiting(self) -> int:
        return 0

    def read(self, size: int = 1) -> bytes:
        if self._unplugged:
            raise serial.SerialException("device reports readiness to read but returned no data")
        if not self.is_open:
            raise serial.SerialException("Attempting to use a port that is not open")
        try:
            return self._incoming.get(timeout=0.02)
        except queue.Empty:
            return b""

    def write(self, data: bytes) -> int:
        if self.fail_writes:
            raise serial.SerialException("write failed: [Errno 5] Input/output error")
        self.written.append(data)
        return len(data)

    def close(self) -> None:
        self.is_open = False

    # Test helpers

    def feed(self, text: str) -> None:
        """Queue bytes as if the device had sent them."""
        self._incoming.put(text.encode())

    def send_line(self, line: str) -> None:
        self.feed(line + "\n")

    def unplug(self) -> None:
        self._unplugged = True

    @property
    def lines(self) -> list[str]:
        return b"".join(self.written).decode().splitlines()


class FakeSerialFactory:
    """Creates FakeSerial ports and remembers them by path."""

    def __init__(self):
        self.ports: dict[str, FakeSerial] = {}
        self.failing: set[str] = set()

    def __call__(self, port: str, baud_rate: int) -> FakeSerial:
        if port in self.failing:
            raise serial.SerialException(f"[Errno 2] could not open port {port}: No such file or directory")
        fake = FakeSerial(port, baud_rate)
        self.ports[port] = fake
        return fake

    def __getitem__(self, port: str) -> FakeSerial:
        return self.ports[port]


class RecordingSleeper:
    """Pattern sleeper that records pauses instead of waiting."""

    def __init__(self, log: list | None = None):
        self.pauses: list[float] = []
        self.log = log

    def __call__(self, token, seconds: float) -> bool:
        self.pauses.append(seconds)
        if self.log is not None:
            self.log.append(("pause", round(seconds * 1000)))
        return token.cancelled


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll until predicate() is truthy or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


@pytest.fixture
def temp_dir():
    """Create a temporary directory that gets cleaned up."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fast_config():
    """Config with every delay switched off."""
    return AppConfig(identify_delay=0, connect_stagger=0, confirm_flash_ms=0, open_timeout=1.0)


@pytest.fixture
def serial_factory():
    return FakeSerialFactory()


@pytest.fixture
def sleeper():
    return RecordingSleeper()


@pytest.fixture
def controller(fast_config, serial_factory, sleeper):
    """Controller wired to fake serial ports; nothing is opened yet."""
    ctrl = ArcadeController(
        fast_config,
        serial_factory=serial_factory,
        sleeper=sleeper,
        rng=random.Random(1234),
    )
    yield ctrl
    ctrl.stop()


@pytest.fixture
def connect_button(controller, serial_factory):
    """Open a fake port and complete the button handshake on it."""

    def connect(port: str, role_id: int, color: str = "GREEN") -> FakeSerial:
        controller.connect(PortCandidate(port=port))
        fake = serial_factory[port]
        fake.send_line(f"BUTTON_{role_id}_{color}_READY")
        assert wait_for(lambda: controller.registry.role_for(port) == Role.button(role_id))
        return fake

    return connect


@pytest.fixture
def connect_cadence(controller, serial_factory):
    """Open a fake port and announce the cadence sensor on it."""

    def connect(port: str = "/dev/ttyACM9") -> FakeSerial:
        controller.connect(PortCandidate(port=port))
        fake = serial_factory[port]
        fake.send_line("BIKE_SENSOR_READY")
        assert wait_for(controller.is_cadence_sensor_connected)
        return fake

    return connect


@pytest.fixture
def wait_until():
    """The wait_for polling helper, for tests that watch reader threads."""
    return wait_for
