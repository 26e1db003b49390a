"""Connection manager: one SerialConnection and one SerialDevice per open port."""

import logging
import threading
import time
from collections.abc import Callable

from arcadelink.exceptions import ArcadeLinkError, DeviceStateError, SerialTransportError
from arcadelink.models import AppConfig, ConnectionState, Role, SerialDevice

from .codec import Command, encode_command
from .connection import SerialConnection
from .scanner import PortCandidate

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Opens serial ports and owns the device records behind them.

    The manager is the only owner of ``SerialDevice`` objects. Roles are
    written onto them by the device registry through ``mark_identified``
    and ``clear_role``; the manager itself never decides a role.

    Callbacks are invoked without the manager's lock held, from the
    connection's reader thread (lines) or whichever thread closed it.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        serial_factory: Callable[[str, int], object] | None = None,
    ):
        """
        Initialize the connection manager.

        Args:
            config: Application configuration (baud rate, timeouts)
            serial_factory: Optional pyserial replacement, passed to every
                            SerialConnection
        """
        self.config = config or AppConfig()
        self._serial_factory = serial_factory
        self._lock = threading.RLock()
        self._devices: dict[str, SerialDevice] = {}
        self._connections: dict[str, SerialConnection] = {}
        self._identify_timers: dict[str, threading.Timer] = {}

        self._line_callback: Callable[[str, str], None] | None = None
        self._closed_callback: Callable[[str], None] | None = None
        self._error_callback: Callable[[str, SerialTransportError], None] | None = None

    # ================================================================
    # CALLBACK REGISTRATION
    # ================================================================

    def on_line(self, callback: Callable[[str, str], None]) -> None:
        """
        Register callback for received lines.

        Args:
            callback: Function that receives (port, line)
        """
        self._line_callback = callback

    def on_closed(self, callback: Callable[[str], None]) -> None:
        """
        Register callback fired once per connection when it ends.

        Args:
            callback: Function that receives the port path
        """
        self._closed_callback = callback

    def on_error(self, callback: Callable[[str, SerialTransportError], None]) -> None:
        """
        Register callback for transport failures that ended a connection.

        Args:
            callback: Function that receives (port, error)
        """
        self._error_callback = callback

    # ================================================================
    # OPEN / CLOSE
    # ================================================================

    def open(self, candidate: PortCandidate | str) -> SerialDevice:
        """
        Open one port and schedule the IDENTIFY request.

        Args:
            candidate: Scanner result or bare port path

        Returns:
            The new device record, in state OPEN

        Raises:
            PortOpenError: If the port could not be opened
            DeviceStateError: If the port is already open
        """
        if isinstance(candidate, str):
            candidate = PortCandidate(port=candidate)
        port = candidate.port

        with self._lock:
            existing = self._devices.get(port)
            if existing is not None and existing.state != ConnectionState.CLOSED:
                raise DeviceStateError(port, existing.state.value, ConnectionState.OPENING.value)

            device = SerialDevice(port=port, description=candidate.description)
            device.transition(ConnectionState.OPENING)
            connection = SerialConnection(
                port,
                baud_rate=self.config.baud_rate,
                on_line=lambda line: self._handle_line(port, line),
                on_closed=lambda: self._handle_closed(port),
                on_error=lambda error: self._handle_error(port, error),
                serial_factory=self._serial_factory,
            )
            self._devices[port] = device
            self._connections[port] = connection

        try:
            connection.open(timeout=self.config.open_timeout)
        except ArcadeLinkError:
            with self._lock:
                device.transition(ConnectionState.CLOSED)
                self._devices.pop(port, None)
                self._connections.pop(port, None)
            raise

        with self._lock:
            if device.state == ConnectionState.OPENING:
                device.transition(ConnectionState.OPEN)
        self._schedule_identify(port)
        return device

    def close(self, port: str) -> None:
        """Close one port. Fires the closed callback if it was open."""
        with self._lock:
            connection = self._connections.get(port)
        if connection is not None:
            connection.close()

    def close_all(self) -> None:
        """Close every open port."""
        with self._lock:
            ports = list(self._connections)
        for port in ports:
            self.close(port)
        logger.info(f"Closed {len(ports)} connections")

    def _schedule_identify(self, port: str) -> None:
        delay = self.config.identify_delay
        if delay <= 0:
            self.write(port, encode_command(Command.IDENTIFY))
            return

        timer = threading.Timer(delay, self._send_identify, args=(port,))
        timer.daemon = True
        with self._lock:
            self._identify_timers[port] = timer
        timer.start()

    def _send_identify(self, port: str) -> None:
        with self._lock:
            self._identify_timers.pop(port, None)
            device = self._devices.get(port)
            if device is None or not device.is_live:
                return
        logger.debug(f"Requesting identification from {port}")
        self.write(port, encode_command(Command.IDENTIFY))

    # ================================================================
    # WRITING
    # ================================================================

    def write(self, port: str, line: str) -> bool:
        """
        Queue a command line on one port.

        Returns:
            False if the port is not open (logged, never raised)
        """
        with self._lock:
            connection = self._connections.get(port)
        if connection is None:
            logger.warning(f"Cannot write {line!r}: no open connection on {port}")
            return False
        return connection.write(line)

    def flush(self, port: str, timeout: float = 1.0) -> bool:
        """Block until the lines queued on ``port`` have been written."""
        with self._lock:
            connection = self._connections.get(port)
        return connection.flush(timeout) if connection is not None else False

    # ================================================================
    # DEVICE RECORDS
    # ================================================================

    def device(self, port: str) -> SerialDevice | None:
        with self._lock:
            return self._devices.get(port)

    def devices(self) -> list[SerialDevice]:
        with self._lock:
            return list(self._devices.values())

    def is_open(self, port: str) -> bool:
        with self._lock:
            device = self._devices.get(port)
            return device is not None and device.is_live

    def mark_identified(self, port: str, role: Role) -> None:
        """
        Record the role the registry assigned to a device.

        Raises:
            DeviceStateError: If the device is not open
        """
        with self._lock:
            device = self._devices.get(port)
            if device is None:
                raise DeviceStateError(port, ConnectionState.CLOSED.value, ConnectionState.IDENTIFIED.value)
            if device.state == ConnectionState.OPENING:
                # READY raced ahead of open() returning
                device.transition(ConnectionState.OPEN)
            device.transition(ConnectionState.IDENTIFIED)
            device.role = role

    def clear_role(self, port: str) -> None:
        """Drop a device's role back-reference (orphaned or closing)."""
        with self._lock:
            device = self._devices.get(port)
            if device is not None:
                device.role = Role.unassigned()

    def record_pong(self, port: str) -> None:
        with self._lock:
            device = self._devices.get(port)
            if device is not None:
                device.last_pong = time.monotonic()

    # ================================================================
    # CONNECTION CALLBACKS
    # ================================================================

    def _handle_line(self, port: str, line: str) -> None:
        with self._lock:
            device = self._devices.get(port)
            if device is not None:
                device.touch()
        if self._line_callback:
            self._line_callback(port, line)

    def _handle_error(self, port: str, error: SerialTransportError) -> None:
        if self._error_callback:
            self._error_callback(port, error)

    def _handle_closed(self, port: str) -> None:
        with self._lock:
            timer = self._identify_timers.pop(port, None)
            device = self._devices.pop(port, None)
            self._connections.pop(port, None)
            if device is not None and device.state != ConnectionState.CLOSED:
                device.transition(ConnectionState.CLOSED)
        if timer is not None:
            timer.cancel()

        logger.info(f"Device on {port} disconnected")
        if self._closed_callback:
            try:
                self._closed_callback(port)
            except Exception as e:
                logger.error(f"Error in closed callback for {port}: {e}", exc_info=True)
