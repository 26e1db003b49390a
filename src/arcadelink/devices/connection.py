"""One serial link: line framing, ordered writes, reader and writer threads."""

import logging
import queue
import threading
from collections.abc import Callable

import serial

from arcadelink.exceptions import PortOpenError, SerialTransportError, wrap_serial_error

from .codec import LINE_TERMINATOR

logger = logging.getLogger(__name__)

# Longest line accepted, and longest partial line kept while waiting for a terminator
MAX_LINE_LENGTH = 4096

# Seconds a blocking read waits before checking for shutdown
READ_TIMEOUT = 0.1


class LineFramer:
    """
    Buffers raw bytes and yields complete text lines.

    Lines end at ``\\n``; a trailing ``\\r`` is dropped. Bytes that are not
    valid UTF-8 are replaced rather than rejected.
    """

    def __init__(self, max_length: int = MAX_LINE_LENGTH):
        self._buffer = bytearray()
        self._max_length = max_length

    def feed(self, data: bytes) -> list[str]:
        """
        Add received bytes and return every line they complete.

        Args:
            data: Raw bytes from the port

        Returns:
            Complete lines without terminators (may be empty)
        """
        self._buffer.extend(data)
        lines = []
        terminator = LINE_TERMINATOR.encode()
        while (index := self._buffer.find(terminator)) >= 0:
            raw = bytes(self._buffer[:index])
            del self._buffer[: index + 1]
            if len(raw) > self._max_length:
                logger.warning(f"Discarding {len(raw)}-byte line longer than {self._max_length} bytes")
                continue
            text = raw.decode("utf-8", errors="replace").rstrip("\r")
            if text:
                lines.append(text)

        if len(self._buffer) > self._max_length:
            logger.warning(f"Discarding {len(self._buffer)} bytes without a line terminator")
            self._buffer.clear()
        return lines

    @property
    def pending(self) -> bytes:
        return bytes(self._buffer)


class _Flush:
    """Marker queued behind pending writes; set once they have been written."""

    def __init__(self):
        self.done = threading.Event()


_STOP = object()


def _default_serial_factory(port: str, baud_rate: int):
    return serial.Serial(port, baudrate=baud_rate, timeout=READ_TIMEOUT)


class SerialConnection:
    """
    Owns one open pyserial port.

    A reader thread frames incoming bytes into lines and calls ``on_line``.
    A writer thread drains a FIFO queue, so commands for this device are
    written in submission order and never interleaved.

    ``on_closed`` fires exactly once, whether the port was closed on
    request or died under us. ``on_error`` fires before it when the
    close was caused by a transport failure.
    """

    def __init__(
        self,
        port: str,
        baud_rate: int = 115200,
        on_line: Callable[[str], None] | None = None,
        on_closed: Callable[[], None] | None = None,
        on_error: Callable[[SerialTransportError], None] | None = None,
        serial_factory: Callable[[str, int], object] | None = None,
    ):
        """
        Initialize the connection (the port is not opened yet).

        Args:
            port: OS path of the serial port
            baud_rate: Line speed
            on_line: Called from the reader thread with each received line
            on_closed: Called once when the connection ends
            on_error: Called with the transport error that ended the connection
            serial_factory: Callable ``(port, baud_rate)`` returning a pyserial-like
                            object; defaults to ``serial.Serial``
        """
        self.port = port
        self.baud_rate = baud_rate
        self._on_line = on_line
        self._on_closed = on_closed
        self._on_error = on_error
        self._serial_factory = serial_factory or _default_serial_factory

        self._serial = None
        self._framer = LineFramer()
        self._queue: queue.Queue = queue.Queue()
        self._running = False
        self._closed = False
        self._close_lock = threading.Lock()
        self._reader_thread: threading.Thread | None = None
        self._writer_thread: threading.Thread | None = None

    # ================================================================
    # LIFECYCLE
    # ================================================================

    def open(self, timeout: float = 3.0) -> None:
        """
        Open the port and start the reader and writer threads.

        The pyserial open runs in a helper thread so a wedged driver can't
        hang the caller for longer than ``timeout``.

        Raises:
            PortOpenError: If the port could not be opened in time
        """
        result: dict = {}
        result_lock = threading.Lock()

        def do_open():
            try:
                handle = self._serial_factory(self.port, self.baud_rate)
            except Exception as e:
                with result_lock:
                    result["error"] = e
                return
            with result_lock:
                abandoned = result.get("timed_out", False)
                if not abandoned:
                    result["serial"] = handle
            if abandoned:
                # The caller already gave up; release the OS handle
                logger.warning(f"{self.port} opened after the timeout, closing it")
                try:
                    handle.close()
                except (serial.SerialException, OSError) as e:
                    logger.error(f"Failed to close late handle for {self.port}: {e}")

        opener = threading.Thread(target=do_open, daemon=True, name=f"open-{self.port}")
        opener.start()
        opener.join(timeout)

        with result_lock:
            if "serial" not in result and "error" not in result:
                result["timed_out"] = True

        if result.get("timed_out"):
            logger.error(f"Timed out after {timeout}s opening {self.port}")
            raise PortOpenError(self.port, original_error=f"no response in {timeout}s", timed_out=True)

        if "error" in result:
            error = wrap_serial_error(result["error"], self.port, during="open")
            logger.error(f"Failed to open {self.port}: {error.technical_message}")
            raise error

        self._serial = result["serial"]
        self._running = True
        self._reader_thread = threading.Thread(
            target=self._read_loop, daemon=True, name=f"reader-{self.port}"
        )
        self._writer_thread = threading.Thread(
            target=self._write_loop, daemon=True, name=f"writer-{self.port}"
        )
        self._reader_thread.start()
        self._writer_thread.start()
        logger.info(f"Opened {self.port} at {self.baud_rate} baud")

    def close(self) -> None:
        """Write whatever is queued, then close the port. Safe to call twice."""
        self._shutdown(error=None, drain=True)

    @property
    def is_open(self) -> bool:
        return self._running and not self._closed

    # ================================================================
    # WRITING
    # ================================================================

    def write(self, line: str) -> bool:
        """
        Queue one command line for writing.

        Args:
            line: Command text without terminator

        Returns:
            True if queued, False if the connection is not open
        """
        if not self.is_open:
            logger.warning(f"Dropping {line!r}: {self.port} is not open")
            return False
        self._queue.put(line)
        return True

    def flush(self, timeout: float = 1.0) -> bool:
        """
        Block until every line queued so far has been written.

        Returns:
            True if the queue drained in time
        """
        if not self.is_open:
            return False
        marker = _Flush()
        self._queue.put(marker)
        return marker.done.wait(timeout)

    def _write_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            if isinstance(item, _Flush):
                item.done.set()
                continue
            try:
                self._serial.write((item + LINE_TERMINATOR).encode("ascii"))
                logger.debug(f"{self.port} <- {item}")
            except (serial.SerialException, OSError) as e:
                error = wrap_serial_error(e, self.port, during="write")
                logger.error(error.technical_message)
                threading.Thread(
                    target=self._shutdown, args=(error, False), daemon=True
                ).start()
                return

    # ================================================================
    # READING
    # ================================================================

    def _read_loop(self) -> None:
        while self._running:
            try:
                waiting = getattr(self._serial, "in_waiting", 0) or 1
                data = self._serial.read(waiting)
            except (serial.SerialException, OSError) as e:
                if not self._running:
                    return
                error = wrap_serial_error(e, self.port, during="read")
                logger.error(f"Read from {self.port} failed: {e}")
                self._shutdown(error=error, drain=False)
                return

            if not data:
                continue
            for line in self._framer.feed(data):
                logger.debug(f"{self.port} -> {line}")
                if self._on_line:
                    try:
                        self._on_line(line)
                    except Exception as e:
                        logger.error(f"Error handling line from {self.port}: {e}", exc_info=True)

    # ================================================================
    # SHUTDOWN
    # ================================================================

    def _shutdown(self, error: SerialTransportError | None, drain: bool) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        current = threading.current_thread()
        if drain and self._writer_thread and self._writer_thread is not current:
            self._queue.put(_STOP)
            self._writer_thread.join(timeout=1.0)
        else:
            self._queue.put(_STOP)

        self._running = False
        if self._serial is not None:
            try:
                self._serial.close()
            except (serial.SerialException, OSError) as e:
                logger.warning(f"Error closing {self.port}: {e}")

        if self._reader_thread and self._reader_thread is not current:
            self._reader_thread.join(timeout=1.0)

        logger.info(f"Closed {self.port}")
        if error is not None and self._on_error:
            self._invoke(self._on_error, error)
        if self._on_closed:
            self._invoke(self._on_closed)

    def _invoke(self, callback, *args) -> None:
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Error in connection callback for {self.port}: {e}", exc_info=True)
