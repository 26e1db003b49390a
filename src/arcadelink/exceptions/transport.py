"""Serial transport exceptions.

Raised when a serial port cannot be opened or written. The controller
never lets these escape to the game layer: they are logged and the
affected operation reports failure.
"""

from typing import Optional

from .base import ArcadeLinkError


class SerialTransportError(ArcadeLinkError):
    """Base class for serial link failures."""

    def __init__(
        self,
        user_message: str,
        technical_message: Optional[str] = None,
        port: Optional[str] = None,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(
            user_message=user_message,
            technical_message=technical_message,
            recoverable=True,
            recovery_hint=recovery_hint,
        )
        self.port = port


class PortOpenError(SerialTransportError):
    """Serial port could not be opened (busy, missing, or too slow)."""

    def __init__(self, port: str, original_error: Optional[str] = None, timed_out: bool = False):
        """
        Initialize port open error.

        Args:
            port: Path of the port that failed to open
            original_error: Error text reported by pyserial
            timed_out: True if the open call did not finish in time
        """
        if timed_out:
            user_msg = f"Timed out opening serial port {port}"
        else:
            user_msg = f"Could not open serial port {port}"

        technical = user_msg
        if original_error:
            technical += f": {original_error}"

        super().__init__(
            user_message=user_msg,
            technical_message=technical,
            port=port,
            recovery_hint=(
                "Check that the device is plugged in and not used by another program.\n"
                "Run 'arcadelink ports' to see detected ports."
            ),
        )
        self.original_error = original_error
        self.timed_out = timed_out


class PortWriteError(SerialTransportError):
    """Writing a command to an open port failed."""

    def __init__(self, port: str, original_error: Optional[str] = None):
        super().__init__(
            user_message=f"Could not write to serial port {port}",
            technical_message=f"Write to {port} failed: {original_error}",
            port=port,
            recovery_hint="The device was probably unplugged. Reconnect it and restart.",
        )
        self.original_error = original_error
