"""Base exception class for ArcadeLink.

Failures in the controller fall into a few families, and only some of
them are exceptions:

- Transport: a port can't be opened, or a read or write fails.
  Raised as `SerialTransportError` subclasses inside the device layer,
  then logged and turned into a closed connection or a `False` return.
- Device lifecycle: an illegal `SerialDevice` state move
  (`DeviceStateError`). This is a programming error, not a device fault.
- Configuration: a broken or invalid config file (`ConfigurationError`).
  This is the only family the CLI shows to the user as an error.
- Protocol: a malformed line from a device. Never raised; it decodes to
  `Unrecognized` and is logged.
- Role conflicts and bad sensor data: a second device claiming a role,
  or a negative cadence reading. These are never raised either; the
  registry and the input tracker resolve them and log what happened.

Every raised error carries a message for users, a message for the log,
and an optional hint on how to fix it.
"""

from typing import Optional


class ArcadeLinkError(Exception):
    """
    Base exception for all errors raised by ArcadeLink.

    Catch this at the outer edge (the CLI or the game loop) to handle every
    ArcadeLink failure in one place; inside the controller, catch the
    specific family instead.

    Attributes:
        user_message: Human-friendly message for display
        technical_message: Detailed message for logs
        recoverable: Whether the error can be recovered from
        recovery_hint: Optional hint for how to fix the issue
    """

    def __init__(
        self,
        user_message: str,
        technical_message: Optional[str] = None,
        recoverable: bool = False,
        recovery_hint: Optional[str] = None,
    ):
        """
        Initialize an ArcadeLink error.

        Args:
            user_message: Message to show to users
            technical_message: Detailed message for logs (defaults to user_message)
            recoverable: True if operation can be retried/recovered
            recovery_hint: Suggestion for how to fix the issue
        """
        super().__init__(user_message)
        self.user_message = user_message
        self.technical_message = technical_message or user_message
        self.recoverable = recoverable
        self.recovery_hint = recovery_hint

    def __str__(self) -> str:
        """Return user-friendly message."""
        return self.user_message

    def get_full_message(self) -> str:
        """Get complete error message with recovery hint."""
        msg = self.user_message
        if self.recovery_hint:
            msg += f"\n\nSuggestion: {self.recovery_hint}"
        return msg
