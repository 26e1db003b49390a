"""Device lifecycle exceptions."""

from .base import ArcadeLinkError


class DeviceError(ArcadeLinkError):
    """A serial device is in a state that does not allow the operation."""
    pass


class DeviceStateError(DeviceError):
    """Illegal connection state transition."""

    def __init__(self, port: str, current: str, requested: str):
        """
        Initialize device state error.

        Args:
            port: Port of the device
            current: Current connection state
            requested: State that was requested
        """
        super().__init__(
            user_message=f"Device {port} cannot move from {current} to {requested}",
            technical_message=f"Illegal transition for {port}: {current} -> {requested}",
        )
        self.port = port
        self.current = current
        self.requested = requested
