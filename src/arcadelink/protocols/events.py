"""Controller events delivered to the game layer.

The set of events is closed: each kind has an enum member and a typed
payload, so a subscriber can't listen for a misspelled event name.

- Input events: button press/release edges
- Device events: a device claimed a role or went away
- LED confirmations and cadence samples carry their own payload types
"""

from dataclasses import dataclass
from enum import Enum

from arcadelink.models import ButtonEdge, Role


class InputEvent(Enum):
    """Events from the arcade buttons."""

    BUTTON_PRESS = "button-press"
    BUTTON_RELEASE = "button-release"


class DeviceEvent(Enum):
    """Events from the device lifecycle."""

    DEVICE_READY = "device-ready"                # Device claimed a role
    DEVICE_DISCONNECTED = "device-disconnected"  # Device's connection closed


@dataclass(frozen=True)
class ButtonInput:
    """Payload of a button-press / button-release event."""

    role_id: int
    color: str
    position: str
    edge: ButtonEdge


@dataclass(frozen=True)
class LedConfirmation:
    """Payload of a led-confirmed event."""

    role_id: int
    confirmed: bool
    port: str | None = None


@dataclass(frozen=True)
class CadenceReading:
    """
    Payload of a cadence-sample event.

    `new_revolution` is False when the sample's count did not advance; the
    rpm is still the latest reading in that case.
    """

    revolution_count: int
    rpm: int
    timestamp: int
    new_revolution: bool
    port: str | None = None


@dataclass(frozen=True)
class DeviceStatus:
    """Payload of device-ready / device-disconnected events."""

    port: str
    role: Role
    message: str = ""
