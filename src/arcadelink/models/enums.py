"""Enumerations for the arcade controller."""

from enum import Enum


class ConnectionState(str, Enum):
    """Lifecycle of one serial device."""

    DISCOVERED = "discovered"  # Found by the scanner, not opened yet
    OPENING = "opening"        # Open call in progress
    OPEN = "open"              # Port open, device has not identified itself
    IDENTIFIED = "identified"  # Device announced a role
    CLOSED = "closed"          # Terminal; a reconnect creates a new device


class RoleKind(str, Enum):
    """Kind of logical role a device can hold."""

    UNASSIGNED = "unassigned"
    BUTTON = "button"
    CADENCE = "cadence"


class ButtonEdge(str, Enum):
    """Direction of a button transition."""

    PRESSED = "pressed"
    RELEASED = "released"


class LedTarget(str, Enum):
    """State reported in an LED confirmation."""

    ON = "ON"
    OFF = "OFF"
    TOGGLE = "TOGGLE"
