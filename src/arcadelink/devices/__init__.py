"""Serial device layer: discovery, connections, line protocol and role registry."""

from .codec import (
    ButtonPressed,
    ButtonReleased,
    CadenceReport,
    Command,
    DeviceMessage,
    IdentifyReady,
    LedConfirmed,
    Pong,
    Unrecognized,
    decode_line,
    encode_command,
    led_command,
)
from .connection import LineFramer, SerialConnection
from .manager import ConnectionManager
from .registry import DeviceRegistry
from .scanner import PortCandidate, PortScanner

__all__ = [
    # Codec
    "ButtonPressed",
    "ButtonReleased",
    "CadenceReport",
    "Command",
    "DeviceMessage",
    "IdentifyReady",
    "LedConfirmed",
    "Pong",
    "Unrecognized",
    "decode_line",
    "encode_command",
    "led_command",
    # Transport
    "ConnectionManager",
    "LineFramer",
    "SerialConnection",
    # Discovery
    "PortCandidate",
    "PortScanner",
    # Roles
    "DeviceRegistry",
]
