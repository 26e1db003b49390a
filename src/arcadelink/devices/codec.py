"""
Text line protocol spoken by the button and bike sensor firmware.

Input Flow: Serial Line → Typed Message
======================================

::

    "BUTTON_1_GREEN_READY\\n"  (bytes from the port)
          ↓  framed by SerialConnection
    "BUTTON_1_GREEN_READY"
          ↓  decode_line()
    IdentifyReady(role=Role.button(1), label="GREEN")
          ↓
    DeviceRegistry.on_ready(...)

Every line decodes to exactly one message. Lines that don't match a
known shape become ``Unrecognized`` and are logged; a misbehaving device
can never raise out of the decoder.

Device → host shapes::

    BUTTON_<n>[_<COLOR>]_READY       claim button role n (1-4); COLOR is uppercased
    BIKE_READY | BIKE_SENSOR_READY   claim the cadence sensor role
    BUTTON_<n>_PRESSED / _RELEASED   input edge
    LED_<n>_<ON|OFF|TOGGLE>_CONFIRMED
    PONG_<n>
    BIKE_REV:<count>:<rpm>:<timestamp>

Host → device commands are the bare words in ``Command``; the connection
appends the ``\\n`` terminator.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from arcadelink.models import ROLE_IDS, LedTarget, Role

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "_"
CADENCE_SEPARATOR = ":"
LINE_TERMINATOR = "\n"

_READY_RE = re.compile(r"^BUTTON_(\d{1,3})(?:_(.+?))?_READY$")
_CADENCE_READY_RE = re.compile(r"^BIKE(?:_SENSOR)?_READY$")
_EDGE_RE = re.compile(r"^BUTTON_(\d{1,3})_(PRESSED|RELEASED)$")
_LED_RE = re.compile(r"^LED_(\d{1,3})_(ON|OFF|TOGGLE)_CONFIRMED$")
_PONG_RE = re.compile(r"^PONG_(\d{1,3})$")
_CADENCE_PREFIX = "BIKE_REV" + CADENCE_SEPARATOR


class Command(str, Enum):
    """Commands the host sends to a device."""

    IDENTIFY = "IDENTIFY"
    LED_ON = "LED_ON"
    LED_OFF = "LED_OFF"
    PING = "PING"
    # Cadence sensor only
    RESET_COUNTER = "RESET_COUNTER"
    GAME_MODE_ON = "GAME_MODE_ON"
    GAME_MODE_OFF = "GAME_MODE_OFF"
    TEST = "TEST"


# ================================================================
# MESSAGES
# ================================================================


class DeviceMessage:
    """Base class of every decoded device line."""

    pass


@dataclass(frozen=True)
class IdentifyReady(DeviceMessage):
    """Device announces the role it wants."""

    role: Role
    label: str | None = None


@dataclass(frozen=True)
class ButtonPressed(DeviceMessage):
    role_id: int


@dataclass(frozen=True)
class ButtonReleased(DeviceMessage):
    role_id: int


@dataclass(frozen=True)
class LedConfirmed(DeviceMessage):
    """Device acknowledges an LED command."""

    role_id: int
    target: LedTarget


@dataclass(frozen=True)
class Pong(DeviceMessage):
    role_id: int


@dataclass(frozen=True)
class CadenceReport(DeviceMessage):
    """
    Raw cadence sample as sent by the bike sensor.

    Values are passed through unvalidated; negative readings are rejected
    by the input tracker, not here.
    """

    revolution_count: int
    rpm: int
    timestamp: int


@dataclass(frozen=True)
class Unrecognized(DeviceMessage):
    raw: str


# ================================================================
# DECODING
# ================================================================


def _button_id(text: str) -> int | None:
    value = int(text)
    return value if value in ROLE_IDS else None


def _decode_cadence(line: str) -> DeviceMessage:
    parts = line.split(CADENCE_SEPARATOR)
    if len(parts) < 4:
        return Unrecognized(line)
    try:
        count, rpm, timestamp = (int(p.strip()) for p in parts[1:4])
    except ValueError:
        return Unrecognized(line)
    return CadenceReport(revolution_count=count, rpm=rpm, timestamp=timestamp)


def _decode(line: str) -> DeviceMessage:
    if line.startswith(_CADENCE_PREFIX):
        return _decode_cadence(line)

    if _CADENCE_READY_RE.match(line):
        return IdentifyReady(role=Role.cadence())

    if match := _EDGE_RE.match(line):
        role_id = _button_id(match.group(1))
        if role_id is None:
            return Unrecognized(line)
        if match.group(2) == "PRESSED":
            return ButtonPressed(role_id)
        return ButtonReleased(role_id)

    if match := _READY_RE.match(line):
        role_id = _button_id(match.group(1))
        if role_id is None:
            return Unrecognized(line)
        label = match.group(2)
        return IdentifyReady(role=Role.button(role_id), label=label.upper() if label else None)

    if match := _LED_RE.match(line):
        role_id = _button_id(match.group(1))
        if role_id is None:
            return Unrecognized(line)
        return LedConfirmed(role_id, LedTarget(match.group(2)))

    if match := _PONG_RE.match(line):
        role_id = _button_id(match.group(1))
        if role_id is None:
            return Unrecognized(line)
        return Pong(role_id)

    return Unrecognized(line)


def decode_line(line: str) -> DeviceMessage:
    """
    Decode one received line into a typed message.

    Args:
        line: Text of one line, with or without its terminator

    Returns:
        The decoded message; ``Unrecognized`` for anything unknown or malformed
    """
    text = line.strip()
    message = _decode(text)
    if isinstance(message, Unrecognized) and text:
        logger.warning(f"Unrecognized device line: {text!r}")
    return message


def encode_command(command: Command) -> str:
    """Return the wire text of a command, without the line terminator."""
    return command.value


def led_command(on: bool) -> Command:
    return Command.LED_ON if on else Command.LED_OFF
