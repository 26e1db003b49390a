"""Event kinds, payloads and observer protocols exposed to the game layer."""

from .events import (
    ButtonInput,
    CadenceReading,
    DeviceEvent,
    DeviceStatus,
    InputEvent,
    LedConfirmation,
)
from .observers import ButtonObserver, CadenceObserver, DeviceObserver, LedObserver

__all__ = [
    # Events
    "DeviceEvent",
    "InputEvent",
    # Payloads
    "ButtonInput",
    "CadenceReading",
    "DeviceStatus",
    "LedConfirmation",
    # Observers
    "ButtonObserver",
    "CadenceObserver",
    "DeviceObserver",
    "LedObserver",
]
