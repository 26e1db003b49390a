"""Observer protocol definitions for controller events.

- Button observers: react to arcade button edges
- LED observers: react to LED confirmations from devices
- Cadence observers: react to bike sensor samples
- Device observers: react to role claims and disconnects

All callbacks run on the thread that produced the event, usually a
serial reader thread. Keep them short and non-blocking; long work such
as playing an LED pattern belongs on another thread.
"""

from typing import Protocol, runtime_checkable

from .events import ButtonInput, CadenceReading, DeviceEvent, DeviceStatus, InputEvent, LedConfirmation


@runtime_checkable
class ButtonObserver(Protocol):
    """Observer that receives the raw, unfiltered button edge stream."""

    def on_button_event(self, event: InputEvent, data: ButtonInput) -> None:
        """
        Handle a button edge.

        Args:
            event: BUTTON_PRESS or BUTTON_RELEASE
            data: Role id, color, position and edge of the button
        """
        ...


@runtime_checkable
class LedObserver(Protocol):
    """Observer that receives LED confirmations."""

    def on_led_confirmed(self, confirmation: LedConfirmation) -> None:
        ...


@runtime_checkable
class CadenceObserver(Protocol):
    """Observer that receives cadence samples (accepted or not)."""

    def on_cadence_sample(self, reading: CadenceReading) -> None:
        ...


@runtime_checkable
class DeviceObserver(Protocol):
    """Observer that receives device lifecycle events."""

    def on_device_event(self, event: DeviceEvent, status: DeviceStatus) -> None:
        """
        Handle a device lifecycle event.

        Args:
            event: DEVICE_READY or DEVICE_DISCONNECTED
            status: Port and role of the device
        """
        ...
