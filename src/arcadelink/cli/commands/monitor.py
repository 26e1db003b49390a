"""Live event monitor."""

import logging
import time
from datetime import datetime

import click

from arcadelink.protocols import (
    ButtonInput,
    CadenceReading,
    DeviceEvent,
    DeviceStatus,
    InputEvent,
    LedConfirmation,
)

from .common import connected_controller

logger = logging.getLogger(__name__)


def _stamp() -> str:
    return datetime.now().strftime("%H:%M:%S.%f")[:-3]


class EventPrinter:
    """Prints every controller event to the terminal."""

    def on_button_event(self, event: InputEvent, data: ButtonInput) -> None:
        click.echo(f"[{_stamp()}] {event.value}: button {data.role_id} ({data.color}, {data.position})")

    def on_led_confirmed(self, confirmation: LedConfirmation) -> None:
        state = "on" if confirmation.confirmed else "off"
        click.echo(f"[{_stamp()}] led-confirmed: button {confirmation.role_id} {state}")

    def on_cadence_sample(self, reading: CadenceReading) -> None:
        click.echo(
            f"[{_stamp()}] cadence-sample: count={reading.revolution_count} rpm={reading.rpm}"
            + ("" if reading.new_revolution else " (count unchanged)")
        )

    def on_device_event(self, event: DeviceEvent, status: DeviceStatus) -> None:
        click.echo(f"[{_stamp()}] {event.value}: {status.role} on {status.port}")


@click.command(name="monitor")
@click.option("--duration", type=float, default=None, help="Stop after this many seconds")
@click.pass_context
def monitor(ctx, duration: float | None):
    """
    Connect to every device and print events as they arrive.

    Press Ctrl+C to stop monitoring.
    """
    printer = EventPrinter()
    click.echo("Connecting to devices... press Ctrl+C to stop\n")

    with connected_controller(ctx) as controller:
        controller.register_button_observer(printer)
        controller.register_led_observer(printer)
        controller.register_cadence_observer(printer)
        controller.register_device_observer(printer)

        status = controller.get_connection_status()
        click.echo(f"{status['connected']} port(s) open\n")

        started = time.monotonic()
        try:
            while duration is None or time.monotonic() - started < duration:
                time.sleep(0.1)
        except KeyboardInterrupt:
            click.echo("\n\nStopping monitor...")
