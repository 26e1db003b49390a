"""Bike cadence sensor adapter."""

import logging
import time

from arcadelink.devices import CadenceReport, Command, ConnectionManager, DeviceRegistry, encode_command
from arcadelink.models import Role
from arcadelink.protocols import CadenceReading

from .input_tracker import InputStateTracker

logger = logging.getLogger(__name__)


class CadenceSensorAdapter:
    """
    Connects the cadence sensor's port to the input tracker.

    Also sends the sensor-only commands (counter reset, game mode, self
    test) and offers a simulation entry point for running without hardware.
    """

    def __init__(self, registry: DeviceRegistry, manager: ConnectionManager, tracker: InputStateTracker):
        self._registry = registry
        self._manager = manager
        self._tracker = tracker

    @property
    def port(self) -> str | None:
        return self._registry.port_for(Role.cadence())

    def is_connected(self) -> bool:
        return self.port is not None

    def on_report(self, port: str, report: CadenceReport) -> CadenceReading | None:
        """
        Handle a BIKE_REV line.

        A sample from a port that never identified claims the cadence role
        for it; the sensor firmware may stream before announcing itself.
        Samples from any other port are dropped.
        """
        role = self._registry.role_for(port)
        if role is None:
            device = self._manager.device(port)
            if device is not None and device.is_orphaned:
                logger.debug(f"Dropping cadence sample from orphaned {port}")
                return None
            if not self._registry.on_ready(port, Role.cadence()):
                return None
            role = Role.cadence()

        if role != Role.cadence():
            logger.warning(f"Dropping cadence sample from {port}: it holds {role}")
            return None

        return self._tracker.on_cadence_sample(
            report.revolution_count, report.rpm, report.timestamp, port=port
        )

    # ================================================================
    # COMMANDS
    # ================================================================

    def _send(self, command: Command) -> bool:
        port = self.port
        if port is None:
            logger.warning(f"Cannot send {command.value}: no cadence sensor connected")
            return False
        return self._manager.write(port, encode_command(command))

    def reset_counter(self) -> bool:
        """
        Zero the local cadence state and tell the sensor to do the same.

        Returns:
            False if the sensor is not connected (local state is reset anyway)
        """
        self._tracker.reset_cadence()
        return self._send(Command.RESET_COUNTER)

    def set_game_mode(self, active: bool) -> bool:
        return self._send(Command.GAME_MODE_ON if active else Command.GAME_MODE_OFF)

    def test(self) -> bool:
        return self._send(Command.TEST)

    def simulate(self, revolution_count: int, rpm: int, timestamp: int | None = None) -> CadenceReading | None:
        """Inject a synthetic sample as if the sensor had sent it."""
        if timestamp is None:
            timestamp = int(time.time() * 1000)
        logger.info(f"Simulated cadence sample: count={revolution_count} rpm={rpm}")
        return self._tracker.on_cadence_sample(revolution_count, rpm, timestamp)
