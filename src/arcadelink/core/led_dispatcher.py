"""LED command dispatcher with optimistic state tracking."""

import logging
import threading

from arcadelink.devices import ConnectionManager, DeviceRegistry, led_command
from arcadelink.models import ROLE_IDS, LedState, LedTarget, is_button_id
from arcadelink.protocols import LedConfirmation, LedObserver
from arcadelink.utils import ObserverManager

logger = logging.getLogger(__name__)


class LedDispatcher:
    """
    Sends LED commands to the device holding a button role.

    ``LedState.on`` is set as soon as a command is issued; ``confirmed``
    follows the device's confirmations and trails by one round trip.
    Writes go through the device's command queue, so commands to one
    device leave in the order they were issued.
    """

    def __init__(self, registry: DeviceRegistry, manager: ConnectionManager):
        self._registry = registry
        self._manager = manager
        self._lock = threading.Lock()
        self._states: dict[int, LedState] = {role_id: LedState(role_id=role_id) for role_id in ROLE_IDS}
        self._observers = ObserverManager[LedObserver]("led")

    def register_observer(self, observer: LedObserver) -> None:
        self._observers.register(observer)

    def unregister_observer(self, observer: LedObserver) -> None:
        self._observers.unregister(observer)

    def set_role(self, role_id: int, on: bool) -> bool:
        """
        Switch one button's LED.

        Args:
            role_id: Button role (1-4)
            on: Target state

        Returns:
            False if no live device holds the role or the write was refused
        """
        if not is_button_id(role_id):
            logger.warning(f"Invalid LED role id: {role_id}")
            return False

        port = self._registry.port_for_button(role_id)
        if port is None:
            logger.debug(f"No device for button {role_id}; LED {'on' if on else 'off'} skipped")
            return False

        with self._lock:
            self._states[role_id].on = on

        if not self._manager.write(port, led_command(on).value):
            logger.warning(f"LED command for button {role_id} on {port} failed")
            return False
        return True

    def set_all(self, on: bool) -> bool:
        """Switch every button's LED. Returns True only if all four succeeded."""
        results = [self.set_role(role_id, on) for role_id in ROLE_IDS]
        return all(results)

    def on_confirmed(self, role_id: int, target: LedTarget, port: str | None = None) -> LedConfirmation | None:
        """
        Reconcile the confirmed state with a device's LED confirmation.

        A TOGGLE confirmation inverts the tracked value instead of setting it.
        """
        if not is_button_id(role_id):
            return None

        with self._lock:
            state = self._states[role_id]
            if target == LedTarget.TOGGLE:
                state.confirmed = not state.confirmed
            else:
                state.confirmed = target == LedTarget.ON
            confirmation = LedConfirmation(role_id=role_id, confirmed=state.confirmed, port=port)

        logger.debug(f"LED {role_id} confirmed {target.value}")
        self._observers.notify("on_led_confirmed", confirmation)
        return confirmation

    def get_led_states(self) -> dict[int, LedState]:
        with self._lock:
            return {role_id: state.model_copy() for role_id, state in self._states.items()}

    def get_state(self, role_id: int) -> LedState | None:
        with self._lock:
            state = self._states.get(role_id)
            return state.model_copy() if state else None
