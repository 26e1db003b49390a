"""Input state tracking for the arcade buttons and the cadence sensor."""

import logging
import threading
import time
from collections.abc import Callable

from arcadelink.models import AppConfig, ButtonEdge, ButtonRole, CadenceSample, is_button_id
from arcadelink.protocols import ButtonInput, ButtonObserver, CadenceObserver, CadenceReading, InputEvent
from arcadelink.utils import ObserverManager

logger = logging.getLogger(__name__)


class InputStateTracker:
    """
    Tracks press state per button role and the running cadence sample.

    Button edges are passed through unfiltered: the firmware debounces the
    switch itself, and suppressing repeated logical actions is up to the
    game layer (see ``CommandDebouncer``).
    """

    def __init__(self, config: AppConfig | None = None):
        config = config or AppConfig()
        self._lock = threading.Lock()
        self._buttons: dict[int, ButtonRole] = {
            layout.role_id: ButtonRole(id=layout.role_id, color=layout.color, position=layout.position)
            for layout in config.buttons
        }
        self._cadence = CadenceSample()
        self._button_observers = ObserverManager[ButtonObserver]("button")
        self._cadence_observers = ObserverManager[CadenceObserver]("cadence")

    # ================================================================
    # OBSERVERS
    # ================================================================

    def register_button_observer(self, observer: ButtonObserver) -> None:
        self._button_observers.register(observer)

    def unregister_button_observer(self, observer: ButtonObserver) -> None:
        self._button_observers.unregister(observer)

    def register_cadence_observer(self, observer: CadenceObserver) -> None:
        self._cadence_observers.register(observer)

    def unregister_cadence_observer(self, observer: CadenceObserver) -> None:
        self._cadence_observers.unregister(observer)

    # ================================================================
    # BUTTONS
    # ================================================================

    def on_button_pressed(self, role_id: int) -> ButtonInput | None:
        """Record a press edge and emit button-press."""
        return self._on_edge(role_id, ButtonEdge.PRESSED)

    def on_button_released(self, role_id: int) -> ButtonInput | None:
        """Record a release edge and emit button-release."""
        return self._on_edge(role_id, ButtonEdge.RELEASED)

    def _on_edge(self, role_id: int, edge: ButtonEdge) -> ButtonInput | None:
        if not is_button_id(role_id):
            logger.warning(f"Ignoring {edge.value} edge for unknown button {role_id}")
            return None

        with self._lock:
            button = self._buttons[role_id]
            button.pressed = edge == ButtonEdge.PRESSED
            data = ButtonInput(role_id=role_id, color=button.color, position=button.position, edge=edge)

        event = InputEvent.BUTTON_PRESS if edge == ButtonEdge.PRESSED else InputEvent.BUTTON_RELEASE
        logger.debug(f"Button {role_id} ({data.color}) {edge.value}")
        self._button_observers.notify("on_button_event", event, data)
        return data

    def clear_button(self, role_id: int) -> None:
        """Forget the press state of a button whose device went away."""
        with self._lock:
            if role_id in self._buttons:
                self._buttons[role_id].pressed = False

    def get_button_states(self) -> dict[int, ButtonRole]:
        with self._lock:
            return {role_id: button.model_copy() for role_id, button in self._buttons.items()}

    def is_pressed(self, role_id: int) -> bool:
        with self._lock:
            button = self._buttons.get(role_id)
            return button.pressed if button else False

    # ================================================================
    # CADENCE
    # ================================================================

    def on_cadence_sample(
        self, revolution_count, rpm, timestamp=0, port: str | None = None
    ) -> CadenceReading | None:
        """
        Apply one cadence sample and emit cadence-sample.

        The revolution count only moves forward: it is taken when strictly
        greater than the current count. The rpm is taken from every valid
        sample, even one whose count did not advance.

        Args:
            revolution_count: Cumulative revolutions reported by the sensor
            rpm: Instantaneous rate
            timestamp: Device clock in ms
            port: Port the sample arrived on, if any

        Returns:
            The emitted reading, or None if the sample was dropped as invalid
        """
        if not (CadenceSample.is_valid_field(revolution_count) and CadenceSample.is_valid_field(rpm)):
            logger.warning(f"Dropping invalid cadence sample: count={revolution_count!r} rpm={rpm!r}")
            return None

        count = int(revolution_count)
        rate = int(rpm)
        with self._lock:
            new_revolution = count > self._cadence.revolution_count
            update: dict = {"rpm": rate}
            if new_revolution:
                update["revolution_count"] = count
                update["timestamp"] = int(timestamp) if CadenceSample.is_valid_field(timestamp) else 0
            self._cadence = self._cadence.model_copy(update=update).touched()
            reading = CadenceReading(
                revolution_count=self._cadence.revolution_count,
                rpm=self._cadence.rpm,
                timestamp=self._cadence.timestamp,
                new_revolution=new_revolution,
                port=port,
            )

        if not new_revolution:
            logger.debug(f"Cadence count {count} did not advance; rpm updated to {rate}")
        self._cadence_observers.notify("on_cadence_sample", reading)
        return reading

    def reset_cadence(self) -> None:
        """Zero the local cadence state."""
        with self._lock:
            self._cadence = CadenceSample()
        logger.info("Cadence counter reset")

    def get_cadence(self) -> CadenceSample:
        with self._lock:
            return self._cadence.model_copy()


class CommandDebouncer:
    """
    Drops logical actions that follow too closely on the previous one.

    Intended for the game layer: one physical press can bounce into
    several press events, and a game usually wants to act on the first.

    Example:
        ```python
        debouncer = CommandDebouncer(min_interval=0.1)

        def on_button_event(self, event, data):
            if event == InputEvent.BUTTON_PRESS and debouncer.accept(data.role_id):
                game.fire(data.role_id)
        ```
    """

    def __init__(self, min_interval: float = 0.1, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the debouncer.

        Args:
            min_interval: Minimum seconds between accepted actions per key
            clock: Time source (monotonic seconds)
        """
        self.min_interval = min_interval
        self._clock = clock
        self._last: dict[object, float] = {}
        self._lock = threading.Lock()

    def accept(self, key: object = None) -> bool:
        """Return True and record the time if ``key`` is outside its quiet period."""
        now = self._clock()
        with self._lock:
            last = self._last.get(key)
            if last is not None and now - last < self.min_interval:
                return False
            self._last[key] = now
            return True

    def reset(self) -> None:
        with self._lock:
            self._last.clear()
