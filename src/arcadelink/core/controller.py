"""
Arcade controller: the composition root for the serial device stack.

Wiring
======

::

    PortScanner ──scan──► ConnectionManager ──line──► decode_line()
                                 │                         │
                              closed                       ▼
                                 │            ┌─ IdentifyReady ──► DeviceRegistry
                                 ▼            ├─ Button edges ───► InputStateTracker
                          DeviceRegistry      ├─ LedConfirmed ───► LedDispatcher
                          (release role)      ├─ CadenceReport ──► CadenceSensorAdapter
                                              └─ Pong / Unrecognized (logged)

    game layer ──commands──► PatternEngine ──► LedDispatcher ──► ConnectionManager.write()

One ``ArcadeController`` is created by the application and handed to
whoever needs it; there is no module-level instance.
"""

import logging
import random
import threading
from collections.abc import Callable, Iterable

from arcadelink.devices import (
    ButtonPressed,
    ButtonReleased,
    CadenceReport,
    Command,
    ConnectionManager,
    DeviceRegistry,
    IdentifyReady,
    LedConfirmed,
    PortCandidate,
    PortScanner,
    Pong,
    Unrecognized,
    decode_line,
    encode_command,
)
from arcadelink.exceptions import ErrorCollector, ErrorContext, SerialTransportError, collect_errors
from arcadelink.models import (
    ROLE_IDS,
    AppConfig,
    ButtonRole,
    CadenceSample,
    LedState,
    Role,
    RoleKind,
    SerialDevice,
    is_button_id,
)
from arcadelink.protocols import (
    ButtonObserver,
    CadenceObserver,
    CadenceReading,
    DeviceEvent,
    DeviceObserver,
    DeviceStatus,
    LedObserver,
)
from arcadelink.utils import ObserverManager

from .cadence import CadenceSensorAdapter
from .input_tracker import InputStateTracker
from .led_dispatcher import LedDispatcher
from .patterns import CancellationToken, PatternEngine

logger = logging.getLogger(__name__)


class ArcadeController:
    """
    Host-side controller for the arcade buttons and the bike cadence sensor.

    Discovers micro:bit serial ports, assigns each device a role from its
    identification message, turns device lines into typed events for the
    game layer, and sends LED commands and patterns back.

    Device problems never raise out of this class: commands return False
    and lifecycle changes are reported as device events.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        scanner: PortScanner | None = None,
        serial_factory: Callable[[str, int], object] | None = None,
        sleeper: Callable[[CancellationToken, float], bool] | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the controller. No port is touched until start().

        Args:
            config: Application configuration (defaults to AppConfig())
            scanner: Port scanner (defaults to one built from config.scanner)
            serial_factory: Optional pyserial replacement for every connection
            sleeper: Optional pattern sleeper ``(token, seconds) -> cancelled``
            rng: Random source for the randomized patterns
        """
        self.config = config or AppConfig()
        self.scanner = scanner or PortScanner(self.config.scanner)

        self.manager = ConnectionManager(self.config, serial_factory=serial_factory)
        self.registry = DeviceRegistry(self.manager)
        self.tracker = InputStateTracker(self.config)
        self.dispatcher = LedDispatcher(self.registry, self.manager)
        self.patterns = PatternEngine(self.dispatcher, sleeper=sleeper, rng=rng)
        self.cadence = CadenceSensorAdapter(self.registry, self.manager, self.tracker)

        self.manager.on_line(self._handle_line)
        self.manager.on_closed(self._handle_closed)
        self.manager.on_error(self._handle_error)
        self.registry.on_role_claimed(self._on_role_claimed)
        self.registry.on_role_released(self._on_role_released)

        self._device_observers = ObserverManager[DeviceObserver]("device")
        self._roles_changed = threading.Condition()
        self._stop_event = threading.Event()
        self._scan_thread: threading.Thread | None = None
        self._flash_timers: set[threading.Timer] = set()
        self._timers_lock = threading.Lock()
        self._running = False

    # ================================================================
    # LIFECYCLE
    # ================================================================

    def start(self, wait: bool = False) -> None:
        """
        Scan for devices and open every candidate port.

        Args:
            wait: Block until every port has been tried instead of
                  connecting in a background thread
        """
        if self._running:
            logger.warning("ArcadeController is already running")
            return

        self._running = True
        self._stop_event.clear()
        if wait:
            self.connect_all()
        else:
            self._scan_thread = threading.Thread(target=self.connect_all, daemon=True, name="arcade-connect")
            self._scan_thread.start()
        logger.info("ArcadeController started")

    def stop(self) -> None:
        """Cancel patterns and timers, then close every connection."""
        self._stop_event.set()
        if self._scan_thread and self._scan_thread.is_alive() and self._scan_thread is not threading.current_thread():
            self._scan_thread.join(timeout=self.config.open_timeout + 1.0)
        self._scan_thread = None

        self.patterns.cancel()
        with self._timers_lock:
            timers = list(self._flash_timers)
            self._flash_timers.clear()
        for timer in timers:
            timer.cancel()

        self.manager.close_all()
        self.registry.clear()
        self._running = False
        logger.info("ArcadeController stopped")

    def restart(self, wait: bool = False) -> None:
        """Close everything and run the initial scan again."""
        with ErrorContext("restart controller"):
            self.stop()
            self.start(wait=wait)

    @property
    def is_running(self) -> bool:
        return self._running

    def connect_all(self, candidates: Iterable[PortCandidate] | None = None) -> ErrorCollector:
        """
        Open each candidate port, one after another.

        A failing port doesn't stop the others; failures are collected,
        logged, and returned.

        Args:
            candidates: Ports to open (defaults to a fresh scan)
        """
        if candidates is None:
            candidates = self.scanner.scan()

        collector = collect_errors("connect to devices")
        for index, candidate in enumerate(candidates):
            if index > 0 and self.config.connect_stagger > 0:
                if self._stop_event.wait(self.config.connect_stagger):
                    break
            if self._stop_event.is_set():
                break
            with collector.try_operation(f"open {candidate.port}"):
                self.connect(candidate)

        if collector.has_errors:
            logger.error(collector.get_summary())
        else:
            logger.info(f"Connected to {collector.success_count} devices")
        return collector

    def connect(self, candidate: PortCandidate | str) -> SerialDevice:
        """
        Open one port.

        Raises:
            PortOpenError: If the port could not be opened
        """
        port = candidate if isinstance(candidate, str) else candidate.port
        self.registry.attach(port)
        try:
            return self.manager.open(candidate)
        except Exception:
            self.registry.on_disconnect(port)
            raise

    def wait_for_roles(self, role_ids: Iterable[int] = ROLE_IDS, timeout: float = 5.0) -> bool:
        """
        Block until every listed button role has a device.

        Returns:
            True if all roles were claimed before the timeout
        """
        wanted = [Role.button(role_id) for role_id in role_ids]
        with self._roles_changed:
            return self._roles_changed.wait_for(
                lambda: all(self.registry.is_claimed(role) for role in wanted), timeout
            )

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    # ================================================================
    # OBSERVERS
    # ================================================================

    def register_button_observer(self, observer: ButtonObserver) -> None:
        self.tracker.register_button_observer(observer)

    def unregister_button_observer(self, observer: ButtonObserver) -> None:
        self.tracker.unregister_button_observer(observer)

    def register_cadence_observer(self, observer: CadenceObserver) -> None:
        self.tracker.register_cadence_observer(observer)

    def unregister_cadence_observer(self, observer: CadenceObserver) -> None:
        self.tracker.unregister_cadence_observer(observer)

    def register_led_observer(self, observer: LedObserver) -> None:
        self.dispatcher.register_observer(observer)

    def unregister_led_observer(self, observer: LedObserver) -> None:
        self.dispatcher.unregister_observer(observer)

    def register_device_observer(self, observer: DeviceObserver) -> None:
        self._device_observers.register(observer)

    def unregister_device_observer(self, observer: DeviceObserver) -> None:
        self._device_observers.unregister(observer)

    # ================================================================
    # LED COMMANDS
    # ================================================================

    def set_led(self, role_id: int, on: bool) -> bool:
        return self.dispatcher.set_role(role_id, on)

    def set_all_leds(self, on: bool) -> bool:
        return self.dispatcher.set_all(on)

    def flash_led(self, role_id: int, times: int = 3, duration: int = 500) -> bool:
        return self.patterns.flash(role_id, times, duration)

    def flash_all_leds(self, times: int = 3, duration: int = 300) -> bool:
        return self.patterns.flash_all(times, duration)

    def chase_leds(self, rounds: int = 2, speed: int = 200) -> bool:
        return self.patterns.chase(rounds, speed)

    def random_led_sequence(
        self, count: int = 4, on_duration: int = 500, off_duration: int = 100, total_sequences: int = 1
    ) -> list[list[int]]:
        return self.patterns.random_sequence(count, on_duration, off_duration, total_sequences)

    def simon_says_pattern(self, length: int = 4, speed: int = 800) -> list[int]:
        """Play a Simon-says sequence and return it for checking the player's replay."""
        return self.patterns.simon(length, speed)

    def random_cascade(self, waves: int = 3, wave_speed: int = 200) -> bool:
        return self.patterns.cascade(waves, wave_speed)

    def rhythmic_random_pattern(self, beats: int = 8, tempo: int = 600) -> bool:
        return self.patterns.rhythmic(beats, tempo)

    def game_start_pattern(self) -> bool:
        return self.patterns.game_start()

    def game_over_pattern(self) -> bool:
        return self.patterns.game_over()

    def game_win_pattern(self) -> bool:
        return self.patterns.game_win()

    def speed_feedback_pattern(self, rpm: int) -> bool:
        return self.patterns.speed_feedback(rpm)

    def random_flash_sequence(self, sequences: int = 3, flash_duration: int = 500) -> list[int]:
        return self.patterns.random_flash_sequence(sequences, flash_duration)

    def random_led_game(self, rounds: int = 5, speed: int = 600) -> list[tuple[int, ...]]:
        return self.patterns.random_led_game(rounds, speed)

    def bike_start_pattern(self) -> bool:
        return self.patterns.bike_start()

    def bike_milestone_pattern(self, milestone: int) -> bool:
        return self.patterns.bike_milestone(milestone)

    def bike_victory_pattern(self) -> bool:
        return self.patterns.bike_victory()

    def cancel_pattern(self) -> bool:
        return self.patterns.cancel()

    # ================================================================
    # DEVICE COMMANDS
    # ================================================================

    def ping(self, role_id: int) -> bool:
        port = self.registry.port_for_button(role_id) if is_button_id(role_id) else None
        if port is None:
            logger.warning(f"Cannot ping button {role_id}: not connected")
            return False
        return self.manager.write(port, encode_command(Command.PING))

    def ping_all(self) -> bool:
        """Ping every button role. Returns True only if all four were sent."""
        results = [self.ping(role_id) for role_id in ROLE_IDS]
        return all(results)

    def reset_cadence_counter(self) -> bool:
        return self.cadence.reset_counter()

    def set_cadence_game_mode(self, active: bool) -> bool:
        return self.cadence.set_game_mode(active)

    def test_cadence_sensor(self) -> bool:
        return self.cadence.test()

    def simulate_cadence_sample(
        self, revolution_count: int, rpm: int, timestamp: int | None = None
    ) -> CadenceReading | None:
        return self.cadence.simulate(revolution_count, rpm, timestamp)

    # ================================================================
    # STATUS
    # ================================================================

    def get_button_states(self) -> dict[int, ButtonRole]:
        return self.tracker.get_button_states()

    def get_led_states(self) -> dict[int, LedState]:
        return self.dispatcher.get_led_states()

    def get_cadence_data(self) -> CadenceSample:
        return self.tracker.get_cadence()

    def is_cadence_sensor_connected(self) -> bool:
        return self.cadence.is_connected()

    def get_connection_status(self) -> dict:
        """
        Summary of open connections and role assignments.

        Returns:
            ``{"connected": open port count, "mappings": {port: role}, "total": 4,
            "cadence_connected": bool}``
        """
        mappings = {port: str(role) for role, port in self.registry.mappings().items()}
        status = {
            "connected": len([d for d in self.manager.devices() if d.is_live]),
            "mappings": mappings,
            "total": len(ROLE_IDS),
            "cadence_connected": self.is_cadence_sensor_connected(),
        }
        logger.debug(f"Connection status: {status}")
        return status

    # ================================================================
    # DEVICE LINE HANDLING (reader threads)
    # ================================================================

    def _handle_line(self, port: str, line: str) -> None:
        message = decode_line(line)

        match message:
            case IdentifyReady(role=role, label=label):
                if role.kind == RoleKind.BUTTON and label:
                    expected = self.config.layout_for(role.button_id).color
                    if label != expected:
                        logger.info(f"{port} reports color {label} for button {role.button_id}, layout says {expected}")
                self.registry.on_ready(port, role)
            case ButtonPressed(role_id=role_id):
                self.tracker.on_button_pressed(role_id)
            case ButtonReleased(role_id=role_id):
                self.tracker.on_button_released(role_id)
            case LedConfirmed(role_id=role_id, target=target):
                self.dispatcher.on_confirmed(role_id, target, port=port)
            case CadenceReport():
                self.cadence.on_report(port, message)
            case Pong(role_id=role_id):
                logger.info(f"Pong from button {role_id} on {port}")
                self.manager.record_pong(port)
            case Unrecognized():
                pass

    def _handle_error(self, port: str, error: SerialTransportError) -> None:
        logger.error(f"Connection to {port} failed: {error.technical_message}")

    def _handle_closed(self, port: str) -> None:
        self.registry.on_disconnect(port)

    # ================================================================
    # ROLE CHANGES
    # ================================================================

    def _on_role_claimed(self, port: str, role: Role) -> None:
        if role.kind == RoleKind.BUTTON:
            self._schedule_confirm_flash(role.button_id)

        with self._roles_changed:
            self._roles_changed.notify_all()
        self._device_observers.notify(
            "on_device_event", DeviceEvent.DEVICE_READY, DeviceStatus(port=port, role=role, message=f"{role} ready")
        )

    def _on_role_released(self, port: str, role: Role) -> None:
        if role.kind == RoleKind.BUTTON:
            self.tracker.clear_button(role.button_id)

        with self._roles_changed:
            self._roles_changed.notify_all()
        self._device_observers.notify(
            "on_device_event",
            DeviceEvent.DEVICE_DISCONNECTED,
            DeviceStatus(port=port, role=role, message=f"{role} disconnected"),
        )

    def _schedule_confirm_flash(self, role_id: int) -> None:
        """LED on after confirm_flash_ms, off after another confirm_flash_ms."""
        delay = self.config.confirm_flash_ms / 1000
        if delay <= 0:
            return
        self._start_timer(delay, lambda: self._confirm_flash_on(role_id, delay))

    def _confirm_flash_on(self, role_id: int, delay: float) -> None:
        self.dispatcher.set_role(role_id, True)
        self._start_timer(delay, lambda: self.dispatcher.set_role(role_id, False))

    def _start_timer(self, delay: float, action: Callable[[], object]) -> None:
        def fire():
            with self._timers_lock:
                self._flash_timers.discard(timer)
            action()

        timer = threading.Timer(delay, fire)
        timer.daemon = True
        with self._timers_lock:
            if self._stop_event.is_set():
                return
            self._flash_timers.add(timer)
        timer.start()
