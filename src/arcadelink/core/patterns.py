"""
LED pattern engine.

Pattern Flow: Parameters → Steps → LED Commands
================================================

::

    chase_steps(rounds=1, speed=100)
          ↓  pure, no I/O
    [LedAction((1,), on=True), Pause(100), LedAction((1,), on=False), ...]
          ↓  PatternEngine.run()
    LedDispatcher.set_role(1, True) ... token.wait(0.1) ... set_role(1, False)

Step builders are plain functions of their parameters (and of a random
source for the randomized patterns), so a pattern can be inspected and
tested without any device or clock.

Only one pattern plays at a time. Starting a pattern cancels the one in
flight; the cancelled pattern stops at its next step and reports that it
did not complete. Direct LED commands are not patterns and cancel nothing.
"""

import logging
import random
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from arcadelink.models import ROLE_IDS

from .led_dispatcher import LedDispatcher

logger = logging.getLogger(__name__)

# Hold between lighting a cascade wave and switching it off
CASCADE_HOLD_MS = 300

# Share of a rhythmic beat during which the LEDs are lit
RHYTHM_LIGHT_FRACTION = 0.6

# Rhythmic beat shapes: (number of roles lit, weight)
RHYTHM_WEIGHTS: tuple[tuple[int, float], ...] = ((1, 0.7), (2, 0.2), (4, 0.1))


@dataclass(frozen=True)
class LedAction:
    """Switch a set of button LEDs on or off."""

    roles: tuple[int, ...]
    on: bool

    @property
    def is_all(self) -> bool:
        return tuple(sorted(self.roles)) == ROLE_IDS


@dataclass(frozen=True)
class Pause:
    """Wait before the next step."""

    ms: int


Step = LedAction | Pause


class CancellationToken:
    """Cancellation flag shared between a running pattern and its canceller."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        return self._event.wait(seconds)


# ================================================================
# STEP BUILDERS
# ================================================================


def flash_steps(roles: Sequence[int], times: int, duration: int) -> list[Step]:
    """On for ``duration``, off for ``duration``, ``times`` times; no trailing pause."""
    roles = tuple(roles)
    steps: list[Step] = []
    for i in range(times):
        steps += [LedAction(roles, True), Pause(duration), LedAction(roles, False)]
        if i < times - 1:
            steps.append(Pause(duration))
    return steps


def chase_steps(rounds: int, speed: int) -> list[Step]:
    """Light each role 1 to 4 in turn for ``speed`` ms, ``rounds`` times."""
    steps: list[Step] = []
    for _ in range(rounds):
        for role_id in ROLE_IDS:
            steps += [LedAction((role_id,), True), Pause(speed), LedAction((role_id,), False)]
    return steps


def random_permutation(rng: random.Random) -> list[int]:
    """Uniform random ordering of the four button roles."""
    roles = list(ROLE_IDS)
    rng.shuffle(roles)
    return roles


def random_sequences(rng: random.Random, count: int, total_sequences: int) -> list[list[int]]:
    """
    Draw ``total_sequences`` independent permutations, each cut to ``count`` roles.

    ``count`` is capped at four, so a sequence never repeats a role.
    """
    length = max(0, min(count, len(ROLE_IDS)))
    return [random_permutation(rng)[:length] for _ in range(total_sequences)]


def sequence_steps(sequences: Iterable[Sequence[int]], on_duration: int, off_duration: int) -> list[Step]:
    """Play role sequences one role at a time, with no off pause after a sequence's last role."""
    steps: list[Step] = []
    for sequence in sequences:
        for i, role_id in enumerate(sequence):
            steps += [LedAction((role_id,), True), Pause(on_duration), LedAction((role_id,), False)]
            if i < len(sequence) - 1:
                steps.append(Pause(off_duration))
    return steps


def simon_sequence(rng: random.Random, length: int) -> list[int]:
    """Uniform random role picks; repeats allowed."""
    return [rng.randint(1, len(ROLE_IDS)) for _ in range(length)]


def simon_steps(sequence: Sequence[int], speed: int) -> list[Step]:
    """Each pick lit for ``speed`` ms, separated by half that."""
    return sequence_steps([sequence], speed, speed // 2)


def cascade_steps(directions: Sequence[bool], wave_speed: int, hold: int = CASCADE_HOLD_MS) -> list[Step]:
    """
    Light all roles one by one, hold, then switch them off in reverse order.

    Args:
        directions: One entry per wave; True for ascending order
        wave_speed: Pause between individual lights (ms)
        hold: Pause with every role lit (ms)
    """
    steps: list[Step] = []
    for wave, ascending in enumerate(directions):
        order = list(ROLE_IDS) if ascending else list(reversed(ROLE_IDS))
        for role_id in order:
            steps += [LedAction((role_id,), True), Pause(wave_speed)]
        steps.append(Pause(hold))
        for role_id in reversed(order):
            steps += [LedAction((role_id,), False), Pause(wave_speed)]
        if wave < len(directions) - 1:
            steps.append(Pause(wave_speed))
    return steps


def rhythmic_beats(rng: random.Random, beats: int) -> list[tuple[int, ...]]:
    """Pick the roles lit on each beat: one (70%), two (20%) or all four (10%)."""
    sizes = [size for size, _ in RHYTHM_WEIGHTS]
    weights = [weight for _, weight in RHYTHM_WEIGHTS]
    result = []
    for _ in range(beats):
        size = rng.choices(sizes, weights=weights)[0]
        result.append(tuple(sorted(rng.sample(ROLE_IDS, size))))
    return result


def rhythmic_steps(beats: Sequence[tuple[int, ...]], tempo: int) -> list[Step]:
    """Each beat lit for 60% of ``tempo`` ms, then rests for the remainder."""
    lit = round(tempo * RHYTHM_LIGHT_FRACTION)
    steps: list[Step] = []
    for roles in beats:
        steps += [LedAction(roles, True), Pause(lit), LedAction(roles, False), Pause(tempo - lit)]
    return steps


def random_flash_picks(rng: random.Random, sequences: int) -> list[int]:
    """One uniformly random role per flash; repeats allowed."""
    return [rng.choice(ROLE_IDS) for _ in range(sequences)]


def random_game_rounds(rng: random.Random, rounds: int) -> list[tuple[int, ...]]:
    """Pick a random non-empty group of roles for each round; every group size is equally likely."""
    result = []
    for _ in range(rounds):
        size = rng.randint(1, len(ROLE_IDS))
        result.append(tuple(sorted(rng.sample(ROLE_IDS, size))))
    return result


def random_game_steps(rounds: Sequence[tuple[int, ...]], speed: int) -> list[Step]:
    """Each round's roles lit together for ``speed`` ms, half that dark between rounds."""
    steps: list[Step] = []
    for i, roles in enumerate(rounds):
        steps += [LedAction(roles, True), Pause(speed), LedAction(roles, False)]
        if i < len(rounds) - 1:
            steps.append(Pause(speed // 2))
    return steps


def speed_feedback_params(rpm: int) -> tuple[int, int]:
    """Flash count and duration used to signal pedalling speed."""
    times = min(max(rpm // 20, 1), 5)
    duration = max(100, 500 - rpm * 5)
    return times, duration


# ================================================================
# ENGINE
# ================================================================


def _wait(token: CancellationToken, seconds: float) -> bool:
    return token.wait(seconds)


class PatternEngine:
    """
    Plays LED patterns through the dispatcher.

    Patterns run in the calling thread and block until finished or
    cancelled. Call them from a worker thread when the caller must stay
    responsive.
    """

    def __init__(
        self,
        dispatcher: LedDispatcher,
        sleeper: Callable[[CancellationToken, float], bool] | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the pattern engine.

        Args:
            dispatcher: LED dispatcher that performs the writes
            sleeper: ``(token, seconds) -> cancelled``; defaults to waiting on the token
            rng: Random source for the randomized patterns
        """
        self._dispatcher = dispatcher
        self._sleep = sleeper or _wait
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._active: CancellationToken | None = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._active is not None

    def cancel(self) -> bool:
        """Cancel the pattern in flight. Returns False if none was running."""
        with self._lock:
            token = self._active
        if token is None:
            return False
        token.cancel()
        return True

    def run(self, name: str, steps: Iterable[Step]) -> bool:
        """
        Play a step sequence, superseding any pattern in flight.

        Returns:
            True if every step ran, False if the pattern was cancelled
        """
        token = CancellationToken()
        with self._lock:
            if self._active is not None:
                logger.info(f"Pattern '{name}' supersedes the running pattern")
                self._active.cancel()
            self._active = token

        logger.debug(f"Pattern '{name}' started")
        try:
            for step in steps:
                if token.cancelled:
                    logger.info(f"Pattern '{name}' cancelled")
                    return False
                if isinstance(step, Pause):
                    if step.ms > 0 and self._sleep(token, step.ms / 1000):
                        logger.info(f"Pattern '{name}' cancelled")
                        return False
                elif step.is_all:
                    self._dispatcher.set_all(step.on)
                else:
                    for role_id in step.roles:
                        self._dispatcher.set_role(role_id, step.on)
            logger.debug(f"Pattern '{name}' finished")
            return True
        finally:
            with self._lock:
                if self._active is token:
                    self._active = None

    # ================================================================
    # PATTERNS
    # ================================================================

    def flash(self, role_id: int, times: int = 3, duration: int = 500) -> bool:
        return self.run(f"flash {role_id}", flash_steps((role_id,), times, duration))

    def flash_all(self, times: int = 3, duration: int = 300) -> bool:
        return self.run("flash all", flash_steps(ROLE_IDS, times, duration))

    def chase(self, rounds: int = 2, speed: int = 200) -> bool:
        return self.run("chase", chase_steps(rounds, speed))

    def random_sequence(
        self, count: int = 4, on_duration: int = 500, off_duration: int = 100, total_sequences: int = 1
    ) -> list[list[int]]:
        """Play random role orderings. Returns the sequences that were generated."""
        sequences = random_sequences(self._rng, count, total_sequences)
        self.run("random sequence", sequence_steps(sequences, on_duration, off_duration))
        return sequences

    def simon(self, length: int = 4, speed: int = 800) -> list[int]:
        """
        Play a random Simon-says sequence.

        Returns:
            The generated sequence, for checking the player's replay
        """
        sequence = simon_sequence(self._rng, length)
        logger.info(f"Simon sequence: {sequence}")
        self.run("simon", simon_steps(sequence, speed))
        return sequence

    def cascade(self, waves: int = 3, wave_speed: int = 200) -> bool:
        directions = [self._rng.random() < 0.5 for _ in range(waves)]
        return self.run("cascade", cascade_steps(directions, wave_speed))

    def rhythmic(self, beats: int = 8, tempo: int = 600) -> bool:
        return self.run("rhythmic", rhythmic_steps(rhythmic_beats(self._rng, beats), tempo))

    def game_start(self) -> bool:
        return self.run("game start", chase_steps(2, 150) + flash_steps(ROLE_IDS, 2, 200))

    def game_over(self) -> bool:
        steps = [LedAction(ROLE_IDS, True), Pause(1000)]
        steps += flash_steps(ROLE_IDS, 5, 100)
        steps.append(LedAction(ROLE_IDS, False))
        return self.run("game over", steps)

    def game_win(self) -> bool:
        return self.run("game win", chase_steps(3, 100) + [LedAction(ROLE_IDS, False)])

    def speed_feedback(self, rpm: int) -> bool:
        times, duration = speed_feedback_params(rpm)
        return self.run("speed feedback", flash_steps(ROLE_IDS, times, duration))

    def random_flash_sequence(self, sequences: int = 3, flash_duration: int = 500) -> list[int]:
        """Flash one random role per sequence. Returns the roles that were flashed."""
        picks = random_flash_picks(self._rng, sequences)
        self.run("random flash", sequence_steps([picks], flash_duration, flash_duration))
        return picks

    def random_led_game(self, rounds: int = 5, speed: int = 600) -> list[tuple[int, ...]]:
        """Light a random group of roles each round. Returns the groups in play order."""
        groups = random_game_rounds(self._rng, rounds)
        logger.info(f"Random LED game rounds: {groups}")
        self.run("random led game", random_game_steps(groups, speed))
        return groups

    # Bike game cues

    def bike_start(self) -> bool:
        return self.run("bike start", chase_steps(2, 150) + flash_steps(ROLE_IDS, 2, 200))

    def bike_milestone(self, milestone: int) -> bool:
        logger.info(f"Bike milestone {milestone} reached")
        return self.run(f"bike milestone {milestone}", chase_steps(2, 150))

    def bike_victory(self) -> bool:
        return self.run("bike victory", chase_steps(3, 100) + [LedAction(ROLE_IDS, False)])
