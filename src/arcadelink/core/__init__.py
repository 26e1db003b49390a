"""Core controller logic: input tracking, LED dispatch, patterns and the controller."""

from .cadence import CadenceSensorAdapter
from .controller import ArcadeController
from .input_tracker import CommandDebouncer, InputStateTracker
from .led_dispatcher import LedDispatcher
from .patterns import CancellationToken, LedAction, Pause, PatternEngine

__all__ = [
    "ArcadeController",
    "CadenceSensorAdapter",
    "CancellationToken",
    "CommandDebouncer",
    "InputStateTracker",
    "LedAction",
    "LedDispatcher",
    "Pause",
    "PatternEngine",
]
