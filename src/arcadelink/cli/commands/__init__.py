"""CLI commands for arcadelink."""

from .cadence import cadence_group
from .config import config
from .led import led_group
from .monitor import monitor
from .pattern import pattern_group
from .ports import ports

__all__ = ["cadence_group", "config", "led_group", "monitor", "pattern_group", "ports"]
