"""ArcadeLink: host-side controller for micro:bit arcade buttons and a bike cadence sensor."""

__version__ = "0.1.0"

from .core import ArcadeController

__all__ = ["ArcadeController"]
