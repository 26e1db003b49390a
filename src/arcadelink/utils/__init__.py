"""Shared helpers: observer bookkeeping and JSON persistence."""

from .observer import ObserverManager
from .persistence import PydanticPersistence

__all__ = ["ObserverManager", "PydanticPersistence"]
