"""Data models for the arcade controller."""

from .config import DEFAULT_CONFIG_PATH, AppConfig, ButtonLayout, ScannerConfig
from .device import SerialDevice
from .enums import ButtonEdge, ConnectionState, LedTarget, RoleKind
from .roles import ROLE_IDS, ButtonRole, CadenceSample, LedState, Role, is_button_id

__all__ = [
    # Config
    "AppConfig",
    "ButtonLayout",
    "DEFAULT_CONFIG_PATH",
    "ScannerConfig",
    # Models
    "ButtonRole",
    "CadenceSample",
    "LedState",
    "Role",
    "SerialDevice",
    "ROLE_IDS",
    "is_button_id",
    # Enums
    "ButtonEdge",
    "ConnectionState",
    "LedTarget",
    "RoleKind",
]
