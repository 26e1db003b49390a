"""Role, button, LED and cadence state models."""

import math
import time

from pydantic import BaseModel, ConfigDict, Field

from .enums import RoleKind

ROLE_IDS: tuple[int, ...] = (1, 2, 3, 4)


def is_button_id(value: object) -> bool:
    """Return True if value is a valid button role id (1-4)."""
    return isinstance(value, int) and not isinstance(value, bool) and value in ROLE_IDS


class Role(BaseModel):
    """Logical identity a device holds after the identification handshake."""

    model_config = ConfigDict(frozen=True)

    kind: RoleKind = RoleKind.UNASSIGNED
    button_id: int | None = Field(default=None, ge=1, le=4)

    @classmethod
    def button(cls, button_id: int) -> "Role":
        return cls(kind=RoleKind.BUTTON, button_id=button_id)

    @classmethod
    def cadence(cls) -> "Role":
        return cls(kind=RoleKind.CADENCE)

    @classmethod
    def unassigned(cls) -> "Role":
        return cls()

    @property
    def is_assigned(self) -> bool:
        return self.kind != RoleKind.UNASSIGNED

    def __str__(self) -> str:
        if self.kind == RoleKind.BUTTON:
            return f"Button {self.button_id}"
        if self.kind == RoleKind.CADENCE:
            return "Cadence sensor"
        return "Unassigned"


class ButtonRole(BaseModel):
    """Press state of one arcade button role."""

    id: int = Field(ge=1, le=4)
    color: str
    position: str
    pressed: bool = False


class LedState(BaseModel):
    """
    LED state of one button role.

    `on` is set the moment a command is issued; `confirmed` follows the
    device's LED_<n>_..._CONFIRMED replies and may lag by one round trip.
    """

    role_id: int = Field(ge=1, le=4)
    on: bool = False
    confirmed: bool = False


class CadenceSample(BaseModel):
    """Cumulative revolution count plus instantaneous rate from the bike sensor."""

    revolution_count: int = Field(default=0, ge=0)
    rpm: int = Field(default=0, ge=0)
    timestamp: int = Field(default=0, description="Device clock (ms) of the last sample")
    updated_at: float = Field(default=0.0, description="Host monotonic time of the last sample")

    @property
    def is_active(self) -> bool:
        return self.updated_at > 0

    @staticmethod
    def is_valid_field(value: object) -> bool:
        """True if value is a usable non-negative integer reading."""
        if isinstance(value, bool):
            return False
        if isinstance(value, float):
            return not math.isnan(value) and value >= 0 and value.is_integer()
        return isinstance(value, int) and value >= 0

    def touched(self) -> "CadenceSample":
        return self.model_copy(update={"updated_at": time.monotonic()})
