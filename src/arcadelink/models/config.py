"""Application configuration model."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from arcadelink.utils.persistence import PydanticPersistence

DEFAULT_CONFIG_PATH = Path.home() / ".arcadelink" / "config.json"


class ButtonLayout(BaseModel):
    """Color and cabinet position of one button role."""

    role_id: int = Field(ge=1, le=4)
    color: str
    position: str


def _default_buttons() -> list[ButtonLayout]:
    return [
        ButtonLayout(role_id=1, color="GREEN", position="LEFT"),
        ButtonLayout(role_id=2, color="WHITE", position="MIDDLE-LEFT"),
        ButtonLayout(role_id=3, color="RED", position="MIDDLE-RIGHT"),
        ButtonLayout(role_id=4, color="GREEN", position="RIGHT"),
    ]


class ScannerConfig(BaseModel):
    """Heuristics used to pick candidate ports out of all OS serial ports."""

    manufacturer_markers: list[str] = Field(
        default_factory=lambda: ["Arm", "ARM", "mbed", "Microbit", "Microsoft"],
        description="Substrings of the USB manufacturer string that mark a candidate",
    )
    path_patterns: list[str] = Field(
        default_factory=lambda: ["usbmodem", "ttyACM"],
        description="Substrings of the port path that mark a candidate",
    )
    vendor_ids: list[str] = Field(
        default_factory=lambda: ["0d28"],
        description="USB vendor IDs (hex, lowercase) that mark a candidate",
    )
    product_ids: list[str] = Field(
        default_factory=lambda: ["0204"],
        description="USB product IDs (hex, lowercase) that mark a candidate",
    )


class AppConfig(BaseModel):
    """Application configuration and settings."""

    # Serial link
    baud_rate: int = Field(default=115200, gt=0, description="Serial baud rate for every device")
    open_timeout: float = Field(
        default=3.0, gt=0, description="Seconds to wait for a port to open before giving up"
    )
    connect_stagger: float = Field(
        default=0.5, ge=0, description="Pause between opening consecutive ports (seconds)"
    )
    identify_delay: float = Field(
        default=1.0, ge=0, description="Delay before sending IDENTIFY to a freshly opened port"
    )

    # Feedback
    confirm_flash_ms: int = Field(
        default=500,
        ge=0,
        description="On/off time of the LED flash confirming a role claim (0 disables it)",
    )

    buttons: list[ButtonLayout] = Field(default_factory=_default_buttons)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)

    @field_validator("buttons")
    @classmethod
    def _one_layout_per_role(cls, buttons: list[ButtonLayout]) -> list[ButtonLayout]:
        ids = sorted(b.role_id for b in buttons)
        if ids != [1, 2, 3, 4]:
            raise ValueError("exactly one layout for each of button roles 1-4 is required")
        return sorted(buttons, key=lambda b: b.role_id)

    def layout_for(self, role_id: int) -> ButtonLayout:
        return self.buttons[role_id - 1]

    @classmethod
    def load_or_default(cls, path: Path | None = None) -> "AppConfig":
        """
        Load config from file or return default.

        Args:
            path: Path to config file. If None, uses ~/.arcadelink/config.json.

        Raises:
            ConfigFileInvalidError: If config file has invalid JSON syntax
            ConfigValidationError: If config values fail validation
        """
        return PydanticPersistence.load_json_or_default(path or DEFAULT_CONFIG_PATH, cls)

    def save(self, path: Path | None = None) -> None:
        """Save config to file."""
        PydanticPersistence.save_json(self, path or DEFAULT_CONFIG_PATH)
