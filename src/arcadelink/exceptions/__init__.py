"""
Custom exception hierarchy for ArcadeLink.

## Exception Hierarchy

```
ArcadeLinkError (base)
├── SerialTransportError
│   ├── PortOpenError
│   └── PortWriteError
├── DeviceError
│   └── DeviceStateError
└── ConfigurationError
    ├── ConfigFileInvalidError
    └── ConfigValidationError
```

Nothing in the controller is fatal: transport and device errors are
logged and surface to the game layer only as a `False` return value or
a `device-disconnected` event. Malformed lines from a device never raise
at all, they decode to `Unrecognized`.

See `arcadelink.exceptions.handlers` for utilities to handle these
exceptions systematically.
"""

from .base import ArcadeLinkError
from .config import ConfigFileInvalidError, ConfigurationError, ConfigValidationError
from .device import DeviceError, DeviceStateError
from .handlers import (
    ErrorCollector,
    ErrorContext,
    collect_errors,
    format_error_for_display,
    wrap_pydantic_error,
    wrap_serial_error,
)
from .transport import PortOpenError, PortWriteError, SerialTransportError

__all__ = [
    # Base
    "ArcadeLinkError",
    # Config
    "ConfigFileInvalidError",
    "ConfigValidationError",
    "ConfigurationError",
    # Device
    "DeviceError",
    "DeviceStateError",
    # Transport
    "PortOpenError",
    "PortWriteError",
    "SerialTransportError",
    # Handlers
    "ErrorCollector",
    "ErrorContext",
    "collect_errors",
    "format_error_for_display",
    "wrap_pydantic_error",
    "wrap_serial_error",
]
