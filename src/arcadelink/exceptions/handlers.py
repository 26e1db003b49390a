"""
Centralized error handling utilities.

Each layer translates errors to be more useful at the next level up:

```
┌─────────────────────────────────────────┐
│  USER LAYER (CLI)                       │
│  - Formats error.user_message           │
│  - Shows error.recovery_hint            │
└─────────────────────────────────────────┘
                  ↑ ArcadeLinkError
┌─────────────────────────────────────────┐
│  CONTROLLER LAYER                       │
│  - Logs and degrades to "device is      │
│    unresponsive", returns False         │
└─────────────────────────────────────────┘
                  ↑ ArcadeLinkError
┌─────────────────────────────────────────┐
│  LOW LEVEL (pyserial, JSON, pydantic)   │
│  - SerialException, OSError, ...        │
└─────────────────────────────────────────┘
```

## Handling Patterns

| Pattern | Code |
|---------|------|
| Convert pyserial failures | `raise wrap_serial_error(e, port) from e` |
| Convert config validation | `raise wrap_pydantic_error(e, str(path)) from e` |
| Try every port, collect failures | `collector = collect_errors("open ports"); with collector.try_operation(port): ...` |
| Critical section with auto-logging | `with ErrorContext("start controller"): ...` |
"""

import logging
from typing import Optional

from .base import ArcadeLinkError
from .config import ConfigFileInvalidError, ConfigValidationError
from .transport import PortOpenError, PortWriteError, SerialTransportError

logger = logging.getLogger(__name__)


class ErrorContext:
    """
    Context manager for error handling with automatic logging.

    Example:
        ```python
        with ErrorContext("open serial ports", re_raise=False) as ctx:
            manager.open(candidate)

        if ctx.error:
            print(f"Failed: {ctx.error}")
        ```
    """

    def __init__(
        self,
        operation: str,
        logger_instance: Optional[logging.Logger] = None,
        re_raise: bool = True
    ):
        """
        Initialize error context.

        Args:
            operation: Description of the operation
            logger_instance: Logger to use (defaults to module logger)
            re_raise: Whether to re-raise exceptions
        """
        self.operation = operation
        self.logger = logger_instance or logger
        self.re_raise = re_raise
        self.error: Optional[Exception] = None

    def __enter__(self):
        self.logger.debug(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.logger.debug(f"Completed: {self.operation}")
            return False

        self.error = exc_val

        if isinstance(exc_val, ArcadeLinkError):
            self.logger.error(f"Failed to {self.operation}: {exc_val.technical_message}")
        else:
            self.logger.error(f"Failed to {self.operation}: {exc_val}", exc_info=True)

        return not self.re_raise


def wrap_serial_error(error: Exception, port: str, during: str = "open") -> SerialTransportError:
    """
    Convert pyserial/OS errors to ArcadeLink transport exceptions.

    Args:
        error: The original exception from pyserial or the OS
        port: Port path involved in the error
        during: "open", "read" or "write"

    Returns:
        A SerialTransportError subclass with a user-friendly message
    """
    if isinstance(error, SerialTransportError):
        return error

    error_msg = str(error)
    if during == "write":
        return PortWriteError(port, original_error=error_msg)
    if during == "read":
        return SerialTransportError(
            user_message=f"Lost connection to {port}",
            technical_message=f"Read from {port} failed: {error_msg}",
            port=port,
            recovery_hint="Reconnect the device and run the scan again.",
        )

    timed_out = isinstance(error, TimeoutError) or "timed out" in error_msg.lower()
    return PortOpenError(port, original_error=error_msg, timed_out=timed_out)


def wrap_pydantic_error(error: Exception, file_path: str) -> ArcadeLinkError:
    """
    Convert Pydantic validation errors to ArcadeLink exceptions.

    Args:
        error: The Pydantic ValidationError
        file_path: Path to the config file that failed validation

    Returns:
        A ConfigurationError with appropriate type and message
    """
    from pydantic import ValidationError

    error_msg = str(error)

    # Format: "Invalid JSON: <actual error> [type=json_invalid, ..."
    if "Invalid JSON" in error_msg or "json_invalid" in error_msg:
        if "Invalid JSON:" in error_msg:
            parse_error = error_msg.split("Invalid JSON:")[1].split("[type=")[0].strip()
        else:
            parse_error = error_msg
        return ConfigFileInvalidError(file_path, parse_error)

    if isinstance(error, ValidationError):
        errors = error.errors()
        if len(errors) == 1:
            first_error = errors[0]
            field = ".".join(str(loc) for loc in first_error.get("loc", ("unknown",)))
            return ConfigValidationError(
                field=field,
                value=first_error.get("input"),
                error_msg=first_error.get("msg", "validation failed"),
                file_path=file_path,
            )
        if errors:
            error_lines = []
            for err in errors:
                field = ".".join(str(loc) for loc in err.get("loc", ("unknown",)))
                error_lines.append(f"  - {field}: {err.get('msg', 'validation failed')}")

            return ConfigValidationError(
                field="multiple fields",
                value=None,
                error_msg=f"{len(errors)} validation errors:\n" + "\n".join(error_lines),
                file_path=file_path,
            )

    return ConfigValidationError(field="unknown", value=None, error_msg=error_msg, file_path=file_path)


def format_error_for_display(error: Exception) -> tuple[str, Optional[str]]:
    """
    Format an exception for user display.

    Returns:
        Tuple of (user_message, recovery_hint or None)
    """
    if isinstance(error, ArcadeLinkError):
        return error.user_message, error.recovery_hint

    error_type = type(error).__name__
    return f"{error_type}: {error}", None


def collect_errors(operation: str) -> "ErrorCollector":
    """
    Create an error collector for batch operations.

    Example:
        ```python
        collector = collect_errors("open serial ports")

        for candidate in candidates:
            with collector.try_operation(f"open {candidate.device}"):
                manager.open(candidate)

        if collector.has_errors:
            logger.warning(collector.get_summary())
        ```
    """
    return ErrorCollector(operation)


class ErrorCollector:
    """
    Collects multiple errors during batch operations.

    Allows operations to continue even if some fail, then
    report all failures at once.
    """

    def __init__(self, operation: str):
        self.operation = operation
        self.errors: list[tuple[str, Exception]] = []
        self.success_count = 0

    @property
    def has_errors(self) -> bool:
        """Check if any errors were collected."""
        return len(self.errors) > 0

    @property
    def error_count(self) -> int:
        """Get the number of errors collected."""
        return len(self.errors)

    def try_operation(self, sub_operation: str):
        """
        Context manager for a single operation within the batch.

        Args:
            sub_operation: Description of this specific operation

        Returns:
            Context manager that catches and stores errors
        """
        return self._OperationContext(self, sub_operation)

    def get_summary(self) -> str:
        """Get a multi-line summary of collected errors."""
        if not self.has_errors:
            return f"All operations completed successfully ({self.success_count} total)"

        total = self.error_count + self.success_count
        summary = f"Failed to {self.operation}: {self.error_count} of {total} failed:\n"
        for sub_op, error in self.errors:
            if isinstance(error, ArcadeLinkError):
                summary += f"  - {sub_op}: {error.user_message}\n"
            else:
                summary += f"  - {sub_op}: {error}\n"

        return summary.rstrip()

    class _OperationContext:
        """Internal context manager for individual operations."""

        def __init__(self, collector: "ErrorCollector", sub_operation: str):
            self.collector = collector
            self.sub_operation = sub_operation

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_type is None:
                self.collector.success_count += 1
                return False

            if not isinstance(exc_val, Exception):
                # KeyboardInterrupt and friends must escape
                return False

            self.collector.errors.append((self.sub_operation, exc_val))
            return True
