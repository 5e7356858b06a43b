"""Exit codes and the exception hierarchy for gcloud-ctx."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

# Exit codes
EXIT_OK = 0
EXIT_GENERAL_ERROR = 1
EXIT_NOT_FOUND = 2
EXIT_CONFLICT = 3
EXIT_INVALID_NAME = 4
EXIT_NO_ACTIVE = 5
EXIT_SERIALIZATION = 6
EXIT_IO = 7
EXIT_CORRUPT_STATE = 8
EXIT_INVALID_PROPERTY = 9
EXIT_DOCTOR_FAILURE = 10

# Human-readable descriptions keyed by exit code
_EXIT_DESCRIPTIONS = {
    EXIT_OK: "Success",
    EXIT_GENERAL_ERROR: "General error",
    EXIT_NOT_FOUND: "Configuration not found",
    EXIT_CONFLICT: "A configuration with that name already exists",
    EXIT_INVALID_NAME: "Invalid configuration name",
    EXIT_NO_ACTIVE: "No configuration is active",
    EXIT_SERIALIZATION: "Malformed configuration file",
    EXIT_IO: "Configuration store could not be read or written",
    EXIT_CORRUPT_STATE: "Active marker refers to a missing configuration",
    EXIT_INVALID_PROPERTY: "Invalid property value",
    EXIT_DOCTOR_FAILURE: "Store check failed (run `gctx doctor` for details)",
}


def exit_description(code: int) -> str:
    """Return a human-readable description for *code*."""
    return _EXIT_DESCRIPTIONS.get(code, f"Unknown error (code {code})")


class GctxError(Exception):
    """Base exception; carries an exit code and an actionable message."""

    def __init__(self, message: str, exit_code: int = EXIT_GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class NotFoundError(GctxError):
    """Raised when the referenced configuration does not exist."""

    def __init__(self, name: str):
        hint = "  Hint: Run `gctx list` to see the available configurations."
        super().__init__(f"Configuration '{name}' does not exist.\n{hint}", EXIT_NOT_FOUND)
        self.name = name


class ConflictError(GctxError):
    """Raised when the destination name is taken and the conflict policy is to fail."""

    def __init__(self, name: str):
        hint = "  Hint: Choose another name, or pass --force to overwrite it."
        super().__init__(f"Configuration '{name}' already exists.\n{hint}", EXIT_CONFLICT)
        self.name = name


class InvalidNameError(GctxError):
    """Raised when a configuration name is empty or uses disallowed characters."""

    def __init__(self, name: str):
        hint = (
            "  Hint: Names must start with a lowercase letter and contain only"
            " lowercase letters, digits, '-' and '_'."
        )
        super().__init__(f"Invalid configuration name '{name}'.\n{hint}", EXIT_INVALID_NAME)
        self.name = name


class NoActiveConfigurationError(GctxError):
    """Raised when an operation needs an active configuration and none is set."""

    def __init__(self):
        hint = "  Hint: Activate one with `gctx activate <name>`."
        super().__init__(f"No configuration is currently active.\n{hint}", EXIT_NO_ACTIVE)


class InvalidPropertyError(GctxError):
    """Raised when a property value cannot be stored in a key-file."""

    def __init__(self, key: str, value: str):
        hint = (
            "  Hint: Values must be non-empty, single-line, and must not start"
            " or end with whitespace."
        )
        super().__init__(f"Invalid value for {key}: {value!r}.\n{hint}", EXIT_INVALID_PROPERTY)
        self.key = key
        self.value = value


class SerializationError(GctxError):
    """Raised when key-file content cannot be parsed."""

    def __init__(self, detail: str, source: Optional[Union[str, Path]] = None):
        source_part = f" in '{source}'" if source else ""
        hint = "  Hint: Fix the file by hand or delete it and recreate the configuration."
        super().__init__(f"Malformed configuration{source_part}: {detail}\n{hint}", EXIT_SERIALIZATION)
        self.detail = detail
        self.source = source


class StoreIOError(GctxError):
    """Raised when the filesystem refuses a read or write."""

    def __init__(self, path: Union[str, Path], cause: OSError):
        reason = cause.strerror or str(cause)
        hint = "  Hint: Check that the directory exists and that you have permission to write to it."
        super().__init__(f"Cannot access '{path}': {reason}\n{hint}", EXIT_IO)
        self.path = path
        self.cause = cause


class CorruptStateError(GctxError):
    """Raised when the active marker names a configuration that does not exist."""

    def __init__(self, name: str, marker: Optional[Union[str, Path]] = None):
        marker_part = f"'{marker}'" if marker else "the active marker"
        hint = f"  Hint: Delete {marker_part}, then activate an existing configuration."
        super().__init__(
            f"The active configuration '{name}' does not exist.\n{hint}", EXIT_CORRUPT_STATE
        )
        self.name = name
        self.marker = marker
