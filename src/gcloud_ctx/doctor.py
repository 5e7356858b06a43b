"""Doctor command — inspects a configuration store without opening it."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .constants import (
    ACTIVE_MARKER_FILE,
    CONFIGURATION_PREFIX,
    CONFIGURATIONS_DIR,
    NAME_PATTERN,
)
from .errors import SerializationError
from .properties import Properties

MIN_PYTHON = (3, 9)


@dataclass
class CheckResult:
    """Outcome of one check; *hint* says how to fix a failure."""

    name: str
    passed: bool
    message: str
    hint: Optional[str] = None


@dataclass
class DoctorReport:
    checks: List[CheckResult] = field(default_factory=list)

    @property
    def failures(self) -> List[CheckResult]:
        return [c for c in self.checks if not c.passed]

    @property
    def passed(self) -> bool:
        return not self.failures

    def add(self, *results: CheckResult) -> None:
        self.checks.extend(results)


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def check_python_version() -> CheckResult:
    """Verify that the running Python is one gcloud-ctx supports."""
    running = "{}.{}".format(*sys.version_info[:2])
    required = "{}.{}".format(*MIN_PYTHON)
    if tuple(sys.version_info[:2]) < MIN_PYTHON:
        return CheckResult(
            name="Python version",
            passed=False,
            message=f"Python {running} is not supported (gcloud-ctx needs {required}+)",
            hint=f"Install Python {required}+ from https://python.org/downloads/",
        )
    return CheckResult(
        name="Python version",
        passed=True,
        message=f"Python {running} ✓",
    )


def check_store_root(location: Path) -> CheckResult:
    """Verify that the store root and its configurations directory are writable.

    The active marker and the history log live in the root itself, so both
    directories must accept writes.
    """
    for p in (location, location / CONFIGURATIONS_DIR):
        if not p.exists():
            continue
        if not p.is_dir():
            return CheckResult(
                name="Store root",
                passed=False,
                message=f"'{p}' exists but is not a directory",
                hint=f"Move the file out of the way: mv \"{p}\" \"{p}.bak\"",
            )
        if not os.access(p, os.W_OK):
            return CheckResult(
                name="Store root",
                passed=False,
                message=f"'{p}' exists but is not writable",
                hint=f"Fix permissions: chmod u+w \"{p}\"",
            )

    if not (location / CONFIGURATIONS_DIR).exists():
        return CheckResult(
            name="Store root",
            passed=True,
            message=f"'{location}' has no configurations yet (created on first use)",
        )
    return CheckResult(
        name="Store root",
        passed=True,
        message=f"'{location}' is writable ✓",
    )


def check_configurations(location: Path) -> List[CheckResult]:
    """Parse every configuration file and report the ones that are broken."""
    directory = location / CONFIGURATIONS_DIR
    if not directory.is_dir():
        return []

    results = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or not path.name.startswith(CONFIGURATION_PREFIX):
            continue
        name = path.name[len(CONFIGURATION_PREFIX):]
        if not NAME_PATTERN.match(name):
            results.append(
                CheckResult(
                    name=f"Configuration: {name}",
                    passed=True,  # ignored by the store, not fatal
                    message=f"'{path.name}' has an invalid name and is ignored",
                    hint="Rename the file to config_<name> using lowercase letters, digits, '-' or '_'.",
                )
            )
            continue
        try:
            Properties.from_text(path.read_text(encoding="utf-8"), path)
        except (OSError, UnicodeDecodeError, SerializationError) as exc:
            results.append(
                CheckResult(
                    name=f"Configuration: {name}",
                    passed=False,
                    message=f"'{path}' cannot be loaded: {str(exc).splitlines()[0]}",
                    hint=f"Fix the file by hand or remove it: rm \"{path}\"",
                )
            )
            continue
        results.append(
            CheckResult(
                name=f"Configuration: {name}",
                passed=True,
                message=f"'{name}' is valid ✓",
            )
        )
    return results


def check_active_marker(location: Path) -> CheckResult:
    """Verify that the active marker, if present, names an existing configuration."""
    marker = location / ACTIVE_MARKER_FILE
    if not marker.exists():
        return CheckResult(
            name="Active configuration",
            passed=True,
            message="No configuration is active",
        )
    try:
        name = marker.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        return CheckResult(
            name="Active configuration",
            passed=False,
            message=f"'{marker}' cannot be read: {exc}",
            hint=f"Remove the marker: rm \"{marker}\"",
        )
    if not name:
        return CheckResult(
            name="Active configuration",
            passed=True,
            message="No configuration is active (marker is empty)",
        )
    if not (location / CONFIGURATIONS_DIR / f"{CONFIGURATION_PREFIX}{name}").is_file():
        return CheckResult(
            name="Active configuration",
            passed=False,
            message=f"Active configuration '{name}' does not exist",
            hint=f"Remove the marker and activate another configuration: rm \"{marker}\"",
        )
    return CheckResult(
        name="Active configuration",
        passed=True,
        message=f"'{name}' is active ✓",
    )


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def run_doctor(location: Path) -> DoctorReport:
    """Run all store checks and return a :class:`DoctorReport`."""
    location = Path(location).expanduser()
    report = DoctorReport()

    report.add(check_python_version())
    report.add(check_store_root(location))
    report.add(*check_configurations(location))
    report.add(check_active_marker(location))

    return report
