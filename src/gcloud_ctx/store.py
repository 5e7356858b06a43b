"""The configuration store: named gcloud configurations on disk.

Layout under the store root::

    <location>/configurations/config_<name>   key-file per configuration
    <location>/active_config                  name of the active configuration

Every write goes through a temporary file in the target directory followed by
``os.replace``, so readers never observe a half-written profile or marker.
Concurrent writers are not locked out; the last one to replace the marker wins.
"""

from __future__ import annotations

import logging
import os
import pathlib
import tempfile
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict

from gcloud_ctx.constants import (
    ACTIVE_MARKER_FILE,
    CONFIGURATION_PREFIX,
    CONFIGURATIONS_DIR,
    NAME_PATTERN,
    default_location,
)
from gcloud_ctx.errors import (
    ConflictError,
    CorruptStateError,
    InvalidNameError,
    NoActiveConfigurationError,
    NotFoundError,
    SerializationError,
    StoreIOError,
)
from gcloud_ctx.history import HistoryLog
from gcloud_ctx.properties import Properties

logger = logging.getLogger(__name__)


class ConflictAction(str, Enum):
    """What to do when a destination name is already taken."""

    FAIL = "fail"
    OVERWRITE = "overwrite"


class Configuration(BaseModel):
    """A named set of properties."""

    model_config = ConfigDict(frozen=True)

    name: str
    properties: Properties = Properties()


def is_valid_name(name: str) -> bool:
    return bool(name) and NAME_PATTERN.match(name) is not None


def _atomic_write(path: pathlib.Path, text: str) -> None:
    tmp: Optional[pathlib.Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="\n",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as fh:
            tmp = pathlib.Path(fh.name)
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except OSError as exc:
        if tmp is not None and tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                logger.debug("Could not remove temporary file %s", tmp)
        raise StoreIOError(path, exc) from exc


def _remove(path: pathlib.Path, missing_ok: bool = False) -> None:
    try:
        path.unlink()
    except FileNotFoundError as exc:
        if not missing_ok:
            raise StoreIOError(path, exc) from exc
    except OSError as exc:
        raise StoreIOError(path, exc) from exc


class ConfigurationStore:
    """All configurations under one store root, plus the active marker.

    Build one with :meth:`open`; the constructor takes already-loaded state.
    Mutating methods persist to disk before updating the in-memory view, so a
    failed call leaves both untouched.
    """

    def __init__(
        self,
        location: pathlib.Path,
        configurations: dict[str, Configuration],
        active: Optional[str] = None,
        history: Optional[HistoryLog] = None,
    ):
        self.location = pathlib.Path(location)
        self.configurations_dir = self.location / CONFIGURATIONS_DIR
        self.marker_path = self.location / ACTIVE_MARKER_FILE
        self.history = history
        self._configurations = dict(configurations)
        self._active = active

    # ── construction ──────────────────────────────────────────────

    @classmethod
    def open(
        cls,
        location: Union[str, pathlib.Path],
        history: Optional[HistoryLog] = None,
    ) -> "ConfigurationStore":
        """Load every configuration under *location*.

        A missing root is created empty. Raises :class:`StoreIOError` when the
        root cannot be created or read, :class:`SerializationError` when any
        configuration file is malformed and :class:`CorruptStateError` when
        the active marker names a configuration that does not exist.
        """
        root = pathlib.Path(location).expanduser()
        configurations_dir = root / CONFIGURATIONS_DIR
        try:
            configurations_dir.mkdir(parents=True, exist_ok=True)
            paths = sorted(p for p in configurations_dir.iterdir() if p.is_file())
        except OSError as exc:
            raise StoreIOError(configurations_dir, exc) from exc

        configurations: dict[str, Configuration] = {}
        for path in paths:
            if not path.name.startswith(CONFIGURATION_PREFIX):
                continue
            name = path.name[len(CONFIGURATION_PREFIX):]
            if not is_valid_name(name):
                logger.warning("Ignoring %s: '%s' is not a valid configuration name", path, name)
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except UnicodeDecodeError as exc:
                raise SerializationError(str(exc), path) from exc
            except OSError as exc:
                raise StoreIOError(path, exc) from exc
            configurations[name] = Configuration(
                name=name, properties=Properties.from_text(text, path)
            )
            logger.debug("Loaded configuration '%s' from %s", name, path)

        marker = root / ACTIVE_MARKER_FILE
        try:
            active = marker.read_text(encoding="utf-8").strip() or None
        except FileNotFoundError:
            active = None
        except UnicodeDecodeError as exc:
            raise SerializationError(str(exc), marker) from exc
        except OSError as exc:
            raise StoreIOError(marker, exc) from exc

        if active is not None and active not in configurations:
            raise CorruptStateError(active, marker)

        return cls(root, configurations, active, history)

    @classmethod
    def with_default_location(cls, history: Optional[HistoryLog] = None) -> "ConfigurationStore":
        return cls.open(default_location(), history)

    # ── reads ─────────────────────────────────────────────────────

    def configurations(self) -> list[Configuration]:
        return [self._configurations[name] for name in sorted(self._configurations)]

    def names(self) -> list[str]:
        return sorted(self._configurations)

    def find_by_name(self, name: str) -> Optional[Configuration]:
        return self._configurations.get(name)

    def is_active(self, configuration: Union[Configuration, str]) -> bool:
        name = configuration.name if isinstance(configuration, Configuration) else configuration
        return self._active is not None and self._active == name

    def active(self) -> str:
        if self._active is None:
            raise NoActiveConfigurationError()
        return self._active

    current = active

    def describe(self, name: Optional[str] = None) -> Properties:
        """Return the properties of *name*, or of the active configuration."""
        if name is None:
            name = self.active()
        return self._get(name).properties

    def path_for(self, name: str) -> pathlib.Path:
        return self.configurations_dir / f"{CONFIGURATION_PREFIX}{name}"

    # ── mutations ─────────────────────────────────────────────────

    def create(
        self,
        name: str,
        properties: Properties,
        conflict: ConflictAction = ConflictAction.FAIL,
    ) -> Configuration:
        """Create *name* with *properties*.

        Overwriting an existing configuration keeps its active status.
        """
        conflict = ConflictAction(conflict)
        self._check_name(name)
        self._check_conflict(name, conflict)

        self._write_configuration(name, properties)
        configuration = self._put(name, properties)

        logger.info("Created configuration '%s'", name)
        self._record("create", {"name": name, "conflict": conflict.value})
        return configuration

    def copy(
        self,
        src_name: str,
        dest_name: str,
        conflict: ConflictAction = ConflictAction.FAIL,
    ) -> Configuration:
        conflict = ConflictAction(conflict)
        source = self._get(src_name)
        self._check_name(dest_name)
        self._check_conflict(dest_name, conflict)

        self._write_configuration(dest_name, source.properties)
        configuration = self._put(dest_name, source.properties)

        logger.info("Copied configuration '%s' to '%s'", src_name, dest_name)
        self._record("copy", {"src": src_name, "dest": dest_name, "conflict": conflict.value})
        return configuration

    def rename(
        self,
        old_name: str,
        new_name: str,
        conflict: ConflictAction = ConflictAction.FAIL,
    ) -> Configuration:
        """Rename *old_name* to *new_name*, moving the active marker with it.

        The new file is written first, then the marker, then the old file is
        removed; any failure undoes the steps already taken.
        """
        conflict = ConflictAction(conflict)
        source = self._get(old_name)
        self._check_name(new_name)

        if new_name == old_name:
            if conflict is ConflictAction.FAIL:
                raise ConflictError(new_name)
            return source

        self._check_conflict(new_name, conflict)
        replaced = self._configurations.get(new_name)
        was_active = self._active == old_name

        self._write_configuration(new_name, source.properties)
        try:
            if was_active:
                self._write_marker(new_name)
            _remove(self.path_for(old_name))
        except StoreIOError:
            self._undo_rename(old_name, new_name, replaced, was_active)
            raise

        del self._configurations[old_name]
        configuration = self._put(new_name, source.properties)
        if was_active:
            self._active = new_name

        logger.info("Renamed configuration '%s' to '%s'", old_name, new_name)
        self._record(
            "rename",
            {"old": old_name, "new": new_name, "conflict": conflict.value},
            {"active": was_active},
        )
        return configuration

    def delete(self, name: str) -> None:
        """Delete *name*. Deleting the active configuration clears the marker."""
        self._get(name)
        was_active = self._active == name

        if was_active:
            _remove(self.marker_path, missing_ok=True)
        try:
            _remove(self.path_for(name))
        except StoreIOError:
            if was_active:
                self._try_restore("active marker", lambda: self._write_marker(name))
            raise

        del self._configurations[name]
        if was_active:
            self._active = None

        logger.info("Deleted configuration '%s'", name)
        self._record("delete", {"name": name}, {"was_active": was_active})

    def activate(self, name: str) -> None:
        self._get(name)
        self._write_marker(name)
        self._active = name

        logger.info("Activated configuration '%s'", name)
        self._record("activate", {"name": name})

    # ── internals ─────────────────────────────────────────────────

    def _get(self, name: str) -> Configuration:
        configuration = self._configurations.get(name)
        if configuration is None:
            raise NotFoundError(name)
        return configuration

    def _put(self, name: str, properties: Properties) -> Configuration:
        configuration = Configuration(name=name, properties=properties)
        self._configurations[name] = configuration
        return configuration

    def _check_name(self, name: str) -> None:
        if not is_valid_name(name):
            raise InvalidNameError(name)

    def _check_conflict(self, name: str, conflict: ConflictAction) -> None:
        if name in self._configurations and conflict is ConflictAction.FAIL:
            raise ConflictError(name)

    def _write_configuration(self, name: str, properties: Properties) -> None:
        try:
            self.configurations_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreIOError(self.configurations_dir, exc) from exc
        _atomic_write(self.path_for(name), properties.to_text())

    def _write_marker(self, name: str) -> None:
        _atomic_write(self.marker_path, name)

    def _undo_rename(
        self,
        old_name: str,
        new_name: str,
        replaced: Optional[Configuration],
        was_active: bool,
    ) -> None:
        if was_active:
            self._try_restore("active marker", lambda: self._write_marker(old_name))
        if replaced is not None:
            self._try_restore(
                new_name, lambda: self._write_configuration(new_name, replaced.properties)
            )
        else:
            self._try_restore(new_name, lambda: _remove(self.path_for(new_name), missing_ok=True))

    def _try_restore(self, what: str, step) -> None:
        try:
            step()
        except StoreIOError as exc:
            logger.error("Could not restore %s after a failed operation: %s", what, exc)

    def _record(self, action: str, args: dict[str, Any], result: Optional[dict[str, Any]] = None) -> None:
        if self.history is None:
            return
        try:
            self.history.record(action, args, result)
        except OSError as exc:
            logger.warning("Could not append to history log %s: %s", self.history.path, exc)
