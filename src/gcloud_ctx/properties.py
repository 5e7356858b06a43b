"""Typed configuration properties and their key-file (INI) serialization."""

from __future__ import annotations

import configparser
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError, constr, field_validator

from gcloud_ctx.errors import InvalidPropertyError, SerializationError

# Single line, no surrounding whitespace: the INI reader strips values and
# splits on line breaks, so anything else would not read back unchanged.
Value = constr(pattern=r"^[^\s](?:[^\r\n]*[^\s])?$")

# A header line can never produce this name, so a "[DEFAULT]" section in the
# input is read like any other unknown section instead of leaking its keys.
_NO_DEFAULT_SECTION = "\n"


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True)

    def is_empty(self) -> bool:
        return all(v is None for v in self.model_dump().values())


class CoreProperties(_Section):
    """Settings in the ``[core]`` section."""

    project: Optional[Value] = None
    account: Optional[Value] = None


class ComputeProperties(_Section):
    """Settings in the ``[compute]`` section."""

    zone: Optional[Value] = None
    region: Optional[Value] = None


# Serialization order of the sections this model understands
SECTIONS = (
    ("core", CoreProperties),
    ("compute", ComputeProperties),
)


class Properties(BaseModel):
    """The settings held by one configuration.

    A section is ``None`` unless at least one of its fields is set, so two
    values holding the same settings always compare equal.
    """

    model_config = ConfigDict(frozen=True)

    core: Optional[CoreProperties] = None
    compute: Optional[ComputeProperties] = None

    @field_validator("core", "compute")
    @classmethod
    def _drop_empty_section(cls, value: Optional[_Section]) -> Optional[_Section]:
        if value is not None and value.is_empty():
            return None
        return value

    @classmethod
    def from_text(cls, text: str, source: Optional[Union[str, Path]] = None) -> "Properties":
        """Parse key-file *text*.

        Sections and keys this model does not know are ignored. Keys with an
        empty value are treated as unset.

        Raises
        ------
        SerializationError
            When the text is not valid key-file syntax.
        """
        parser = configparser.ConfigParser(
            interpolation=None, strict=True, default_section=_NO_DEFAULT_SECTION
        )
        try:
            parser.read_string(text, source=str(source) if source else "<string>")
        except configparser.Error as exc:
            raise SerializationError(str(exc), source) from exc

        sections = {}
        for name, model in SECTIONS:
            if not parser.has_section(name):
                continue
            values = {}
            for key in model.model_fields:
                value = parser.get(name, key, fallback="")
                if value:
                    values[key] = value
            if values:
                try:
                    sections[name] = model(**values)
                except ValidationError as exc:
                    key = exc.errors()[0]["loc"][0]
                    raise SerializationError(
                        f"{name}/{key} holds an unsupported value {values[key]!r}", source
                    ) from exc
        return cls(**sections)

    def to_text(self) -> str:
        """Render as key-file text with ``\\n`` line endings.

        Only sections with at least one set field are written; keys keep
        their declaration order.
        """
        blocks = []
        for name, _ in SECTIONS:
            section = getattr(self, name)
            if section is None:
                continue
            lines = [f"[{name}]"]
            for key, value in section.model_dump().items():
                if value is not None:
                    lines.append(f"{key} = {value}")
            blocks.append("\n".join(lines) + "\n")
        return "\n".join(blocks)

    def items(self) -> Iterator[Tuple[str, str, str]]:
        """Yield ``(section, key, value)`` for every set field."""
        for name, _ in SECTIONS:
            section = getattr(self, name)
            if section is None:
                continue
            for key, value in section.model_dump().items():
                if value is not None:
                    yield name, key, value

    def is_empty(self) -> bool:
        return self.core is None and self.compute is None


def deserialize(text: str, source: Optional[Union[str, Path]] = None) -> Properties:
    return Properties.from_text(text, source)


def serialize(properties: Properties) -> str:
    return properties.to_text()


class PropertiesBuilder:
    """Accumulate settings and produce a :class:`Properties`.

    Example::

        props = PropertiesBuilder().project("acme").zone("us-east1-b").build()
    """

    def __init__(self):
        self._project: Optional[str] = None
        self._account: Optional[str] = None
        self._zone: Optional[str] = None
        self._region: Optional[str] = None

    def project(self, value: str) -> "PropertiesBuilder":
        self._project = value
        return self

    def account(self, value: str) -> "PropertiesBuilder":
        self._account = value
        return self

    def zone(self, value: str) -> "PropertiesBuilder":
        self._zone = value
        return self

    def region(self, value: str) -> "PropertiesBuilder":
        self._region = value
        return self

    def build(self) -> Properties:
        """Produce the properties.

        Raises
        ------
        InvalidPropertyError
            When a value could not be written to and read back from a key-file.
        """
        core = _section("core", CoreProperties, project=self._project, account=self._account)
        compute = _section("compute", ComputeProperties, zone=self._zone, region=self._region)
        return Properties(core=core, compute=compute)


def _section(name: str, model: type, **values: Optional[str]) -> Optional[_Section]:
    if all(v is None for v in values.values()):
        return None
    try:
        return model(**values)
    except ValidationError as exc:
        key = exc.errors()[0]["loc"][0]
        raise InvalidPropertyError(f"{name}/{key}", values[key]) from exc
