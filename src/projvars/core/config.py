# config.py
# SPDX-License-Identifier: MIT
"""
Declarative configuration models for projvars.

A run is described by a :class:`ProjvarsConfig` that groups how values are
resolved, which of them are required, where they are written, and how the
package logger behaves. Configs can be loaded from TOML or JSON and CLI flags
are layered on top by :mod:`projvars.cli.main`.
"""

from __future__ import annotations

import json
import types
from collections.abc import Sequence as ABCSequence
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from .conversions import DEFAULT_DATE_FORMAT
from .engine import OverwriteMode
from .hosting import HostingType
from .log import PACKAGE_LOGGER_NAME, DEFAULT_FORMAT, configure_logging
from .properties import DEFAULT_KEY_PREFIX, get_property

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Py3.10 fallback
    import tomli as tomllib  # type: ignore[no-redef]

__all__ = [
    "ShowRetrieved",
    "ResolutionConfig",
    "RequirementConfig",
    "OutputConfig",
    "LoggingConfig",
    "ProjvarsConfig",
    "load_config_from_path",
]


class ShowRetrieved:
    """What the retrieval report shows: nothing, primary values, or every candidate."""

    NO = "no"
    PRIMARY = "primary"
    ALL = "all"
    CHOICES = (NO, PRIMARY, ALL)

    @classmethod
    def normalize(cls, value: Optional[str]) -> str:
        mode = (value or cls.NO).strip().lower()
        if mode not in cls.CHOICES:
            raise ValueError(f"Invalid show_retrieved value: {value!r}. Expected one of {list(cls.CHOICES)}")
        return mode


@dataclass(slots=True)
class ResolutionConfig:
    """Which sources run and how their values are merged.

    Sources are consulted in this fixed order (highest priority first):
    overrides, input files (in the given order), environment, CI, SCM,
    file system, license detection.
    """

    repo_path: str = "."
    overwrite: str = OverwriteMode.ALL
    hosting_type: str = HostingType.UNKNOWN
    date_format: str = DEFAULT_DATE_FORMAT
    key_prefix: str = DEFAULT_KEY_PREFIX
    use_env: bool = True
    use_ci: bool = True
    use_scm: bool = True
    use_fs: bool = True
    use_license: bool = True
    input_files: List[str] = field(default_factory=list)
    overrides: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        self.overwrite = OverwriteMode.normalize(self.overwrite)
        self.hosting_type = HostingType.normalize(self.hosting_type)
        if not self.date_format:
            raise ValueError("resolution.date_format must not be empty.")
        for key in self.overrides:
            get_property(key, self.key_prefix)


@dataclass(slots=True)
class RequirementConfig:
    require_all: bool = False
    require_none: bool = False
    require: List[str] = field(default_factory=list)
    require_not: List[str] = field(default_factory=list)
    fail_on_missing: bool = False

    def validate(self, prefix: Optional[str] = DEFAULT_KEY_PREFIX) -> None:
        if self.require_all and self.require_none:
            raise ValueError("requirements.require_all and requirements.require_none are mutually exclusive.")
        for key in [*self.require, *self.require_not]:
            get_property(key, prefix)


@dataclass(slots=True)
class OutputConfig:
    """Where resolved values go.

    Attributes:
        env (bool): Export values into the process environment.
        file (str | None): ``KEY="VALUE"`` file to write or merge into.
        json_file (str | None): JSON object file to write or merge into.
        only_required (bool): Restrict every output to required properties.
        show_retrieved (str): ``no``, ``primary`` or ``all``.
        show_retrieved_path (str | None): Write the report here instead of
            printing it.
        dry_run (bool): Resolve and report but write nothing.
    """

    env: bool = False
    file: Optional[str] = None
    json_file: Optional[str] = None
    only_required: bool = False
    show_retrieved: str = ShowRetrieved.NO
    show_retrieved_path: Optional[str] = None
    dry_run: bool = False

    def validate(self) -> None:
        self.show_retrieved = ShowRetrieved.normalize(self.show_retrieved)


@dataclass(slots=True)
class LoggingConfig:
    """Controls the package logger; set propagate=True/logger_name to
    integrate with host apps.
    """

    level: Union[int, str] = "INFO"
    propagate: bool = False
    fmt: Optional[str] = DEFAULT_FORMAT
    logger_name: str = PACKAGE_LOGGER_NAME

    def apply(self) -> None:
        """Apply this logging configuration to the package logger."""
        configure_logging(
            level=self.level,
            propagate=self.propagate,
            fmt=self.fmt,
            logger_name=self.logger_name or PACKAGE_LOGGER_NAME,
        )


T = TypeVar("T")


@dataclass(slots=True)
class ProjvarsConfig:
    """Top-level configuration for one projvars run."""

    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    requirements: RequirementConfig = field(default_factory=RequirementConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Normalize enum-like fields and reject inconsistent settings.

        Raises:
            ValueError: On unknown modes, unknown property keys, or
                conflicting requirement flags.
        """
        self.resolution.validate()
        self.requirements.validate(self.resolution.key_prefix)
        self.output.validate()

    def to_dict(self) -> Dict[str, Any]:
        return _dataclass_to_dict(self)

    def to_json(self, path: Path | str, *, indent: int = 2) -> str:
        """Serialize the configuration to JSON and write it to disk.

        Returns:
            str: String path to the written file.
        """
        target = Path(path)
        target.write_text(json.dumps(self.to_dict(), indent=indent, sort_keys=True), encoding="utf-8")
        return str(target)

    @classmethod
    def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
        return _dataclass_from_dict(cls, data)

    @classmethod
    def from_json(cls: Type[T], path: Path | str) -> T:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, Mapping):
            raise TypeError(f"Top-level JSON document must be an object; got {type(payload).__name__}.")
        return cls.from_dict(payload)

    @classmethod
    def from_toml(cls: Type[T], path: Path | str) -> T:
        """
        Load a ProjvarsConfig from a TOML file.

        The TOML layout mirrors this dataclass: ``[resolution]``,
        ``[resolution.overrides]``, ``[requirements]``, ``[output]`` and
        ``[logging]`` tables.
        """
        data = tomllib.loads(Path(path).read_bytes().decode("utf-8"))
        return cls.from_dict(data)


def load_config_from_path(path: str | Path) -> ProjvarsConfig:
    """Load a ProjvarsConfig from a JSON or TOML file.

    Raises:
        ValueError: If the file extension is not ``.toml`` or ``.json``.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".toml":
        return ProjvarsConfig.from_toml(p)
    if suffix == ".json":
        return ProjvarsConfig.from_json(p)
    raise ValueError(f"Unsupported config extension {p.suffix!r}; expected .toml or .json.")


def _dataclass_to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize dataclasses to JSON-friendly dicts, skipping None fields."""
    result: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        serialized = _serialize_value(value)
        if serialized is not None:
            result[f.name] = serialized
    return result


def _serialize_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _serialize_value(v) for k, v in value.items() if v is not None}
    if is_dataclass(value):
        return _dataclass_to_dict(value)
    return None


def _dataclass_from_dict(cls: Type[T], data: Mapping[str, Any] | None) -> T:
    """Instantiate a dataclass of type `cls` from a mapping.

    Raises:
        ValueError: If ``data`` carries keys that are not fields of ``cls``.
    """
    if data is None:
        return cls()  # type: ignore[call-arg]
    if not isinstance(data, Mapping):
        raise TypeError(f"Expected a mapping for {cls.__name__}; got {type(data).__name__}.")
    type_hints = get_type_hints(cls)
    names = {f.name for f in fields(cls)}
    unknown = sorted(k for k in data if k not in names)
    if unknown:
        raise ValueError(
            f"Unsupported options for {cls.__name__}: {', '.join(unknown)}. "
            f"Allowed keys: {', '.join(sorted(names))}"
        )
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        kwargs[f.name] = _coerce_value(type_hints.get(f.name, f.type), data[f.name])
    return cls(**kwargs)  # type: ignore[arg-type]


def _coerce_value(expected_type: Any, value: Any) -> Any:
    """Coerce `value` into the shape implied by `expected_type`."""
    base_type, _ = _strip_optional(expected_type)
    if value is None:
        return None
    if isinstance(base_type, type) and is_dataclass(base_type):
        return _dataclass_from_dict(base_type, value)
    origin = get_origin(base_type)
    if origin in (list, tuple, ABCSequence):
        args = get_args(base_type)
        inner = args[0] if args else Any
        items = [_coerce_value(inner, v) for v in value]
        return tuple(items) if origin is tuple else items
    if origin is dict:
        key_type, val_type = get_args(base_type) if get_args(base_type) else (Any, Any)
        return {_coerce_value(key_type, k): _coerce_value(val_type, v) for k, v in value.items()}
    if base_type is Path:
        return Path(value)
    if base_type in {str, int, float}:
        return base_type(value)
    return value


def _strip_optional(typ: Any) -> Tuple[Any, bool]:
    """Strip Optional from a type annotation.

    Returns:
        tuple[Any, bool]: ``(base_type, is_optional)``.
    """
    origin = get_origin(typ)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(typ) if arg is not type(None)]
        if len(args) == 1:
            base, _ = _strip_optional(args[0])
            return base, True
    return typ, False
