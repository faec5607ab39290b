# files.py
# SPDX-License-Identifier: MIT
"""Input file sources: ``.env`` style ``KEY=VALUE`` files, JSON and TOML."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..core.interfaces import SourceError, SourceKind
from ..core.log import get_logger
from ..core.properties import DEFAULT_KEY_PREFIX, Property
from .overrides import MappingSource

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Py3.10 fallback
    import tomli as tomllib  # type: ignore[no-redef]

log = get_logger(__name__)

__all__ = ["FileSource", "load_variables_file", "parse_env_text"]


_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_UNESCAPES = {"n": "\n", "r": "\r"}


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        inner = value[1:-1]
        if value[0] == '"':
            inner = _ESCAPE_RE.sub(lambda m: _UNESCAPES.get(m.group(1), m.group(1)), inner)
        return inner
    return value


def parse_env_text(text: str, *, origin: str = "<text>") -> Dict[str, str]:
    """Parse ``KEY=VALUE`` lines; ``#`` comments, blanks and ``export`` are allowed.

    Raises:
        ValueError: On a non-empty line without ``=``.
    """
    values: Dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"{origin}:{lineno}: expected KEY=VALUE, got {raw!r}")
        values[key] = _unquote(value)
    return values


def _flatten(data: Mapping[str, Any]) -> Dict[str, str]:
    """Keep scalar entries; booleans become ``true``/``false``."""
    values: Dict[str, str] = {}
    for key, value in data.items():
        if isinstance(value, bool):
            values[str(key)] = "true" if value else "false"
        elif isinstance(value, (str, int, float)):
            values[str(key)] = str(value)
        else:
            log.debug("Ignoring non-scalar entry %r", key)
    return values


def load_variables_file(path: str | Path) -> Dict[str, str]:
    """Read a variables file and return its flat string mapping.

    The format follows the extension: ``.json`` for a JSON object, ``.toml``
    for a TOML table, anything else is parsed as ``KEY=VALUE`` lines.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is malformed.
    """
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    suffix = p.suffix.lower()
    if suffix == ".json":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"{p}: top-level JSON value must be an object")
        return _flatten(data)
    if suffix == ".toml":
        return _flatten(tomllib.loads(text))
    return parse_env_text(text, origin=str(p))


@dataclass(slots=True)
class FileSource:
    """One input file, loaded when the source is built.

    A load failure surfaces as a source-wide :class:`SourceError` from
    :meth:`retrieve`; the engine records it once and skips the file.
    """

    path: Path
    prefix: Optional[str] = DEFAULT_KEY_PREFIX
    name: str = field(init=False)
    kind: str = field(default=SourceKind.FILE, init=False)
    alternative: bool = field(default=False, init=False)
    _lookup: MappingSource = field(init=False, repr=False)
    _error: Optional[str] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self.name = f"file:{self.path}"
        values: Dict[str, str] = {}
        try:
            values = load_variables_file(self.path)
            log.debug("Loaded %d variables from %s", len(values), self.path)
        except (OSError, ValueError) as exc:
            self._error = f"Failed to load variables file: {exc}"
        self._lookup = MappingSource(self.name, values, kind=SourceKind.FILE, prefix=self.prefix)

    def retrieve(self, prop: Property) -> Optional[str]:
        if self._error is not None:
            raise SourceError(self.name, self._error)
        return self._lookup.retrieve(prop)
