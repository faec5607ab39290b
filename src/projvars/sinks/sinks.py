# sinks.py
# SPDX-License-Identifier: MIT
"""Sinks for writing resolved project variables."""
from __future__ import annotations

import json
import os
from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Dict, Optional

from ..core.engine import OverwriteMode
from ..core.log import get_logger
from ..sources.files import parse_env_text

log = get_logger(__name__)

__all__ = ["EnvSink", "KeyValueFileSink", "JSONFileSink", "merge_values", "format_env_line"]


def merge_values(existing: Mapping[str, str], new: Mapping[str, str], overwrite: str) -> Dict[str, str]:
    """Merge ``new`` into ``existing``; new values win only when the mode lets main sources overwrite."""
    merged = dict(existing)
    replace = OverwriteMode.allows_main(OverwriteMode.normalize(overwrite))
    for key, value in new.items():
        if replace or key not in merged:
            merged[key] = value
    return merged


def format_env_line(key: str, value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r")
    return f'{key}="{escaped}"'


def _atomic_write_text(path: Path, text: str) -> None:
    """Write via a temporary sibling and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.parent / f"{path.name}.tmp"
    try:
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class EnvSink:
    """Export values into an environment mapping (``os.environ`` by default)."""

    def __init__(self, environ: Optional[MutableMapping[str, str]] = None, *, overwrite: str = OverwriteMode.ALL):
        self._environ = os.environ if environ is None else environ
        self._overwrite = OverwriteMode.normalize(overwrite)

    def write(self, values: Mapping[str, str]) -> None:
        replace = OverwriteMode.allows_main(self._overwrite)
        for key, value in values.items():
            if key in self._environ and not replace:
                log.debug("Keeping existing environment variable %s", key)
                continue
            self._environ[key] = value


class KeyValueFileSink:
    """Write ``KEY="VALUE"`` lines, sorted by key, merged with an existing file."""

    def __init__(self, out_path: str | os.PathLike[str], *, overwrite: str = OverwriteMode.ALL):
        self._path = Path(out_path)
        self._overwrite = OverwriteMode.normalize(overwrite)

    @property
    def path(self) -> Path:
        return self._path

    def _read_existing(self) -> Dict[str, str]:
        if not self._path.is_file():
            return {}
        return parse_env_text(self._path.read_text(encoding="utf-8"), origin=str(self._path))

    def write(self, values: Mapping[str, str]) -> None:
        merged = merge_values(self._read_existing(), values, self._overwrite)
        lines = [format_env_line(key, merged[key]) for key in sorted(merged)]
        _atomic_write_text(self._path, "\n".join(lines) + ("\n" if lines else ""))
        log.info("Wrote %d variables to %s", len(merged), self._path)


class JSONFileSink:
    """Write one JSON object, merged with an existing file the same way."""

    def __init__(self, out_path: str | os.PathLike[str], *, overwrite: str = OverwriteMode.ALL, indent: int = 2):
        self._path = Path(out_path)
        self._overwrite = OverwriteMode.normalize(overwrite)
        self._indent = indent

    @property
    def path(self) -> Path:
        return self._path

    def _read_existing(self) -> Dict[str, str]:
        if not self._path.is_file():
            return {}
        data = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self._path}: existing JSON output is not an object")
        return {str(k): v for k, v in data.items()}

    def write(self, values: Mapping[str, str]) -> None:
        merged = merge_values(self._read_existing(), values, self._overwrite)
        _atomic_write_text(self._path, json.dumps(merged, indent=self._indent, sort_keys=True) + "\n")
        log.info("Wrote %d variables to %s", len(merged), self._path)
