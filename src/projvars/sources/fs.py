# fs.py
# SPDX-License-Identifier: MIT
"""File system and host source: VERSION file, directory name, clock and platform."""

from __future__ import annotations

import os
import platform
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional

from ..core import properties as P
from ..core.conversions import DEFAULT_DATE_FORMAT, dir_to_name, format_date
from ..core.interfaces import SourceError, SourceKind
from ..core.log import get_logger
from ..core.properties import Property

log = get_logger(__name__)

__all__ = ["FileSystemSource", "os_family", "normalize_arch", "read_version_file"]

VERSION_FILE_NAMES = ("VERSION", "VERSION.txt", "version.txt")

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x86_64": "x86_64",
    "x64": "x86_64",
    "i386": "x86",
    "i486": "x86",
    "i586": "x86",
    "i686": "x86",
    "x86": "x86",
    "arm64": "arm64",
    "aarch64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
    "arm": "arm",
}


def os_family(system: Optional[str] = None) -> str:
    """Map ``platform.system()`` to ``linux``, ``bsd``, ``osx``, ``windows`` or ``unix``."""
    name = (system if system is not None else platform.system()).lower()
    if name.startswith("linux"):
        return "linux"
    if name == "darwin":
        return "osx"
    if name.startswith(("windows", "cygwin", "msys")):
        return "windows"
    if "bsd" in name or name == "dragonfly":
        return "bsd"
    return "unix"


def normalize_arch(machine: Optional[str] = None) -> str:
    raw = (machine if machine is not None else platform.machine()).lower()
    return _ARCH_ALIASES.get(raw, raw)


def read_version_file(root: Path) -> Optional[str]:
    """First non-empty line of the project's VERSION file, if any."""
    for name in VERSION_FILE_NAMES:
        path = root / name
        if not path.is_file():
            continue
        for line in path.read_text(encoding="utf-8").splitlines():
            if line.strip():
                return line.strip()
    return None


@dataclass(slots=True)
class FileSystemSource:
    """Values available without any SCM or CI: the project directory and the host."""

    root: Path
    date_format: str = DEFAULT_DATE_FORMAT
    environ: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    clock: Callable[[], datetime] = datetime.now
    name: str = "fs"
    kind: str = SourceKind.FS
    alternative: bool = False
    _getters: Dict[Property, Callable[[], Optional[str]]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root).expanduser().resolve()
        self._getters = {
            P.BUILD_ARCH: normalize_arch,
            P.BUILD_DATE: lambda: format_date(self.clock(), self.date_format),
            P.BUILD_OS: platform.system,
            P.BUILD_OS_FAMILY: os_family,
            P.CI: self._ci,
            P.NAME: lambda: dir_to_name(self.root.name),
            P.VERSION: lambda: read_version_file(self.root),
        }

    def retrieve(self, prop: Property) -> Optional[str]:
        getter = self._getters.get(prop)
        if getter is None:
            return None
        try:
            return getter() or None
        except UnicodeDecodeError as exc:
            raise SourceError(self.name, f"unreadable file: {exc}", prop=prop) from exc

    def _ci(self) -> str:
        return "true" if self.environ.get("CI", "").strip().lower() in ("true", "1", "yes") else "false"
