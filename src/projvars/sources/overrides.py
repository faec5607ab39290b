# overrides.py
# SPDX-License-Identifier: MIT
"""Mapping-backed sources: explicit ``KEY=VALUE`` overrides and shared helpers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..core.interfaces import SourceKind
from ..core.log import get_logger
from ..core.properties import DEFAULT_KEY_PREFIX, Property

log = get_logger(__name__)

__all__ = ["MappingSource", "OverridesSource", "parse_assignment", "parse_assignments"]


@dataclass(slots=True)
class MappingSource:
    """Look properties up in a flat string mapping.

    A key matches when it equals the prefixed output key (``PROJECT_VERSION``)
    or, with ``accept_bare_keys``, the bare property key (``VERSION``). The
    prefixed key wins when both are present. Empty strings are values.
    """

    name: str
    values: Mapping[str, str] = field(default_factory=dict)
    kind: str = SourceKind.OVERRIDES
    prefix: Optional[str] = DEFAULT_KEY_PREFIX
    accept_bare_keys: bool = True
    alternative: bool = False

    def retrieve(self, prop: Property) -> Optional[str]:
        value = self.values.get(prop.output_key(self.prefix))
        if value is None and self.accept_bare_keys:
            value = self.values.get(prop.key)
        return value


def parse_assignment(text: str) -> tuple[str, str]:
    """``KEY=VALUE`` -> ``("KEY", "VALUE")``; the value may contain ``=``.

    Raises:
        ValueError: If there is no ``=`` or the key is empty.
    """
    key, sep, value = text.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Expected KEY=VALUE, got {text!r}")
    return key, value


def parse_assignments(items: Iterable[str]) -> Dict[str, str]:
    """Parse repeated ``KEY=VALUE`` items; later duplicates win."""
    result: Dict[str, str] = {}
    for item in items:
        key, value = parse_assignment(item)
        result[key] = value
    return result


def OverridesSource(values: Mapping[str, str], *, prefix: Optional[str] = DEFAULT_KEY_PREFIX) -> MappingSource:
    """Source for values given explicitly on the command line or in the config."""
    return MappingSource(
        name="overrides",
        values=dict(values),
        kind=SourceKind.OVERRIDES,
        prefix=prefix,
        accept_bare_keys=True,
    )
