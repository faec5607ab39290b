# requirements.py
# SPDX-License-Identifier: MIT
"""Requirement sets and the final missing-value validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .engine import ResolvedPropertyMap
from .interfaces import RequirementError
from .log import get_logger
from .properties import ALL_PROPERTIES, DEFAULT_KEY_PREFIX, Property, default_required, get_property

log = get_logger(__name__)

__all__ = [
    "build_requirement_set",
    "find_missing",
    "ValidationReport",
    "validate_requirements",
]


def build_requirement_set(
    *,
    require_all: bool = False,
    require_none: bool = False,
    require: Optional[Iterable[str | Property]] = None,
    require_not: Optional[Iterable[str | Property]] = None,
    prefix: str | None = DEFAULT_KEY_PREFIX,
) -> frozenset[Property]:
    """Build the set of properties that must end up with a non-empty value.

    The base set is the schema default, or everything with ``require_all``,
    or nothing with ``require_none``. As soon as any explicit ``require`` or
    ``require_not`` key is given the base is replaced, not extended: the
    result is exactly the explicit requires minus the explicit require-nots.

    Raises:
        ValueError: If both ``require_all`` and ``require_none`` are set, or a
            key does not name a property.
    """
    if require_all and require_none:
        raise ValueError("require_all and require_none are mutually exclusive.")
    adds = [get_property(key, prefix) for key in (require or ())]
    removes = {get_property(key, prefix) for key in (require_not or ())}
    if adds or removes:
        if require_all or require_none:
            log.debug("Explicit require flags replace the require-all/none base")
        return frozenset(prop for prop in adds if prop not in removes)
    if require_all:
        return frozenset(ALL_PROPERTIES)
    if require_none:
        return frozenset()
    return default_required()


def find_missing(resolved: ResolvedPropertyMap, required: Iterable[Property]) -> List[Property]:
    """Return required properties that are absent or empty, in schema order."""
    wanted = set(required)
    return [prop for prop in ALL_PROPERTIES if prop in wanted and not resolved.primary(prop)]


@dataclass(slots=True)
class ValidationReport:
    """Result of checking a resolved map against a requirement set.

    Attributes:
        missing (list[Property]): Required properties without a value.
        fail_on_missing (bool): Whether missing values are fatal.
        prefix (str | None): Key prefix used when naming missing keys.
    """

    missing: List[Property] = field(default_factory=list)
    fail_on_missing: bool = False
    prefix: str | None = DEFAULT_KEY_PREFIX

    @property
    def ok(self) -> bool:
        return not self.missing

    @property
    def failed(self) -> bool:
        return self.fail_on_missing and bool(self.missing)

    def missing_keys(self) -> List[str]:
        return [prop.output_key(self.prefix) for prop in self.missing]

    def raise_if_failed(self) -> None:
        """Raise :class:`RequirementError` when missing values are fatal."""
        if self.failed:
            raise RequirementError(self.missing_keys())


def validate_requirements(
    resolved: ResolvedPropertyMap,
    required: Iterable[Property],
    *,
    fail_on_missing: bool = False,
    prefix: str | None = DEFAULT_KEY_PREFIX,
) -> ValidationReport:
    """Check ``resolved`` against ``required`` and log one warning per missing key."""
    report = ValidationReport(
        missing=find_missing(resolved, required),
        fail_on_missing=fail_on_missing,
        prefix=prefix,
    )
    for key in report.missing_keys():
        log.warning("Missing value for required key '%s'", key)
    return report
