# interfaces.py
# SPDX-License-Identifier: MIT
"""Interfaces, shared value types and errors used across sources, the engine and sinks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Sequence, runtime_checkable

from .properties import Property

__all__ = [
    "ProjvarsError",
    "SourceError",
    "ConversionError",
    "RequirementError",
    "SourceKind",
    "Candidate",
    "Source",
    "ClosableSource",
    "Sink",
]


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------

class ProjvarsError(Exception):
    """Base class for errors raised by projvars."""


class SourceError(ProjvarsError):
    """A source failed hard (unreadable file, corrupt repository, ...).

    The engine records these against the failing source and keeps going.

    Attributes:
        source (str): Name of the failing source.
        prop (Property | None): Property being retrieved, when the failure
            was specific to one property.
    """

    def __init__(self, source: str, message: str, *, prop: Property | None = None):
        super().__init__(message)
        self.source = source
        self.prop = prop
        self.message = message

    def __str__(self) -> str:
        where = f"{self.source}[{self.prop.key}]" if self.prop is not None else self.source
        return f"{where}: {self.message}"


class ConversionError(ProjvarsError, ValueError):
    """An input value could not be converted into a property value."""


class RequirementError(ProjvarsError):
    """Required properties are missing and failing was requested."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required properties: {', '.join(self.missing)}")


# -----------------------------------------------------------------------------
# Shared data types
# -----------------------------------------------------------------------------

class SourceKind:
    """Closed set of source kinds, in default priority order (highest first)."""

    OVERRIDES = "overrides"
    FILE = "file"
    ENV = "env"
    CI = "ci"
    SCM = "scm"
    FS = "fs"
    LICENSE = "license"
    DERIVED = "derived"
    ALL = (OVERRIDES, FILE, ENV, CI, SCM, FS, LICENSE, DERIVED)

    @classmethod
    def normalize(cls, value: Optional[str]) -> str:
        kind = (value or "").strip().lower()
        if kind not in cls.ALL:
            raise ValueError(f"Invalid source kind: {value!r}. Expected one of {list(cls.ALL)}")
        return kind


@dataclass(frozen=True, slots=True)
class Candidate:
    """One value offered for one property by one source.

    Attributes:
        prop (Property): Property the value belongs to.
        value (str): Retrieved value; may be the empty string.
        source (str): Display name of the producing source.
        kind (str): One of :class:`SourceKind`.
        rank (int): Priority rank; higher wins.
        alternative (bool): True for derived values that must never override
            an explicit one.
    """

    prop: Property
    value: str
    source: str
    kind: str
    rank: int
    alternative: bool = False


# -----------------------------------------------------------------------------
# Extension-point protocols
# -----------------------------------------------------------------------------

@runtime_checkable
class Source(Protocol):
    """
    Produces values for properties from one kind of input.

    Implementations must not mutate global state. ``retrieve`` returns None
    when the property is simply not derivable from this source and raises
    :class:`SourceError` only for hard failures.

    Attributes:
        name (str): Display name used in reports and logs.
        kind (str): One of :class:`SourceKind`.
        alternative (bool): Whether values from this source are derived.
    """

    name: str
    kind: str
    alternative: bool

    def retrieve(self, prop: Property) -> Optional[str]:
        """
        Return a value for ``prop`` or None.

        Args:
            prop (Property): Property to look up.

        Returns:
            str | None: Value, or None when this source has nothing.
        """
        ...


@runtime_checkable
class ClosableSource(Protocol):
    """
    Optional extension for sources that hold resources (e.g. a repository handle).
    """

    def close(self) -> None:
        """Release any held resources."""


@runtime_checkable
class Sink(Protocol):
    """
    A destination for the resolved ``{OUTPUT_KEY: value}`` mapping
    (environment, key=value file, JSON file).
    """

    def write(self, values: Mapping[str, str]) -> None:
        """
        Persist the resolved values.

        Args:
            values (Mapping[str, str]): Ordered output keys to primary values.
        """
