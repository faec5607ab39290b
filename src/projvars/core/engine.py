# engine.py
# SPDX-License-Identifier: MIT
"""
Value resolution engine.

The engine walks the configured sources in priority order (highest first),
records every value offered for every property as a :class:`Candidate`, and
selects one primary value per property. Once the sources are exhausted a
derivation pass fills remaining gaps from what is known: repository URLs via
:mod:`projvars.core.hosting` and the two project name forms from each other.
Derived candidates are "alternative" and rank below every source.

The overwrite mode only decides which sources are still queried for a
property that already has a primary value; the primary itself is always a pure
function of the recorded candidates (:func:`select_primary`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from .conversions import name_to_machine_readable, web_url_to_machine_readable
from .hosting import HostingContext, HostingType, construct_urls
from .interfaces import Candidate, ConversionError, SourceError, SourceKind, Source
from .log import get_logger
from .properties import (
    ALL_PROPERTIES,
    NAME,
    NAME_MACHINE_READABLE,
    Property,
    REPO_CLONE_URL,
    REPO_CLONE_URL_HTTP,
    REPO_CLONE_URL_SSH,
    REPO_WEB_URL,
    DEFAULT_KEY_PREFIX,
)

log = get_logger(__name__)

__all__ = [
    "OverwriteMode",
    "PropertyResolution",
    "ResolvedPropertyMap",
    "ResolutionEngine",
    "select_primary",
    "DERIVED_SOURCE_NAME",
]

DERIVED_SOURCE_NAME = "derived"
# Derivation runs twice so values derived in the first pass can feed the second.
DERIVATION_PASSES = 2
# Inputs for repository URL derivation, most trusted first.
_URL_INPUTS = (REPO_CLONE_URL, REPO_WEB_URL, REPO_CLONE_URL_HTTP, REPO_CLONE_URL_SSH)


class OverwriteMode:
    """Which sources may still contribute once a property has a primary value.

    Modes:
    * ``ALL``: every source is queried and recorded; the highest priority
      candidate stays primary.
    * ``NONE``: lower priority sources are not queried at all.
    * ``MAIN``: only main (non-alternative) sources are still queried.
    * ``ALTERNATIVE``: only alternative (derived) sources are still queried;
      main sources only fill gaps.
    """

    ALL = "all"
    NONE = "none"
    MAIN = "main"
    ALTERNATIVE = "alternative"
    CHOICES = (ALL, NONE, MAIN, ALTERNATIVE)

    @classmethod
    def normalize(cls, value: Optional[str]) -> str:
        mode = (value or cls.ALL).strip().lower()
        if mode not in cls.CHOICES:
            raise ValueError(f"Invalid overwrite mode: {value!r}. Expected one of {list(cls.CHOICES)}")
        return mode

    @classmethod
    def allows_main(cls, mode: str) -> bool:
        return mode in (cls.ALL, cls.MAIN)

    @classmethod
    def allows_alternative(cls, mode: str) -> bool:
        return mode in (cls.ALL, cls.ALTERNATIVE)

    @classmethod
    def may_query(cls, mode: str, *, resolved: bool, alternative: bool) -> bool:
        """Return True if a source should be asked for a property."""
        if not resolved:
            return True
        return cls.allows_alternative(mode) if alternative else cls.allows_main(mode)


def select_primary(candidates: Sequence[Candidate]) -> Candidate | None:
    """Return the highest ranked candidate; ties go to the first one recorded."""
    best: Candidate | None = None
    for candidate in candidates:
        if best is None or candidate.rank > best.rank:
            best = candidate
    return best


@dataclass(frozen=True, slots=True)
class PropertyResolution:
    """Outcome for one property: the primary value plus everything considered."""

    prop: Property
    primary: Candidate
    candidates: Tuple[Candidate, ...]

    @property
    def value(self) -> str:
        return self.primary.value

    @property
    def source(self) -> str:
        return self.primary.source


@dataclass(frozen=True)
class ResolvedPropertyMap:
    """Immutable result of a resolution run.

    Iteration yields properties in schema order. Properties that no source
    produced are absent, which is different from an empty string value.

    Attributes:
        entries (Mapping[Property, PropertyResolution]): Read-only mapping.
        errors (tuple[SourceError, ...]): Source failures, in the order they
            happened.
        source_names (tuple[str, ...]): Sources in priority order, for
            reports.
    """

    entries: Mapping[Property, PropertyResolution]
    errors: Tuple[SourceError, ...] = ()
    source_names: Tuple[str, ...] = ()

    def __contains__(self, prop: object) -> bool:
        return prop in self.entries

    def __iter__(self) -> Iterator[Property]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, prop: Property) -> PropertyResolution | None:
        return self.entries.get(prop)

    def primary(self, prop: Property) -> str | None:
        entry = self.entries.get(prop)
        return entry.value if entry is not None else None

    def candidates(self, prop: Property) -> Tuple[Candidate, ...]:
        entry = self.entries.get(prop)
        return entry.candidates if entry is not None else ()

    def as_dict(
        self,
        prefix: str | None = DEFAULT_KEY_PREFIX,
        *,
        only: Optional[Iterable[Property]] = None,
    ) -> Dict[str, str]:
        """Return ``{OUTPUT_KEY: primary value}`` in schema order.

        Args:
            prefix (str | None): Key prefix, ``PROJECT_`` by default.
            only (Iterable[Property] | None): Restrict output to these
                properties (used for ``only_required``).
        """
        allowed = set(only) if only is not None else None
        return {
            prop.output_key(prefix): entry.value
            for prop, entry in self.entries.items()
            if allowed is None or prop in allowed
        }


@dataclass(slots=True)
class ResolutionEngine:
    """Merge candidates from prioritized sources into a :class:`ResolvedPropertyMap`.

    Attributes:
        sources (Sequence[Source]): Sources in priority order, highest first.
        overwrite (str): One of :class:`OverwriteMode`.
        hosting_type (str): Explicit hosting provider, or ``unknown`` to
            infer it from the repository URL.
        derive (bool): Whether to run the derivation pass.
        properties (Sequence[Property]): Properties to resolve.
    """

    sources: Sequence[Source]
    overwrite: str = OverwriteMode.ALL
    hosting_type: str = HostingType.UNKNOWN
    derive: bool = True
    properties: Sequence[Property] = ALL_PROPERTIES
    _candidates: Dict[Property, List[Candidate]] = field(default_factory=dict, init=False, repr=False)
    _errors: List[SourceError] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self.overwrite = OverwriteMode.normalize(self.overwrite)
        self.hosting_type = HostingType.normalize(self.hosting_type)

    def resolve(self) -> ResolvedPropertyMap:
        """Run all sources and the derivation pass; safe to call repeatedly."""
        self._candidates = {}
        self._errors = []
        total = len(self.sources)
        for index, source in enumerate(self.sources):
            self._apply_source(source, rank=total - index)
        if self.derive:
            for _ in range(DERIVATION_PASSES):
                self._apply_derivation()
        resolved = self._freeze()
        log.debug(
            "Resolved %d of %d properties from %d sources (%d errors)",
            len(resolved),
            len(self.properties),
            total,
            len(self._errors),
        )
        return resolved

    # ------------------------------------------------------------------
    # Merge helpers
    # ------------------------------------------------------------------
    def _has_primary(self, prop: Property) -> bool:
        return bool(self._candidates.get(prop))

    def _primary_value(self, prop: Property) -> str | None:
        best = select_primary(self._candidates.get(prop, ()))
        return best.value if best is not None else None

    def _record(self, candidate: Candidate) -> None:
        self._candidates.setdefault(candidate.prop, []).append(candidate)
        log.debug("%s: %s = %r", candidate.source, candidate.prop.key, candidate.value)

    def _apply_source(self, source: Source, *, rank: int) -> None:
        name = getattr(source, "name", type(source).__name__)
        kind = getattr(source, "kind", "")
        alternative = bool(getattr(source, "alternative", False))
        for prop in self.properties:
            if not OverwriteMode.may_query(
                self.overwrite, resolved=self._has_primary(prop), alternative=alternative
            ):
                continue
            try:
                value = source.retrieve(prop)
            except SourceError as exc:
                self._add_error(exc)
                # An error not tied to a property disables the source for this run.
                if exc.prop is None:
                    return
                continue
            except (ConversionError, OSError) as exc:
                self._add_error(SourceError(name, str(exc), prop=prop))
                continue
            if value is None:
                continue
            self._record(Candidate(prop, value, name, kind, rank, alternative))

    def _add_error(self, error: SourceError) -> None:
        log.warning("Source failed: %s", error)
        self._errors.append(error)

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------
    def _apply_derivation(self) -> None:
        for prop, value in self._derive_values().items():
            if prop not in self.properties:
                continue
            if not OverwriteMode.may_query(self.overwrite, resolved=self._has_primary(prop), alternative=True):
                continue
            # Same derived value again (second pass) adds nothing.
            if any(
                c.kind == SourceKind.DERIVED and c.value == value
                for c in self._candidates.get(prop, ())
            ):
                continue
            self._record(Candidate(prop, value, DERIVED_SOURCE_NAME, SourceKind.DERIVED, 0, True))

    def _derive_values(self) -> Dict[Property, str]:
        derived: Dict[Property, str] = {}
        ctx = self._hosting_context()
        if ctx is not None:
            derived.update(construct_urls(ctx))

        name = self._primary_value(NAME)
        machine_name = self._primary_value(NAME_MACHINE_READABLE)
        web_url = self._primary_value(REPO_WEB_URL) or derived.get(REPO_WEB_URL)
        try:
            if name:
                derived[NAME_MACHINE_READABLE] = name_to_machine_readable(name)
            elif web_url:
                derived[NAME_MACHINE_READABLE] = web_url_to_machine_readable(web_url)
        except ConversionError as exc:
            self._add_error(SourceError(DERIVED_SOURCE_NAME, str(exc), prop=NAME_MACHINE_READABLE))
        if machine_name:
            derived[NAME] = machine_name
        return derived

    def _hosting_context(self) -> HostingContext | None:
        for prop in _URL_INPUTS:
            url = self._primary_value(prop)
            if not url:
                continue
            try:
                return HostingContext.from_url(url, self.hosting_type)
            except ConversionError as exc:
                log.debug("Cannot derive repository URLs from %s: %s", prop.key, exc)
        return None

    def _freeze(self) -> ResolvedPropertyMap:
        entries: Dict[Property, PropertyResolution] = {}
        for prop in ALL_PROPERTIES:
            candidates = self._candidates.get(prop)
            if not candidates:
                continue
            primary = select_primary(candidates)
            assert primary is not None
            entries[prop] = PropertyResolution(prop, primary, tuple(candidates))
        return ResolvedPropertyMap(
            entries=MappingProxyType(entries),
            errors=tuple(self._errors),
            source_names=tuple(getattr(s, "name", type(s).__name__) for s in self.sources),
        )
