# __init__.py
# SPDX-License-Identifier: MIT
"""
Top-level package exports for :mod:`projvars`.

Public surface and stability
----------------------------
projvars resolves a fixed set of project build variables (version, name,
repository URLs, license, build environment) from prioritized sources and
writes them to the environment, a ``KEY="VALUE"`` file or a JSON file. The
symbols in :data:`PRIMARY_API` are the recommended public surface. Callers
should generally:

- Build a :class:`ProjvarsConfig` or load one with :func:`load_config_from_path`.
- Call :func:`run` and inspect the returned :class:`RunResult`.

For finer control, assemble sources yourself and drive a
:class:`ResolutionEngine` directly; anything not in :data:`PRIMARY_API` is an
expert surface and may change between releases.

Examples:
    Config-driven run::

        >>> from projvars import ProjvarsConfig, run
        >>> cfg = ProjvarsConfig()
        >>> cfg.output.file = "build/project.env"
        >>> result = run(cfg)
        >>> result.values["PROJECT_VERSION"]
        '1.2.3'
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Package version
# ---------------------------------------------------------------------------
try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("projvars")
except Exception:  # PackageNotFoundError or runtime env oddities
    __version__ = "0.0.0+unknown"


# ---------------------------------------------------------------------------
# Primary public API (stable; exported via __all__)
# ---------------------------------------------------------------------------
from .cli.runner import RunResult, build_sources, run
from .core.config import ProjvarsConfig, load_config_from_path
from .core.engine import OverwriteMode, ResolutionEngine, ResolvedPropertyMap
from .core.interfaces import ProjvarsError, RequirementError, SourceError
from .core.properties import ALL_PROPERTIES, Property, get_property

# ---------------------------------------------------------------------------
# Advanced / expert API (imported for convenience; not exported via __all__)
# ---------------------------------------------------------------------------
from .core.checks import CheckResult, check_value, check_values
from .core.hosting import HostingContext, HostingType, construct_urls, parse_clone_url
from .core.interfaces import Candidate, ConversionError, Sink, Source, SourceKind
from .core.licenses import LicenseMatch, detect_licenses_in_tree
from .core.log import configure_logging, get_logger
from .core.requirements import ValidationReport, build_requirement_set, validate_requirements
from .sinks.sinks import EnvSink, JSONFileSink, KeyValueFileSink

PRIMARY_API = [
    "ALL_PROPERTIES",
    "OverwriteMode",
    "Property",
    "ProjvarsConfig",
    "ProjvarsError",
    "RequirementError",
    "ResolutionEngine",
    "ResolvedPropertyMap",
    "RunResult",
    "SourceError",
    "build_sources",
    "get_property",
    "load_config_from_path",
    "run",
]

__all__ = [*PRIMARY_API, "__version__"]
