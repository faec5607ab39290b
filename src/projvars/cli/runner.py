# runner.py
# SPDX-License-Identifier: MIT
"""Wire a :class:`ProjvarsConfig` into sources, the engine, validation and sinks."""

from __future__ import annotations

import os
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..core.checks import CheckResult, check_values
from ..core.config import ProjvarsConfig, ShowRetrieved
from ..core.engine import ResolutionEngine, ResolvedPropertyMap
from ..core.interfaces import ClosableSource, Sink, Source
from ..core.log import get_logger
from ..core.properties import Property
from ..core.requirements import ValidationReport, build_requirement_set, validate_requirements
from ..sinks.report import render_all_table, render_primary_list
from ..sinks.sinks import EnvSink, JSONFileSink, KeyValueFileSink
from ..sources.ci import detect_ci_sources
from ..sources.env import EnvSource
from ..sources.files import FileSource
from ..sources.fs import FileSystemSource
from ..sources.license import LicenseSource
from ..sources.overrides import OverridesSource
from ..sources.scm import GitSource

log = get_logger(__name__)

__all__ = ["RunResult", "build_sources", "build_sinks", "resolve", "run"]


@dataclass(slots=True)
class RunResult:
    """Everything a run produced.

    Attributes:
        resolved (ResolvedPropertyMap): Primary values and all candidates.
        required (frozenset[Property]): The requirement set in effect.
        validation (ValidationReport): Missing required properties.
        checks (list[CheckResult]): Per-value format checks.
        values (dict[str, str]): Output mapping handed to the sinks.
        report (str | None): Rendered retrieval report, if one was requested.
        written (list[str]): Output files written.
    """

    resolved: ResolvedPropertyMap
    required: frozenset[Property]
    validation: ValidationReport
    checks: List[CheckResult] = field(default_factory=list)
    values: Dict[str, str] = field(default_factory=dict)
    report: Optional[str] = None
    written: List[str] = field(default_factory=list)


def build_sources(
    cfg: ProjvarsConfig,
    *,
    environ: Optional[Mapping[str, str]] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> List[Source]:
    """Instantiate the enabled sources in priority order, highest first."""
    res = cfg.resolution
    env = dict(os.environ if environ is None else environ)
    root = Path(res.repo_path).expanduser()
    prefix = res.key_prefix

    sources: List[Source] = []
    if res.overrides:
        sources.append(OverridesSource(res.overrides, prefix=prefix))
    for path in res.input_files:
        sources.append(FileSource(Path(path), prefix=prefix))
    if res.use_env:
        sources.append(EnvSource(env, prefix=prefix))
    if res.use_ci:
        sources.extend(detect_ci_sources(env, date_format=res.date_format))
    if res.use_scm:
        sources.append(GitSource(root, date_format=res.date_format))
    if res.use_fs:
        fs_kwargs = {"clock": clock} if clock is not None else {}
        sources.append(FileSystemSource(root, date_format=res.date_format, environ=env, **fs_kwargs))
    if res.use_license:
        sources.append(LicenseSource(root))
    log.debug("Sources: %s", ", ".join(getattr(s, "name", type(s).__name__) for s in sources))
    return sources


def build_sinks(cfg: ProjvarsConfig, *, environ: Optional[MutableMapping[str, str]] = None) -> List[Sink]:
    out = cfg.output
    overwrite = cfg.resolution.overwrite
    sinks: List[Sink] = []
    if out.env:
        sinks.append(EnvSink(environ, overwrite=overwrite))
    if out.file:
        sinks.append(KeyValueFileSink(out.file, overwrite=overwrite))
    if out.json_file:
        sinks.append(JSONFileSink(out.json_file, overwrite=overwrite))
    return sinks


def resolve(cfg: ProjvarsConfig, sources: List[Source]) -> ResolvedPropertyMap:
    """Run the engine over ``sources`` and close the ones holding resources."""
    engine = ResolutionEngine(
        sources=sources,
        overwrite=cfg.resolution.overwrite,
        hosting_type=cfg.resolution.hosting_type,
    )
    try:
        return engine.resolve()
    finally:
        for source in sources:
            if isinstance(source, ClosableSource):
                source.close()


def run(
    cfg: ProjvarsConfig,
    *,
    environ: Optional[MutableMapping[str, str]] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> RunResult:
    """Resolve, check, validate and write according to ``cfg``.

    The retrieval report is rendered (and written to its file) before
    validation so it is available even when the run fails.

    Raises:
        RequirementError: Required values are missing and
            ``requirements.fail_on_missing`` is set. Nothing is written to the
            sinks in that case.
        ValueError: On invalid configuration.
    """
    cfg.validate()
    res, req, out = cfg.resolution, cfg.requirements, cfg.output
    prefix = res.key_prefix

    resolved = resolve(cfg, build_sources(cfg, environ=environ, clock=clock))
    checks = check_values(resolved, date_format=res.date_format, prefix=prefix)
    required = build_requirement_set(
        require_all=req.require_all,
        require_none=req.require_none,
        require=req.require,
        require_not=req.require_not,
        prefix=prefix,
    )
    validation = validate_requirements(resolved, required, fail_on_missing=req.fail_on_missing, prefix=prefix)
    only = required if out.only_required else None
    result = RunResult(
        resolved=resolved,
        required=required,
        validation=validation,
        checks=checks,
        values=resolved.as_dict(prefix, only=only),
    )

    if out.show_retrieved != ShowRetrieved.NO:
        render = render_all_table if out.show_retrieved == ShowRetrieved.ALL else render_primary_list
        result.report = render(resolved, prefix=prefix, only=only)
        if out.show_retrieved_path:
            Path(out.show_retrieved_path).write_text(result.report, encoding="utf-8")
            result.written.append(out.show_retrieved_path)

    validation.raise_if_failed()

    if out.dry_run:
        log.info("Dry run: not writing %d variables", len(result.values))
        return result
    for sink in build_sinks(cfg, environ=environ):
        sink.write(result.values)
        path = getattr(sink, "path", None)
        if path is not None:
            result.written.append(str(path))
    return result
