# main.py
# SPDX-License-Identifier: MIT

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from .. import __version__
from ..core.config import ProjvarsConfig, ShowRetrieved, load_config_from_path
from ..core.engine import OverwriteMode
from ..core.hosting import HostingType
from ..core.log import add_file_handler, get_logger
from ..sinks.report import render_property_list
from ..sources.overrides import parse_assignments
from .runner import run

log = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Build the projvars argument parser.

    Options left unset (``None``) keep the value from ``--config`` or the
    built-in default.
    """
    parser = argparse.ArgumentParser(
        prog="projvars",
        description="Resolve project build variables (version, name, URLs, license) from git, CI, files and the environment.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-C", "--project-root", help="Project root / git work tree (default: current directory).")
    parser.add_argument("-c", "--config", help="Path to config file (TOML or JSON).")

    inp = parser.add_argument_group("input")
    inp.add_argument(
        "-D", "--variable", action="append", default=[], metavar="KEY=VALUE",
        help="Set a value explicitly; highest priority. Repeatable.",
    )
    inp.add_argument(
        "-I", "--variables-file", action="append", default=[], metavar="PATH",
        help="Read values from a KEY=VALUE, .json or .toml file. Repeatable; earlier files win.",
    )
    inp.add_argument("--no-env-in", action="store_true", help="Do not read PROJECT_* variables from the environment.")
    inp.add_argument(
        "-t", "--hosting-type", choices=HostingType.ALL,
        help="Repository hosting provider; inferred from the repository URL by default.",
    )
    inp.add_argument("-F", "--date-format", help="strftime format for dates.")
    inp.add_argument("--key-prefix", help="Prefix for output keys (default: PROJECT_).")
    inp.add_argument(
        "-O", "--overwrite", choices=OverwriteMode.CHOICES,
        help="Which sources may still contribute once a value is set.",
    )

    out = parser.add_argument_group("output")
    out.add_argument("-o", "--file-out", metavar="PATH", help="Write KEY=\"VALUE\" lines to PATH.")
    out.add_argument("--json-out", metavar="PATH", help="Write a JSON object to PATH.")
    out.add_argument("-e", "--env-out", action="store_true", help="Export values into the process environment.")
    out.add_argument("--only-required", action="store_true", help="Only output required properties.")
    show = out.add_mutually_exclusive_group()
    show.add_argument(
        "-s", "--show-primary-retrieved", nargs="?", const="-", metavar="PATH",
        help="Report primary values as a markdown list, to stdout or PATH.",
    )
    show.add_argument(
        "--show-all-retrieved", nargs="?", const="-", metavar="PATH",
        help="Report every retrieved value as a markdown table, to stdout or PATH.",
    )
    out.add_argument("--dry", action="store_true", help="Resolve and report, but write no output.")
    out.add_argument("-l", "--list", action="store_true", help="List all properties and exit.")

    req = parser.add_argument_group("requirements")
    req_base = req.add_mutually_exclusive_group()
    req_base.add_argument("-a", "--require-all", action="store_true", help="Require every property.")
    req_base.add_argument("-n", "--require-none", action="store_true", help="Require no property.")
    req.add_argument("-R", "--require", action="append", default=[], metavar="KEY", help="Require KEY. Repeatable.")
    req.add_argument("-N", "--require-not", action="append", default=[], metavar="KEY", help="Do not require KEY. Repeatable.")
    req.add_argument("-f", "--fail", action="store_true", help="Exit with an error when required values are missing.")

    logs = parser.add_argument_group("logging")
    logs.add_argument("--log-level", help="Logging level (e.g., DEBUG, INFO, WARNING).")
    verbosity = logs.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Shortcut for --log-level DEBUG.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Shortcut for --log-level WARNING.")
    logs.add_argument("--log-file", metavar="PATH", help="Also log to PATH at DEBUG level.")
    return parser


def _load_config(path: Optional[str]) -> ProjvarsConfig:
    if not path:
        return ProjvarsConfig()
    return load_config_from_path(path)


def _apply_overrides(cfg: ProjvarsConfig, args: argparse.Namespace) -> None:
    """Layer command line flags over the loaded config."""
    res, req, out = cfg.resolution, cfg.requirements, cfg.output
    if args.project_root:
        res.repo_path = args.project_root
    if args.variable:
        res.overrides.update(parse_assignments(args.variable))
    if args.variables_file:
        res.input_files = [*res.input_files, *args.variables_file]
    if args.no_env_in:
        res.use_env = False
    if args.hosting_type:
        res.hosting_type = args.hosting_type
    if args.date_format:
        res.date_format = args.date_format
    if args.key_prefix is not None:
        res.key_prefix = args.key_prefix
    if args.overwrite:
        res.overwrite = args.overwrite

    if args.require_all:
        req.require_all, req.require_none = True, False
    if args.require_none:
        req.require_all, req.require_none = False, True
    if args.require:
        req.require = [*req.require, *args.require]
    if args.require_not:
        req.require_not = [*req.require_not, *args.require_not]
    if args.fail:
        req.fail_on_missing = True

    if args.file_out:
        out.file = args.file_out
    if args.json_out:
        out.json_file = args.json_out
    if args.env_out:
        out.env = True
    if args.only_required:
        out.only_required = True
    if args.dry:
        out.dry_run = True
    for mode, target in (
        (ShowRetrieved.PRIMARY, args.show_primary_retrieved),
        (ShowRetrieved.ALL, args.show_all_retrieved),
    ):
        if target is not None:
            out.show_retrieved = mode
            out.show_retrieved_path = None if target == "-" else target

    if args.verbose:
        cfg.logging.level = "DEBUG"
    elif args.quiet:
        cfg.logging.level = "WARNING"
    elif args.log_level:
        cfg.logging.level = args.log_level.upper()


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_config(args.config)
    _apply_overrides(cfg, args)
    cfg.logging.apply()
    file_handler = add_file_handler(args.log_file, logger_name=cfg.logging.logger_name) if args.log_file else None
    try:
        if args.list:
            print(render_property_list(prefix=cfg.resolution.key_prefix), end="")
            return 0

        result = run(cfg)
        if result.report is not None and not cfg.output.show_retrieved_path:
            print(result.report, end="")
        if result.resolved.errors:
            log.info("%d source error(s) were ignored", len(result.resolved.errors))
        return 0
    finally:
        if file_handler is not None:
            get_logger(cfg.logging.logger_name).removeHandler(file_handler)
            file_handler.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the projvars command-line interface.

    Args:
        argv (Sequence[str] | None): Argument strings to parse instead of
            ``sys.argv[1:]``. Primarily useful for tests.

    Returns:
        int: 0 on success, 1 when required values are missing under
        ``--fail`` or any other error occurred.
    """
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        return _dispatch(args)
    except Exception as exc:  # noqa: BLE001
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
