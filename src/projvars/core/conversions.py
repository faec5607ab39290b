# conversions.py
# SPDX-License-Identifier: MIT
"""Small pure conversions shared by sources and the derivation pass."""

from __future__ import annotations

import re
from datetime import datetime

from .interfaces import ConversionError

__all__ = [
    "DEFAULT_DATE_FORMAT",
    "GENERIC_DIR_NAMES",
    "clean_version",
    "is_git_dirty_version",
    "ref_extract_branch",
    "ref_extract_tag",
    "slug_to_name",
    "name_to_machine_readable",
    "web_url_to_machine_readable",
    "format_date",
    "iso8601_to_date",
    "dir_to_name",
]

DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Directory names that say nothing about the project they contain.
GENERIC_DIR_NAMES = frozenset({
    "src",
    "target",
    "build",
    "master",
    "main",
    "develop",
    "git",
    "repo",
    "repos",
    "scm",
    "trunk",
})

_V_PREFIX_RE = re.compile(r"^[vV][.]?[ \t]*")
_DIRTY_VERSION_RE = re.compile(r"^[^-].+(-broken)?-dirty(-.+)?$")
_BAD_NAME_CHAR_RE = re.compile(r"[^0-9a-zA-Z_-]")


def clean_version(value: str) -> str:
    """Strip a leading ``v``/``V`` (optionally followed by ``.`` or blanks)."""
    return _V_PREFIX_RE.sub("", value, count=1)


def is_git_dirty_version(value: str) -> bool:
    """Return True for ``git describe --dirty`` style versions like ``1.2.0-3-gabc1234-dirty``."""
    return bool(_DIRTY_VERSION_RE.match(value))


def _ref_name_if_type(ref: str, ref_type: str) -> str | None:
    parts = ref.strip().split("/")
    if len(parts) < 3 or parts[0] != "refs" or not all(parts[1:]):
        raise ConversionError(f"Invalid git reference {ref!r}; expected 'refs/<TYPE>/<NAME>'")
    if parts[1] != ref_type:
        return None
    return "/".join(parts[2:])


def ref_extract_branch(ref: str) -> str | None:
    """Return the branch name of ``refs/heads/<name>``, None for other ref types.

    Raises:
        ConversionError: If ``ref`` is not shaped like ``refs/<TYPE>/<NAME>``.
    """
    return _ref_name_if_type(ref, "heads")


def ref_extract_tag(ref: str) -> str | None:
    """Return the tag name of ``refs/tags/<name>``, None for other ref types.

    Raises:
        ConversionError: If ``ref`` is not shaped like ``refs/<TYPE>/<NAME>``.
    """
    return _ref_name_if_type(ref, "tags")


def slug_to_name(slug: str) -> str:
    """``user/group/project`` -> ``project``."""
    name = slug.strip().rstrip("/").split("/")[-1]
    if not name:
        raise ConversionError(f"Failed to extract a project name from slug {slug!r}")
    return name


def name_to_machine_readable(name: str) -> str:
    """Replace every character outside ``[0-9a-zA-Z_-]`` with ``_``."""
    machine = _BAD_NAME_CHAR_RE.sub("_", name.strip())
    if not machine:
        raise ConversionError(f"Name {name!r} results in an empty machine-readable name")
    return machine


def web_url_to_machine_readable(web_url: str) -> str:
    """Take the last path segment of a repository web URL."""
    trimmed = web_url.strip().rstrip("/")
    if "/" not in trimmed:
        raise ConversionError(f"Failed to extract a project name from web URL {web_url!r}")
    name = trimmed.rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not name:
        raise ConversionError(f"Failed to extract a project name from web URL {web_url!r}")
    return name_to_machine_readable(name)


def format_date(moment: datetime, date_format: str | None = None) -> str:
    return moment.strftime(date_format or DEFAULT_DATE_FORMAT)


def iso8601_to_date(value: str, date_format: str | None = None) -> str:
    """Reformat an ISO 8601 timestamp (``2021-09-14T10:22:33+02:00``) into ``date_format``.

    Raises:
        ConversionError: If ``value`` is not ISO 8601.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ConversionError(f"Not an ISO 8601 date: {value!r}") from exc
    return format_date(moment, date_format)


def dir_to_name(dir_name: str) -> str | None:
    """Return ``dir_name`` unless it is a generic name such as ``src`` or ``trunk``."""
    name = dir_name.strip()
    if not name or name.lower() in GENERIC_DIR_NAMES:
        return None
    return name
