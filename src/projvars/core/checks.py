# checks.py
# SPDX-License-Identifier: MIT
"""Format and plausibility checks for resolved values.

Checks never fail a run; they produce :class:`CheckResult` items that the
runner logs as warnings so odd values (a raw SHA as version, a clone URL with
credentials, a date in the wrong format) are visible.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional
from urllib.parse import urlsplit

from . import properties as P
from .conversions import DEFAULT_DATE_FORMAT, is_git_dirty_version
from .engine import ResolvedPropertyMap
from .licenses import normalize_spdx_expression
from .log import get_logger
from .properties import Property

log = get_logger(__name__)

__all__ = [
    "CheckLevel",
    "CheckResult",
    "VALID_OS_FAMILIES",
    "VALID_ARCHS",
    "check_value",
    "check_values",
]

VALID_OS_FAMILIES = ("linux", "unix", "bsd", "osx", "windows")
VALID_ARCHS = ("x86", "x86_64", "arm", "arm64")

SEMVER_RELEASE_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")
SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)
GIT_DESCRIBE_RE = re.compile(
    r"^((g[0-9a-f]{7,40})|((0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)))"
    r"(-(0|[1-9]\d*)-(g[0-9a-f]{7,40}))?((-dirty(-broken)?)|-broken(-dirty)?)?$"
)
GIT_SHA_RE = re.compile(r"^g?[0-9a-f]{7,40}$")
MACHINE_NAME_RE = re.compile(r"^[0-9a-zA-Z_-]+$")


class CheckLevel:
    """Severity of a check result."""

    OK = "ok"
    SUBOPTIMAL = "suboptimal"
    BAD = "bad"


@dataclass(frozen=True, slots=True)
class CheckResult:
    prop: Property
    value: str
    level: str
    message: str

    @property
    def ok(self) -> bool:
        return self.level == CheckLevel.OK


Checker = Callable[[str, str], "tuple[str, str]"]


def _ok(message: str = "") -> tuple[str, str]:
    return CheckLevel.OK, message


def _non_empty(desc: str) -> Checker:
    def check(value: str, _date_format: str) -> tuple[str, str]:
        if not value.strip():
            return CheckLevel.BAD, f"{desc} can not be empty"
        return _ok()

    return check


def _check_version(value: str, _date_format: str) -> tuple[str, str]:
    if not value.strip():
        return CheckLevel.BAD, "Version can not be empty"
    if is_git_dirty_version(value):
        return CheckLevel.SUBOPTIMAL, "Dirty version; the working tree has uncommitted changes"
    if SEMVER_RELEASE_RE.match(value):
        return _ok("release version")
    if GIT_SHA_RE.match(value):
        return CheckLevel.SUBOPTIMAL, "A raw git SHA is not a human readable release version"
    if GIT_DESCRIBE_RE.match(value):
        if value.startswith("g"):
            return CheckLevel.SUBOPTIMAL, "git version starting with a SHA instead of a tag"
        return _ok("git version starting with a tag")
    if SEMVER_RE.match(value):
        return _ok("semver")
    return CheckLevel.SUBOPTIMAL, "Not a SemVer or git describe version"


def _check_license(value: str, _date_format: str) -> tuple[str, str]:
    if not value.strip():
        return CheckLevel.BAD, "License can not be empty"
    if normalize_spdx_expression(value) is None:
        return CheckLevel.SUBOPTIMAL, "Not a recognized SPDX license identifier or expression"
    return _ok()


def _check_licenses(value: str, date_format: str) -> tuple[str, str]:
    if not value.strip():
        return CheckLevel.BAD, "Licenses can not be empty"
    for part in value.split(","):
        level, _ = _check_license(part.strip(), date_format)
        if level != CheckLevel.OK:
            return CheckLevel.SUBOPTIMAL, f"Not a recognized SPDX license identifier: {part.strip()!r}"
    return _ok()


def _url_checker(*, allow_ssh: bool = False, allow_git: bool = False) -> Checker:
    schemes = {"http", "https"} | ({"ssh"} if allow_ssh else set()) | ({"git"} if allow_git else set())

    def check(value: str, _date_format: str) -> tuple[str, str]:
        try:
            parts = urlsplit(value)
        except ValueError:
            return CheckLevel.BAD, "Not a valid URL"
        if not parts.scheme or not parts.netloc:
            if allow_ssh and re.match(r"^[^@/\s]+@[^:/\s]+:.+$", value):
                return _ok("scp-like SSH address")
            return CheckLevel.BAD, "Not a valid URL"
        if parts.scheme not in schemes:
            return CheckLevel.SUBOPTIMAL, f"Should use one of these schemes: {sorted(schemes)}"
        if parts.password:
            return CheckLevel.SUBOPTIMAL, "Should be anonymous access, but contains a password"
        if parts.username and parts.scheme in ("http", "https"):
            return CheckLevel.SUBOPTIMAL, f"Should be anonymous access, but specifies a user name: {parts.username}"
        if parts.query:
            return CheckLevel.SUBOPTIMAL, f"Should be a simple URL, but uses query arguments: {parts.query}"
        if parts.fragment:
            return CheckLevel.SUBOPTIMAL, f"Should be a simple URL, but uses a fragment: {parts.fragment}"
        return _ok()

    return check


def _date_checker(desc: str) -> Checker:
    def check(value: str, date_format: str) -> tuple[str, str]:
        if not value.strip():
            return CheckLevel.BAD, f"{desc} date can not be empty"
        try:
            datetime.strptime(value, date_format)
        except ValueError as exc:
            return CheckLevel.BAD, f"Not a {desc} date according to the date format {date_format!r}: {exc}"
        return _ok()

    return check


def _check_machine_name(value: str, _date_format: str) -> tuple[str, str]:
    if MACHINE_NAME_RE.match(value):
        return _ok()
    return CheckLevel.BAD, f"Name is not machine-readable, does not match {MACHINE_NAME_RE.pattern!r}"


def _one_of(desc: str, allowed: tuple[str, ...]) -> Checker:
    def check(value: str, _date_format: str) -> tuple[str, str]:
        if value not in allowed:
            return CheckLevel.BAD, f"{desc}: only these values are valid: {', '.join(allowed)}"
        return _ok()

    return check


def _check_build_number(value: str, _date_format: str) -> tuple[str, str]:
    if value.strip().isdigit():
        return _ok()
    return CheckLevel.SUBOPTIMAL, "Build numbers are expected to be positive integers"


CHECKS: Dict[Property, Checker] = {
    P.BUILD_ARCH: _one_of("Build arch", VALID_ARCHS),
    P.BUILD_BRANCH: _non_empty("Branch"),
    P.BUILD_DATE: _date_checker("build"),
    P.BUILD_HOSTING_URL: _url_checker(),
    P.BUILD_NUMBER: _check_build_number,
    P.BUILD_OS: _non_empty("Build OS"),
    P.BUILD_OS_FAMILY: _one_of("Build OS family", VALID_OS_FAMILIES),
    P.BUILD_TAG: _non_empty("Tag"),
    P.CI: _one_of("CI", ("true", "false")),
    P.LICENSE: _check_license,
    P.LICENSES: _check_licenses,
    P.NAME: _non_empty("Project name"),
    P.NAME_MACHINE_READABLE: _check_machine_name,
    P.REPO_CLONE_URL: _url_checker(allow_ssh=True, allow_git=True),
    P.REPO_CLONE_URL_GIT: _url_checker(allow_git=True),
    P.REPO_CLONE_URL_HTTP: _url_checker(),
    P.REPO_CLONE_URL_SSH: _url_checker(allow_ssh=True),
    P.REPO_COMMIT_PREFIX_URL: _url_checker(),
    P.REPO_ISSUES_URL: _url_checker(),
    P.REPO_RAW_VERSIONED_PREFIX_URL: _url_checker(),
    P.REPO_VERSIONED_DIR_PREFIX_URL: _url_checker(),
    P.REPO_VERSIONED_FILE_PREFIX_URL: _url_checker(),
    P.REPO_WEB_URL: _url_checker(),
    P.VERSION: _check_version,
    P.VERSION_DATE: _date_checker("version"),
}


def check_value(prop: Property, value: str, *, date_format: str = DEFAULT_DATE_FORMAT) -> CheckResult:
    """Check a single value for ``prop``."""
    checker = CHECKS.get(prop)
    if checker is None:
        return CheckResult(prop, value, CheckLevel.OK, "")
    level, message = checker(value, date_format or DEFAULT_DATE_FORMAT)
    return CheckResult(prop, value, level, message)


def check_values(
    resolved: ResolvedPropertyMap,
    *,
    date_format: str = DEFAULT_DATE_FORMAT,
    prefix: Optional[str] = P.DEFAULT_KEY_PREFIX,
) -> List[CheckResult]:
    """Check every primary value and log the ones that are not OK."""
    results: List[CheckResult] = []
    for prop in resolved:
        result = check_value(prop, resolved.primary(prop) or "", date_format=date_format)
        if not result.ok:
            log.warning("Suspicious value for '%s' (%r): %s", prop.output_key(prefix), result.value, result.message)
        results.append(result)
    return results
