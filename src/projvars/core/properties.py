# properties.py
# SPDX-License-Identifier: MIT
"""Schema of every project property projvars can resolve.

The schema is closed: sources, sinks and the validator only ever deal with the
:class:`Property` instances defined here. Output keys are the configured key
prefix (``PROJECT_`` by default) followed by the property key.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "DEFAULT_KEY_PREFIX",
    "Property",
    "ALL_PROPERTIES",
    "all_properties",
    "default_required",
    "get_property",
    "BUILD_ARCH",
    "BUILD_BRANCH",
    "BUILD_DATE",
    "BUILD_HOSTING_URL",
    "BUILD_NUMBER",
    "BUILD_OS",
    "BUILD_OS_FAMILY",
    "BUILD_TAG",
    "CI",
    "LICENSE",
    "LICENSES",
    "NAME",
    "NAME_MACHINE_READABLE",
    "REPO_CLONE_URL",
    "REPO_CLONE_URL_GIT",
    "REPO_CLONE_URL_HTTP",
    "REPO_CLONE_URL_SSH",
    "REPO_COMMIT_PREFIX_URL",
    "REPO_ISSUES_URL",
    "REPO_RAW_VERSIONED_PREFIX_URL",
    "REPO_VERSIONED_DIR_PREFIX_URL",
    "REPO_VERSIONED_FILE_PREFIX_URL",
    "REPO_WEB_URL",
    "VERSION",
    "VERSION_DATE",
]

DEFAULT_KEY_PREFIX = "PROJECT_"


@dataclass(frozen=True, slots=True)
class Property:
    """One resolvable metadata field.

    Attributes:
        key (str): Stable, unprefixed identifier such as ``REPO_WEB_URL``.
        name (str): Short human readable name.
        description (str): One-line description used by ``--list``.
        default_required (bool): Whether the property belongs to the default
            requirement set.
    """

    key: str
    name: str
    description: str
    default_required: bool = False

    def output_key(self, prefix: str | None = DEFAULT_KEY_PREFIX) -> str:
        """Return the key used in outputs and the environment."""
        return f"{prefix or ''}{self.key}"

    def __str__(self) -> str:
        return self.key


BUILD_ARCH = Property(
    "BUILD_ARCH",
    "Build architecture",
    "Computer hardware architecture we are building on (common values: 'x86', 'x86_64', 'arm', 'arm64').",
)
BUILD_BRANCH = Property(
    "BUILD_BRANCH",
    "Build branch",
    "The development branch name.",
)
BUILD_DATE = Property(
    "BUILD_DATE",
    "Build date",
    "Date of this build, in the configured date format.",
    default_required=True,
)
BUILD_HOSTING_URL = Property(
    "BUILD_HOSTING_URL",
    "Build hosting URL",
    "Web URL under which the generated output will be available (e.g. GitHub or GitLab pages).",
)
BUILD_NUMBER = Property(
    "BUILD_NUMBER",
    "Build number",
    "The CI build number; usually starts at 1 for each repo and branch.",
)
BUILD_OS = Property(
    "BUILD_OS",
    "Build OS",
    "Operating system we are building on (common values: 'linux', 'macos', 'windows').",
)
BUILD_OS_FAMILY = Property(
    "BUILD_OS_FAMILY",
    "Build OS family",
    "Operating system family we are building on (one of 'linux', 'unix', 'bsd', 'osx', 'windows').",
)
BUILD_TAG = Property(
    "BUILD_TAG",
    "Build tag",
    "The tag of the commit that kicked off the build; only available on tags.",
)
CI = Property(
    "CI",
    "CI",
    "'true' if running on a CI/build-bot, 'false' otherwise.",
)
LICENSE = Property(
    "LICENSE",
    "License",
    "Main license of the sources, as an SPDX identifier.",
    default_required=True,
)
LICENSES = Property(
    "LICENSES",
    "Licenses",
    "All licenses of the sources, as SPDX identifiers separated by ', '.",
)
NAME = Property(
    "NAME",
    "Name",
    "The human readable name of the project.",
    default_required=True,
)
NAME_MACHINE_READABLE = Property(
    "NAME_MACHINE_READABLE",
    "Machine readable name",
    "The project name restricted to the characters [0-9a-zA-Z_-].",
)
REPO_CLONE_URL = Property(
    "REPO_CLONE_URL",
    "Clone URL",
    "The main repository clone URL.",
    default_required=True,
)
REPO_CLONE_URL_GIT = Property(
    "REPO_CLONE_URL_GIT",
    "Clone URL (git)",
    "Anonymous clone URL using the git:// protocol, where the host offers it.",
)
REPO_CLONE_URL_HTTP = Property(
    "REPO_CLONE_URL_HTTP",
    "Clone URL (HTTPS)",
    "Anonymous clone URL using HTTPS.",
)
REPO_CLONE_URL_SSH = Property(
    "REPO_CLONE_URL_SSH",
    "Clone URL (SSH)",
    "Authenticated clone URL using SSH.",
)
REPO_COMMIT_PREFIX_URL = Property(
    "REPO_COMMIT_PREFIX_URL",
    "Commit prefix URL",
    "Web URL prefix to which a commit SHA is appended to view that commit.",
)
REPO_ISSUES_URL = Property(
    "REPO_ISSUES_URL",
    "Issues URL",
    "Web URL of the issue tracker.",
)
REPO_RAW_VERSIONED_PREFIX_URL = Property(
    "REPO_RAW_VERSIONED_PREFIX_URL",
    "Raw versioned prefix URL",
    "Prefix for raw file downloads; append '/<ref>/<path>'.",
)
REPO_VERSIONED_DIR_PREFIX_URL = Property(
    "REPO_VERSIONED_DIR_PREFIX_URL",
    "Versioned directory prefix URL",
    "Prefix for directory web pages at a given ref; append '/<ref>/<path>'.",
)
REPO_VERSIONED_FILE_PREFIX_URL = Property(
    "REPO_VERSIONED_FILE_PREFIX_URL",
    "Versioned file prefix URL",
    "Prefix for file web pages at a given ref; append '/<ref>/<path>'.",
)
REPO_WEB_URL = Property(
    "REPO_WEB_URL",
    "Web URL",
    "The repository web UI URL.",
    default_required=True,
)
VERSION = Property(
    "VERSION",
    "Version",
    "The project version.",
    default_required=True,
)
VERSION_DATE = Property(
    "VERSION_DATE",
    "Version date",
    "Date this version was committed to source control, in the configured date format.",
    default_required=True,
)

ALL_PROPERTIES: tuple[Property, ...] = (
    BUILD_ARCH,
    BUILD_BRANCH,
    BUILD_DATE,
    BUILD_HOSTING_URL,
    BUILD_NUMBER,
    BUILD_OS,
    BUILD_OS_FAMILY,
    BUILD_TAG,
    CI,
    LICENSE,
    LICENSES,
    NAME,
    NAME_MACHINE_READABLE,
    REPO_CLONE_URL,
    REPO_CLONE_URL_GIT,
    REPO_CLONE_URL_HTTP,
    REPO_CLONE_URL_SSH,
    REPO_COMMIT_PREFIX_URL,
    REPO_ISSUES_URL,
    REPO_RAW_VERSIONED_PREFIX_URL,
    REPO_VERSIONED_DIR_PREFIX_URL,
    REPO_VERSIONED_FILE_PREFIX_URL,
    REPO_WEB_URL,
    VERSION,
    VERSION_DATE,
)

_BY_KEY = {prop.key: prop for prop in ALL_PROPERTIES}
assert len(_BY_KEY) == len(ALL_PROPERTIES), "duplicate property keys"


def all_properties() -> tuple[Property, ...]:
    """Return every property in schema order."""
    return ALL_PROPERTIES


def default_required() -> frozenset[Property]:
    """Return the properties that are required unless configured otherwise."""
    return frozenset(prop for prop in ALL_PROPERTIES if prop.default_required)


def get_property(key: str | Property, prefix: str | None = DEFAULT_KEY_PREFIX) -> Property:
    """Look up a property by key.

    Accepts the bare key (``VERSION``), the prefixed output key
    (``PROJECT_VERSION``) and any letter case.

    Raises:
        ValueError: If ``key`` does not name a known property.
    """
    if isinstance(key, Property):
        return key
    normalized = key.strip().upper()
    prop = _BY_KEY.get(normalized)
    if prop is None and prefix and normalized.startswith(prefix.upper()):
        prop = _BY_KEY.get(normalized[len(prefix):])
    if prop is None:
        raise ValueError(f"Unknown property key: {key!r}. Expected one of {sorted(_BY_KEY)}")
    return prop
