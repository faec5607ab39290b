# hosting.py
# SPDX-License-Identifier: MIT
"""
Hosting-provider detection and repository URL construction.

Given any clone or web URL of a repository, this module normalizes it into
``(host, path)`` form, infers which git hosting software serves it, and builds
the secondary repository URLs (web UI, issues, commit/file/dir/raw prefixes,
clone URL variants, pages URL) from a static per-provider template table.

Providers without known conventions (``HostingType.UNKNOWN``) only get the
provider-independent URLs: web URL and HTTPS/SSH clone URLs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from .interfaces import ConversionError
from .properties import (
    BUILD_HOSTING_URL,
    Property,
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
)

__all__ = [
    "HostingType",
    "PUBLIC_SITES",
    "CLONE_URL_RE",
    "CloneUrl",
    "HostingContext",
    "URL_TEMPLATES",
    "infer_hosting_type",
    "parse_clone_url",
    "strip_credentials",
    "construct_urls",
]


class HostingType:
    """Supported git hosting software.

    ``UNKNOWN`` doubles as "infer from the URL" when given as configuration.
    """

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    SOURCEHUT = "sourcehut"
    GITEA = "gitea"
    GIROCCO = "girocco"
    ROCKETGIT = "rocketgit"
    ALLURA = "allura"
    UNKNOWN = "unknown"
    ALL = (GITHUB, GITLAB, BITBUCKET, SOURCEHUT, GITEA, GIROCCO, ROCKETGIT, ALLURA, UNKNOWN)

    _SSH_USERS = {
        GITHUB: "git",
        GITLAB: "git",
        BITBUCKET: "git",
        SOURCEHUT: "git",
        GITEA: "git",
        ROCKETGIT: "rocketgit",
    }
    _GIT_PROTOCOL = {GIROCCO, ROCKETGIT}

    @classmethod
    def normalize(cls, value: Optional[str]) -> str:
        kind = (value or cls.UNKNOWN).strip().lower()
        if kind not in cls.ALL:
            raise ValueError(f"Invalid hosting type: {value!r}. Expected one of {list(cls.ALL)}")
        return kind

    @classmethod
    def ssh_user(cls, hosting_type: str) -> str | None:
        return cls._SSH_USERS.get(hosting_type)

    @classmethod
    def supports_git_protocol(cls, hosting_type: str) -> bool:
        return hosting_type in cls._GIT_PROTOCOL


PUBLIC_SITES: Dict[str, str] = {
    "github.com": HostingType.GITHUB,
    "github.io": HostingType.GITHUB,
    "raw.githubusercontent.com": HostingType.GITHUB,
    "gitlab.com": HostingType.GITLAB,
    "gitlab.io": HostingType.GITLAB,
    "bitbucket.org": HostingType.BITBUCKET,
    "git.sr.ht": HostingType.SOURCEHUT,
    "repo.or.cz": HostingType.GIROCCO,
    "rocketgit.com": HostingType.ROCKETGIT,
    "ssh.rocketgit.com": HostingType.ROCKETGIT,
    "git.rocketgit.com": HostingType.ROCKETGIT,
    "codeberg.org": HostingType.GITEA,
    "codeberg.page": HostingType.GITEA,
    "sourceforge.net": HostingType.ALLURA,
    "sourceforge.io": HostingType.ALLURA,
}

# Pages domains also match their user sub-domains (``user.github.io``).
_PAGES_SUFFIXES = ("github.io", "gitlab.io", "codeberg.page", "sourceforge.io")

# Hosts that serve git or raw content but whose web UI lives elsewhere.
_WEB_HOSTS = {
    "raw.githubusercontent.com": "github.com",
    "ssh.rocketgit.com": "rocketgit.com",
    "git.rocketgit.com": "rocketgit.com",
}

CLONE_URL_RE = re.compile(
    r"^((?P<protocol>[0-9a-zA-Z._-]+)://)?"
    r"((?P<user>[^@/\s]+)@)?"
    r"(?P<host>[0-9a-zA-Z._-]+)"
    r"([/:](?P<path_and_rest>.+)?)?$"
)
_PORT_PREFIX_RE = re.compile(r"^\d+/")


def infer_hosting_type(host: str | None) -> str:
    """Map a host name to a :class:`HostingType`; unknown hosts give ``UNKNOWN``."""
    if not host:
        return HostingType.UNKNOWN
    name = host.strip().lower().rstrip(".")
    if name.startswith("www."):
        name = name[4:]
    found = PUBLIC_SITES.get(name)
    if found:
        return found
    for suffix in _PAGES_SUFFIXES:
        if name.endswith("." + suffix):
            return PUBLIC_SITES[suffix]
    return HostingType.UNKNOWN


def strip_credentials(url: str) -> str:
    """Drop ``user:password@`` from an http(s) URL; other URLs pass through."""
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or "@" not in parts.netloc:
        return url
    netloc = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


@dataclass(frozen=True, slots=True)
class CloneUrl:
    """A clone or web URL broken into its parts.

    Attributes:
        raw (str): URL as given.
        protocol (str | None): Scheme, None for the ``user@host:path`` form.
        user (str | None): User part, if any.
        host (str): Host name, lower-cased.
        path (str): Repository path without leading/trailing slashes and
            without a ``.git`` suffix, e.g. ``owner/repo``.
    """

    raw: str
    protocol: str | None
    user: str | None
    host: str
    path: str

    @property
    def owner(self) -> str:
        return self.path.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.path.rsplit("/", 1)[-1]


def parse_clone_url(url: str) -> CloneUrl:
    """Parse any of the common clone/web URL forms.

    ``git@github.com:user/repo.git``, ``https://github.com/user/repo``,
    ``ssh://git@host/user/repo.git`` and ``git://host/repo.git`` all yield the
    same ``(host, path)`` for the same repository.

    Raises:
        ConversionError: If the URL has no host or no repository path.
    """
    text = (url or "").strip()
    match = CLONE_URL_RE.match(text)
    if not match:
        raise ConversionError(f"Not a recognizable repository URL: {url!r}")
    protocol = match.group("protocol")
    rest = match.group("path_and_rest") or ""
    if protocol and _PORT_PREFIX_RE.match(rest):
        rest = rest.split("/", 1)[1]
    rest = rest.split("?", 1)[0].split("#", 1)[0].strip("/")
    if rest.endswith(".git"):
        rest = rest[: -len(".git")].rstrip("/")
    if not rest:
        raise ConversionError(f"Repository URL has no repository path: {url!r}")
    return CloneUrl(
        raw=text,
        protocol=protocol.lower() if protocol else None,
        user=match.group("user"),
        host=match.group("host").lower(),
        path=rest,
    )


@dataclass(frozen=True, slots=True)
class HostingContext:
    """Normalized repository location plus the hosting provider serving it.

    Attributes:
        clone_url (str): The URL the context was built from, as given.
        hosting_type (str): One of :class:`HostingType`.
        host (str): Web UI host (``raw.githubusercontent.com`` maps to
            ``github.com`` and so on).
        path (str): ``owner/.../repo`` path.
    """

    clone_url: str
    hosting_type: str
    host: str
    path: str

    @classmethod
    def from_url(cls, url: str, hosting_type: str | None = None) -> "HostingContext":
        """Build a context; an explicit, non-unknown ``hosting_type`` wins over inference."""
        parsed = parse_clone_url(url)
        explicit = HostingType.normalize(hosting_type)
        if explicit == HostingType.UNKNOWN:
            explicit = infer_hosting_type(parsed.host)
        return cls(
            clone_url=parsed.raw,
            hosting_type=explicit,
            host=_WEB_HOSTS.get(parsed.host, parsed.host),
            path=parsed.path,
        )

    @property
    def owner(self) -> str:
        return self.path.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def web_url(self) -> str:
        return f"https://{self.host}/{self.path}"

    @property
    def https_clone_url(self) -> str:
        return f"https://{self.host}/{self.path}.git"

    @property
    def ssh_clone_url(self) -> str:
        user = HostingType.ssh_user(self.hosting_type)
        host = "ssh.rocketgit.com" if self.hosting_type == HostingType.ROCKETGIT else self.host
        user_at = f"{user}@" if user else ""
        return f"ssh://{user_at}{host}/{self.path}.git"

    @property
    def git_clone_url(self) -> str | None:
        if not HostingType.supports_git_protocol(self.hosting_type):
            return None
        host = "git.rocketgit.com" if self.hosting_type == HostingType.ROCKETGIT else self.host
        return f"git://{host}/{self.path}.git"


UrlBuilder = Callable[[HostingContext], str]


def _web_suffix(suffix: str) -> UrlBuilder:
    def build(ctx: HostingContext) -> str:
        return f"{ctx.web_url}{suffix}"

    return build


def _github_raw(ctx: HostingContext) -> str:
    return f"https://raw.githubusercontent.com/{ctx.path}"


def _pages(domain: str) -> UrlBuilder:
    def build(ctx: HostingContext) -> str:
        owner, _, rest = ctx.path.partition("/")
        return f"https://{owner}.{domain}/{rest}"

    return build


URL_TEMPLATES: Dict[str, Dict[Property, UrlBuilder]] = {
    HostingType.GITHUB: {
        BUILD_HOSTING_URL: _pages("github.io"),
        REPO_COMMIT_PREFIX_URL: _web_suffix("/commit"),
        REPO_ISSUES_URL: _web_suffix("/issues"),
        REPO_RAW_VERSIONED_PREFIX_URL: _github_raw,
        REPO_VERSIONED_DIR_PREFIX_URL: _web_suffix("/tree"),
        REPO_VERSIONED_FILE_PREFIX_URL: _web_suffix("/blob"),
    },
    HostingType.GITLAB: {
        BUILD_HOSTING_URL: _pages("gitlab.io"),
        REPO_COMMIT_PREFIX_URL: _web_suffix("/-/commit"),
        REPO_ISSUES_URL: _web_suffix("/-/issues"),
        REPO_RAW_VERSIONED_PREFIX_URL: _web_suffix("/-/raw"),
        REPO_VERSIONED_DIR_PREFIX_URL: _web_suffix("/-/tree"),
        REPO_VERSIONED_FILE_PREFIX_URL: _web_suffix("/-/blob"),
    },
    HostingType.BITBUCKET: {
        REPO_COMMIT_PREFIX_URL: _web_suffix("/commits"),
        REPO_ISSUES_URL: _web_suffix("/issues"),
        REPO_RAW_VERSIONED_PREFIX_URL: _web_suffix("/raw"),
        REPO_VERSIONED_DIR_PREFIX_URL: _web_suffix("/src"),
        REPO_VERSIONED_FILE_PREFIX_URL: _web_suffix("/src"),
    },
    HostingType.GITEA: {
        REPO_COMMIT_PREFIX_URL: _web_suffix("/commit"),
        REPO_ISSUES_URL: _web_suffix("/issues"),
        REPO_RAW_VERSIONED_PREFIX_URL: _web_suffix("/raw/commit"),
        REPO_VERSIONED_DIR_PREFIX_URL: _web_suffix("/src/commit"),
        REPO_VERSIONED_FILE_PREFIX_URL: _web_suffix("/src/commit"),
    },
    HostingType.SOURCEHUT: {
        REPO_COMMIT_PREFIX_URL: _web_suffix("/commit"),
        REPO_RAW_VERSIONED_PREFIX_URL: _web_suffix("/blob"),
    },
}


def construct_urls(ctx: HostingContext) -> Dict[Property, str]:
    """Build every repository URL derivable from ``ctx``.

    Returns:
        dict[Property, str]: Derived values; properties the provider has no
        convention for are left out.
    """
    urls: Dict[Property, str] = {
        REPO_WEB_URL: ctx.web_url,
        REPO_CLONE_URL: ctx.https_clone_url,
        REPO_CLONE_URL_HTTP: ctx.https_clone_url,
        REPO_CLONE_URL_SSH: ctx.ssh_clone_url,
    }
    git_url = ctx.git_clone_url
    if git_url:
        urls[REPO_CLONE_URL_GIT] = git_url
    for prop, build in URL_TEMPLATES.get(ctx.hosting_type, {}).items():
        urls[prop] = build(ctx)
    return urls
