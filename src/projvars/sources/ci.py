# ci.py
# SPDX-License-Identifier: MIT
"""
Continuous integration sources.

Each provider is recognized by a marker variable and maps its own environment
conventions onto properties. A provider whose marker is absent yields nothing.
URLs taken from the environment are stripped of embedded credentials (GitLab's
``CI_REPOSITORY_URL`` carries a job token, for example).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..core import properties as P
from ..core.conversions import (
    DEFAULT_DATE_FORMAT,
    clean_version,
    iso8601_to_date,
    ref_extract_branch,
    ref_extract_tag,
    slug_to_name,
)
from ..core.hosting import strip_credentials
from ..core.interfaces import SourceKind
from ..core.log import get_logger
from ..core.properties import Property

log = get_logger(__name__)

__all__ = [
    "CISource",
    "GitHubActionsSource",
    "GitLabCISource",
    "BitbucketPipelinesSource",
    "JenkinsSource",
    "TravisCISource",
    "CI_SOURCE_TYPES",
    "detect_ci_sources",
]

Env = Mapping[str, str]
Getter = Callable[[Env, str], Optional[str]]


def _var(name: str) -> Getter:
    def get(env: Env, _date_format: str) -> Optional[str]:
        return env.get(name)

    return get


def _url_var(name: str) -> Getter:
    def get(env: Env, _date_format: str) -> Optional[str]:
        value = env.get(name)
        return strip_credentials(value) if value else value

    return get


def _ci_flag(env: Env, _date_format: str) -> Optional[str]:
    return "true" if env.get("CI", "").strip().lower() in ("true", "1", "yes") else "false"


def _tag_or(tag_var: str, fallback_var: str) -> Getter:
    """Version: the cleaned tag when building a tag, else a commit id."""

    def get(env: Env, _date_format: str) -> Optional[str]:
        tag = env.get(tag_var)
        if tag:
            return clean_version(tag)
        return env.get(fallback_var)

    return get


def _name_from_slug(var: str) -> Getter:
    def get(env: Env, _date_format: str) -> Optional[str]:
        slug = env.get(var)
        return slug_to_name(slug) if slug else None

    return get


def _web_url_from_slug(var: str, base: str) -> Getter:
    def get(env: Env, _date_format: str) -> Optional[str]:
        slug = env.get(var)
        return f"{base}/{slug.strip('/')}" if slug else None

    return get


@dataclass(slots=True)
class CISource:
    """Generic CI provider source built from a property -> getter table."""

    name: str
    marker: str
    getters: Dict[Property, Getter]
    environ: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    date_format: str = DEFAULT_DATE_FORMAT
    kind: str = SourceKind.CI
    alternative: bool = False

    @property
    def active(self) -> bool:
        return self.marker in self.environ

    def retrieve(self, prop: Property) -> Optional[str]:
        if not self.active:
            return None
        getter = self.getters.get(prop)
        if getter is None:
            return None
        return getter(self.environ, self.date_format)


# --- GitHub Actions ---------------------------------------------------------


def _github_ref(extract: Callable[[str], Optional[str]]) -> Getter:
    def get(env: Env, _date_format: str) -> Optional[str]:
        ref = env.get("GITHUB_REF")
        return extract(ref) if ref else None

    return get


def _github_web_url(env: Env, _date_format: str) -> Optional[str]:
    server = env.get("GITHUB_SERVER_URL")
    repo = env.get("GITHUB_REPOSITORY")
    if not server or not repo:
        return None
    return f"{strip_credentials(server).rstrip('/')}/{repo}"


def _github_version(env: Env, date_format: str) -> Optional[str]:
    ref = env.get("GITHUB_REF")
    tag = ref_extract_tag(ref) if ref else None
    if tag:
        return clean_version(tag)
    return env.get("GITHUB_SHA")


def GitHubActionsSource(environ: Optional[Env] = None, *, date_format: str = DEFAULT_DATE_FORMAT) -> CISource:
    return CISource(
        name="github-actions",
        marker="GITHUB_ACTIONS",
        getters={
            P.BUILD_BRANCH: _github_ref(ref_extract_branch),
            P.BUILD_TAG: _github_ref(ref_extract_tag),
            P.BUILD_NUMBER: _var("GITHUB_RUN_NUMBER"),
            P.BUILD_OS: _var("RUNNER_OS"),
            P.CI: _ci_flag,
            P.NAME: _name_from_slug("GITHUB_REPOSITORY"),
            P.REPO_WEB_URL: _github_web_url,
            P.VERSION: _github_version,
        },
        environ=dict(os.environ if environ is None else environ),
        date_format=date_format,
    )


# --- GitLab CI --------------------------------------------------------------


def _gitlab_version_date(env: Env, date_format: str) -> Optional[str]:
    stamp = env.get("CI_COMMIT_TIMESTAMP")
    return iso8601_to_date(stamp, date_format) if stamp else None


def GitLabCISource(environ: Optional[Env] = None, *, date_format: str = DEFAULT_DATE_FORMAT) -> CISource:
    return CISource(
        name="gitlab-ci",
        marker="GITLAB_CI",
        getters={
            P.BUILD_BRANCH: _var("CI_COMMIT_BRANCH"),
            P.BUILD_TAG: _var("CI_COMMIT_TAG"),
            P.BUILD_HOSTING_URL: _url_var("CI_PAGES_URL"),
            P.BUILD_NUMBER: _var("CI_PIPELINE_IID"),
            P.CI: _ci_flag,
            P.NAME: _var("CI_PROJECT_NAME"),
            P.REPO_CLONE_URL: _url_var("CI_REPOSITORY_URL"),
            P.REPO_WEB_URL: _url_var("CI_PROJECT_URL"),
            P.VERSION: _tag_or("CI_COMMIT_TAG", "CI_COMMIT_SHORT_SHA"),
            P.VERSION_DATE: _gitlab_version_date,
        },
        environ=dict(os.environ if environ is None else environ),
        date_format=date_format,
    )


# --- Bitbucket Pipelines ----------------------------------------------------


def BitbucketPipelinesSource(environ: Optional[Env] = None, *, date_format: str = DEFAULT_DATE_FORMAT) -> CISource:
    return CISource(
        name="bitbucket-pipelines",
        marker="BITBUCKET_BUILD_NUMBER",
        getters={
            P.BUILD_BRANCH: _var("BITBUCKET_BRANCH"),
            P.BUILD_TAG: _var("BITBUCKET_TAG"),
            P.BUILD_NUMBER: _var("BITBUCKET_BUILD_NUMBER"),
            P.CI: _ci_flag,
            P.NAME: _name_from_slug("BITBUCKET_REPO_FULL_NAME"),
            P.REPO_CLONE_URL: _url_var("BITBUCKET_GIT_SSH_ORIGIN"),
            P.REPO_CLONE_URL_HTTP: _url_var("BITBUCKET_GIT_HTTP_ORIGIN"),
            P.REPO_WEB_URL: _web_url_from_slug("BITBUCKET_REPO_FULL_NAME", "https://bitbucket.org"),
            P.VERSION: _tag_or("BITBUCKET_TAG", "BITBUCKET_COMMIT"),
        },
        environ=dict(os.environ if environ is None else environ),
        date_format=date_format,
    )


# --- Jenkins ----------------------------------------------------------------


def JenkinsSource(environ: Optional[Env] = None, *, date_format: str = DEFAULT_DATE_FORMAT) -> CISource:
    return CISource(
        name="jenkins",
        marker="JENKINS_URL",
        getters={
            P.BUILD_BRANCH: _var("BRANCH_NAME"),
            P.BUILD_TAG: _var("TAG_NAME"),
            P.BUILD_NUMBER: _var("BUILD_NUMBER"),
            P.CI: _ci_flag,
            P.NAME: _var("APP_NAME"),
            P.REPO_CLONE_URL: _url_var("GIT_URL"),
            P.VERSION: _var("VERSION"),
        },
        environ=dict(os.environ if environ is None else environ),
        date_format=date_format,
    )


# --- Travis CI --------------------------------------------------------------


def TravisCISource(environ: Optional[Env] = None, *, date_format: str = DEFAULT_DATE_FORMAT) -> CISource:
    return CISource(
        name="travis-ci",
        marker="TRAVIS",
        getters={
            P.BUILD_BRANCH: _var("TRAVIS_BRANCH"),
            P.BUILD_TAG: _var("TRAVIS_TAG"),
            P.BUILD_NUMBER: _var("TRAVIS_BUILD_NUMBER"),
            P.BUILD_OS: _var("TRAVIS_OS_NAME"),
            P.CI: _ci_flag,
            P.NAME: _name_from_slug("TRAVIS_REPO_SLUG"),
            P.REPO_WEB_URL: _web_url_from_slug("TRAVIS_REPO_SLUG", "https://github.com"),
            P.VERSION: _tag_or("TRAVIS_TAG", "TRAVIS_COMMIT"),
        },
        environ=dict(os.environ if environ is None else environ),
        date_format=date_format,
    )


CI_SOURCE_TYPES = (
    GitHubActionsSource,
    GitLabCISource,
    BitbucketPipelinesSource,
    JenkinsSource,
    TravisCISource,
)


def detect_ci_sources(environ: Optional[Env] = None, *, date_format: str = DEFAULT_DATE_FORMAT) -> List[CISource]:
    """Return the CI sources whose marker variable is set, in a fixed order."""
    env = dict(os.environ if environ is None else environ)
    active = [factory(env, date_format=date_format) for factory in CI_SOURCE_TYPES]
    active = [source for source in active if source.active]
    if active:
        log.info("Detected CI environment(s): %s", ", ".join(s.name for s in active))
    return active
