# scm.py
# SPDX-License-Identifier: MIT
"""Local git repository source backed by GitPython."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from ..core import properties as P
from ..core.conversions import DEFAULT_DATE_FORMAT, clean_version, format_date, is_git_dirty_version
from ..core.interfaces import SourceError, SourceKind
from ..core.log import get_logger
from ..core.properties import Property

log = get_logger(__name__)

__all__ = ["GitSource"]

SHORT_SHA_LEN = 7


@dataclass(slots=True)
class GitSource:
    """Read version, branch, tag, remote URL and commit date from a git work tree.

    The repository is opened on first use and searched upwards from
    ``repo_path``. A missing or invalid repository is a source-wide
    :class:`SourceError`; individual git command failures only affect the
    property being retrieved.
    """

    repo_path: Path
    date_format: str = DEFAULT_DATE_FORMAT
    name: str = "git"
    kind: str = SourceKind.SCM
    alternative: bool = False
    _repo: Optional[Repo] = field(default=None, init=False, repr=False)
    _getters: Dict[Property, Callable[[Repo], Optional[str]]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.repo_path = Path(self.repo_path)
        self._getters = {
            P.BUILD_BRANCH: self._branch,
            P.BUILD_TAG: self._tag,
            P.NAME: self._name,
            P.REPO_CLONE_URL: self._clone_url,
            P.VERSION: self._version,
            P.VERSION_DATE: self._version_date,
        }

    def _open(self) -> Repo:
        if self._repo is None:
            try:
                self._repo = Repo(self.repo_path, search_parent_directories=True)
            except (InvalidGitRepositoryError, NoSuchPathError) as exc:
                raise SourceError(self.name, f"Not a git repository: {self.repo_path} ({exc})") from exc
            log.debug("Opened git repository at %s", self._repo.working_tree_dir)
        return self._repo

    def retrieve(self, prop: Property) -> Optional[str]:
        getter = self._getters.get(prop)
        if getter is None:
            return None
        repo = self._open()
        try:
            return getter(repo)
        except GitCommandError as exc:
            raise SourceError(self.name, f"git command failed: {exc}", prop=prop) from exc
        except ValueError as exc:
            raise SourceError(self.name, str(exc), prop=prop) from exc

    def close(self) -> None:
        if self._repo is not None:
            self._repo.close()
            self._repo = None

    # ------------------------------------------------------------------
    # Property getters
    # ------------------------------------------------------------------
    @staticmethod
    def _has_commits(repo: Repo) -> bool:
        try:
            repo.head.commit
        except ValueError:
            return False
        return True

    def _version(self, repo: Repo) -> Optional[str]:
        if not self._has_commits(repo):
            return None
        # Stale stat info in the index makes describe report a clean tree as dirty.
        try:
            repo.git.update_index("--refresh")
        except GitCommandError:
            log.debug("git update-index --refresh found modified files in %s", repo.working_tree_dir)
        try:
            raw = repo.git.describe("--tags", "--dirty", "--broken")
        except GitCommandError:
            # No tags reachable; fall back to the commit id.
            raw = "g" + repo.head.commit.hexsha[:SHORT_SHA_LEN]
            if repo.is_dirty():
                raw += "-dirty"
        version = clean_version(raw.strip())
        if is_git_dirty_version(version):
            log.warning("Dirty git version %r: the working tree has uncommitted changes", version)
        return version

    def _branch(self, repo: Repo) -> Optional[str]:
        if repo.head.is_detached:
            return None
        return repo.active_branch.name

    def _tag(self, repo: Repo) -> Optional[str]:
        if not self._has_commits(repo):
            return None
        head = repo.head.commit
        names = []
        for tag in repo.tags:
            try:
                commit = tag.commit
            except ValueError:
                log.debug("Skipping tag %r: it does not point at a commit", tag.name)
                continue
            if commit == head:
                names.append(tag.name)
        if len(names) > 1:
            log.debug("Several tags point at HEAD, using %r of %s", names[0], names)
        return names[0] if names else None

    def _clone_url(self, repo: Repo) -> Optional[str]:
        remote_name: Optional[str] = None
        if not repo.head.is_detached:
            tracking = repo.active_branch.tracking_branch()
            if tracking is not None:
                remote_name = tracking.remote_name
        remotes = {remote.name: remote for remote in repo.remotes}
        if not remotes:
            return None
        for candidate in (remote_name, "origin"):
            if candidate in remotes:
                remote = remotes[candidate]
                break
        else:
            remote = repo.remotes[0]
        urls = list(remote.urls)
        return urls[0] if urls else None

    def _version_date(self, repo: Repo) -> Optional[str]:
        if not self._has_commits(repo):
            return None
        return format_date(repo.head.commit.committed_datetime, self.date_format)

    def _name(self, repo: Repo) -> Optional[str]:
        work_tree = repo.working_tree_dir
        return Path(work_tree).name if work_tree else None
