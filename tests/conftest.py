import os
from pathlib import Path

import git
import pytest

CI_MARKERS = ("GITHUB_ACTIONS", "GITLAB_CI", "BITBUCKET_BUILD_NUMBER", "JENKINS_URL", "TRAVIS", "CI")

AUTHOR = git.Actor("Test Author", "author@example.com")


@pytest.fixture
def clean_env(monkeypatch):
    """Hide CI markers and PROJECT_* variables of the machine running the tests."""
    for key in list(os.environ):
        if key in CI_MARKERS or key.startswith("PROJECT_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


def commit_file(repo: git.Repo, name: str, content: str, message: str) -> git.Commit:
    path = Path(repo.working_tree_dir) / name
    path.write_text(content, encoding="utf-8")
    repo.index.add([name])
    return repo.index.commit(message, author=AUTHOR, committer=AUTHOR)


@pytest.fixture
def git_repo(tmp_path: Path) -> git.Repo:
    """A repository ``myproj`` with one commit on ``main`` and no remotes."""
    root = tmp_path / "myproj"
    root.mkdir()
    repo = git.Repo.init(root, initial_branch="main")
    commit_file(repo, "README.md", "hello\n", "initial commit")
    yield repo
    repo.close()


@pytest.fixture
def commit():
    """``commit(repo, name, content, message)`` writes, stages and commits one file."""
    return commit_file
