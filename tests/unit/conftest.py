"""
Shared fixtures: an in-memory VCS adapter and workspace helpers.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from reposync.core.git import GitError
from reposync.core.vcs import VcsAdapter, WorkingCopyStatus


class FakeRepoState:
    """Remote and working copy state of one fake repository."""

    def __init__(self, name: str):
        self.name = name
        self.tags = ""
        self.current: Optional[str] = "main"
        self.changes: List[str] = []
        self.head = f"{name}-sha"
        self.commits = {self.head}
        self.branches: Dict[str, str] = {"main": self.head}
        self.url = f"git@example.com:org/{name}.git"
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, str] = {}


class FakeVcs(VcsAdapter):
    """VCS adapter that records calls instead of running git."""

    def __init__(self, working_dir: Path, remote: str, state: FakeRepoState, journal: List[tuple]):
        super().__init__(working_dir, remote)
        self.state = state
        self.journal = journal

    def _record(self, op: str, *args) -> None:
        self.state.calls.append((op, *args))
        self.journal.append((self.state.name, op, *args))
        if op in self.state.fail_on:
            raise GitError(f"git {op} failed in {self.state.name}", self.state.fail_on[op])

    async def fetch(self, tag=None, branch=None, full=False):
        self._record("fetch", tag, branch, full)

    async def checkout_branch(self, name):
        self._record("checkout_branch", name)
        self.state.current = name

    async def checkout_tag(self, name):
        self._record("checkout_tag", name)
        self.state.current = None

    async def checkout_commit(self, sha):
        self._record("checkout_commit", sha)
        self.state.current = None
        self.state.head = sha

    async def reset_hard(self, ref=None):
        self._record("reset_hard", ref)

    async def pull_ff_only(self, branch):
        self._record("pull_ff_only", branch)

    async def status(self):
        self._record("status")
        return WorkingCopyStatus(current=self.state.current, changes=list(self.state.changes))

    async def list_tags(self, pattern):
        self._record("list_tags", pattern, self.remote)
        return self.state.tags

    async def commit_exists(self, ref):
        self._record("commit_exists", ref)
        return ref in self.state.commits

    async def current_commit(self):
        self._record("current_commit")
        return self.state.head

    async def create_local_branch(self, name, from_ref=None):
        self._record("create_local_branch", name, from_ref)
        self.state.branches[name] = self.state.head
        self.state.current = name

    async def create_branch(self, name, from_ref=None):
        self._record("create_branch", name, from_ref)
        if name in self.state.branches:
            raise GitError(f"git checkout failed in {self.state.name}", f"fatal: a branch named '{name}' already exists")
        self.state.branches[name] = self.state.head
        self.state.current = name

    async def clone(self, url, branch=None, depth=None):
        self._record("clone", url, branch, depth)
        self.working_dir.mkdir(parents=True, exist_ok=True)
        self.state.current = branch or "main"

    async def origin_url(self):
        self._record("origin_url")
        return self.state.url

    async def add(self, *paths):
        self._record("add", *paths)

    async def commit(self, message, *paths):
        self._record("commit", message, *paths)

    async def push(self, branch):
        self._record("push", branch)


class FakeGit:
    """Hands out fake adapters that share state per repository name."""

    def __init__(self):
        self.repos: Dict[str, FakeRepoState] = {}
        self.journal: List[tuple] = []

    def repo(self, name: str) -> FakeRepoState:
        if name not in self.repos:
            self.repos[name] = FakeRepoState(name)
        return self.repos[name]

    def __call__(self, working_dir: Path, remote: str = "origin", log=None) -> FakeVcs:
        working_dir = Path(working_dir)
        return FakeVcs(working_dir, remote, self.repo(working_dir.name), self.journal)

    def ops(self, name: str) -> List[str]:
        return [call[0] for call in self.repo(name).calls]


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def write_manifest():
    """Write a parent-repos.json into a directory, creating it."""

    def _write(repo_dir: Path, repos: dict) -> Path:
        repo_dir.mkdir(parents=True, exist_ok=True)
        path = repo_dir / "parent-repos.json"
        path.write_text(json.dumps(repos, indent=2))
        return path

    return _write


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A workspace directory holding the root working copy ``main``."""
    root = tmp_path / "main"
    root.mkdir()
    return root


def tag_listing(*names: str) -> str:
    return "\n".join(f"{i:040x}\trefs/tags/{name}" for i, name in enumerate(names, start=1))


@pytest.fixture
def make_listing():
    return tag_listing
