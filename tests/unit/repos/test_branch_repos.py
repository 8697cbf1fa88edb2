"""
Tests for branching the whole workspace.
"""

import asyncio
import json

import pytest

from reposync.core.errors import BatchError
from reposync.repos import BranchRepos

URL = "git@example.com:org/lib.git"


@pytest.fixture
def branched_workspace(workspace, write_manifest):
    """main (parent), app with a manifest, lib without one."""
    ws = workspace.parent
    write_manifest(workspace, {"app": {"url": URL, "branch": "master"}, "lib": {"url": URL, "branch": "master"}})
    write_manifest(ws / "app", {"lib": {"url": URL, "branch": "master", "commit": "abc", "tag": "t"}})
    (ws / "lib").mkdir()
    return workspace


class TestBranchRepos:
    """Tests for BranchRepos."""

    def test_find_repos(self, branched_workspace, fake_git):
        op = BranchRepos(branched_workspace, "feature/x", vcs_factory=fake_git)
        assert op.find_repos() == ["app", "main"]

    def test_creates_branch_and_adjusts_manifests(self, branched_workspace, fake_git):
        op = BranchRepos(branched_workspace, "feature/x", vcs_factory=fake_git)

        assert asyncio.run(op.execute()) == ["app", "main"]

        app_manifest = json.loads((branched_workspace.parent / "app" / "parent-repos.json").read_text())
        assert app_manifest == {"lib": {"url": URL, "branch": "feature/x", "tag": "t"}}
        assert ("commit", "Adjust parent-repos.json to new branch feature/x", "parent-repos.json") in (
            fake_git.repo("app").calls
        )
        # the parent keeps its manifest
        assert "commit" not in fake_git.ops("main")
        assert fake_git.repo("main").current == "feature/x"
        assert "push" not in fake_git.ops("app")

    def test_branch_from_remote_branch_and_push(self, branched_workspace, fake_git):
        op = BranchRepos(branched_workspace, "feature/x", push=True, branch_from="develop", vcs_factory=fake_git)

        asyncio.run(op.execute())

        assert ("create_branch", "feature/x", "origin/develop") in fake_git.repo("app").calls
        assert fake_git.repo("main").calls[-1] == ("push", "feature/x")

    def test_dirty_repo_stops_before_branching(self, branched_workspace, fake_git):
        fake_git.repo("app").changes = [" M parent-repos.json"]

        with pytest.raises(BatchError) as exc:
            asyncio.run(BranchRepos(branched_workspace, "feature/x", vcs_factory=fake_git).execute())

        assert list(exc.value.reasons) == ["app"]
        assert not [call for call in fake_git.journal if call[1] == "create_branch"]

    def test_steps_run_one_repo_at_a_time(self, branched_workspace, fake_git):
        asyncio.run(BranchRepos(branched_workspace, "feature/x", vcs_factory=fake_git).execute())

        steps = [(name, op) for name, op, *_ in fake_git.journal if op in ("create_branch", "add")]
        assert steps == [("app", "create_branch"), ("main", "create_branch"), ("app", "add")]

    def test_existing_branch_is_not_overwritten(self, branched_workspace, fake_git):
        """An existing branch of the same name fails the run and keeps its commits."""
        app = fake_git.repo("app")
        app.branches["feature/x"] = "precious-sha"

        with pytest.raises(BatchError) as exc:
            asyncio.run(BranchRepos(branched_workspace, "feature/x", vcs_factory=fake_git).execute())

        assert "a branch named 'feature/x' already exists" in exc.value.reasons["app"]
        assert app.branches["feature/x"] == "precious-sha"
        assert app.current == "main"
        assert "commit" not in fake_git.ops("app")
