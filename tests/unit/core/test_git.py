"""
Unit tests for the git command line adapter.
"""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from reposync.core.git import GitError, GitRepository, parse_status


class TestParseStatus:
    """Tests for porcelain status parsing."""

    def test_clean_branch(self):
        status = parse_status("## main...origin/main\n")
        assert status.current == "main"
        assert status.is_clean

    def test_changes(self):
        status = parse_status("## release/22.2...origin/release/22.2 [ahead 1]\n M file.txt\n?? new.txt\n")
        assert status.current == "release/22.2"
        assert status.changes == [" M file.txt", "?? new.txt"]
        assert not status.is_clean

    def test_detached_head(self):
        assert parse_status("## HEAD (no branch)\n").current is None

    def test_no_upstream(self):
        assert parse_status("## feature\n").current == "feature"

    def test_fresh_repository(self):
        assert parse_status("## No commits yet on main\n").current == "main"


class TestGitRepository:
    """Tests for the commands issued by the adapter."""

    def _repo(self, tmp_path: Path, output: str = ""):
        repo = GitRepository(tmp_path / "lib")
        repo._run_git = AsyncMock(return_value=output)
        return repo

    def _shallow_repo(self, tmp_path: Path):
        async def run_git(*args, **kwargs):
            return "true\n" if args[0] == "rev-parse" else ""

        repo = GitRepository(tmp_path / "lib")
        repo._run_git = AsyncMock(side_effect=run_git)
        return repo

    def test_fetch_tag(self, tmp_path):
        repo = self._repo(tmp_path)
        asyncio.run(repo.fetch(tag="version/1.0.0"))
        repo._run_git.assert_awaited_with("fetch", "origin", "refs/tags/version/1.0.0:refs/tags/version/1.0.0")

    def test_fetch_tag_in_shallow_clone(self, tmp_path):
        repo = self._shallow_repo(tmp_path)
        asyncio.run(repo.fetch(tag="version/1.0.0"))
        repo._run_git.assert_awaited_with(
            "fetch", "--depth", "1", "origin", "refs/tags/version/1.0.0:refs/tags/version/1.0.0"
        )

    def test_prefetch_branch_in_shallow_clone(self, tmp_path):
        repo = self._shallow_repo(tmp_path)
        asyncio.run(repo.fetch(branch="release/1.0"))
        repo._run_git.assert_awaited_with("fetch", "--depth", "1", "origin", "release/1.0")

    def test_full_fetch_unshallows(self, tmp_path):
        repo = self._shallow_repo(tmp_path)
        asyncio.run(repo.fetch(branch="master", full=True))
        repo._run_git.assert_awaited_with("fetch", "--unshallow", "origin", "master")

    def test_branch_fetch_in_full_clone_stays_full(self, tmp_path):
        repo = self._repo(tmp_path, "false\n")
        asyncio.run(repo.fetch(branch="master"))
        repo._run_git.assert_awaited_with("fetch", "origin", "master")

    def test_create_branch_does_not_force(self, tmp_path):
        repo = self._repo(tmp_path)
        asyncio.run(repo.create_branch("feature/x", "origin/develop"))
        repo._run_git.assert_awaited_once_with("checkout", "-b", "feature/x", "origin/develop")

    def test_tag_branch_is_reset(self, tmp_path):
        repo = self._repo(tmp_path)
        asyncio.run(repo.create_local_branch("release-version/version/1.0.0", "version/1.0.0"))
        repo._run_git.assert_awaited_once_with("checkout", "-B", "release-version/version/1.0.0", "version/1.0.0")

    def test_list_tags_uses_remote(self, tmp_path):
        repo = GitRepository(tmp_path / "lib", remote="git@example.com:org/lib.git")
        repo._run_git = AsyncMock(return_value="")
        asyncio.run(repo.list_tags("version/1.0.*"))
        repo._run_git.assert_awaited_once_with("ls-remote", "--tags", "git@example.com:org/lib.git", "version/1.0.*")

    def test_reset_to_remote(self, tmp_path):
        repo = self._repo(tmp_path)
        asyncio.run(repo.reset_hard("origin/master"))
        repo._run_git.assert_awaited_once_with("reset", "--hard", "origin/master")

    def test_clone_shallow(self, tmp_path):
        repo = self._repo(tmp_path)
        asyncio.run(repo.clone("url", branch="release/1.0", depth=1))
        args = repo._run_git.await_args.args
        assert args[:4] == ("clone", "--depth", "1", "--no-single-branch")
        assert args[-2:] == ("url", str(tmp_path / "lib"))

    def test_current_commit_is_stripped(self, tmp_path):
        repo = self._repo(tmp_path, "abc123\n")
        assert asyncio.run(repo.current_commit()) == "abc123"

    def test_commit_exists_false_on_error(self, tmp_path):
        repo = GitRepository(tmp_path / "lib")
        repo._run_git = AsyncMock(side_effect=GitError("git rev-parse failed"))
        assert asyncio.run(repo.commit_exists("nope")) is False

    @patch("reposync.core.git.asyncio.create_subprocess_exec")
    def test_failure_raises_git_error(self, mock_exec, tmp_path):
        process = MagicMock()
        process.communicate = AsyncMock(return_value=(b"", b"fatal: not a git repository"))
        process.returncode = 128
        mock_exec.return_value = process

        repo = GitRepository(tmp_path / "lib")
        with pytest.raises(GitError) as exc:
            asyncio.run(repo.status())

        assert exc.value.stderr == "fatal: not a git repository"
        assert "git status failed in lib" in str(exc.value)
