"""
Git Repository Adapter.

Implements the VCS adapter interface on top of the ``git`` executable,
running every command as an asyncio subprocess so a batch of repositories
can be processed concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from .vcs import VcsAdapter, WorkingCopyStatus

logger = logging.getLogger(__name__)


class GitError(Exception):
    """
    Raised when a git command fails.

    Attributes:
        message: Human-readable error message.
        stderr: Raw stderr output from git command.
    """

    def __init__(self, message: str, stderr: str = ""):
        self.message = message
        self.stderr = stderr
        super().__init__(f"{message}: {stderr}" if stderr else message)


def parse_status(output: str) -> WorkingCopyStatus:
    """
    Parse ``git status --porcelain --branch`` output.

    The first line names the branch (``## main...origin/main``); a detached
    HEAD reads ``## HEAD (no branch)``. Every other line is a change.
    """
    current: Optional[str] = None
    changes: List[str] = []
    for line in output.splitlines():
        if line.startswith("## "):
            header = line[3:]
            if header.startswith("No commits yet on "):
                current = header[len("No commits yet on "):]
            elif not header.startswith("HEAD (no branch)"):
                current = header.split("...", 1)[0].split(" ", 1)[0]
        elif line.strip():
            changes.append(line)
    return WorkingCopyStatus(current=current, changes=changes)


class GitRepository(VcsAdapter):
    """
    Git working copy driven through the command line.

    Attributes:
        working_dir: Directory of the working copy (may not exist before clone).
        remote: Remote name or URL used for fetch, tag listing and push.
    """

    def __init__(self, working_dir: Path, remote: str = "origin", log: Optional[logging.Logger] = None):
        super().__init__(working_dir, remote)
        self.log = log or logger

    async def _run_git(self, *args: str, cwd: Optional[Path] = None) -> str:
        """
        Run a git command and return its stdout.

        Raises:
            GitError: If git exits with a non-zero status.
        """
        if cwd is None and self.working_dir.exists():
            cwd = self.working_dir
        cmd = ["git", *args]
        self.log.debug(f"[{self.repo_name}]: {' '.join(cmd)}")

        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd) if cwd else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        out = stdout.decode("utf-8", errors="replace")
        if process.returncode != 0:
            raise GitError(
                f"git {args[0]} failed in {self.repo_name}",
                stderr.decode("utf-8", errors="replace").strip(),
            )
        if out.strip():
            self.log.debug(f"[{self.repo_name}]: {out.strip()}")
        return out

    async def fetch(self, tag: Optional[str] = None, branch: Optional[str] = None, full: bool = False) -> None:
        if not tag and not branch:
            await self._run_git("fetch", self.remote)
            return

        args = ["fetch"]
        if await self._is_shallow():
            # shallow clones only get the tip, unless the full history is needed
            args.extend(["--unshallow"] if full and not tag else ["--depth", "1"])
        args.extend([self.remote, f"refs/tags/{tag}:refs/tags/{tag}" if tag else branch])
        await self._run_git(*args)

    async def _is_shallow(self) -> bool:
        out = await self._run_git("rev-parse", "--is-shallow-repository")
        return out.strip() == "true"

    async def checkout_branch(self, name: str) -> None:
        await self._run_git("checkout", name)

    async def checkout_tag(self, name: str) -> None:
        await self._run_git("checkout", f"tags/{name}")

    async def checkout_commit(self, sha: str) -> None:
        await self._run_git("checkout", sha)

    async def reset_hard(self, ref: Optional[str] = None) -> None:
        if ref:
            await self._run_git("reset", "--hard", ref)
        else:
            await self._run_git("reset", "--hard")

    async def pull_ff_only(self, branch: str) -> None:
        await self._run_git("pull", "--ff-only", self.remote, branch)

    async def status(self) -> WorkingCopyStatus:
        return parse_status(await self._run_git("status", "--porcelain", "--branch"))

    async def list_tags(self, pattern: str) -> str:
        return await self._run_git("ls-remote", "--tags", self.remote, pattern)

    async def commit_exists(self, ref: str) -> bool:
        try:
            await self._run_git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")
        except GitError:
            return False
        return True

    async def current_commit(self) -> str:
        return (await self._run_git("rev-parse", "HEAD")).strip()

    async def create_local_branch(self, name: str, from_ref: Optional[str] = None) -> None:
        args = ["checkout", "-B", name]
        if from_ref:
            args.append(from_ref)
        await self._run_git(*args)

    async def create_branch(self, name: str, from_ref: Optional[str] = None) -> None:
        args = ["checkout", "-b", name]
        if from_ref:
            args.append(from_ref)
        await self._run_git(*args)

    async def clone(self, url: str, branch: Optional[str] = None, depth: Optional[int] = None) -> None:
        args = ["clone"]
        if depth and depth > 0:
            args.extend(["--depth", str(depth), "--no-single-branch"])
        if branch:
            args.extend(["--branch", branch])
        args.extend([url, str(self.working_dir)])
        self.working_dir.parent.mkdir(parents=True, exist_ok=True)
        await self._run_git(*args, cwd=self.working_dir.parent)

    async def origin_url(self) -> str:
        return (await self._run_git("remote", "get-url", self.remote)).strip()

    async def add(self, *paths: str) -> None:
        await self._run_git("add", *paths)

    async def commit(self, message: str, *paths: str) -> None:
        await self._run_git("commit", "-m", message, *paths)

    async def push(self, branch: str) -> None:
        await self._run_git("push", self.remote, branch)
