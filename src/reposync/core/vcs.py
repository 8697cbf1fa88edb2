"""
Version control adapter interface.

Resolution and the repository operations only talk to this interface, one
instance per working directory, so they can run against a fake in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class WorkingCopyStatus:
    """
    Snapshot of a working copy.

    Attributes:
        current: Checked-out branch, or None on a detached HEAD.
        changes: Porcelain lines for modified, added, deleted, untracked
            or conflicted paths.
    """

    current: Optional[str] = None
    changes: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.changes


class VcsAdapter(ABC):
    """Operations the orchestration core needs from a version control system."""

    def __init__(self, working_dir: Path, remote: str = "origin"):
        self.working_dir = Path(working_dir)
        self.remote = remote

    @property
    def repo_name(self) -> str:
        return self.working_dir.name

    @abstractmethod
    async def fetch(self, tag: Optional[str] = None, branch: Optional[str] = None, full: bool = False) -> None:
        """Fetch from the remote, optionally scoped to one tag or branch."""

    @abstractmethod
    async def checkout_branch(self, name: str) -> None:
        ...

    @abstractmethod
    async def checkout_tag(self, name: str) -> None:
        ...

    @abstractmethod
    async def checkout_commit(self, sha: str) -> None:
        ...

    @abstractmethod
    async def reset_hard(self, ref: Optional[str] = None) -> None:
        """Hard reset the working copy, to ``ref`` when given."""

    @abstractmethod
    async def pull_ff_only(self, branch: str) -> None:
        ...

    @abstractmethod
    async def status(self) -> WorkingCopyStatus:
        ...

    @abstractmethod
    async def list_tags(self, pattern: str) -> str:
        """Return raw ``<sha> refs/tags/<name>`` lines for tags matching ``pattern``."""

    @abstractmethod
    async def commit_exists(self, ref: str) -> bool:
        ...

    @abstractmethod
    async def current_commit(self) -> str:
        ...

    @abstractmethod
    async def create_local_branch(self, name: str, from_ref: Optional[str] = None) -> None:
        """Create (or reset) a local branch and check it out."""

    @abstractmethod
    async def create_branch(self, name: str, from_ref: Optional[str] = None) -> None:
        """Create a new local branch and check it out; fails if it already exists."""

    @abstractmethod
    async def clone(self, url: str, branch: Optional[str] = None, depth: Optional[int] = None) -> None:
        """Clone ``url`` into this adapter's working directory."""

    @abstractmethod
    async def origin_url(self) -> str:
        ...

    @abstractmethod
    async def add(self, *paths: str) -> None:
        ...

    @abstractmethod
    async def commit(self, message: str, *paths: str) -> None:
        ...

    @abstractmethod
    async def push(self, branch: str) -> None:
        ...
