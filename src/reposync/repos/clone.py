"""
Clone Repos - Clone every declared repository that is not on disk yet.

Tag targets are cloned shallow and checked out on a local release-version
branch; commit targets need the full history; branch heads are cloned
directly on their branch.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..core.config import RunOptions
from ..core.resolution import ResolvedTarget, TargetKind, UpdateMode, materialize
from .base import ReposOperation, VcsFactory


class CloneRepos(ReposOperation):
    """
    Clone missing repositories next to the root working copy.

    Attributes:
        depth: Clone depth for shallow clones; None clones full history.
    """

    def __init__(
        self,
        root_dir: Path,
        options: Optional[RunOptions] = None,
        depth: Optional[int] = None,
        vcs_factory: Optional[VcsFactory] = None,
        log: Optional[logging.Logger] = None,
    ):
        super().__init__(root_dir, options, vcs_factory, log)
        self.depth = depth

    def missing_repos(self) -> List[str]:
        missing = []
        for repo_name in self.parent_repos:
            exists = self.repo_path(repo_name).exists()
            self.log.debug(f"[{repo_name}]: repository already exists: {exists}")
            if not exists:
                missing.append(repo_name)
        return missing

    async def clone_repo(self, repo_name: str) -> ResolvedTarget:
        status = self.parent_repos[repo_name]
        self.log.debug(f"[{repo_name}]: cloning repository from {status.url}")

        remote = self.vcs_for(repo_name, remote=status.url)
        target = await self.policy.resolve(repo_name, status, remote)

        depth = None if target.requires_full_history else self.depth
        await remote.clone(status.url, branch=target.branch, depth=depth)

        vcs = self.vcs_for(repo_name)
        if target.kind == TargetKind.BRANCH_HEAD:
            # a fresh clone already sits on the branch head
            await vcs.checkout_branch(target.branch)
        else:
            await materialize(target, vcs, mode=UpdateMode.STAY, log=self.log)
        self.log.info(f"[{repo_name}]: cloned at {target.describe()}")
        return target

    async def execute(self) -> List[ResolvedTarget]:
        """
        Clone all missing repositories.

        Returns:
            The resolved target of every cloned repository.

        Raises:
            BatchError: If any clone failed.
        """
        return await self.for_each_repo(self.missing_repos(), self.clone_repo)
