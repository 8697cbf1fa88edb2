"""
Update Repos - Bring every working copy to its declared version.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..core.config import RunOptions
from ..core.errors import RepositoryNotFoundError
from ..core.resolution import ResolvedTarget, UpdateMode, materialize, require_version_constraint
from .base import ReposOperation, VcsFactory


class UpdateRepos(ReposOperation):
    """
    Fetch, verify and check out the resolved target of each repository.

    Attributes:
        no_fetch: Work with the refs already present locally.
        reset_to_remote: Hard reset branch heads to the remote tip instead
            of a fast-forward pull.
    """

    def __init__(
        self,
        root_dir: Path,
        options: Optional[RunOptions] = None,
        no_fetch: bool = False,
        reset_to_remote: bool = False,
        vcs_factory: Optional[VcsFactory] = None,
        log: Optional[logging.Logger] = None,
    ):
        super().__init__(root_dir, options, vcs_factory, log)
        self.no_fetch = no_fetch
        self.reset_to_remote = reset_to_remote
        if no_fetch:
            self.log.debug("running in nofetch mode")

    @property
    def mode(self) -> UpdateMode:
        if self.no_fetch:
            return UpdateMode.STAY
        if self.reset_to_remote:
            return UpdateMode.RESET
        return UpdateMode.PULL

    async def update_repo(self, repo_name: str) -> ResolvedTarget:
        status = self.parent_repos[repo_name]
        self.log.debug(f"[{repo_name}]: descriptor {status.to_manifest_dict()}")
        require_version_constraint(repo_name, status)

        if not self.repo_path(repo_name).exists():
            raise RepositoryNotFoundError(
                f"working copy not found at {self.repo_path(repo_name)}, clone it first", repo_name
            )

        vcs = self.vcs_for(repo_name)
        if not self.no_fetch:
            await vcs.fetch()
        self.check_repo_clean(repo_name, await vcs.status())

        target = await self.policy.resolve(repo_name, status, vcs)
        await materialize(target, vcs, mode=self.mode, fetch=not self.no_fetch, log=self.log)
        self.log.debug(f"[{repo_name}]: successfully updated")
        return target

    async def execute(self) -> List[ResolvedTarget]:
        """
        Update all repositories.

        Returns:
            The resolved target of every repository, in manifest order.

        Raises:
            BatchError: If any repository failed.
        """
        return await self.for_each_repo(self.parent_repos.names(), self.update_repo)
