"""
Write Repos - Record the current state of all working copies.

Rewrites the root parent-repos.json from what is checked out right now:

    - plain:        branch updated; commit, tag and tagMarker removed
    - freeze:       commit pinned to the current HEAD
    - latest tag:   tag and tagMarker set to the latest release tag
    - un-freeze:    tag, tagMarker and commit removed
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ..core.config import RunOptions
from ..core.models import ParentRepos, RepoStatus
from ..core.resolution import RELEASE_VERSION_BRANCH_PREFIX
from .base import ReposOperation, VcsFactory


class WriteRepos(ReposOperation):
    """
    Write the state of all working copies back to the root manifest.

    Attributes:
        freeze: Pin the current commit of every repository.
        un_freeze: Drop all pins; wins over the other flags.
        latest_tag: Pin the latest tag of each release branch.
    """

    def __init__(
        self,
        root_dir: Path,
        options: Optional[RunOptions] = None,
        freeze: bool = False,
        un_freeze: bool = False,
        latest_tag: bool = False,
        vcs_factory: Optional[VcsFactory] = None,
        log: Optional[logging.Logger] = None,
    ):
        super().__init__(root_dir, options, vcs_factory, log)
        self.freeze = freeze
        self.un_freeze = un_freeze
        self.latest_tag = latest_tag

    async def map_status(self, repo_name: str) -> Tuple[str, RepoStatus]:
        current = self.parent_repos[repo_name]
        vcs = self.vcs_for(repo_name)

        wc_status = self.check_repo_clean(repo_name, await vcs.status())
        branch = wc_status.current or current.branch
        if branch and branch.startswith(RELEASE_VERSION_BRANCH_PREFIX):
            # local branch created on top of a tag checkout
            branch = current.branch
        update: Dict[str, Any] = {"branch": branch, "commit": None, "tag": None, "tag_marker": None}

        if self.un_freeze:
            self.log.debug(f"[{repo_name}]: removing tag, tagMarker and commit")
        elif self.latest_tag:
            release = current.model_copy(update={"branch": branch})
            latest = await self.policy.latest_tag_for_release(repo_name, release, vcs)
            update.update(tag=latest, tag_marker=latest, latest_tag_for_release=latest)
        elif self.freeze:
            update["commit"] = await vcs.current_commit()

        status = current.model_copy(update=update)
        self.log.debug(f"[{repo_name}]: new status {status.to_manifest_dict()}")
        return repo_name, status

    async def execute(self) -> ParentRepos:
        """
        Collect every repository's state and save the manifest.

        Returns:
            The manifest as written.

        Raises:
            BatchError: If any repository failed; nothing is written then.
        """
        states = await self.for_each_repo(self.parent_repos.names(), self.map_status)
        new_parent_repos = ParentRepos(repos=dict(states), path=self.manifest_path)

        self.log.debug("status and revparse successfully completed")
        new_parent_repos.save()
        self.log.debug(f"new repo description\n{new_parent_repos.to_json()}")
        self.parent_repos = new_parent_repos
        return new_parent_repos
