"""
Branch Repos - Create one branch across the parent repository and all
sibling repositories that carry a parent-repos.json.

Steps:
    1. Fetch and verify every working copy is clean (in parallel).
    2. Create the branch in each repository, one at a time.
    3. Point every sibling manifest at the new branch and commit it.
    4. Optionally push the new branches.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..core.config import DEFAULT_PARENT_REPO, RunOptions
from ..core.models import PARENT_REPOS_FILE_NAME, ParentRepos
from .base import ReposOperation, VcsFactory


class BranchRepos(ReposOperation):
    """
    Branch the whole workspace.

    Attributes:
        branch_name: Branch to create.
        parent: Directory name of the parent repository.
        push: Push the new branches after committing.
        branch_from: Remote branch to base the new branches on.
    """

    def __init__(
        self,
        root_dir: Path,
        branch_name: str,
        options: Optional[RunOptions] = None,
        parent: str = DEFAULT_PARENT_REPO,
        push: bool = False,
        branch_from: Optional[str] = None,
        vcs_factory: Optional[VcsFactory] = None,
        log: Optional[logging.Logger] = None,
    ):
        super().__init__(root_dir, options, vcs_factory, log)
        self.branch_name = branch_name
        self.parent = parent
        self.push = push
        self.branch_from = branch_from
        self.log.debug(f"Parent repo is {self.parent}")
        if branch_from:
            self.log.debug(f"Branching off {branch_from}")

    def find_repos(self) -> List[str]:
        """The parent repository plus every sibling with a manifest."""
        workspace = self.root_dir.parent
        return sorted(
            entry.name
            for entry in workspace.iterdir()
            if entry.is_dir()
            and (entry.name == self.parent or (entry / PARENT_REPOS_FILE_NAME).exists())
        )

    async def validate_repo(self, repo_name: str) -> str:
        vcs = self.vcs_for(repo_name)
        await vcs.fetch()
        self.check_repo_clean(repo_name, await vcs.status())
        return repo_name

    async def create_branch(self, repo_name: str) -> str:
        from_ref = f"origin/{self.branch_from}" if self.branch_from else None
        await self.vcs_for(repo_name).create_branch(self.branch_name, from_ref)
        self.log.debug(f"[{repo_name}]: created branch {self.branch_name}")
        return repo_name

    async def adjust_manifest(self, repo_name: str) -> str:
        if repo_name == self.parent:
            return repo_name

        manifest_path = self.repo_path(repo_name) / PARENT_REPOS_FILE_NAME
        manifest = ParentRepos.load(manifest_path)
        for name, status in manifest.repos.items():
            manifest.repos[name] = status.model_copy(update={"branch": self.branch_name, "commit": None})
        manifest.save()

        vcs = self.vcs_for(repo_name)
        await vcs.add(PARENT_REPOS_FILE_NAME)
        await vcs.commit(f"Adjust {PARENT_REPOS_FILE_NAME} to new branch {self.branch_name}", PARENT_REPOS_FILE_NAME)
        return repo_name

    async def push_branch(self, repo_name: str) -> str:
        await self.vcs_for(repo_name).push(self.branch_name)
        return repo_name

    async def execute(self) -> List[str]:
        """
        Create, adjust and optionally push the branch everywhere.

        Returns:
            The repositories that were branched.

        Raises:
            BatchError: If any repository failed a step; later steps are
                not attempted.
        """
        repos = await self.for_each_repo(self.find_repos(), self.validate_repo, sequential=False, concurrency=0)
        await self.for_each_repo(repos, self.create_branch, sequential=True)
        await self.for_each_repo(repos, self.adjust_manifest, sequential=True)
        if self.push:
            await self.for_each_repo(repos, self.push_branch, sequential=True)
        return repos
