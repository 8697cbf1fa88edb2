"""
Base class for operations over all repositories of a manifest.

Loads the root parent-repos.json, binds one VCS adapter per sibling
working copy and drives the per-repository coroutine through the batch
runner.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

from ..core.batch import BatchRunner
from ..core.config import RunOptions
from ..core.errors import ReposError, WorkingCopyNotCleanError
from ..core.git import GitError, GitRepository
from ..core.models import PARENT_REPOS_FILE_NAME, ParentRepos
from ..core.resolution import VersionResolutionPolicy
from ..core.vcs import VcsAdapter, WorkingCopyStatus

logger = logging.getLogger(__name__)

VcsFactory = Callable[..., VcsAdapter]


def default_vcs_factory(working_dir: Path, remote: str = "origin", log: Optional[logging.Logger] = None) -> VcsAdapter:
    return GitRepository(working_dir, remote=remote, log=log)


class ReposOperation(ABC):
    """
    Common plumbing for clone, update, write and the other operations.

    Attributes:
        root_dir: Working copy holding the root parent-repos.json.
        options: Shared run options.
        parent_repos: The root manifest, read fresh on construction.
    """

    def __init__(
        self,
        root_dir: Path,
        options: Optional[RunOptions] = None,
        vcs_factory: Optional[VcsFactory] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.root_dir = Path(root_dir).resolve()
        self.options = options or RunOptions()
        self.vcs_factory = vcs_factory or default_vcs_factory
        self.log = log or logger
        self.policy = VersionResolutionPolicy(log=self.log)
        self.parent_repos = self.load_parent_repos()

        if self.options.verbose:
            self.log.debug("running in verbose mode")
        if self.options.force:
            self.log.debug("running in force mode")

    @property
    def manifest_path(self) -> Path:
        return self.root_dir / PARENT_REPOS_FILE_NAME

    def load_parent_repos(self) -> ParentRepos:
        return ParentRepos.load(self.manifest_path)

    def repo_path(self, repo_name: str) -> Path:
        """Working copies live next to the root: ``<root>/../<name>``."""
        return self.root_dir.parent / repo_name

    def vcs_for(self, repo_name: str, remote: str = "origin") -> VcsAdapter:
        return self.vcs_factory(self.repo_path(repo_name), remote=remote, log=self.log)

    def check_repo_clean(self, repo_name: str, status: WorkingCopyStatus) -> WorkingCopyStatus:
        """
        Ensure a working copy has no local changes.

        Raises:
            WorkingCopyNotCleanError: If it has changes and force is not set.
        """
        if status.is_clean:
            return status
        if self.options.force:
            self.log.warning(f"working copy of repo {repo_name} is not clean; continue due to force flag")
            return status
        raise WorkingCopyNotCleanError(repo_name)

    async def for_each_repo(
        self,
        repo_names: List[str],
        operation: Callable[[str], Awaitable[Any]],
        sequential: Optional[bool] = None,
        concurrency: Optional[int] = None,
    ) -> List[Any]:
        """
        Run ``operation`` for every repository through the batch runner.

        Git failures are rescoped to their repository so every aggregated
        reason names the repository it belongs to.

        Raises:
            BatchError: If any repository failed.
        """

        async def scoped(repo_name: str) -> Any:
            try:
                return await operation(repo_name)
            except GitError as e:
                raise ReposError(str(e), repo_name) from e

        runner = BatchRunner(
            sequential=self.options.sequential if sequential is None else sequential,
            concurrency=self.options.concurrency if concurrency is None else concurrency,
            log=self.log,
        )
        return await runner.run(repo_names, scoped)

    @abstractmethod
    async def execute(self) -> Any:
        """Run the operation for all repositories."""
