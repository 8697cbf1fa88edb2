"""
Add Dependency - Declare an already cloned sibling repository in the root
parent-repos.json.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..core.config import RunOptions
from ..core.errors import ConfigurationError, RepositoryNotFoundError
from ..core.git import GitError
from ..core.models import RepoStatus
from .base import ReposOperation, VcsFactory


class AddDependency(ReposOperation):
    """
    Add a sibling working copy as a dependency.

    The new entry records the sibling's origin URL and its currently
    checked-out branch.
    """

    def __init__(
        self,
        root_dir: Path,
        repo_name: str,
        options: Optional[RunOptions] = None,
        vcs_factory: Optional[VcsFactory] = None,
        log: Optional[logging.Logger] = None,
    ):
        super().__init__(root_dir, options, vcs_factory, log)
        self.repo_name = repo_name

    async def execute(self) -> RepoStatus:
        """
        Add the dependency and save the manifest.

        Returns:
            The descriptor that was added.

        Raises:
            ConfigurationError: If the repository is already a dependency.
            RepositoryNotFoundError: If no git working copy exists for it.
        """
        name = self.repo_name
        if name in self.parent_repos:
            raise ConfigurationError(f"Repository {name} is already a dependency.", self.root_dir.name)

        repo_dir = self.repo_path(name)
        if not (repo_dir / ".git").exists():
            raise RepositoryNotFoundError(f"No git working copy found at {repo_dir}", name)

        vcs = self.vcs_for(name)
        try:
            status = await vcs.status()
            url = await vcs.origin_url()
        except GitError as e:
            raise RepositoryNotFoundError(str(e), name) from e

        descriptor = RepoStatus(url=url, branch=status.current)
        self.parent_repos.repos[name] = descriptor
        self.parent_repos.save()
        self.log.info(f"[{self.root_dir.name}]: added dependency {name} on branch {status.current}")
        return descriptor
