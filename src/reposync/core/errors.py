"""
Error taxonomy for repository operations.

Every error raised for a single repository carries the repository name and
renders as ``[repo]: message`` so aggregated batch failures stay traceable.

Categories:
    - Configuration: missing or contradictory descriptor fields, bad filters.
    - Resolution: tag not found, tag marker violation, unknown commit.
    - Working copy state: uncommitted changes without the force override.
    - Graph: circular dependencies and missing repositories.
    - Aggregation: a batch run with one or more failed keys.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple


class ReposError(Exception):
    """
    Base error for all repository operations.

    Attributes:
        repo_name: Repository the error belongs to, if any.
        message: Human-readable error message without the repo prefix.
    """

    def __init__(self, message: str, repo_name: Optional[str] = None):
        self.repo_name = repo_name
        self.message = message
        super().__init__(f"[{repo_name}]: {message}" if repo_name else message)


class ConfigurationError(ReposError):
    """Raised for invalid configuration values or descriptor fields."""


class ManifestError(ReposError):
    """Raised when parent-repos.json is missing or cannot be parsed."""


class NoVersionConstraintError(ConfigurationError):
    """Raised when a descriptor has neither a branch nor a tag."""

    def __init__(self, repo_name: str):
        super().__init__(
            "No branch or tag configured, cannot determine the version to check out",
            repo_name,
        )


class TagNotFoundError(ReposError):
    """Raised when an explicitly configured tag does not exist on the remote."""

    def __init__(self, repo_name: str, tag: str):
        self.tag = tag
        super().__init__(f"Configured tag {tag} does not exist on the remote", repo_name)


class TagMarkerError(ReposError):
    """Raised when the latest available tag is older than the configured tag marker."""

    def __init__(self, repo_name: str, tag_marker: str, latest_tag: str):
        self.tag_marker = tag_marker
        self.latest_tag = latest_tag
        super().__init__(
            f"Configured tagMarker {tag_marker} is higher than the latest available tag {latest_tag}",
            repo_name,
        )


class CommitNotFoundError(ReposError):
    """Raised when a pinned commit is not reachable after a full fetch."""

    def __init__(self, repo_name: str, commit: str):
        self.commit = commit
        super().__init__(f"Commit {commit} does not exist", repo_name)


class WorkingCopyNotCleanError(ReposError):
    """Raised when a working copy has local changes and force is not set."""

    def __init__(self, repo_name: str):
        super().__init__(f"working copy of repo {repo_name} is not clean", repo_name)


class RepositoryNotFoundError(ReposError):
    """Raised when a declared repository has no working copy on disk."""


class CircularDependencyError(ReposError):
    """Raised when a repository is reached again on its own dependency path."""

    def __init__(self, repo_name: str, path: Sequence[str]):
        self.path = list(path)
        super().__init__(
            f"Circular dependency to Repository {repo_name} detected in dependency path "
            f"[{','.join(self.path)}]!",
            repo_name,
        )


class MissingRepositoriesError(ReposError):
    """
    Raised after graph traversal when declared repositories are not cloned.

    Attributes:
        reference_paths: One ``a -> b -> * missing`` line per reference.
        result: The partial validation result, for rendering.
    """

    def __init__(self, root_name: str, reference_paths: List[str], result: object = None):
        self.reference_paths = list(reference_paths)
        self.result = result
        joined = "\n".join(self.reference_paths)
        super().__init__(
            f"Missing repositories! Reference paths:\n{joined}\n"
            "Please configure all transitive repository dependencies and clone all repos.",
            root_name,
        )


class BatchError(ReposError):
    """
    Aggregated failure of a batch run.

    Attributes:
        failures: ``(key, exception)`` pairs in the order they were observed.
    """

    def __init__(self, failures: List[Tuple[str, BaseException]]):
        self.failures = list(failures)
        super().__init__("\n\t".join(str(error) for _, error in self.failures))

    @property
    def reasons(self) -> Dict[str, str]:
        return {key: str(error) for key, error in self.failures}
