"""
Version Resolution Policy.

Turns one repository's descriptor into a single concrete checkout target
and sequences the adapter calls that materialize it.

Precedence:
    1. ``useSnapshot`` -> live head of the remote branch, tags ignored.
    2. ``commit``      -> that commit, after a full fetch of the branch.
    3. ``tag``         -> that tag, which must exist on the remote.
    4. otherwise       -> latest tag of the release branch, validated
                          against ``tagMarker``; branch head if no tag exists.

A descriptor with neither ``branch`` nor ``tag`` fails before any VCS call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Optional

from .errors import (
    CommitNotFoundError,
    ConfigurationError,
    NoVersionConstraintError,
    TagMarkerError,
    TagNotFoundError,
)
from .models import RepoStatus
from .tags import latest_tag, listing_contains_tag, parse_version, release_tag_pattern
from .vcs import VcsAdapter

logger = logging.getLogger(__name__)

RELEASE_VERSION_BRANCH_PREFIX = "release-version/"


class TargetKind(StrEnum):
    """
    What a resolved target points at.

    Attributes:
        BRANCH_HEAD: Live head of the remote branch.
        COMMIT: An exact commit on the branch.
        TAG: An exact tag.
    """

    BRANCH_HEAD = "branch-head"
    COMMIT = "commit"
    TAG = "tag"


class UpdateMode(StrEnum):
    """
    How a branch-head checkout is brought up to date.

    Attributes:
        PULL: Fast-forward-only pull of the remote branch.
        RESET: Hard reset to ``origin/<branch>``.
        STAY: Leave the branch where it is.
    """

    PULL = "pull"
    RESET = "reset"
    STAY = "stay"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    The single checkout target chosen for a repository.

    Attributes:
        repo_name: Repository the target belongs to.
        kind: Branch head, commit or tag.
        ref: Branch name, commit SHA or tag name depending on ``kind``.
        branch: Branch of the descriptor, if any.
        latest_tag_for_release: Tag picked automatically for the release branch.
    """

    repo_name: str
    kind: TargetKind
    ref: str
    branch: Optional[str] = None
    latest_tag_for_release: Optional[str] = None

    @property
    def requires_full_history(self) -> bool:
        """Arbitrary commits are not generally reachable from a shallow fetch."""
        return self.kind == TargetKind.COMMIT

    @property
    def local_branch(self) -> Optional[str]:
        """Local branch created on top of a tag checkout."""
        if self.kind != TargetKind.TAG:
            return None
        return f"{RELEASE_VERSION_BRANCH_PREFIX}{self.ref}"

    def describe(self) -> str:
        return f"{self.kind} {self.ref}"


def require_version_constraint(repo_name: str, status: RepoStatus) -> None:
    """
    Fail when a descriptor names neither a branch nor a tag.

    Raises:
        NoVersionConstraintError: Neither branch nor tag is configured.
    """
    if not status.branch and not status.tag:
        raise NoVersionConstraintError(repo_name)


def validate_tag_marker(repo_name: str, tag_marker: str, latest: str, branch: Optional[str] = None) -> None:
    """
    Ensure the latest tag is not older than the configured marker.

    The marker must share the major and minor version of the latest tag.

    Raises:
        ConfigurationError: If either tag cannot be parsed as a version, or
            the marker belongs to another major or minor version.
        TagMarkerError: If ``latest`` is lower than ``tag_marker``.
    """
    if tag_marker == latest:
        return
    marker_version = parse_version(tag_marker)
    if marker_version is None:
        raise ConfigurationError(f"Cannot parse tagMarker {tag_marker} as a version", repo_name)
    latest_version = parse_version(latest)
    if latest_version is None:
        raise ConfigurationError(f"Cannot parse latest tag {latest} as a version", repo_name)

    for index, part in enumerate(("major", "minor")):
        if marker_version[0][index:index + 1] != latest_version[0][index:index + 1]:
            raise ConfigurationError(
                f"Configured tagMarker {tag_marker} does not match the {part} version of the latest "
                f"available tag {latest} for the release branch {branch}! The tagMarker must have "
                "the same major and minor version as the release branch and the tag.",
                repo_name,
            )
    if latest_version < marker_version:
        raise TagMarkerError(repo_name, tag_marker, latest)


class VersionResolutionPolicy:
    """
    Resolves descriptors to checkout targets.

    The adapter is only used to list remote tags; the policy never
    changes a working copy by itself.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    async def latest_tag_for_release(self, repo_name: str, status: RepoStatus, vcs: VcsAdapter) -> Optional[str]:
        """
        Find the latest tag of the descriptor's release branch.

        Returns:
            The latest tag name, or None for non-release branches and
            release branches without tags.
        """
        pattern = release_tag_pattern(status.branch)
        if pattern is None:
            self.log.debug(f"[{repo_name}]: branch {status.branch} is not a release branch, no tags resolved")
            return None

        listing = await vcs.list_tags(pattern)
        latest = latest_tag(listing, pattern)
        self.log.debug(f"[{repo_name}]: latest tag for {pattern} is {latest}")
        return latest

    async def resolve(self, repo_name: str, status: RepoStatus, vcs: VcsAdapter) -> ResolvedTarget:
        """
        Decide the checkout target of one repository.

        Args:
            repo_name: Name of the repository in the manifest.
            status: Its descriptor.
            vcs: Adapter used to list remote tags.

        Returns:
            The resolved target.

        Raises:
            NoVersionConstraintError: Neither branch nor tag is configured.
            TagNotFoundError: The configured tag is not on the remote.
            TagMarkerError: The latest tag is older than ``tagMarker``.
        """
        require_version_constraint(repo_name, status)

        if status.use_snapshot and status.branch:
            target = ResolvedTarget(repo_name, TargetKind.BRANCH_HEAD, status.branch, status.branch)
        elif status.commit:
            target = ResolvedTarget(repo_name, TargetKind.COMMIT, status.commit, status.branch)
        elif status.tag:
            listing = await vcs.list_tags(status.tag)
            if not listing_contains_tag(listing, status.tag):
                raise TagNotFoundError(repo_name, status.tag)
            target = ResolvedTarget(repo_name, TargetKind.TAG, status.tag, status.branch)
        else:
            target = await self._resolve_release(repo_name, status, vcs)

        self.log.debug(f"[{repo_name}]: resolved to {target.describe()}")
        return target

    async def _resolve_release(self, repo_name: str, status: RepoStatus, vcs: VcsAdapter) -> ResolvedTarget:
        branch = status.branch
        latest = await self.latest_tag_for_release(repo_name, status, vcs)
        if latest is None:
            return ResolvedTarget(repo_name, TargetKind.BRANCH_HEAD, branch, branch)

        if status.tag_marker:
            validate_tag_marker(repo_name, status.tag_marker, latest, branch)
        return ResolvedTarget(repo_name, TargetKind.TAG, latest, branch, latest_tag_for_release=latest)


async def materialize(
    target: ResolvedTarget,
    vcs: VcsAdapter,
    mode: UpdateMode = UpdateMode.PULL,
    fetch: bool = True,
    log: Optional[logging.Logger] = None,
) -> None:
    """
    Check out a resolved target in a working copy.

    Args:
        target: The target returned by the policy.
        vcs: Adapter bound to the repository's working directory.
        mode: How a branch-head checkout is updated.
        fetch: Whether remote refs may be fetched first.
        log: Logger for progress output.

    Raises:
        CommitNotFoundError: A pinned commit is not reachable.
    """
    log = log or logger
    name = target.repo_name
    await vcs.reset_hard()

    if target.kind == TargetKind.TAG:
        if fetch:
            await vcs.fetch(tag=target.ref)
        await vcs.checkout_tag(target.ref)
        await vcs.create_local_branch(target.local_branch, target.ref)
        log.debug(f"[{name}]: checked out tag {target.ref} as {target.local_branch}")
        return

    if target.kind == TargetKind.COMMIT:
        if target.branch:
            if fetch:
                await vcs.fetch(branch=target.branch, full=True)
            await vcs.checkout_branch(target.branch)
        if not await vcs.commit_exists(target.ref):
            raise CommitNotFoundError(name, target.ref)
        await vcs.checkout_commit(target.ref)
        log.debug(f"[{name}]: checked out commit {target.ref}")
        return

    if fetch:
        await vcs.fetch(branch=target.branch)
    await vcs.checkout_branch(target.branch)
    if mode == UpdateMode.PULL:
        await vcs.pull_ff_only(target.branch)
    elif mode == UpdateMode.RESET:
        await vcs.reset_hard(f"{vcs.remote}/{target.branch}")
    log.debug(f"[{name}]: checked out branch {target.branch} ({mode})")
