"""
Manifest data model for parent-repos.json.

Each repository working copy may carry a ``parent-repos.json`` file next to
its root, mapping repository names to the version locator of each
dependency. Field presence, not ``null``, drives resolution; ``branch`` is
the one field that may be written as an explicit ``null``.

Serialization is deterministic: fields in declaration order, 2-space
indent, ``\\n`` line endings and a trailing newline.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ManifestError

logger = logging.getLogger(__name__)

PARENT_REPOS_FILE_NAME = "parent-repos.json"


class RepoStatus(BaseModel):
    """
    Version locator of one dependent repository.

    Attributes:
        url: Remote location of the repository.
        branch: Desired branch; None means no branch constraint.
        use_snapshot: Track the live head of ``branch``, ignoring tags.
        artifact_group: Build metadata, not used in resolution.
        artifact_version: Build metadata, not used in resolution.
        tag: Exact tag to check out.
        tag_marker: Minimum acceptable tag when ``tag`` is absent.
        latest_tag_for_release: Tag chosen by the last resolution, audit only.
        commit: Exact commit to pin to.
        description: Free text.
    """

    url: str
    branch: Optional[str] = None
    use_snapshot: bool = Field(default=False, alias="useSnapshot")
    artifact_group: Optional[str] = Field(default=None, alias="artifactGroup")
    artifact_version: Optional[str] = Field(default=None, alias="artifactVersion")
    tag: Optional[str] = None
    tag_marker: Optional[str] = Field(default=None, alias="tagMarker")
    latest_tag_for_release: Optional[str] = Field(default=None, alias="latestTagForRelease")
    commit: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_manifest_dict(self) -> Dict[str, Any]:
        """
        Serialize to the on-disk shape with camelCase keys.

        Absent fields are omitted. An explicitly set ``branch: null`` and an
        explicitly set ``useSnapshot`` survive the round trip.
        """
        data: Dict[str, Any] = {}
        for name, info in type(self).model_fields.items():
            value = getattr(self, name)
            key = info.alias or name
            if name == "use_snapshot":
                if value or name in self.model_fields_set:
                    data[key] = value
                continue
            if value is None and not (name == "branch" and name in self.model_fields_set):
                continue
            data[key] = value
        data.update(self.model_extra or {})
        return data

    def describe(self) -> Dict[str, Any]:
        """Return the populated fields, keyed by their manifest names."""
        return {k: v for k, v in self.to_manifest_dict().items() if v}


@dataclass
class ParentRepos:
    """
    The parsed contents of one parent-repos.json file.

    Attributes:
        repos: Repository name to descriptor, in file order.
        path: File the manifest was read from, if any.
    """

    repos: Dict[str, RepoStatus] = field(default_factory=dict)
    path: Optional[Path] = None

    def __contains__(self, repo_name: str) -> bool:
        return repo_name in self.repos

    def __iter__(self) -> Iterator[str]:
        return iter(self.repos)

    def __len__(self) -> int:
        return len(self.repos)

    def __getitem__(self, repo_name: str) -> RepoStatus:
        return self.repos[repo_name]

    def names(self) -> List[str]:
        return list(self.repos)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], path: Optional[Path] = None) -> "ParentRepos":
        """
        Build from the decoded JSON object.

        Raises:
            ManifestError: If the data is not an object of valid descriptors.
        """
        if not isinstance(data, dict):
            raise ManifestError(f"Expected a JSON object in {path or PARENT_REPOS_FILE_NAME}")

        repos: Dict[str, RepoStatus] = {}
        for name, entry in data.items():
            try:
                repos[name] = RepoStatus.model_validate(entry)
            except ValidationError as e:
                raise ManifestError(f"Invalid descriptor in {path or PARENT_REPOS_FILE_NAME}: {e}", name) from e
        return cls(repos=repos, path=path)

    @classmethod
    def load(cls, path: Path) -> "ParentRepos":
        """
        Load a manifest from disk.

        Args:
            path: Path to a parent-repos.json file.

        Returns:
            The parsed manifest.

        Raises:
            ManifestError: If the file is missing or not valid JSON.
        """
        if not path.exists():
            raise ManifestError(f"Cannot find repo description {path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Failed to parse repo description {path}: {e}") from e

        manifest = cls.from_dict(data, path=path)
        logger.debug(f"Loaded {len(manifest)} repositories from {path}")
        return manifest

    @classmethod
    def for_working_copy(cls, repo_dir: Path) -> "ParentRepos":
        """Load the manifest sitting at the root of a working copy."""
        return cls.load(repo_dir / PARENT_REPOS_FILE_NAME)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Serialize to the on-disk object shape."""
        return {name: status.to_manifest_dict() for name, status in self.repos.items()}

    def to_json(self) -> str:
        """Render deterministic JSON with normalized line endings."""
        content = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        return content.replace("\r\n", "\n").replace("\r", "\n") + "\n"

    def save(self, path: Optional[Path] = None) -> Path:
        """
        Write the manifest to disk.

        Args:
            path: Target file; defaults to the path it was loaded from.

        Returns:
            The path written.
        """
        target = path or self.path
        if target is None:
            raise ManifestError("No path given to save the repo description")

        with open(target, "w", encoding="utf-8", newline="\n") as f:
            f.write(self.to_json())
        self.path = target
        logger.debug(f"Wrote {len(self)} repositories to {target}")
        return target
