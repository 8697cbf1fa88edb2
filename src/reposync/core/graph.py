"""
Dependency Graph Validator.

Walks parent-repos.json manifests transitively, starting at a root working
copy and following each dependency into its sibling directory
(``<root>/../<name>``). The walk builds a tree of ``DependencyNode`` objects,
detects circular dependencies and missing working copies, and compares
every repository that is referenced from more than one place.

Failure semantics:
    - A cycle fails immediately with the offending path.
    - Missing working copies are collected during the walk and reported
      together once the walk is complete.
    - Diverging coordinates are only reported; callers decide whether to
      treat them as fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import CircularDependencyError, ConfigurationError, MissingRepositoriesError
from .models import PARENT_REPOS_FILE_NAME, ParentRepos, RepoStatus

logger = logging.getLogger(__name__)

ALLOWED_FILTERS: List[str] = [
    "url",
    "branch",
    "useSnapshot",
    "artifactGroup",
    "artifactVersion",
    "tag",
    "tagMarker",
    "latestTagForRelease",
    "commit",
    "description",
]
DEFAULT_EXCLUDE: List[str] = ["url", "useSnapshot", "tagMarker", "latestTagForRelease", "description"]
DIFF_FIELDS: List[str] = ["url", "branch", "useSnapshot", "artifactGroup", "artifactVersion", "tag", "commit"]


def parse_filter_list(value: Optional[Iterable[str] | str]) -> Optional[List[str]]:
    """
    Parse a filter option.

    Accepts a space separated string, a list of names, or ``all``.

    Raises:
        ConfigurationError: If a name is not an allowed filter.
    """
    if value is None:
        return None
    names = value.split() if isinstance(value, str) else list(value)
    if names == ["all"]:
        return list(ALLOWED_FILTERS)
    for name in names:
        if name not in ALLOWED_FILTERS:
            raise ConfigurationError(f"Unsupported filter [{name}]. Allowed are {','.join(ALLOWED_FILTERS)}")
    return names


@dataclass(frozen=True)
class FieldFilter:
    """
    Selects which descriptor fields are compared and displayed.

    An include list wins over the exclude list.
    """

    include: Optional[List[str]] = None
    exclude: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))

    def accepts(self, name: str) -> bool:
        if self.include is not None:
            return name in self.include
        return name not in self.exclude


@dataclass
class DependencyNode:
    """
    One repository as reached along one path from the root.

    Attributes:
        repo_name: Name of the repository.
        path: Repository names from the root down to and including this node.
        status: Descriptor declared by the referencing manifest.
        manifest: This repository's own manifest, if it has one.
        children: Dependencies declared by ``manifest``.
        missing: True when no working copy exists on disk.
    """

    repo_name: str
    path: List[str]
    status: Optional[RepoStatus] = None
    manifest: Optional[ParentRepos] = None
    children: Dict[str, "DependencyNode"] = field(default_factory=dict)
    missing: bool = False

    @property
    def path_key(self) -> str:
        return "/".join(self.path)

    def walk(self) -> Iterable["DependencyNode"]:
        """Yield every descendant, depth first, in manifest order."""
        for child in self.children.values():
            yield child
            yield from child.walk()


@dataclass
class RepoDiff:
    """
    Differences between two references to the same repository.

    Attributes:
        repo_a: First reference.
        repo_b: Second reference.
        details: Compared field name to whether the values differ.
    """

    repo_a: DependencyNode
    repo_b: DependencyNode
    details: Dict[str, bool] = field(default_factory=dict)

    @property
    def pair_key(self) -> str:
        return " <-> ".join(sorted([self.repo_a.path_key, self.repo_b.path_key]))

    @property
    def has_diff(self) -> bool:
        return any(self.details.values())

    @property
    def differing_fields(self) -> List[str]:
        return [name for name, differs in self.details.items() if differs]


@dataclass
class DiffReport:
    """
    Summary of coordinate divergence across the dependency tree.

    Attributes:
        repos_with_diff: Repository name to the diffs found for it.
        diff_statistic: Reference path to the number of diffs it takes part in.
    """

    repos_with_diff: Dict[str, List[RepoDiff]] = field(default_factory=dict)
    diff_statistic: Dict[str, int] = field(default_factory=dict)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.repos_with_diff)


@dataclass
class ValidationResult:
    """Everything produced by one validation run."""

    root: DependencyNode
    dependencies: Dict[str, List[DependencyNode]]
    report: DiffReport
    missing_paths: List[str] = field(default_factory=list)


class DependencyGraphValidator:
    """
    Builds and validates the transitive dependency tree of a working copy.

    Attributes:
        root_dir: Working copy holding the root parent-repos.json.
        field_filter: Fields compared between references.
    """

    def __init__(
        self,
        root_dir: Path,
        field_filter: Optional[FieldFilter] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.root_dir = Path(root_dir).resolve()
        self.root_name = self.root_dir.name
        self.field_filter = field_filter or FieldFilter()
        self.log = log or logger
        self._current_path: List[str] = []
        self._missing_paths: List[str] = []

    def validate(self) -> ValidationResult:
        """
        Build the tree, compare repeated references and check completeness.

        Returns:
            The validation result.

        Raises:
            ManifestError: If the root manifest cannot be read.
            CircularDependencyError: If a cycle is found.
            MissingRepositoriesError: If any declared repository is not
                cloned; carries the partial result.
        """
        root = self.build_tree()
        dependencies = self.group_by_repo(root)
        report = self.compare(dependencies)
        result = ValidationResult(root, dependencies, report, list(self._missing_paths))

        if result.missing_paths:
            raise MissingRepositoriesError(self.root_name, result.missing_paths, result)
        return result

    def build_tree(self) -> DependencyNode:
        """Walk all manifests from the root and return the root node."""
        manifest = ParentRepos.for_working_copy(self.root_dir)
        self._current_path = [self.root_name]
        self._missing_paths = []

        root = DependencyNode(repo_name=self.root_name, path=[self.root_name], manifest=manifest)
        for repo_name in manifest:
            self._add_dependency(repo_name, root)
        self._current_path.pop()
        return root

    def _add_dependency(self, repo_name: str, parent: DependencyNode) -> None:
        if repo_name in self._current_path:
            raise CircularDependencyError(repo_name, self._current_path)

        self._current_path.append(repo_name)
        node = DependencyNode(
            repo_name=repo_name,
            path=list(self._current_path),
            status=parent.manifest[repo_name],
        )

        repo_dir = self.root_dir.parent / repo_name
        if not repo_dir.exists():
            node.missing = True
            self._missing_paths.append(f"{' -> '.join(parent.path)} -> * {repo_name}")
            self.log.debug(f"[{self.root_name}]: missing repository {repo_name} at {node.path_key}")
        elif (repo_dir / PARENT_REPOS_FILE_NAME).exists():
            node.manifest = ParentRepos.for_working_copy(repo_dir)
            for child_name in node.manifest:
                self._add_dependency(child_name, node)

        parent.children[repo_name] = node
        self._current_path.pop()

    def group_by_repo(self, root: DependencyNode) -> Dict[str, List[DependencyNode]]:
        """Collect every reference to each repository, in walk order."""
        grouped: Dict[str, List[DependencyNode]] = {}
        for node in root.walk():
            grouped.setdefault(node.repo_name, []).append(node)
        return grouped

    def compare_pair(self, repo_a: DependencyNode, repo_b: DependencyNode) -> RepoDiff:
        """Compare the declared coordinates of two references."""
        a = repo_a.status.model_dump(by_alias=True)
        b = repo_b.status.model_dump(by_alias=True)
        details = {
            name: a.get(name) != b.get(name)
            for name in DIFF_FIELDS
            if self.field_filter.accepts(name)
        }
        return RepoDiff(repo_a, repo_b, details)

    def compare(self, dependencies: Dict[str, List[DependencyNode]]) -> DiffReport:
        """
        Compare consecutive references of every repository.

        Each repository referenced ``n`` times yields up to ``n - 1`` diffs.
        """
        report = DiffReport()
        for repo_name, nodes in dependencies.items():
            diffs = [
                diff
                for diff in (self.compare_pair(a, b) for a, b in zip(nodes, nodes[1:]))
                if diff.has_diff
            ]
            if diffs:
                report.repos_with_diff[repo_name] = diffs

        for diffs in report.repos_with_diff.values():
            for diff in diffs:
                for key in (diff.repo_a.path_key, diff.repo_b.path_key):
                    report.diff_statistic[key] = report.diff_statistic.get(key, 0) + 1
        return report


def format_report(root_name: str, report: DiffReport) -> str:
    """Render the divergence report as plain text."""
    if not report.has_conflicts:
        return f"[{root_name}] has NO conflicts."

    lines = [f"[{root_name}] has conflicting parent repo configurations!", ""]
    lines.append("Count of divergences to other parent repo configurations found per repository path:")
    for key, count in sorted(report.diff_statistic.items(), key=lambda item: item[1], reverse=True):
        lines.append(f"{key}: {count}")
    lines.append("")
    lines.append("Conflicting repository paths:")
    for diffs in report.repos_with_diff.values():
        for diff in diffs:
            lines.append(diff.pair_key)
            lines.extend(f"- {name}" for name in diff.differing_fields)
    return "\n".join(lines)
