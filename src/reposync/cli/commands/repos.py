"""
Repos Command - Manage the repositories declared in parent-repos.json.

Usage:
    reposync repos clone --depth 1        # Clone missing repositories
    reposync repos update                 # Check out declared versions
    reposync repos write --freeze         # Pin current commits
    reposync repos branch feature/x       # Branch the whole workspace
    reposync repos add-dependency lib     # Declare a cloned sibling
    reposync repos validate-branches      # Compare transitive references
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import click
from pydantic import BaseModel, Field
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from ...core.config import ReposConfig, RunOptions
from ...core.errors import MissingRepositoriesError, ReposError
from ...core.graph import (
    DEFAULT_EXCLUDE,
    DependencyGraphValidator,
    DependencyNode,
    FieldFilter,
    ValidationResult,
    format_report,
    parse_filter_list,
)
from ...repos import AddDependency, BranchRepos, CloneRepos, UpdateRepos, WriteRepos
from ..utils import echo_error, echo_info, echo_success, run_operation, setup_logging

console = Console()


@dataclass
class ReposContext:
    """State shared by the repos subcommands."""

    root_dir: Path
    config: ReposConfig
    options: RunOptions


class ConflictingPaths(BaseModel):
    pair: str
    fields: List[str] = Field(default_factory=list)


class ValidationResponse(BaseModel):
    """Machine-readable validation outcome."""

    root: str
    has_conflicts: bool
    diff_statistic: Dict[str, int] = Field(default_factory=dict)
    conflicting_paths: List[ConflictingPaths] = Field(default_factory=list)
    missing_paths: List[str] = Field(default_factory=list)


@click.group()
@click.option("--force", is_flag=True, help="Continue even if a working copy is not clean")
@click.option("--sequential", is_flag=True, help="Process repositories one after another")
@click.option("--concurrency", type=int, default=None, help="Maximum repositories processed at once (default 15)")
@click.option("-v", "--verbose", is_flag=True, help="Show diagnostic output")
@click.option(
    "--project-dir",
    "-p",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Repository containing parent-repos.json",
)
@click.pass_context
def repos(ctx: click.Context, force: bool, sequential: bool, concurrency: Optional[int], verbose: bool, project_dir: str):
    """
    Manage the repositories declared in parent-repos.json.

    All repositories are cloned next to the current one, in ../<name>.
    """
    setup_logging(verbose)
    root_dir = Path(project_dir).resolve()
    try:
        config = ReposConfig.load(root_dir)
    except ReposError as e:
        echo_error(str(e))
        ctx.exit(1)

    options = config.run_options(force=force, sequential=True if sequential else None, concurrency=concurrency, verbose=verbose)
    ctx.obj = ReposContext(root_dir=root_dir, config=config, options=options)


@repos.command("clone")
@click.option("--depth", type=int, default=None, help="Create shallow clones with this depth")
@click.pass_obj
def clone(obj: ReposContext, depth: Optional[int]):
    """Clone all repositories that are not on disk yet."""
    depth = obj.config.depth if depth is None else depth
    targets = run_operation(
        "Clone repos",
        lambda: CloneRepos(obj.root_dir, obj.options, depth=depth).execute(),
    )
    for target in targets:
        echo_info(f"{target.repo_name}: {target.describe()}")
    echo_success(f"Cloned {len(targets)} repositories")


@repos.command("update")
@click.option(
    "--nofetch",
    "no_fetch",
    is_flag=True,
    help="Do not fetch repositories; remote tags are still listed to resolve release branches",
)
@click.option("--reset-to-remote", is_flag=True, help="Hard reset branches to the remote state")
@click.pass_obj
def update(obj: ReposContext, no_fetch: bool, reset_to_remote: bool):
    """Check out the declared version of every repository."""
    targets = run_operation(
        "Update repos",
        lambda: UpdateRepos(obj.root_dir, obj.options, no_fetch=no_fetch, reset_to_remote=reset_to_remote).execute(),
    )
    for target in targets:
        echo_info(f"{target.repo_name}: {target.describe()}")
    echo_success(f"Updated {len(targets)} repositories")


@repos.command("write")
@click.option("--freeze", is_flag=True, help="Write the exact commit of every repository")
@click.option("--un-freeze", is_flag=True, help="Remove configured tags, tag markers and commits")
@click.option("--latest-tag", is_flag=True, help="Pin every release branch to its latest tag")
@click.pass_obj
def write(obj: ReposContext, freeze: bool, un_freeze: bool, latest_tag: bool):
    """Write the current state of all repositories to parent-repos.json."""
    manifest = run_operation(
        "Write repos",
        lambda: WriteRepos(
            obj.root_dir, obj.options, freeze=freeze, un_freeze=un_freeze, latest_tag=latest_tag
        ).execute(),
    )
    echo_success(f"Wrote {len(manifest)} repositories to {manifest.path}")


@repos.command("branch")
@click.argument("name")
@click.option("--parent", default=None, help="Parent repository directory name (default: main)")
@click.option("--push", is_flag=True, help="Push the new branches")
@click.option("--from", "branch_from", default=None, help="Remote branch to base the new branches on")
@click.pass_obj
def branch(obj: ReposContext, name: str, parent: Optional[str], push: bool, branch_from: Optional[str]):
    """Create branch NAME in the parent and all dependent repositories."""
    branched = run_operation(
        "Branch repos",
        lambda: BranchRepos(
            obj.root_dir,
            name,
            obj.options,
            parent=parent or obj.config.parent,
            push=push,
            branch_from=branch_from,
        ).execute(),
    )
    echo_success(f"Created branch {name} in {', '.join(branched)}")


@repos.command("add-dependency")
@click.argument("name")
@click.pass_obj
def add_dependency(obj: ReposContext, name: str):
    """Add the cloned sibling repository NAME as a dependency."""
    descriptor = run_operation(
        "Add dependency",
        lambda: AddDependency(obj.root_dir, name, obj.options).execute(),
    )
    echo_success(f"Added {name} ({descriptor.url} @ {descriptor.branch})")


@repos.command("validate-branches")
@click.option("--include", default=None, help="Fields to compare, space separated, or 'all'")
@click.option("--exclude", default=None, help="Fields to ignore, space separated, or 'all'")
@click.option("--json", "json_output", is_flag=True, help="Output the result as JSON")
@click.pass_obj
def validate_branches(obj: ReposContext, include: Optional[str], exclude: Optional[str], json_output: bool):
    """
    Validate that repositories referenced from several places agree.

    \b
    Examples:
        reposync repos validate-branches
        reposync repos validate-branches --include "branch tag"
        reposync repos validate-branches --exclude all
    """
    try:
        include_list = parse_filter_list(include if include is not None else obj.config.validate_include)
        exclude_list = parse_filter_list(exclude if exclude is not None else obj.config.validate_exclude)
        field_filter = FieldFilter(include=include_list, exclude=exclude_list if exclude_list is not None else list(DEFAULT_EXCLUDE))
        validator = DependencyGraphValidator(obj.root_dir, field_filter)
        result = validator.validate()
    except MissingRepositoriesError as e:
        if e.result is not None:
            _render_validation(e.result, validator, json_output)
        echo_error(str(e))
        sys.exit(1)
    except ReposError as e:
        echo_error(str(e))
        sys.exit(1)

    _render_validation(result, validator, json_output)


def _render_validation(result: ValidationResult, validator: DependencyGraphValidator, json_output: bool) -> None:
    root_name = validator.root_name
    if json_output:
        response = ValidationResponse(
            root=root_name,
            has_conflicts=result.report.has_conflicts,
            diff_statistic=result.report.diff_statistic,
            conflicting_paths=[
                ConflictingPaths(pair=diff.pair_key, fields=diff.differing_fields)
                for diffs in result.report.repos_with_diff.values()
                for diff in diffs
            ],
            missing_paths=result.missing_paths,
        )
        click.echo(response.model_dump_json(indent=2))
        return

    click.echo(format_report(root_name, result.report))
    click.echo("\nDependency tree:")
    console.print(build_tree(result.root, validator.field_filter))


def build_tree(root: DependencyNode, field_filter: FieldFilter) -> Tree:
    """Render the dependency tree with the filtered descriptor fields."""
    tree = Tree(f"📦 [bold]{escape(root.repo_name)}[/bold]")
    _add_children(tree, root, field_filter)
    return tree


def _add_children(tree: Tree, node: DependencyNode, field_filter: FieldFilter) -> None:
    for name, child in node.children.items():
        label = f"[red]{escape(name)} *** missing ***[/red]" if child.missing else f"[cyan]{escape(name)}[/cyan]"
        branch = tree.add(label)
        for field_name, value in child.status.describe().items():
            if field_filter.accepts(field_name):
                branch.add(f"[dim]--> {escape(field_name)}: {escape(str(value))}[/dim]")
        _add_children(branch, child, field_filter)
