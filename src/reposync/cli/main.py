"""
reposync CLI - Main entry point.

This module registers all CLI commands. Each command is implemented
in its own module under cli/commands/.
"""

import click

from .commands import repos


@click.group()
@click.version_option(package_name="reposync")
def main():
    """reposync: Manifest-driven multi-repository workspaces.

    Keeps sibling git repositories on the versions declared in
    parent-repos.json: clone, update, freeze and validate them together.

    \b
    Quick Start:
      reposync repos clone --depth 1
      reposync repos update
      reposync repos write --freeze
      reposync repos validate-branches
    """
    pass


# Register commands
main.add_command(repos.repos)

if __name__ == "__main__":
    main()
