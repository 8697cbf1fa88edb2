"""
Run options and project configuration.

Options are passed explicitly to every operation instead of living in a
process-wide flag. Defaults may be overridden per project in
``.reposync/config.yaml``:

    repos:
      concurrency: 8
      sequential: false
      depth: 1
      parent: main
      validate:
        exclude: [url, description]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(".reposync") / "config.yaml"
DEFAULT_CONCURRENCY = 15
DEFAULT_PARENT_REPO = "main"


@dataclass
class RunOptions:
    """
    Options shared by all repository operations.

    Attributes:
        force: Continue when a working copy is not clean.
        sequential: Process repositories one after another.
        concurrency: Maximum number of repositories processed per chunk.
        verbose: Emit diagnostic output.
    """

    force: bool = False
    sequential: bool = False
    concurrency: Optional[int] = DEFAULT_CONCURRENCY
    verbose: bool = False


@dataclass
class ReposConfig:
    """
    Project-level defaults read from ``.reposync/config.yaml``.

    Attributes:
        concurrency: Default chunk size for batch runs.
        sequential: Default to sequential processing.
        depth: Default clone depth; None for full clones.
        parent: Directory name of the parent repository for ``branch``.
        validate_include: Default include filters for validation.
        validate_exclude: Default exclude filters for validation.
    """

    concurrency: int = DEFAULT_CONCURRENCY
    sequential: bool = False
    depth: Optional[int] = None
    parent: str = DEFAULT_PARENT_REPO
    validate_include: Optional[List[str]] = None
    validate_exclude: Optional[List[str]] = None

    def run_options(
        self,
        force: bool = False,
        sequential: Optional[bool] = None,
        concurrency: Optional[int] = None,
        verbose: bool = False,
    ) -> RunOptions:
        """Merge command line values over the configured defaults."""
        return RunOptions(
            force=force,
            sequential=self.sequential if sequential is None else sequential,
            concurrency=self.concurrency if concurrency is None else concurrency,
            verbose=verbose,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReposConfig":
        """
        Build from the ``repos`` section of the YAML document.

        Raises:
            ConfigurationError: If a value has the wrong type.
        """
        validate = data.get("validate") or {}
        config = cls(
            concurrency=data.get("concurrency", DEFAULT_CONCURRENCY),
            sequential=data.get("sequential", False),
            depth=data.get("depth"),
            parent=data.get("parent", DEFAULT_PARENT_REPO),
            validate_include=validate.get("include"),
            validate_exclude=validate.get("exclude"),
        )
        if not isinstance(config.concurrency, int) or isinstance(config.concurrency, bool):
            raise ConfigurationError(f"repos.concurrency must be an integer, got {config.concurrency!r}")
        if not isinstance(config.sequential, bool):
            raise ConfigurationError(f"repos.sequential must be a boolean, got {config.sequential!r}")
        if config.depth is not None and not isinstance(config.depth, int):
            raise ConfigurationError(f"repos.depth must be an integer, got {config.depth!r}")
        for name in ("validate_include", "validate_exclude"):
            value = getattr(config, name)
            if isinstance(value, str):
                setattr(config, name, value.split())
        return config

    @classmethod
    def load(cls, project_root: Path) -> "ReposConfig":
        """
        Load the configuration of a project, falling back to defaults.

        Args:
            project_root: Root directory of the repository.

        Raises:
            ConfigurationError: If the file exists but is not valid YAML.
        """
        config_path = project_root / CONFIG_PATH
        if not config_path.exists():
            return cls()

        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Expected a mapping in {config_path}")

        logger.debug(f"Loaded configuration from {config_path}")
        return cls.from_dict(data.get("repos") or {})

