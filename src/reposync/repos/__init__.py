"""Top-level repository operations driven by parent-repos.json."""

from .add_dependency import AddDependency
from .branch import BranchRepos
from .clone import CloneRepos
from .update import UpdateRepos
from .write import WriteRepos

__all__ = ["AddDependency", "BranchRepos", "CloneRepos", "UpdateRepos", "WriteRepos"]
