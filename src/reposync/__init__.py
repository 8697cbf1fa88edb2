"""
reposync - Manifest-driven multi-repository workspace orchestration.

Keeps a set of sibling git working copies in line with the versions
declared in each repository's parent-repos.json.
"""

__version__ = "0.1.0"
