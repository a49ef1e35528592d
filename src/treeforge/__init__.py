"""Top-level package for treeforge."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("treeforge")
except PackageNotFoundError:  # pragma: no cover - running from a source checkout
    __version__ = "0.1.0"

from .config.settings import Settings, get_settings
from .entities import TreeNode, TreeRecord
from .forest import (
    DuplicateIdentifierError,
    ForestBuilder,
    ForestValidationError,
    MissingIdentifierError,
    build_forest,
    path_subtree,
    path_to_root,
    validate_records,
)

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "TreeNode",
    "TreeRecord",
    "ForestBuilder",
    "build_forest",
    "path_to_root",
    "path_subtree",
    "validate_records",
    "ForestValidationError",
    "MissingIdentifierError",
    "DuplicateIdentifierError",
]
