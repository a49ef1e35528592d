"""Forest construction public API."""

from __future__ import annotations

from .builder import ForestBuilder, ForestBuildResult, build_forest, path_subtree, path_to_root
from .errors import DuplicateIdentifierError, ForestValidationError, MissingIdentifierError
from .main import assemble_forest
from .validator import validate_records

__all__ = [
    "assemble_forest",
    "build_forest",
    "path_to_root",
    "path_subtree",
    "validate_records",
    "ForestBuilder",
    "ForestBuildResult",
    "ForestValidationError",
    "MissingIdentifierError",
    "DuplicateIdentifierError",
]
