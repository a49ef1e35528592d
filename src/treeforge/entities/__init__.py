"""Domain entities for treeforge."""

from .core import TreeNode, TreeRecord, child_ids

__all__ = ["TreeNode", "TreeRecord", "child_ids"]
