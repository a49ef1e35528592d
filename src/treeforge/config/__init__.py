"""Configuration utilities for treeforge."""

from .policies import ForestBuildPolicy, Policies, load_policies
from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "Policies",
    "ForestBuildPolicy",
    "load_policies",
]
