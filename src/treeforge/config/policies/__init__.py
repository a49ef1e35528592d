"""Policy configuration primitives."""

from __future__ import annotations

import copy
import json
import os
from typing import Any, Mapping, MutableMapping, Sequence

from pydantic import BaseModel, Field, model_validator

from .forest import ForestBuildPolicy


class Policies(BaseModel):
    """Root policy container."""

    policy_version: str = Field(default="2026-10-01")
    forest: ForestBuildPolicy = Field(default_factory=ForestBuildPolicy)

    @model_validator(mode="after")
    def _validate_policy_version(self) -> "Policies":
        if not self.policy_version:
            raise ValueError("policy_version must be provided")
        return self


def _ensure_nested_mapping(
    cursor: MutableMapping[str, Any], part: str, full_path: Sequence[str]
) -> MutableMapping[str, Any]:
    existing = cursor.get(part)
    if existing is None:
        next_cursor: MutableMapping[str, Any] = {}
        cursor[part] = next_cursor
        return next_cursor
    if not isinstance(existing, MutableMapping):
        raise ValueError(
            "Cannot override configuration path '"
            f"{'/'.join(full_path)}"
            "' because segment '"
            f"{part}"
            "' resolves to a non-mapping value"
        )
    return existing


def apply_env_overrides(raw: MutableMapping[str, Any], prefix: str) -> MutableMapping[str, Any]:
    """Apply ``<prefix>A__B=value`` environment variables onto ``raw`` in place.

    Variable names are split on double underscores (``__``) into a lowercased
    traversal path, e.g. ``TREEFORGE_POLICY__FOREST__MAX_WORKERS=8``. Values are
    JSON-decoded when possible and kept as raw strings otherwise.
    """

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = [part.lower() for part in key[len(prefix) :].split("__") if part]
        if not path:
            continue
        cursor = raw
        for part in path[:-1]:
            cursor = _ensure_nested_mapping(cursor, part, path)
        try:
            cursor[path[-1]] = json.loads(value)
        except json.JSONDecodeError:
            cursor[path[-1]] = value
    return raw


def load_policies(data: Mapping[str, Any] | None = None) -> Policies:
    """Build :class:`Policies` from a mapping with ``TREEFORGE_POLICY__`` overrides applied."""

    raw: MutableMapping[str, Any] = copy.deepcopy(dict(data or {}))
    return Policies.model_validate(apply_env_overrides(raw, "TREEFORGE_POLICY__"))


__all__ = ["Policies", "ForestBuildPolicy", "apply_env_overrides", "load_policies"]
