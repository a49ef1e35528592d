"""Core domain entities organised by the forest builder."""

from __future__ import annotations

from typing import Any, Dict, Hashable, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field, field_validator


@runtime_checkable
class TreeNode(Protocol):
    """Capabilities a record must expose to take part in forest construction.

    ``id`` must be unique within one build call. ``parent_id`` of ``None``
    marks a root. ``children`` starts empty and is only appended to through
    :meth:`add_child`, which preserves attachment order.
    """

    id: Any
    parent_id: Any
    children: List[Any]

    def add_child(self, child: Any) -> None:
        ...


class TreeRecord(BaseModel):
    """Flat hierarchical record loaded from storage or an API payload."""

    id: int | str | None = Field(default=None, description="Identifier unique within one build")
    parent_id: int | str | None = Field(
        default=None,
        description="Identifier of the parent record; absent for roots.",
    )
    label: str | None = Field(default=None)
    attributes: Dict[str, Any] = Field(
        default_factory=dict,
        description="Arbitrary payload carried alongside the hierarchy fields.",
    )
    children: List["TreeRecord"] = Field(default_factory=list)

    @field_validator("label")
    @classmethod
    def _trim_label(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("children", mode="before")
    @classmethod
    def _start_flat(cls, value: Any) -> List["TreeRecord"]:
        # Children are populated by the builder only.
        return []

    def add_child(self, child: "TreeRecord") -> None:
        self.children.append(child)

    def summary(self) -> Dict[str, Any]:
        """Return the record's own fields without descending into children."""

        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "label": self.label,
            "attributes": dict(self.attributes),
        }


def child_ids(node: TreeNode) -> List[Optional[Hashable]]:
    """Return the identifiers of ``node``'s direct children in attachment order."""

    return [child.id for child in node.children]


__all__ = ["TreeNode", "TreeRecord", "child_ids"]
