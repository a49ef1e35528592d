"""I/O utilities for forest construction."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

from treeforge.entities.core import TreeNode, TreeRecord
from treeforge.utils.helpers import ensure_directory, serialize_json
from treeforge.utils.logging import get_logger

_LOGGER = get_logger(module=__name__)

EXPORT_FORMATS = ("nested", "edges", "adjacency")


def _read_payloads(path: Path) -> List[Any]:
    with path.open("r", encoding="utf-8") as handle:
        text = handle.read()
    if text.lstrip().startswith("["):
        payload = json.loads(text)
        return list(payload)
    return [json.loads(line) for line in text.splitlines() if line.strip()]


def load_records(input_paths: Sequence[str | Path]) -> List[TreeRecord]:
    """Load flat records from JSONL files or files holding a JSON array."""

    records: List[TreeRecord] = []
    for path_like in input_paths:
        path = Path(path_like)
        if not path.exists():
            raise FileNotFoundError(f"record file not found: {path}")
        for payload in _read_payloads(path):
            records.append(TreeRecord.model_validate(payload))
    _LOGGER.info(
        "Loaded records for forest construction",
        total=len(records),
        files=[str(Path(p)) for p in input_paths],
    )
    return records


def _node_fields(node: TreeNode) -> Dict[str, Any]:
    if isinstance(node, TreeRecord):
        return node.summary()
    return {"id": node.id, "parent_id": node.parent_id}


def forest_to_nested(roots: Iterable[TreeNode]) -> List[Dict[str, Any]]:
    """Convert a forest into nested dictionaries without recursing."""

    payload: List[Dict[str, Any]] = []
    stack: List[tuple[TreeNode, List[Dict[str, Any]]]] = [
        (root, payload) for root in reversed(list(roots))
    ]
    while stack:
        node, siblings = stack.pop()
        entry = _node_fields(node)
        entry["children"] = []
        siblings.append(entry)
        for child in reversed(node.children):
            stack.append((child, entry["children"]))
    return payload


def forest_to_edges(roots: Iterable[TreeNode]) -> Dict[str, Any]:
    nodes: List[Any] = []
    edges: List[Dict[str, Any]] = []
    stack: List[TreeNode] = list(reversed(list(roots)))
    while stack:
        node = stack.pop()
        nodes.append(node.id)
        for child in node.children:
            edges.append({"parent": node.id, "child": child.id})
        stack.extend(reversed(node.children))
    return {"nodes": nodes, "edges": edges}


def forest_to_adjacency(roots: Iterable[TreeNode]) -> Dict[str, List[Any]]:
    edges = forest_to_edges(roots)
    adjacency: Dict[str, List[Any]] = {str(node_id): [] for node_id in edges["nodes"]}
    for edge in edges["edges"]:
        adjacency[str(edge["parent"])].append(edge["child"])
    return adjacency


def export_forest(
    roots: Sequence[TreeNode],
    output_path: str | Path,
    *,
    format: str = "nested",
) -> Path:
    path = Path(output_path)
    ensure_directory(path.parent)
    format = format.lower()
    if format == "nested":
        payload: Any = {"roots": forest_to_nested(roots)}
    elif format == "edges":
        payload = forest_to_edges(roots)
    elif format == "adjacency":
        payload = forest_to_adjacency(roots)
    else:
        raise ValueError(f"unsupported forest export format: {format}")
    # Deep nesting can exceed the json module's recursion limit; fall back to edges.
    try:
        serialize_json(payload, path)
    except RecursionError:
        _LOGGER.warning("Forest too deep for nested export, writing edges instead", path=str(path))
        format = "edges"
        serialize_json(forest_to_edges(roots), path)
    _LOGGER.info("Exported forest", path=str(path), format=format)
    return path.resolve()


def write_build_manifest(manifest: dict, output_path: str | Path) -> Path:
    path = Path(output_path)
    ensure_directory(path.parent)
    serialize_json(manifest, path)
    _LOGGER.info("Wrote forest manifest", path=str(path))
    return path.resolve()


def generate_build_metadata(statistics: dict, config_used: dict) -> dict:
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "stats": dict(statistics),
        "config": dict(config_used),
    }


__all__ = [
    "EXPORT_FORMATS",
    "load_records",
    "forest_to_nested",
    "forest_to_edges",
    "forest_to_adjacency",
    "export_forest",
    "write_build_manifest",
    "generate_build_metadata",
]
