from __future__ import annotations

import json
from pathlib import Path

import pytest

from treeforge.config.settings import Settings
from treeforge.entities import TreeRecord
from treeforge.forest import assemble_forest, build_forest
from treeforge.forest.io import (
    export_forest,
    forest_to_adjacency,
    forest_to_edges,
    forest_to_nested,
    load_records,
)


def write_jsonl(path: Path, rows) -> Path:
    path.write_text("\n".join(json.dumps(row) for row in rows) + "\n", encoding="utf-8")
    return path


ROWS = [
    {"id": 1, "parent_id": None, "label": "Root"},
    {"id": 2, "parent_id": 1, "label": "Left"},
    {"id": 3, "parent_id": 1, "label": "Right"},
    {"id": 4, "parent_id": 2, "label": "Leaf", "attributes": {"weight": 3}},
]


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(config_dir=tmp_path / "no-config", paths={"output_dir": tmp_path, "logs_dir": tmp_path})


def test_load_records_reads_jsonl_and_json_arrays(tmp_path: Path):
    jsonl = write_jsonl(tmp_path / "records.jsonl", ROWS[:2])
    array = tmp_path / "records.json"
    array.write_text(json.dumps(ROWS[2:]), encoding="utf-8")

    records = load_records([jsonl, array])

    assert [record.id for record in records] == [1, 2, 3, 4]
    assert records[3].attributes == {"weight": 3}


def test_load_records_ignores_nested_children_payloads(tmp_path: Path):
    path = write_jsonl(tmp_path / "records.jsonl", [{"id": 1, "children": [{"id": 2}]}])

    (record,) = load_records([path])
    assert record.children == []


def test_load_records_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_records([tmp_path / "absent.jsonl"])


def test_nested_export_keeps_structure():
    roots = build_forest([TreeRecord.model_validate(row) for row in ROWS])

    payload = forest_to_nested(roots)
    assert payload[0]["id"] == 1
    assert [child["id"] for child in payload[0]["children"]] == [2, 3]
    assert payload[0]["children"][0]["children"][0]["label"] == "Leaf"


def test_edges_and_adjacency_exports():
    roots = build_forest([TreeRecord.model_validate(row) for row in ROWS])

    edges = forest_to_edges(roots)
    assert edges["nodes"] == [1, 2, 4, 3]
    assert {"parent": 2, "child": 4} in edges["edges"]
    assert forest_to_adjacency(roots) == {"1": [2, 3], "2": [4], "4": [], "3": []}


def test_export_rejects_unknown_format(tmp_path: Path):
    with pytest.raises(ValueError):
        export_forest([], tmp_path / "forest.txt", format="xml")


def test_assemble_forest_writes_outputs(tmp_path: Path, settings: Settings):
    source = write_jsonl(tmp_path / "records.jsonl", ROWS)
    output = tmp_path / "out" / "forest.json"

    result = assemble_forest([source], output, settings=settings, metadata_path=tmp_path / "meta.json")

    assert [root.id for root in result.roots] == [1]
    forest = json.loads(output.read_text(encoding="utf-8"))
    assert forest["roots"][0]["children"][0]["children"][0]["id"] == 4
    stats = json.loads(output.with_suffix(".stats.json").read_text(encoding="utf-8"))
    assert stats["node_count"] == 4
    manifest = json.loads(output.with_suffix(".manifest.json").read_text(encoding="utf-8"))
    assert manifest["config"]["forest_policy"]["chunk_size"] == 500
    assert (tmp_path / "meta.json").exists()


def test_assemble_forest_rejects_oversized_input(tmp_path: Path):
    source = write_jsonl(tmp_path / "records.jsonl", ROWS)
    settings = Settings(
        config_dir=tmp_path / "no-config",
        policies={"forest": {"max_records": 3}},
    )

    with pytest.raises(ValueError, match="max_records"):
        assemble_forest([source], tmp_path / "forest.json", settings=settings)
    assert not (tmp_path / "forest.json").exists()
