"""End-to-end smoke tests for the Typer-based treeforge CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from main import main as cli_main
from treeforge.cli.common import parse_identifier, parse_override
from treeforge.cli.main import app


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_env(tmp_path: Path) -> dict[str, str]:
    return {
        "TREEFORGE_SETTINGS__PATHS__OUTPUT_DIR": str(tmp_path / "output"),
        "TREEFORGE_SETTINGS__PATHS__LOGS_DIR": str(tmp_path / "logs"),
    }


@pytest.fixture()
def records_file(tmp_path: Path) -> Path:
    rows = [
        {"id": 1, "label": "Root"},
        {"id": 2, "parent_id": 1, "label": "Left"},
        {"id": 3, "parent_id": 1, "label": "Right"},
        {"id": 4, "parent_id": 2, "label": "Leaf"},
    ]
    path = tmp_path / "records.jsonl"
    path.write_text("\n".join(json.dumps(row) for row in rows) + "\n", encoding="utf-8")
    return path


def test_parse_override_builds_nested_mapping() -> None:
    assert parse_override("policies.forest.max_workers=3") == {
        "policies": {"forest": {"max_workers": 3}}
    }


def test_parse_override_requires_equals() -> None:
    with pytest.raises(typer.BadParameter):
        parse_override("policies.forest")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("4", 4), ("node-7", "node-7"), ('"4"', "4"), ("[1]", "[1]")],
)
def test_parse_identifier(raw: str, expected: object) -> None:
    assert parse_identifier(raw) == expected


def test_build_command_writes_forest(
    runner: CliRunner, cli_env: dict[str, str], records_file: Path, tmp_path: Path
) -> None:
    output = tmp_path / "forest.json"
    result = runner.invoke(
        app,
        ["forest", "build", str(records_file), "--output", str(output)],
        env=cli_env,
    )

    assert result.exit_code == 0, result.output
    assert "Forest Build" in result.output
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert [child["id"] for child in payload["roots"][0]["children"]] == [2, 3]


def test_build_command_honours_overrides(
    runner: CliRunner, cli_env: dict[str, str], records_file: Path, tmp_path: Path
) -> None:
    output = tmp_path / "forest.json"
    result = runner.invoke(
        app,
        [
            "--override",
            "policies.forest.parallel_threshold=1",
            "forest",
            "build",
            str(records_file),
            "--output",
            str(output),
        ],
        env=cli_env,
    )

    assert result.exit_code == 0, result.output
    manifest = json.loads(output.with_suffix(".manifest.json").read_text(encoding="utf-8"))
    assert manifest["config"]["forest_policy"]["parallel_threshold"] == 1
    assert manifest["statistics"]["parallel_passes"] >= 1


def test_path_command_lists_ancestors(
    runner: CliRunner, cli_env: dict[str, str], records_file: Path
) -> None:
    result = runner.invoke(app, ["forest", "path", "4", str(records_file)], env=cli_env)

    assert result.exit_code == 0, result.output
    assert "Root" in result.output
    assert "Left" in result.output
    assert "Right" not in result.output


def test_subtree_command_renders_lineage(
    runner: CliRunner, cli_env: dict[str, str], records_file: Path
) -> None:
    result = runner.invoke(app, ["forest", "subtree", "4", str(records_file)], env=cli_env)

    assert result.exit_code == 0, result.output
    assert "Leaf" in result.output
    assert "Right" not in result.output


def test_duplicate_identifiers_exit_with_code_two(
    monkeypatch: pytest.MonkeyPatch, cli_env: dict[str, str], tmp_path: Path
) -> None:
    for key, value in cli_env.items():
        monkeypatch.setenv(key, value)
    source = tmp_path / "dupes.jsonl"
    source.write_text('{"id": 1}\n{"id": 1}\n', encoding="utf-8")

    exit_code = cli_main(["forest", "build", str(source), "--output", str(tmp_path / "f.json")])

    assert exit_code == 2
    assert not (tmp_path / "f.json").exists()


def test_missing_input_file_exits_with_code_two(
    monkeypatch: pytest.MonkeyPatch, cli_env: dict[str, str], tmp_path: Path
) -> None:
    for key, value in cli_env.items():
        monkeypatch.setenv(key, value)

    exit_code = cli_main(["forest", "path", "1", str(tmp_path / "absent.jsonl")])

    assert exit_code == 2


def test_malformed_record_exits_with_code_two(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    cli_env: dict[str, str],
    tmp_path: Path,
) -> None:
    for key, value in cli_env.items():
        monkeypatch.setenv(key, value)
    source = tmp_path / "malformed.jsonl"
    source.write_text('{"id": {"x": 1}}\n', encoding="utf-8")

    exit_code = cli_main(["forest", "build", str(source), "--output", str(tmp_path / "f.json")])

    assert exit_code == 2
    assert "Invalid record" in capsys.readouterr().out
    assert not (tmp_path / "f.json").exists()


def test_oversized_input_exits_with_code_two(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    cli_env: dict[str, str],
    records_file: Path,
    tmp_path: Path,
) -> None:
    for key, value in cli_env.items():
        monkeypatch.setenv(key, value)

    exit_code = cli_main(
        [
            "--override",
            "policies.forest.max_records=1",
            "forest",
            "build",
            str(records_file),
            "--output",
            str(tmp_path / "f.json"),
        ]
    )

    assert exit_code == 2
    assert "max_records=1 exceeded" in capsys.readouterr().out
    assert not (tmp_path / "f.json").exists()
