"""Forest construction commands."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.table import Table

from treeforge.forest import ForestBuilder, assemble_forest
from treeforge.forest.io import EXPORT_FORMATS, forest_to_nested, load_records
from treeforge.utils.logging import logging_context

from .common import CLIError, console, get_state, parse_identifier, render_panel, resolve_path

app = typer.Typer(
    add_completion=False,
    help="Build forests from flat parent-referencing records and extract lineages.",
    no_args_is_help=True,
)


def _resolve_inputs(inputs: List[Path]) -> List[Path]:
    if not inputs:
        raise CLIError("At least one input file must be provided")
    return [resolve_path(path) for path in inputs]


def _build_command(
    ctx: typer.Context,
    inputs: List[Path] = typer.Argument(..., help="JSONL or JSON array files holding flat records."),
    *,
    output: Path = typer.Option(..., "--output", "-O", help="Destination for the forest JSON."),
    export_format: str = typer.Option(
        "nested",
        "--format",
        "-f",
        help=f"Forest export format ({', '.join(EXPORT_FORMATS)}).",
    ),
    metadata: Optional[Path] = typer.Option(
        None,
        "--metadata",
        help="Optional metadata output capturing build statistics.",
    ),
) -> None:
    state = get_state(ctx)
    if export_format.lower() not in EXPORT_FORMATS:
        raise CLIError(f"--format must be one of: {', '.join(EXPORT_FORMATS)}")

    result = assemble_forest(
        _resolve_inputs(inputs),
        output,
        settings=state.settings,
        export_format=export_format,
        metadata_path=metadata,
        run_id=state.run_id,
    )

    stats = result.statistics()
    table = Table(title="Forest Build", box=None)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    for key in ("node_count", "root_count", "max_depth", "passes", "stranded_count"):
        table.add_row(key.replace("_", " ").title(), str(stats[key]))
    console.print(table)
    if result.stranded:
        console.print(
            f"[yellow]Warning:[/yellow] {len(result.stranded)} record(s) could not be attached "
            "and were emitted as roots."
        )


def _path_command(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Identifier whose ancestors are listed."),
    inputs: List[Path] = typer.Argument(..., help="JSONL or JSON array files holding flat records."),
) -> None:
    state = get_state(ctx)
    records = load_records(_resolve_inputs(inputs))
    builder = ForestBuilder(state.settings.policies.forest)
    with logging_context(step="path-to-root", run_id=state.run_id):
        lineage = builder.path_to_root(parse_identifier(target), records)

    if not lineage:
        console.print(f"No ancestors found for {target}")
        return
    table = Table(title=f"Path to {target}", box=None)
    table.add_column("Depth", justify="right")
    table.add_column("ID")
    table.add_column("Label")
    for depth, record in enumerate(lineage):
        table.add_row(str(depth), str(record.id), record.label or "")
    console.print(table)


def _subtree_command(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Identifier whose lineage is extracted."),
    inputs: List[Path] = typer.Argument(..., help="JSONL or JSON array files holding flat records."),
) -> None:
    state = get_state(ctx)
    records = load_records(_resolve_inputs(inputs))
    builder = ForestBuilder(state.settings.policies.forest)
    with logging_context(step="path-subtree", run_id=state.run_id):
        chain = builder.path_subtree(parse_identifier(target), records)

    if not chain:
        console.print(f"No lineage found for {target}")
        return
    render_panel(f"Lineage of {target}", forest_to_nested(chain))


app.command("build")(_build_command)
app.command("path")(_path_command)
app.command("subtree")(_subtree_command)
