"""File-based entry point for forest construction."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence
from uuid import uuid4

from treeforge.config.settings import Settings
from treeforge.utils.helpers import serialize_json
from treeforge.utils.logging import get_logger, log_timing, logging_context

from .builder import ForestBuilder, ForestBuildResult
from .io import export_forest, generate_build_metadata, load_records, write_build_manifest

_LOGGER = get_logger(module=__name__)


def assemble_forest(
    input_paths: Sequence[str | Path],
    output_path: str | Path,
    *,
    settings: Settings | None = None,
    export_format: str = "nested",
    manifest_path: str | Path | None = None,
    metadata_path: str | Path | None = None,
    run_id: str | None = None,
) -> ForestBuildResult:
    """Load flat records, build the forest and write it with its statistics.

    Input larger than the policy's ``max_records`` is rejected before any
    construction work starts.
    """

    cfg = settings or Settings()
    if cfg.create_dirs:
        cfg.paths.ensure_exists()

    policy = cfg.policies.forest
    records = load_records(input_paths)
    if len(records) > policy.max_records:
        raise ValueError(
            f"max_records={policy.max_records} exceeded: received {len(records)} records"
        )

    config_snapshot = {
        "environment": cfg.environment,
        "policy_version": cfg.policy_version,
        "forest_policy": policy.model_dump(mode="json"),
    }
    builder = ForestBuilder(policy)
    with logging_context(step="forest-build", run_id=run_id or f"build-{uuid4().hex[:8]}"):
        with log_timing("forest-build", logger_=_LOGGER):
            result = builder.assemble(records)

    export_forest(result.roots, output_path, format=export_format)
    manifest = result.to_manifest()
    manifest["config"] = config_snapshot
    target_manifest = manifest_path or Path(output_path).with_suffix(".manifest.json")
    write_build_manifest(manifest, target_manifest)
    if metadata_path:
        serialize_json(generate_build_metadata(result.statistics(), config_snapshot), metadata_path)

    stats_path = Path(output_path).with_suffix(".stats.json")
    serialize_json(result.statistics(), stats_path)

    _LOGGER.info(
        "Forest assembly completed",
        output=str(Path(output_path).resolve()),
        roots=len(result.roots),
    )
    return result


__all__ = ["assemble_forest"]
