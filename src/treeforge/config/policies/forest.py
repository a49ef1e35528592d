"""Forest construction policy models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ForestBuildPolicy(BaseModel):
    """Configuration controlling iterative forest construction."""

    parallel_threshold: int = Field(
        default=1000,
        ge=1,
        description="Minimum number of records in a construction level before it is resolved on worker threads.",
    )
    max_workers: int = Field(default=4, ge=1)
    chunk_size: int = Field(
        default=500,
        ge=1,
        description="Number of level records handed to a single worker during a parallel pass.",
    )
    max_records: int = Field(
        default=1_000_000,
        ge=1,
        description="Upper bound on input size accepted by the file-based entry point.",
    )
    validate_input: bool = Field(default=True)
