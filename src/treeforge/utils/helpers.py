"""General-purpose helpers shared across treeforge modules."""

from __future__ import annotations

import itertools
import json
from pathlib import Path
from typing import Iterable, Iterator, List, TypeVar

from .logging import get_logger

T = TypeVar("T")

_LOGGER = get_logger(module=__name__)


def ensure_directory(path: Path | str) -> Path:
    """Ensure that a directory exists and return the resolved Path."""

    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target.resolve()


def serialize_json(data: object, destination: Path | str, *, indent: int = 2) -> Path:
    """Serialize data to JSON with deterministic ordering."""

    dest_path = Path(destination)
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    dest_path.write_text(
        json.dumps(data, indent=indent, sort_keys=True, ensure_ascii=False, default=str) + "\n",
        encoding="utf-8",
    )
    _LOGGER.debug("Serialized JSON", path=str(dest_path), size=dest_path.stat().st_size)
    return dest_path


def chunked(iterable: Iterable[T], size: int) -> Iterable[List[T]]:
    """Yield chunks of a given size from the input iterable."""

    if size <= 0:
        raise ValueError("size must be positive")

    iterator: Iterator[T] = iter(iterable)
    while True:
        batch = list(itertools.islice(iterator, size))
        if not batch:
            break
        yield batch


__all__ = ["ensure_directory", "serialize_json", "chunked"]
