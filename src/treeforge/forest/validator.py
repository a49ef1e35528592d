"""Structural checks applied to flat records before a forest is built."""

from __future__ import annotations

from typing import Hashable, Iterable, Set

from treeforge.entities.core import TreeNode
from treeforge.utils.logging import get_logger

from .errors import DuplicateIdentifierError, MissingIdentifierError

_LOGGER = get_logger(module=__name__)


def validate_records(records: Iterable[TreeNode]) -> None:
    """Raise on the first record with a missing or repeated identifier.

    Records are scanned once and never mutated. Self-referencing and unknown
    parent identifiers are accepted; the builder treats them as roots.

    Raises:
        MissingIdentifierError: A record's ``id`` is ``None``.
        DuplicateIdentifierError: An ``id`` was already seen earlier in the input.
    """

    seen: Set[Hashable] = set()
    for position, record in enumerate(records):
        identifier = record.id
        if identifier is None:
            _LOGGER.warning("Rejected record without identifier", position=position)
            raise MissingIdentifierError(position)
        if identifier in seen:
            _LOGGER.warning("Rejected duplicate identifier", identifier=identifier)
            raise DuplicateIdentifierError(identifier)
        seen.add(identifier)


__all__ = ["validate_records"]
