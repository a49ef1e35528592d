"""Exceptions raised when flat input cannot be organised into a forest."""

from __future__ import annotations

from typing import Any, Hashable


class ForestValidationError(ValueError):
    """Base class for structural input failures detected before construction."""

    code = "invalid-input"

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": str(self)}


class MissingIdentifierError(ForestValidationError):
    """A record carries no identifier."""

    code = "missing-identifier"

    def __init__(self, position: int) -> None:
        super().__init__("Node ID cannot be null")
        self.position = position

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["position"] = self.position
        return payload


class DuplicateIdentifierError(ForestValidationError):
    """Two records share the same identifier."""

    code = "duplicate-identifier"

    def __init__(self, identifier: Hashable) -> None:
        super().__init__(f"Duplicate node ID: {identifier}")
        self.identifier = identifier

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["identifier"] = self.identifier
        return payload


__all__ = ["ForestValidationError", "MissingIdentifierError", "DuplicateIdentifierError"]
