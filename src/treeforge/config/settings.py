"""Layered treeforge settings: YAML files, environment overrides and kwargs."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .policies import Policies, apply_env_overrides, load_policies

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_DIR = PROJECT_ROOT / "config"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _read_layers(config_dir: Path, environment: str) -> Dict[str, Any]:
    """Merge ``default.yaml`` with ``<environment>.yaml``; absent files count as empty."""

    layered: Dict[str, Any] = {}
    for name in ("default.yaml", f"{environment}.yaml"):
        path = config_dir / name
        if path.exists():
            layered = _deep_merge(layered, yaml.safe_load(path.read_text(encoding="utf-8")) or {})
    return layered


class PathsConfig(BaseModel):
    """Directories receiving forest outputs and log files."""

    output_dir: Path = Field(default=PROJECT_ROOT / "output")
    logs_dir: Path = Field(default=PROJECT_ROOT / "logs")

    def ensure_exists(self) -> None:
        """Anchor relative directories at the project root and create them."""

        for name in ("output_dir", "logs_dir"):
            path = getattr(self, name)
            if not path.is_absolute():
                path = PROJECT_ROOT / path
            path.mkdir(parents=True, exist_ok=True)
            object.__setattr__(self, name, path)


class Settings(BaseSettings):
    """Primary configuration object for treeforge.

    Precedence (highest first): explicit kwargs, ``TREEFORGE_SETTINGS__a__b``
    environment variables, ``<environment>.yaml``, ``default.yaml`` and the
    field defaults. ``TREEFORGE_POLICY__`` variables are applied last to the
    policy section by :func:`load_policies`.
    """

    model_config = SettingsConfigDict(env_prefix="TREEFORGE_", validate_assignment=True, extra="ignore")

    environment: Literal["development", "testing", "production"] = "development"
    config_dir: Path = DEFAULT_CONFIG_DIR
    paths: PathsConfig = Field(default_factory=PathsConfig)
    create_dirs: bool = Field(
        default=False,
        description="Create the directories declared in `paths` during initialisation.",
    )
    log_level: str = "INFO"
    policies: Policies

    @model_validator(mode="before")
    @classmethod
    def _layer_sources(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        environment = values.get("environment") or os.getenv("TREEFORGE_ENV", "development")
        layered = _read_layers(Path(values.get("config_dir") or DEFAULT_CONFIG_DIR), environment)
        layered = dict(apply_env_overrides(layered, "TREEFORGE_SETTINGS__"))
        combined = _deep_merge(layered, {key: value for key, value in values.items() if value is not None})

        policies = combined.get("policies")
        if not isinstance(policies, Policies):
            combined["policies"] = load_policies(policies)
        return combined

    @model_validator(mode="after")
    def _create_directories(self) -> "Settings":
        if self.create_dirs:
            self.paths.ensure_exists()
        return self

    @property
    def policy_version(self) -> str:
        return self.policies.policy_version

    @property
    def log_file(self) -> Path:
        return self.paths.logs_dir / "treeforge.log"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a process-wide settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings", "PathsConfig"]
