"""Content directory configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from wayfinder.errors import ConfigError

CONFIG_FILE_NAME = "wayfinder.yaml"

DEFAULT_GRAPHS_DIR = "graphs"
DEFAULT_SAVES_DIR = "saves"
DEFAULT_LOGS_DIR = "logs"

# Environment overrides
ENV_CONTENT_DIR = "WF_CONTENT_DIR"
ENV_STRICT = "WF_STRICT"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class RegistryPaths:
    """Registry files, relative to the content directory.

    A missing ``affinities`` file means the built-in affinity registry is used;
    missing simulation registries skip the alignment check.
    """

    affinities: str | None = None
    simulation_content: str | None = None
    simulation_engine: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegistryPaths:
        return cls(
            affinities=data.get("affinities"),
            simulation_content=data.get("simulation_content"),
            simulation_engine=data.get("simulation_engine"),
        )


@dataclass
class WayfinderConfig:
    """Configuration for a content directory.

    Attributes:
        graphs_dir: Directory of dialogue graph YAML files.
        registries: Registry file locations.
        allow_listed_nodes: Node ids exempt from gating checks.
        strict: Treat validation warnings as failures.
        saves_dir: Directory for JSON saves.
    """

    graphs_dir: str = DEFAULT_GRAPHS_DIR
    registries: RegistryPaths = field(default_factory=RegistryPaths)
    allow_listed_nodes: list[str] = field(default_factory=list)
    strict: bool = False
    saves_dir: str = DEFAULT_SAVES_DIR

    @property
    def effective_strict(self) -> bool:
        """Strict mode, with WF_STRICT taking precedence over the file."""
        env = os.getenv(ENV_STRICT)
        if env is not None:
            return env.strip().lower() in _TRUE_VALUES
        return self.strict

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WayfinderConfig:
        validation = data.get("validation", {}) or {}
        return cls(
            graphs_dir=data.get("graphs_dir", DEFAULT_GRAPHS_DIR),
            registries=RegistryPaths.from_dict(data.get("registries", {}) or {}),
            allow_listed_nodes=list(validation.get("allow_listed_nodes", [])),
            strict=bool(validation.get("strict", False)),
            saves_dir=data.get("saves_dir", DEFAULT_SAVES_DIR),
        )


def resolve_content_dir(path: Path | None = None) -> Path:
    """Content directory from the argument, WF_CONTENT_DIR, or the cwd."""
    if path is not None:
        return path
    env = os.getenv(ENV_CONTENT_DIR)
    return Path(env) if env else Path.cwd()


def load_config(content_dir: Path) -> WayfinderConfig:
    """Load ``wayfinder.yaml`` from ``content_dir``; defaults if absent.

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    config_path = content_dir / CONFIG_FILE_NAME
    if not config_path.exists():
        return WayfinderConfig()

    yaml = YAML(typ="safe")
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            return WayfinderConfig()
        if not isinstance(data, dict):
            raise ConfigError(config_path, "Top level must be a mapping")

        return WayfinderConfig.from_dict(data)
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(config_path, str(e)) from e
