"""Configuration management for Merkle Diff."""

import json
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from . import CONFIG_FILE, DEFAULT_BRANCHING_FACTOR, DEFAULT_CHUNK_SIZE
from .hashing import HashingScheme


class TreeConfig(BaseModel):
    """Parameters both parties must share for their trees to be comparable."""

    version: int = 1
    hashing_scheme: Literal["sha1"] = "sha1"
    branching_factor: int = Field(default=DEFAULT_BRANCHING_FACTOR, ge=2)
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)

    @property
    def scheme(self) -> HashingScheme:
        return HashingScheme.parse(self.hashing_scheme)


# Environment variable -> config field
ENV_OVERRIDES = {
    "MTREE_HASHING_SCHEME": "hashing_scheme",
    "MTREE_BRANCHING_FACTOR": "branching_factor",
    "MTREE_CHUNK_SIZE": "chunk_size",
}


def get_config_path(directory: Path) -> Path:
    """Get the config file path inside a directory."""
    return directory / CONFIG_FILE


def load_config(config_path: Path | None = None) -> TreeConfig:
    """Load configuration from a JSON file.

    Falls back to defaults if no path is given or the file doesn't exist.
    Environment variables can override config values.
    """
    if config_path is not None and config_path.exists():
        with open(config_path) as f:
            data = json.load(f)
        config = TreeConfig.model_validate(data)
    else:
        config = TreeConfig()

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    return config


def save_config(config: TreeConfig, config_path: Path) -> None:
    """Save configuration to a JSON file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config.model_dump(), f, indent=2)


def _apply_env_overrides(config: TreeConfig) -> TreeConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    for env_var, field_name in ENV_OVERRIDES.items():
        if value := os.environ.get(env_var):
            data[field_name] = value.lower() if field_name == "hashing_scheme" else value

    # Re-validate so string values from the environment are coerced and checked
    return TreeConfig.model_validate(data)
