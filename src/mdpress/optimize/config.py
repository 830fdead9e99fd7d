"""Configuration for the optimization pipeline."""

from __future__ import annotations

import dataclasses
import pathlib
import typing

import mdpress.config

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_BASE_URL = "https://api.anthropic.com/v1"


@mdpress.config.configurable("optimize")
@dataclasses.dataclass
class OptimizeConfig:
    # Compression client
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    max_tokens: int = 8192
    timeout: float = 120.0
    api_key_env: str = "ANTHROPIC_API_KEY"

    # Cache; empty means ~/.config/mdpress/optimized
    cache_dir: str = ""

    def resolved_cache_dir(self) -> pathlib.Path:
        if self.cache_dir:
            return pathlib.Path(self.cache_dir).expanduser()
        return mdpress.config.config_dir() / "optimized"


def load_config(
    root: pathlib.Path | None = None, **overrides: typing.Any
) -> OptimizeConfig:
    """Load config from TOML files, then apply CLI/keyword overrides."""
    base = mdpress.config.load("optimize", root)
    valid_keys = {f.name for f in dataclasses.fields(OptimizeConfig)}
    filtered = {k: v for k, v in overrides.items() if v is not None and k in valid_keys}
    if not filtered:
        return base
    return dataclasses.replace(base, **filtered)
