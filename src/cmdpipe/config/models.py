"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, cmdpipe.toml only contains
overrides. An empty file (or no file) is a valid configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, field_validator


class DispatchConfig(BaseModel):
    """[dispatch] section."""

    model_config = {"frozen": True}

    default_timeout: float | None = None
    trace: bool = False

    @field_validator("default_timeout")
    @classmethod
    def _non_negative(cls, value: float | None) -> float | None:
        if value is not None and value < 0:
            msg = "default_timeout must be non-negative"
            raise ValueError(msg)
        return value


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    local_dir: str | None = None


class OutputConfig(BaseModel):
    """[output] section."""

    model_config = {"frozen": True}

    json_output: bool = False

