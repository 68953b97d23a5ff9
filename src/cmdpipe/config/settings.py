"""PipeSettings: one frozen object built from flags, environment and TOML.

Highest priority first:

1. keyword overrides (CLI flags, or arguments from an embedding app)
2. ``CMDPIPE_*`` environment variables, ``__`` between nested keys
3. the ``cmdpipe.toml`` / ``[tool.cmdpipe]`` table found by discovery
4. defaults on the section models
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from cmdpipe.config.discovery import find_config, read_config_data
from cmdpipe.config.models import DispatchConfig, OutputConfig, PluginsConfig
from cmdpipe.domain.errors import ConfigurationError

# Table read by PipeSettings.load(), visible to the source only while the
# model is being constructed.
_toml_table: ContextVar[Mapping[str, Any] | None] = ContextVar("_toml_table", default=None)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Feed an already-parsed TOML table into pydantic-settings."""

    def __init__(self, settings_cls: type[BaseSettings], table: Mapping[str, Any] | None) -> None:
        super().__init__(settings_cls)
        self._table = dict(table or {})

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._table.get(field_name), field_name, field_name in self._table

    def __call__(self) -> dict[str, Any]:
        return self._table


def _read_table(path: Path) -> dict[str, Any]:
    try:
        return read_config_data(path)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise ConfigurationError(msg) from exc
    except OSError as exc:
        msg = f"Cannot read {path}: {exc}"
        raise ConfigurationError(msg) from exc


class PipeSettings(BaseSettings):
    """Settings for the dispatcher, plugins, logging and CLI output.

    Attributes:
        config_path: The TOML file the settings were read from, if any.
        dispatch: ``[dispatch]`` defaults applied by every Dispatcher built
            with these settings.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "CMDPIPE_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    json_output: bool = False
    verbose: bool = False
    log_json: bool = False

    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, _toml_table.get()),
        )

    @property
    def wants_json(self) -> bool:
        return self.json_output or self.output.json_output

    @classmethod
    def load(
        cls,
        *,
        config_path: str | Path | None = None,
        start: Path | None = None,
        **overrides: Any,
    ) -> PipeSettings:
        """Discover (or take) a config file and build settings from it.

        An explicit *config_path* that does not exist is treated like no
        file at all.

        Raises:
            ConfigurationError: The config file is not valid TOML.
            pydantic.ValidationError: A value has the wrong type or range.
        """
        if config_path:
            candidate = Path(config_path)
            path = candidate if candidate.is_file() else None
        else:
            path = find_config(start)

        token = _toml_table.set(_read_table(path) if path is not None else None)
        try:
            return cls(config_path=path, **overrides)
        finally:
            _toml_table.reset(token)
