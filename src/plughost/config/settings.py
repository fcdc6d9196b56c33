"""PlughostSettings: one frozen object merging every configuration source.

Highest priority first:

1. keyword arguments (CLI flags, or a host passing overrides)
2. ``PLUGHOST_*`` environment variables, ``__`` separating sections
   (``PLUGHOST_REGISTRY__TOKEN``)
3. ``plughost.toml``, found by walking up from the working directory
4. defaults on the section models

Keep the registry token out of the TOML file; set it in the environment.
"""

from __future__ import annotations

import threading
import tomllib
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from plughost.config.discovery import find_config
from plughost.config.models import PlughostConfig, PluginsConfig, RegistryConfig, RouterConfig
from plughost.retry import RetryPolicy


def _read_toml(path: Path) -> dict[str, Any]:
    """Parse *path* and validate it against the section models.

    Returns only the keys the file sets, so env vars and defaults still
    fill everything else.
    """
    import click

    try:
        with path.open("rb") as fh:
            raw = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc

    try:
        config = PlughostConfig.model_validate(raw)
    except ValidationError as exc:
        msg = f"Invalid configuration in {path}: {exc}"
        raise click.ClickException(msg) from exc
    return config.model_dump(exclude_unset=True)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by an already-located ``plughost.toml``."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data = _read_toml(toml_path) if toml_path and toml_path.is_file() else {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return dict(self._data)


# BaseSettings offers no per-instance hook for extra sources, so the TOML
# path for the instance being built is parked here during construction.
_construction = threading.local()


@contextmanager
def _toml_source(path: Path | None) -> Iterator[None]:
    _construction.toml_path = path
    try:
        yield
    finally:
        _construction.toml_path = None


class PlughostSettings(BaseSettings):
    """Unified settings for the plugin host and the ``plughost`` CLI.

    Attributes:
        root: Directory relative paths resolve against (parent of
            ``plughost.toml``, or CWD if no config found).
        config_path: The TOML file in effect, if any.
        plugin_dir: Explicit plugin root override (``--plugin-dir``).
    """

    model_config = {
        "frozen": True,
        "env_prefix": "PLUGHOST_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None
    plugin_dir: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    router: RouterConfig = Field(default_factory=RouterConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: init kwargs, env vars, TOML, defaults. No dotenv or secrets dir."""
        toml = TomlSettingsSource(settings_cls, getattr(_construction, "toml_path", None))
        return init_settings, env_settings, toml

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> PlughostSettings:
        """Build settings for a CLI run or a host process.

        An explicit *config_path* that does not exist means "no config"
        rather than an error. *root* defaults to the config file's
        directory, else the current directory. Keyword flags win over
        every other source.
        """
        if config_path:
            candidate = Path(config_path)
            toml_path = candidate if candidate.is_file() else None
        else:
            toml_path = find_config(root)

        if root is None:
            root = toml_path.parent if toml_path is not None else Path.cwd()

        with _toml_source(toml_path):
            return cls(root=root, config_path=toml_path, **cli_flags)

    @property
    def plugin_root(self) -> Path:
        """Directory scanned for plugins."""
        if self.plugin_dir is not None:
            return self.plugin_dir
        directory = Path(self.plugins.directory)
        if directory.is_absolute():
            return directory
        return self.root / directory

    @property
    def retry_policy(self) -> RetryPolicy:
        """Retry policy for module loads and registry calls."""
        return RetryPolicy(
            attempts=self.plugins.retry_attempts,
            delay=self.plugins.retry_delay,
        )
