"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, plughost.toml only contains overrides.
A fresh deployment needs only ``[registry] application_id`` plus the token
in ``PLUGHOST_REGISTRY__TOKEN``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_API_BASE_URL = "https://discord.com/api/v10"
DEFAULT_FAILURE_MESSAGE = "There was an error executing this command!"


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    directory: str = "plugins"
    # Global administrative switch: when off, plugins load but never auto-enable.
    enabled: bool = True
    retry_attempts: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=1.0, ge=0)


class RegistryConfig(BaseModel):
    """[registry] section."""

    model_config = {"frozen": True}

    base_url: str = DEFAULT_API_BASE_URL
    token: str = ""
    application_id: str | None = None
    timeout: float = 30.0


class RouterConfig(BaseModel):
    """[router] section."""

    model_config = {"frozen": True}

    failure_message: str = DEFAULT_FAILURE_MESSAGE


class PlughostConfig(BaseModel):
    """Root configuration composing all sections.

    Validates the whole ``plughost.toml`` document, so a misspelled
    section name is an error rather than silently ignored.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    router: RouterConfig = Field(default_factory=RouterConfig)
