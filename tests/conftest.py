"""Shared pytest fixtures and test helpers for plughost tests."""

from __future__ import annotations

import textwrap
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from plughost.config.settings import PlughostSettings
from plughost.errors import RegistrationError
from plughost.host import HostClient

APP_ID = "1234"


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer env vars from leaking into settings."""
    for name in (
        "PLUGHOST_CONFIG",
        "PLUGHOST_REGISTRY__TOKEN",
        "PLUGHOST_REGISTRY__APPLICATION_ID",
        "PLUGHOST_PLUGINS__ENABLED",
        "PLUGHOST_PLUGINS__DIRECTORY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _forget_plugin_modules() -> Generator[None]:
    """Drop plugin modules imported during a test from sys.modules."""
    import sys

    from plughost.plugins.loader import MODULE_PREFIX

    yield
    for name in [n for n in sys.modules if n.startswith(MODULE_PREFIX)]:
        del sys.modules[name]


@pytest.fixture
def plugin_root(tmp_path: Path) -> Path:
    """Empty plugin root directory."""
    root = tmp_path / "plugins"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path: Path, plugin_root: Path) -> PlughostSettings:
    """Settings pointing at the temporary plugin root, with zero retry delay."""
    return PlughostSettings(
        root=tmp_path,
        plugin_dir=plugin_root,
        plugins={"retry_delay": 0},
        registry={"token": "test-token", "application_id": APP_ID},
    )


@pytest.fixture
def client() -> HostClient:
    """A ready host client with an application id."""
    return HostClient(application_id=APP_ID, ready=True)


@pytest.fixture
def fake_registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def sleeps() -> list[float]:
    """Delays passed to the ``sleep`` fixture, in call order."""
    return []


@pytest.fixture
def sleep(sleeps: list[float]):
    """Non-blocking sleep that records each requested delay."""

    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeRegistry:
    """In-memory command table with call counting and failure injection.

    ``fail_fetch`` / ``fail_replace`` are the number of upcoming calls
    that raise RegistrationError before calls start succeeding again.
    """

    def __init__(self, table: list[dict[str, Any]] | None = None) -> None:
        self.table: list[dict[str, Any]] = [dict(e) for e in table or []]
        self.fetch_calls = 0
        self.replace_calls = 0
        self.fail_fetch = 0
        self.fail_replace = 0

    @property
    def calls(self) -> int:
        return self.fetch_calls + self.replace_calls

    def names(self) -> set[str]:
        return {entry["name"] for entry in self.table}

    async def fetch_commands(self, application_id: str) -> list[dict[str, Any]]:
        self.fetch_calls += 1
        if self.fail_fetch:
            self.fail_fetch -= 1
            raise RegistrationError("fetch unavailable", status_code=503)
        return [dict(e) for e in self.table]

    async def replace_commands(
        self,
        application_id: str,
        commands: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        self.replace_calls += 1
        if self.fail_replace:
            self.fail_replace -= 1
            raise RegistrationError("replace unavailable", status_code=503)
        self.table = [dict(e) for e in commands]
        return self.table


class FakeInteraction:
    """Interaction double recording replies."""

    def __init__(self, command_name: str, *, chat_input: bool = True) -> None:
        self.command_name = command_name
        self._chat_input = chat_input
        self.replies: list[tuple[str, bool]] = []

    def is_chat_input_command(self) -> bool:
        return self._chat_input

    async def reply(self, content: str, *, ephemeral: bool = False) -> None:
        self.replies.append((content, ephemeral))


# ---------------------------------------------------------------------------
# Plugin source helpers
# ---------------------------------------------------------------------------


def plugin_source(
    name: str,
    commands: list[str] | None = None,
    *,
    fail_init: bool = False,
    fail_execute: bool = False,
    class_name: str = "TestPlugin",
) -> str:
    """Source of a plugin module that records init calls on the class."""
    declared = [{"name": c, "description": f"{c} command"} for c in commands or []]
    return textwrap.dedent(
        f"""\
        from plughost.plugins.base import Plugin


        class {class_name}(Plugin):
            name = {name!r}
            init_calls = 0
            handled = []

            async def init(self, client):
                type(self).init_calls += 1
                if {fail_init!r}:
                    raise RuntimeError("init exploded")
                self.client = client

            def get_slash_commands(self):
                return {declared!r}

            async def execute_slash_command(self, interaction):
                if {fail_execute!r}:
                    raise RuntimeError("handler exploded")
                type(self).handled.append(interaction.command_name)
                await interaction.reply("handled by " + self.name)


        PLUGIN_CLASS = {class_name}
        """
    )


def write_plugin_dir(
    root: Path,
    dirname: str,
    name: str,
    commands: list[str] | None = None,
    *,
    enabled: bool = True,
    version: str | None = None,
    module: str = "__init__.py",
    **source_kwargs: Any,
) -> Path:
    """Create a directory plugin with a sidecar; return the entry module path."""
    directory = root / dirname
    directory.mkdir()
    sidecar = f"name: {name}\nenabled: {'true' if enabled else 'false'}\n"
    if version is not None:
        sidecar += f"version: '{version}'\n"
    (directory / "plugin.yml").write_text(sidecar)
    entry = directory / module
    entry.write_text(plugin_source(name, commands, **source_kwargs))
    return entry


def write_plugin_file(
    root: Path,
    stem: str,
    name: str,
    commands: list[str] | None = None,
    **source_kwargs: Any,
) -> Path:
    """Create a single-file plugin in the plugin root."""
    entry = root / f"{stem}.py"
    entry.write_text(plugin_source(name, commands, **source_kwargs))
    return entry


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Undo configure_logging() calls made by CLI invocations."""
    import logging

    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    host = logging.getLogger("plughost")
    host_level = host.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    host.setLevel(host_level)
