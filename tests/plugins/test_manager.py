"""Tests for PluginManager — loading, lifecycle, reload, and observers."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import pytest

from plughost.config.settings import PlughostSettings
from plughost.errors import ConfigurationError, LoadError, PluginNotFoundError, RegistrationError
from plughost.host import INTERACTION_EVENT, READY_EVENT, HostClient
from plughost.plugins import PluginManager, hookimpl
from plughost.runtime import _log_loop_exception
from tests.conftest import (
    APP_ID,
    FakeInteraction,
    FakeRegistry,
    write_plugin_dir,
    write_plugin_file,
)


_FLAKY_INIT = """\
from pathlib import Path

from plughost.plugins.base import Plugin

MARKER = Path({marker!r})


class Flaky(Plugin):
    name = "Flaky"

    async def init(self, client):
        if not MARKER.exists():
            MARKER.touch()
            raise RuntimeError("first init fails")

    async def execute_slash_command(self, interaction):
        pass


PLUGIN_CLASS = Flaky
"""

_HELPER_PACKAGE = """\
from plughost.plugins.base import Plugin

from .helpers import NAMES


class Music(Plugin):
    name = "Music"

    async def init(self, client):
        pass

    def get_slash_commands(self):
        return [{"name": n} for n in NAMES]

    async def execute_slash_command(self, interaction):
        pass


PLUGIN_CLASS = Music
"""


@pytest.fixture
def manager(client, settings, fake_registry, sleep) -> PluginManager:
    return PluginManager(client, settings, registry=fake_registry, sleep=sleep)


class TestConstruction:
    def test_requires_token_without_registry(self, client, tmp_path: Path) -> None:
        settings = PlughostSettings(root=tmp_path)
        with pytest.raises(ConfigurationError, match="token"):
            PluginManager(client, settings)

    @pytest.mark.asyncio
    async def test_builds_registry_client_from_settings(self, client, settings) -> None:
        manager = PluginManager(client, settings)
        await manager.aclose()

    def test_plugin_dir(self, manager: PluginManager, plugin_root: Path) -> None:
        assert manager.plugin_dir == plugin_root


class TestLoadPlugins:
    @pytest.mark.asyncio
    async def test_one_entry_per_valid_directory(
        self, manager: PluginManager, plugin_root: Path
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play"])
        write_plugin_dir(plugin_root, "admin", "Admin", ["ban"], module="admin.py")
        write_plugin_file(plugin_root, "hello", "Hello")
        (plugin_root / "broken").mkdir()

        loaded = await manager.load_plugins()
        assert sorted(loaded) == ["Admin", "Hello", "Music"]
        assert sorted(p.name for p in manager.get_all_plugins()) == ["Admin", "Hello", "Music"]

    @pytest.mark.asyncio
    async def test_auto_enable_registers_commands(
        self, manager: PluginManager, plugin_root: Path, fake_registry: FakeRegistry
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play", "skip"])
        await manager.load_plugins()
        music = manager.get_plugin("Music")
        assert music is not None
        assert music.enabled is True
        assert fake_registry.names() == {"play", "skip"}

    @pytest.mark.asyncio
    async def test_sidecar_disabled_not_enabled(
        self, manager: PluginManager, plugin_root: Path, fake_registry: FakeRegistry
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play"], enabled=False)
        await manager.load_plugins()
        assert manager.get_plugin("Music").enabled is False
        assert fake_registry.calls == 0

    @pytest.mark.asyncio
    async def test_global_switch_disables_auto_enable(
        self, client, tmp_path: Path, plugin_root: Path, fake_registry: FakeRegistry, sleep
    ) -> None:
        settings = PlughostSettings(
            root=tmp_path, plugin_dir=plugin_root, plugins={"enabled": False, "retry_delay": 0}
        )
        manager = PluginManager(client, settings, registry=fake_registry, sleep=sleep)
        write_plugin_dir(plugin_root, "music", "Music", ["play"])
        await manager.load_plugins()
        assert manager.get_plugin("Music").enabled is False
        assert fake_registry.calls == 0

    @pytest.mark.asyncio
    async def test_failing_plugin_does_not_block_siblings(
        self, manager: PluginManager, plugin_root: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play"])
        write_plugin_dir(plugin_root, "bad", "Bad", fail_init=True)
        with caplog.at_level(logging.ERROR, logger="plughost.plugins.manager"):
            loaded = await manager.load_plugins()
        assert loaded == ["Music"]
        assert manager.get_plugin("Bad") is None
        assert "Error loading plugin" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_root_loads_nothing(self, client, tmp_path: Path, fake_registry) -> None:
        settings = PlughostSettings(root=tmp_path, plugin_dir=tmp_path / "absent")
        manager = PluginManager(client, settings, registry=fake_registry)
        assert await manager.load_plugins() == []

    @pytest.mark.asyncio
    async def test_path_cache_populated(self, manager: PluginManager, plugin_root: Path) -> None:
        entry = write_plugin_dir(plugin_root, "music", "Music")
        await manager.load_plugins()
        assert manager.path_cache.get("Music") == entry


class TestLoadPlugin:
    @pytest.mark.asyncio
    async def test_missing_name_fails_without_insert(
        self, manager: PluginManager, plugin_root: Path, sleeps: list[float]
    ) -> None:
        entry = write_plugin_file(plugin_root, "nameless", "")
        with pytest.raises(LoadError, match="missing required 'name'"):
            await manager.load_plugin(entry)
        assert manager.get_all_plugins() == []
        assert len(sleeps) == 2

    @pytest.mark.asyncio
    async def test_init_receives_client(
        self, manager: PluginManager, plugin_root: Path, client: HostClient
    ) -> None:
        plugin = await manager.load_plugin(write_plugin_file(plugin_root, "hello", "Hello"))
        assert plugin.client is client
        assert type(plugin).init_calls == 1

    @pytest.mark.asyncio
    async def test_init_failure_wrapped(
        self, manager: PluginManager, plugin_root: Path, sleeps: list[float]
    ) -> None:
        entry = write_plugin_file(plugin_root, "bad", "Bad", fail_init=True)
        with pytest.raises(LoadError, match="init failed for Bad"):
            await manager.load_plugin(entry)
        assert manager.get_plugin("Bad") is None
        assert len(sleeps) == 2

    @pytest.mark.asyncio
    async def test_init_failure_retried_then_loaded(
        self, manager: PluginManager, tmp_path: Path, plugin_root: Path, sleeps: list[float]
    ) -> None:
        entry = plugin_root / "flaky.py"
        entry.write_text(_FLAKY_INIT.format(marker=str(tmp_path / "first-init")))
        plugin = await manager.load_plugin(entry)
        assert manager.get_plugin("Flaky") is plugin
        assert len(sleeps) == 1

    @pytest.mark.asyncio
    async def test_sidecar_version_applied(self, manager: PluginManager, plugin_root: Path) -> None:
        entry = write_plugin_dir(plugin_root, "music", "Music", version="2.5")
        plugin = await manager.load_plugin(entry)
        assert plugin.version == "2.5"

    @pytest.mark.asyncio
    async def test_missing_sidecar_defaults_enabled(
        self, manager: PluginManager, plugin_root: Path, fake_registry: FakeRegistry
    ) -> None:
        entry = write_plugin_dir(plugin_root, "music", "Music", ["play"])
        (entry.parent / "plugin.yml").unlink()
        plugin = await manager.load_plugin(entry)
        assert plugin.enabled is True
        assert fake_registry.names() == {"play"}

    @pytest.mark.asyncio
    async def test_registration_failure_keeps_plugin_loaded(
        self, manager: PluginManager, plugin_root: Path, fake_registry: FakeRegistry
    ) -> None:
        fake_registry.fail_fetch = 3
        entry = write_plugin_dir(plugin_root, "music", "Music", ["play"])
        with pytest.raises(RegistrationError):
            await manager.load_plugin(entry)
        music = manager.get_plugin("Music")
        assert music is not None
        assert music.enabled is True
        assert fake_registry.table == []

    @pytest.mark.asyncio
    async def test_duplicate_name_last_wins(
        self, manager: PluginManager, plugin_root: Path
    ) -> None:
        await manager.load_plugin(write_plugin_dir(plugin_root, "one", "Same"))
        second = await manager.load_plugin(write_plugin_dir(plugin_root, "two", "Same"))
        assert manager.get_plugin("Same") is second
        assert len(manager.get_all_plugins()) == 1


class TestEnableDisable:
    @pytest.mark.asyncio
    async def test_disable_then_enable_restores_commands(
        self, manager: PluginManager, plugin_root: Path, fake_registry: FakeRegistry
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play", "skip"])
        await manager.load_plugins()

        await manager.disable_plugin("Music")
        assert manager.get_plugin("Music").enabled is False
        assert fake_registry.names() == set()

        await manager.enable_plugin("Music")
        assert manager.get_plugin("Music").enabled is True
        assert fake_registry.names() == {"play", "skip"}

    @pytest.mark.asyncio
    async def test_disabling_one_plugin_keeps_others(
        self, manager: PluginManager, plugin_root: Path, fake_registry: FakeRegistry
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play", "skip"])
        write_plugin_dir(plugin_root, "admin", "Admin", ["ban"])
        await manager.load_plugins()
        assert fake_registry.names() == {"play", "skip", "ban"}

        await manager.disable_plugin("Admin")
        assert fake_registry.names() == {"play", "skip"}

    @pytest.mark.asyncio
    async def test_unknown_name_no_remote_call(
        self, manager: PluginManager, fake_registry: FakeRegistry
    ) -> None:
        with pytest.raises(PluginNotFoundError, match="Plugin Ghost not found"):
            await manager.enable_plugin("Ghost")
        with pytest.raises(PluginNotFoundError):
            await manager.disable_plugin("Ghost")
        with pytest.raises(PluginNotFoundError):
            await manager.reload_plugin("Ghost")
        assert fake_registry.calls == 0

    @pytest.mark.asyncio
    async def test_enable_retries_then_succeeds(
        self,
        manager: PluginManager,
        plugin_root: Path,
        fake_registry: FakeRegistry,
        sleeps: list[float],
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play"], enabled=False)
        await manager.load_plugins()
        fake_registry.fail_fetch = 2
        await manager.enable_plugin("Music")
        assert len(sleeps) == 2
        assert fake_registry.names() == {"play"}

    @pytest.mark.asyncio
    async def test_enable_exhausted_stays_enabled(
        self, manager: PluginManager, plugin_root: Path, fake_registry: FakeRegistry
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play"], enabled=False)
        await manager.load_plugins()
        fake_registry.table = [{"name": "ping"}]
        fake_registry.fail_replace = 3
        with pytest.raises(RegistrationError):
            await manager.enable_plugin("Music")
        assert manager.get_plugin("Music").enabled is True
        assert fake_registry.table == [{"name": "ping"}]

    @pytest.mark.asyncio
    async def test_enable_installs_router_once(
        self, manager: PluginManager, plugin_root: Path, client: HostClient
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play"])
        write_plugin_dir(plugin_root, "admin", "Admin", ["ban"])
        await manager.load_plugins()
        await manager.disable_plugin("Music")
        await manager.enable_plugin("Music")
        assert len(client.listeners(INTERACTION_EVENT)) == 1

    @pytest.mark.asyncio
    async def test_commandless_plugin_does_not_install_router(
        self, manager: PluginManager, plugin_root: Path, client: HostClient
    ) -> None:
        write_plugin_file(plugin_root, "hello", "Hello")
        await manager.load_plugins()
        assert manager.get_plugin("Hello").enabled is True
        assert client.listeners(INTERACTION_EVENT) == []


class TestReload:
    @pytest.mark.asyncio
    async def test_reload_uses_cached_path(
        self,
        manager: PluginManager,
        plugin_root: Path,
        fake_registry: FakeRegistry,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play"])
        await manager.load_plugins()
        old = manager.get_plugin("Music")

        def _no_rescan(*args, **kwargs):
            raise AssertionError("reload should not rescan")

        monkeypatch.setattr("plughost.plugins.manager.find_plugin_path", _no_rescan)
        fresh = await manager.reload_plugin("Music")

        assert fresh is not old
        assert manager.get_plugin("Music") is fresh
        assert type(fresh).init_calls == 1
        assert fresh.enabled is True
        assert fake_registry.names() == {"play"}

    @pytest.mark.asyncio
    async def test_reload_picks_up_edits(
        self, manager: PluginManager, plugin_root: Path, fake_registry: FakeRegistry
    ) -> None:
        entry = write_plugin_dir(plugin_root, "music", "Music", ["play"])
        await manager.load_plugins()
        from tests.conftest import plugin_source

        entry.write_text(plugin_source("Music", ["play", "queue"]))
        await manager.reload_plugin("Music")
        assert fake_registry.names() == {"play", "queue"}

    @pytest.mark.asyncio
    async def test_reload_rescans_when_cached_path_gone(
        self, manager: PluginManager, plugin_root: Path
    ) -> None:
        entry = write_plugin_dir(plugin_root, "music", "Music", ["play"])
        await manager.load_plugins()
        moved = plugin_root / "music2"
        entry.parent.rename(moved)

        fresh = await manager.reload_plugin("Music")
        assert fresh.name == "Music"
        assert manager.path_cache.get("Music") == moved / "__init__.py"

    @pytest.mark.asyncio
    async def test_reload_missing_source(self, manager: PluginManager, plugin_root: Path) -> None:
        entry = write_plugin_file(plugin_root, "hello", "Hello")
        await manager.load_plugins()
        entry.unlink()
        with pytest.raises(LoadError, match="could not find plugin file for Hello"):
            await manager.reload_plugin("Hello")
        assert manager.get_plugin("Hello") is None
        assert "Hello" not in manager.path_cache

    @pytest.mark.asyncio
    async def test_reload_reexecutes_package_helpers(
        self, manager: PluginManager, plugin_root: Path, fake_registry: FakeRegistry
    ) -> None:
        entry = write_plugin_dir(plugin_root, "music", "Music")
        entry.write_text(_HELPER_PACKAGE)
        helpers = entry.parent / "helpers.py"
        helpers.write_text("NAMES = ['play']\n")
        await manager.load_plugins()
        assert fake_registry.names() == {"play"}

        helpers.write_text("NAMES = ['play', 'queue']\n")
        await manager.reload_plugin("Music")
        assert fake_registry.names() == {"play", "queue"}


class TestRoutingIntegration:
    @pytest.mark.asyncio
    async def test_disabled_plugin_not_routed(
        self, manager: PluginManager, plugin_root: Path, client: HostClient
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play"])
        await manager.load_plugins()
        interaction = FakeInteraction("play")
        await client.emit(INTERACTION_EVENT, interaction)
        assert interaction.replies == [("handled by Music", False)]

        await manager.disable_plugin("Music")
        ignored = FakeInteraction("play")
        await client.emit(INTERACTION_EVENT, ignored)
        assert ignored.replies == []


class TestStartup:
    @pytest.fixture
    def pending(self) -> HostClient:
        return HostClient(application_id=APP_ID)

    @pytest.fixture(autouse=True)
    def _keep_excepthook(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "excepthook", sys.excepthook)

    @pytest.mark.asyncio
    async def test_ready_then_load_then_route(
        self, pending: HostClient, settings, fake_registry: FakeRegistry, sleep, plugin_root: Path
    ) -> None:
        write_plugin_dir(plugin_root, "music", "Music", ["play"])
        manager = PluginManager(pending, settings, registry=fake_registry, sleep=sleep)

        await manager.start()
        assert manager.get_all_plugins() == []
        assert fake_registry.calls == 0

        await pending.mark_ready()
        assert [p.name for p in manager.get_all_plugins()] == ["Music"]
        assert fake_registry.names() == {"play"}

        interaction = FakeInteraction("play")
        await pending.emit(INTERACTION_EVENT, interaction)
        assert interaction.replies == [("handled by Music", False)]

    @pytest.mark.asyncio
    async def test_already_ready_loads_immediately(
        self, manager: PluginManager, plugin_root: Path, client: HostClient
    ) -> None:
        write_plugin_file(plugin_root, "hello", "Hello")
        await manager.start()
        assert manager.get_plugin("Hello") is not None
        assert client.listeners(READY_EVENT) == []

    @pytest.mark.asyncio
    async def test_repeated_ready_loads_once(
        self, pending: HostClient, settings, fake_registry: FakeRegistry, sleep, plugin_root: Path
    ) -> None:
        write_plugin_file(plugin_root, "hello", "Hello")
        manager = PluginManager(pending, settings, registry=fake_registry, sleep=sleep)
        await manager.start()
        await pending.mark_ready()
        first = manager.get_plugin("Hello")
        await pending.mark_ready()
        assert manager.get_plugin("Hello") is first

    @pytest.mark.asyncio
    async def test_installs_loop_handler(self, manager: PluginManager) -> None:
        loop = asyncio.get_running_loop()
        previous = loop.get_exception_handler()
        try:
            await manager.start()
            assert loop.get_exception_handler() is _log_loop_exception
        finally:
            loop.set_exception_handler(previous)


class _Recorder:
    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    @hookimpl
    def plugin_loaded(self, plugin) -> None:
        self.events.append(("loaded", plugin.name))

    @hookimpl
    def plugin_enabled(self, plugin) -> None:
        self.events.append(("enabled", plugin.name))

    @hookimpl
    def plugin_disabled(self, plugin) -> None:
        self.events.append(("disabled", plugin.name))

    @hookimpl
    def plugin_reloaded(self, plugin) -> None:
        self.events.append(("reloaded", plugin.name))


class _Exploding:
    @hookimpl
    def plugin_loaded(self, plugin) -> None:
        raise RuntimeError("observer exploded")


class TestObservers:
    @pytest.mark.asyncio
    async def test_lifecycle_events(self, manager: PluginManager, plugin_root: Path) -> None:
        recorder = _Recorder()
        manager.add_observer(recorder)
        write_plugin_dir(plugin_root, "music", "Music", ["play"])
        await manager.load_plugins()
        await manager.reload_plugin("Music")
        assert recorder.events == [
            ("loaded", "Music"),
            ("enabled", "Music"),
            ("disabled", "Music"),
            ("loaded", "Music"),
            ("enabled", "Music"),
            ("reloaded", "Music"),
        ]

    @pytest.mark.asyncio
    async def test_removed_observer_silent(self, manager: PluginManager, plugin_root: Path) -> None:
        recorder = _Recorder()
        manager.add_observer(recorder)
        manager.remove_observer(recorder)
        await manager.load_plugin(write_plugin_file(plugin_root, "hello", "Hello"))
        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_observer_failure_is_warning(
        self, manager: PluginManager, plugin_root: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        manager.add_observer(_Exploding())
        with caplog.at_level(logging.WARNING, logger="plughost.plugins.manager"):
            plugin = await manager.load_plugin(write_plugin_file(plugin_root, "hello", "Hello"))
        assert manager.get_plugin("Hello") is plugin
        assert "Observer hook plugin_loaded failed" in caplog.text
