#!/usr/bin/env python3
"""Integration test for MarketplaceSession: search, select, review and install."""

import asyncio
from pathlib import Path

import pytest

from fake_catalog import FakeCatalogClient, make_item

from marketplace.config_manager import ConfigManager
from marketplace.modules.catalog_client import StaticCatalogClient
from marketplace.modules.errors import EmptyConfirmation, InstallFailure
from marketplace.modules.models import DependencyType, InstallState, ProjectKind, Provider, SearchContext
from marketplace.modules.session import MarketplaceSession


CONFIG_DIR = Path(__file__).parent / "config"
FABRIC_1_20 = SearchContext(game_version="1.20.1", loader="fabric")


def _session_from_config(kind: ProjectKind, messages=None):
    config_manager = ConfigManager(CONFIG_DIR)
    client = StaticCatalogClient.from_config(config_manager, kind)
    callback = None
    if messages is not None:
        callback = lambda message, log_type: messages.append((log_type, message))
    session = MarketplaceSession.from_config(client, config_manager.get_marketplace_config(kind), callback)
    return client, session


def test_search_select_review_install():
    """Walk the whole flow against the shipped offline catalog"""
    messages = []
    client, session = _session_from_config(ProjectKind.MOD, messages)
    progress = []
    finished = []
    session.add_progress_callback(progress.append)
    session.add_install_callback(finished.append)

    async def scenario():
        first_page = await session.load_context(FABRIC_1_20)
        assert first_page[0].title == "Fabric API"
        assert len(first_page) == 7

        iris = (await session.search.submit("iris"))[0]
        mod_menu = (await session.search.submit("mod menu"))[0]
        assert session.toggle(iris) == 1
        assert session.toggle(mod_menu) == 2

        review = await session.request_review()
        summary = [(dep.item.title, dep.dependency_type) for dep in session.resolved]
        assert summary == [
            ("Sodium", DependencyType.REQUIRED),
            ("Fabric API", DependencyType.REQUIRED),
            ("Cloth Config API", DependencyType.OPTIONAL),
        ]
        assert [item.title for item in review.confirm()] == ["Iris Shaders", "Mod Menu", "Sodium", "Fabric API"]
        return await session.install()

    result = asyncio.run(scenario())

    assert result.succeeded
    assert [key for key, _ in client.installed] == [
        (Provider.MODRINTH, "YL57xq9U"),
        (Provider.MODRINTH, "mOgUt4GM"),
        (Provider.MODRINTH, "AANobbMI"),
        (Provider.MODRINTH, "P7dR8mSH"),
    ]
    assert len(session.selection) == 0
    assert session.review is None
    assert progress[-1].current == progress[-1].total == 4
    assert finished == [result]
    assert any(log_type == "success" for log_type, _ in messages)


def test_optional_dependency_can_be_opted_in():
    client, session = _session_from_config(ProjectKind.MOD)

    async def scenario():
        await session.load_context(FABRIC_1_20)
        session.toggle(client.get_item(Provider.MODRINTH, "mOgUt4GM"))
        review = await session.request_review()
        review.toggle_choice((Provider.MODRINTH, "9s6osm5g"))
        return await session.install()

    result = asyncio.run(scenario())

    assert [item.title for item in result.installed] == ["Mod Menu", "Fabric API", "Cloth Config API"]


def test_cross_provider_dependencies_on_curseforge():
    client, session = _session_from_config(ProjectKind.MOD)
    session.set_context(FABRIC_1_20)
    session.toggle(client.get_item(Provider.CURSEFORGE, "310111"))

    review = asyncio.run(session.request_review())

    assert [entry.item.key for entry in review.entries()] == [
        (Provider.CURSEFORGE, "310111"),
        (Provider.CURSEFORGE, "419699"),
        (Provider.CURSEFORGE, "348521"),
    ]


def test_proxy_plugin_session_searches_modrinth_only():
    client, session = _session_from_config(ProjectKind.PLUGIN)
    session.search.provider = Provider.HANGAR

    results = asyncio.run(session.load_context(SearchContext(game_version="3.3.0-SNAPSHOT", loader="Velocity")))

    assert session.search.provider == Provider.MODRINTH
    assert [item.title for item in results] == ["LuckPerms"]


def test_resolution_failure_still_opens_review():
    client = FakeCatalogClient()
    a, b = make_item("a"), make_item("b")
    client.add(a, required=(b,))
    client.failing_lookups.add(a.key)
    session = MarketplaceSession(client, ProjectKind.MOD)
    session.toggle(a)

    review = asyncio.run(session.request_review())

    assert review.confirm() == [a]
    assert session.resolution_error is not None
    assert session.resolving is False


def test_closing_review_keeps_selection():
    client = FakeCatalogClient()
    a = make_item("a")
    session = MarketplaceSession(client, ProjectKind.MOD)
    session.toggle(a)

    asyncio.run(session.request_review())
    session.close_review()

    assert session.review is None
    assert session.selection.contains(a)
    with pytest.raises(RuntimeError):
        asyncio.run(session.install())


def test_install_failure_keeps_selection():
    client = FakeCatalogClient()
    a, b = make_item("a"), make_item("b")
    client.failing_installs.add(b.key)
    session = MarketplaceSession(client, ProjectKind.MOD)
    session.toggle(a)
    session.toggle(b)

    async def scenario():
        await session.request_review()
        await session.install()

    with pytest.raises(InstallFailure) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.completed == 1
    assert len(session.selection) == 2
    assert session.review is not None
    assert session.installing is False


def test_cancelled_install_releases_the_session():
    client = FakeCatalogClient()
    a, b = make_item("a"), make_item("b")
    session = MarketplaceSession(client, ProjectKind.MOD)
    session.toggle(a)
    session.toggle(b)

    async def scenario():
        started = asyncio.Event()
        blocker = asyncio.Event()

        async def hook(key):
            if key == b.key:
                started.set()
                await blocker.wait()

        client.install_hook = hook
        await session.request_review()
        task = asyncio.ensure_future(session.install())
        await started.wait()
        assert session.installing is True

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert session.installing is False
    assert session.orchestrator.state == InstallState.FAILED
    assert session.log_manager.session_active is False
    assert len(session.selection) == 2

    # The session is usable again
    asyncio.run(session.request_review())
    session.abandon()
    assert len(session.selection) == 0


def test_empty_confirmation_installs_nothing():
    client = FakeCatalogClient()
    a = make_item("a")
    session = MarketplaceSession(client, ProjectKind.MOD)
    session.toggle(a)

    async def scenario():
        review = await session.request_review()
        review.toggle_choice(a.key)
        await session.install()

    with pytest.raises(EmptyConfirmation):
        asyncio.run(scenario())

    assert client.install_calls == []
    assert session.selection.contains(a)


def test_sessions_do_not_share_state():
    mods_client = FakeCatalogClient()
    plugins_client = FakeCatalogClient()
    mods = MarketplaceSession(mods_client, ProjectKind.MOD)
    plugins = MarketplaceSession(plugins_client, ProjectKind.PLUGIN, provider=Provider.SPIGET)

    mods.toggle(make_item("sodium"))
    plugins.toggle(make_item("9089", Provider.SPIGET))
    plugins.abandon()

    assert len(mods.selection) == 1
    assert len(plugins.selection) == 0

    asyncio.run(mods.load_context(FABRIC_1_20))
    assert plugins.context is None
    assert plugins_client.search_calls == []
    assert len(mods_client.search_calls) == 1


if __name__ == "__main__":
    test_search_select_review_install()
    test_optional_dependency_can_be_opted_in()
    test_cross_provider_dependencies_on_curseforge()
    test_resolution_failure_still_opens_review()
    test_install_failure_keeps_selection()
    test_sessions_do_not_share_state()
    print("✅ MarketplaceSession tests passed")
