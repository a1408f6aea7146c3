#!/usr/bin/env python3
"""Test script for InstallOrchestrator progress reporting and fail-fast behaviour."""

import asyncio

import pytest

from fake_catalog import FakeCatalogClient, make_item

from marketplace.modules.errors import EmptyConfirmation, InstallFailure
from marketplace.modules.install_orchestrator import InstallOrchestrator
from marketplace.modules.models import InstallState
from marketplace.modules.selection import SelectionSet
from marketplace.utils.log_manager import InstallationLogManager


def _setup(*items):
    client = FakeCatalogClient()
    selection = SelectionSet()
    for item in items:
        selection.toggle(item)
    return client, selection


def test_second_item_failure_stops_the_run():
    items = [make_item("one"), make_item("two"), make_item("three")]
    client, selection = _setup(*items)
    client.failing_installs.add(items[1].key)
    orchestrator = InstallOrchestrator(client, selection)

    with pytest.raises(InstallFailure) as excinfo:
        asyncio.run(orchestrator.run(items))

    failure = excinfo.value
    assert failure.item == items[1]
    assert failure.completed == 1
    assert failure.remaining == 2
    assert client.install_calls == [items[0].key, items[1].key]
    assert orchestrator.state == InstallState.FAILED
    assert orchestrator.installed == [items[0]]
    # Selection survives a failed run
    assert len(selection) == 3


def test_success_reports_progress_and_clears_selection():
    items = [make_item("one"), make_item("two"), make_item("three")]
    client, selection = _setup(*items)
    orchestrator = InstallOrchestrator(client, selection)

    updates = []
    completed = []
    orchestrator.add_progress_callback(updates.append)
    orchestrator.add_completion_callback(completed.append)

    result = asyncio.run(orchestrator.run(items))

    assert result.succeeded
    assert result.installed == items
    assert orchestrator.state == InstallState.SUCCEEDED
    assert [(u.current, u.name) for u in updates] == [(0, "ONE"), (1, "TWO"), (2, "THREE"), (3, "THREE")]
    assert all(u.total == 3 for u in updates)
    assert updates[-1].finished
    assert updates[-1].percentage == 100
    assert orchestrator.progress == updates[-1]
    assert len(selection) == 0
    assert completed == [result]


def test_progress_is_monotonic_and_bounded():
    items = [make_item(f"item{i}") for i in range(5)]
    client, selection = _setup(*items)
    orchestrator = InstallOrchestrator(client, selection)
    currents = []
    orchestrator.add_progress_callback(lambda progress: currents.append(progress.current))

    asyncio.run(orchestrator.run(items))

    assert currents == sorted(currents)
    assert max(currents) == len(items)


def test_empty_list_is_rejected_before_any_call():
    client, selection = _setup()
    orchestrator = InstallOrchestrator(client, selection)

    with pytest.raises(EmptyConfirmation):
        asyncio.run(orchestrator.run([]))

    assert client.install_calls == []
    assert orchestrator.state == InstallState.IDLE


def test_orchestrator_runs_only_once():
    item = make_item("one")
    client, selection = _setup(item)
    orchestrator = InstallOrchestrator(client, selection)
    asyncio.run(orchestrator.run([item]))

    with pytest.raises(RuntimeError):
        asyncio.run(orchestrator.run([item]))


def test_installation_log_reaches_ui_callback():
    items = [make_item("one"), make_item("two")]
    client, selection = _setup(*items)
    client.failing_installs.add(items[1].key)
    messages = []
    log_manager = InstallationLogManager(lambda message, log_type: messages.append((log_type, message)))
    orchestrator = InstallOrchestrator(client, selection, log_manager=log_manager, target="mods")

    with pytest.raises(InstallFailure):
        asyncio.run(orchestrator.run(items))

    log_types = [log_type for log_type, _ in messages]
    assert "success" in log_types
    assert "error" in log_types
    assert any("ONE" in message for _, message in messages)
    assert log_manager.session_active is False


if __name__ == "__main__":
    test_success_reports_progress_and_clears_selection()
    test_progress_is_monotonic_and_bounded()
    test_orchestrator_runs_only_once()
    print("✅ InstallOrchestrator tests passed")
