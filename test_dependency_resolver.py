#!/usr/bin/env python3
"""Test script for the breadth-first DependencyResolver."""

import asyncio
import gc

import pytest

from fake_catalog import FakeCatalogClient, make_item

from marketplace.modules.dependency_resolver import DependencyResolver
from marketplace.modules.errors import ResolutionFailure
from marketplace.modules.models import DependencyType, Provider
from marketplace.modules.selection import SelectionSet


def _select(*items) -> SelectionSet:
    selection = SelectionSet()
    for item in items:
        selection.toggle(item)
    return selection


def _summary(resolved):
    return [(dep.item.id, dep.dependency_type) for dep in resolved]


def test_cycle_terminates_with_single_entry():
    client = FakeCatalogClient()
    a, b = make_item("a"), make_item("b")
    client.add(a, required=(b,))
    client.add(b, required=(a,))

    resolved = asyncio.run(DependencyResolver(client).resolve(_select(a)))

    assert _summary(resolved) == [("b", DependencyType.REQUIRED)]
    assert client.dependency_calls == [a.key, b.key]


def test_shared_dependency_classified_by_first_discovery():
    client = FakeCatalogClient()
    a, b, c = make_item("a"), make_item("b"), make_item("c")
    client.add(a, required=(c,))
    client.add(b, optional=(c,))

    resolved = asyncio.run(DependencyResolver(client).resolve(_select(a, b)))

    assert _summary(resolved) == [("c", DependencyType.REQUIRED)]


def test_optional_dependencies_are_not_expanded():
    client = FakeCatalogClient()
    a, b, c, d = make_item("a"), make_item("b"), make_item("c"), make_item("d")
    client.add(b, optional=(c,))
    client.add(c, required=(d,))

    resolved = asyncio.run(DependencyResolver(client).resolve(_select(b)))

    assert _summary(resolved) == [("c", DependencyType.OPTIONAL)]
    assert c.key not in client.dependency_calls


def test_required_chain_is_followed_to_any_depth():
    client = FakeCatalogClient()
    chain = [make_item(f"lib{i}") for i in range(6)]
    for parent, child in zip(chain, chain[1:]):
        client.add(parent, required=(child,))

    resolved = asyncio.run(DependencyResolver(client).resolve(_select(chain[0])))

    assert [dep.item.id for dep in resolved] == ["lib1", "lib2", "lib3", "lib4", "lib5"]


def test_discovery_order_is_breadth_first():
    client = FakeCatalogClient()
    a, b = make_item("a"), make_item("b")
    a1, a2, b1, a11 = make_item("a1"), make_item("a2"), make_item("b1"), make_item("a11")
    client.add(a, required=(a1,), optional=(a2,))
    client.add(b, required=(b1,))
    client.add(a1, required=(a11,))

    resolved = asyncio.run(DependencyResolver(client).resolve(_select(a, b)))

    assert [dep.item.id for dep in resolved] == ["a1", "a2", "b1", "a11"]


def test_selected_items_are_never_reported_as_dependencies():
    client = FakeCatalogClient()
    a, b = make_item("a"), make_item("b")
    client.add(a, required=(b,))

    resolved = asyncio.run(DependencyResolver(client).resolve(_select(a, b)))

    assert resolved == []


def test_same_id_on_other_provider_is_a_different_dependency():
    client = FakeCatalogClient()
    a = make_item("abc", Provider.MODRINTH)
    twin = make_item("abc", Provider.CURSEFORGE)
    client.add(a, required=(twin,))

    resolved = asyncio.run(DependencyResolver(client).resolve(_select(a)))

    assert [dep.item.key for dep in resolved] == [(Provider.CURSEFORGE, "abc")]


def test_lookup_failure_aborts_the_pass():
    client = FakeCatalogClient()
    a, b, c = make_item("a"), make_item("b"), make_item("c")
    client.add(a, required=(b,))
    client.add(b, required=(c,))
    client.failing_lookups.add(b.key)
    resolver = DependencyResolver(client)

    with pytest.raises(ResolutionFailure) as excinfo:
        asyncio.run(resolver.resolve(_select(a)))

    assert excinfo.value.item == b
    assert c.key not in client.dependency_calls
    assert resolver.resolving is False


def test_parallel_layers_match_sequential_output():
    def build():
        client = FakeCatalogClient()
        items = {name: make_item(name) for name in ["a", "b", "c", "d", "e", "f", "g"]}
        client.add(items["a"], required=(items["c"], items["d"]), optional=(items["e"],))
        client.add(items["b"], required=(items["d"], items["f"]))
        client.add(items["c"], required=(items["g"],), optional=(items["a"],))
        client.add(items["f"], optional=(items["g"],))
        return client, _select(items["a"], items["b"])

    sequential_client, selection = build()
    sequential = asyncio.run(DependencyResolver(sequential_client).resolve(selection))

    parallel_client, selection = build()
    parallel = asyncio.run(DependencyResolver(parallel_client, parallel_lookups=True,
                                              max_concurrent_lookups=2).resolve(selection))

    assert _summary(parallel) == _summary(sequential)
    assert sorted(parallel_client.dependency_calls) == sorted(sequential_client.dependency_calls)


def test_parallel_lookup_failure_raises():
    client = FakeCatalogClient()
    a, b = make_item("a"), make_item("b")
    client.failing_lookups.add(b.key)

    with pytest.raises(ResolutionFailure):
        asyncio.run(DependencyResolver(client, parallel_lookups=True).resolve(_select(a, b)))


def test_parallel_sibling_failures_are_all_collected():
    client = FakeCatalogClient()
    a, b, c = make_item("a"), make_item("b"), make_item("c")
    client.failing_lookups.update({b.key, c.key})
    unhandled = []

    async def scenario():
        asyncio.get_running_loop().set_exception_handler(lambda loop, context: unhandled.append(context))
        with pytest.raises(ResolutionFailure) as excinfo:
            await DependencyResolver(client, parallel_lookups=True).resolve(_select(a, b, c))
        gc.collect()
        await asyncio.sleep(0)
        return excinfo.value

    failure = asyncio.run(scenario())

    assert failure.item == b
    assert sorted(client.dependency_calls) == sorted([a.key, b.key, c.key])
    assert unhandled == []


if __name__ == "__main__":
    test_cycle_terminates_with_single_entry()
    test_shared_dependency_classified_by_first_discovery()
    test_optional_dependencies_are_not_expanded()
    test_required_chain_is_followed_to_any_depth()
    test_discovery_order_is_breadth_first()
    test_selected_items_are_never_reported_as_dependencies()
    test_same_id_on_other_provider_is_a_different_dependency()
    test_parallel_layers_match_sequential_output()
    print("✅ DependencyResolver tests passed")
