"""Transitive dependency resolution over catalog dependency lookups."""

import asyncio
import time
from collections import deque
from typing import Deque, List, Optional, Set

from ..utils.logger import get_module_logger
from .catalog_client import CatalogClient
from .errors import ResolutionFailure
from .models import DependencySet, DependencyType, Item, ItemKey, ResolvedDependency, SearchContext
from .selection import SelectionSet


class DependencyResolver:
    """Breadth-first worklist resolver.

    Required dependencies are expanded without depth limit; optional ones are
    recorded one level deep and never expanded. A ``seen`` set keyed by
    ``(provider, id)`` makes the walk terminate on cyclic graphs and keeps the
    output free of duplicates. The first edge that discovers an item decides its
    classification.
    """

    def __init__(self, client: CatalogClient, parallel_lookups: bool = False,
                 max_concurrent_lookups: int = 4):
        """Initialize the resolver.

        Args:
            client: Catalog client used for dependency lookups
            parallel_lookups: Issue the lookups of one BFS layer concurrently
            max_concurrent_lookups: Upper bound on concurrent lookups in parallel mode
        """
        self.client = client
        self.parallel_lookups = parallel_lookups
        self.max_concurrent_lookups = max(1, max_concurrent_lookups)
        self.logger = get_module_logger("dependency_resolver")
        self.resolving = False
        self.lookup_count = 0

    async def resolve(self, selection: SelectionSet,
                      context: Optional[SearchContext] = None) -> List[ResolvedDependency]:
        """Compute the dependency closure of ``selection``.

        Returns:
            Resolved dependencies in discovery order

        Raises:
            ResolutionFailure: a lookup failed; the whole pass is abandoned
        """
        seen: Set[ItemKey] = set(selection.keys())
        queue: Deque[Item] = deque(selection.items())
        resolved: List[ResolvedDependency] = []

        self.resolving = True
        self.lookup_count = 0
        start_time = time.time()
        self.logger.info(f"Resolving dependencies for {len(queue)} selected items "
                         f"({'parallel' if self.parallel_lookups else 'sequential'} lookups)")

        try:
            if self.parallel_lookups:
                await self._drain_by_layer(queue, seen, resolved, context)
            else:
                while queue:
                    item = queue.popleft()
                    dependencies = await self._lookup(item, context)
                    self._record(dependencies, seen, resolved, queue)
        finally:
            self.resolving = False

        required_count = sum(1 for dep in resolved if dep.is_required)
        self.logger.info(f"Dependency resolution finished in {time.time() - start_time:.3f}s: "
                         f"{required_count} required, {len(resolved) - required_count} optional, "
                         f"{self.lookup_count} lookups")
        return resolved

    async def _drain_by_layer(self, queue: Deque[Item], seen: Set[ItemKey],
                              resolved: List[ResolvedDependency],
                              context: Optional[SearchContext]) -> None:
        """Drain the worklist one BFS layer at a time.

        Lookups inside a layer run concurrently; their results are committed in
        enqueue order once the whole layer has returned, so the output matches
        the sequential walk exactly.
        """
        semaphore = asyncio.Semaphore(self.max_concurrent_lookups)

        async def bounded_lookup(item: Item) -> DependencySet:
            async with semaphore:
                return await self._lookup(item, context)

        while queue:
            layer = list(queue)
            queue.clear()
            self.logger.debug(f"Resolving layer of {len(layer)} items")

            results = await asyncio.gather(*(bounded_lookup(item) for item in layer),
                                           return_exceptions=True)
            failures = [result for result in results if isinstance(result, BaseException)]
            if failures:
                # Earliest failure in enqueue order
                raise failures[0]

            for dependencies in results:
                self._record(dependencies, seen, resolved, queue)

    async def _lookup(self, item: Item, context: Optional[SearchContext]) -> DependencySet:
        self.lookup_count += 1
        try:
            dependencies = await self.client.get_dependencies(item.provider, item.id, context)
        except Exception as e:
            self.logger.error(f"Dependency lookup failed for {item.provider.value}/{item.id}: {e}")
            raise ResolutionFailure(item, e) from e

        self.logger.debug(f"{item.title}: {len(dependencies.required)} required, "
                          f"{len(dependencies.optional)} optional")
        return dependencies

    @staticmethod
    def _record(dependencies: DependencySet, seen: Set[ItemKey],
                resolved: List[ResolvedDependency], queue: Deque[Item]) -> None:
        for dependency in dependencies.required:
            if dependency.key in seen:
                continue
            seen.add(dependency.key)
            resolved.append(ResolvedDependency(dependency, DependencyType.REQUIRED))
            queue.append(dependency)

        for dependency in dependencies.optional:
            if dependency.key in seen:
                continue
            seen.add(dependency.key)
            resolved.append(ResolvedDependency(dependency, DependencyType.OPTIONAL))
