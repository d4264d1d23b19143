"""Cycle detection over task dependency edges.

An edge ``task -> depends_on`` means *task* waits on *depends_on*. Adding an
edge closes a cycle exactly when *task* is already reachable from
*depends_on* by following existing edges.
"""

from collections.abc import Iterable
from typing import Protocol
from uuid import UUID


class DependencyLookup(Protocol):
    async def depends_on_ids(self, task_ids: Iterable[UUID]) -> set[UUID]: ...


async def would_create_cycle(
    lookup: DependencyLookup, task_id: UUID, depends_on_id: UUID
) -> bool:
    """Return True if adding ``task_id -> depends_on_id`` would close a cycle.

    Breadth-first and iterative: each round loads the next layer of edges in
    one query, and the visited set keeps shared sub-graphs from being walked
    twice.
    """
    if task_id == depends_on_id:
        return True

    visited = {depends_on_id}
    frontier = {depends_on_id}
    while frontier:
        reachable = await lookup.depends_on_ids(frontier)
        if task_id in reachable:
            return True
        frontier = reachable - visited
        visited |= frontier
    return False
