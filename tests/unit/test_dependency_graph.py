"""Tests for dependency cycle detection."""

from collections.abc import Iterable
from uuid import UUID, uuid4

import pytest

from src.cybertask.services.dependency_graph import would_create_cycle

pytestmark = pytest.mark.unit


class InMemoryGraph:
    """Edges ``task -> depends_on`` held in a dict, counting lookups."""

    def __init__(self, edges: Iterable[tuple[UUID, UUID]] = ()) -> None:
        self.edges: dict[UUID, set[UUID]] = {}
        self.lookups = 0
        for task_id, depends_on_id in edges:
            self.edges.setdefault(task_id, set()).add(depends_on_id)

    async def depends_on_ids(self, task_ids: Iterable[UUID]) -> set[UUID]:
        self.lookups += 1
        result: set[UUID] = set()
        for task_id in task_ids:
            result |= self.edges.get(task_id, set())
        return result


async def test_self_dependency_is_a_cycle():
    task = uuid4()

    assert await would_create_cycle(InMemoryGraph(), task, task) is True


async def test_unrelated_tasks_are_not_a_cycle():
    a, b = uuid4(), uuid4()

    assert await would_create_cycle(InMemoryGraph(), a, b) is False


async def test_direct_back_edge_is_a_cycle():
    a, b = uuid4(), uuid4()
    graph = InMemoryGraph([(b, a)])  # b waits on a

    assert await would_create_cycle(graph, a, b) is True


async def test_transitive_cycle_is_detected():
    a, b, c, d = uuid4(), uuid4(), uuid4(), uuid4()
    graph = InMemoryGraph([(b, c), (c, d), (d, a)])

    assert await would_create_cycle(graph, a, b) is True


async def test_parallel_edge_in_same_direction_is_fine():
    """A -> C when A -> B -> C already exists is redundant, not cyclic."""
    a, b, c = uuid4(), uuid4(), uuid4()
    graph = InMemoryGraph([(a, b), (b, c)])

    assert await would_create_cycle(graph, a, c) is False


async def test_diamond_is_walked_once_per_layer():
    """Shared sub-graphs are visited once; each BFS layer is one lookup."""
    top, left, right, bottom, new = (uuid4() for _ in range(5))
    graph = InMemoryGraph([(top, left), (top, right), (left, bottom), (right, bottom)])

    assert await would_create_cycle(graph, new, top) is False
    # top -> {left, right} -> {bottom} -> {} : three layers
    assert graph.lookups == 3


async def test_existing_cycle_elsewhere_terminates():
    """Corrupt data with a loop must not hang the walk."""
    a, b, x, y = uuid4(), uuid4(), uuid4(), uuid4()
    graph = InMemoryGraph([(x, y), (y, x)])

    assert await would_create_cycle(graph, a, x) is False
    assert await would_create_cycle(graph, b, a) is False
