"""
Property tests for CitationGraph over seeded random operation sequences.

After every operation:
- Edge symmetry: x in parents_of(y) <=> y in children_of(x)
- Reachability: every publication is reachable from the root
- The invariant report has no errors

Every remove() is also checked against a brute-force oracle: the removed set
must be exactly the nodes unreachable from the root once the target is gone.
"""
import random
from collections import deque

import pytest

from citegraph.core.graph_db import (
    CitationGraph,
    PublicationAlreadyExistsError,
    PublicationNotFoundError,
    RootRemovalError,
)


def _reachable_from_root(graph, excluded=None):
    """BFS over children_of, optionally pretending `excluded` is gone."""
    root = graph.root_id()
    seen = {root}
    queue = deque([root])
    while queue:
        node = queue.popleft()
        for child in graph.children_of(node):
            if child != excluded and child not in seen:
                seen.add(child)
                queue.append(child)
    return seen


def _assert_consistent(graph):
    ids = set(graph.iter_ids())

    for node_id in ids:
        for child in graph.children_of(node_id):
            assert node_id in graph.parents_of(child)
        for parent in graph.parents_of(node_id):
            assert node_id in graph.children_of(parent)
        if node_id != graph.root_id():
            assert graph.parents_of(node_id), f"{node_id} has no parents"

    assert _reachable_from_root(graph) == ids
    assert graph.validate().valid


@pytest.mark.parametrize("seed", [1, 7, 42, 1337])
def test_random_operations_preserve_invariants(seed):
    rng = random.Random(seed)
    graph = CitationGraph(0)
    order = {0: 0}          # creation order; citations only point backwards
    next_id = 1

    for _ in range(300):
        ids = sorted(graph.iter_ids())
        op = rng.random()

        if op < 0.5:
            parents = rng.sample(ids, k=rng.randint(1, min(3, len(ids))))
            graph.create(next_id, parents)
            order[next_id] = next_id
            next_id += 1

        elif op < 0.75 and len(ids) > 1:
            child, parent = rng.sample(ids, k=2)
            if order[parent] > order[child]:
                child, parent = parent, child
            graph.add_citation(child, parent)

        elif len(ids) > 1:
            target = rng.choice([i for i in ids if i != 0])
            expected = set(ids) - _reachable_from_root(graph, excluded=target)

            removed = graph.remove(target)

            assert set(removed) == expected
            assert target in removed
            for node_id in removed:
                assert not graph.exists(node_id)

        _assert_consistent(graph)


@pytest.mark.parametrize("seed", [3, 99])
def test_failed_operations_leave_snapshot_unchanged(seed):
    """Every kind of refused call leaves the full structure untouched."""
    rng = random.Random(seed)
    graph = CitationGraph(0)
    for node_id in range(1, 40):
        graph.create(node_id, rng.sample(range(node_id), k=min(2, node_id)))

    before = graph.snapshot()

    with pytest.raises(PublicationAlreadyExistsError):
        graph.create(rng.randrange(40), [0])
    with pytest.raises(PublicationNotFoundError):
        graph.create(100, [1, 2, 999])
    with pytest.raises(PublicationNotFoundError):
        graph.create(101, [])
    with pytest.raises(PublicationNotFoundError):
        graph.add_citation(5, 999)
    with pytest.raises(RootRemovalError):
        graph.remove(0)
    with pytest.raises(PublicationNotFoundError):
        graph.remove(999)

    assert graph.snapshot() == before


@pytest.mark.parametrize("seed", [5, 11, 2024])
def test_random_operations_with_cycles_preserve_reachability(seed):
    """
    Citations in any direction between non-root publications, so cycles
    form freely; removal must still leave exactly the reachable set.
    """
    rng = random.Random(seed)
    graph = CitationGraph(0)
    next_id = 1

    for _ in range(300):
        ids = sorted(graph.iter_ids())
        op = rng.random()

        if op < 0.45:
            parents = rng.sample(ids, k=rng.randint(1, min(3, len(ids))))
            graph.create(next_id, parents)
            next_id += 1

        elif op < 0.75 and len(ids) > 1:
            child = rng.choice([i for i in ids if i != 0])
            graph.add_citation(child, rng.choice(ids))

        elif len(ids) > 1:
            target = rng.choice([i for i in ids if i != 0])
            expected = set(ids) - _reachable_from_root(graph, excluded=target)

            assert set(graph.preview_removal(target)) == expected
            removed = graph.remove(target)

            assert set(removed) == expected
            for node_id in removed:
                assert not graph.exists(node_id)

        _assert_consistent(graph)
