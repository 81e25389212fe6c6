"""
CITEGRAPH ORPHAN PROPAGATION - Cascading Removal Planning

Removing a publication can strand its descendants: a child whose every parent
is being removed is no longer reachable from the root and must go too. This
module computes that closure without touching the graph.

Algorithm (parent-exhaustion counting):
- Keep, per visited node, a count of parents known to be gone.
- Seed the target one short of its parent count, then process it as if one
  more parent had vanished. This always selects it.
- A selected node records its cut edges (to parents not yet selected, and to
  every child) and bumps each child's counter by one.
- A child is selected when its counter reaches its parent count. The equality
  fires once per node, so every node is expanded at most once.

Counting alone never exhausts a cycle whose members only cite each other.
When the graph has a cycle and the root is known, a reachability sweep from
the root (avoiding the selected nodes) adds whatever was left stranded. The
root itself is never selected.

An explicit worklist replaces recursion; deep citation chains do not touch
the interpreter's stack limit.
"""
import logging
from collections import deque
from typing import Deque, Dict, List, Optional, Set, Tuple

import rustworkx as rx

from citegraph.core.schemas import RemovalPlan

logger = logging.getLogger(__name__)


def plan_removal(graph: rx.PyDiGraph, target: int, root: Optional[int] = None) -> RemovalPlan:
    """
    Compute the set of nodes orphaned by removing `target`.

    Args:
        graph: The rustworkx graph (parent -> child edges, no parallel edges)
        target: Index of the node the caller asked to remove
        root: Index of the root, when known. It is never selected, and on a
            graph with cycles it anchors the reachability sweep

    Returns:
        RemovalPlan with the closure and every edge incident to it

    Note:
        Read-only. The caller is responsible for refusing the root; a node
        with no parents is still selected when it is the target.
    """
    gone: Dict[int, int] = {target: graph.in_degree(target) - 1}
    selected: Set[int] = set()
    closure: List[int] = []
    cut_edges: List[Tuple[int, int]] = []

    worklist: Deque[int] = deque([target])
    while worklist:
        idx = worklist.popleft()
        if idx in selected or idx == root:
            continue
        gone[idx] = gone.get(idx, 0) + 1
        # The target is selected regardless of its parent count.
        if idx != target and gone[idx] != graph.in_degree(idx):
            continue

        selected.add(idx)
        closure.append(idx)

        for parent in graph.predecessor_indices(idx):
            if parent not in selected:
                cut_edges.append((parent, idx))
        for child in graph.successor_indices(idx):
            # A child selected earlier (only possible through a cycle)
            # already recorded this edge as one of its parent edges.
            if child not in selected or child == idx:
                cut_edges.append((idx, child))
            if child not in selected:
                worklist.append(child)

    if root is not None and not rx.is_directed_acyclic_graph(graph):
        _sweep_stranded(graph, root, selected, closure, cut_edges)

    logger.debug(
        "Removal of index %s orphans %d node(s), cuts %d edge(s)",
        target, len(closure), len(cut_edges),
    )
    return RemovalPlan(
        target=target,
        closure=tuple(closure),
        cut_edges=tuple(cut_edges),
    )


def _sweep_stranded(
    graph: rx.PyDiGraph,
    root: int,
    selected: Set[int],
    closure: List[int],
    cut_edges: List[Tuple[int, int]],
) -> None:
    """
    Extend the plan with nodes the root no longer reaches.

    Parent counting never exhausts a cycle whose members cite each other, so
    a cycle cut off from the root survives it. Anything not reached from the
    root while avoiding `selected` joins the closure; `selected`, `closure`
    and `cut_edges` are updated in place, each edge still recorded once.
    """
    reached: Set[int] = {root}
    queue: Deque[int] = deque([root])
    while queue:
        idx = queue.popleft()
        for child in graph.successor_indices(idx):
            if child not in reached and child not in selected:
                reached.add(child)
                queue.append(child)

    stranded = [
        idx for idx in graph.node_indices()
        if idx not in reached and idx not in selected
    ]
    if not stranded:
        return

    recorded = set(cut_edges)
    selected.update(stranded)
    closure.extend(stranded)
    for idx in stranded:
        for parent in graph.predecessor_indices(idx):
            if (parent, idx) not in recorded:
                recorded.add((parent, idx))
                cut_edges.append((parent, idx))
        for child in graph.successor_indices(idx):
            if (idx, child) not in recorded:
                recorded.add((idx, child))
                cut_edges.append((idx, child))
    logger.debug("Swept %d node(s) stranded behind a cycle", len(stranded))


def orphan_closure(graph: rx.PyDiGraph, target: int, root: Optional[int] = None) -> Set[int]:
    """Indices that would be erased by removing `target`."""
    return set(plan_removal(graph, target, root).closure)
