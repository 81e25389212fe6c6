"""
Unit tests for citegraph/core/orphans.py - removal planning

Works directly on rustworkx graphs so index-level behavior is visible:
- Closure selection by parent exhaustion
- Cut edges recorded once each
- Planning never mutates the graph
"""
import rustworkx as rx

from citegraph.core.orphans import orphan_closure, plan_removal


def _diamond():
    """
    r -> a -> c
    r -> b -> c -> d
    """
    graph = rx.PyDiGraph(multigraph=False)
    r, a, b, c, d = (graph.add_node(name) for name in "rabcd")
    graph.add_edge(r, a, None)
    graph.add_edge(r, b, None)
    graph.add_edge(a, c, None)
    graph.add_edge(b, c, None)
    graph.add_edge(c, d, None)
    return graph, (r, a, b, c, d)


def test_leaf_removal_selects_only_leaf():
    graph, (r, a, b, c, d) = _diamond()

    plan = plan_removal(graph, d)

    assert plan.target == d
    assert plan.closure == (d,)
    assert plan.cut_edges == ((c, d),)


def test_partial_parent_loss_keeps_child():
    """c keeps b as a parent, so removing a stops at a."""
    graph, (r, a, b, c, d) = _diamond()

    plan = plan_removal(graph, a)

    assert plan.closure == (a,)
    assert set(plan.cut_edges) == {(r, a), (a, c)}


def test_multi_parent_target_is_always_selected():
    graph, (r, a, b, c, d) = _diamond()

    plan = plan_removal(graph, c)

    assert plan.closure[0] == c
    assert set(plan.closure) == {c, d}
    assert set(plan.cut_edges) == {(a, c), (b, c), (c, d)}


def test_full_cascade_through_diamond():
    """Removing the only parent of both a and b orphans everything below."""
    graph = rx.PyDiGraph(multigraph=False)
    r, s, a, b, c = (graph.add_node(name) for name in "rsabc")
    graph.add_edge(r, s, None)
    graph.add_edge(s, a, None)
    graph.add_edge(s, b, None)
    graph.add_edge(a, c, None)
    graph.add_edge(b, c, None)

    plan = plan_removal(graph, s)

    assert plan.closure[0] == s
    assert set(plan.closure) == {s, a, b, c}
    # Each edge incident to the closure appears exactly once
    assert len(plan.cut_edges) == len(set(plan.cut_edges)) == 5
    assert len(plan) == 4


def test_planning_is_read_only():
    graph, (r, a, b, c, d) = _diamond()
    nodes_before = list(graph.node_indices())
    edges_before = list(graph.edge_list())

    plan_removal(graph, b)
    orphan_closure(graph, c)

    assert list(graph.node_indices()) == nodes_before
    assert list(graph.edge_list()) == edges_before


def test_cycle_edges_recorded_once():
    """a <-> b cycle hanging off r: both go, no edge is listed twice."""
    graph = rx.PyDiGraph(multigraph=False)
    r, a, b = (graph.add_node(name) for name in "rab")
    graph.add_edge(r, a, None)
    graph.add_edge(a, b, None)
    graph.add_edge(b, a, None)

    plan = plan_removal(graph, a)

    assert set(plan.closure) == {a, b}
    assert sorted(plan.cut_edges) == sorted([(r, a), (a, b), (b, a)])


def test_orphan_closure_matches_plan():
    graph, (r, a, b, c, d) = _diamond()

    assert orphan_closure(graph, b) == {b}
    assert orphan_closure(graph, c) == {c, d}


def test_stranded_cycle_swept_when_root_known():
    """
    r -> x -> a <-> b: counting stops at a (b still cites it), so only the
    reachability sweep from the root finds a and b.
    """
    graph = rx.PyDiGraph(multigraph=False)
    r, x, a, b = (graph.add_node(name) for name in "rxab")
    graph.add_edge(r, x, None)
    graph.add_edge(x, a, None)
    graph.add_edge(a, b, None)
    graph.add_edge(b, a, None)

    assert orphan_closure(graph, x) == {x}

    plan = plan_removal(graph, x, root=r)

    assert plan.closure[0] == x
    assert set(plan.closure) == {x, a, b}
    assert len(plan.cut_edges) == len(set(plan.cut_edges)) == 4
    assert set(plan.cut_edges) == {(r, x), (x, a), (a, b), (b, a)}


def test_root_never_selected():
    """An edge back into the root does not make the root removable."""
    graph = rx.PyDiGraph(multigraph=False)
    r, a = (graph.add_node(name) for name in "ra")
    graph.add_edge(r, a, None)
    graph.add_edge(a, r, None)

    plan = plan_removal(graph, a, root=r)

    assert plan.closure == (a,)
    assert set(plan.cut_edges) == {(r, a), (a, r)}
