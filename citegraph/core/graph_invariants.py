"""
CITEGRAPH GRAPH INVARIANTS - Structural Checks for the Citation Graph

CitationGraph maintains its invariants by construction; this module verifies
them after the fact. It is used by CitationGraph.validate() and by the test
suite after randomized operation sequences.

Invariants Implemented:
1. Handshaking Lemma: sum(in_degree) == sum(out_degree) == |E|
   (every parent link has its matching child link)
2. Single Root: the root exists and has no parents
3. Parented Nodes: every non-root node has at least one parent
4. Reachability: every node is reachable from the root
5. Bridge Consistency: id <-> index maps agree and payload ids are unique
6. DAG Acyclicity: reported as a WARNING; add_citation is permissive unless
   enforce_acyclic is configured

All checks are O(V+E) using rustworkx primitives.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import rustworkx as rx


# =============================================================================
# INVARIANT RESULTS
# =============================================================================

class InvariantSeverity(Enum):
    """Severity levels for invariant violations."""
    ERROR = "error"      # Graph is corrupt
    WARNING = "warning"  # Allowed, but worth reporting


@dataclass
class InvariantViolation:
    """A specific invariant violation."""
    invariant: str
    severity: InvariantSeverity
    message: str
    nodes_involved: List[Any] = field(default_factory=list)


@dataclass
class InvariantReport:
    """Complete invariant validation report."""
    valid: bool
    violations: List[InvariantViolation]
    metrics: Dict[str, Any]

    @property
    def errors(self) -> List[InvariantViolation]:
        return [v for v in self.violations if v.severity == InvariantSeverity.ERROR]

    @property
    def warnings(self) -> List[InvariantViolation]:
        return [v for v in self.violations if v.severity == InvariantSeverity.WARNING]


CheckResult = Tuple[bool, Optional[InvariantViolation]]


def _ids(indices, inv_map: Optional[Dict[int, Any]]) -> List[Any]:
    # Limit to 10 for readability
    ordered = sorted(indices)[:10]
    if inv_map is None:
        return ordered
    return [inv_map.get(idx, idx) for idx in ordered]


# =============================================================================
# GRAPH INVARIANTS
# =============================================================================

class GraphInvariants:
    """
    Invariant validators for citation graphs.

    All methods are static and work on rx.PyDiGraph instances plus the root
    index; CitationGraph wraps them for id-level access.
    """

    @staticmethod
    def validate_handshaking_lemma(graph: rx.PyDiGraph) -> CheckResult:
        """
        Handshaking Lemma: sum(in_degree) == sum(out_degree) == |E|

        Catches corrupted edge state where a parent link exists without its
        child link or vice versa.
        """
        num_edges = graph.num_edges()
        node_indices = list(graph.node_indices())

        total_in = sum(graph.in_degree(idx) for idx in node_indices)
        total_out = sum(graph.out_degree(idx) for idx in node_indices)

        if total_in != total_out or total_in != num_edges:
            return False, InvariantViolation(
                invariant="handshaking_lemma",
                severity=InvariantSeverity.ERROR,
                message=f"sum(in)={total_in}, sum(out)={total_out}, |E|={num_edges}",
            )
        return True, None

    @staticmethod
    def validate_single_root(graph: rx.PyDiGraph, root_idx: int) -> CheckResult:
        """The root node must exist and have an empty parent set."""
        if not graph.has_node(root_idx):
            return False, InvariantViolation(
                invariant="single_root",
                severity=InvariantSeverity.ERROR,
                message=f"Root index {root_idx} is not in the graph",
            )
        if graph.in_degree(root_idx) != 0:
            return False, InvariantViolation(
                invariant="single_root",
                severity=InvariantSeverity.ERROR,
                message=f"Root has {graph.in_degree(root_idx)} parent(s)",
            )
        return True, None

    @staticmethod
    def validate_parented(
        graph: rx.PyDiGraph,
        root_idx: int,
        inv_map: Optional[Dict[int, Any]] = None,
    ) -> CheckResult:
        """Every non-root node must cite at least one parent."""
        unparented = [
            idx for idx in graph.node_indices()
            if idx != root_idx and graph.in_degree(idx) == 0
        ]
        if unparented:
            return False, InvariantViolation(
                invariant="parented",
                severity=InvariantSeverity.ERROR,
                message=f"{len(unparented)} non-root node(s) without parents",
                nodes_involved=_ids(unparented, inv_map),
            )
        return True, None

    @staticmethod
    def validate_reachability(
        graph: rx.PyDiGraph,
        root_idx: int,
        inv_map: Optional[Dict[int, Any]] = None,
    ) -> CheckResult:
        """
        Every node must have a directed path of child edges from the root.

        This is the liveness invariant cascading removal restores.
        """
        if not graph.has_node(root_idx):
            return False, InvariantViolation(
                invariant="reachability",
                severity=InvariantSeverity.ERROR,
                message="Cannot check reachability: root missing",
            )

        reachable = set(rx.descendants(graph, root_idx))
        reachable.add(root_idx)
        unreachable = [idx for idx in graph.node_indices() if idx not in reachable]

        if unreachable:
            return False, InvariantViolation(
                invariant="reachability",
                severity=InvariantSeverity.ERROR,
                message=f"{len(unreachable)} node(s) unreachable from root",
                nodes_involved=_ids(unreachable, inv_map),
            )
        return True, None

    @staticmethod
    def validate_bridge(
        graph: rx.PyDiGraph,
        node_map: Dict[Any, int],
        inv_map: Dict[int, Any],
    ) -> CheckResult:
        """
        The id -> index and index -> id maps must be exact inverses, cover
        every graph node, and agree with each payload's own id.
        """
        problems: List[Any] = []

        if len(node_map) != len(inv_map) or len(node_map) != graph.num_nodes():
            return False, InvariantViolation(
                invariant="bridge",
                severity=InvariantSeverity.ERROR,
                message=(
                    f"Map sizes differ: node_map={len(node_map)}, "
                    f"inv_map={len(inv_map)}, graph={graph.num_nodes()}"
                ),
            )

        for node_id, idx in node_map.items():
            if inv_map.get(idx) != node_id or not graph.has_node(idx):
                problems.append(node_id)
                continue
            if graph[idx].get_id() != node_id:
                problems.append(node_id)

        if problems:
            return False, InvariantViolation(
                invariant="bridge",
                severity=InvariantSeverity.ERROR,
                message=f"{len(problems)} id(s) inconsistent between maps and payloads",
                nodes_involved=problems[:10],
            )
        return True, None

    @staticmethod
    def validate_dag_acyclicity(
        graph: rx.PyDiGraph,
        inv_map: Optional[Dict[int, Any]] = None,
    ) -> CheckResult:
        """
        Report citation cycles.

        Only a WARNING: add_citation accepts cycles unless enforce_acyclic is
        configured.
        """
        if rx.is_directed_acyclic_graph(graph):
            return True, None

        cycle_nodes = sorted(
            idx
            for component in rx.strongly_connected_components(graph)
            for idx in component
            if len(component) > 1 or graph.has_edge(idx, idx)
        )
        return False, InvariantViolation(
            invariant="dag_acyclicity",
            severity=InvariantSeverity.WARNING,
            message=f"Cycle detected involving {len(cycle_nodes)} node(s)",
            nodes_involved=_ids(cycle_nodes, inv_map),
        )

    @staticmethod
    def validate_all(
        graph: rx.PyDiGraph,
        root_idx: int,
        node_map: Optional[Dict[Any, int]] = None,
        inv_map: Optional[Dict[int, Any]] = None,
        raise_on_error: bool = False,
    ) -> InvariantReport:
        """
        Run all invariant validations and return a comprehensive report.

        Args:
            graph: The rustworkx PyDiGraph to validate
            root_idx: Index of the root publication
            node_map / inv_map: The id <-> index bridge (bridge check is
                skipped when node_map is None)
            raise_on_error: If True, raise GraphInvariantError on the first ERROR

        Returns:
            InvariantReport with all results and metrics
        """
        checks = [
            GraphInvariants.validate_handshaking_lemma(graph),
            GraphInvariants.validate_single_root(graph, root_idx),
            GraphInvariants.validate_parented(graph, root_idx, inv_map),
            GraphInvariants.validate_reachability(graph, root_idx, inv_map),
        ]
        if node_map is not None and inv_map is not None:
            checks.append(GraphInvariants.validate_bridge(graph, node_map, inv_map))
        checks.append(GraphInvariants.validate_dag_acyclicity(graph, inv_map))

        violations = []
        for _, violation in checks:
            if violation is None:
                continue
            violations.append(violation)
            if raise_on_error and violation.severity == InvariantSeverity.ERROR:
                from citegraph.core.graph_db import GraphInvariantError
                raise GraphInvariantError(f"{violation.invariant}: {violation.message}")

        metrics = {
            "node_count": graph.num_nodes(),
            "edge_count": graph.num_edges(),
            "leaf_count": sum(1 for idx in graph.node_indices() if graph.out_degree(idx) == 0),
            "is_dag": rx.is_directed_acyclic_graph(graph),
        }

        return InvariantReport(
            valid=all(v.severity != InvariantSeverity.ERROR for v in violations),
            violations=violations,
            metrics=metrics,
        )


# =============================================================================
# INCREMENTAL VALIDATORS (For Pre-Insert Checks)
# =============================================================================

class IncrementalValidator:
    """Cheap checks run before a mutation, on the affected neighborhood only."""

    @staticmethod
    def would_create_cycle(graph: rx.PyDiGraph, parent_idx: int, child_idx: int) -> bool:
        """
        Check if adding edge parent -> child would create a cycle.

        True when the child can already reach the parent (self-citations
        included).
        """
        if parent_idx == child_idx:
            return True
        return rx.has_path(graph, child_idx, parent_idx)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def validate_graph(graph: rx.PyDiGraph, root_idx: int, **kwargs) -> InvariantReport:
    """Convenience function to validate a graph."""
    return GraphInvariants.validate_all(graph, root_idx, **kwargs)


def is_valid_dag(graph: rx.PyDiGraph) -> bool:
    """Quick check if graph is a valid DAG."""
    return rx.is_directed_acyclic_graph(graph)
