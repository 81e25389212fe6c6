"""
CITEGRAPH GRAPH DATABASE - The Citation Graph Engine

An in-process store for a directed acyclic citation graph. Every publication
except one distinguished root cites at least one earlier publication (its
parents); deleting a publication also deletes everything that can no longer be
reached from the root.

Architecture (The Bridge Pattern):
  Python Layer (Business Logic)
  - Uses publication ids: "smith2019", 42, ...
  - Calls: graph.create("b", ["a"]), graph.remove("a")

  Bridge Layer (This File)
  - _node_map: Dict[id, int]  (publication id -> index)
  - _inv_map: Dict[int, id]   (index -> publication id)

  Rust Layer (rustworkx.PyDiGraph, multigraph=False)
  - Edge parent -> child for every citation
  - Parent/child sets are predecessor/successor sets, so re-linking an
    existing edge is a no-op and edge symmetry holds structurally

Failure Semantics:
  Every mutating call either succeeds completely or leaves the graph exactly
  as it was. create() undoes its partial links on failure; add_citation() is a
  single edge insertion; remove() plans the full cascade before touching
  anything (see core/orphans.py).
"""
import logging
from typing import Any, Callable, Dict, Hashable, Iterable, Iterator, List, Optional, Sequence

import rustworkx as rx

from citegraph.core.graph_invariants import GraphInvariants, IncrementalValidator, InvariantReport
from citegraph.core.orphans import plan_removal
from citegraph.core.schemas import (
    Citation,
    GraphSnapshot,
    NodeSnapshot,
    Publication,
    PublicationLike,
    RemovalPlan,
)
from citegraph.infrastructure.config import GraphConfig
from citegraph.infrastructure.logger import MutationLogger

logger = logging.getLogger(__name__)

PublicationId = Hashable


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================

class GraphError(Exception):
    """Base exception for citation graph operations."""
    pass


class PublicationNotFoundError(GraphError):
    """Raised when a publication id is not in the graph."""
    def __init__(self, node_id: PublicationId, reason: Optional[str] = None):
        self.node_id = node_id
        self.reason = reason
        message = f"Publication not found: {node_id!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class PublicationAlreadyExistsError(GraphError):
    """Raised when creating a publication whose id is already taken."""
    def __init__(self, node_id: PublicationId):
        self.node_id = node_id
        super().__init__(f"Publication already exists: {node_id!r}")


class RootRemovalError(GraphError):
    """Raised when remove() targets the root publication."""
    def __init__(self, node_id: PublicationId):
        self.node_id = node_id
        super().__init__(f"Cannot remove root publication: {node_id!r}")


class GraphInvariantError(GraphError):
    """Raised when a structural invariant is violated."""
    pass


class CitationCycleError(GraphInvariantError):
    """Raised when enforce_acyclic is on and a citation would close a cycle."""
    def __init__(self, child_id: PublicationId, parent_id: PublicationId):
        self.child_id = child_id
        self.parent_id = parent_id
        super().__init__(
            f"Cannot add citation {parent_id!r} -> {child_id!r}: would create cycle"
        )


class GraphMovedError(GraphError):
    """Raised when using a graph whose contents were moved elsewhere."""
    def __init__(self):
        super().__init__("Graph contents were moved; this instance is no longer usable")


# =============================================================================
# CITATION GRAPH (The Graph Engine)
# =============================================================================

class CitationGraph:
    """
    In-memory citation graph backed by rustworkx.

    Usage:
        graph = CitationGraph("root")
        graph.create("a", "root")
        graph.create("b", "root")
        graph.create("c", ["a", "b"])

        graph.remove("a")        # c survives through b
        graph.remove("b")        # c is orphaned and removed too

    Payloads:
        `publication_factory(id)` builds the payload stored for every node
        (default: schemas.Publication). The payload must expose get_id().

    Ownership:
        The graph is the sole owner of its nodes. It cannot be copied
        (copy.copy, copy.deepcopy and pickle raise TypeError); use
        transfer() or move_from() to hand the contents to another instance.

    Thread Safety:
        NOT thread-safe. Callers sharing one graph across threads must
        serialize all access themselves.
    """

    def __init__(
        self,
        root_id: PublicationId,
        publication_factory: Callable[[PublicationId], PublicationLike] = Publication,
        config: Optional[GraphConfig] = None,
        mutation_logger: Optional[MutationLogger] = None,
    ):
        """
        Create a graph holding a single root publication.

        Args:
            root_id: Id of the root publication
            publication_factory: Builds a payload from an id
            config: Behavioral switches (defaults to GraphConfig())
            mutation_logger: Optional sink for MutationEvents
        """
        self._config = config or GraphConfig()
        self._factory = publication_factory
        self._mutation_logger = mutation_logger
        self._moved = False

        # Core storage: Rust-native directed graph, no parallel edges
        self._graph: rx.PyDiGraph = rx.PyDiGraph(multigraph=False)

        # The Bridge: bidirectional id <-> index mapping
        self._node_map: Dict[PublicationId, int] = {}
        self._inv_map: Dict[int, PublicationId] = {}

        payload = publication_factory(root_id)
        idx = self._graph.add_node(payload)
        self._node_map[root_id] = idx
        self._inv_map[idx] = root_id

        # The root is held by id and looked up through the store on demand
        self._root: PublicationId = root_id

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def node_count(self) -> int:
        """Number of publications in the graph."""
        return self._graph.num_nodes()

    @property
    def edge_count(self) -> int:
        """Number of citations in the graph."""
        return self._graph.num_edges()

    @property
    def config(self) -> GraphConfig:
        return self._config

    @property
    def is_moved(self) -> bool:
        """True once transfer()/move_from() has taken this graph's contents."""
        return self._moved

    # =========================================================================
    # NODE STORE
    # =========================================================================

    def root_id(self) -> PublicationId:
        """Return the root publication's id, as reported by its payload."""
        self._ensure_usable()
        return self.lookup(self._root).get_id()

    def exists(self, node_id: PublicationId) -> bool:
        """Check if a publication exists."""
        return node_id in self._node_map

    def lookup(self, node_id: PublicationId) -> PublicationLike:
        """
        Retrieve the payload stored for a publication.

        The returned object is the stored payload itself, not a copy. It
        stays meaningful only until the publication is removed.

        Raises:
            PublicationNotFoundError: If the publication doesn't exist
        """
        return self._graph[self._get_index(node_id)]

    def parents_of(self, node_id: PublicationId) -> List[PublicationId]:
        """
        Ids of the publications cited by `node_id`, sorted.

        Raises:
            PublicationNotFoundError: If the publication doesn't exist
        """
        idx = self._get_index(node_id)
        return sorted(self._inv_map[i] for i in self._graph.predecessor_indices(idx))

    def children_of(self, node_id: PublicationId) -> List[PublicationId]:
        """
        Ids of the publications citing `node_id`, sorted.

        Raises:
            PublicationNotFoundError: If the publication doesn't exist
        """
        idx = self._get_index(node_id)
        return sorted(self._inv_map[i] for i in self._graph.successor_indices(idx))

    def iter_ids(self) -> Iterator[PublicationId]:
        """Iterate over all publication ids (unordered)."""
        return iter(list(self._node_map))

    def snapshot(self) -> GraphSnapshot:
        """
        Copy of the full structure: root id and every node's edge sets.

        Comparing snapshots taken before and after a failed call shows the
        graph was left untouched.
        """
        self._ensure_usable()
        nodes = {
            node_id: NodeSnapshot(
                id=node_id,
                parents=tuple(self.parents_of(node_id)),
                children=tuple(self.children_of(node_id)),
            )
            for node_id in self._node_map
        }
        return GraphSnapshot(root_id=self._root, nodes=nodes)

    # =========================================================================
    # LINK MAINTAINER
    # =========================================================================

    def create(self, node_id: PublicationId, parent_ids: Any) -> None:
        """
        Create a publication citing one or more existing publications.

        Args:
            node_id: Id of the new publication
            parent_ids: A single parent id, or a list/set of parent ids. A
                tuple is one id, never a collection of parents

        Raises:
            PublicationAlreadyExistsError: If node_id already exists
            PublicationNotFoundError: If any parent is missing, or none given

        On any failure, including one raised by the publication factory or
        while linking, the graph is left exactly as before the call.
        """
        self._ensure_usable()
        parents = self._normalize_parents(parent_ids)

        if node_id in self._node_map:
            raise PublicationAlreadyExistsError(node_id)
        for parent_id in parents:
            if parent_id not in self._node_map:
                raise PublicationNotFoundError(parent_id)
        if not parents:
            raise PublicationNotFoundError(node_id, reason="no parent publications given")

        payload = self._factory(node_id)

        idx = self._graph.add_node(payload)
        linked: List[int] = []
        try:
            self._node_map[node_id] = idx
            self._inv_map[idx] = node_id
            for parent_id in parents:
                parent_idx = self._node_map[parent_id]
                self._link(parent_idx, idx)
                linked.append(parent_idx)
        except BaseException:
            for parent_idx in reversed(linked):
                self._graph.remove_edge(parent_idx, idx)
            self._graph.remove_node(idx)
            self._node_map.pop(node_id, None)
            self._inv_map.pop(idx, None)
            logger.debug("Rolled back creation of %r after %d link(s)", node_id, len(linked))
            raise

        logger.debug("Created %r citing %r", node_id, parents)
        self._record("log_publication_created", node_id, parents)

    def add_citation(self, child_id: PublicationId, parent_id: PublicationId) -> bool:
        """
        Record that `child_id` cites `parent_id`.

        Re-adding an existing citation succeeds and changes nothing.

        Returns:
            True if a new edge was added, False if it already existed

        Raises:
            PublicationNotFoundError: If either publication doesn't exist
            CitationCycleError: If enforce_acyclic is configured and the edge
                would close a cycle
        """
        self._ensure_usable()
        child_idx = self._get_index(child_id)
        parent_idx = self._get_index(parent_id)

        if self._graph.has_edge(parent_idx, child_idx):
            return False

        if self._config.enforce_acyclic and IncrementalValidator.would_create_cycle(
            self._graph, parent_idx, child_idx
        ):
            raise CitationCycleError(child_id, parent_id)

        self._link(parent_idx, child_idx)

        logger.debug("Added citation %r -> %r", parent_id, child_id)
        self._record("log_citation_added", child_id, parent_id)
        return True

    def _link(self, parent_idx: int, child_idx: int) -> int:
        """Insert one parent -> child edge. The single point where edges are made."""
        citation = Citation(
            parent_id=self._inv_map[parent_idx],
            child_id=self._inv_map[child_idx],
        )
        return self._graph.add_edge(parent_idx, child_idx, citation)

    @staticmethod
    def _normalize_parents(parent_ids: Any) -> List[PublicationId]:
        """Accept one id or a collection of ids; drop duplicates, keep order."""
        # A tuple is a single id, not a parent collection
        if isinstance(parent_ids, (list, set, frozenset)):
            return list(dict.fromkeys(parent_ids))
        return [parent_ids]

    # =========================================================================
    # ORPHAN PROPAGATOR
    # =========================================================================

    def remove(self, node_id: PublicationId) -> List[PublicationId]:
        """
        Remove a publication and every publication orphaned by its removal.

        Returns:
            Sorted ids of all removed publications (node_id included)

        Raises:
            PublicationNotFoundError: If the publication doesn't exist
            RootRemovalError: If node_id is the root
        """
        plan = self._plan(node_id)
        removed = [self._inv_map[idx] for idx in plan.closure]
        closure = set(plan.closure)
        detached = [
            (self._inv_map[p], self._inv_map[c])
            for p, c in plan.cut_edges
            if p not in closure or c not in closure
        ]

        self._apply_removal(plan)

        logger.debug("Removed %r with %d orphan(s)", node_id, len(removed) - 1)
        for parent_id, child_id in detached:
            self._record("log_citation_removed", child_id, parent_id)
        for removed_id in removed:
            self._record("log_publication_removed", removed_id)
        self._record("log_cascade", node_id, removed)

        return sorted(removed)

    def preview_removal(self, node_id: PublicationId) -> List[PublicationId]:
        """
        Ids remove(node_id) would erase, without changing anything.

        Raises:
            PublicationNotFoundError: If the publication doesn't exist
            RootRemovalError: If node_id is the root
        """
        plan = self._plan(node_id)
        return sorted(self._inv_map[idx] for idx in plan.closure)

    def _plan(self, node_id: PublicationId) -> RemovalPlan:
        self._ensure_usable()
        idx = self._get_index(node_id)
        if node_id == self._root:
            raise RootRemovalError(node_id)
        return plan_removal(self._graph, idx, root=self._node_map[self._root])

    def _apply_removal(self, plan: RemovalPlan) -> None:
        """Detach the closure's edges, then erase the closure from the store."""
        for parent_idx, child_idx in plan.cut_edges:
            self._graph.remove_edge(parent_idx, child_idx)
        for idx in plan.closure:
            self._graph.remove_node(idx)
            del self._node_map[self._inv_map.pop(idx)]

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate(self, raise_on_error: bool = False) -> InvariantReport:
        """
        Check every structural invariant.

        Raises:
            GraphInvariantError: If raise_on_error and an ERROR is found
        """
        self._ensure_usable()
        return GraphInvariants.validate_all(
            self._graph,
            self._node_map[self._root],
            node_map=self._node_map,
            inv_map=self._inv_map,
            raise_on_error=raise_on_error,
        )

    # =========================================================================
    # OWNERSHIP TRANSFER
    # =========================================================================

    def transfer(self) -> "CitationGraph":
        """
        Move this graph's contents into a new instance.

        This instance is left empty and unusable (GraphMovedError).
        """
        self._ensure_usable()
        target = CitationGraph.__new__(CitationGraph)
        target._take(self)
        return target

    def move_from(self, other: "CitationGraph") -> "CitationGraph":
        """
        Replace this graph's contents with `other`'s.

        This graph's previous nodes are dropped; `other` is left empty and
        unusable (GraphMovedError).
        """
        if other is self:
            return self
        other._ensure_usable()
        self._take(other)
        return self

    def _take(self, source: "CitationGraph") -> None:
        self._config = source._config
        self._factory = source._factory
        self._mutation_logger = source._mutation_logger
        self._graph = source._graph
        self._node_map = source._node_map
        self._inv_map = source._inv_map
        self._root = source._root
        self._moved = False
        source._invalidate()

    def _invalidate(self) -> None:
        self._graph = rx.PyDiGraph(multigraph=False)
        self._node_map = {}
        self._inv_map = {}
        self._root = None
        self._moved = True

    def __copy__(self):
        raise TypeError("CitationGraph cannot be copied; use transfer() to move it")

    def __deepcopy__(self, memo):
        raise TypeError("CitationGraph cannot be copied; use transfer() to move it")

    def __reduce_ex__(self, protocol):
        raise TypeError("CitationGraph cannot be pickled or copied")

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _ensure_usable(self) -> None:
        if self._moved:
            raise GraphMovedError()

    def _get_index(self, node_id: PublicationId) -> int:
        """Translate a publication id to its rustworkx index."""
        self._ensure_usable()
        try:
            return self._node_map[node_id]
        except KeyError:
            raise PublicationNotFoundError(node_id) from None

    def _record(self, method: str, *args: Any) -> None:
        """Forward a completed mutation to the mutation logger, if any."""
        if self._mutation_logger is None or not self._config.log_mutations:
            return
        try:
            getattr(self._mutation_logger, method)(*args)
        except Exception:
            # Observability never fails a mutation that already succeeded
            logger.warning("Mutation logging failed in %s", method, exc_info=True)

    # =========================================================================
    # MAGIC METHODS
    # =========================================================================

    def __len__(self) -> int:
        return self.node_count

    def __iter__(self) -> Iterator[PublicationId]:
        return self.iter_ids()

    def __contains__(self, node_id: PublicationId) -> bool:
        return self.exists(node_id)

    def __getitem__(self, node_id: PublicationId) -> PublicationLike:
        return self.lookup(node_id)

    def __repr__(self) -> str:
        if self._moved:
            return "CitationGraph(<moved>)"
        return (
            f"CitationGraph(root={self._root!r}, "
            f"nodes={self.node_count}, edges={self.edge_count})"
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def build_graph(
    root_id: PublicationId,
    citations: Iterable[Sequence[Any]] = (),
    **kwargs: Any,
) -> CitationGraph:
    """
    Build a graph from (id, parent_ids) pairs, created in order.

    Example:
        build_graph("R", [("A", "R"), ("B", "R"), ("C", ["A", "B"])])
    """
    graph = CitationGraph(root_id, **kwargs)
    for node_id, parent_ids in citations:
        graph.create(node_id, parent_ids)
    return graph
