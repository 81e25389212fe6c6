"""
CITEGRAPH SCHEMAS - The Payloads of the Citation Graph

This module defines the data structures that live inside (or are read out of)
the citation graph:
- Publication: The default payload stored at every node
- Citation: The thin payload stored on every parent -> child edge
- NodeSnapshot / GraphSnapshot: Read-only copies of the graph structure
- RemovalPlan: The closure computed before a cascading removal

Design Principles:
1. The engine only relies on a payload being constructible from an id and
   exposing it through get_id(). Anything satisfying PublicationLike works.
2. msgspec.Struct for everything stored per node or per edge (low memory,
   O(1) attribute access during traversal).
3. Snapshots are copies, never live views into the store.
"""
import msgspec
from typing import Any, Dict, Hashable, List, Optional, Protocol, Tuple, runtime_checkable
from datetime import datetime, timezone


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def now_utc() -> str:
    """Fast UTC timestamp as ISO8601 string."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# PUBLICATION PAYLOAD
# =============================================================================

@runtime_checkable
class PublicationLike(Protocol):
    """
    Structural contract for publication payloads.

    A payload type is passed to CitationGraph as a factory: calling it with a
    single id must build a payload, and get_id() must return that id. Ids must
    be hashable, equality comparable and totally ordered.
    """

    def get_id(self) -> Hashable:
        ...


class Publication(msgspec.Struct):
    """
    Default publication payload.

    Only `id` is required, so `Publication(pub_id)` satisfies the factory
    contract. The descriptive fields are free for callers to fill in after
    lookup(); the engine never reads them.
    """
    id: Any
    title: str = ""
    authors: List[str] = msgspec.field(default_factory=list)
    year: Optional[int] = None
    created_at: str = msgspec.field(default_factory=now_utc)

    def get_id(self) -> Any:
        """Return the publication identifier."""
        return self.id


# =============================================================================
# EDGE PAYLOAD
# =============================================================================

class Citation(msgspec.Struct, kw_only=True, frozen=True):
    """
    Payload attached to every edge in the rustworkx graph.

    Direction follows the graph: source is the cited publication (parent),
    target is the citing publication (child).
    """
    parent_id: Any
    child_id: Any
    created_at: str = msgspec.field(default_factory=now_utc)


# =============================================================================
# SNAPSHOTS
# =============================================================================

class NodeSnapshot(msgspec.Struct, kw_only=True, frozen=True):
    """Copy of one node's neighbor sets, sorted by id."""
    id: Any
    parents: Tuple[Any, ...] = ()
    children: Tuple[Any, ...] = ()


class GraphSnapshot(msgspec.Struct, kw_only=True, frozen=True):
    """
    Full structural copy of a graph: root id plus every node's edges.

    Two snapshots compare equal exactly when the node sets, every parent and
    child set, and the root id are the same.
    """
    root_id: Any
    nodes: Dict[Any, NodeSnapshot] = msgspec.field(default_factory=dict)

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(n.children) for n in self.nodes.values())


# =============================================================================
# REMOVAL PLAN
# =============================================================================

class RemovalPlan(msgspec.Struct, kw_only=True, frozen=True):
    """
    Result of orphan propagation, computed before any mutation.

    Attributes:
        target: rustworkx index of the publication the caller asked to remove
        closure: indices of every node to erase (target first, then in the
            order orphan propagation selected them)
        cut_edges: (parent_idx, child_idx) pairs of every edge incident to
            the closure, each recorded once; detached before the closure is
            erased
    """
    target: int
    closure: Tuple[int, ...]
    cut_edges: Tuple[Tuple[int, int], ...] = ()

    def __len__(self) -> int:
        return len(self.closure)
