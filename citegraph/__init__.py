"""
CITEGRAPH - In-process citation graph engine.

Central exports:
- CitationGraph: the graph engine (create, add_citation, remove, queries)
- Publication: default payload type
- Exception hierarchy rooted at GraphError
"""

from citegraph.core.graph_db import (
    CitationGraph,
    CitationCycleError,
    GraphError,
    GraphInvariantError,
    GraphMovedError,
    PublicationAlreadyExistsError,
    PublicationNotFoundError,
    RootRemovalError,
    build_graph,
)
from citegraph.core.schemas import GraphSnapshot, NodeSnapshot, Publication, PublicationLike
from citegraph.infrastructure.config import GraphConfig, load_settings
from citegraph.infrastructure.logger import LoggerConfig, MutationLogger

__version__ = "0.1.0"

__all__ = [
    "CitationGraph",
    "build_graph",
    "Publication",
    "PublicationLike",
    "GraphSnapshot",
    "NodeSnapshot",
    "GraphError",
    "PublicationNotFoundError",
    "PublicationAlreadyExistsError",
    "RootRemovalError",
    "GraphInvariantError",
    "CitationCycleError",
    "GraphMovedError",
    "GraphConfig",
    "LoggerConfig",
    "MutationLogger",
    "load_settings",
]
