"""
CITEGRAPH CORE - The graph engine.

- graph_db: CitationGraph and its exceptions
- orphans: cascading removal planning
- graph_invariants: structural validators
- schemas: msgspec payloads and snapshots
"""
