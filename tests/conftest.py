"""
Pytest configuration and shared fixtures for the citegraph test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep CITEGRAPH_* overrides from the outer environment out of tests."""
    for name in ("CITEGRAPH_ENFORCE_ACYCLIC", "CITEGRAPH_LOG_MUTATIONS", "CITEGRAPH_LOG_PATH"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fresh_graph():
    """Provide a graph holding only the root "R"."""
    from citegraph.core.graph_db import CitationGraph
    return CitationGraph("R")


@pytest.fixture
def cascade_graph():
    """
    Provide the canonical cascade example:

        R -> A -> C
        R -> B -> C
    """
    from citegraph.core.graph_db import build_graph
    return build_graph("R", [("A", "R"), ("B", "R"), ("C", ["A", "B"])])


@pytest.fixture
def mutation_logger():
    """Provide an in-memory MutationLogger (no file output)."""
    from citegraph.infrastructure.logger import LoggerConfig, MutationLogger
    logger = MutationLogger(LoggerConfig(enable_file_log=False))
    yield logger
    logger.close()
