"""
CITEGRAPH INFRASTRUCTURE - Ambient services for the engine.

- config: GraphConfig / LoggerConfig loading from TOML and environment
- logger: structured mutation event logging
"""

from citegraph.infrastructure.logger import (
    LoggerConfig,
    MutationEvent,
    MutationLogger,
    MutationType,
)
from citegraph.infrastructure.config import GraphConfig, load_settings, load_toml_config

__all__ = [
    "LoggerConfig",
    "MutationEvent",
    "MutationLogger",
    "MutationType",
    "GraphConfig",
    "load_settings",
    "load_toml_config",
]
