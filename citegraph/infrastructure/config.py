"""
CITEGRAPH CONFIG - Engine and Logger Settings

Configuration is read once from a TOML file and turned into typed settings
objects that are passed explicitly to the components that need them.

File layout (citegraph.toml):

    [graph]
    enforce_acyclic = false   # reject add_citation edges that close a cycle
    log_mutations = true      # emit MutationEvents to the attached logger

    [logger]
    enable_file_log = false
    log_path = "./workspace/logs"
    buffer_size = 10000

Environment overrides (applied after the file):
    CITEGRAPH_ENFORCE_ACYCLIC, CITEGRAPH_LOG_MUTATIONS, CITEGRAPH_LOG_PATH

Usage:
    from citegraph.infrastructure.config import load_settings

    graph_config, logger_config = load_settings()
"""
import os
import tomllib
import warnings
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from citegraph.infrastructure.logger import LoggerConfig

DEFAULT_CONFIG_PATH = Path("citegraph.toml")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class GraphConfig:
    """Behavioral switches for CitationGraph."""
    enforce_acyclic: bool = False       # Reject cycle-closing citations
    log_mutations: bool = True          # Only meaningful with a MutationLogger attached


def load_toml_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load raw configuration sections from a TOML file.

    A missing file yields an empty dict silently; an unreadable or malformed
    file yields an empty dict with a warning.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        return {}

    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        warnings.warn(f"Failed to load config from {config_path}: {e}")
        return {}


def _from_section(cls, section: Dict[str, Any]):
    """Build a dataclass from a section, ignoring unknown keys."""
    known = {f.name for f in fields(cls)}
    unknown = set(section) - known
    if unknown:
        warnings.warn(f"Ignoring unknown {cls.__name__} keys: {sorted(unknown)}")
    return cls(**{k: v for k, v in section.items() if k in known})


def _env_flag(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() in _TRUE_VALUES


def load_settings(
    path: Optional[Path] = None,
    config_dict: Optional[Dict[str, Any]] = None,
) -> Tuple[GraphConfig, LoggerConfig]:
    """
    Resolve GraphConfig and LoggerConfig from TOML plus environment.

    Args:
        path: TOML file to read (defaults to ./citegraph.toml)
        config_dict: Pre-loaded sections; when given, no file is read

    Returns:
        (graph_config, logger_config)
    """
    if config_dict is None:
        config_dict = load_toml_config(path)

    graph_config = _from_section(GraphConfig, config_dict.get("graph", {}))
    logger_config = _from_section(LoggerConfig, config_dict.get("logger", {}))

    enforce = _env_flag("CITEGRAPH_ENFORCE_ACYCLIC")
    if enforce is not None:
        graph_config.enforce_acyclic = enforce

    log_mutations = _env_flag("CITEGRAPH_LOG_MUTATIONS")
    if log_mutations is not None:
        graph_config.log_mutations = log_mutations

    log_path = os.getenv("CITEGRAPH_LOG_PATH")
    if log_path:
        logger_config.log_path = Path(log_path)
        logger_config.enable_file_log = True
    elif logger_config.log_path is not None:
        logger_config.log_path = Path(logger_config.log_path)

    return graph_config, logger_config
