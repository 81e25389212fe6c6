"""
CITEGRAPH MUTATION LOGGER - Structured History of Graph Changes

Every successful mutation of a CitationGraph can be recorded as a
MutationEvent: creations, new citations, and removals (with the full cascade
of orphaned publications). Events are kept in an in-memory ring buffer and can
optionally be appended to newline-delimited JSON files.

Architecture:
- MutationLogger: Core logging interface used by CitationGraph
- EventBuffer: In-memory ring buffer for recent events
- FileLogger: Optional JSONL sink (one file per UTC day)

Usage:
    logger = MutationLogger()
    graph = CitationGraph("root", mutation_logger=logger)
    graph.create("a", "root")

    for event in logger.get_events_for_node("a"):
        print(f"{event.timestamp}: {event.mutation_type}")

Events are emitted only after a mutation has fully succeeded. A failing sink
or subscriber is reported through `logging` and never affects the graph.
"""
import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, TextIO

import msgspec

log = logging.getLogger(__name__)


# =============================================================================
# EVENT TYPES
# =============================================================================

class MutationType(str, Enum):
    """Types of graph mutations for event tracking."""
    PUBLICATION_CREATED = "PUBLICATION_CREATED"
    CITATION_ADDED = "CITATION_ADDED"
    CITATION_REMOVED = "CITATION_REMOVED"
    PUBLICATION_REMOVED = "PUBLICATION_REMOVED"
    CASCADE_REMOVAL = "CASCADE_REMOVAL"


class MutationEvent(msgspec.Struct, kw_only=True):
    """
    Individual mutation event.

    `node_id` is set for node-level events; `source_id`/`target_id` for
    edge-level events (source = cited parent, target = citing child).
    CASCADE_REMOVAL events carry every publication erased by one remove().
    """
    timestamp: str
    sequence: int
    mutation_type: str                  # MutationType value
    node_id: Optional[Any] = None
    source_id: Optional[Any] = None
    target_id: Optional[Any] = None
    parent_ids: List[Any] = msgspec.field(default_factory=list)
    removed_ids: List[Any] = msgspec.field(default_factory=list)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class LoggerConfig:
    """Configuration for the mutation logger."""
    enable_file_log: bool = False       # Enable file-based logging
    log_path: Optional[Path] = None     # Directory for log files
    buffer_size: int = 10000            # In-memory buffer size

    def __post_init__(self):
        if self.log_path is None:
            self.log_path = Path("./workspace/logs")


# =============================================================================
# EVENT BUFFER
# =============================================================================

class EventBuffer:
    """
    Thread-safe ring buffer for recent mutation events.

    Provides O(1) append and O(n) query for filtering.
    """

    def __init__(self, max_size: int = 10000):
        self._buffer: Deque[MutationEvent] = deque(maxlen=max_size)
        self._lock = threading.RLock()
        self._sequence = 0

    def append(self, event: MutationEvent) -> None:
        """Add an event to the buffer."""
        with self._lock:
            self._buffer.append(event)

    def get_since(self, timestamp: str) -> List[MutationEvent]:
        """Get all events since a timestamp."""
        with self._lock:
            return [e for e in self._buffer if e.timestamp >= timestamp]

    def get_last(self, n: int) -> List[MutationEvent]:
        """Get the last n events."""
        with self._lock:
            items = list(self._buffer)
            return items[-n:] if n > 0 else []

    def get_by_node(self, node_id: Any) -> List[MutationEvent]:
        """Get all events touching a publication (as node or edge endpoint)."""
        with self._lock:
            return [
                e for e in self._buffer
                if node_id in (e.node_id, e.source_id, e.target_id)
                or node_id in e.removed_ids
            ]

    def get_by_type(self, mutation_type: str) -> List[MutationEvent]:
        """Get all events of a specific type."""
        with self._lock:
            return [e for e in self._buffer if e.mutation_type == mutation_type]

    def next_sequence(self) -> int:
        """Get next sequence number."""
        with self._lock:
            self._sequence += 1
            return self._sequence

    def clear(self) -> None:
        """Clear the buffer."""
        with self._lock:
            self._buffer.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


# =============================================================================
# FILE LOGGER
# =============================================================================

class FileLogger:
    """
    File-based event logger.

    Writes events as newline-delimited JSON, one file per UTC day.
    """

    def __init__(self, log_path: Path):
        self._log_path = Path(log_path)
        self._current_file: Optional[TextIO] = None
        self._current_date: Optional[str] = None
        self._lock = threading.Lock()
        self._encoder = msgspec.json.Encoder()

        self._log_path.mkdir(parents=True, exist_ok=True)

    def write(self, event: MutationEvent) -> None:
        """Write an event to the log file."""
        with self._lock:
            self._ensure_file()
            line = self._encoder.encode(event).decode("utf-8") + "\n"
            self._current_file.write(line)
            self._current_file.flush()

    def _ensure_file(self) -> None:
        """Ensure we have a valid file handle for today."""
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")

        if self._current_date != today:
            if self._current_file:
                self._current_file.close()

            filepath = self._log_path / f"mutations_{today}.jsonl"
            self._current_file = open(filepath, "a", encoding="utf-8")
            self._current_date = today

    def close(self) -> None:
        """Close the file handle."""
        with self._lock:
            if self._current_file:
                self._current_file.close()
                self._current_file = None
                self._current_date = None

    def read_log(self, date: str) -> List[MutationEvent]:
        """Read events from a specific date's log (YYYY-MM-DD)."""
        filepath = self._log_path / f"mutations_{date}.jsonl"
        if not filepath.exists():
            return []

        decoder = msgspec.json.Decoder(type=MutationEvent)
        events = []
        with open(filepath, "r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(decoder.decode(line))
                except msgspec.DecodeError:
                    log.warning("Skipping malformed event at %s:%d", filepath, lineno)
        return events


# =============================================================================
# MUTATION LOGGER
# =============================================================================

class MutationLogger:
    """
    Main logging interface for citation graph mutations.

    Provides a unified API for logging events to:
    - In-memory buffer (always)
    - File-based logs (configurable)
    - Subscriber callbacks

    Usage:
        logger = MutationLogger()
        logger.log_publication_created("a", ["root"])
        recent = logger.get_recent_events(10)
    """

    def __init__(self, config: Optional[LoggerConfig] = None):
        self.config = config or LoggerConfig()

        self._buffer = EventBuffer(self.config.buffer_size)
        self._file_logger: Optional[FileLogger] = None
        if self.config.enable_file_log and self.config.log_path:
            self._file_logger = FileLogger(self.config.log_path)

        self._subscribers: List[Callable[[MutationEvent], None]] = []

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _emit(self, event: MutationEvent) -> None:
        """Emit an event to all destinations."""
        self._buffer.append(event)

        if self._file_logger:
            try:
                self._file_logger.write(event)
            except OSError:
                log.warning("Failed to write mutation event %d", event.sequence, exc_info=True)

        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                log.warning("Mutation subscriber %r failed", subscriber, exc_info=True)

    def _event(self, mutation_type: MutationType, **kwargs) -> MutationEvent:
        event = MutationEvent(
            timestamp=self._now(),
            sequence=self._buffer.next_sequence(),
            mutation_type=mutation_type.value,
            **kwargs,
        )
        self._emit(event)
        return event

    # =========================================================================
    # LOGGING METHODS
    # =========================================================================

    def log_publication_created(self, node_id: Any, parent_ids: Sequence[Any]) -> MutationEvent:
        """Log a publication creation together with the parents it cites."""
        return self._event(
            MutationType.PUBLICATION_CREATED,
            node_id=node_id,
            parent_ids=list(parent_ids),
        )

    def log_citation_added(self, child_id: Any, parent_id: Any) -> MutationEvent:
        """Log a new parent -> child edge."""
        return self._event(
            MutationType.CITATION_ADDED,
            source_id=parent_id,
            target_id=child_id,
        )

    def log_citation_removed(self, child_id: Any, parent_id: Any) -> MutationEvent:
        """Log an edge detached from a surviving publication."""
        return self._event(
            MutationType.CITATION_REMOVED,
            source_id=parent_id,
            target_id=child_id,
        )

    def log_publication_removed(self, node_id: Any) -> MutationEvent:
        """Log a single erased publication."""
        return self._event(MutationType.PUBLICATION_REMOVED, node_id=node_id)

    def log_cascade(self, node_id: Any, removed_ids: Sequence[Any]) -> MutationEvent:
        """Log the whole closure erased by removing `node_id`."""
        return self._event(
            MutationType.CASCADE_REMOVAL,
            node_id=node_id,
            removed_ids=list(removed_ids),
        )

    # =========================================================================
    # QUERY METHODS
    # =========================================================================

    def get_recent_events(self, n: int = 100) -> List[MutationEvent]:
        """Get the n most recent events."""
        return self._buffer.get_last(n)

    def get_events_since(self, timestamp: str) -> List[MutationEvent]:
        """Get all events since a timestamp."""
        return self._buffer.get_since(timestamp)

    def get_events_for_node(self, node_id: Any) -> List[MutationEvent]:
        """Get all events for a specific publication."""
        return self._buffer.get_by_node(node_id)

    def get_events_by_type(self, mutation_type: str) -> List[MutationEvent]:
        """Get all events of a specific type."""
        if isinstance(mutation_type, MutationType):
            mutation_type = mutation_type.value
        return self._buffer.get_by_type(mutation_type)

    def get_node_timeline(self, node_id: Any) -> List[Dict[str, Any]]:
        """Simplified list of mutations for a publication."""
        return [
            {"time": e.timestamp, "type": e.mutation_type, "sequence": e.sequence}
            for e in self.get_events_for_node(node_id)
        ]

    # =========================================================================
    # SUBSCRIPTION
    # =========================================================================

    def subscribe(self, callback: Callable[[MutationEvent], None]) -> None:
        """Subscribe to mutation events."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[MutationEvent], None]) -> None:
        """Unsubscribe from mutation events."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def close(self) -> None:
        """Close all resources."""
        if self._file_logger:
            self._file_logger.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

_global_logger: Optional[MutationLogger] = None


def get_logger() -> MutationLogger:
    """Get or create the global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = MutationLogger()
    return _global_logger


def configure_logger(config: LoggerConfig) -> MutationLogger:
    """Configure and return a new global logger."""
    global _global_logger
    if _global_logger:
        _global_logger.close()
    _global_logger = MutationLogger(config)
    return _global_logger
