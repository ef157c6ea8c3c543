"""Reactive state management for the console.

Architecture:
- Store: single immutable state tree, segment registry and dispatcher
- Segment: independently owned slice of the tree and its reducers
- Getter: memoized read over key paths and other getters
- AttemptTracker: lifecycle of every named asynchronous operation
- Orchestrator: drives request calls and records their outcome
"""

from .attempts import AsyncAttempt, AttemptStatus, AttemptTracker
from .collection import collection_getter, create_collection_segment
from .getters import Getter, getter
from .orchestrator import Orchestrator
from .segment import Segment
from .store import Store

__all__ = [
    "AsyncAttempt",
    "AttemptStatus",
    "AttemptTracker",
    "Getter",
    "Orchestrator",
    "Segment",
    "Store",
    "collection_getter",
    "create_collection_segment",
    "getter",
]
