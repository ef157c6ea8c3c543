"""AsyncAttempt Tracker.

Records the lifecycle of every named asynchronous operation in a dedicated
``attempts`` segment keyed by operation id, so pages can render loading, error
and success states from one place.

State machine (no terminal state):
    any          --start-->   IN_PROGRESS
    IN_PROGRESS  --success--> SUCCEEDED
    IN_PROGRESS  --fail-->    FAILED
    any          --clear-->   NOT_STARTED

``success``/``fail`` are also accepted outside IN_PROGRESS: the last write for
an id wins. Two operations sharing an id therefore race, and whichever
finishes last decides the final status.
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from console.shared.core.actions import Action, create_action

from .getters import Getter
from .immutable import EMPTY, assoc
from .segment import Segment

logger = logging.getLogger(__name__)

ATTEMPTS_SEGMENT = "attempts"


class AttemptStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class AsyncAttempt(BaseModel):
    """Lifecycle record of one asynchronous operation."""
    model_config = ConfigDict(frozen=True)

    operation_id: str
    status: AttemptStatus = AttemptStatus.NOT_STARTED
    message: Optional[str] = None
    payload: Any = None

    @property
    def is_processing(self) -> bool:
        return self.status == AttemptStatus.IN_PROGRESS

    @property
    def is_success(self) -> bool:
        return self.status == AttemptStatus.SUCCEEDED

    @property
    def is_failed(self) -> bool:
        return self.status == AttemptStatus.FAILED


class AttemptActionType(str, Enum):
    START = "ATTEMPT_START"
    SUCCESS = "ATTEMPT_SUCCESS"
    FAIL = "ATTEMPT_FAIL"
    CLEAR = "ATTEMPT_CLEAR"


# Per-tag payloads

class AttemptStarted(BaseModel):
    model_config = ConfigDict(frozen=True)
    operation_id: str = Field(min_length=1)


class AttemptSucceeded(BaseModel):
    model_config = ConfigDict(frozen=True)
    operation_id: str = Field(min_length=1)
    payload: Any = None


class AttemptFailed(BaseModel):
    model_config = ConfigDict(frozen=True)
    operation_id: str = Field(min_length=1)
    message: Optional[str] = None


class AttemptCleared(BaseModel):
    model_config = ConfigDict(frozen=True)
    operation_id: str = Field(min_length=1)


@lru_cache(maxsize=None)
def not_started(operation_id: str) -> AsyncAttempt:
    """Shared NOT_STARTED record for ``operation_id``."""
    return AsyncAttempt(operation_id=operation_id)


# --- Action creators ---

def start(operation_id: str) -> Action:
    return create_action(AttemptActionType.START, AttemptStarted(operation_id=operation_id))


def success(operation_id: str, payload: Any = None) -> Action:
    return create_action(AttemptActionType.SUCCESS, AttemptSucceeded(operation_id=operation_id, payload=payload))


def fail(operation_id: str, message: Optional[str] = None) -> Action:
    return create_action(AttemptActionType.FAIL, AttemptFailed(operation_id=operation_id, message=message))


def clear(operation_id: str) -> Action:
    return create_action(AttemptActionType.CLEAR, AttemptCleared(operation_id=operation_id))


# --- Reducers ---

AttemptsState = Mapping[str, AsyncAttempt]


def _put(state: AttemptsState, attempt: AsyncAttempt) -> AttemptsState:
    return assoc(state, attempt.operation_id, attempt)


def _on_start(state: AttemptsState, payload: AttemptStarted) -> AttemptsState:
    return _put(state, AsyncAttempt(operation_id=payload.operation_id, status=AttemptStatus.IN_PROGRESS))


def _on_success(state: AttemptsState, payload: AttemptSucceeded) -> AttemptsState:
    return _put(state, AsyncAttempt(
        operation_id=payload.operation_id,
        status=AttemptStatus.SUCCEEDED,
        payload=payload.payload,
    ))


def _on_fail(state: AttemptsState, payload: AttemptFailed) -> AttemptsState:
    return _put(state, AsyncAttempt(
        operation_id=payload.operation_id,
        status=AttemptStatus.FAILED,
        message=payload.message,
    ))


def _on_clear(state: AttemptsState, payload: AttemptCleared) -> AttemptsState:
    if payload.operation_id not in state:
        return state
    return _put(state, not_started(payload.operation_id))


def create_attempts_segment() -> Segment[AttemptsState]:
    """Segment holding one ``AsyncAttempt`` per operation id."""
    return Segment(EMPTY, {
        AttemptActionType.START: _on_start,
        AttemptActionType.SUCCESS: _on_success,
        AttemptActionType.FAIL: _on_fail,
        AttemptActionType.CLEAR: _on_clear,
    })


# --- Getters ---

@lru_cache(maxsize=None)
def attempt_getter(operation_id: str) -> Getter:
    """Getter for one attempt record; the same getter object per id."""
    def _lookup(attempts: AttemptsState) -> AsyncAttempt:
        return attempts.get(operation_id) or not_started(operation_id)

    return Getter(ATTEMPTS_SEGMENT, compute=_lookup, name=f"attempt[{operation_id}]")


class AttemptTracker:
    """Write and read API for attempts in one store.

    Registers the ``attempts`` segment on first use if the store does not
    have it yet.
    """

    def __init__(self, store: Any) -> None:
        self.store = store
        if not store.has_segment(ATTEMPTS_SEGMENT):
            store.register(ATTEMPTS_SEGMENT, create_attempts_segment())

    # --- Writes ---

    def start(self, operation_id: str) -> None:
        logger.debug(f"AttemptTracker: start '{operation_id}'")
        self.store.dispatch(start(operation_id))

    def success(self, operation_id: str, payload: Any = None) -> None:
        logger.debug(f"AttemptTracker: success '{operation_id}'")
        self.store.dispatch(success(operation_id, payload))

    def fail(self, operation_id: str, message: Optional[str] = None) -> None:
        logger.debug(f"AttemptTracker: fail '{operation_id}': {message}")
        self.store.dispatch(fail(operation_id, message))

    def clear(self, operation_id: str) -> None:
        self.store.dispatch(clear(operation_id))

    # --- Reads ---

    def attempt_getter(self, operation_id: str) -> Getter:
        return attempt_getter(operation_id)

    def attempt(self, operation_id: str) -> AsyncAttempt:
        return self.store.evaluate(attempt_getter(operation_id))

    def status(self, operation_id: str) -> AttemptStatus:
        return self.attempt(operation_id).status

    def message(self, operation_id: str) -> Optional[str]:
        return self.attempt(operation_id).message

    def payload(self, operation_id: str) -> Any:
        return self.attempt(operation_id).payload

    def observe(self, operation_id: str, callback) -> Any:
        """Subscribe ``callback(attempt)`` to changes of one attempt."""
        return self.store.observe(attempt_getter(operation_id), callback)
