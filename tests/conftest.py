"""Shared fixtures: a fresh store per test and helpers for driving requests."""

import asyncio
import logging

import pytest

from console.state import AttemptTracker, Orchestrator, Segment, Store
from console.state.attempts import AttemptActionType


@pytest.fixture
def store():
    return Store()


@pytest.fixture
def counter_segment():
    segment = Segment(0)
    segment.add_handler("INCR", lambda state, _payload: state + 1)
    return segment


@pytest.fixture
def tracker(store):
    return AttemptTracker(store)


@pytest.fixture
def orchestrator(store, tracker):
    return Orchestrator(store, tracker)


@pytest.fixture
def attempt_log(store, tracker):
    """Segment recording every attempt action the store routes, in order."""
    segment = Segment(())
    for tag in AttemptActionType:
        segment.add_handler(
            tag,
            lambda state, payload, _tag=tag: state + ((_tag, payload.operation_id),),
        )
    store.register("attempt_log", segment)

    def entries(kind=None):
        log = store.evaluate("attempt_log")
        return [entry for entry in log if kind is None or entry[0] == kind]

    return entries


@pytest.fixture
def settle():
    """Let the event loop run pending callbacks and task steps."""
    async def _settle(rounds: int = 5) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)
    return _settle


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
