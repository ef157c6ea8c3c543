import logging
from enum import Enum

import pytest

from console.shared.core.actions import Action
from console.shared.core.configuration import StoreConfig
from console.shared.core.errors import DuplicateSegmentError, ReentrantDispatchError
from console.state import Getter, Segment, Store


class NodeAction(str, Enum):
    RECEIVE = "NODES_RECEIVE"


def test_register_adds_initial_state(store, counter_segment):
    store.register("counter", counter_segment)

    assert store.state["counter"] == 0
    assert store.has_segment("counter")
    assert store.segment_names == ["counter"]


def test_register_duplicate_name_fails(store, counter_segment):
    store.register("counter", counter_segment)

    with pytest.raises(DuplicateSegmentError) as exc_info:
        store.register("counter", Segment(10))

    assert exc_info.value.name == "counter"
    assert store.state["counter"] == 0


def test_state_tree_is_read_only(store, counter_segment):
    store.register("counter", counter_segment)

    with pytest.raises(TypeError):
        store.state["counter"] = 5


def test_counter_scenario(store, counter_segment):
    store.register("counter", counter_segment)
    counter = Getter("counter")
    seen = []
    store.observe(counter, seen.append)

    for _ in range(3):
        store.dispatch("INCR")

    assert store.evaluate(counter) == 3
    assert seen == [1, 2, 3]

    tree_before = store.state
    segment_before = store.state["counter"]
    assert store.dispatch("NOOP") is False

    assert store.state is tree_before
    assert store.state["counter"] is segment_before
    assert seen == [1, 2, 3]


def test_unhandled_action_leaves_tree_and_observers_alone(store, counter_segment):
    store.register("counter", counter_segment)
    store.register("labels", Segment({"env": "prod"}))
    calls = []
    store.observe(("labels",), calls.append)
    store.observe(("counter",), calls.append)

    tree = store.state
    store.dispatch(Action("SOMETHING_ELSE", {"x": 1}))

    assert store.state is tree
    assert calls == []


def test_segments_without_handler_keep_their_reference(store, counter_segment):
    labels = {"env": "prod"}
    store.register("counter", counter_segment)
    store.register("labels", Segment(labels))

    store.dispatch("INCR")

    assert store.state["labels"] is labels
    assert store.state["counter"] == 1


def test_reducer_returning_same_reference_does_not_notify(store):
    segment = Segment(("a", "b"))
    segment.add_handler("TOUCH", lambda state, _payload: state)
    store.register("items", segment)
    calls = []
    store.observe("items", calls.append)

    assert store.dispatch("TOUCH") is False
    assert calls == []


def test_enum_tags_route_like_strings(store):
    segment = Segment(())
    segment.add_handler(NodeAction.RECEIVE, lambda _state, payload: tuple(payload))
    store.register("nodes", segment)

    store.dispatch(NodeAction.RECEIVE, ["node-1"])
    store.dispatch("NODES_RECEIVE", ["node-1", "node-2"])

    assert store.evaluate("nodes") == ("node-1", "node-2")


def test_dispatch_rejects_action_with_separate_payload(store):
    with pytest.raises(TypeError):
        store.dispatch(Action("INCR"), 1)


def test_reducer_error_aborts_whole_dispatch(store):
    first = Segment(0)
    first.add_handler("BOOM", lambda state, _payload: state + 1)
    second = Segment("ok")

    @second.on("BOOM")
    def _explode(state, payload):
        raise RuntimeError("reducer failed")

    store.register("first", first)
    store.register("second", second)
    calls = []
    store.observe("first", calls.append)
    tree = store.state

    with pytest.raises(RuntimeError, match="reducer failed"):
        store.dispatch("BOOM")

    assert store.state is tree
    assert store.state["first"] == 0
    assert calls == []


def test_dispatch_from_reducer_is_rejected(store, counter_segment):
    store.register("counter", counter_segment)
    looping = Segment(None)
    looping.add_handler("LOOP", lambda state, _payload: store.dispatch("INCR"))
    store.register("looping", looping)

    with pytest.raises(ReentrantDispatchError):
        store.dispatch("LOOP")

    # Guard is released after the failed dispatch
    store.dispatch("INCR")
    assert store.evaluate("counter") == 1


def test_dispatch_from_getter_compute_is_rejected(store, counter_segment):
    store.register("counter", counter_segment)

    def sneaky(value):
        store.dispatch("INCR")
        return value

    with pytest.raises(ReentrantDispatchError):
        store.evaluate(Getter("counter", compute=sneaky))

    assert store.evaluate("counter") == 0


def test_observer_callback_may_dispatch(store, counter_segment):
    store.register("counter", counter_segment)
    shadow = Segment(0)
    shadow.add_handler("SHADOW", lambda _state, payload: payload)
    store.register("shadow", shadow)

    store.observe("counter", lambda value: store.dispatch("SHADOW", value * 10))
    store.dispatch("INCR")

    assert store.evaluate("shadow") == 10


def test_batch_notifies_once(store, counter_segment):
    store.register("counter", counter_segment)
    seen = []
    store.observe("counter", seen.append)

    with store.batch():
        store.dispatch("INCR")
        store.dispatch("INCR")
        # State is committed even though observers wait
        assert store.evaluate("counter") == 2
        assert seen == []

    assert seen == [2]


def test_nested_batches_notify_at_outermost_exit(store, counter_segment):
    store.register("counter", counter_segment)
    seen = []
    store.observe("counter", seen.append)

    def inner():
        store.dispatch("INCR")
        with store.batch():
            store.dispatch("INCR")
        assert seen == []
        return "done"

    assert store.batch(inner) == "done"
    assert seen == [2]


def test_batch_without_changes_does_not_notify(store, counter_segment):
    store.register("counter", counter_segment)
    seen = []
    store.observe("counter", seen.append)

    with store.batch():
        store.dispatch("NOOP")

    assert seen == []


def test_reset_restores_initial_state(store, counter_segment):
    store.register("counter", counter_segment)
    seen = []
    store.observe("counter", seen.append)
    store.dispatch("INCR")

    assert store.reset() is True
    assert store.evaluate("counter") == 0
    assert seen == [1, 0]
    assert store.reset() is False


def test_unsubscribe_stops_callbacks(store, counter_segment):
    store.register("counter", counter_segment)
    seen = []
    unsubscribe = store.observe("counter", seen.append)

    store.dispatch("INCR")
    unsubscribe()
    store.dispatch("INCR")

    assert seen == [1]


def test_unobserve_removes_by_getter(store, counter_segment):
    store.register("counter", counter_segment)
    counter = Getter("counter")
    first, second = [], []
    store.observe(counter, first.append)
    store.observe(counter, second.append)

    store.unobserve(counter, first.append)
    store.dispatch("INCR")
    store.unobserve(counter)
    store.dispatch("INCR")

    assert first == []
    assert second == [1]


def test_failing_observer_does_not_block_others(store, counter_segment, caplog):
    store.register("counter", counter_segment)
    seen = []

    def broken(_value):
        raise ValueError("render failed")

    store.observe("counter", broken)
    store.observe("counter", seen.append)

    with caplog.at_level(logging.ERROR, logger="console.state.store"):
        store.dispatch("INCR")

    assert seen == [1]
    assert "broken" in caplog.text


def test_dispatch_logging(counter_segment, caplog):
    store = Store(StoreConfig(log_dispatches=True))
    store.register("counter", counter_segment)

    with caplog.at_level(logging.DEBUG, logger="console.state.store"):
        store.dispatch("INCR")
        store.dispatch("NOOP")

    assert "'INCR' updated segments ['counter']" in caplog.text
    assert "'NOOP' left the tree unchanged" in caplog.text


def test_stores_are_isolated(counter_segment):
    one, two = Store(), Store()
    one.register("counter", counter_segment)
    two.register("counter", counter_segment)

    one.dispatch("INCR")

    assert one.evaluate("counter") == 1
    assert two.evaluate("counter") == 0


def test_register_segments_and_snapshot_access(store, counter_segment):
    labels = Segment({"env": "prod"})
    store.register_segments({"counter": counter_segment, "labels": labels})

    assert store.segment_names == ["counter", "labels"]
    assert store.current_state() is store.state
    assert counter_segment.handles("INCR")
    assert not labels.handles("INCR")


def test_segment_rejects_duplicate_and_invalid_handlers():
    segment = Segment(0)
    segment.add_handler("INCR", lambda state, _payload: state + 1)

    with pytest.raises(ValueError):
        segment.add_handler("INCR", lambda state, _payload: state)
    with pytest.raises(TypeError):
        segment.add_handler("DECR", "not callable")
    with pytest.raises(ValueError):
        Store().register("", segment)
