"""State Tree, Registry and Dispatcher.

The ``Store`` is an explicit context object: construct one per process (or per
test) and pass it to everything that reads or changes state. It owns the only
mutation entry point, ``dispatch``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from console.shared.core.actions import Action, ActionTag, create_action
from console.shared.core.configuration import StoreConfig
from console.shared.core.errors import DuplicateSegmentError, ReentrantDispatchError

from .getters import Dependency, Evaluator, Getter
from .immutable import EMPTY, thaw
from .segment import Segment

logger = logging.getLogger(__name__)

ObserverCallback = Callable[[Any], None]

_NO_PAYLOAD: Any = object()


class _Observer:
    """A subscribed getter and the last value its callback saw."""

    def __init__(self, target: Union[Getter, Dependency], callback: ObserverCallback, last_value: Any) -> None:
        self.target = target
        self.callback = callback
        self.last_value = last_value
        self.active = True


class Store:
    """Immutable state tree partitioned into independently owned segments.

    Usage:
        store = Store()
        store.register("counter", counter_segment)
        store.dispatch("INCR")
        store.evaluate(("counter",))  # -> 1

    Observers registered with ``observe`` are told about new values of their
    getter after each dispatch that changes the tree.
    """

    def __init__(self, config: Optional[StoreConfig] = None) -> None:
        self.config = config or StoreConfig()
        self._segments: Dict[str, Segment] = {}
        self._state: Mapping[str, Any] = EMPTY
        self._evaluator = Evaluator(lambda: self._state)
        self._observers: List[_Observer] = []
        self._dispatching = False
        self._batch_depth = 0
        self._pending_notify = False

    # --- Tree ---

    @property
    def state(self) -> Mapping[str, Any]:
        """The latest published snapshot."""
        return self._state

    def current_state(self) -> Mapping[str, Any]:
        return self._state

    @property
    def segment_names(self) -> List[str]:
        return list(self._segments)

    def has_segment(self, name: str) -> bool:
        return name in self._segments

    def register(self, name: str, segment: Segment) -> None:
        """Add ``name → segment.initial_state`` to the tree.

        Raises:
            DuplicateSegmentError: If ``name`` is already registered
        """
        if not isinstance(name, str) or not name:
            raise ValueError(f"Segment name must be a non-empty string, got {name!r}")
        if name in self._segments:
            raise DuplicateSegmentError(name)
        self._guard("register")

        self._segments[name] = segment
        tree = dict(self._state)
        tree[name] = segment.initial_state
        self._state = MappingProxyType(tree)
        logger.debug(f"Store: Registered segment '{name}' handling {list(segment.action_types)}")

    def register_segments(self, segments: Mapping[str, Segment]) -> None:
        for name, segment in segments.items():
            self.register(name, segment)

    # --- Dispatch ---

    def dispatch(self, action: Union[Action, ActionTag], payload: Any = _NO_PAYLOAD) -> bool:
        """Route ``action`` to every segment that handles its type.

        All affected segments commit as one snapshot swap. If a reducer raises,
        nothing is committed and the exception propagates.

        Returns:
            True if the tree changed and observers were notified (or queued
            for notification at the end of the current batch)

        Raises:
            ReentrantDispatchError: If called from a reducer or getter compute
        """
        if not isinstance(action, Action):
            action = create_action(action, None if payload is _NO_PAYLOAD else payload)
        elif payload is not _NO_PAYLOAD:
            raise TypeError("Pass either an Action or a tag and payload, not both")

        self._guard("dispatch")

        self._dispatching = True
        try:
            changed: Dict[str, Any] = {}
            for name, segment in self._segments.items():
                reducer = segment.reducer_for(action.type)
                if reducer is None:
                    continue
                current = self._state[name]
                new_state = reducer(current, action.payload)
                if new_state is not current:
                    changed[name] = new_state
        finally:
            self._dispatching = False

        if not changed:
            if self.config.log_dispatches:
                logger.debug(f"Store: '{action.type}' left the tree unchanged")
            return False

        tree = dict(self._state)
        tree.update(changed)
        self._state = MappingProxyType(tree)

        if self.config.log_dispatches:
            logger.debug(f"Store: '{action.type}' updated segments {sorted(changed)}")

        self._changed()
        return True

    def _guard(self, operation: str) -> None:
        if self._dispatching:
            raise ReentrantDispatchError(f"Cannot {operation} while a dispatch is in progress")
        if self._evaluator.is_computing:
            raise ReentrantDispatchError(f"Cannot {operation} while a getter is being computed")

    @contextmanager
    def _batching(self) -> Iterator["Store"]:
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending_notify:
                self._pending_notify = False
                self._notify()

    def batch(self, fn: Optional[Callable[[], Any]] = None) -> Any:
        """Defer observer notification until the outermost batch ends.

        Use as ``with store.batch(): ...`` or ``store.batch(fn)``. Every
        dispatch inside still commits on its own; observers are notified once.
        """
        if fn is None:
            return self._batching()
        with self._batching():
            return fn()

    def reset(self) -> bool:
        """Return every segment to its initial state."""
        self._guard("reset")
        tree = {name: segment.initial_state for name, segment in self._segments.items()}
        if all(tree[name] is self._state[name] for name in tree):
            return False
        self._state = MappingProxyType(tree)
        logger.debug("Store: Reset to initial state")
        self._changed()
        return True

    # --- Read side ---

    def evaluate(self, target: Union[Getter, Dependency]) -> Any:
        """Evaluate a getter or key path against the current snapshot."""
        return self._evaluator.evaluate(target)

    def evaluate_plain(self, target: Union[Getter, Dependency]) -> Any:
        """Evaluate and convert the result into plain dicts and lists."""
        return thaw(self.evaluate(target))

    def observe(self, target: Union[Getter, Dependency], callback: ObserverCallback) -> Callable[[], None]:
        """Call ``callback(value)`` whenever ``target`` evaluates to a new object.

        Returns:
            A function that removes this subscription
        """
        observer = _Observer(target, callback, self.evaluate(target))
        self._observers.append(observer)

        def unsubscribe() -> None:
            self._remove_observer(observer)

        return unsubscribe

    def unobserve(self, target: Union[Getter, Dependency], callback: Optional[ObserverCallback] = None) -> None:
        """Remove subscriptions for ``target`` (only ``callback``'s when given)."""
        for observer in list(self._observers):
            if observer.target == target and (callback is None or observer.callback == callback):
                self._remove_observer(observer)

    def _remove_observer(self, observer: _Observer) -> None:
        observer.active = False
        if observer in self._observers:
            self._observers.remove(observer)

    def _changed(self) -> None:
        if self._batch_depth > 0:
            self._pending_notify = True
            return
        self._notify()

    def _notify(self) -> None:
        for observer in list(self._observers):
            if not observer.active:
                continue
            try:
                value = self.evaluate(observer.target)
            except Exception:
                logger.exception(f"Store: Failed to evaluate observed {observer.target!r}")
                continue
            if value is observer.last_value:
                continue
            observer.last_value = value
            try:
                observer.callback(value)
            except Exception:
                callback_name = getattr(observer.callback, "__name__", str(observer.callback))
                logger.exception(f"Store: Observer '{callback_name}' failed for {observer.target!r}")
