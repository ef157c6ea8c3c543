"""Segment definitions: independently owned slices of the state tree."""

from __future__ import annotations

from typing import Any, Callable, Dict, Generic, Iterable, Mapping, Optional, TypeVar

from console.shared.core.actions import ActionTag, tag_name

S = TypeVar("S")

Reducer = Callable[[S, Any], S]


class Segment(Generic[S]):
    """Initial state plus the reducers a segment runs for each action tag.

    Reducers take ``(state, payload)`` and return the next state. They must be
    pure and total, and must hand back the very same ``state`` object when the
    action does not change its value.

    Usage:
        counter = Segment(0)

        @counter.on("INCR")
        def _incr(state, payload):
            return state + 1
    """

    def __init__(
        self,
        initial_state: S,
        handlers: Optional[Mapping[ActionTag, Reducer]] = None,
    ) -> None:
        self.initial_state = initial_state
        self._handlers: Dict[str, Reducer] = {}
        for tag, reducer in (handlers or {}).items():
            self.add_handler(tag, reducer)

    def add_handler(self, tag: ActionTag, reducer: Reducer) -> None:
        """Attach ``reducer`` to ``tag``; one reducer per tag."""
        name = tag_name(tag)
        if name in self._handlers:
            raise ValueError(f"Segment already handles action '{name}'")
        if not callable(reducer):
            raise TypeError(f"Reducer for '{name}' is not callable")
        self._handlers[name] = reducer

    def on(self, *tags: ActionTag) -> Callable[[Reducer], Reducer]:
        """Decorator registering a reducer for one or more tags."""
        def decorator(reducer: Reducer) -> Reducer:
            for tag in tags:
                self.add_handler(tag, reducer)
            return reducer
        return decorator

    def handles(self, tag: str) -> bool:
        return tag in self._handlers

    def reducer_for(self, tag: str) -> Optional[Reducer]:
        return self._handlers.get(tag)

    @property
    def action_types(self) -> Iterable[str]:
        return tuple(self._handlers)

    def __repr__(self) -> str:
        return f"Segment(actions={list(self._handlers)!r})"
