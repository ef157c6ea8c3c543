"""Action messages for the console state core.

An action describes what happened; segments decide how their state changes.
Each segment declares the tags it accepts as a ``str`` enum so the set of
actions it understands is closed and visible in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

ActionTag = Union[str, Enum]


@dataclass(frozen=True)
class Action:
    """Immutable ``{type, payload}`` message routed by ``Store.dispatch``."""

    type: str
    payload: Any = None

    def __post_init__(self) -> None:
        # Normalize enum tags so handler lookup is by plain string
        object.__setattr__(self, "type", tag_name(self.type))


def tag_name(tag: ActionTag) -> str:
    """Return the plain string form of an action tag."""
    if isinstance(tag, Enum):
        return str(tag.value)
    if not isinstance(tag, str) or not tag:
        raise TypeError(f"Action tag must be a non-empty string or enum, got {tag!r}")
    return tag


def create_action(tag: ActionTag, payload: Any = None) -> Action:
    """Create an action for ``tag`` carrying ``payload``."""
    return Action(type=tag_name(tag), payload=payload)
