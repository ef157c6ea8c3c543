"""Error taxonomy for the console state core.

Structural errors (registration, paths, reentrancy) are programmer errors and
propagate. ``AsyncOperationError`` is the only kind the orchestrator produces at
runtime, and it is normally turned into a FAILED attempt instead of raised.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class ConsoleStateError(Exception):
    """Base class for all state core errors."""


class DuplicateSegmentError(ConsoleStateError):
    """A segment with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Segment '{name}' is already registered")
        self.name = name


class UnknownSegmentError(ConsoleStateError):
    """A key path or getter references a segment that was never registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Segment '{name}' is not registered")
        self.name = name


class UnknownGetterPath(ConsoleStateError):
    """A key path walks past the end of a registered segment's state."""

    def __init__(self, path: Sequence[Any]) -> None:
        self.path = tuple(path)
        super().__init__(f"Path {list(self.path)!r} does not exist in the state tree")


class ReentrantDispatchError(ConsoleStateError):
    """``dispatch`` was called from inside a reducer or a getter computation."""


class AsyncOperationError(ConsoleStateError):
    """A tracked asynchronous operation failed.

    Attributes:
        operation_id: The attempt id the failure was recorded under
        message: Short display text extracted from the collaborator error
        cause: The original collaborator error, if any
    """

    def __init__(
        self,
        message: str,
        operation_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation_id = operation_id
        self.cause = cause
