"""Derivation (getter) engine.

A getter names the parts of the state tree it reads and a pure function that
combines them. Evaluation is memoized per store: a getter is recomputed only
when one of its dependency *references* changes, and otherwise returns the
previously computed object unchanged.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Callable, Mapping, MutableMapping, Optional, Tuple, Union

from console.shared.core.errors import UnknownGetterPath, UnknownSegmentError

from .immutable import MISSING, get_in

logger = logging.getLogger(__name__)

KeyPath = Tuple[Any, ...]
Dependency = Union[str, KeyPath, list, "Getter"]


def _identity(value: Any) -> Any:
    return value


def to_key_path(dependency: Any) -> KeyPath:
    """Normalize ``"segment"`` / ``["segment", "sub"]`` into a key path tuple."""
    if isinstance(dependency, str):
        path: KeyPath = (dependency,)
    elif isinstance(dependency, (list, tuple)):
        path = tuple(dependency)
    else:
        raise TypeError(f"Not a key path: {dependency!r}")
    if not path or not isinstance(path[0], str):
        raise TypeError(f"Key path must start with a segment name: {dependency!r}")
    return path


class Getter:
    """Memoizable read over one or more key paths or other getters.

    Args:
        *dependencies: Key paths (``"nodes"``, ``("attempts", "save-role")``)
            or other getters, in the order ``compute`` receives them
        compute: Pure function of the dependency values. May be omitted when
            there is exactly one dependency, in which case its value is
            returned as-is.
        name: Label used in logs and reprs
    """

    def __init__(
        self,
        *dependencies: Dependency,
        compute: Optional[Callable[..., Any]] = None,
        name: Optional[str] = None,
    ) -> None:
        if not dependencies:
            raise ValueError("A getter needs at least one dependency")
        if compute is None and len(dependencies) != 1:
            raise ValueError("A getter with several dependencies needs a compute function")
        self.dependencies: Tuple[Union[KeyPath, Getter], ...] = tuple(
            d if isinstance(d, Getter) else to_key_path(d) for d in dependencies
        )
        self.compute: Callable[..., Any] = compute or _identity
        self.name = name or getattr(compute, "__name__", None) or "getter"

    def __repr__(self) -> str:
        return f"Getter({self.name}, deps={list(self.dependencies)!r})"


def getter(*dependencies: Dependency, name: Optional[str] = None) -> Callable[[Callable[..., Any]], Getter]:
    """Decorator form: ``@getter("nodes")`` turns a function into a ``Getter``."""
    def decorator(fn: Callable[..., Any]) -> Getter:
        return Getter(*dependencies, compute=fn, name=name or fn.__name__)
    return decorator


class Evaluator:
    """Per-store getter evaluation with reference-based memoization."""

    def __init__(self, tree: Callable[[], Mapping[str, Any]]) -> None:
        self._tree = tree
        # Entries go away with the getter object
        self._cache: MutableMapping[Getter, Tuple[Tuple[Any, ...], Any]] = weakref.WeakKeyDictionary()
        self._computing = 0

    @property
    def is_computing(self) -> bool:
        """True while any getter's compute function is running."""
        return self._computing > 0

    def resolve_path(self, path: KeyPath) -> Any:
        state = self._tree()
        segment = path[0]
        if segment not in state:
            raise UnknownSegmentError(segment)
        value = get_in(state[segment], path[1:])
        if value is MISSING:
            raise UnknownGetterPath(path)
        return value

    def evaluate(self, target: Union[Getter, Dependency]) -> Any:
        """Evaluate a getter or a bare key path against the current tree."""
        if not isinstance(target, Getter):
            return self.resolve_path(to_key_path(target))

        args = tuple(
            self.evaluate(dep) if isinstance(dep, Getter) else self.resolve_path(dep)
            for dep in target.dependencies
        )

        cached = self._cache.get(target)
        if cached is not None:
            last_args, last_value = cached
            if len(last_args) == len(args) and all(a is b for a, b in zip(last_args, args)):
                return last_value

        self._computing += 1
        try:
            value = target.compute(*args)
        finally:
            self._computing -= 1

        self._cache[target] = (args, value)
        return value
