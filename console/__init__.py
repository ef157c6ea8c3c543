"""Console state core package."""

from .context import ConsoleContext
from .state import Store

__version__ = "1.0.0"

__all__ = ["ConsoleContext", "Store"]
