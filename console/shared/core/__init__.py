"""
Shared Core Module
==================

Actions, error taxonomy, configuration and logging setup.
"""

# Actions
from .actions import Action, create_action, tag_name

# Errors
from .errors import (
    AsyncOperationError,
    ConsoleStateError,
    DuplicateSegmentError,
    ReentrantDispatchError,
    UnknownGetterPath,
    UnknownSegmentError,
)

# Configuration
from .configuration import (
    ApiConfig,
    ConfigManager,
    ConsoleConfig,
    LoggingConfig,
    StoreConfig,
    ValidationLevel,
)
from .logging_config import configure_logging

__all__ = [
    # Actions
    "Action",
    "create_action",
    "tag_name",
    # Errors
    "AsyncOperationError",
    "ConsoleStateError",
    "DuplicateSegmentError",
    "ReentrantDispatchError",
    "UnknownGetterPath",
    "UnknownSegmentError",
    # Configuration
    "ApiConfig",
    "ConfigManager",
    "ConsoleConfig",
    "LoggingConfig",
    "StoreConfig",
    "ValidationLevel",
    "configure_logging",
]
