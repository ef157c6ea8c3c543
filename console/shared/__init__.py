"""
Console Shared Kernel
=====================

Architecture:
- core: actions, errors, configuration, logging
- infrastructure: request collaborator (HTTP)
"""

__all__ = []
