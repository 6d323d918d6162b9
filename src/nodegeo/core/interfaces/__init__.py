"""Core interfaces (protocols)."""

from nodegeo.core.interfaces.geo import IGeoProvider

__all__ = [
    "IGeoProvider",
]
