"""
Repository Implementations - Infrastructure Layer

Implementations of the ReleaseRepository contract.
"""

from .memory_repository import InMemoryReleaseRepository
from .sqlite_repository import SQLiteReleaseRepository

__all__ = [
    "InMemoryReleaseRepository",
    "SQLiteReleaseRepository",
]
