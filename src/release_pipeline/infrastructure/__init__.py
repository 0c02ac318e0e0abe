"""
Infrastructure Layer - Release store implementations.
"""

from .repositories import InMemoryReleaseRepository, SQLiteReleaseRepository

__all__ = ["InMemoryReleaseRepository", "SQLiteReleaseRepository"]
