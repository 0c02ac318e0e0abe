"""
Application Layer - Release workflow services

The submission and review gates plus catalogue management. Every
operation returns a Result instead of raising for expected failures.
"""

from .catalog import ReleaseCatalogService, ReleaseChanges
from .review import AdminDecisionGate
from .submission import SubmissionGate

__all__ = [
    "SubmissionGate",
    "AdminDecisionGate",
    "ReleaseCatalogService",
    "ReleaseChanges",
]
