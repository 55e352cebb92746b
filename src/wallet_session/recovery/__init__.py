"""
Error recovery components.

Provides the bounded retry policy used by history retrieval.
"""

from .retry import FixedBackoff, MaxRetriesExceeded

__all__ = [
    "FixedBackoff",
    "MaxRetriesExceeded",
]
