"""
API Endpoints.
"""

from . import health, sync

__all__ = ["health", "sync"]
