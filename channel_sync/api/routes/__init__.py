"""
API routes and endpoints.
"""

from . import health, sync, calendar, cancellations

__all__ = ["health", "sync", "calendar", "cancellations"]
