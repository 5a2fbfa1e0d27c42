"""
HTTP surface over the channel sync service.
"""

from .app import create_app

__all__ = ['create_app']
