"""
Storage backends for the sync ledger.
"""

from .base import SyncStore
from .memory_store import InMemoryStore
from .supabase_store import SupabaseStore

__all__ = ['SyncStore', 'InMemoryStore', 'SupabaseStore']
