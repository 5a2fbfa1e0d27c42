"""
Sync scheduling.
"""

from .scheduler import SyncScheduler, SchedulerState, parse_interval

__all__ = ['SyncScheduler', 'SchedulerState', 'parse_interval']
