"""
Channel Synchronization & Reconciliation Engine.

Pulls availability/reservation feeds from OTA channels, normalizes them into a
canonical event model and reconciles them into one booking ledger per rental unit.
"""

__version__ = "1.0.0"
__author__ = "Channel Sync Team"
__description__ = "Channel feed synchronization and booking reconciliation"
