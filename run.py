#!/usr/bin/env python3
"""
CLI entry point for the Channel Sync & Reconciliation engine.
"""
from channel_sync.main import main

if __name__ == "__main__":
    main()
