"""
Calendar feed parsing.
"""

from .parser import FeedParser, is_block_summary, unfold_lines, parse_duration_days

__all__ = ['FeedParser', 'is_block_summary', 'unfold_lines', 'parse_duration_days']
