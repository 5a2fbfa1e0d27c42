"""
Outbound calendar export.
"""

from .ical_export import generate_ical_feed, fold_line

__all__ = ['generate_ical_feed', 'fold_line']
