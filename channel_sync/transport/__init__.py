"""
Channel transports: adapter contract, proxy rotation, iCal and API adapters.
"""

from .base import ChannelAdapter
from .proxy import ProxyRotator
from .ical_adapter import ICalAdapter, hash_content
from .api_adapter import FutureApiAdapter
from .factory import AdapterFactory

__all__ = ['ChannelAdapter', 'ProxyRotator', 'ICalAdapter', 'hash_content', 'FutureApiAdapter', 'AdapterFactory']
