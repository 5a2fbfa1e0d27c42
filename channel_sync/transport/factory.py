"""
Adapter selection by connection type.
"""
from typing import Dict, Optional

from .base import ChannelAdapter
from .ical_adapter import ICalAdapter
from .api_adapter import FutureApiAdapter
from ..utils.models import ChannelConnection, ConnectionType


class AdapterFactory:
    """Hands out one shared adapter instance per connection type."""

    def __init__(self, ical_adapter: Optional[ChannelAdapter] = None, api_adapter: Optional[ChannelAdapter] = None):
        self._adapters: Dict[ConnectionType, ChannelAdapter] = {
            ConnectionType.ICAL: ical_adapter or ICalAdapter(),
            ConnectionType.API: api_adapter or FutureApiAdapter(),
        }

    def get_adapter(self, connection: ChannelConnection) -> ChannelAdapter:
        # Unknown types fall back to iCal, the only transport that moves data
        return self._adapters.get(connection.connection_type, self._adapters[ConnectionType.ICAL])
