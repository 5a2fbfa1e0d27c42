"""
Channel adapter contract shared by every transport.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict

from ..utils.models import ChannelConnection, PullResult, SyncStatus


class ChannelAdapter(ABC):
    """Per-channel strategy exposing pull/push/status."""

    @abstractmethod
    def pull_reservations(self, connection: ChannelConnection) -> PullResult:
        """Download reservations and blocks from the channel."""
        pass

    @abstractmethod
    def push_availability(self, connection: ChannelConnection, availability: Dict[str, Any]) -> None:
        """Send inventory to the channel."""
        pass

    @abstractmethod
    def push_rates(self, connection: ChannelConnection, rates: Dict[str, Any]) -> None:
        """Send daily rates to the channel."""
        pass

    @abstractmethod
    def get_sync_status(self, connection: ChannelConnection) -> SyncStatus:
        """Report whether the channel link is usable."""
        pass
