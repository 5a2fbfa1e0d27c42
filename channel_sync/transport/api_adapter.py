"""
Placeholder adapter for channels reached through a native API.
"""
from typing import Any, Dict

from .base import ChannelAdapter
from ..utils.models import ChannelConnection, PullResult, SyncStatus
from ..utils.exceptions import PushNotSupportedError
from ..utils.logger import get_logger


class FutureApiAdapter(ChannelAdapter):
    """API connections are accepted but not wired to any provider yet."""

    def __init__(self):
        self.logger = get_logger("api_adapter")

    def pull_reservations(self, connection: ChannelConnection) -> PullResult:
        self.logger.info("API pull skipped", connection_id=connection.id, channel=connection.channel)
        return PullResult(log="API integration not implemented yet", unchanged=True)

    def push_availability(self, connection: ChannelConnection, availability: Dict[str, Any]) -> None:
        raise PushNotSupportedError(f"{connection.display_name}: API availability push not implemented")

    def push_rates(self, connection: ChannelConnection, rates: Dict[str, Any]) -> None:
        raise PushNotSupportedError(f"{connection.display_name}: API rate push not implemented")

    def get_sync_status(self, connection: ChannelConnection) -> SyncStatus:
        return SyncStatus.OK
