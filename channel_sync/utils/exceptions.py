"""
Failure taxonomy for channel synchronization.
"""
from typing import Optional


class ChannelSyncError(Exception):
    """Base class for every sync failure."""


class TransportError(ChannelSyncError):
    """Network-level failure (unreachable, timeout, proxy exhausted). Retryable."""


class OfflineError(TransportError):
    """No network available; fail fast without touching the wire."""

    def __init__(self, message: str = "Offline: network unavailable"):
        super().__init__(message)


class FeedHTTPError(TransportError):
    """The feed answered with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class ContentError(ChannelSyncError):
    """The body is not usable calendar content. Not retried within a cycle."""


class AntiBotBlockedError(ContentError):
    """An HTML interstitial (CAPTCHA / bot wall) came back instead of a feed."""

    def __init__(self, message: str, channel: Optional[str] = None):
        super().__init__(message)
        self.channel = channel


class InvalidContentError(ContentError):
    """The body lacks the calendar envelope marker."""


class TokenExpiredError(ChannelSyncError):
    """Channel credentials/feed token are no longer valid; needs a human."""


class PushNotSupportedError(ChannelSyncError, NotImplementedError):
    """Push operations are not available for this adapter/channel."""


class StorageError(ChannelSyncError):
    """A storage backend read or write failed."""
