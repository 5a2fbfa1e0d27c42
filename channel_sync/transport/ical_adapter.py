"""
Generic iCal-over-HTTP channel adapter.
"""
import hashlib
from typing import Optional, Dict, Any, Tuple, Callable
from datetime import datetime

import requests
from bs4 import BeautifulSoup

from .base import ChannelAdapter
from .proxy import ProxyRotator
from ..feed_parser.parser import FeedParser
from ..utils.models import ChannelConnection, PullResult, SyncStatus, utc_now
from ..utils.exceptions import (
    TransportError, OfflineError, FeedHTTPError, AntiBotBlockedError,
    InvalidContentError, PushNotSupportedError
)
from ..utils.logger import get_logger, ICalDebugLog
from ..utils.network import NetworkMonitor
from config.settings import sync_config, proxy_config


CALENDAR_MARKER = "BEGIN:VCALENDAR"
MOCK_URL_PREFIXES = ("mock://", "test://")

# Fragments seen on CAPTCHA / bot-wall interstitials
BLOCK_PAGE_MARKERS = (
    "captcha",
    "are you a robot",
    "access denied",
    "request blocked",
    "attention required",
    "cf-chl",
    "perimeterx",
    "px-captcha",
    "datadome",
    "unusual traffic",
)

CHANNEL_LABELS = {
    "AIRBNB": "Airbnb",
    "BOOKING": "Booking.com",
    "VRBO": "Vrbo",
    "WEBSITE": "Website",
    "AGENCY": "Agency",
}


def hash_content(body: str) -> str:
    """SHA-256 hex digest used for change detection."""
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def looks_like_html(body: str) -> bool:
    head = (body or "").lstrip()[:1024].lower()
    return head.startswith("<!doctype html") or head.startswith("<html") or "<html" in head


def looks_like_block_page(body: str) -> bool:
    lowered = (body or "")[:4096].lower()
    return looks_like_html(body) or any(marker in lowered for marker in BLOCK_PAGE_MARKERS)


class ICalAdapter(ChannelAdapter):
    """Pulls iCal feeds directly or through the rotating proxy pool."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        rotator: Optional[ProxyRotator] = None,
        network: Optional[NetworkMonitor] = None,
        parser: Optional[FeedParser] = None,
        clock: Callable[[], datetime] = utc_now,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        debug_log: Optional[ICalDebugLog] = None,
    ):
        self.logger = get_logger("ical_adapter")
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": sync_config.user_agent})
        self.session = session
        self.rotator = rotator or ProxyRotator(proxy_config.get_pool())
        self.network = network or NetworkMonitor()
        self.parser = parser or FeedParser()
        self.clock = clock
        self.timeout = timeout if timeout is not None else sync_config.request_timeout
        self.max_attempts = max_attempts or sync_config.max_proxy_attempts
        self.debug_log = debug_log or ICalDebugLog()

    def pull_reservations(self, connection: ChannelConnection) -> PullResult:
        """
        Fetch and parse one connection's feed.

        Args:
            connection: Connection to pull

        Returns:
            PullResult with parsed events and metadata to persist

        Raises:
            OfflineError, TransportError, FeedHTTPError, AntiBotBlockedError, InvalidContentError
        """
        url = (connection.feed_url or "").strip()
        if not url:
            raise InvalidContentError("Empty feed URL")

        if url.lower().startswith(MOCK_URL_PREFIXES):
            return PullResult(log="Mock sync completed (no network call)", unchanged=True)

        if not self.network.is_online():
            raise OfflineError()

        headers: Dict[str, str] = {}
        if connection.http_etag:
            headers["If-None-Match"] = connection.http_etag

        if connection.force_direct:
            response = self._fetch_direct(url, headers)
            route = "direct"
        else:
            response, route = self._fetch_proxied(url, headers)

        return self._handle_response(connection, response, route)

    def _cache_buster(self) -> int:
        return int(self.clock().timestamp() * 1000)

    def _fetch_direct(self, url: str, headers: Dict[str, str]) -> requests.Response:
        try:
            return self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Direct fetch failed: {e}") from e

    def _fetch_proxied(self, url: str, headers: Dict[str, str]) -> Tuple[requests.Response, str]:
        """Try the proxy pool, rotating on block pages, 5xx and network errors."""
        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            proxy_base = self.rotator.current
            proxy_url = self.rotator.build_url(url, cache_buster=self._cache_buster())
            try:
                response = self.session.get(proxy_url, headers=headers, timeout=self.timeout)
            except requests.RequestException as e:
                last_error = f"network error via {proxy_base}: {e}"
                self.debug_log.warn("PROXY", "Proxy attempt failed", {"attempt": attempt, "error": str(e)})
                self.rotator.rotate(reason="network")
                continue

            if response.status_code == 403 and looks_like_block_page(response.text):
                last_error = f"HTTP 403 block page via {proxy_base}"
                self.debug_log.warn("PROXY", "Proxy blocked by channel", {"attempt": attempt, "proxy": proxy_base})
                self.rotator.rotate(reason="blocked")
                continue

            if response.status_code >= 500:
                last_error = f"HTTP {response.status_code} via {proxy_base}"
                self.debug_log.warn("PROXY", "Proxy server error", {"attempt": attempt, "status": response.status_code})
                self.rotator.rotate(reason="server_error")
                continue

            return response, f"proxy {proxy_base}"

        self.debug_log.warn("PROXY", "Proxy pool exhausted, falling back to direct fetch", {"last_error": last_error})
        try:
            return self._fetch_direct(url, headers), "direct fallback"
        except TransportError as e:
            raise TransportError(
                f"All {self.max_attempts} proxy attempts failed ({last_error}); {e}"
            ) from e

    def _handle_response(self, connection: ChannelConnection, response: requests.Response, route: str) -> PullResult:
        if response.status_code == 304:
            self.debug_log.info("FETCH", "Feed not modified", {"connection_id": connection.id})
            return PullResult(log=f"No changes (304 Not Modified - {route})", unchanged=True)

        body = response.text or ""

        if not 200 <= response.status_code < 300:
            if looks_like_block_page(body):
                raise AntiBotBlockedError(self._block_message(connection, body), channel=connection.channel)
            snippet = " ".join(body[:160].split())
            raise FeedHTTPError(response.status_code, f"HTTP {response.status_code}: {snippet}")

        if CALENDAR_MARKER not in body:
            if looks_like_html(body):
                raise AntiBotBlockedError(self._block_message(connection, body), channel=connection.channel)
            raise InvalidContentError("Invalid content: response is not an iCalendar feed")

        content_hash = hash_content(body)
        etag = response.headers.get("ETag")
        last_modified = response.headers.get("Last-Modified")

        if connection.content_hash == content_hash:
            updates = {"http_etag": etag} if etag else {}
            return PullResult(metadata_updates=updates, log=f"No changes (hash match - {route})", unchanged=True)

        events = self.parser.parse(body)
        self.debug_log.info("PARSE", "Feed downloaded", {"connection_id": connection.id, "events": len(events)})

        updates: Dict[str, Any] = {"content_hash": content_hash}
        if etag:
            updates["http_etag"] = etag
        if last_modified:
            updates["http_last_modified"] = last_modified

        return PullResult(
            events=events,
            metadata_updates=updates,
            log=f"Download OK ({len(events)} events) - {route}",
        )

    def _block_message(self, connection: ChannelConnection, body: str) -> str:
        """Human-readable, channel-aware explanation of an anti-bot interstitial."""
        label = CHANNEL_LABELS.get((connection.channel or "").upper(), connection.channel or "The channel")
        title = ""
        soup = BeautifulSoup(body, "html.parser")
        if soup.title and soup.title.string:
            title = " ".join(soup.title.string.split())
        page = f' ("{title}")' if title else ""
        return (
            f"{label} returned a web page{page} instead of a calendar feed. "
            f"Automated access is being blocked; retry later or check the export URL."
        )

    def push_availability(self, connection: ChannelConnection, availability: Dict[str, Any]) -> None:
        raise PushNotSupportedError(f"{connection.display_name}: iCal feeds are read-only, availability push not supported")

    def push_rates(self, connection: ChannelConnection, rates: Dict[str, Any]) -> None:
        raise PushNotSupportedError(f"{connection.display_name}: iCal feeds are read-only, rate push not supported")

    def get_sync_status(self, connection: ChannelConnection) -> SyncStatus:
        # Feeds are passive; there is nothing to probe
        return SyncStatus.OK
