"""
Online/offline state shared by the transport and the scheduler.
"""
from typing import Callable, List, Optional
import requests

from .logger import get_logger


class NetworkMonitor:
    """Tracks connectivity and notifies subscribers on transitions."""

    def __init__(self, online: bool = True, probe_url: Optional[str] = None, timeout: float = 5.0):
        self.logger = get_logger("network_monitor")
        self._online = online
        self._subscribers: List[Callable[[bool], None]] = []
        self.probe_url = probe_url
        self.timeout = timeout

    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool):
        """Record a connectivity change and fan it out."""
        if online == self._online:
            return
        self._online = online
        self.logger.info("Network state changed", online=online)
        for callback in list(self._subscribers):
            try:
                callback(online)
            except Exception as e:
                self.logger.error("Network subscriber failed", error=str(e))

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def probe(self, session: Optional[requests.Session] = None) -> bool:
        """Refresh the state with a lightweight HEAD request, when a probe URL is set."""
        if not self.probe_url:
            return self._online
        http = session or requests
        try:
            http.head(self.probe_url, timeout=self.timeout)
            self.set_online(True)
        except requests.RequestException as e:
            self.logger.warning("Network probe failed", url=self.probe_url, error=str(e))
            self.set_online(False)
        return self._online
