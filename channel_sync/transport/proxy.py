"""
Rotating pool of CORS-bypass proxies.
"""
from typing import List, Optional
from urllib.parse import quote

from ..utils.logger import get_logger


class ProxyRotator:
    """
    Best-effort shared pointer into the proxy pool.

    One instance is created at process start and handed to every adapter; any
    failed attempt advances it and the next attempt (from any connection) reads
    the new position. Connection syncs never run in parallel, so the index is
    not locked.
    """

    def __init__(self, pool: List[str]):
        if not pool:
            raise ValueError("Proxy pool cannot be empty")
        self.logger = get_logger("proxy_rotator")
        self.pool = list(pool)
        self.index = 0

    @property
    def current(self) -> str:
        return self.pool[self.index % len(self.pool)]

    def rotate(self, reason: Optional[str] = None) -> str:
        """Advance to the next proxy and return it."""
        previous = self.current
        self.index = (self.index + 1) % len(self.pool)
        self.logger.warning("Proxy rotated", previous=previous, current=self.current, reason=reason)
        return self.current

    def build_url(self, target_url: str, cache_buster: Optional[int] = None, base: Optional[str] = None) -> str:
        """Wrap `target_url` in the proxy's query convention."""
        base = base or self.current
        encoded = quote(target_url, safe="")

        if "corsproxy.io" in base:
            url = f"{base.rstrip('/')}/?{encoded}"
        elif "allorigins.win" in base:
            root = base.split("/raw")[0].rstrip("/")
            url = f"{root}/raw?url={encoded}"
        else:
            joiner = "&" if "?" in base else "?"
            url = f"{base}{joiner}url={encoded}"

        if cache_buster is not None:
            url += f"{'&' if '?' in url else '?'}t={cache_buster}"
        return url
