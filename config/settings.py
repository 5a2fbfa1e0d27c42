"""
Configuration settings for the Channel Sync & Reconciliation engine.
"""
import os
from typing import List
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SyncConfig:
    """Channel synchronization settings."""
    # 15 / 30 / 60 minutes or "manual"
    interval: str = os.getenv("SYNC_INTERVAL", "60")
    request_timeout: float = float(os.getenv("SYNC_REQUEST_TIMEOUT", "15"))
    max_proxy_attempts: int = int(os.getenv("SYNC_MAX_PROXY_ATTEMPTS", "3"))
    check_in_hour: int = int(os.getenv("CHECK_IN_HOUR", "15"))
    enable_minimal_bookings: bool = _env_flag("ENABLE_MINIMAL_BOOKINGS_FROM_ICAL")
    network_probe_url: str = os.getenv("NETWORK_PROBE_URL", "")
    user_agent: str = os.getenv(
        "SYNC_USER_AGENT",
        "Mozilla/5.0 (compatible; ChannelSync/1.0; +https://github.com/channel-sync)"
    )


@dataclass
class ProxyConfig:
    """CORS-bypass proxy pool used for feeds that refuse direct fetches."""
    base_url: str = os.getenv("CM_PROXY_BASE", "")

    # Rotation order; the first entry is the product's own worker
    default_pool: List[str] = field(default_factory=lambda: [
        "https://cm-proxy.channel-sync.workers.dev/cm-proxy",
        "https://corsproxy.io/",
        "https://api.allorigins.win/raw",
    ])

    def get_pool(self) -> List[str]:
        """Return the proxy pool, with a valid override placed first."""
        pool = list(self.default_pool)
        if self.base_url and self.base_url.startswith("https://"):
            if self.base_url in pool:
                pool.remove(self.base_url)
            pool.insert(0, self.base_url)
        return pool


@dataclass
class SupabaseConfig:
    """Supabase configuration settings."""
    url: str = os.getenv("SUPABASE_URL", "")
    anon_key: str = os.getenv("SUPABASE_ANON_KEY", "")
    service_role_key: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    def get_auth_key(self) -> str:
        """Prefer service role key for server-side operations when available."""
        return self.service_role_key or self.anon_key


@dataclass
class AppConfig:
    """Application configuration settings."""
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    default_timezone: str = os.getenv("DEFAULT_TIMEZONE", "UTC")

    # Data storage table names
    units_collection: str = "units"
    connections_collection: str = "channel_connections"
    events_collection: str = "calendar_events"
    bookings_collection: str = "bookings"
    provisional_collection: str = "provisional_bookings"
    settings_collection: str = "user_settings"


@dataclass
class APIConfig:
    """API and URL configuration settings."""
    base_url: str = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")


sync_config = SyncConfig()
proxy_config = ProxyConfig()
supabase_config = SupabaseConfig()
app_config = AppConfig()
api_config = APIConfig()
