"""
Configuration module for the channel sync engine.
"""

from .settings import sync_config, proxy_config, supabase_config, app_config, api_config

__all__ = ['sync_config', 'proxy_config', 'supabase_config', 'app_config', 'api_config']
