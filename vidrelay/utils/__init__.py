from .locale import get_locale, safe_url_for_log
from .urls import rewrite_to_proxy, unwrap_proxy_url

__all__ = ["get_locale", "rewrite_to_proxy", "safe_url_for_log", "unwrap_proxy_url"]
