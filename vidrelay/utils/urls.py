import re
from typing import Optional
from urllib.parse import quote, unquote, urlparse

PROXY_PREFIX = "/proxy/"

VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
SITE_VIDEO_ID_RE = re.compile(r"/videos/([^/]+)")
PAGE_NUMBER_RE = re.compile(r"/(\d+)/$")


def proxy_base_from(base_url: str) -> str:
    """scheme://host of the incoming request, without trailing slash"""
    parsed = urlparse(str(base_url))
    return f"{parsed.scheme}://{parsed.netloc}"


def rewrite_to_proxy(url: Optional[str], proxy_base: Optional[str]) -> Optional[str]:
    """Route an absolute upstream URL through ``/proxy/{encoded}``."""
    if not url or not proxy_base:
        return url
    return f"{proxy_base.rstrip('/')}{PROXY_PREFIX}{quote(url, safe='')}"


def unwrap_proxy_url(proxied: str, proxy_base: str) -> str:
    """Inverse of :func:`rewrite_to_proxy`."""
    prefix = f"{proxy_base.rstrip('/')}{PROXY_PREFIX}"
    if not proxied.startswith(prefix):
        raise ValueError(f"Not a proxied URL: {proxied}")
    return unquote(proxied[len(prefix):])


def url_proxy_link(url: str, proxy_base: str) -> str:
    """Query-string form used by the site variant: ``/proxy/url?url=``"""
    return f"{proxy_base.rstrip('/')}/proxy/url?url={quote(url, safe='')}"


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def is_valid_video_id(video_id: str) -> bool:
    return bool(VIDEO_ID_RE.match(video_id or ""))


def extract_site_video_id(href: Optional[str]) -> str:
    """``https://site/videos/abcd/`` -> ``abcd``"""
    if not href:
        return ""
    match = SITE_VIDEO_ID_RE.search(href)
    return match.group(1) if match else ""


def page_number_from_href(href: Optional[str]) -> Optional[int]:
    """Trailing ``/N/`` of a pagination link"""
    match = PAGE_NUMBER_RE.search(href or "")
    return int(match.group(1)) if match else None


def youtube_watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"
