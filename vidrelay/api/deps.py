import httpx
from fastapi import Depends, Request

from vidrelay.config.settings import config
from vidrelay.core.state import state
from vidrelay.services.innertube import InnerTubeClient
from vidrelay.services.proxy import StreamProxy
from vidrelay.services.site import SiteScraper
from vidrelay.services.ytdlp import YtDlpService
from vidrelay.utils.urls import proxy_base_from

def create_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=config.upstream.timeout_seconds,
    )

def get_http_client() -> httpx.AsyncClient:
    """Shared keep-alive client, created on first use"""
    if state.http_client is None or state.http_client.is_closed:
        state.http_client = create_http_client()
    return state.http_client

def get_site_scraper(client: httpx.AsyncClient = Depends(get_http_client)) -> SiteScraper:
    return SiteScraper(client, config.site.base_url, config.site.max_pages)

def get_innertube_client(client: httpx.AsyncClient = Depends(get_http_client)) -> InnerTubeClient:
    return InnerTubeClient(client, config.innertube)

def get_ytdlp_service() -> YtDlpService:
    return YtDlpService()

def get_stream_proxy(client: httpx.AsyncClient = Depends(get_http_client)) -> StreamProxy:
    return StreamProxy(client)

def get_proxy_base(request: Request) -> str:
    """scheme://host this request arrived on"""
    return proxy_base_from(str(request.base_url))
