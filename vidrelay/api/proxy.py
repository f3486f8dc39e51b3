from typing import Optional
from urllib.parse import unquote

from fastapi import APIRouter, Depends, Query, Request

from vidrelay.api.deps import get_innertube_client, get_stream_proxy
from vidrelay.core.errors import BadRequestError
from vidrelay.core.logging import log_debug
from vidrelay.core.security import ensure_public_url
from vidrelay.services.innertube import InnerTubeClient
from vidrelay.services.proxy import StreamProxy, client_headers, site_headers
from vidrelay.utils.locale import safe_url_for_log
from vidrelay.utils.urls import PROXY_PREFIX

router = APIRouter()


@router.get("/proxy/url")
async def proxy_url(
    request: Request,
    url: Optional[str] = Query(None, description="Upstream media URL"),
    proxy: StreamProxy = Depends(get_stream_proxy),
):
    """Relay a site media URL with the media host as Referer."""
    if not url:
        raise BadRequestError("error.missing_url")
    await ensure_public_url(url)

    log_debug(request, f"Proxying {safe_url_for_log(url)}")
    return await proxy.relay(url, site_headers(url))


def encoded_target(request: Request, fallback: str) -> str:
    """
    Decode the upstream URL from the raw request path so percent-escapes
    inside the upstream URL survive exactly one decoding.
    """
    raw_path = request.scope.get("raw_path")
    if raw_path:
        raw = raw_path.decode("latin-1").split("?", 1)[0]
        if raw.startswith(PROXY_PREFIX):
            return unquote(raw[len(PROXY_PREFIX):])
    return fallback


@router.get("/proxy/{encoded_url:path}")
async def proxy_encoded(
    request: Request,
    encoded_url: str,
    proxy: StreamProxy = Depends(get_stream_proxy),
    innertube: InnerTubeClient = Depends(get_innertube_client),
):
    """Relay a percent-encoded media or manifest URL."""
    url = encoded_target(request, encoded_url)
    if request.url.query and "?" not in url:
        # Upstream URL was not fully encoded; its query landed on ours
        url = f"{url}?{request.url.query}"
    await ensure_public_url(url)

    log_debug(request, f"Proxying {safe_url_for_log(url)}")
    return await proxy.relay(url, client_headers(innertube.user_agent))
