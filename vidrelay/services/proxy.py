import logging
from typing import Dict, Optional

import httpx
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from vidrelay.config.settings import config
from vidrelay.core.errors import BadRequestError, UpstreamError
from vidrelay.core.security import send_checked
from vidrelay.utils.locale import safe_url_for_log
from vidrelay.utils.urls import origin_of

logger = logging.getLogger(__name__)

# Upstream headers relayed to the caller besides Content-Type
PASSTHROUGH_HEADERS = (
    "content-length",
    "content-range",
    "accept-ranges",
    "last-modified",
    "etag",
    "cache-control",
    "expires",
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Expose-Headers": "Content-Length, Content-Range, Content-Type",
}

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Cross-Origin-Resource-Policy": "cross-origin",
    "Referrer-Policy": "no-referrer",
}


def site_headers(url: str) -> Dict[str, str]:
    """Headers for site media: minimal UA plus the media host as Referer"""
    return {
        "User-Agent": "Mozilla/5.0",
        "Referer": origin_of(url),
    }


def client_headers(user_agent: str) -> Dict[str, str]:
    """Headers for CDN URLs bound to the client that resolved them"""
    return {
        "User-Agent": user_agent,
        "Accept": "*/*",
    }


class StreamProxy:
    """Relay upstream media bytes unmodified"""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def open(self, url: str, headers: Dict[str, str]) -> httpx.Response:
        """
        Send a streaming GET. The caller owns the returned response and must
        close it; non-2xx responses are closed here and raised.
        """
        request_headers = {"Accept-Encoding": "identity", **headers}
        try:
            req = self.client.build_request("GET", url, headers=request_headers)
            response = await send_checked(self.client, req, stream=True)
        except httpx.InvalidURL:
            raise BadRequestError("error.invalid_url", url)
        except httpx.HTTPError as e:
            logger.error(f"Proxy request error for {safe_url_for_log(url)}: {e!r}")
            raise UpstreamError("error.proxy_failed", str(e) or e.__class__.__name__, kind="network")

        if not response.is_success:
            await response.aclose()
            logger.warning(f"Proxy upstream {safe_url_for_log(url)} responded {response.status_code}")
            raise UpstreamError(
                "error.proxy_failed",
                f"HTTP error! Status: {response.status_code}",
                kind="status",
                status=response.status_code,
            )

        return response

    @staticmethod
    def response_headers(upstream: httpx.Response) -> Dict[str, str]:
        headers = {}
        for name in PASSTHROUGH_HEADERS:
            value = upstream.headers.get(name)
            if value is not None:
                headers[name.title()] = value
        headers.update(CORS_HEADERS)
        headers.update(SECURITY_HEADERS)
        return headers

    async def relay(
        self,
        url: str,
        headers: Dict[str, str],
        default_content_type: Optional[str] = None
    ) -> StreamingResponse:
        upstream = await self.open(url, headers)
        media_type = upstream.headers.get("content-type") or default_content_type or config.proxy.default_content_type

        return StreamingResponse(
            upstream.aiter_raw(),
            status_code=upstream.status_code,
            media_type=media_type,
            headers=self.response_headers(upstream),
            background=BackgroundTask(upstream.aclose),
        )
