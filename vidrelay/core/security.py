import asyncio
import hashlib
import ipaddress
import socket
from enum import Enum, auto
from urllib.parse import urlparse

import httpx

from vidrelay.config.settings import config
from vidrelay.core.errors import BadRequestError, ForbiddenError
from vidrelay.infra.redis import get_redis

SSRF_CACHE_TTL = 300


class UrlValidationResult(Enum):
    """URL validation result without throwing exceptions"""
    OK = auto()
    BLOCKED = auto()
    INVALID = auto()


def is_absolute_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class SecurityValidator:
    """
    Validate caller-supplied upstream URLs without throwing exceptions.
    Returns result enum for separation of concerns.
    """

    @staticmethod
    async def validate_url(url: str) -> UrlValidationResult:
        """
        Validate URL against SSRF attacks.
        Uses async DNS resolution and Redis caching.
        """
        if not is_absolute_http_url(url):
            return UrlValidationResult.INVALID

        if not config.security.enable_ssrf_protection:
            return UrlValidationResult.OK

        hostname = urlparse(url).hostname
        if not hostname:
            return UrlValidationResult.INVALID

        redis = get_redis()
        cache_key = f"ssrf:{hashlib.sha256(hostname.encode()).hexdigest()[:16]}"
        if redis:
            try:
                cached = await redis.get(cache_key)
                if cached == "ok":
                    return UrlValidationResult.OK
                if cached == "blocked":
                    return UrlValidationResult.BLOCKED
            except Exception:
                redis = None

        try:
            addr_info = await asyncio.to_thread(socket.getaddrinfo, hostname, None)
            ips = [info[4][0] for info in addr_info]
        except socket.gaierror:
            # Unresolvable hosts fail later at fetch time
            return UrlValidationResult.OK

        is_blocked = False
        for ip_str in ips:
            try:
                ip = ipaddress.ip_address(ip_str.split("%", 1)[0])
            except ValueError:
                return UrlValidationResult.INVALID

            if ip.is_loopback:
                if not config.security.allow_localhost:
                    is_blocked = True
                    break
                continue

            if not config.security.allow_private_ips and ip.is_private:
                is_blocked = True
                break

            if ip.is_link_local or ip.is_multicast:
                is_blocked = True
                break

        if redis:
            try:
                await redis.setex(
                    cache_key,
                    SSRF_CACHE_TTL,
                    "blocked" if is_blocked else "ok"
                )
            except Exception:
                pass

        return UrlValidationResult.BLOCKED if is_blocked else UrlValidationResult.OK


async def ensure_public_url(url: str) -> None:
    """Raise 400 for malformed URLs and 403 for private or local targets."""
    result = await SecurityValidator.validate_url(url)
    if result == UrlValidationResult.BLOCKED:
        raise ForbiddenError("error.private_ip")
    if result == UrlValidationResult.INVALID:
        raise BadRequestError("error.invalid_url", url)


async def send_checked(
    client: httpx.AsyncClient,
    request: httpx.Request,
    stream: bool = False
) -> httpx.Response:
    """
    Send ``request`` following redirects by hand so every ``Location`` hop
    passes :func:`ensure_public_url` before it is requested.
    """
    response = await client.send(request, stream=stream, follow_redirects=False)
    hops = 0
    while response.next_request is not None:
        next_request = response.next_request
        await response.aclose()

        hops += 1
        if hops > client.max_redirects:
            raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=next_request)

        await ensure_public_url(str(next_request.url))
        response = await client.send(next_request, stream=stream, follow_redirects=False)
    return response
