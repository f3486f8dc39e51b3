import socket

import httpx
import pytest
import pytest_asyncio

from vidrelay.api.deps import get_http_client
from vidrelay.config.settings import config
from vidrelay.main import app

# Hosts the fake resolver maps to public addresses; anything else resolves to itself
PUBLIC_HOSTS = {
    "example.com": "93.184.216.34",
    "media.example.com": "93.184.216.35",
    "cdn.example.net": "93.184.216.36",
}


@pytest.fixture(autouse=True)
def isolated_app():
    """No DNS lookups for SSRF checks; overrides never leak between tests"""
    original = config.security.enable_ssrf_protection
    config.security.enable_ssrf_protection = False
    yield
    config.security.enable_ssrf_protection = original
    app.dependency_overrides.clear()


@pytest.fixture
def upstream():
    """Install an httpx MockTransport handler as every outbound call's upstream"""
    def install(handler):
        mock_client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            follow_redirects=True,
        )
        app.dependency_overrides[get_http_client] = lambda: mock_client
        return mock_client
    return install


@pytest_asyncio.fixture
async def api():
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def ssrf_guard(monkeypatch):
    """SSRF protection on, with DNS answered from PUBLIC_HOSTS"""
    def fake_getaddrinfo(host, port, *args, **kwargs):
        return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", (PUBLIC_HOSTS.get(host, host), 0))]

    monkeypatch.setattr(socket, "getaddrinfo", fake_getaddrinfo)
    config.security.enable_ssrf_protection = True
