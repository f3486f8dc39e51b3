from fastapi import APIRouter

from vidrelay.config.settings import config
from vidrelay.core.state import state
from vidrelay.i18n import i18n

router = APIRouter()

ENDPOINTS = [
    {"path": "/search/{query}", "params": "page, pages (max 10)", "description": "Search the video site"},
    {"path": "/stream", "params": "url", "description": "Title, channel, network and sources of a site video page"},
    {"path": "/proxy/url", "params": "url", "description": "Relay a site media URL"},
    {"path": "/proxy/{encodedUrl}", "params": "", "description": "Relay a percent-encoded media URL"},
    {"path": "/id/{videoId}", "params": "proxy", "description": "YouTube metadata via the InnerTube player API"},
    {"path": "/streams/{videoId}", "params": "proxy", "description": "YouTube metadata via yt-dlp"},
    {"path": "/stream/{videoId}", "params": "format (itag)", "description": "Redirect to a media URL"},
    {"path": "/format/{videoId}/{formatId}", "params": "", "description": "Redirect to a specific format"},
    {"path": "/audio/{videoId}", "params": "", "description": "Redirect to the best audio stream"},
    {"path": "/health", "params": "", "description": "Health check"},
]


@router.get("/")
async def root():
    """Capability listing"""
    return {
        "status": i18n.get("response.status_running"),
        "service": config.api.title,
        "version": config.api.version,
        "ytdlp_version": state.ytdlp_version,
        "redis_enabled": state.redis is not None,
        "endpoints": [{"method": "GET", **endpoint} for endpoint in ENDPOINTS],
    }


@router.get("/health")
async def health_check():
    """Lightweight health check"""
    redis_status = i18n.get("response.redis_disabled")
    if state.redis:
        try:
            await state.redis.ping()
            redis_status = i18n.get("response.redis_connected")
        except Exception:
            redis_status = i18n.get("response.redis_disconnected")

    return {
        "status": i18n.get("health.status"),
        "redis": redis_status
    }
