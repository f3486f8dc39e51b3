from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from vidrelay.api.deps import get_proxy_base, get_ytdlp_service
from vidrelay.api.innertube import require_video_id
from vidrelay.config.settings import config
from vidrelay.core.errors import NotFoundError
from vidrelay.core.logging import log_info
from vidrelay.infra.rate_limit import rate_limiter
from vidrelay.models.response import StreamFormat, VideoMetadata
from vidrelay.services.format import FormatDecision
from vidrelay.services.normalize import normalize_ytdlp_info
from vidrelay.services.ytdlp import YtDlpService

router = APIRouter()


async def resolve(service: YtDlpService, video_id: str, proxy_base: Optional[str] = None) -> VideoMetadata:
    require_video_id(video_id)
    info = await service.fetch_info(video_id)
    return normalize_ytdlp_info(info, proxy_base)


def redirect_to(fmt: StreamFormat) -> RedirectResponse:
    return RedirectResponse(fmt.url, status_code=302)


@router.get("/streams/{video_id}", response_model=VideoMetadata, dependencies=[Depends(rate_limiter)])
async def streams(
    request: Request,
    video_id: str,
    proxy: Optional[bool] = Query(None, description="Rewrite media URLs through /proxy"),
    service: YtDlpService = Depends(get_ytdlp_service),
    proxy_base: str = Depends(get_proxy_base),
):
    """Video metadata and format list resolved by yt-dlp."""
    rewrite = config.proxy.rewrite_urls if proxy is None else proxy
    log_info(request, f"yt-dlp info request for {video_id}")
    return await resolve(service, video_id, proxy_base if rewrite else None)


@router.get("/stream/{video_id}", dependencies=[Depends(rate_limiter)])
async def stream_redirect(
    request: Request,
    video_id: str,
    format: Optional[str] = Query(None, description="itag to redirect to"),
    service: YtDlpService = Depends(get_ytdlp_service),
):
    """Redirect to the requested itag, or to the best combined audio/video stream."""
    metadata = await resolve(service, video_id)

    if format:
        fmt = FormatDecision.by_itag(metadata, format)
        if fmt is None:
            raise NotFoundError("error.itag_not_found", params={"itag": format})
    else:
        fmt = FormatDecision.best_muxed(metadata)
        if fmt is None:
            raise NotFoundError("error.no_muxed_format")

    log_info(request, f"Redirecting {video_id} to itag {fmt.format_id}")
    return redirect_to(fmt)


@router.get("/format/{video_id}/{format_id}", dependencies=[Depends(rate_limiter)])
async def format_redirect(
    request: Request,
    video_id: str,
    format_id: str,
    service: YtDlpService = Depends(get_ytdlp_service),
):
    """Redirect to one specific format."""
    metadata = await resolve(service, video_id)

    fmt = FormatDecision.by_format_id(metadata, format_id)
    if fmt is None:
        raise NotFoundError("error.format_not_found", params={"format_id": format_id})

    log_info(request, f"Redirecting {video_id} to format {format_id}")
    return redirect_to(fmt)


@router.get("/audio/{video_id}", dependencies=[Depends(rate_limiter)])
async def audio_redirect(
    request: Request,
    video_id: str,
    service: YtDlpService = Depends(get_ytdlp_service),
):
    """Redirect to the audio-only stream with the highest bitrate."""
    metadata = await resolve(service, video_id)

    fmt = FormatDecision.best_audio(metadata)
    if fmt is None:
        raise NotFoundError("error.no_audio_format")

    log_info(request, f"Redirecting {video_id} to audio {fmt.format_id}")
    return redirect_to(fmt)
