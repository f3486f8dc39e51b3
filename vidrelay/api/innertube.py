from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from vidrelay.api.deps import get_innertube_client, get_proxy_base
from vidrelay.config.settings import config
from vidrelay.core.errors import BadRequestError
from vidrelay.core.logging import log_info
from vidrelay.infra.rate_limit import rate_limiter
from vidrelay.models.response import VideoMetadata
from vidrelay.services.innertube import InnerTubeClient
from vidrelay.services.normalize import normalize_player_response
from vidrelay.utils.urls import is_valid_video_id

router = APIRouter()


def require_video_id(video_id: str) -> str:
    if not is_valid_video_id(video_id):
        raise BadRequestError("error.invalid_video_id", params={"video_id": video_id})
    return video_id


@router.get("/id/{video_id}", response_model=VideoMetadata, dependencies=[Depends(rate_limiter)])
async def video_metadata(
    request: Request,
    video_id: str,
    proxy: Optional[bool] = Query(None, description="Rewrite media URLs through /proxy"),
    innertube: InnerTubeClient = Depends(get_innertube_client),
    proxy_base: str = Depends(get_proxy_base),
):
    """Video metadata, formats, captions and storyboards from the player API."""
    require_video_id(video_id)
    rewrite = config.proxy.rewrite_urls if proxy is None else proxy

    log_info(request, f"InnerTube player request for {video_id}")
    player = await innertube.player(video_id)
    return normalize_player_response(player, proxy_base if rewrite else None)
