from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request

from vidrelay.api.deps import get_proxy_base, get_site_scraper
from vidrelay.core.errors import ApiError, BadRequestError
from vidrelay.core.logging import log_error, log_info
from vidrelay.core.security import ensure_public_url
from vidrelay.infra.rate_limit import rate_limiter
from vidrelay.models.response import SearchResponse, VideoPage
from vidrelay.services.site import SiteScraper
from vidrelay.utils.locale import safe_url_for_log

router = APIRouter()


@router.get("/search/{query:path}", response_model=SearchResponse, dependencies=[Depends(rate_limiter)])
async def search(
    request: Request,
    query: str = Path(..., min_length=1),
    page: int = Query(1, ge=1, description="First page to fetch"),
    pages: int = Query(1, description="Number of pages to fetch (clamped to 10)"),
    scraper: SiteScraper = Depends(get_site_scraper),
):
    """Search the site, fetching up to ten pages concurrently."""
    log_info(request, f"Search request: q={query} page={page} pages={pages}")

    try:
        return await scraper.search(query, page=page, pages=pages)
    except ApiError:
        raise
    except Exception as e:
        log_error(request, f"Search error: {str(e)}")
        raise ApiError("error.search_failed", str(e), status_code=500)


@router.get("/stream", response_model=VideoPage, dependencies=[Depends(rate_limiter)])
async def video_page(
    request: Request,
    url: Optional[str] = Query(None, description="Video page URL"),
    scraper: SiteScraper = Depends(get_site_scraper),
    proxy_base: str = Depends(get_proxy_base),
):
    """Scrape title, channel, network and video sources of a video page."""
    if not url:
        raise BadRequestError("error.missing_url")
    await ensure_public_url(url)

    log_info(request, f"Fetching video page {safe_url_for_log(url)}")
    return await scraper.fetch_video_page(url, proxy_base)
