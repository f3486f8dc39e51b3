import asyncio
import logging
from typing import Dict, List, Optional
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup

from vidrelay.config.settings import config
from vidrelay.core.errors import BadRequestError, UpstreamError
from vidrelay.core.security import send_checked
from vidrelay.models.internal import PageResult
from vidrelay.models.response import (
    PageInfo,
    PaginationInfo,
    SearchResponse,
    VideoListing,
    VideoPage,
    VideoSource,
)
from vidrelay.utils.locale import safe_url_for_log
from vidrelay.utils.urls import extract_site_video_id, page_number_from_href, url_proxy_link

logger = logging.getLogger(__name__)

MAX_PAGES = 10


def browser_headers() -> Dict[str, str]:
    return {
        "User-Agent": config.upstream.user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": config.upstream.accept_language,
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
        "Cache-Control": "max-age=0",
    }


def _text(node) -> str:
    return node.get_text(strip=True) if node is not None else ""


def _attr(node, name: str) -> str:
    if node is None:
        return ""
    value = node.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return (value or "").strip()


def parse_video_items(soup: BeautifulSoup) -> List[VideoListing]:
    """Video cards of a listing page; cards without a thumb link are skipped"""
    results = []
    for item in soup.select(".list-videos .item"):
        anchor = item.select_one("a.thumb_img")
        if anchor is None:
            continue

        results.append(VideoListing(
            title=_attr(anchor, "title"),
            id=extract_site_video_id(anchor.get("href")),
            thumbnail=_attr(anchor.select_one("img"), "src"),
            preview=_attr(anchor.select_one(".thumb__img"), "data-preview"),
            duration=_text(anchor.select_one(".duration")),
        ))
    return results


def parse_pagination(soup: BeautifulSoup) -> PaginationInfo:
    info = PaginationInfo()

    current = soup.select_one(".pagination-holder .page-current span")
    if current is not None:
        try:
            info.current_page = int(_text(current) or "1")
        except ValueError:
            pass

    last = soup.select_one(".pagination-holder .last a")
    last_page = page_number_from_href(_attr(last, "href"))
    if last_page is not None:
        info.total_pages = last_page
        info.last_page = str(last_page)

    next_link = soup.select_one(".pagination-holder .next a")
    if next_link is not None:
        info.has_next = True
        info.next_page = page_number_from_href(_attr(next_link, "href"))

    info.has_prev = soup.select_one(".pagination-holder .prev:not(.no_link) a") is not None
    return info


def parse_video_page(soup: BeautifulSoup, proxy_base: Optional[str] = None) -> VideoPage:
    sources = []
    for source in soup.select("video source"):
        src = _attr(source, "src")
        label = _attr(source, "label")
        if src and label:
            sources.append(VideoSource(
                label=label,
                src=src,
                proxy_url=url_proxy_link(src, proxy_base) if proxy_base else None,
            ))

    info = "#tab_video_info"
    return VideoPage(
        title=_text(soup.select_one(f"{info} .headline h1")),
        channel=_text(soup.select_one(f'{info} .item:-soup-contains("Channel:") a')),
        network=_text(soup.select_one(f'{info} .item:-soup-contains("Network:") a')),
        video_sources=sources,
    )


def parse_html(html: str) -> BeautifulSoup:
    if not html or not html.strip():
        raise ValueError("Failed to parse HTML")
    return BeautifulSoup(html, "html.parser")


class SiteScraper:
    """Scraper for the video site's search listings and video pages"""

    def __init__(self, client: httpx.AsyncClient, base_url: str, max_pages: int = MAX_PAGES):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.max_pages = min(max_pages, MAX_PAGES)

    def search_base(self, query: str) -> str:
        return f"{self.base_url}/search/{quote(query, safe='')}/relevance"

    @staticmethod
    def page_url(base_url: str, page: int) -> str:
        return f"{base_url}/" if page == 1 else f"{base_url}/{page}/"

    def clamp_pages(self, pages: int) -> int:
        return max(1, min(pages, self.max_pages))

    async def fetch_page(self, base_url: str, page: int) -> PageResult:
        """Fetch and parse one listing page. Failures are returned, not raised."""
        url = self.page_url(base_url, page)
        try:
            response = await self.client.get(url, headers=browser_headers())
            if not response.is_success:
                logger.warning(f"Error fetching page {page} ({safe_url_for_log(url)}): status {response.status_code}")
                return PageResult(
                    page=page,
                    url=url,
                    success=False,
                    status=response.status_code,
                    error=f"HTTP error! Status: {response.status_code}",
                )

            soup = parse_html(response.text)
            return PageResult(
                page=page,
                url=url,
                success=True,
                results=parse_video_items(soup),
                pagination=parse_pagination(soup),
            )
        except (httpx.HTTPError, ValueError) as e:
            message = str(e) or e.__class__.__name__
            logger.warning(f"Error fetching page {page} ({safe_url_for_log(url)}): {message}")
            return PageResult(page=page, url=url, success=False, error=message)

    async def search(self, query: str, page: int = 1, pages: int = 1) -> SearchResponse:
        """
        Fetch ``pages`` consecutive result pages starting at ``page``.

        The first page is fetched alone to learn the page count; the rest
        are fetched concurrently and concatenated in page order. Failed
        extra pages contribute no results.
        """
        base_url = self.search_base(query)
        pages = self.clamp_pages(pages)

        first = await self.fetch_page(base_url, page)
        if not first.success:
            raise UpstreamError(
                "error.first_page_failed",
                first.error,
                kind="status" if first.status else "network",
                status_code=500,
                url=first.url,
            )

        pagination = first.pagination or PaginationInfo()
        possible_pages = min(pages, pagination.total_pages - page + 1)

        results = list(first.results)
        extra = [self.fetch_page(base_url, page + i) for i in range(1, possible_pages)]
        if extra:
            # gather preserves argument order, not completion order
            for result in await asyncio.gather(*extra):
                if result.success:
                    results.extend(result.results)

        next_page = page + 1 if page < pagination.total_pages else None
        prev_page = page - 1 if page > 1 else None

        return SearchResponse(
            query=query,
            page_info=PageInfo(
                current_page=page,
                total_pages=pagination.total_pages,
                has_next_page=next_page is not None,
                has_prev_page=prev_page is not None,
                next_page=next_page,
                prev_page=prev_page,
            ),
            result_count=len(results),
            results=results,
        )

    async def fetch_video_page(self, url: str, proxy_base: Optional[str] = None) -> VideoPage:
        try:
            request = self.client.build_request("GET", url, headers={"User-Agent": "Mozilla/5.0"})
            response = await send_checked(self.client, request)
        except httpx.InvalidURL:
            raise BadRequestError("error.invalid_url", url)
        except httpx.HTTPError as e:
            raise UpstreamError("error.video_page_failed", str(e) or e.__class__.__name__, status_code=500)

        if not response.is_success:
            raise UpstreamError(
                "error.video_page_failed",
                f"HTTP error! Status: {response.status_code}",
                kind="status",
                status_code=500,
                status=response.status_code,
            )

        try:
            soup = parse_html(response.text)
        except ValueError as e:
            raise UpstreamError("error.video_page_failed", str(e), kind="parse", status_code=500)

        return parse_video_page(soup, proxy_base)
