from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response model serialised with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Site variant

class VideoListing(CamelModel):
    """Single item of a scraped video list"""
    title: str = ""
    id: str = ""
    thumbnail: str = ""
    preview: str = ""
    duration: str = ""


class PaginationInfo(CamelModel):
    """Pagination scraped from one listing page"""
    current_page: int = 1
    total_pages: int = 1
    has_next: bool = False
    has_prev: bool = False
    next_page: Optional[int] = None
    last_page: Optional[str] = None


class PageInfo(CamelModel):
    current_page: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool
    next_page: Optional[int] = None
    prev_page: Optional[int] = None


class SearchResponse(CamelModel):
    """Search results aggregated over one or more pages"""
    query: str
    page_info: PageInfo
    result_count: int
    results: List[VideoListing] = []


class VideoSource(CamelModel):
    label: str
    src: str
    proxy_url: Optional[str] = None


class VideoPage(CamelModel):
    """Metadata scraped from a video page"""
    title: str = ""
    channel: str = ""
    network: str = ""
    video_sources: List[VideoSource] = []


# YouTube variants

class StreamFormat(CamelModel):
    itag: int = 0
    format_id: str = ""
    url: str = ""
    mime_type: str = ""
    container: str = ""
    codecs: str = ""
    quality: str = ""
    quality_label: str = ""
    bitrate: int = 0
    width: int = 0
    height: int = 0
    fps: int = 0
    content_length: int = 0
    approx_duration_ms: int = 0
    audio_quality: str = ""
    audio_sample_rate: int = 0
    audio_channels: int = 0
    has_audio: bool = False
    has_video: bool = False
    audio_only: bool = False
    video_only: bool = False


class Thumbnail(CamelModel):
    url: str = ""
    width: int = 0
    height: int = 0


class SubtitleTrack(CamelModel):
    language_code: str = ""
    name: str = ""
    url: str = ""
    kind: str = ""
    is_auto_generated: bool = False
    is_translatable: bool = False


class Storyboard(CamelModel):
    """One level of grid-sprite preview frames"""
    level: int = 0
    width: int = 0
    height: int = 0
    count: int = 0
    columns: int = 0
    rows: int = 0
    interval: int = 0
    sheet_count: int = 0
    urls: List[str] = []


class VideoMetadata(CamelModel):
    """Normalized video metadata shared by the InnerTube and yt-dlp variants"""
    id: str = ""
    title: str = ""
    author: str = ""
    channel_id: str = ""
    description: str = ""
    duration: int = 0
    view_count: int = 0
    is_live: bool = False
    is_live_content: bool = False
    keywords: List[str] = []
    thumbnails: List[Thumbnail] = []
    formats: List[StreamFormat] = []
    video_formats: List[StreamFormat] = []
    audio_formats: List[StreamFormat] = []
    subtitles: List[SubtitleTrack] = []
    storyboards: List[Storyboard] = []
    hls_manifest_url: Optional[str] = None
    dash_manifest_url: Optional[str] = None
    expires_in_seconds: int = 0
    source: str = ""

    def all_formats(self) -> List[StreamFormat]:
        return self.formats + self.video_formats + self.audio_formats
