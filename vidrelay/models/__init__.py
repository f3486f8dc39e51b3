from .internal import PageResult
from .response import (
    PageInfo,
    PaginationInfo,
    SearchResponse,
    StreamFormat,
    Storyboard,
    SubtitleTrack,
    Thumbnail,
    VideoListing,
    VideoMetadata,
    VideoPage,
    VideoSource,
)
from .upstream import PlayerResponse, YtDlpInfo

__all__ = [
    "PageInfo", "PageResult", "PaginationInfo", "PlayerResponse", "SearchResponse",
    "StreamFormat", "Storyboard", "SubtitleTrack", "Thumbnail", "VideoListing",
    "VideoMetadata", "VideoPage", "VideoSource", "YtDlpInfo",
]
