"""
Explicit shapes of the upstream payloads.

Every field is optional with a default; ``None`` values sent upstream are
dropped before validation so they resolve to the same default as an
absent key.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def _drop_nulls(data: Any) -> Any:
    if isinstance(data, dict):
        return {k: v for k, v in data.items() if v is not None}
    return data


class UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)


class InnerTubeModel(UpstreamModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


# InnerTube /player

class InnerTubeFormat(InnerTubeModel):
    itag: int = 0
    url: Optional[str] = None
    signature_cipher: Optional[str] = None
    mime_type: str = ""
    bitrate: int = 0
    average_bitrate: int = 0
    width: int = 0
    height: int = 0
    fps: int = 0
    quality: str = ""
    quality_label: str = ""
    content_length: int = 0
    approx_duration_ms: int = 0
    audio_quality: str = ""
    audio_sample_rate: int = 0
    audio_channels: int = 0


class InnerTubeThumbnail(InnerTubeModel):
    url: str = ""
    width: int = 0
    height: int = 0


class ThumbnailList(InnerTubeModel):
    thumbnails: List[InnerTubeThumbnail] = []


class VideoDetails(InnerTubeModel):
    video_id: str = ""
    title: str = ""
    author: str = ""
    channel_id: str = ""
    length_seconds: int = 0
    view_count: int = 0
    short_description: str = ""
    keywords: List[str] = []
    is_live: bool = False
    is_live_content: bool = False
    thumbnail: ThumbnailList = ThumbnailList()


class StreamingData(InnerTubeModel):
    formats: List[InnerTubeFormat] = []
    adaptive_formats: List[InnerTubeFormat] = []
    hls_manifest_url: Optional[str] = None
    dash_manifest_url: Optional[str] = None
    expires_in_seconds: int = 0


class PlayabilityStatus(InnerTubeModel):
    status: str = ""
    reason: str = ""


class TextRun(InnerTubeModel):
    text: str = ""


class CaptionName(InnerTubeModel):
    simple_text: Optional[str] = None
    runs: List[TextRun] = []

    @property
    def text(self) -> str:
        if self.simple_text is not None:
            return self.simple_text
        return "".join(run.text for run in self.runs)


class CaptionTrack(InnerTubeModel):
    base_url: str = ""
    name: CaptionName = CaptionName()
    language_code: str = ""
    kind: str = ""
    is_translatable: bool = False


class CaptionTracklist(InnerTubeModel):
    caption_tracks: List[CaptionTrack] = []


class Captions(InnerTubeModel):
    player_captions_tracklist_renderer: CaptionTracklist = CaptionTracklist()


class StoryboardSpec(InnerTubeModel):
    spec: str = ""


class Storyboards(InnerTubeModel):
    player_storyboard_spec_renderer: Optional[StoryboardSpec] = None
    player_live_storyboard_spec_renderer: Optional[StoryboardSpec] = None


class PlayerResponse(InnerTubeModel):
    playability_status: PlayabilityStatus = PlayabilityStatus()
    video_details: VideoDetails = VideoDetails()
    streaming_data: StreamingData = StreamingData()
    captions: Captions = Captions()
    storyboards: Storyboards = Storyboards()


# yt-dlp --dump-json

class YtDlpFragment(UpstreamModel):
    url: str = ""
    duration: float = 0


class YtDlpFormat(UpstreamModel):
    format_id: str = ""
    url: Optional[str] = None
    manifest_url: Optional[str] = None
    ext: str = ""
    protocol: str = ""
    vcodec: Optional[str] = None
    acodec: Optional[str] = None
    width: int = 0
    height: int = 0
    fps: float = 0
    tbr: float = 0
    abr: float = 0
    vbr: float = 0
    asr: int = 0
    audio_channels: int = 0
    filesize: int = 0
    filesize_approx: float = 0
    format_note: str = ""
    language: Optional[str] = None
    columns: int = 0
    rows: int = 0
    fragments: List[YtDlpFragment] = []


class YtDlpSubtitle(UpstreamModel):
    ext: str = ""
    url: str = ""
    name: str = ""


class YtDlpThumbnail(UpstreamModel):
    url: str = ""
    width: int = 0
    height: int = 0
    preference: int = 0


class YtDlpInfo(UpstreamModel):
    id: str = ""
    title: str = ""
    uploader: str = ""
    channel: str = ""
    channel_id: str = ""
    description: str = ""
    duration: float = 0
    view_count: int = 0
    is_live: bool = False
    was_live: bool = False
    tags: List[str] = []
    thumbnail: str = ""
    thumbnails: List[YtDlpThumbnail] = []
    formats: List[YtDlpFormat] = []
    subtitles: Dict[str, List[YtDlpSubtitle]] = {}
    automatic_captions: Dict[str, List[YtDlpSubtitle]] = {}
    language: Optional[str] = None
