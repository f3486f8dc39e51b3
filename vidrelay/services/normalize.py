"""
Map upstream payloads onto :class:`VideoMetadata`.

Neither normalizer raises on missing upstream fields: the upstream models
already default every field, and the mapping below only reads them.
When ``proxy_base`` is given, media and manifest URLs are rewritten to
``{proxy_base}/proxy/{encoded url}``.
"""
import logging
import math
from typing import List, Optional, Tuple

from vidrelay.models.response import (
    StreamFormat,
    Storyboard,
    SubtitleTrack,
    Thumbnail,
    VideoMetadata,
)
from vidrelay.models.upstream import (
    InnerTubeFormat,
    PlayerResponse,
    YtDlpFormat,
    YtDlpInfo,
    YtDlpSubtitle,
)
from vidrelay.utils.urls import rewrite_to_proxy

logger = logging.getLogger(__name__)

SUBTITLE_EXT_PREFERENCE = ("vtt", "srv3", "ttml", "json3")


def split_mime_type(mime_type: str) -> Tuple[str, str, str]:
    """``video/mp4; codecs="avc1, mp4a"`` -> ``("video", "mp4", "avc1, mp4a")``"""
    essence, _, params = mime_type.partition(";")
    kind, _, container = essence.strip().partition("/")
    codecs = ""
    params = params.strip()
    if params.startswith("codecs="):
        codecs = params[len("codecs="):].strip('"')
    return kind, container, codecs


def parse_storyboard_spec(spec: str) -> List[Storyboard]:
    """
    Parse the compact storyboard descriptor
    ``template|w#h#count#cols#rows#interval#name#sigh|...``.

    Level ``L`` substitutes ``$L`` and ``$N`` (level name) in the template;
    each sprite sheet ``M`` substitutes ``$M``.
    """
    if not spec:
        return []

    template, *levels = spec.split("|")
    storyboards = []
    for level, descriptor in enumerate(levels):
        fields = descriptor.split("#")
        if len(fields) < 8:
            continue
        try:
            width, height, count, columns, rows, interval = (int(v) for v in fields[:6])
        except ValueError:
            continue
        name, sigh = fields[6], fields[7]

        base = template.replace("$L", str(level)).replace("$N", name)
        per_sheet = columns * rows
        if "$M" in base:
            sheet_count = math.ceil(count / per_sheet) if per_sheet and count else 1
            urls = [base.replace("$M", str(sheet)) for sheet in range(sheet_count)]
        else:
            urls = [base]
        if sigh:
            urls = [f"{url}{'&' if '?' in url else '?'}sigh={sigh}" for url in urls]

        storyboards.append(Storyboard(
            level=level,
            width=width,
            height=height,
            count=count,
            columns=columns,
            rows=rows,
            interval=interval,
            sheet_count=len(urls),
            urls=urls,
        ))
    return storyboards


# InnerTube

def _innertube_format(
    fmt: InnerTubeFormat,
    has_audio: bool,
    has_video: bool,
    proxy_base: Optional[str]
) -> StreamFormat:
    _, container, codecs = split_mime_type(fmt.mime_type)
    return StreamFormat(
        itag=fmt.itag,
        format_id=str(fmt.itag) if fmt.itag else "",
        url=rewrite_to_proxy(fmt.url, proxy_base) or "",
        mime_type=fmt.mime_type,
        container=container,
        codecs=codecs,
        quality=fmt.quality,
        quality_label=fmt.quality_label,
        bitrate=fmt.bitrate or fmt.average_bitrate,
        width=fmt.width,
        height=fmt.height,
        fps=fmt.fps,
        content_length=fmt.content_length,
        approx_duration_ms=fmt.approx_duration_ms,
        audio_quality=fmt.audio_quality,
        audio_sample_rate=fmt.audio_sample_rate,
        audio_channels=fmt.audio_channels,
        has_audio=has_audio,
        has_video=has_video,
        audio_only=has_audio and not has_video,
        video_only=has_video and not has_audio,
    )


def normalize_player_response(player: PlayerResponse, proxy_base: Optional[str] = None) -> VideoMetadata:
    details = player.video_details
    streaming = player.streaming_data

    formats, video_formats, audio_formats = [], [], []
    skipped = 0

    for fmt in streaming.formats:
        if not fmt.url:
            skipped += 1
            continue
        formats.append(_innertube_format(fmt, True, True, proxy_base))

    for fmt in streaming.adaptive_formats:
        if not fmt.url:
            skipped += 1
            continue
        kind, _, _ = split_mime_type(fmt.mime_type)
        if kind == "audio":
            audio_formats.append(_innertube_format(fmt, True, False, proxy_base))
        else:
            video_formats.append(_innertube_format(fmt, False, True, proxy_base))

    if skipped:
        logger.debug(f"Skipped {skipped} cipher-protected formats for {details.video_id}")

    subtitles = [
        SubtitleTrack(
            language_code=track.language_code,
            name=track.name.text,
            url=track.base_url,
            kind=track.kind,
            is_auto_generated=track.kind == "asr",
            is_translatable=track.is_translatable,
        )
        for track in player.captions.player_captions_tracklist_renderer.caption_tracks
        if track.base_url
    ]

    spec = player.storyboards.player_storyboard_spec_renderer
    storyboards = parse_storyboard_spec(spec.spec) if spec else []

    return VideoMetadata(
        id=details.video_id,
        title=details.title,
        author=details.author,
        channel_id=details.channel_id,
        description=details.short_description,
        duration=details.length_seconds,
        view_count=details.view_count,
        is_live=details.is_live,
        is_live_content=details.is_live_content,
        keywords=details.keywords,
        thumbnails=[
            Thumbnail(url=t.url, width=t.width, height=t.height)
            for t in details.thumbnail.thumbnails
            if t.url
        ],
        formats=formats,
        video_formats=video_formats,
        audio_formats=audio_formats,
        subtitles=subtitles,
        storyboards=storyboards,
        hls_manifest_url=rewrite_to_proxy(streaming.hls_manifest_url, proxy_base),
        dash_manifest_url=rewrite_to_proxy(streaming.dash_manifest_url, proxy_base),
        expires_in_seconds=streaming.expires_in_seconds,
        source="innertube",
    )


# yt-dlp

def _has_video(fmt: YtDlpFormat) -> bool:
    if fmt.vcodec is not None:
        return fmt.vcodec != "none"
    return fmt.height > 0


def _has_audio(fmt: YtDlpFormat) -> bool:
    if fmt.acodec is not None:
        return fmt.acodec != "none"
    return fmt.abr > 0 or fmt.asr > 0


def is_storyboard(fmt: YtDlpFormat) -> bool:
    return fmt.format_note == "storyboard" or fmt.ext == "mhtml"


def _ytdlp_format(fmt: YtDlpFormat, duration_ms: int, proxy_base: Optional[str]) -> StreamFormat:
    has_video = _has_video(fmt)
    has_audio = _has_audio(fmt)

    codecs = ", ".join(c for c in (fmt.vcodec, fmt.acodec) if c and c != "none")
    mime_type = f"{'video' if has_video else 'audio'}/{fmt.ext}" if fmt.ext else ""
    if mime_type and codecs:
        mime_type += f'; codecs="{codecs}"'

    quality_label = fmt.format_note or (f"{fmt.height}p" if fmt.height else "")

    return StreamFormat(
        itag=int(fmt.format_id) if fmt.format_id.isdigit() else 0,
        format_id=fmt.format_id,
        url=rewrite_to_proxy(fmt.url, proxy_base) or "",
        mime_type=mime_type,
        container=fmt.ext,
        codecs=codecs,
        quality=fmt.format_note,
        quality_label=quality_label,
        bitrate=int(round((fmt.tbr or fmt.vbr + fmt.abr) * 1000)),
        width=fmt.width,
        height=fmt.height,
        fps=int(round(fmt.fps)),
        content_length=fmt.filesize or int(fmt.filesize_approx),
        approx_duration_ms=duration_ms,
        audio_sample_rate=fmt.asr,
        audio_channels=fmt.audio_channels,
        has_audio=has_audio,
        has_video=has_video,
        audio_only=has_audio and not has_video,
        video_only=has_video and not has_audio,
    )


def _ytdlp_storyboard(level: int, fmt: YtDlpFormat) -> Storyboard:
    per_sheet = fmt.columns * fmt.rows
    urls = [frag.url for frag in fmt.fragments if frag.url]
    if not urls and fmt.url:
        urls = [fmt.url]

    interval = 0
    if fmt.fragments and per_sheet:
        interval = int(fmt.fragments[0].duration * 1000 / per_sheet)

    return Storyboard(
        level=level,
        width=fmt.width,
        height=fmt.height,
        count=per_sheet * len(urls),
        columns=fmt.columns,
        rows=fmt.rows,
        interval=interval,
        sheet_count=len(urls),
        urls=urls,
    )


def _pick_subtitle(tracks: List[YtDlpSubtitle]) -> Optional[YtDlpSubtitle]:
    for ext in SUBTITLE_EXT_PREFERENCE:
        for track in tracks:
            if track.ext == ext and track.url:
                return track
    return next((t for t in tracks if t.url), None)


def _ytdlp_subtitles(info: YtDlpInfo) -> List[SubtitleTrack]:
    subtitles = []
    for lang, tracks in info.subtitles.items():
        if lang == "live_chat":
            continue
        track = _pick_subtitle(tracks)
        if track:
            subtitles.append(SubtitleTrack(
                language_code=lang,
                name=track.name or lang,
                url=track.url,
                is_translatable=False,
            ))

    # Automatic captions list every machine translation; keep the original track only
    for lang, tracks in info.automatic_captions.items():
        original = lang.endswith("-orig")
        if not original and lang != info.language:
            continue
        track = _pick_subtitle(tracks)
        if track:
            subtitles.append(SubtitleTrack(
                language_code=lang[:-len("-orig")] if original else lang,
                name=track.name or lang,
                url=track.url,
                kind="asr",
                is_auto_generated=True,
                is_translatable=True,
            ))
    return subtitles


def normalize_ytdlp_info(info: YtDlpInfo, proxy_base: Optional[str] = None) -> VideoMetadata:
    duration_ms = int(info.duration * 1000)

    formats, video_formats, audio_formats, storyboards = [], [], [], []
    hls_manifest_url = dash_manifest_url = None

    for fmt in info.formats:
        if is_storyboard(fmt):
            storyboards.append(_ytdlp_storyboard(len(storyboards), fmt))
            continue

        if fmt.manifest_url:
            if fmt.protocol.startswith("m3u8") and hls_manifest_url is None:
                hls_manifest_url = fmt.manifest_url
            elif "dash" in fmt.protocol and dash_manifest_url is None:
                dash_manifest_url = fmt.manifest_url

        if not fmt.url:
            continue

        stream = _ytdlp_format(fmt, duration_ms, proxy_base)
        if stream.audio_only:
            audio_formats.append(stream)
        elif stream.video_only:
            video_formats.append(stream)
        elif stream.has_audio and stream.has_video:
            formats.append(stream)

    thumbnails = [
        Thumbnail(url=t.url, width=t.width, height=t.height)
        for t in info.thumbnails
        if t.url
    ]
    if not thumbnails and info.thumbnail:
        thumbnails = [Thumbnail(url=info.thumbnail)]

    return VideoMetadata(
        id=info.id,
        title=info.title,
        author=info.uploader or info.channel,
        channel_id=info.channel_id,
        description=info.description,
        duration=int(info.duration),
        view_count=info.view_count,
        is_live=info.is_live,
        is_live_content=info.is_live or info.was_live,
        keywords=info.tags,
        thumbnails=thumbnails,
        formats=formats,
        video_formats=video_formats,
        audio_formats=audio_formats,
        subtitles=_ytdlp_subtitles(info),
        storyboards=storyboards,
        hls_manifest_url=rewrite_to_proxy(hls_manifest_url, proxy_base),
        dash_manifest_url=rewrite_to_proxy(dash_manifest_url, proxy_base),
        source="ytdlp",
    )
