import asyncio
import json

import pytest

from vidrelay.api.deps import get_ytdlp_service
from vidrelay.core.errors import UpstreamError
from vidrelay.main import app
from vidrelay.models.upstream import YtDlpInfo
from vidrelay.services.normalize import normalize_ytdlp_info
from vidrelay.services.ytdlp import CompletedProcess, YTDLPCommandBuilder, YtDlpService
from vidrelay.utils.urls import unwrap_proxy_url

VIDEO_ID = "dQw4w9WgXcQ"
CDN = "https://rr2.googlevideo.com/videoplayback"

INFO = {
    "id": VIDEO_ID,
    "title": "Never Gonna Give You Up",
    "uploader": "Rick Astley",
    "channel_id": "UCuAXFkgsw1L7xaCfnd5JJOw",
    "duration": 212.0,
    "view_count": 1500000000,
    "tags": ["rick"],
    "language": "en",
    "thumbnail": "https://i.ytimg.com/vi/x/maxresdefault.jpg",
    "formats": [
        {
            "format_id": "sb0", "format_note": "storyboard", "ext": "mhtml", "protocol": "mhtml",
            "width": 48, "height": 27, "columns": 10, "rows": 10, "vcodec": "none", "acodec": "none",
            "url": "https://i.ytimg.com/sb/x/storyboard3_L0/default.jpg",
            "fragments": [
                {"url": "https://i.ytimg.com/sb/x/storyboard3_L0/default.jpg?sigh=a", "duration": 212.0},
            ],
        },
        {
            "format_id": "sb1", "format_note": "storyboard", "ext": "mhtml", "protocol": "mhtml",
            "width": 80, "height": 45, "columns": 10, "rows": 10, "vcodec": "none", "acodec": "none",
            "fragments": [
                {"url": "https://i.ytimg.com/sb/x/storyboard3_L1/M0.jpg?sigh=b", "duration": 200.0},
                {"url": "https://i.ytimg.com/sb/x/storyboard3_L1/M1.jpg?sigh=b", "duration": 12.0},
            ],
        },
        {
            "format_id": "233", "ext": "mp4", "protocol": "m3u8_native", "vcodec": "none", "acodec": "unknown",
            "manifest_url": "https://manifest.googlevideo.com/api/manifest/hls_variant/index.m3u8",
        },
        {
            "format_id": "251", "ext": "webm", "protocol": "https", "vcodec": "none", "acodec": "opus",
            "abr": 130.5, "asr": 48000, "audio_channels": 2, "filesize": 3400000, "format_note": "medium",
            "url": f"{CDN}?itag=251",
        },
        {
            "format_id": "140", "ext": "m4a", "protocol": "https", "vcodec": "none", "acodec": "mp4a.40.2",
            "abr": 129.0, "asr": 44100, "audio_channels": 2, "url": f"{CDN}?itag=140",
        },
        {
            "format_id": "18", "ext": "mp4", "protocol": "https", "vcodec": "avc1.42001E", "acodec": "mp4a.40.2",
            "width": 640, "height": 360, "fps": 25, "tbr": 503.2, "format_note": "360p",
            "filesize_approx": 13000000.0, "url": f"{CDN}?itag=18",
        },
        {
            "format_id": "22", "ext": "mp4", "protocol": "https", "vcodec": "avc1.64001F", "acodec": "mp4a.40.2",
            "width": 1280, "height": 720, "fps": 30, "tbr": 1200.0, "format_note": "720p",
            "url": f"{CDN}?itag=22",
        },
        {
            "format_id": "137", "ext": "mp4", "protocol": "https", "vcodec": "avc1.640028", "acodec": "none",
            "width": 1920, "height": 1080, "fps": 25, "tbr": 4000.0, "format_note": "1080p",
            "url": f"{CDN}?itag=137",
        },
    ],
    "subtitles": {
        "en": [
            {"ext": "json3", "url": "https://www.youtube.com/api/timedtext?lang=en&fmt=json3", "name": "English"},
            {"ext": "vtt", "url": "https://www.youtube.com/api/timedtext?lang=en&fmt=vtt", "name": "English"},
        ],
        "live_chat": [{"ext": "json", "url": "https://www.youtube.com/live_chat"}],
    },
    "automatic_captions": {
        "en-orig": [{"ext": "vtt", "url": "https://www.youtube.com/api/timedtext?lang=en&kind=asr", "name": "English (Original)"}],
        "de": [{"ext": "vtt", "url": "https://www.youtube.com/api/timedtext?lang=en&tlang=de", "name": "German"}],
    },
}


class StubYtDlp(YtDlpService):
    def __init__(self, payload=INFO, error=None):
        super().__init__()
        self.payload = payload
        self.error = error
        self.calls = []

    async def fetch_info(self, video_id):
        self.calls.append(video_id)
        if self.error:
            raise self.error
        return YtDlpInfo.model_validate(self.payload)


@pytest.fixture
def ytdlp():
    def install(**kwargs):
        service = StubYtDlp(**kwargs)
        app.dependency_overrides[get_ytdlp_service] = lambda: service
        return service
    return install


class FakeExecutor:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.commands = []

    async def run(self, cmd, timeout, capture_stderr=True):
        self.commands.append(cmd)
        if self.error:
            raise self.error
        return self.result


def test_normalize_ytdlp_info_buckets_formats():
    metadata = normalize_ytdlp_info(YtDlpInfo.model_validate(INFO))

    assert [f.format_id for f in metadata.formats] == ["18", "22"]
    assert [f.format_id for f in metadata.video_formats] == ["137"]
    assert [f.format_id for f in metadata.audio_formats] == ["251", "140"]
    assert metadata.hls_manifest_url == "https://manifest.googlevideo.com/api/manifest/hls_variant/index.m3u8"

    muxed = metadata.formats[0]
    assert muxed.itag == 18
    assert muxed.mime_type == 'video/mp4; codecs="avc1.42001E, mp4a.40.2"'
    assert muxed.bitrate == 503200
    assert muxed.content_length == 13000000
    assert muxed.approx_duration_ms == 212000

    opus = metadata.audio_formats[0]
    assert opus.mime_type == 'audio/webm; codecs="opus"'
    assert opus.bitrate == 130500
    assert opus.audio_only is True


def test_normalize_ytdlp_info_storyboards_and_captions():
    metadata = normalize_ytdlp_info(YtDlpInfo.model_validate(INFO))

    assert [(sb.level, sb.sheet_count) for sb in metadata.storyboards] == [(0, 1), (1, 2)]
    assert metadata.storyboards[1].interval == 2000
    assert metadata.storyboards[1].count == 200

    assert [(s.language_code, s.is_auto_generated) for s in metadata.subtitles] == [("en", False), ("en", True)]
    assert metadata.subtitles[0].url.endswith("fmt=vtt")
    assert metadata.thumbnails[0].url == INFO["thumbnail"]


@pytest.mark.asyncio
async def test_streams_endpoint(api, ytdlp):
    service = ytdlp()

    response = await api.get(f"/streams/{VIDEO_ID}")
    assert response.status_code == 200
    body = response.json()

    assert service.calls == [VIDEO_ID]
    assert body["source"] == "ytdlp"
    assert body["author"] == "Rick Astley"
    assert body["duration"] == 212
    assert unwrap_proxy_url(body["formats"][0]["url"], "http://test") == f"{CDN}?itag=18"
    assert len(body["storyboards"]) == 2


@pytest.mark.asyncio
async def test_streams_endpoint_without_proxy_rewrite(api, ytdlp):
    ytdlp()

    response = await api.get(f"/streams/{VIDEO_ID}", params={"proxy": "false"})
    assert response.json()["formats"][0]["url"] == f"{CDN}?itag=18"


@pytest.mark.asyncio
async def test_stream_redirect_to_itag(api, ytdlp):
    ytdlp()

    response = await api.get(f"/stream/{VIDEO_ID}", params={"format": "18"})
    assert response.status_code == 302
    assert response.headers["location"] == f"{CDN}?itag=18"


@pytest.mark.asyncio
async def test_stream_redirect_defaults_to_best_muxed(api, ytdlp):
    ytdlp()

    response = await api.get(f"/stream/{VIDEO_ID}")
    assert response.status_code == 302
    assert response.headers["location"] == f"{CDN}?itag=22"


@pytest.mark.asyncio
async def test_stream_redirect_unknown_itag(api, ytdlp):
    ytdlp()

    response = await api.get(f"/stream/{VIDEO_ID}", params={"format": "999"})
    assert response.status_code == 404
    assert response.json() == {"error": "Format with itag 999 not found"}


@pytest.mark.asyncio
async def test_stream_redirect_without_muxed_formats(api, ytdlp):
    payload = dict(INFO, formats=[f for f in INFO["formats"] if f["format_id"] in ("137", "251")])
    ytdlp(payload=payload)

    response = await api.get(f"/stream/{VIDEO_ID}")
    assert response.status_code == 404
    assert response.json() == {"error": "No combined audio/video format found"}


@pytest.mark.asyncio
async def test_format_redirect(api, ytdlp):
    ytdlp()

    response = await api.get(f"/format/{VIDEO_ID}/137")
    assert response.status_code == 302
    assert response.headers["location"] == f"{CDN}?itag=137"

    response = await api.get(f"/format/{VIDEO_ID}/9000")
    assert response.status_code == 404
    assert response.json() == {"error": "Format 9000 not found"}


@pytest.mark.asyncio
async def test_audio_redirect_picks_highest_bitrate(api, ytdlp):
    ytdlp()

    response = await api.get(f"/audio/{VIDEO_ID}")
    assert response.status_code == 302
    assert response.headers["location"] == f"{CDN}?itag=251"


@pytest.mark.asyncio
async def test_ytdlp_endpoints_reject_bad_video_id(api, ytdlp):
    service = ytdlp()

    response = await api.get("/audio/short")
    assert response.status_code == 400
    assert service.calls == []


@pytest.mark.asyncio
async def test_ytdlp_failure_is_bad_gateway(api, ytdlp):
    ytdlp(error=UpstreamError("error.info_failed", "ERROR: Video unavailable", kind="status"))

    response = await api.get(f"/streams/{VIDEO_ID}")
    assert response.status_code == 502
    assert response.json() == {"error": "Failed to fetch video info", "message": "ERROR: Video unavailable"}


def test_build_info_command():
    cmd = YTDLPCommandBuilder.build_info_command(f"https://www.youtube.com/watch?v={VIDEO_ID}")

    assert "--dump-json" in cmd
    assert "--no-playlist" in cmd
    assert cmd[-1] == f"https://www.youtube.com/watch?v={VIDEO_ID}"


@pytest.mark.asyncio
async def test_service_parses_dump_json():
    executor = FakeExecutor(CompletedProcess(0, json.dumps(INFO).encode(), b""))
    info = await YtDlpService(executor).fetch_info(VIDEO_ID)

    assert info.title == "Never Gonna Give You Up"
    assert len(info.formats) == len(INFO["formats"])
    assert executor.commands[0][-1] == f"https://www.youtube.com/watch?v={VIDEO_ID}"


@pytest.mark.asyncio
async def test_service_nonzero_exit():
    executor = FakeExecutor(CompletedProcess(1, b"", b"ERROR: [youtube] x: Private video"))

    with pytest.raises(UpstreamError) as exc_info:
        await YtDlpService(executor).fetch_info(VIDEO_ID)
    assert exc_info.value.kind == "status"
    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "ERROR: [youtube] x: Private video"


@pytest.mark.asyncio
async def test_service_unparseable_output():
    executor = FakeExecutor(CompletedProcess(0, b"not json", b""))

    with pytest.raises(UpstreamError) as exc_info:
        await YtDlpService(executor).fetch_info(VIDEO_ID)
    assert exc_info.value.kind == "parse"


@pytest.mark.asyncio
async def test_service_timeout():
    executor = FakeExecutor(error=asyncio.TimeoutError())

    with pytest.raises(UpstreamError) as exc_info:
        await YtDlpService(executor).fetch_info(VIDEO_ID)
    assert exc_info.value.kind == "timeout"
    assert exc_info.value.status_code == 504


@pytest.mark.asyncio
async def test_service_version():
    assert await YtDlpService(FakeExecutor(CompletedProcess(0, b"2025.01.15\n", b""))).version() == "2025.01.15"
    assert await YtDlpService(FakeExecutor(error=FileNotFoundError())).version() == "unknown"
