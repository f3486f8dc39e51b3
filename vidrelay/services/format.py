from typing import Optional

from vidrelay.models.response import StreamFormat, VideoMetadata

class FormatDecision:
    """Pick a single stream out of normalized metadata"""

    @staticmethod
    def by_itag(metadata: VideoMetadata, itag: str) -> Optional[StreamFormat]:
        """Match a numeric itag, or the raw format id for non-numeric values"""
        for fmt in metadata.all_formats():
            if itag.isdigit() and fmt.itag == int(itag):
                return fmt
            if not itag.isdigit() and fmt.format_id == itag:
                return fmt
        return None

    @staticmethod
    def by_format_id(metadata: VideoMetadata, format_id: str) -> Optional[StreamFormat]:
        return next((f for f in metadata.all_formats() if f.format_id == format_id), None)

    @staticmethod
    def best_muxed(metadata: VideoMetadata) -> Optional[StreamFormat]:
        """Highest resolution format carrying both audio and video"""
        if not metadata.formats:
            return None
        return max(metadata.formats, key=lambda f: (f.height, f.bitrate))

    @staticmethod
    def best_audio(metadata: VideoMetadata) -> Optional[StreamFormat]:
        if not metadata.audio_formats:
            return None
        return max(metadata.audio_formats, key=lambda f: (f.bitrate, f.audio_sample_rate))
