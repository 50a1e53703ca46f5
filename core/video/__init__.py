"""Video transcoding delegated to ffmpeg."""

from core.video.transcoder import FFmpegTranscoder, get_transcoder

__all__ = ["FFmpegTranscoder", "get_transcoder"]
