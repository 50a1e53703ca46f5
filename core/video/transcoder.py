"""
Thin async wrapper around the ffmpeg binary.

Only two operations are needed to assemble an interview: burning the
question caption into each answer clip, and concatenating the captioned
clips into one file. Filter graphs are built here; pixel-level behaviour
is ffmpeg's.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from core.config import settings
from core.errors import TranscodingError

logger = logging.getLogger(__name__)

FRAME_WIDTH = 1280
FRAME_HEIGHT = 720
FRAME_RATE = 30
CAPTION_BAND_HEIGHT = 100
STDERR_TAIL = 2000


def escape_filter_value(value: str) -> str:
    """
    Escape a value for use inside a single-quoted filtergraph option.

    Args:
        value: Raw value (text or path)

    Returns:
        Escaped value, without surrounding quotes
    """
    return (
        value.replace("\\", "\\\\")
        .replace("'", "'\\''")
        .replace(":", "\\:")
        .replace("[", "\\[")
        .replace("]", "\\]")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


def _font_option(font_file: Optional[str]) -> str:
    return f":fontfile='{escape_filter_value(font_file)}'" if font_file else ""


def build_overlay_filter(
    question_number: int,
    caption_file: Path,
    font_file: Optional[str] = None,
) -> str:
    """
    Video filter that normalizes a clip and draws the question caption.

    The caption text is read from ``caption_file`` so arbitrary question
    text needs no drawtext escaping.
    """
    font = _font_option(font_file)
    return ",".join([
        f"scale={FRAME_WIDTH}:{FRAME_HEIGHT}:force_original_aspect_ratio=decrease",
        f"pad={FRAME_WIDTH}:{FRAME_HEIGHT}:(ow-iw)/2:(oh-ih)/2",
        "setsar=1",
        f"fps={FRAME_RATE}",
        f"drawbox=x=0:y=ih-{CAPTION_BAND_HEIGHT}:w=iw:h={CAPTION_BAND_HEIGHT}"
        ":color=black@0.7:t=fill",
        f"drawtext=text='Q{question_number}':fontsize=24:fontcolor=white:x=20:y=h-80{font}",
        f"drawtext=textfile='{escape_filter_value(str(caption_file))}'"
        f":fontsize=18:fontcolor=white:x=20:y=h-50{font}",
    ])


def build_overlay_args(
    input_path: Path,
    output_path: Path,
    question_number: int,
    caption_file: Path,
    font_file: Optional[str] = None,
) -> list[str]:
    return [
        "-i", str(input_path),
        "-vf", build_overlay_filter(question_number, caption_file, font_file),
        "-map", "0:v:0",
        "-map", "0:a:0?",
        "-c:v", "libx264",
        "-preset", "veryfast",
        "-crf", "23",
        "-c:a", "aac",
        "-ar", "48000",
        "-ac", "2",
        "-b:a", "128k",
        str(output_path),
    ]


def build_concat_filter(clip_count: int) -> str:
    """Filter graph joining ``clip_count`` clips, video and audio together."""
    streams = "".join(f"[{i}:v][{i}:a]" for i in range(clip_count))
    return f"{streams}concat=n={clip_count}:v=1:a=1[outv][outa]"


def build_concat_args(input_paths: Sequence[Path], output_path: Path) -> list[str]:
    args: list[str] = []
    for path in input_paths:
        args.extend(["-i", str(path)])
    args.extend([
        "-filter_complex", build_concat_filter(len(input_paths)),
        "-map", "[outv]",
        "-map", "[outa]",
        "-c:v", "libx264",
        "-preset", "medium",
        "-crf", "23",
        "-c:a", "aac",
        "-b:a", "128k",
        "-movflags", "+faststart",
        str(output_path),
    ])
    return args


class FFmpegTranscoder:
    """Runs ffmpeg as an asyncio subprocess."""

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        font_file: Optional[str] = None,
        timeout: float = 15 * 60,
    ):
        """
        Args:
            ffmpeg_path: Executable to invoke (defaults to FFMPEG_PATH)
            font_file: Optional TrueType font for captions
            timeout: Seconds before a single ffmpeg run is killed
        """
        self.ffmpeg_path = ffmpeg_path or settings.ffmpeg_path
        self.font_file = font_file
        self.timeout = timeout

    async def overlay(
        self,
        input_path: Path,
        output_path: Path,
        question_number: int,
        question_text: str,
    ) -> Path:
        """
        Burn "Q{n}" and the question text into the bottom of a clip.

        Args:
            input_path: Raw answer recording
            output_path: Where to write the normalized clip
            question_number: Position of the question in the interview
            question_text: Caption text

        Returns:
            output_path
        """
        caption_file = output_path.with_suffix(".caption.txt")
        await asyncio.to_thread(caption_file.write_text, question_text, "utf-8")

        await self._run(
            build_overlay_args(
                input_path, output_path, question_number, caption_file, self.font_file
            )
        )
        return output_path

    async def concat(self, input_paths: Sequence[Path], output_path: Path) -> Path:
        """
        Join clips into one MP4.

        Args:
            input_paths: Clips in playback order
            output_path: Destination file

        Returns:
            output_path
        """
        if not input_paths:
            raise TranscodingError("No clips to concatenate")
        await self._run(build_concat_args(input_paths, output_path))
        return output_path

    async def _run(self, args: list[str]) -> None:
        command = [self.ffmpeg_path, "-hide_banner", "-loglevel", "error", "-y", *args]
        logger.debug(f"Running ffmpeg with {len(args)} arguments")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise TranscodingError(f"ffmpeg executable not found: {self.ffmpeg_path}") from e

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise TranscodingError(f"ffmpeg timed out after {self.timeout}s") from e

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace")[-STDERR_TAIL:]
            logger.error(f"ffmpeg exited with {process.returncode}: {message}")
            raise TranscodingError(
                f"ffmpeg exited with status {process.returncode}", stderr=message
            )


_transcoder: Optional[FFmpegTranscoder] = None


def get_transcoder() -> FFmpegTranscoder:
    """Get or create the global transcoder."""
    global _transcoder
    if _transcoder is None:
        _transcoder = FFmpegTranscoder()
    return _transcoder
