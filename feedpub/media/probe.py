"""
ffmpeg probe adapter.

`ffmpeg -i FILE` with no output prints a human-readable description of the
input to stderr and exits non-zero. This module is the only place that reads
that text. Extraction contract:

    Duration: HH:MM:SS.xx          -> duration_seconds (fraction dropped)
    Video: <codec> ..., WxH ..., F fps,
                                    -> video_codec, width, height, frame_rate
    Audio: <codec>                  -> audio_codec (None if no audio stream)

Any missing video field raises ProbeParseError: it means the tool's output
format drifted, not that the media is unusual.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from feedpub.errors import ProbeParseError, SourceError
from feedpub.logger import log_function
from feedpub.process import run_process


logger = logging.getLogger("media")

DURATION_PATTERN = re.compile(r"Duration: (\d+):(\d+):(\d+)\.")
VIDEO_GEOMETRY_PATTERN = re.compile(r"Video: .*, (\d+)x(\d+).*, ([0-9.]+) fps, ")
VIDEO_CODEC_PATTERN = re.compile(r"Video: (\w+)")
AUDIO_CODEC_PATTERN = re.compile(r"Audio: (\w+)")


@dataclass(frozen=True)
class ProbeInfo:
    duration_seconds: int
    width: int
    height: int
    frame_rate: float
    video_codec: str
    audio_codec: Optional[str]


def parse_probe_output(output: str) -> ProbeInfo:
    """Extract ProbeInfo from ffmpeg's diagnostic text."""
    duration = DURATION_PATTERN.search(output)
    if duration is None:
        raise ProbeParseError("No 'Duration: HH:MM:SS' line in probe output")
    hours, minutes, seconds = (int(g) for g in duration.groups())

    geometry = VIDEO_GEOMETRY_PATTERN.search(output)
    if geometry is None:
        raise ProbeParseError("No video stream geometry (WxH, fps) in probe output")

    video_codec = VIDEO_CODEC_PATTERN.search(output)
    if video_codec is None:
        raise ProbeParseError("No video codec in probe output")

    audio_codec = AUDIO_CODEC_PATTERN.search(output)

    return ProbeInfo(
        duration_seconds=(hours * 60 + minutes) * 60 + seconds,
        width=int(geometry.group(1)),
        height=int(geometry.group(2)),
        frame_rate=float(geometry.group(3)),
        video_codec=video_codec.group(1),
        audio_codec=audio_codec.group(1) if audio_codec else None,
    )


@log_function(logger_name="media", log_args=True, log_result=True)
async def probe_media(video_file: Path, ffmpeg_bin: str = "ffmpeg") -> ProbeInfo:
    """Run ffmpeg on video_file and parse its description of the input."""
    try:
        result = await run_process([ffmpeg_bin, "-hide_banner", "-i", str(video_file)])
    except FileNotFoundError as e:
        raise SourceError(f"ffmpeg binary not found: {ffmpeg_bin}") from e
    except OSError as e:
        raise SourceError(f"Cannot run ffmpeg: {e}") from e
    return parse_probe_output(result.stderr.decode("utf-8", errors="replace"))
