"""
Adaptive video rendition ladder.

Target heights are multiples of 9 (16:9 rows) built from a fixed list of base
units. A unit is kept only while unit * 9 fits in the source height, and the
first unit that does not fit ends the ladder: later units are never checked.
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from feedpub.errors import SourceError
from feedpub.logger import log_function
from feedpub.process import run_process


logger = logging.getLogger("media")

BASE_UNITS = (20, 40, 80, 120, 160, 240, 320, 480)
ROWS_PER_UNIT = 9
KEYFRAME_INTERVAL = 240
PASSTHROUGH_AUDIO_CODEC = "aac"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class EncodingJob:
    source_file: Path
    target_width: int
    target_height: int
    audio_passthrough: bool

    @property
    def output_name(self) -> str:
        return f"{self.target_height}.mp4"


@dataclass(frozen=True)
class RenditionOutput:
    """An encoded rendition after upload."""

    width: int
    height: int
    content_id: str
    size_bytes: int


def plan_rendition_ladder(
    source_file: Path, width: int, height: int, audio_codec: Optional[str]
) -> tuple[EncodingJob, ...]:
    """
    Derive the ordered encoding jobs for a source of width x height.

    Widths keep the source aspect ratio and are rounded half up, so they
    may be odd (1366x768 gives 1281x720 at the 720 row). libx264 rejects
    odd widths with yuv420p, and such a source fails every cycle at
    transcode time.

    Returns:
        Jobs in strictly increasing target height; empty when the source is
        shorter than the smallest rendition.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid source dimensions {width}x{height}")

    audio_passthrough = audio_codec == PASSTHROUGH_AUDIO_CODEC
    jobs = []
    for unit in BASE_UNITS:
        target_height = unit * ROWS_PER_UNIT
        if target_height > height:
            break
        jobs.append(
            EncodingJob(
                source_file=Path(source_file),
                target_width=round_half_up(target_height * width / height),
                target_height=target_height,
                audio_passthrough=audio_passthrough,
            )
        )
    return tuple(jobs)


def build_h264_args(job: EncodingJob, output_file: Path, crf: int, preset: str) -> list[str]:
    """ffmpeg arguments (without the program name) for one rendition."""
    return [
        "-i", str(job.source_file),
        "-c:v", "libx264",
        "-crf", str(crf),
        "-preset", preset,
        "-vf", f"scale={job.target_width}:{job.target_height}",
        "-g", str(KEYFRAME_INTERVAL),
        "-c:a", "copy" if job.audio_passthrough else "aac",
        "-movflags", "+faststart",
        "-y", str(output_file),
    ]  # fmt: skip


@log_function(logger_name="media", log_args=True, log_execution_time=True)
async def transcode(
    job: EncodingJob,
    output_dir: Path,
    crf: int,
    preset: str,
    ffmpeg_bin: str = "ffmpeg",
) -> Path:
    """
    Encode one rendition into output_dir.

    Returns:
        Path of the encoded mp4.

    Raises:
        SourceError: If ffmpeg is missing or exits with an error.
    """
    output_file = Path(output_dir) / job.output_name
    argv = [ffmpeg_bin, *build_h264_args(job, output_file, crf, preset)]
    try:
        result = await run_process(argv, logger=logger)
    except FileNotFoundError as e:
        raise SourceError(f"ffmpeg binary not found: {ffmpeg_bin}") from e
    except OSError as e:
        raise SourceError(f"Cannot run ffmpeg: {e}") from e

    if not result.ok or not output_file.is_file():
        tail = result.stderr.decode("utf-8", errors="replace").strip()[-500:]
        raise SourceError(
            f"Transcode to {job.target_width}x{job.target_height} failed "
            f"(exit {result.returncode}): {tail}"
        )
    return output_file
