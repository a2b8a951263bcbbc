"""
Media processing for published items.

- probe.py: reads source video properties from ffmpeg's diagnostic output
- renditions.py: plans and runs the H.264 rendition ladder
- mipmap.py: builds and uploads the thumbnail's mipmap pyramid
"""

from .probe import ProbeInfo, parse_probe_output, probe_media
from .renditions import (
    BASE_UNITS,
    EncodingJob,
    RenditionOutput,
    build_h264_args,
    plan_rendition_ladder,
    round_half_up,
    transcode,
)
from .mipmap import (
    MipmapLevel,
    MipmapPyramidBuilder,
    load_oriented_image,
    plan_mipmap_dimensions,
)

__all__ = [
    "ProbeInfo",
    "parse_probe_output",
    "probe_media",
    "BASE_UNITS",
    "EncodingJob",
    "RenditionOutput",
    "build_h264_args",
    "plan_rendition_ladder",
    "round_half_up",
    "transcode",
    "MipmapLevel",
    "MipmapPyramidBuilder",
    "load_oriented_image",
    "plan_mipmap_dimensions",
]
