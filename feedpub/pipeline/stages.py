"""
Pipeline stage functions.

Each stage takes the process context plus the outputs of the previous stage,
and raises a PipelineError subclass on failure. Stages never touch the
cursor; advancing it is the orchestrator's job once every stage succeeded.
"""

import asyncio
import logging
from pathlib import Path

from feedpub.chain import AnchorResult
from feedpub.facets import build_item_facets, compose_record
from feedpub.ingestion import SourceItem
from feedpub.logger import log_function, log_with_timer
from feedpub.media import (
    MipmapLevel,
    RenditionOutput,
    plan_rendition_ladder,
    probe_media,
    transcode,
)
from feedpub.storage import ContentReference
from .context import PipelineContext


@log_function(logger_name="pipeline", log_execution_time=True)
async def run_video_stage(
    context: PipelineContext, item: SourceItem, workspace: Path
) -> list[RenditionOutput]:
    """
    Probe the source video, encode every rendition of its ladder and upload each.

    Renditions are encoded one at a time, smallest first; each is uploaded
    before the next encode starts.

    Returns:
        Uploaded renditions in ladder order (may be empty for tiny sources).
    """
    logger = logging.getLogger("pipeline")
    config = context.config

    info = await probe_media(item.video_file, ffmpeg_bin=config.ffmpeg_bin)
    logger.info(
        f"Source {item.item_id}: {info.width}x{info.height} {info.video_codec} "
        f"@ {info.frame_rate} fps, audio={info.audio_codec}, {info.duration_seconds}s"
    )

    jobs = plan_rendition_ladder(
        item.video_file, info.width, info.height, info.audio_codec
    )
    if not jobs:
        logger.warning(
            f"Source {item.item_id} is {info.height} rows high, below the smallest rendition"
        )

    renditions = []
    for job in jobs:
        output_file = await transcode(
            job,
            workspace,
            crf=config.h264_crf,
            preset=config.h264_preset,
            ffmpeg_bin=config.ffmpeg_bin,
        )
        reference = await context.store.add_file(output_file)
        renditions.append(
            RenditionOutput(
                width=job.target_width,
                height=job.target_height,
                content_id=reference.digest,
                size_bytes=reference.size_bytes,
            )
        )
        logger.info(
            f"Rendition {job.target_width}x{job.target_height} uploaded as {reference.digest}"
        )
    return renditions


@log_with_timer("pipeline")
async def run_image_stage(
    context: PipelineContext, item: SourceItem
) -> list[MipmapLevel]:
    """Build and upload the mipmap pyramid of the item's thumbnail."""
    image_data = await asyncio.to_thread(item.thumbnail_file.read_bytes)
    return await context.pyramid_builder.build(image_data)


@log_function(logger_name="pipeline", log_execution_time=True)
async def run_record_stage(
    context: PipelineContext,
    item: SourceItem,
    levels: list[MipmapLevel],
    renditions: list[RenditionOutput],
) -> ContentReference:
    """Compose the item record from its facets and upload it."""
    facets = build_item_facets(
        title=item.title,
        body_text=item.description,
        levels=levels,
        renditions=renditions,
        source_uri=item.source_uri,
    )
    record = compose_record(facets)
    return await context.store.add_bytes(record)


@log_function(logger_name="pipeline", log_execution_time=True)
async def run_anchor_stage(
    context: PipelineContext, reference: ContentReference
) -> AnchorResult:
    """Anchor the uploaded record on the ledger as a new feed item."""
    return await context.publisher.anchor(reference)
