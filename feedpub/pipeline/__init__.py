"""
Feed publishing pipeline module.

This module orchestrates the publishing workflow of one feed item per cycle:
    1. Cursor resolution (feedpub.ingestion)
    2. Media download (feedpub.ingestion)
    3. Rendition ladder and mipmap pyramid (feedpub.media)
    4. Record composition and upload (feedpub.facets, feedpub.storage)
    5. Ledger anchoring (feedpub.chain)

Usage:
    # CLI interface
    python -m feedpub.pipeline --once

    # Programmatic interface
    from feedpub.config import PublisherConfig
    from feedpub.pipeline import PipelineOrchestrator, build_context

    orchestrator = PipelineOrchestrator(build_context(PublisherConfig.from_env()))
    asyncio.run(orchestrator.run_once())
"""

from .context import PipelineContext, build_context
from .orchestrator import PipelineOrchestrator
from .stages import (
    run_anchor_stage,
    run_image_stage,
    run_record_stage,
    run_video_stage,
)

__all__ = [
    "PipelineContext",
    "build_context",
    "PipelineOrchestrator",
    "run_anchor_stage",
    "run_image_stage",
    "run_record_stage",
    "run_video_stage",
]
