"""
Publishing cycle orchestration.

One cycle publishes at most one feed item: resolve the next id, fetch and
process its media, upload the composed record, anchor it and advance the
cursor. Cycles never overlap; a tick arriving while a cycle runs is dropped.
"""

import asyncio
import logging
from typing import Optional

from feedpub.errors import CursorError, PipelineError
from feedpub.logger import log_function
from .context import PipelineContext
from .stages import run_anchor_stage, run_image_stage, run_record_stage, run_video_stage


logger = logging.getLogger("pipeline")


class PipelineOrchestrator:
    """Drives publishing cycles on a fixed interval."""

    def __init__(self, context: PipelineContext, interval: float = 60.0):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.context = context
        self.interval = interval
        self.dropped_ticks = 0
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    async def resolve_next_id(self) -> Optional[str]:
        """
        The id of the next item to publish, or None when the feed is up to date.

        Without a stored cursor the newest feed entry is published first.
        """
        try:
            last_id = await asyncio.to_thread(self.context.ledger.get)
        except CursorError as e:
            logger.warning(f"{e}; starting from the newest feed entry")
            return await self.context.resolver.first_id()
        return await self.context.resolver.next_id(last_id)

    @log_function(logger_name="pipeline", log_execution_time=True)
    async def run_cycle(self) -> Optional[str]:
        """
        Publish the next feed item.

        The cursor is advanced only after the item is anchored; any failure
        leaves it untouched so the next cycle retries the same item.

        Returns:
            The published item id, or None if there was nothing to publish.
        """
        context = self.context

        item_id = await self.resolve_next_id()
        if item_id is None:
            logger.info("Feed is up to date, nothing to publish")
            return None

        logger.info("=" * 60)
        logger.info(f"Publishing feed item {item_id}")

        with context.workspace.item_workspace(item_id) as workspace:
            item = await context.media_source.fetch(item_id, workspace)
            renditions = await run_video_stage(context, item, workspace)
            levels = await run_image_stage(context, item)
            reference = await run_record_stage(context, item, levels, renditions)
            result = await run_anchor_stage(context, reference)

        await asyncio.to_thread(context.ledger.put, item_id)
        logger.info(
            f"Published {item_id} as ledger item {result.item_id} "
            f"(record {reference.digest})"
        )
        return item_id

    async def run_once(self) -> Optional[str]:
        """Run a single cycle under the cycle lock; failures propagate."""
        async with self._lock:
            return await self.run_cycle()

    async def on_tick(self) -> Optional[str]:
        """
        Timer callback: run a cycle unless one is already in progress.

        Cycle failures are logged and swallowed so the timer keeps running;
        the next tick retries from the same cursor.
        """
        if self._lock.locked():
            self.dropped_ticks += 1
            logger.info("Previous cycle still running, dropping this tick")
            return None

        async with self._lock:
            try:
                return await self.run_cycle()
            except PipelineError as e:
                logger.error(
                    f"Publishing cycle failed ({type(e).__name__}): {e}", exc_info=True
                )
            except Exception as e:
                logger.error(f"Unexpected error in publishing cycle: {e}", exc_info=True)
        return None

    async def run_forever(self) -> None:
        """Fire a tick every interval seconds until cancelled."""
        logger.info(f"Publishing every {self.interval:g}s")
        try:
            while True:
                task = asyncio.create_task(self.on_tick())
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
                await asyncio.sleep(self.interval)
        finally:
            for task in self._tasks:
                task.cancel()
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
