"""
Feed cursor resolution.

The feed is newest-first. Given the id of the last published item, the next
item to publish is the entry immediately before it in feed order. The
resolver finds it by sliding a two-entry window down the feed until the last
published id shows up in the window.
"""

import logging
from typing import Optional

from feedpub.errors import SourceError
from feedpub.logger import log_function
from .feed_source import FeedSource


logger = logging.getLogger("ingestion")

WINDOW_SIZE = 2


class FeedCursorResolver:
    """Resolve the next unpublished feed item id."""

    def __init__(self, feed: FeedSource, max_scan_depth: int = 500):
        if max_scan_depth <= 0:
            raise ValueError("max_scan_depth must be positive")
        self.feed = feed
        self.max_scan_depth = max_scan_depth

    @log_function(logger_name="ingestion", log_result=True)
    async def first_id(self) -> str:
        """
        Return the id of the newest feed entry (used when no cursor exists).

        Raises:
            SourceError: If the feed is empty.
        """
        entries = await self.feed.query(0, WINDOW_SIZE)
        if not entries:
            raise SourceError("Feed is empty, nothing to publish")
        return entries[0].id

    @log_function(logger_name="ingestion", log_args=True, log_result=True)
    async def next_id(self, last_id: str) -> Optional[str]:
        """
        Return the id published right after last_id, or None if last_id is the newest.

        Windows [a, b] are fetched at offsets 0, 1, 2, ...:
        a == last_id means nothing newer exists; b == last_id means a is next.

        Raises:
            SourceError: If last_id is not found before the feed ends or
                before max_scan_depth windows have been inspected.
        """
        for offset in range(self.max_scan_depth):
            window = await self.feed.query(offset, WINDOW_SIZE)

            if window and window[0].id == last_id:
                return None
            if len(window) < WINDOW_SIZE:
                raise SourceError(
                    f"Last published id {last_id} not found: feed ended after "
                    f"{offset + len(window)} entries"
                )
            if window[1].id == last_id:
                return window[0].id

        raise SourceError(
            f"Last published id {last_id} not found within the newest "
            f"{self.max_scan_depth + 1} feed entries"
        )
