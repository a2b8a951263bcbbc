"""
Feed query collaborator.

A feed is an ordered list of entries, newest first. The publisher only ever
needs small windows of it, so the interface is a single offset/count query.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import yt_dlp
from yt_dlp.utils import DownloadError

from feedpub.errors import SourceError
from feedpub.logger import log_function


logger = logging.getLogger("ingestion")


@dataclass(frozen=True)
class FeedEntry:
    """One feed entry; only the id is needed to locate the cursor."""

    id: str
    title: Optional[str] = None
    url: Optional[str] = None


class FeedSource(ABC):
    """Abstract newest-first feed."""

    @abstractmethod
    async def query(self, offset: int, count: int) -> list[FeedEntry]:
        """
        Fetch up to count entries starting at offset (0 is the newest).

        Returns:
            list[FeedEntry]: Fewer than count entries when the feed is exhausted.

        Raises:
            SourceError: If the feed cannot be read.
        """


class YtDlpFeedSource(FeedSource):
    """Feed backed by a yt-dlp playlist/channel URL, read in flat mode."""

    def __init__(self, feed_uri: str, ydl_options: Optional[dict[str, Any]] = None):
        if not feed_uri:
            raise ValueError("A feed source URI is required")
        self.feed_uri = feed_uri
        self.ydl_options = ydl_options or {}

    def _options(self, offset: int, count: int) -> dict[str, Any]:
        # yt-dlp playlist indices are 1-based and inclusive
        options = {
            "quiet": True,
            "noprogress": True,
            "skip_download": True,
            "extract_flat": "in_playlist",
            "playliststart": offset + 1,
            "playlistend": offset + count,
        }
        options.update(self.ydl_options)
        return options

    def _query_blocking(self, offset: int, count: int) -> list[FeedEntry]:
        with yt_dlp.YoutubeDL(self._options(offset, count)) as ydl:
            info = ydl.extract_info(self.feed_uri, download=False)

        entries = []
        for entry in list(info.get("entries") or [])[:count]:
            if not entry or not entry.get("id"):
                continue
            entries.append(
                FeedEntry(
                    id=str(entry["id"]),
                    title=entry.get("title"),
                    url=entry.get("url"),
                )
            )
        return entries

    @log_function(logger_name="ingestion", log_args=True, log_execution_time=True)
    async def query(self, offset: int, count: int) -> list[FeedEntry]:
        if offset < 0 or count <= 0:
            raise ValueError(f"Invalid feed window offset={offset} count={count}")
        try:
            return await asyncio.to_thread(self._query_blocking, offset, count)
        except DownloadError as e:
            raise SourceError(f"Failed to query feed {self.feed_uri}: {e}") from e
