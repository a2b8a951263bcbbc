"""
Ingestion package for the feed publisher.

1. Feed query (feed_source.py):
   - Reads small newest-first windows of the feed via yt-dlp flat extraction

2. Media retrieval (media_source.py):
   - Downloads one item's video (mkv) and thumbnail into its working directory

3. Cursor resolution (cursor_resolver.py):
   - Finds the item to publish after the last published one
"""

from .feed_source import FeedEntry, FeedSource, YtDlpFeedSource
from .media_source import SourceItem, MediaSource, YtDlpMediaSource
from .cursor_resolver import FeedCursorResolver

__all__ = [
    "FeedEntry",
    "FeedSource",
    "YtDlpFeedSource",
    "SourceItem",
    "MediaSource",
    "YtDlpMediaSource",
    "FeedCursorResolver",
]
