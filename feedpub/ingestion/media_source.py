"""
Media retrieval collaborator.

Downloads the video and thumbnail of one feed item into the item's working
directory and returns its metadata as a SourceItem.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yt_dlp
from yt_dlp.utils import DownloadError, PostProcessingError

from feedpub.errors import SourceError
from feedpub.logger import log_function


logger = logging.getLogger("ingestion")

DEFAULT_ITEM_URL_TEMPLATE = "https://www.youtube.com/watch?v={id}"
THUMBNAIL_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")


@dataclass(frozen=True)
class SourceItem:
    """Metadata and local files of one downloaded feed item."""

    item_id: str
    title: str
    description: str
    source_uri: str
    thumbnail_file: Path
    video_file: Path
    width: Optional[int] = None
    height: Optional[int] = None
    frame_rate: Optional[float] = None
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None
    duration_seconds: Optional[int] = None


class MediaSource(ABC):
    """Abstract media retrieval tool."""

    @abstractmethod
    async def fetch(self, item_id: str, workspace: Path) -> SourceItem:
        """
        Download item_id into workspace.

        Raises:
            SourceError: If the item cannot be downloaded or has no thumbnail.
        """


def _find_thumbnail(workspace: Path, item_id: str) -> Optional[Path]:
    for extension in THUMBNAIL_EXTENSIONS:
        candidate = workspace / f"{item_id}{extension}"
        if candidate.is_file():
            return candidate
    return None


def _optional_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


class YtDlpMediaSource(MediaSource):
    """Media retrieval through yt-dlp: best video+audio merged into mkv, plus thumbnail."""

    def __init__(
        self,
        item_url_template: str = DEFAULT_ITEM_URL_TEMPLATE,
        ydl_options: Optional[dict[str, Any]] = None,
    ):
        self.item_url_template = item_url_template
        self.ydl_options = ydl_options or {}

    def _options(self, workspace: Path) -> dict[str, Any]:
        options = {
            "quiet": True,
            "noprogress": True,
            "format": "bestvideo+bestaudio/best",
            "merge_output_format": "mkv",
            "writethumbnail": True,
            "outtmpl": str(workspace / "%(id)s.%(ext)s"),
            "postprocessors": [
                {"key": "FFmpegThumbnailsConvertor", "format": "jpg"},
            ],
        }
        options.update(self.ydl_options)
        return options

    def _fetch_blocking(self, item_id: str, workspace: Path) -> SourceItem:
        url = self.item_url_template.format(id=item_id)
        with yt_dlp.YoutubeDL(self._options(workspace)) as ydl:
            info = ydl.extract_info(url, download=True)

        downloads = info.get("requested_downloads") or []
        if downloads and downloads[0].get("filepath"):
            video_file = Path(downloads[0]["filepath"])
        else:
            video_file = workspace / f"{item_id}.mkv"
        if not video_file.is_file():
            raise SourceError(f"Downloaded video for {item_id} not found at {video_file}")

        thumbnail_file = _find_thumbnail(workspace, item_id)
        if thumbnail_file is None:
            raise SourceError(f"No thumbnail downloaded for {item_id}")

        return SourceItem(
            item_id=item_id,
            title=info.get("title") or "",
            description=info.get("description") or "",
            source_uri=info.get("webpage_url") or url,
            thumbnail_file=thumbnail_file,
            video_file=video_file,
            width=_optional_int(info.get("width")),
            height=_optional_int(info.get("height")),
            frame_rate=info.get("fps"),
            video_codec=info.get("vcodec"),
            audio_codec=info.get("acodec"),
            duration_seconds=_optional_int(info.get("duration")),
        )

    @log_function(logger_name="ingestion", log_args=True, log_execution_time=True)
    async def fetch(self, item_id: str, workspace: Path) -> SourceItem:
        workspace = Path(workspace)
        try:
            item = await asyncio.to_thread(self._fetch_blocking, item_id, workspace)
        except (DownloadError, PostProcessingError) as e:
            raise SourceError(f"Failed to download item {item_id}: {e}") from e
        logger.info(f"Downloaded '{item.title[:60]}' ({item.video_file.name})")
        return item
