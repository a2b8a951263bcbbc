import asyncio

import pytest
from yt_dlp.utils import DownloadError

from conftest import make_jpeg
from feedpub.errors import SourceError
from feedpub.ingestion import FeedEntry, YtDlpFeedSource, YtDlpMediaSource


class FakeYoutubeDL:
    """Stands in for yt_dlp.YoutubeDL; behaviour is set per test through class attributes."""

    instances = []
    info = {}
    error = None
    files = {}

    def __init__(self, options):
        self.options = options
        FakeYoutubeDL.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def extract_info(self, url, download=False):
        self.url = url
        if FakeYoutubeDL.error is not None:
            raise FakeYoutubeDL.error
        for path, data in FakeYoutubeDL.files.items():
            path.write_bytes(data)
        return FakeYoutubeDL.info


@pytest.fixture()
def fake_ydl(monkeypatch):
    FakeYoutubeDL.instances = []
    FakeYoutubeDL.info = {}
    FakeYoutubeDL.error = None
    FakeYoutubeDL.files = {}
    monkeypatch.setattr("yt_dlp.YoutubeDL", FakeYoutubeDL)
    return FakeYoutubeDL


def test_feed_query_requests_one_based_window(fake_ydl) -> None:
    fake_ydl.info = {
        "entries": [
            {"id": "new", "title": "Newest", "url": "https://example.test/new"},
            None,
            {"id": "old", "title": "Older"},
        ]
    }
    entries = asyncio.run(YtDlpFeedSource("https://example.test/feed").query(4, 3))

    options = fake_ydl.instances[0].options
    assert options["playliststart"] == 5
    assert options["playlistend"] == 7
    assert options["extract_flat"] == "in_playlist"
    assert options["skip_download"] is True
    assert entries == [
        FeedEntry(id="new", title="Newest", url="https://example.test/new"),
        FeedEntry(id="old", title="Older"),
    ]


def test_feed_query_wraps_download_errors(fake_ydl) -> None:
    fake_ydl.error = DownloadError("HTTP Error 404")
    with pytest.raises(SourceError):
        asyncio.run(YtDlpFeedSource("https://example.test/feed").query(0, 2))


def test_feed_requires_uri() -> None:
    with pytest.raises(ValueError):
        YtDlpFeedSource("")


def test_media_fetch_collects_files_and_metadata(fake_ydl, tmp_path) -> None:
    video = tmp_path / "abc.mkv"
    fake_ydl.files = {video: b"matroska", tmp_path / "abc.jpg": make_jpeg(32, 18)}
    fake_ydl.info = {
        "title": "A title",
        "description": None,
        "webpage_url": "https://www.youtube.com/watch?v=abc",
        "requested_downloads": [{"filepath": str(video)}],
        "width": 1920,
        "height": 1080,
        "fps": 30,
        "vcodec": "vp9",
        "acodec": "opus",
        "duration": 212.4,
    }

    item = asyncio.run(YtDlpMediaSource().fetch("abc", tmp_path))

    assert fake_ydl.instances[0].url == "https://www.youtube.com/watch?v=abc"
    assert fake_ydl.instances[0].options["merge_output_format"] == "mkv"
    assert item.video_file == video
    assert item.thumbnail_file == tmp_path / "abc.jpg"
    assert item.title == "A title"
    assert item.description == ""
    assert (item.width, item.height, item.duration_seconds) == (1920, 1080, 212)


def test_media_fetch_without_thumbnail(fake_ydl, tmp_path) -> None:
    fake_ydl.files = {tmp_path / "abc.mkv": b"matroska"}
    fake_ydl.info = {"title": "t"}
    with pytest.raises(SourceError):
        asyncio.run(YtDlpMediaSource().fetch("abc", tmp_path))


def test_media_fetch_wraps_download_errors(fake_ydl, tmp_path) -> None:
    fake_ydl.error = DownloadError("Private video")
    with pytest.raises(SourceError):
        asyncio.run(YtDlpMediaSource().fetch("abc", tmp_path))
