import asyncio
from pathlib import Path
from typing import Optional

import brotli
import pytest

from conftest import FakeContentStore, make_jpeg
from feedpub.chain import AnchorResult
from feedpub.config import PublisherConfig
from feedpub.db import PublicationLedger, create_db_engine, init_database, make_session_factory
from feedpub.errors import AnchorError, SourceError
from feedpub.facets import FacetTag, decode_record
from feedpub.facets import schema
from feedpub.ingestion import FeedCursorResolver, FeedEntry, FeedSource, MediaSource, SourceItem
from feedpub.media import MipmapPyramidBuilder, ProbeInfo
from feedpub.pipeline import PipelineContext, PipelineOrchestrator
from feedpub.storage import LocalWorkspace


FEED = ["e", "d", "c", "b", "a"]


class ListFeed(FeedSource):
    def __init__(self, ids):
        self.ids = list(ids)

    async def query(self, offset, count):
        return [FeedEntry(id=item_id) for item_id in self.ids[offset : offset + count]]


class FakeMediaSource(MediaSource):
    def __init__(self, gate: Optional[asyncio.Event] = None, fail: bool = False):
        self.gate = gate
        self.fail = fail
        self.fetched = []
        self.workspaces = []

    async def fetch(self, item_id: str, workspace: Path) -> SourceItem:
        self.fetched.append(item_id)
        self.workspaces.append(workspace)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise SourceError(f"item {item_id} is private")
        thumbnail = workspace / f"{item_id}.jpg"
        thumbnail.write_bytes(make_jpeg(160, 90))
        video = workspace / f"{item_id}.mkv"
        video.write_bytes(b"matroska")
        return SourceItem(
            item_id=item_id,
            title=f"Item {item_id}",
            description="",
            source_uri=f"https://www.youtube.com/watch?v={item_id}",
            thumbnail_file=thumbnail,
            video_file=video,
        )


class FakePublisher:
    def __init__(self, failures: int = 0):
        self.failures = failures
        self.references = []

    async def anchor(self, reference):
        self.references.append(reference)
        if self.failures:
            self.failures -= 1
            raise AnchorError("transaction reverted")
        return AnchorResult(item_id="0x" + "11" * 32, transaction_hashes=["0x01", "0x02"])


async def fake_probe(video_file, ffmpeg_bin="ffmpeg"):
    return ProbeInfo(
        duration_seconds=212,
        width=1280,
        height=720,
        frame_rate=29.97,
        video_codec="h264",
        audio_codec="aac",
    )


async def fake_transcode(job, output_dir, crf, preset, ffmpeg_bin="ffmpeg"):
    output_file = Path(output_dir) / job.output_name
    output_file.write_bytes(f"h264 {job.target_width}x{job.target_height}".encode())
    return output_file


@pytest.fixture(autouse=True)
def no_ffmpeg(monkeypatch):
    monkeypatch.setattr("feedpub.pipeline.stages.probe_media", fake_probe)
    monkeypatch.setattr("feedpub.pipeline.stages.transcode", fake_transcode)


@pytest.fixture()
def make_orchestrator(tmp_path):
    def factory(cursor=None, media_source=None, publisher=None):
        engine = create_db_engine("sqlite://")
        init_database(engine)
        ledger = PublicationLedger(make_session_factory(engine))
        if cursor is not None:
            ledger.put(cursor)
        store = FakeContentStore()
        context = PipelineContext(
            config=PublisherConfig(),
            store=store,
            publisher=publisher or FakePublisher(),
            ledger=ledger,
            resolver=FeedCursorResolver(ListFeed(FEED)),
            media_source=media_source or FakeMediaSource(),
            workspace=LocalWorkspace(tmp_path / "work"),
            pyramid_builder=MipmapPyramidBuilder(store),
        )
        return PipelineOrchestrator(context, interval=0.01)

    return factory


def test_publishes_item_after_cursor(make_orchestrator) -> None:
    orchestrator = make_orchestrator(cursor="c")
    assert asyncio.run(orchestrator.run_cycle()) == "d"
    assert orchestrator.context.ledger.get() == "d"


def test_publishes_newest_entry_without_cursor(make_orchestrator) -> None:
    orchestrator = make_orchestrator()
    assert asyncio.run(orchestrator.run_cycle()) == "e"
    assert orchestrator.context.ledger.get() == "e"


def test_nothing_to_publish_when_up_to_date(make_orchestrator) -> None:
    media_source = FakeMediaSource()
    orchestrator = make_orchestrator(cursor="e", media_source=media_source)
    assert asyncio.run(orchestrator.run_cycle()) is None
    assert media_source.fetched == []
    assert orchestrator.context.publisher.references == []


def test_anchored_record_describes_item(make_orchestrator) -> None:
    orchestrator = make_orchestrator(cursor="a")
    asyncio.run(orchestrator.run_cycle())

    store = orchestrator.context.store
    (reference,) = orchestrator.context.publisher.references
    facets = {facet.facet_tag: facet.payload for facet in decode_record(store.blobs[reference.digest])}

    assert schema.TitleMixin.FromString(facets[FacetTag.TITLE]).title == "Item b"
    assert FacetTag.BODY_TEXT in facets
    video = schema.VideoMixin.FromString(facets[FacetTag.VIDEO])
    assert [(e.width, e.height) for e in video.encoding] == [(320, 180), (640, 360), (1280, 720)]
    image = schema.ImageMixin.FromString(facets[FacetTag.IMAGE])
    assert [(m.width, m.height) for m in image.mipmap_level] == [(160, 90), (80, 45)]
    assert brotli.decompress(store.blobs[reference.digest])


def test_failed_anchor_leaves_cursor(make_orchestrator) -> None:
    orchestrator = make_orchestrator(cursor="c", publisher=FakePublisher(failures=1))
    assert asyncio.run(orchestrator.on_tick()) is None
    assert orchestrator.context.ledger.get() == "c"


def test_failed_download_leaves_cursor(make_orchestrator) -> None:
    media_source = FakeMediaSource(fail=True)
    orchestrator = make_orchestrator(cursor="c", media_source=media_source)
    assert asyncio.run(orchestrator.on_tick()) is None
    assert orchestrator.context.ledger.get() == "c"
    assert orchestrator.context.publisher.references == []


def test_run_once_propagates_failure(make_orchestrator) -> None:
    orchestrator = make_orchestrator(cursor="c", publisher=FakePublisher(failures=1))
    with pytest.raises(AnchorError):
        asyncio.run(orchestrator.run_once())


def test_retry_reuses_identical_content_and_advances_once(make_orchestrator) -> None:
    publisher = FakePublisher(failures=1)
    orchestrator = make_orchestrator(cursor="c", publisher=publisher)

    async def two_ticks():
        return await orchestrator.on_tick(), await orchestrator.on_tick()

    first, second = asyncio.run(two_ticks())

    assert (first, second) == (None, "d")
    assert orchestrator.context.ledger.get() == "d"
    assert len(publisher.references) == 2
    assert publisher.references[0] == publisher.references[1]


def test_workspace_removed_after_success_and_failure(make_orchestrator, tmp_path) -> None:
    media_source = FakeMediaSource()
    asyncio.run(make_orchestrator(cursor="c", media_source=media_source).run_cycle())
    failing = FakeMediaSource(fail=True)
    asyncio.run(make_orchestrator(cursor="b", media_source=failing).on_tick())

    for workspace in media_source.workspaces + failing.workspaces:
        assert not workspace.exists()
    assert list((tmp_path / "work").iterdir()) == []


def test_overlapping_tick_is_dropped(make_orchestrator) -> None:
    async def scenario():
        gate = asyncio.Event()
        media_source = FakeMediaSource(gate=gate)
        orchestrator = make_orchestrator(cursor="c", media_source=media_source)

        running = asyncio.create_task(orchestrator.on_tick())
        while not media_source.fetched:
            await asyncio.sleep(0)

        dropped = await orchestrator.on_tick()
        gate.set()
        published = await running
        return orchestrator, media_source, dropped, published

    orchestrator, media_source, dropped, published = asyncio.run(scenario())

    assert dropped is None
    assert published == "d"
    assert orchestrator.dropped_ticks == 1
    assert media_source.fetched == ["d"]
    assert orchestrator.context.ledger.get() == "d"


def test_run_forever_publishes_until_cancelled(make_orchestrator) -> None:
    orchestrator = make_orchestrator(cursor="a")
    publisher = orchestrator.context.publisher

    async def scenario():
        task = asyncio.create_task(orchestrator.run_forever())
        for _ in range(1000):
            if len(publisher.references) == 4 and not orchestrator._lock.locked():
                break
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert orchestrator.context.ledger.get() == "e"
    assert len(publisher.references) == 4


def test_invalid_interval(make_orchestrator) -> None:
    orchestrator = make_orchestrator()
    with pytest.raises(ValueError):
        PipelineOrchestrator(orchestrator.context, interval=0)
