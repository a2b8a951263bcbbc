"""
Process-wide pipeline state.

Every long-lived client (content store connection, ledger publisher with its
cached addresses, cursor store) is created once per process and handed to
each cycle through a PipelineContext.
"""

import logging
from dataclasses import dataclass

from feedpub.chain import LedgerAnchorPublisher
from feedpub.config import PublisherConfig
from feedpub.db import (
    PublicationLedger,
    create_db_engine,
    init_database,
    make_session_factory,
)
from feedpub.ingestion import (
    FeedCursorResolver,
    MediaSource,
    YtDlpFeedSource,
    YtDlpMediaSource,
)
from feedpub.media import MipmapPyramidBuilder
from feedpub.storage import BaseContentStore, IpfsContentStore, LocalWorkspace


logger = logging.getLogger("pipeline")


@dataclass
class PipelineContext:
    config: PublisherConfig
    store: BaseContentStore
    publisher: LedgerAnchorPublisher
    ledger: PublicationLedger
    resolver: FeedCursorResolver
    media_source: MediaSource
    workspace: LocalWorkspace
    pyramid_builder: MipmapPyramidBuilder

    async def aclose(self) -> None:
        await self.store.aclose()


def build_context(config: PublisherConfig) -> PipelineContext:
    """
    Wire every pipeline component from config.

    The cursor table is created if missing. No network call is made here;
    the ledger connection is established lazily on the first anchor.
    """
    engine = create_db_engine(config.database_url)
    init_database(engine)

    store = IpfsContentStore(api_url=config.ipfs_api_url, ipfs_bin=config.ipfs_bin)
    context = PipelineContext(
        config=config,
        store=store,
        publisher=LedgerAnchorPublisher.from_config(config),
        ledger=PublicationLedger(make_session_factory(engine)),
        resolver=FeedCursorResolver(
            YtDlpFeedSource(config.feed_source_uri),
            max_scan_depth=config.max_scan_depth,
        ),
        media_source=YtDlpMediaSource(),
        workspace=LocalWorkspace(config.work_dir),
        pyramid_builder=MipmapPyramidBuilder(store),
    )
    logger.info(
        f"Pipeline context ready: feed={config.feed_source_uri}, "
        f"store={config.ipfs_api_url}, ledger={config.ipc_path}"
    )
    return context
