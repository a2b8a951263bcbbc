#!/usr/bin/env python3
"""
CLI interface for the feed publishing pipeline.

The pipeline publishes feed items one at a time, oldest unpublished first:
    1. Resolve the next feed item after the stored cursor
    2. Download its video and thumbnail
    3. Encode the H.264 rendition ladder and upload each rendition
    4. Build and upload the thumbnail mipmap pyramid
    5. Compose and upload the item record
    6. Anchor the record on the ledger and advance the cursor

Usage:
    python -m feedpub.pipeline              # run every POLL_INTERVAL seconds
    python -m feedpub.pipeline --once       # publish at most one item and exit
    python -m feedpub.pipeline --init-db    # create the cursor table and exit
    python -m feedpub.pipeline --dry-run -v # show configuration and next item
"""

import sys
import asyncio
import argparse
import logging

from feedpub.config import PublisherConfig
from feedpub.db import check_database_connection, create_db_engine, init_database
from feedpub.logger import setup_logging
from .context import build_context
from .orchestrator import PipelineOrchestrator


LOGGER_NAMES = ("pipeline", "ingestion", "media", "storage", "chain", "database")
LOG_FILE = "logs/pipeline.log"


def parse_arguments() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Feed Publishing Pipeline - Mirrors a media feed to IPFS and anchors each item on the MIX ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Modes:
  (default)         Run a publishing cycle every --interval seconds, forever
  --once            Run a single cycle (publishes at most one item) and exit
  --init-db         Create the cursor database table and exit
  --dry-run         Print the configuration (secrets masked) and the next item id

Configuration (environment or .env):
  FEED_SOURCE_URI, FEED_ID, RECOVERY_PHRASE, MIX_IPC_PATH,
  ITEM_STORE_ADDRESS, FEED_ITEMS_ADDRESS are required.
  See PublisherConfig for optional settings (H264_CRF, IPFS_HOST, ...).

Examples:
  python -m feedpub.pipeline --init-db
  python -m feedpub.pipeline --once --verbose
  python -m feedpub.pipeline --interval 300
  python -m feedpub.pipeline --dry-run

Notes:
  - Items are published oldest-first, one per cycle
  - A failed cycle leaves the cursor untouched; the next cycle retries it
  - A tick arriving while a cycle is still running is dropped
  - Logs written to logs/pipeline.log
        """,
    )

    mode_group = parser.add_argument_group("mode")
    mode_exclusive = mode_group.add_mutually_exclusive_group()
    mode_exclusive.add_argument(
        "--once",
        action="store_true",
        help="Run a single publishing cycle and exit",
    )
    mode_exclusive.add_argument(
        "--init-db",
        action="store_true",
        help="Create the cursor database table and exit",
    )
    mode_exclusive.add_argument(
        "--dry-run",
        action="store_true",
        help="Show configuration and the next item id without publishing",
    )

    options_group = parser.add_argument_group("options")
    options_group.add_argument(
        "--interval",
        type=float,
        metavar="SECONDS",
        help="Seconds between cycles (default: POLL_INTERVAL or 60)",
    )
    options_group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )

    return parser.parse_args()


def configure_logging(verbose: bool) -> logging.Logger:
    for name in LOGGER_NAMES:
        setup_logging(logger_name=name, log_file=LOG_FILE, verbose=verbose)
    return logging.getLogger("pipeline")


def init_db(config: PublisherConfig) -> None:
    engine = create_db_engine(config.database_url)
    init_database(engine)
    if not check_database_connection(engine):
        raise RuntimeError(f"Database at {config.database_url} is not reachable")
    print(f"✓ Cursor database ready: {config.database_url}")


async def dry_run(config: PublisherConfig) -> None:
    """Print the resolved configuration and the item the next cycle would publish."""
    print("=" * 80)
    print("DRY RUN - Nothing will be published")
    print("=" * 80)
    print()
    print("Configuration:")
    for key, value in config.masked().items():
        print(f"  {key}: {value}")
    print()

    context = build_context(config)
    try:
        next_id = await PipelineOrchestrator(context, config.poll_interval).resolve_next_id()
    finally:
        await context.aclose()

    if next_id is None:
        print("Next item: none (feed is up to date)")
    else:
        print(f"Next item: {next_id}")
    print()
    print("=" * 80)


async def run(config: PublisherConfig, once: bool) -> None:
    context = build_context(config)
    orchestrator = PipelineOrchestrator(context, config.poll_interval)
    try:
        if once:
            item_id = await orchestrator.run_once()
            if item_id is None:
                print("✓ Feed is up to date, nothing published")
            else:
                print(f"✓ Published {item_id}")
        else:
            await orchestrator.run_forever()
    finally:
        await context.aclose()


def main():
    """Main entry point for the pipeline CLI."""
    args = parse_arguments()
    logger = configure_logging(args.verbose)

    try:
        config = PublisherConfig.from_env()
    except ValueError as e:
        print(f"✗ Error: invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)
    if args.interval is not None:
        config.poll_interval = args.interval

    if args.init_db:
        try:
            init_db(config)
        except (ValueError, RuntimeError) as e:
            logger.error(f"Database initialization failed: {e}")
            print(f"✗ Error: {e}", file=sys.stderr)
            sys.exit(1)
        return

    try:
        config.validate()
    except ValueError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        print("Run with --help for usage information", file=sys.stderr)
        sys.exit(1)

    if args.dry_run:
        logger.info("Running in dry-run mode (nothing will be published)")
        try:
            asyncio.run(dry_run(config))
        except Exception as e:
            logger.error(f"Dry run failed: {e}")
            print(f"\n✗ DRY RUN FAILED: {e}", file=sys.stderr)
            sys.exit(1)
        return

    logger.info("=" * 80)
    logger.info("Pipeline execution started")
    logger.info(f"Mode: {'single cycle' if args.once else f'every {config.poll_interval:g}s'}")
    logger.info("=" * 80)

    try:
        asyncio.run(run(config, once=args.once))
        logger.info("Pipeline execution completed successfully")
    except KeyboardInterrupt:
        logger.info("Pipeline stopped by user")
    except Exception as e:
        logger.error(f"Pipeline execution failed: {e}", exc_info=True)
        print(f"\n✗ PIPELINE FAILED: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
