"""
Configuration settings for the feed publisher.

This module defines the PublisherConfig dataclass holding every parameter the
pipeline reads from the environment (optionally through a .env file).
"""

import os
from dataclasses import dataclass, fields
from typing import Optional

from dotenv import load_dotenv


# MIX account registry deployed on the MIX mainnet
DEFAULT_ACCOUNT_REGISTRY = "0xbcab5026b4d79396b222abc4d1ca36db10984c73"

REQUIRED_VARIABLES = {
    "feed_source_uri": "FEED_SOURCE_URI",
    "feed_id": "FEED_ID",
    "recovery_phrase": "RECOVERY_PHRASE",
    "ipc_path": "MIX_IPC_PATH",
    "item_store_address": "ITEM_STORE_ADDRESS",
    "feed_items_address": "FEED_ITEMS_ADDRESS",
}

SECRET_FIELDS = {"recovery_phrase"}


@dataclass
class PublisherConfig:
    """Configuration for the feed publishing pipeline"""

    # Feed
    feed_source_uri: Optional[str] = None
    feed_id: Optional[str] = None  # bytes32 hex id of the feed head item
    max_scan_depth: int = 500  # two-entry windows scanned before giving up

    # Ledger
    recovery_phrase: Optional[str] = None
    ipc_path: Optional[str] = None
    chain_id: int = 76
    gas_price: int = 1_000_000_000  # wei
    gas_limit: int = 400_000
    account_registry_address: str = DEFAULT_ACCOUNT_REGISTRY
    item_store_address: Optional[str] = None
    feed_items_address: Optional[str] = None

    # Transcoding
    h264_crf: int = 23
    h264_preset: str = "medium"
    ffmpeg_bin: str = "ffmpeg"

    # Content store
    ipfs_host: str = "127.0.0.1"
    ipfs_port: int = 5001
    ipfs_bin: str = "ipfs"

    # Local state
    database_url: str = "sqlite:///data/feedpub.db"
    work_dir: str = "data/work"
    poll_interval: float = 60.0

    @property
    def ipfs_api_url(self) -> str:
        return f"http://{self.ipfs_host}:{self.ipfs_port}"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "PublisherConfig":
        """Build a configuration from environment variables.

        Args:
            dotenv: If True, load a .env file first (existing variables win).

        Returns:
            PublisherConfig populated from the environment; unset optional
            variables keep their defaults.
        """
        if dotenv:
            load_dotenv()

        defaults = cls()
        env = os.environ.get

        return cls(
            feed_source_uri=env("FEED_SOURCE_URI"),
            feed_id=env("FEED_ID"),
            max_scan_depth=int(env("MAX_SCAN_DEPTH", defaults.max_scan_depth)),
            recovery_phrase=env("RECOVERY_PHRASE"),
            ipc_path=env("MIX_IPC_PATH"),
            chain_id=int(env("CHAIN_ID", defaults.chain_id)),
            gas_price=int(env("GAS_PRICE", defaults.gas_price)),
            gas_limit=int(env("GAS_LIMIT", defaults.gas_limit)),
            account_registry_address=env(
                "ACCOUNT_REGISTRY_ADDRESS", defaults.account_registry_address
            ),
            item_store_address=env("ITEM_STORE_ADDRESS"),
            feed_items_address=env("FEED_ITEMS_ADDRESS"),
            h264_crf=int(env("H264_CRF", defaults.h264_crf)),
            h264_preset=env("H264_PRESET", defaults.h264_preset),
            ffmpeg_bin=env("FFMPEG_BIN", defaults.ffmpeg_bin),
            ipfs_host=env("IPFS_HOST", defaults.ipfs_host),
            ipfs_port=int(env("IPFS_PORT", defaults.ipfs_port)),
            ipfs_bin=env("IPFS_BIN", defaults.ipfs_bin),
            database_url=env("DATABASE_URL", defaults.database_url),
            work_dir=env("WORK_DIR", defaults.work_dir),
            poll_interval=float(env("POLL_INTERVAL", defaults.poll_interval)),
        )

    def validate(self) -> None:
        """
        Check that every required setting is present.

        Raises:
            ValueError: If one or more required environment variables are missing.
        """
        missing = [
            variable
            for attr, variable in REQUIRED_VARIABLES.items()
            if not getattr(self, attr)
        ]
        if missing:
            raise ValueError(
                "Missing required environment variables for the publisher: "
                + ", ".join(missing)
            )
        if self.poll_interval <= 0:
            raise ValueError("POLL_INTERVAL must be a positive number of seconds")
        if self.max_scan_depth <= 0:
            raise ValueError("MAX_SCAN_DEPTH must be positive")

    def masked(self) -> dict:
        """Return the configuration as a dict with secrets masked, for display."""
        result = {}
        for field in fields(self):
            value = getattr(self, field.name)
            if field.name in SECRET_FIELDS and value:
                value = "***"
            result[field.name] = value
        return result
