"""
Composite item record.

An item is an ordered list of facets ("mixins"), each a tag plus an opaque
payload. Consumers skip tags they do not know, so new facets can be added
without touching existing readers. The serialized list is Brotli-compressed
before upload, since the record is what the ledger ends up pointing at.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Sequence

import brotli

from feedpub.logger import log_function
from feedpub.media import MipmapLevel, RenditionOutput
from feedpub.storage import decode_digest
from . import schema


logger = logging.getLogger("pipeline")


class FacetTag(IntEnum):
    """Facet identifiers. Append only: existing values are never changed or reused."""

    TITLE = 0x344F4812
    BODY_TEXT = 0x2D382044
    IMAGE = 0x045EEE8C
    VIDEO = 0x51108FEB
    SOURCE_URI = 0x1A3B8E5D


@dataclass(frozen=True)
class FacetPayload:
    facet_tag: int
    payload: bytes


def encode_title(title: str) -> bytes:
    return schema.TitleMixin(title=title or "").SerializeToString()


def encode_body_text(body_text: str) -> bytes:
    return schema.BodyTextMixin(body_text=body_text or "").SerializeToString()


def encode_source_uri(uri: str) -> bytes:
    return schema.SourceUriMixin(uri=uri or "").SerializeToString()


def encode_image(levels: Sequence[MipmapLevel]) -> bytes:
    """Image facet: one entry per mipmap level, level 0 first, raw digests."""
    message = schema.ImageMixin()
    for level in sorted(levels, key=lambda lvl: lvl.level_index):
        message.mipmap_level.add(
            filesize=level.size_bytes,
            ipfs_hash=decode_digest(level.content_id),
            width=level.width,
            height=level.height,
        )
    return message.SerializeToString()


def encode_video(renditions: Sequence[RenditionOutput]) -> bytes:
    """Video facet: one entry per rendition, in ladder order, raw digests."""
    message = schema.VideoMixin()
    for rendition in renditions:
        message.encoding.add(
            ipfs_hash=decode_digest(rendition.content_id),
            width=rendition.width,
            height=rendition.height,
        )
    return message.SerializeToString()


def build_item_facets(
    title: str,
    body_text: str,
    levels: Sequence[MipmapLevel],
    renditions: Sequence[RenditionOutput],
    source_uri: str,
) -> list[FacetPayload]:
    """The fixed, ordered facet list of a published feed item.

    Every facet is always present; missing source data yields an empty payload
    value rather than a missing facet.
    """
    return [
        FacetPayload(FacetTag.TITLE, encode_title(title)),
        FacetPayload(FacetTag.BODY_TEXT, encode_body_text(body_text)),
        FacetPayload(FacetTag.IMAGE, encode_image(levels)),
        FacetPayload(FacetTag.VIDEO, encode_video(renditions)),
        FacetPayload(FacetTag.SOURCE_URI, encode_source_uri(source_uri)),
    ]


def serialize_record(facets: Iterable[FacetPayload]) -> bytes:
    """
    Serialize facets to the Item wire format (uncompressed).

    Raises:
        ValueError: If a facet tag appears more than once or does not fit in 32 bits.
    """
    item = schema.Item()
    seen = set()
    for facet in facets:
        tag = int(facet.facet_tag)
        if tag in seen:
            raise ValueError(f"Duplicate facet tag 0x{tag:08x}")
        if not 0 <= tag <= 0xFFFFFFFF:
            raise ValueError(f"Facet tag {tag} is not a uint32")
        seen.add(tag)
        item.mixin_payload.add(mixin_id=tag, payload=bytes(facet.payload))
    return item.SerializeToString()


@log_function(logger_name="pipeline", log_execution_time=True)
def compose_record(facets: Iterable[FacetPayload]) -> bytes:
    """Serialize facets and compress the whole record with Brotli."""
    serialized = serialize_record(facets)
    compressed = brotli.compress(serialized)
    logger.info(
        f"Composed record: {len(serialized)} bytes, {len(compressed)} compressed"
    )
    return compressed


def decode_record(blob: bytes) -> list[FacetPayload]:
    """Inverse of compose_record: decompress and parse back the ordered facet list."""
    item = schema.Item.FromString(brotli.decompress(blob))
    return [
        FacetPayload(facet_tag=entry.mixin_id, payload=bytes(entry.payload))
        for entry in item.mixin_payload
    ]
