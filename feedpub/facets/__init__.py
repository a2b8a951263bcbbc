"""Composite item record: facet schemas and record composition."""

from .composer import (
    FacetPayload,
    FacetTag,
    build_item_facets,
    compose_record,
    decode_record,
    encode_body_text,
    encode_image,
    encode_source_uri,
    encode_title,
    encode_video,
    serialize_record,
)

__all__ = [
    "FacetPayload",
    "FacetTag",
    "build_item_facets",
    "compose_record",
    "decode_record",
    "encode_body_text",
    "encode_image",
    "encode_source_uri",
    "encode_title",
    "encode_video",
    "serialize_record",
]
