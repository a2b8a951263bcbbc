"""
Protobuf schemas of the composite item record and its facets.

The schemas are declared as descriptors and registered in a private pool, so
no protoc step is needed. Equivalent .proto:

    syntax = "proto3";
    package feedpub;

    message MixinPayload { fixed32 mixin_id = 1; bytes payload = 2; }
    message Item { repeated MixinPayload mixin_payload = 1; }

    message TitleMixin { string title = 1; }
    message BodyTextMixin { string body_text = 1; }
    message SourceUriMixin { string uri = 1; }

    message MipmapLevel {
        uint32 filesize = 1; bytes ipfs_hash = 2; uint32 width = 3; uint32 height = 4;
    }
    message ImageMixin { repeated MipmapLevel mipmap_level = 1; }

    message Encoding { bytes ipfs_hash = 1; uint32 width = 2; uint32 height = 3; }
    message VideoMixin { repeated Encoding encoding = 1; }

Field numbers are append-only: never renumber or reuse them.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory


PACKAGE = "feedpub"

_Field = descriptor_pb2.FieldDescriptorProto

OPTIONAL = _Field.LABEL_OPTIONAL
REPEATED = _Field.LABEL_REPEATED

MESSAGES = {
    "MixinPayload": [
        ("mixin_id", 1, _Field.TYPE_FIXED32, OPTIONAL, None),
        ("payload", 2, _Field.TYPE_BYTES, OPTIONAL, None),
    ],
    "Item": [
        ("mixin_payload", 1, _Field.TYPE_MESSAGE, REPEATED, "MixinPayload"),
    ],
    "TitleMixin": [
        ("title", 1, _Field.TYPE_STRING, OPTIONAL, None),
    ],
    "BodyTextMixin": [
        ("body_text", 1, _Field.TYPE_STRING, OPTIONAL, None),
    ],
    "SourceUriMixin": [
        ("uri", 1, _Field.TYPE_STRING, OPTIONAL, None),
    ],
    "MipmapLevel": [
        ("filesize", 1, _Field.TYPE_UINT32, OPTIONAL, None),
        ("ipfs_hash", 2, _Field.TYPE_BYTES, OPTIONAL, None),
        ("width", 3, _Field.TYPE_UINT32, OPTIONAL, None),
        ("height", 4, _Field.TYPE_UINT32, OPTIONAL, None),
    ],
    "ImageMixin": [
        ("mipmap_level", 1, _Field.TYPE_MESSAGE, REPEATED, "MipmapLevel"),
    ],
    "Encoding": [
        ("ipfs_hash", 1, _Field.TYPE_BYTES, OPTIONAL, None),
        ("width", 2, _Field.TYPE_UINT32, OPTIONAL, None),
        ("height", 3, _Field.TYPE_UINT32, OPTIONAL, None),
    ],
    "VideoMixin": [
        ("encoding", 1, _Field.TYPE_MESSAGE, REPEATED, "Encoding"),
    ],
}


def _build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name=f"{PACKAGE}/facets.proto", package=PACKAGE, syntax="proto3"
    )
    for message_name, message_fields in MESSAGES.items():
        message = file_proto.message_type.add(name=message_name)
        for name, number, field_type, label, type_name in message_fields:
            field = message.field.add(
                name=name, number=number, type=field_type, label=label
            )
            if type_name:
                field.type_name = f".{PACKAGE}.{type_name}"
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file_descriptor().SerializeToString())


def message_class(name: str):
    """Return the generated message class for a schema message name."""
    return message_factory.GetMessageClass(
        _pool.FindMessageTypeByName(f"{PACKAGE}.{name}")
    )


MixinPayload = message_class("MixinPayload")
Item = message_class("Item")
TitleMixin = message_class("TitleMixin")
BodyTextMixin = message_class("BodyTextMixin")
SourceUriMixin = message_class("SourceUriMixin")
MipmapLevelMessage = message_class("MipmapLevel")
ImageMixin = message_class("ImageMixin")
Encoding = message_class("Encoding")
VideoMixin = message_class("VideoMixin")
