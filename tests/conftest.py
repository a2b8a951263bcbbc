import hashlib
import io
from pathlib import Path

import base58
import pytest
from PIL import Image

from feedpub.storage import BaseContentStore, ContentReference


PROBE_SAMPLE = """\
Input #0, matroska,webm, from 'data/work/dQw4w9WgXcQ/dQw4w9WgXcQ.mkv':
  Metadata:
    COMPATIBLE_BRANDS: isomiso2avc1mp41
    ENCODER         : Lavf60.16.100
  Duration: 00:03:32.45, start: -0.007000, bitrate: 2550 kb/s
  Stream #0:0: Video: h264 (High), yuv420p(tv, bt709, progressive), 1920x1080 [SAR 1:1 DAR 16:9], 29.97 fps, 29.97 tbr, 1k tbn (default)
    Metadata:
      DURATION        : 00:03:32.412000000
  Stream #0:1(eng): Audio: aac (LC), 44100 Hz, stereo, fltp (default)
    Metadata:
      DURATION        : 00:03:32.451000000
At least one output file must be specified
"""


def cid_for(data: bytes) -> str:
    """CIDv0 of data stored as a single raw sha2-256 block."""
    return base58.b58encode(b"\x12\x20" + hashlib.sha256(data).digest()).decode()


class FakeContentStore(BaseContentStore):
    """In-memory content-addressed store keyed by the sha256 of the content."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.uploads: list[str] = []

    async def add_bytes(self, data: bytes) -> ContentReference:
        digest = cid_for(data)
        self.blobs[digest] = bytes(data)
        self.uploads.append(digest)
        return ContentReference(digest=digest, size_bytes=len(data))

    async def add_file(self, path: Path) -> ContentReference:
        return await self.add_bytes(Path(path).read_bytes())


def write_script(directory: Path, name: str, body: str) -> str:
    """Write an executable shell script standing in for an external tool."""
    path = Path(directory) / name
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(0o755)
    return str(path)


def make_jpeg(width: int, height: int, orientation: int = 1) -> bytes:
    image = Image.new("RGB", (width, height), color=(200, 40, 90))
    # A second colour so the encoder has something to compress
    image.paste((10, 120, 250), (0, 0, width // 2, height // 2))
    buffer = io.BytesIO()
    if orientation != 1:
        exif = Image.Exif()
        exif[0x0112] = orientation
        image.save(buffer, format="JPEG", exif=exif.tobytes())
    else:
        image.save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture()
def store() -> FakeContentStore:
    return FakeContentStore()
