"""
Image mipmap pyramid.

Level 0 is the source re-encoded at full size; level n is the source scaled
to 1/2^n of its (orientation-corrected) size. Levels are added while the
previous level is larger than 64 pixels on both axes, so the last level is
the first one that reaches 64 or less on either axis.

Every level is encoded as JPEG and uploaded as soon as it is ready; all
levels are processed concurrently and the result keeps level order.
"""

import asyncio
import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps

from feedpub.errors import SourceError
from feedpub.logger import log_function
from feedpub.storage import BaseContentStore
from .renditions import round_half_up


logger = logging.getLogger("media")

MIN_LEVEL_SIZE = 64
EXIF_ORIENTATION_TAG = 0x0112
JPEG_QUALITY = 90


@dataclass(frozen=True)
class MipmapLevel:
    level_index: int
    width: int
    height: int
    content_id: str
    size_bytes: int


def plan_mipmap_dimensions(width: int, height: int) -> list[tuple[int, int]]:
    """
    Return (width, height) for every pyramid level, level 0 first.

    >>> plan_mipmap_dimensions(1000, 800)
    [(1000, 800), (500, 400), (250, 200), (125, 100), (63, 50)]
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image dimensions {width}x{height}")

    levels = [(width, height)]
    level = 1
    while True:
        scale = 2**level
        out_width = max(1, round_half_up(width / scale))
        out_height = max(1, round_half_up(height / scale))
        levels.append((out_width, out_height))
        if out_width <= MIN_LEVEL_SIZE or out_height <= MIN_LEVEL_SIZE:
            break
        level += 1
    return levels


def load_oriented_image(data: bytes) -> tuple[Image.Image, int, int]:
    """
    Decode data and apply its EXIF orientation.

    Orientation codes 5-8 involve a 90/270 degree rotation, which swaps the
    logical width and height.

    Returns:
        (image with pixels in display orientation, logical width, logical height)
    """
    image = Image.open(io.BytesIO(data))
    orientation = image.getexif().get(EXIF_ORIENTATION_TAG, 1)
    width, height = image.size
    if orientation > 4:
        width, height = height, width

    oriented = ImageOps.exif_transpose(image)
    if oriented.mode != "RGB":
        oriented = oriented.convert("RGB")
    oriented.load()
    return oriented, width, height


def encode_level(image: Image.Image, width: int, height: int, quality: int) -> bytes:
    """Encode image as JPEG at width x height (no resize when already that size)."""
    if image.size != (width, height):
        image = image.resize((width, height), Image.Resampling.LANCZOS)
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class MipmapPyramidBuilder:
    """Build and upload the mipmap pyramid of a source image."""

    def __init__(self, store: BaseContentStore, jpeg_quality: int = JPEG_QUALITY):
        self.store = store
        self.jpeg_quality = jpeg_quality

    async def _encode_and_upload(
        self, image: Image.Image, level_index: int, width: int, height: int
    ) -> MipmapLevel:
        data = await asyncio.to_thread(
            encode_level, image, width, height, self.jpeg_quality
        )
        reference = await self.store.add_bytes(data)
        logger.debug(
            f"Mipmap level {level_index} {width}x{height}: {reference.digest}"
        )
        return MipmapLevel(
            level_index=level_index,
            width=width,
            height=height,
            content_id=reference.digest,
            size_bytes=reference.size_bytes,
        )

    @log_function(logger_name="media", log_execution_time=True)
    async def build(self, image_data: bytes) -> list[MipmapLevel]:
        """
        Encode and upload every level of the pyramid for image_data.

        All levels are awaited before returning, even when one fails; the
        first failure is then re-raised.

        Returns:
            list[MipmapLevel]: Ordered by level index.
        """
        try:
            image, width, height = await asyncio.to_thread(load_oriented_image, image_data)
        except OSError as e:
            raise SourceError(f"Cannot decode source image: {e}") from e
        dimensions = plan_mipmap_dimensions(width, height)
        logger.info(
            f"Building {len(dimensions)} mipmap levels from {width}x{height} source"
        )

        results = await asyncio.gather(
            *(
                self._encode_and_upload(image, index, level_width, level_height)
                for index, (level_width, level_height) in enumerate(dimensions)
            ),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)
