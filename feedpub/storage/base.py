import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import base58


CID_VERSION_1 = 0x01


@dataclass(frozen=True)
class ContentReference:
    """
    Reference to content held by a content-addressed store.

    Attributes:
        digest: Store-native encoding of the content hash (CIDv0 or base32 CIDv1)
        size_bytes: Size reported by the store
    """

    digest: str
    size_bytes: int

    @property
    def raw_digest(self) -> bytes:
        """The digest decoded to raw multihash bytes, as stored on the ledger."""
        return decode_digest(self.digest)


def decode_digest(digest: str) -> bytes:
    """
    Decode a content identifier to its raw multihash bytes.

    Accepts base58 CIDv0 ("Qm...") and base32 CIDv1 ("b..."); for the
    latter the version and codec prefix is dropped.

    Raises:
        ValueError: If digest is empty or cannot be decoded.
    """
    if not digest:
        raise ValueError("Empty content digest")
    if digest.startswith("b"):
        padding = "=" * (-len(digest[1:]) % 8)
        cid = base64.b32decode(digest[1:].upper() + padding)
        if len(cid) < 3 or cid[0] != CID_VERSION_1:
            raise ValueError(f"Unsupported content identifier {digest}")
        # Codec varints used by IPFS (raw 0x55, dag-pb 0x70) are one byte
        return cid[2:]
    return base58.b58decode(digest)


class BaseContentStore(ABC):
    """
    Abstract base class for content-addressed stores.

    Both upload paths return a ContentReference. Uploading identical bytes
    twice must return the identical digest.
    """

    @abstractmethod
    async def add_bytes(self, data: bytes) -> ContentReference:
        """Upload an in-memory buffer.

        Args:
            data (bytes): Arbitrary binary payload, transmitted unmodified.

        Returns:
            ContentReference: Digest and size reported by the store.

        Raises:
            UploadError: If the store rejects the upload or cannot be reached.
        """

    @abstractmethod
    async def add_file(self, path: Path) -> ContentReference:
        """Upload a file from disk.

        Args:
            path (Path): File to upload.

        Returns:
            ContentReference: Digest of the file and its size in bytes.

        Raises:
            UploadError: If the upload fails.
        """

    async def aclose(self) -> None:
        """Release any connection held by the store."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
