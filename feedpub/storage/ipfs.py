import logging
import secrets
from pathlib import Path
from typing import Optional

import httpx

from feedpub.errors import UploadError
from feedpub.logger import log_function
from feedpub.process import run_process
from .base import BaseContentStore, ContentReference


logger = logging.getLogger("storage")

ADD_ENDPOINT = "/api/v0/add"


def new_boundary() -> str:
    """Fresh random multipart boundary (64 hex chars)."""
    return secrets.token_hex(32)


def build_multipart_body(payload: bytes, boundary: str) -> bytes:
    """
    Build a single-part multipart/form-data body around payload.

    The envelope is assembled as bytes and the payload is inserted verbatim,
    so no byte of it goes through any text encoding.
    """
    delimiter = boundary.encode("ascii")
    head = (
        b"--" + delimiter + b"\r\n"
        b'Content-Disposition: form-data; name="file"\r\n'
        b"Content-Type: application/octet-stream\r\n"
        b"\r\n"
    )
    tail = b"\r\n--" + delimiter + b"--\r\n"
    return head + payload + tail


class IpfsContentStore(BaseContentStore):
    """A client for an IPFS node: HTTP API for buffers, ipfs CLI for files."""

    def __init__(
        self,
        api_url: str = "http://127.0.0.1:5001",
        ipfs_bin: str = "ipfs",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url
        self.ipfs_bin = ipfs_bin
        # One persistent connection for every upload of the process; large
        # records and uploads may take arbitrarily long.
        self.client = client or httpx.AsyncClient(base_url=api_url, timeout=None)

    async def aclose(self) -> None:
        await self.client.aclose()

    @log_function(logger_name="storage", log_result=True)
    async def add_bytes(self, data: bytes) -> ContentReference:
        boundary = new_boundary()
        body = build_multipart_body(data, boundary)
        headers = {"Content-Type": f"multipart/form-data; boundary={boundary}"}

        try:
            response = await self.client.post(ADD_ENDPOINT, content=body, headers=headers)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            raise UploadError(f"Upload of {len(data)} bytes failed: {e}") from e
        except ValueError as e:
            raise UploadError(f"Content store returned invalid JSON: {e}") from e

        try:
            reference = ContentReference(
                digest=result["Hash"], size_bytes=int(result["Size"])
            )
        except (KeyError, TypeError, ValueError) as e:
            raise UploadError(f"Unexpected content store response: {result!r}") from e

        logger.debug(f"Added {len(data)} bytes as {reference.digest}")
        return reference

    @log_function(logger_name="storage", log_args=True, log_result=True)
    async def add_file(self, path: Path) -> ContentReference:
        path = Path(path)
        if not path.is_file():
            raise UploadError(f"Cannot upload missing file {path}")

        argv = [self.ipfs_bin, "add", "-Q", "--raw-leaves", str(path)]
        try:
            result = await run_process(argv)
        except FileNotFoundError as e:
            raise UploadError(f"ipfs binary not found: {self.ipfs_bin}") from e
        except OSError as e:
            raise UploadError(f"Cannot run ipfs: {e}") from e

        digest = result.stdout.decode("ascii", errors="replace").strip()
        if not result.ok or not digest:
            error = result.stderr.decode("utf-8", errors="replace").strip()
            raise UploadError(f"ipfs add {path.name} failed (exit {result.returncode}): {error}")

        return ContentReference(digest=digest, size_bytes=path.stat().st_size)
