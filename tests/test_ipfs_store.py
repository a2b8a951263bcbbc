import asyncio
import base64
import json

import httpx
import pytest

from conftest import cid_for, write_script
from feedpub.errors import UploadError
from feedpub.storage import (
    ContentReference,
    IpfsContentStore,
    build_multipart_body,
    decode_digest,
    new_boundary,
)


def extract_payload(body: bytes, boundary: str) -> bytes:
    opening = f"--{boundary}\r\n".encode()
    closing = f"\r\n--{boundary}--\r\n".encode()
    assert body.startswith(opening)
    assert body.endswith(closing)
    header_end = body.index(b"\r\n\r\n") + 4
    return body[header_end : -len(closing)]


def test_boundary_is_random_hex() -> None:
    first, second = new_boundary(), new_boundary()
    assert len(first) == 64
    int(first, 16)
    assert first != second


def test_multipart_body_preserves_every_byte_value() -> None:
    payload = bytes(range(256)) * 3 + b"\r\n--\r\n"
    boundary = new_boundary()
    body = build_multipart_body(payload, boundary)

    assert b'Content-Disposition: form-data; name="file"' in body
    assert b"Content-Type: application/octet-stream" in body
    assert extract_payload(body, boundary) == payload


def test_multipart_body_empty_payload() -> None:
    boundary = new_boundary()
    assert extract_payload(build_multipart_body(b"", boundary), boundary) == b""


def make_store(handler) -> IpfsContentStore:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://ipfs.test"
    )
    return IpfsContentStore(api_url="http://ipfs.test", client=client)


async def add_and_close(store: IpfsContentStore, data: bytes) -> ContentReference:
    async with store:
        return await store.add_bytes(data)


def test_add_bytes_posts_payload_and_parses_reply() -> None:
    payload = bytes(range(256))
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        content_type = request.headers["content-type"]
        boundary = content_type.split("boundary=")[1]
        seen["path"] = request.url.path
        seen["method"] = request.method
        seen["payload"] = extract_payload(request.content, boundary)
        reply = {"Name": "file", "Hash": cid_for(seen["payload"]), "Size": "267"}
        return httpx.Response(200, content=json.dumps(reply).encode())

    reference = asyncio.run(add_and_close(make_store(handler), payload))

    assert seen == {"path": "/api/v0/add", "method": "POST", "payload": payload}
    assert reference == ContentReference(digest=cid_for(payload), size_bytes=267)


def test_add_bytes_http_error() -> None:
    def handler(request):
        return httpx.Response(500, text="blockstore full")

    with pytest.raises(UploadError):
        asyncio.run(add_and_close(make_store(handler), b"data"))


def test_add_bytes_connection_error() -> None:
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UploadError):
        asyncio.run(add_and_close(make_store(handler), b"data"))


def test_add_bytes_unexpected_reply() -> None:
    def handler(request):
        return httpx.Response(200, json={"Name": "file"})

    with pytest.raises(UploadError):
        asyncio.run(add_and_close(make_store(handler), b"data"))


def test_add_file_missing_path(tmp_path) -> None:
    store = make_store(lambda request: httpx.Response(200))
    with pytest.raises(UploadError):
        asyncio.run(store.add_file(tmp_path / "missing.mp4"))


def test_add_file_missing_binary(tmp_path) -> None:
    path = tmp_path / "180.mp4"
    path.write_bytes(b"\x00" * 16)
    store = IpfsContentStore(ipfs_bin=str(tmp_path / "no-such-ipfs"), client=httpx.AsyncClient())
    with pytest.raises(UploadError):
        asyncio.run(store.add_file(path))


def test_add_file_runs_ipfs_add_quietly(tmp_path) -> None:
    path = tmp_path / "180.mp4"
    path.write_bytes(b"\x00" * 16)
    digest = cid_for(b"\x00" * 16)
    args_file = tmp_path / "args"
    ipfs = write_script(tmp_path, "ipfs", f"echo \"$*\" > {args_file}\necho {digest}\n")
    store = IpfsContentStore(ipfs_bin=ipfs, client=httpx.AsyncClient())

    reference = asyncio.run(store.add_file(path))

    assert reference == ContentReference(digest=digest, size_bytes=16)
    assert args_file.read_text().split() == ["add", "-Q", "--raw-leaves", str(path)]


def test_add_file_non_zero_exit(tmp_path) -> None:
    path = tmp_path / "180.mp4"
    path.write_bytes(b"\x00" * 16)
    ipfs = write_script(tmp_path, "ipfs", "echo \"Error: api not running\" >&2\nexit 1\n")
    store = IpfsContentStore(ipfs_bin=ipfs, client=httpx.AsyncClient())
    with pytest.raises(UploadError) as excinfo:
        asyncio.run(store.add_file(path))
    assert "api not running" in str(excinfo.value)


def test_add_file_empty_output(tmp_path) -> None:
    path = tmp_path / "180.mp4"
    path.write_bytes(b"\x00" * 16)
    ipfs = write_script(tmp_path, "ipfs", "exit 0\n")
    store = IpfsContentStore(ipfs_bin=ipfs, client=httpx.AsyncClient())
    with pytest.raises(UploadError):
        asyncio.run(store.add_file(path))


def test_decode_cidv0() -> None:
    digest = cid_for(b"hello")
    raw = decode_digest(digest)
    assert len(raw) == 34
    assert raw[:2] == b"\x12\x20"
    assert ContentReference(digest, 5).raw_digest == raw


def test_decode_cidv1_base32_drops_cid_prefix() -> None:
    multihash = decode_digest(cid_for(b"hello"))
    cid = bytes([0x01, 0x55]) + multihash
    digest = "b" + base64.b32encode(cid).decode().lower().rstrip("=")
    assert decode_digest(digest) == multihash


def test_decode_empty_digest() -> None:
    with pytest.raises(ValueError):
        decode_digest("")
