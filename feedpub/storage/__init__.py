"""
Storage module for content-addressed uploads and local working directories.

- base.py: ContentReference and the BaseContentStore interface
- ipfs.py: IPFS node client (HTTP API for buffers, ipfs CLI for files)
- workspace.py: Per-item working directories, removed after each cycle
"""

from .base import BaseContentStore, ContentReference, decode_digest
from .ipfs import IpfsContentStore, build_multipart_body, new_boundary
from .workspace import LocalWorkspace

__all__ = [
    "BaseContentStore",
    "ContentReference",
    "decode_digest",
    "IpfsContentStore",
    "build_multipart_body",
    "new_boundary",
    "LocalWorkspace",
]
