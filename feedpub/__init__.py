"""
feedpub: mirrors a media feed to IPFS and anchors each item on the MIX ledger.

Subpackages:
- ingestion: feed queries, cursor resolution and media download
- media: probing, the H.264 rendition ladder and the image mipmap pyramid
- storage: content-addressed uploads and per-item working directories
- facets: the composite item record
- chain: controller identity and ledger anchoring
- db: the durable publication cursor
- pipeline: cycle orchestration and the CLI
"""

__version__ = "0.1.0"
