"""
Contract call builders for anchoring an item.

The controller never calls a target contract directly. Each state-changing
call is encoded as an inner call (target, data) and then wrapped in the
controller's account contract `sendCallNoReturn(target, data)`, so the
account contract decides who may act for the controller.
"""

import secrets
from dataclasses import dataclass
from typing import Optional

from web3 import Web3

from feedpub.errors import AnchorError
from feedpub.logger import log_detailed
from .abi import ACCOUNT_ABI, FEED_ITEMS_ABI, ITEM_STORE_ABI


# Item flags live in the low byte of the 32-byte flags/nonce word
FLAG_UPDATABLE = 0x01
FLAG_ENFORCE_REVISIONS = 0x02
FLAG_RETRACTABLE = 0x04
FLAG_TRANSFERABLE = 0x08
ITEM_FLAGS = FLAG_UPDATABLE | FLAG_ENFORCE_REVISIONS

# Multihash prefix of a sha2-256 digest: function code 0x12, length 32
SHA256_MULTIHASH_PREFIX = b"\x12\x20"


@dataclass(frozen=True)
class ContractCall:
    target: str
    data: bytes


def make_flags_nonce(flags: int = ITEM_FLAGS, entropy: Optional[bytes] = None) -> bytes:
    """256-bit random nonce with its low byte replaced by flags."""
    if not 0 <= flags <= 0xFF:
        raise ValueError(f"Item flags must fit in one byte, got {flags}")
    entropy = entropy if entropy is not None else secrets.token_bytes(32)
    if len(entropy) != 32:
        raise ValueError("Nonce entropy must be 32 bytes")
    value = (int.from_bytes(entropy, "big") & ~0xFF) | flags
    return value.to_bytes(32, "big")


def parse_bytes32(value: str) -> bytes:
    """Parse a 0x-prefixed 32-byte hex string (e.g. the feed id)."""
    try:
        raw = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    except ValueError as e:
        raise ValueError(f"Not a hex string: {value!r}") from e
    if len(raw) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(raw)}")
    return raw


def sha256_from_multihash(raw_digest: bytes) -> bytes:
    """
    Strip the multihash header from a raw sha2-256 digest.

    Raises:
        AnchorError: If the digest is not a 32-byte sha2-256 multihash.
    """
    if len(raw_digest) != 34 or not raw_digest.startswith(SHA256_MULTIHASH_PREFIX):
        raise AnchorError(
            f"Content digest is not a sha2-256 multihash: {raw_digest.hex()}"
        )
    return raw_digest[2:]


class AnchorCallBuilder:
    """Encode the two relayed calls that anchor one item."""

    def __init__(
        self,
        w3: Web3,
        account_address: str,
        item_store_address: str,
        feed_items_address: str,
    ):
        self.account = w3.eth.contract(
            address=Web3.to_checksum_address(account_address), abi=ACCOUNT_ABI
        )
        self.item_store = w3.eth.contract(
            address=Web3.to_checksum_address(item_store_address), abi=ITEM_STORE_ABI
        )
        self.feed_items = w3.eth.contract(
            address=Web3.to_checksum_address(feed_items_address), abi=FEED_ITEMS_ABI
        )

    @staticmethod
    def _encode(contract, function_name: str, args: list) -> ContractCall:
        data = contract.encode_abi(function_name, args=args)
        return ContractCall(target=contract.address, data=Web3.to_bytes(hexstr=data))

    def register_child(self, feed_id: bytes, flags_nonce: bytes) -> ContractCall:
        """Inner call: add the new item as a child of the feed head item."""
        return self._encode(
            self.feed_items, "addChild", [feed_id, self.item_store.address, flags_nonce]
        )

    def create_item(self, flags_nonce: bytes, content_hash: bytes) -> ContractCall:
        """Inner call: create the item record pointing at the content hash."""
        return self._encode(self.item_store, "create", [flags_nonce, content_hash])

    def relay(self, call: ContractCall) -> ContractCall:
        """Outer call: route call through the controller's account contract."""
        return self._encode(self.account, "sendCallNoReturn", [call.target, call.data])

    @log_detailed("chain")
    def build_anchor_calls(
        self, feed_id: bytes, flags_nonce: bytes, raw_digest: bytes
    ) -> list[ContractCall]:
        """
        The ordered relayed calls for one item: registration first, creation second.
        """
        content_hash = sha256_from_multihash(raw_digest)
        return [
            self.relay(self.register_child(feed_id, flags_nonce)),
            self.relay(self.create_item(flags_nonce, content_hash)),
        ]
