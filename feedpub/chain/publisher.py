"""
Ledger anchoring for published items.

The publisher signs and broadcasts two relayed transactions per item through
the controller's account contract: first registering the new item as a child
of the feed, then creating the item record pointing at the content digest.
The second is only sent after the first is mined successfully.

web3 is blocking, so every node round-trip runs in a worker thread.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import Web3Exception

from feedpub.config import DEFAULT_ACCOUNT_REGISTRY, PublisherConfig
from feedpub.errors import AnchorError
from feedpub.logger import log_function
from feedpub.storage import ContentReference
from .abi import ACCOUNT_REGISTRY_ABI, ITEM_STORE_ABI
from .calls import AnchorCallBuilder, ContractCall, make_flags_nonce, parse_bytes32
from .identity import derive_controller


logger = logging.getLogger("chain")

RECEIPT_TIMEOUT = 300  # seconds

# Node and library failures that abort an anchor attempt
NODE_ERRORS = (Web3Exception, OSError, ValueError)


@dataclass(frozen=True)
class AnchorTransaction:
    """A transaction signed offline, ready for broadcast."""

    nonce: int
    signed_payload: bytes
    target_address: str


@dataclass(frozen=True)
class AnchorResult:
    item_id: str
    transaction_hashes: list[str]


def sign_anchor_transaction(
    account: LocalAccount,
    call: ContractCall,
    nonce: int,
    gas_price: int,
    gas_limit: int,
    chain_id: int,
) -> AnchorTransaction:
    """Sign call as a legacy transaction with the controller key."""
    transaction = {
        "to": call.target,
        "data": Web3.to_hex(call.data),
        "value": 0,
        "nonce": nonce,
        "gas": gas_limit,
        "gasPrice": gas_price,
        "chainId": chain_id,
    }
    signed = account.sign_transaction(transaction)
    return AnchorTransaction(
        nonce=nonce,
        signed_payload=bytes(signed.raw_transaction),
        target_address=call.target,
    )


class LedgerAnchorPublisher:
    """
    Anchors content references on the ledger as items of one feed.

    The controller identity and its account contract are resolved once on
    connect() and reused for the process lifetime.
    """

    def __init__(
        self,
        w3: Web3,
        recovery_phrase: str,
        feed_id: bytes,
        item_store_address: str,
        feed_items_address: str,
        account_registry_address: str = DEFAULT_ACCOUNT_REGISTRY,
        chain_id: int = 76,
        gas_price: int = 1_000_000_000,
        gas_limit: int = 400_000,
        receipt_timeout: float = RECEIPT_TIMEOUT,
    ):
        self.w3 = w3
        self._recovery_phrase = recovery_phrase
        self.feed_id = feed_id
        self.item_store_address = Web3.to_checksum_address(item_store_address)
        self.feed_items_address = Web3.to_checksum_address(feed_items_address)
        self.account_registry_address = Web3.to_checksum_address(
            account_registry_address
        )
        self.chain_id = chain_id
        self.gas_price = gas_price
        self.gas_limit = gas_limit
        self.receipt_timeout = receipt_timeout

        self.controller: Optional[LocalAccount] = None
        self.account_contract: Optional[str] = None
        self.calls: Optional[AnchorCallBuilder] = None

    @classmethod
    def from_config(cls, config: PublisherConfig) -> "LedgerAnchorPublisher":
        """Create a publisher talking to the local node over IPC."""
        w3 = Web3(Web3.IPCProvider(config.ipc_path))
        return cls(
            w3=w3,
            recovery_phrase=config.recovery_phrase,
            feed_id=parse_bytes32(config.feed_id),
            item_store_address=config.item_store_address,
            feed_items_address=config.feed_items_address,
            account_registry_address=config.account_registry_address,
            chain_id=config.chain_id,
            gas_price=config.gas_price,
            gas_limit=config.gas_limit,
        )

    @property
    def connected(self) -> bool:
        return self.calls is not None

    async def _block_number(self) -> int:
        return await asyncio.to_thread(lambda: self.w3.eth.block_number)

    async def _lookup_account_contract(self, controller_address: str) -> str:
        registry = self.w3.eth.contract(
            address=self.account_registry_address, abi=ACCOUNT_REGISTRY_ABI
        )
        return await asyncio.to_thread(
            registry.functions.get(controller_address).call
        )

    async def _query_new_item_id(self, flags_nonce: bytes) -> bytes:
        item_store = self.w3.eth.contract(
            address=self.item_store_address, abi=ITEM_STORE_ABI
        )
        return await asyncio.to_thread(
            item_store.functions.getNewItemId(self.account_contract, flags_nonce).call
        )

    @log_function(logger_name="chain")
    async def connect(self) -> None:
        """
        Derive the controller identity and resolve its account contract.

        Raises:
            AnchorError: If the node is unreachable, the phrase is invalid or the
                controller has no account contract.
        """
        if self.connected:
            return

        try:
            block = await self._block_number()
        except NODE_ERRORS as e:
            raise AnchorError(f"Ledger node unreachable: {e}") from e
        logger.info(f"Connected to ledger node at block {block}")

        self.controller = await asyncio.to_thread(
            derive_controller, self._recovery_phrase
        )
        logger.info(f"Controller address: {self.controller.address}")

        try:
            account_contract = await self._lookup_account_contract(
                self.controller.address
            )
        except NODE_ERRORS as e:
            raise AnchorError(f"Account registry lookup failed: {e}") from e
        if not account_contract or int(account_contract, 16) == 0:
            raise AnchorError(
                f"Controller {self.controller.address} has no account contract"
            )

        self.account_contract = Web3.to_checksum_address(account_contract)
        logger.info(f"Account contract: {self.account_contract}")
        self.calls = AnchorCallBuilder(
            self.w3,
            self.account_contract,
            self.item_store_address,
            self.feed_items_address,
        )

    async def _send_call(self, call: ContractCall) -> str:
        """Sign, broadcast and wait for one relayed call. Returns the tx hash."""
        try:
            nonce = await asyncio.to_thread(
                self.w3.eth.get_transaction_count, self.controller.address, "pending"
            )
            transaction = sign_anchor_transaction(
                self.controller,
                call,
                nonce=nonce,
                gas_price=self.gas_price,
                gas_limit=self.gas_limit,
                chain_id=self.chain_id,
            )
            tx_hash = await asyncio.to_thread(
                self.w3.eth.send_raw_transaction, transaction.signed_payload
            )
            logger.info(f"Broadcast {Web3.to_hex(tx_hash)} (nonce {nonce}), waiting for receipt")
            receipt = await asyncio.to_thread(
                self.w3.eth.wait_for_transaction_receipt,
                tx_hash,
                timeout=self.receipt_timeout,
            )
        except NODE_ERRORS as e:
            raise AnchorError(f"Transaction to {call.target} failed: {e}") from e

        if receipt["status"] != 1:
            raise AnchorError(
                f"Transaction {Web3.to_hex(tx_hash)} reverted in block {receipt['blockNumber']}"
            )
        logger.info(f"Transaction {Web3.to_hex(tx_hash)} mined in block {receipt['blockNumber']}")
        return Web3.to_hex(tx_hash)

    @log_function(logger_name="chain", log_execution_time=True)
    async def anchor(self, reference: ContentReference) -> AnchorResult:
        """
        Anchor reference as a new item of the feed.

        Each attempt uses a fresh flags nonce, so a retry after a partial
        failure creates a new item rather than resuming the old one.

        Raises:
            AnchorError: On any signing, broadcast or receipt failure.
        """
        await self.connect()

        flags_nonce = make_flags_nonce()
        calls = self.calls.build_anchor_calls(
            self.feed_id, flags_nonce, reference.raw_digest
        )

        try:
            item_id = "0x" + bytes(await self._query_new_item_id(flags_nonce)).hex()
        except NODE_ERRORS as e:
            raise AnchorError(f"Item id query failed: {e}") from e
        logger.info(f"Anchoring {reference.digest} as item {item_id}")

        hashes = []
        for call in calls:
            try:
                hashes.append(await self._send_call(call))
            except AnchorError:
                if hashes:
                    logger.warning(
                        f"Item {item_id} registered on the feed by {hashes[0]} "
                        "but never created; the registration is orphaned"
                    )
                raise
        return AnchorResult(item_id=item_id, transaction_hashes=hashes)
