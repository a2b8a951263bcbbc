"""
Ledger side of the publisher.

- abi.py: ABI fragments of the registry, account, item store and feed contracts
- identity.py: Controller key derivation from the recovery phrase
- calls.py: Relayed contract call encoding
- publisher.py: Signing, broadcast and receipt handling
"""

from .calls import (
    AnchorCallBuilder,
    ContractCall,
    ITEM_FLAGS,
    make_flags_nonce,
    parse_bytes32,
    sha256_from_multihash,
)
from .identity import DERIVATION_PATH, derive_controller
from .publisher import (
    AnchorResult,
    AnchorTransaction,
    LedgerAnchorPublisher,
    sign_anchor_transaction,
)

__all__ = [
    "AnchorCallBuilder",
    "ContractCall",
    "ITEM_FLAGS",
    "make_flags_nonce",
    "parse_bytes32",
    "sha256_from_multihash",
    "DERIVATION_PATH",
    "derive_controller",
    "AnchorResult",
    "AnchorTransaction",
    "LedgerAnchorPublisher",
    "sign_anchor_transaction",
]
