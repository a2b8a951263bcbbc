"""Controller identity derived from the recovery phrase; nothing is persisted."""

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import ValidationError

from feedpub.errors import AnchorError


# BIP-44 path with the MIX coin type
DERIVATION_PATH = "m/44'/76'/0'/0/0"

Account.enable_unaudited_hdwallet_features()


def derive_controller(recovery_phrase: str, path: str = DERIVATION_PATH) -> LocalAccount:
    """
    Derive the controller key pair from a BIP-39 recovery phrase.

    Raises:
        AnchorError: If the phrase is missing or not a valid mnemonic.
    """
    if not recovery_phrase:
        raise AnchorError("No recovery phrase configured")
    try:
        return Account.from_mnemonic(recovery_phrase.strip(), account_path=path)
    except (ValidationError, ValueError):
        # The library message echoes the phrase; keep it out of logs
        raise AnchorError("Cannot derive controller key: invalid recovery phrase") from None
