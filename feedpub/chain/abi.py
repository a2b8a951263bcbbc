"""
Minimal ABI fragments for the contracts the publisher talks to.

Only the functions the pipeline calls are declared.
"""


def _function(name, inputs, outputs=(), mutability="nonpayable"):
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
        "stateMutability": mutability,
    }


# Maps a controller address to the account contract it owns
ACCOUNT_REGISTRY_ABI = [
    _function("get", [("controller", "address")], [("", "address")], "view"),
]

# The controller's own account contract; forwards calls on its behalf
ACCOUNT_ABI = [
    _function("sendCallNoReturn", [("to", "address"), ("data", "bytes")]),
]

# Item store addressed by IPFS sha256 digests
ITEM_STORE_ABI = [
    _function(
        "getNewItemId",
        [("owner", "address"), ("nonce", "bytes32")],
        [("itemId", "bytes32")],
        "view",
    ),
    _function(
        "create",
        [("flagsNonce", "bytes32"), ("ipfsHash", "bytes32")],
        [("itemId", "bytes32")],
    ),
]

# Parent/child links between items; the feed head item is the parent
FEED_ITEMS_ABI = [
    _function(
        "addChild",
        [("itemId", "bytes32"), ("childItemStore", "address"), ("childNonce", "bytes32")],
    ),
]
