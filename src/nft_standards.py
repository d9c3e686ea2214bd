"""
NFT standards table — ABI fragments, interface ids, sentinel addresses and
curated per-address data used by detection and pricing.

Everything here is data. Deployment-specific numbers (default fees, curated
overrides) live here so they can change without touching the cascade logic.
"""

# ── Interface ids (ERC-165) ───────────────────────────────────────────────────

INTERFACE_IDS = {
    "ERC165": "0x01ffc9a7",
    "ERC721": "0x80ac58cd",
    "ERC1155": "0xd9b67a26",
    "SignatureMintERC1155": "0x4e2312e0",
}

# ── Sentinels ─────────────────────────────────────────────────────────────────

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
NATIVE_TOKEN = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"  # drop-claim "pay in native currency"
ZERO_BYTES32 = "0x" + "00" * 32
MAX_UINT256 = 2**256 - 1

# ── Curated addresses ─────────────────────────────────────────────────────────

# Extension contracts we trust as the canonical claim extension
KNOWN_EXTENSION_ADDRESSES = [
    "0x26BBEA7803DcAc346D5F5f135b57Cf2c752A02bE",  # lazy payable claim
]

# Contracts whose probes are unreliable; classified without any remote call
CLASSIFICATION_OVERRIDES = {
    "0xcd0bafa3bba1b32869343fb69d2778daf4412181": {
        "provider": "thirdweb",
        "is_erc721": False,
        "is_erc1155": True,
    },
}

# Drop-claim ERC1155 contracts with a price known from a confirmed claim tx
DROP_PRICE_OVERRIDES = {
    "0xcd0bafa3bba1b32869343fb69d2778daf4412181": {
        "unit_price": 1_000_000_000_000_000_000,  # 1 xDAI
        "token_id": 0,
        "quantity_limit_per_wallet": 0,
    },
}

# ── Fallback constants (wei) ──────────────────────────────────────────────────

DEFAULT_EXTENSION_FEE = 500_000_000_000_000  # 0.0005 ETH
DEFAULT_SELF_DEPLOY_CREATOR_FEE = 100_000_000_000_000  # 0.0001 ETH per NFT
DEFAULT_SELF_DEPLOY_PROTOCOL_FEE = 100_000_000_000_000  # 0.0001 ETH per NFT


def fn(name, inputs=(), outputs=(), state="view"):
    """Build a single ABI function entry.

    inputs/outputs are (name, type) pairs or already-built component dicts.
    """
    def _param(p):
        if isinstance(p, dict):
            return p
        pname, ptype = p
        return {"name": pname, "type": ptype}

    return {
        "name": name,
        "type": "function",
        "inputs": [_param(p) for p in inputs],
        "outputs": [_param(p) for p in outputs],
        "stateMutability": state,
    }


def tuple_param(name, components):
    return {
        "name": name,
        "type": "tuple",
        "components": [{"name": n, "type": t} for n, t in components],
    }


# ── ERC-165 / ERC-20 ──────────────────────────────────────────────────────────

SUPPORTS_INTERFACE = fn("supportsInterface", [("interfaceId", "bytes4")], [("", "bool")])

ERC20_SYMBOL = fn("symbol", outputs=[("", "string")])
ERC20_DECIMALS = fn("decimals", outputs=[("", "uint8")])
ERC20_ALLOWANCE = fn("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")])
ERC20_BALANCE_OF = fn("balanceOf", [("owner", "address")], [("", "uint256")])

# ── Extension-claim (Manifold creator core + lazy claim extension) ────────────

GET_EXTENSIONS = fn("getExtensions", outputs=[("", "address[]")])

EXTENSION_CLAIM_FIELDS_ERC721 = [
    ("total", "uint32"),
    ("totalMax", "uint32"),
    ("walletMax", "uint32"),
    ("startDate", "uint48"),
    ("endDate", "uint48"),
    ("storageProtocol", "uint8"),
    ("contractVersion", "uint8"),
    ("identical", "bool"),
    ("merkleRoot", "bytes32"),
    ("location", "string"),
    ("cost", "uint256"),
    ("paymentReceiver", "address"),
    ("erc20", "address"),
    ("signingAddress", "address"),
]

EXTENSION_CLAIM_FIELDS_ERC1155 = [
    ("total", "uint32"),
    ("totalMax", "uint32"),
    ("walletMax", "uint32"),
    ("startDate", "uint48"),
    ("endDate", "uint48"),
    ("storageProtocol", "uint8"),
    ("merkleRoot", "bytes32"),
    ("location", "string"),
    ("tokenId", "uint256"),
    ("cost", "uint256"),
    ("paymentReceiver", "address"),
    ("erc20", "address"),
]


def _extension_abi(claim_fields):
    claim = tuple_param("claim", claim_fields)
    return [
        fn("MINT_FEE", outputs=[("", "uint256")]),
        fn(
            "getClaim",
            [("creatorContractAddress", "address"), ("instanceId", "uint256")],
            [claim],
        ),
        fn(
            "getClaimForToken",
            [("creatorContractAddress", "address"), ("tokenId", "uint256")],
            [("instanceId", "uint256"), claim],
        ),
        fn(
            "mint",
            [
                ("creatorContractAddress", "address"),
                ("instanceId", "uint256"),
                ("mintIndex", "uint32"),
                ("merkleProof", "bytes32[]"),
                ("mintFor", "address"),
            ],
            state="payable",
        ),
    ]


EXTENSION_ERC721_ABI = _extension_abi(EXTENSION_CLAIM_FIELDS_ERC721)
EXTENSION_ERC1155_ABI = _extension_abi(EXTENSION_CLAIM_FIELDS_ERC1155)

# ── Self-deploy (NFTs2Me) ─────────────────────────────────────────────────────

SELF_DEPLOY_VERSION = fn("n2mVersion", outputs=[("", "uint256")], state="pure")
SELF_DEPLOY_MINT_PRICE = fn("mintPrice", outputs=[("", "uint256")])
SELF_DEPLOY_MINT_FEE = fn("mintFee", [("amount", "uint256")], [("", "uint256")])
SELF_DEPLOY_PROTOCOL_FEE = fn("protocolFee", outputs=[("", "uint256")])
SELF_DEPLOY_MINT_ABI = [fn("mint", [("amount", "uint256")], state="payable")]

# ── Drop-claim (thirdweb) ─────────────────────────────────────────────────────

DROP_CONDITION_FIELDS = [
    ("startTimestamp", "uint256"),
    ("maxClaimableSupply", "uint256"),
    ("supplyClaimed", "uint256"),
    ("quantityLimitPerWallet", "uint256"),
    ("merkleRoot", "bytes32"),
    ("pricePerToken", "uint256"),
    ("currency", "address"),
    ("metadata", "string"),
]

# Per-token condition on single-phase ERC1155 drops has no wallet limit field
DROP_TOKEN_CONDITION_FIELDS = [
    ("startTimestamp", "uint256"),
    ("maxClaimableSupply", "uint256"),
    ("supplyClaimed", "uint256"),
    ("merkleRoot", "bytes32"),
    ("pricePerToken", "uint256"),
    ("currency", "address"),
    ("metadata", "string"),
]
DROP_TOKEN_CONDITION_PRICE_INDEX = 4

ALLOWLIST_PROOF = tuple_param(
    "_allowlistProof",
    [
        ("proof", "bytes32[]"),
        ("quantityLimitPerWallet", "uint256"),
        ("pricePerToken", "uint256"),
        ("currency", "address"),
    ],
)

DROP_CLAIM_CONDITION_RANGE = fn(
    "claimCondition", outputs=[("currentStartId", "uint256"), ("count", "uint256")]
)
DROP_SHARED_METADATA = fn(
    "sharedMetadata",
    outputs=[
        ("name", "string"),
        ("description", "string"),
        ("imageURI", "string"),
        ("animationURI", "string"),
    ],
)
DROP_TOKEN_CLAIM_CONDITION = fn(
    "claimCondition", [("tokenId", "uint256")], DROP_TOKEN_CONDITION_FIELDS
)

DROP_ERC721_ABI = [
    DROP_CLAIM_CONDITION_RANGE,
    fn(
        "getClaimConditionById",
        [("_conditionId", "uint256")],
        [tuple_param("condition", DROP_CONDITION_FIELDS)],
    ),
    fn(
        "claim",
        [
            ("_receiver", "address"),
            ("_quantity", "uint256"),
            ("_currency", "address"),
            ("_pricePerToken", "uint256"),
            ALLOWLIST_PROOF,
            ("_data", "bytes"),
        ],
        state="payable",
    ),
]

DROP_ERC1155_ABI = [
    DROP_TOKEN_CLAIM_CONDITION,
    fn(
        "claim",
        [
            ("_receiver", "address"),
            ("_tokenId", "uint256"),
            ("_quantity", "uint256"),
            ("_currency", "address"),
            ("_pricePerToken", "uint256"),
            ALLOWLIST_PROOF,
            ("_data", "bytes"),
        ],
        state="payable",
    ),
]

SIGNATURE_VERIFY_REQUEST = [
    ("to", "address"),
    ("tokenId", "uint256"),
    ("quantity", "uint256"),
    ("pricePerToken", "uint256"),
    ("currency", "address"),
    ("validityStartTimestamp", "uint128"),
    ("validityEndTimestamp", "uint128"),
    ("uid", "bytes32"),
]

SIGNATURE_MINT_REQUEST = [
    ("to", "address"),
    ("royaltyRecipient", "address"),
    ("royaltyBps", "uint256"),
    ("primarySaleRecipient", "address"),
    ("tokenId", "uint256"),
    ("uri", "string"),
    ("quantity", "uint256"),
    ("pricePerToken", "uint256"),
    ("currency", "address"),
    ("validityStartTimestamp", "uint128"),
    ("validityEndTimestamp", "uint128"),
    ("uid", "bytes32"),
]

# ── Unclassified (generic price accessors) ────────────────────────────────────

GENERIC_PRICE_NAMES = ["mintPrice", "price", "MINT_PRICE", "getMintPrice"]
GENERIC_PRICE_ABI = [fn(name, outputs=[("", "uint256")]) for name in GENERIC_PRICE_NAMES]
GENERIC_MINT_ABI = [fn("mint", [("amount", "uint256")], state="payable")]


def find_fn(abi, name):
    """Return the first function entry called `name` in `abi`, or None."""
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == name:
            return entry
    return None


def zero_value(abi_type):
    """Zero value for a scalar ABI type, used to fill capability probes."""
    if abi_type == "address":
        return ZERO_ADDRESS
    if abi_type == "bool":
        return False
    if abi_type == "string":
        return ""
    if abi_type == "bytes":
        return b""
    if abi_type.startswith("bytes"):
        return b"\x00" * int(abi_type[5:])
    if abi_type.endswith("[]"):
        return []
    return 0


def zero_struct(components):
    """Zero-valued struct (as a dict keyed by component name)."""
    return {name: zero_value(ptype) for name, ptype in components}


def is_zero_root(merkle_root):
    """True when a merkle root means "no proof required"."""
    if merkle_root is None:
        return True
    if isinstance(merkle_root, (bytes, bytearray)):
        return not any(merkle_root)
    text = str(merkle_root).lower()
    if text.startswith("0x"):
        text = text[2:]
    return text.strip("0") == ""
