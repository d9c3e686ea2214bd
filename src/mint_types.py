"""
Data model for mint detection and pricing.

Every record here is a pydantic model. Records produced by the engine
(classification, claim data, quotes) are frozen; updates go through
model_copy(update=...) so the caller's value is never changed underneath it.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nft_standards import ZERO_BYTES32


class Provider(str, Enum):
    """Minting conventions the engine knows how to price."""

    EXTENSION_CLAIM = "manifold"
    SELF_DEPLOY = "nfts2me"
    DROP_CLAIM = "thirdweb"
    UNCLASSIFIED = "generic"


def _hex(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


# ── Errors ────────────────────────────────────────────────────────────────────


class MintEngineError(Exception):
    """Base class for errors raised inside the engine."""


class ConfigInconsistency(MintEngineError):
    """On-chain data contradicts itself; aborts the current pricing branch.

    Carries the classification as it stood when the branch gave up, so the
    branch fallback keeps whatever was already discovered.
    """

    def __init__(self, message: str, classification: Optional["ContractClassification"] = None):
        super().__init__(message)
        self.classification = classification


class UnknownChainError(MintEngineError):
    """No RPC endpoint is configured for the requested chain id."""


# ── Call results ──────────────────────────────────────────────────────────────


class CallResult(BaseModel):
    """Outcome of one read-only contract call."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "CallResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "CallResult":
        return cls(ok=False, error=error)


# ── Request ───────────────────────────────────────────────────────────────────


class MintRequestParams(BaseModel):
    """What the caller knows about the mint it wants to make."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="forbid",
    )

    contract_address: str = Field(..., description="NFT contract address (0x...)")
    chain_id: int = Field(..., description="EVM chain id, e.g. 8453 for Base")
    provider: Optional[Provider] = Field(
        None, description="Skip detection and use this provider's conventions"
    )
    recipient: Optional[str] = Field(None, description="Wallet that receives the NFT")
    amount: int = Field(1, ge=1, description="Number of tokens to mint")
    token_id: Optional[str] = Field(None, description="Token id, as given by the caller")
    instance_id: Optional[str] = Field(
        None, description="Claim instance id (extension-claim contracts)"
    )
    merkle_proof: list[str] = Field(default_factory=list)

    @field_validator("token_id", "instance_id", mode="before")
    @classmethod
    def ids_as_text(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)


# ── Claim data ────────────────────────────────────────────────────────────────


class ClaimCondition(BaseModel):
    """Active drop-claim condition (eligibility window + price)."""

    model_config = ConfigDict(frozen=True)

    condition_id: int = Field(0, ge=0)
    start_timestamp: int = Field(0, ge=0)
    max_claimable_supply: int = Field(0, ge=0)
    supply_claimed: int = Field(0, ge=0)
    quantity_limit_per_wallet: int = Field(0, ge=0)
    merkle_root: str = ZERO_BYTES32
    price_per_token: int = Field(0, ge=0)
    currency: str
    metadata: str = ""

    @field_validator("merkle_root", mode="before")
    @classmethod
    def root_as_hex(cls, v):
        return _hex(v)


class ClaimRecord(BaseModel):
    """Extension-claim instance record."""

    model_config = ConfigDict(frozen=True)

    instance_id: Optional[int] = Field(None, ge=0)
    cost: int = Field(..., ge=0)
    erc20: str
    start_date: int = Field(0, ge=0)
    end_date: int = Field(0, ge=0)
    wallet_max: int = Field(0, ge=0)
    merkle_root: str = ZERO_BYTES32
    total: Optional[int] = Field(None, ge=0)
    total_max: Optional[int] = Field(None, ge=0)

    @field_validator("merkle_root", mode="before")
    @classmethod
    def root_as_hex(cls, v):
        return _hex(v)


class ContractClassification(BaseModel):
    """Which provider a contract follows and what was learned while pricing it."""

    model_config = ConfigDict(frozen=True)

    provider: Provider = Provider.UNCLASSIFIED
    is_erc721: bool = False
    is_erc1155: bool = False
    extension_address: Optional[str] = None
    has_extension: bool = False
    claim_condition: Optional[ClaimCondition] = None
    claim: Optional[ClaimRecord] = None

    @property
    def standard(self) -> str:
        if self.is_erc721:
            return "ERC721"
        if self.is_erc1155:
            return "ERC1155"
        return "unknown"


# ── Pricing ───────────────────────────────────────────────────────────────────


class Erc20Details(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    symbol: str
    decimals: int = Field(..., ge=0, le=255)
    allowance: Optional[int] = None
    balance: Optional[int] = None


class PriceQuote(BaseModel):
    """Native-currency cost of a mint plus the ERC20 leg when there is one.

    unit_price is the figure the winning pricing pattern reported: a per-token
    price for accessors, the protocol fee for extension claims and the
    aggregate creator fee for the self-deploy fee pair.
    """

    model_config = ConfigDict(frozen=True)

    unit_price: int = 0
    total_cost: int = 0
    erc20: Optional[Erc20Details] = None
    source: str = "default"

    @classmethod
    def free(cls, source: str = "free") -> "PriceQuote":
        return cls(unit_price=0, total_cost=0, source=source)


class PricingResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    quote: PriceQuote
    classification: ContractClassification


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    missing_params: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
