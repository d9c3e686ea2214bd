"""
Provider registry — one immutable config template per provider.

Each provider is its own ProviderConfig subclass owning its mint-argument
builder and value rule, so callers dispatch on the object rather than on a
provider-name switch. get_provider_config() specialises a template with what
detection and pricing discovered (ABI for the detected standard, claim
condition, curated price override). Templates are frozen and never mutated;
specialisation always goes through model_copy().
"""

from types import MappingProxyType
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from mint_types import (
    ClaimCondition,
    ClaimRecord,
    ContractClassification,
    MintRequestParams,
    Provider,
)
from nft_standards import (
    DROP_ERC721_ABI,
    DROP_ERC1155_ABI,
    DROP_PRICE_OVERRIDES,
    EXTENSION_ERC721_ABI,
    EXTENSION_ERC1155_ABI,
    GENERIC_MINT_ABI,
    GENERIC_PRICE_ABI,
    GENERIC_PRICE_NAMES,
    KNOWN_EXTENSION_ADDRESSES,
    MAX_UINT256,
    NATIVE_TOKEN,
    SELF_DEPLOY_MINT_ABI,
    SELF_DEPLOY_MINT_FEE,
    ZERO_ADDRESS,
)

REQUIRED_PARAMS = ("contract_address", "chain_id")


def is_native_currency(currency: Optional[str]) -> bool:
    return not currency or currency.lower() == NATIVE_TOKEN.lower()


class ProviderConfig(BaseModel):
    """Template shared by every provider."""

    model_config = ConfigDict(frozen=True)

    provider: Provider
    mint_abi: tuple[Any, ...]
    mint_function: str = "mint"
    price_abi: tuple[Any, ...]
    price_function_names: tuple[str, ...]
    price_requires_amount: bool = False
    requires_instance_id: bool = False
    required_params: tuple[str, ...] = REQUIRED_PARAMS
    extension_addresses: tuple[str, ...] = ()
    supports_erc20: bool = False

    def derive(
        self,
        classification: ContractClassification,
        params: Optional[MintRequestParams] = None,
    ) -> "ProviderConfig":
        return self.model_copy()

    def build_args(self, params: MintRequestParams) -> list:
        return [params.amount]

    def calculate_value(self, price: int, params: MintRequestParams) -> int:
        return price * params.amount


class ExtensionClaimConfig(ProviderConfig):
    """Claim extension minting: mint() on the extension, msg.value carries the fee."""

    extension_address: Optional[str] = None
    claim: Optional[ClaimRecord] = None

    def derive(self, classification, params=None):
        # 1155-only contracts get the 12-field claim layout; everything else 14
        if classification.is_erc1155 and not classification.is_erc721:
            abi = tuple(EXTENSION_ERC1155_ABI)
        else:
            abi = tuple(EXTENSION_ERC721_ABI)
        return self.model_copy(
            update={
                "mint_abi": abi,
                "price_abi": abi,
                "extension_address": classification.extension_address,
                "claim": classification.claim,
            }
        )

    def build_args(self, params):
        instance_id = params.instance_id
        if not instance_id and self.claim is not None and self.claim.instance_id is not None:
            instance_id = str(self.claim.instance_id)
        return [
            params.contract_address,
            int(instance_id or "0"),
            int(params.token_id or "0"),
            list(params.merkle_proof),
            params.recipient,
        ]

    def calculate_value(self, price, params):
        # price is the protocol fee; a native-currency claim adds its cost
        if self.claim is not None and self.claim.erc20.lower() == ZERO_ADDRESS:
            return price + self.claim.cost
        return price


class SelfDeployConfig(ProviderConfig):
    """mint(amount) payable with price per token."""


class DropClaimConfig(ProviderConfig):
    """claim() with currency/price taken from the active claim condition."""

    is_erc1155: bool = False
    claim_condition: Optional[ClaimCondition] = None
    price_override: Optional[dict] = None

    def derive(self, classification, params=None):
        update: dict = {"claim_condition": classification.claim_condition}
        if classification.is_erc1155:
            update.update(
                is_erc1155=True,
                mint_abi=tuple(DROP_ERC1155_ABI),
                price_abi=tuple(DROP_ERC1155_ABI),
                price_function_names=("claimCondition",),
            )
            if params is not None:
                update["price_override"] = DROP_PRICE_OVERRIDES.get(params.contract_address.lower())
        return self.model_copy(update=update)

    def _allowlist_proof(self, params, quantity_limit=MAX_UINT256):
        return {
            "proof": list(params.merkle_proof),
            "quantityLimitPerWallet": quantity_limit,
            "pricePerToken": MAX_UINT256,
            "currency": ZERO_ADDRESS,
        }

    def _currency_and_price(self):
        if self.claim_condition is None:
            return NATIVE_TOKEN, 0
        return (
            self.claim_condition.currency or NATIVE_TOKEN,
            self.claim_condition.price_per_token,
        )

    def build_args(self, params):
        if self.price_override is not None:
            return [
                params.recipient,
                self.price_override["token_id"],
                params.amount,
                NATIVE_TOKEN,
                self.price_override["unit_price"],
                self._allowlist_proof(params, self.price_override["quantity_limit_per_wallet"]),
                b"",
            ]
        currency, price = self._currency_and_price()
        if self.is_erc1155:
            return [
                params.recipient,
                int(params.token_id or "1"),
                params.amount,
                currency,
                price,
                self._allowlist_proof(params),
                b"",
            ]
        return [
            params.recipient or params.contract_address,
            params.amount,
            currency,
            price,
            self._allowlist_proof(params),
            b"",
        ]

    def calculate_value(self, price, params):
        if self.price_override is not None:
            return self.price_override["unit_price"] * params.amount
        currency, _ = self._currency_and_price()
        if is_native_currency(currency):
            return price * params.amount
        return 0


class GenericConfig(ProviderConfig):
    """Best-effort mint(amount) for contracts no heuristic recognised."""


# ── Templates ─────────────────────────────────────────────────────────────────

PROVIDER_CONFIGS = MappingProxyType(
    {
        Provider.EXTENSION_CLAIM: ExtensionClaimConfig(
            provider=Provider.EXTENSION_CLAIM,
            mint_abi=tuple(EXTENSION_ERC721_ABI),
            price_abi=tuple(EXTENSION_ERC721_ABI),
            price_function_names=("MINT_FEE",),
            requires_instance_id=True,
            extension_addresses=tuple(KNOWN_EXTENSION_ADDRESSES),
            supports_erc20=True,
        ),
        Provider.SELF_DEPLOY: SelfDeployConfig(
            provider=Provider.SELF_DEPLOY,
            mint_abi=tuple(SELF_DEPLOY_MINT_ABI),
            price_abi=(SELF_DEPLOY_MINT_FEE,),
            price_function_names=("mintFee",),
            price_requires_amount=True,
        ),
        Provider.DROP_CLAIM: DropClaimConfig(
            provider=Provider.DROP_CLAIM,
            mint_abi=tuple(DROP_ERC721_ABI),
            mint_function="claim",
            price_abi=tuple(DROP_ERC721_ABI),
            price_function_names=("claimCondition", "getClaimConditionById"),
            supports_erc20=True,
        ),
        Provider.UNCLASSIFIED: GenericConfig(
            provider=Provider.UNCLASSIFIED,
            mint_abi=tuple(GENERIC_MINT_ABI),
            price_abi=tuple(GENERIC_PRICE_ABI),
            price_function_names=tuple(GENERIC_PRICE_NAMES),
        ),
    }
)


def get_provider_config(
    provider: Provider,
    classification: Optional[ContractClassification] = None,
    params: Optional[MintRequestParams] = None,
) -> ProviderConfig:
    """Template for `provider`, specialised with classification data when given."""
    base = PROVIDER_CONFIGS.get(provider, PROVIDER_CONFIGS[Provider.UNCLASSIFIED])
    if classification is None:
        return base
    return base.derive(classification, params)
