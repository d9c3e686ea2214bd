"""
Price resolution — per-provider pricing protocols.

resolve() always returns a PricingResult: the quote plus the classification
updated with whatever claim data was discovered (a new value; the one passed
in is left alone). Read failures move to the next pattern; only a
ConfigInconsistency aborts a branch, and it is turned into that branch's
terminal fallback right here.

Terminal fallbacks:
  extension-claim  fee-only retry, then DEFAULT_EXTENSION_FEE
  self-deploy      DEFAULT_SELF_DEPLOY_* fees per token
  drop-claim       free
  unclassified     free
"""

import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from call_gateway import CallGateway
from mint_types import (
    CallResult,
    ClaimCondition,
    ClaimRecord,
    ConfigInconsistency,
    ContractClassification,
    Erc20Details,
    MintRequestParams,
    PriceQuote,
    PricingResult,
    Provider,
)
from nft_standards import (
    DEFAULT_EXTENSION_FEE,
    DEFAULT_SELF_DEPLOY_CREATOR_FEE,
    DEFAULT_SELF_DEPLOY_PROTOCOL_FEE,
    DROP_CLAIM_CONDITION_RANGE,
    DROP_CONDITION_FIELDS,
    DROP_ERC721_ABI,
    DROP_TOKEN_CLAIM_CONDITION,
    DROP_TOKEN_CONDITION_FIELDS,
    DROP_TOKEN_CONDITION_PRICE_INDEX,
    ERC20_ALLOWANCE,
    ERC20_BALANCE_OF,
    ERC20_DECIMALS,
    ERC20_SYMBOL,
    EXTENSION_CLAIM_FIELDS_ERC721,
    EXTENSION_CLAIM_FIELDS_ERC1155,
    EXTENSION_ERC721_ABI,
    EXTENSION_ERC1155_ABI,
    GENERIC_PRICE_ABI,
    NATIVE_TOKEN,
    SELF_DEPLOY_MINT_FEE,
    SELF_DEPLOY_MINT_PRICE,
    SELF_DEPLOY_PROTOCOL_FEE,
    ZERO_ADDRESS,
    ZERO_BYTES32,
    find_fn,
)
from provider_configs import get_provider_config, is_native_currency

logger = logging.getLogger(__name__)

CLAIM_REQUIRED_FIELDS = ("cost", "erc20", "startDate", "endDate", "walletMax")


def _is_uint(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _uint_or_zero(result: CallResult) -> int:
    return result.value if result.ok and _is_uint(result.value) else 0


def _as_int(text: Optional[str]) -> Optional[int]:
    if text is None or not text.isdigit():
        return None
    return int(text)


def _named(value, fields) -> Optional[dict]:
    """Map a decoded struct onto its ABI component names."""
    if isinstance(value, dict):
        return value
    if hasattr(value, "_asdict"):
        return dict(value._asdict())
    if isinstance(value, (list, tuple)) and len(value) == len(fields):
        return {name: v for (name, _), v in zip(fields, value)}
    return None


class PriceResolver:
    def __init__(self, gateway: CallGateway):
        self.gateway = gateway

    async def resolve(
        self, params: MintRequestParams, classification: ContractClassification
    ) -> PricingResult:
        handlers = {
            Provider.EXTENSION_CLAIM: self._extension_claim,
            Provider.SELF_DEPLOY: self._self_deploy,
            Provider.DROP_CLAIM: self._drop_claim,
            Provider.UNCLASSIFIED: self._accessor_loop,
        }
        try:
            result = await handlers[classification.provider](params, classification)
        except ConfigInconsistency as e:
            logger.warning("%s pricing aborted: %s", classification.provider.value, e)
            return await self._fallback(params, e.classification or classification)
        except Exception:
            logger.exception("%s pricing failed unexpectedly", classification.provider.value)
            return await self._fallback(params, classification)
        logger.info(
            "%s priced via %s: total=%s",
            params.contract_address,
            result.quote.source,
            result.quote.total_cost,
        )
        return result

    async def _fallback(self, params, classification) -> PricingResult:
        if classification.provider == Provider.EXTENSION_CLAIM and classification.extension_address:
            return await self._extension_fee_only(classification)
        if classification.provider == Provider.SELF_DEPLOY:
            return self._self_deploy_defaults(params, classification)
        return PricingResult(quote=PriceQuote.free("fallback"), classification=classification)

    # ── ERC20 leg ─────────────────────────────────────────────────────────────

    async def _erc20_details(
        self,
        currency: str,
        params: MintRequestParams,
        spender: str,
        classification: ContractClassification,
    ) -> Erc20Details:
        calls = [
            (currency, ERC20_SYMBOL, "symbol"),
            (currency, ERC20_DECIMALS, "decimals"),
        ]
        if params.recipient:
            calls.append((currency, ERC20_ALLOWANCE, "allowance", [params.recipient, spender]))
            calls.append((currency, ERC20_BALANCE_OF, "balanceOf", [params.recipient]))
        results = await self.gateway.execute_many(calls)
        symbol, decimals = results[0], results[1]

        if not symbol.ok or not decimals.ok:
            raise ConfigInconsistency(f"ERC20 {currency} metadata unreadable", classification)
        if not _is_uint(decimals.value) or decimals.value > 255:
            raise ConfigInconsistency(
                f"Invalid ERC20 decimals for {currency}: {decimals.value!r}", classification
            )

        allowance = balance = None
        if params.recipient:
            allowance = _uint_or_zero(results[2])
            balance = _uint_or_zero(results[3])
        return Erc20Details(
            address=currency,
            symbol=str(symbol.value),
            decimals=decimals.value,
            allowance=allowance,
            balance=balance,
        )

    # ── Extension claim ───────────────────────────────────────────────────────

    async def _call_extension(self, classification, function_name, args=()):
        """Call the extension with the detected standard's ABI, then the other one.

        Returns (result, claim_fields) for the last ABI tried.
        """
        shapes = [
            (EXTENSION_ERC721_ABI, EXTENSION_CLAIM_FIELDS_ERC721),
            (EXTENSION_ERC1155_ABI, EXTENSION_CLAIM_FIELDS_ERC1155),
        ]
        if not classification.is_erc721:
            shapes.reverse()
        for abi, fields in shapes:
            result = await self.gateway.execute(
                classification.extension_address, abi, function_name, args
            )
            if result.ok:
                return result, fields
            logger.debug("%s failed with %d-field claim ABI", function_name, len(fields))
        return result, fields

    async def _extension_claim(self, params, classification) -> PricingResult:
        if not classification.extension_address:
            return await self._accessor_loop(params, classification)

        instance_id = _as_int(params.instance_id)
        token_id = _as_int(params.token_id)
        claim_fn = None
        if instance_id is not None:
            claim_fn, claim_args = "getClaim", [params.contract_address, instance_id]
        elif token_id is not None:
            claim_fn, claim_args = "getClaimForToken", [params.contract_address, token_id]

        calls = [self._call_extension(classification, "MINT_FEE")]
        if claim_fn:
            calls.append(self._call_extension(classification, claim_fn, claim_args))
        results = await asyncio.gather(*calls)

        fee_result, _ = results[0]
        claim_result, claim_fields = results[1] if claim_fn else (None, None)
        claim_ok = claim_result is not None and claim_result.ok

        if not fee_result.ok and not claim_ok:
            logger.warning("extension %s unreachable, retrying fee only", classification.extension_address)
            return await self._extension_fee_only(classification)

        fee = fee_result.value if fee_result.ok and _is_uint(fee_result.value) else 0
        fee_only = PricingResult(
            quote=PriceQuote(unit_price=fee, total_cost=fee, source="extension-fee"),
            classification=classification,
        )
        if not claim_ok:
            return fee_only

        raw = claim_result.value
        if claim_fn == "getClaimForToken" and isinstance(raw, (list, tuple)) and len(raw) == 2:
            found_instance, raw = raw
            if instance_id is None and _is_uint(found_instance):
                instance_id = found_instance

        record = _named(raw, claim_fields)
        if record is None or any(f not in record for f in CLAIM_REQUIRED_FIELDS):
            logger.warning("claim data for %s is missing required fields: %r", params.contract_address, raw)
            return fee_only
        if not _is_uint(record["cost"]):
            logger.warning("claim cost is not numeric: %r", record["cost"])
            return fee_only

        optional = {"merkle_root": record.get("merkleRoot"), "total": record.get("total"),
                    "total_max": record.get("totalMax")}
        try:
            claim = ClaimRecord(
                instance_id=instance_id,
                cost=record["cost"],
                erc20=record["erc20"],
                start_date=record["startDate"],
                end_date=record["endDate"],
                wallet_max=record["walletMax"],
                **{k: v for k, v in optional.items() if v is not None},
            )
        except ValidationError as e:
            logger.warning("claim data rejected: %s", e)
            return fee_only

        classification = classification.model_copy(update={"claim": claim})
        config = get_provider_config(Provider.EXTENSION_CLAIM, classification, params)

        erc20 = None
        if claim.erc20.lower() != ZERO_ADDRESS:
            erc20 = await self._erc20_details(
                claim.erc20, params, classification.extension_address, classification
            )
        return PricingResult(
            quote=PriceQuote(
                unit_price=fee,
                total_cost=config.calculate_value(fee, params),
                erc20=erc20,
                source="extension-claim",
            ),
            classification=classification,
        )

    async def _extension_fee_only(self, classification) -> PricingResult:
        result, _ = await self._call_extension(classification, "MINT_FEE")
        if result.ok and _is_uint(result.value):
            quote = PriceQuote(unit_price=result.value, total_cost=result.value, source="extension-fee-only")
        else:
            logger.warning("using default extension fee of %s wei", DEFAULT_EXTENSION_FEE)
            quote = PriceQuote(
                unit_price=DEFAULT_EXTENSION_FEE,
                total_cost=DEFAULT_EXTENSION_FEE,
                source="extension-default-fee",
            )
        return PricingResult(quote=quote, classification=classification)

    # ── Self deploy ───────────────────────────────────────────────────────────

    async def _self_deploy(self, params, classification) -> PricingResult:
        address = params.contract_address
        config = get_provider_config(Provider.SELF_DEPLOY, classification, params)

        price = await self.gateway.execute(address, SELF_DEPLOY_MINT_PRICE, "mintPrice")
        if price.ok and _is_uint(price.value):
            return PricingResult(
                quote=PriceQuote(
                    unit_price=price.value,
                    total_cost=config.calculate_value(price.value, params),
                    source="self-deploy-mintPrice",
                ),
                classification=classification,
            )

        creator, protocol = await self.gateway.execute_many(
            [
                (address, SELF_DEPLOY_MINT_FEE, "mintFee", [params.amount]),
                (address, SELF_DEPLOY_PROTOCOL_FEE, "protocolFee"),
            ]
        )
        if creator.ok and protocol.ok and _is_uint(creator.value) and _is_uint(protocol.value):
            # mintFee(amount) already covers every token; protocolFee is per token
            return PricingResult(
                quote=PriceQuote(
                    unit_price=creator.value,
                    total_cost=creator.value + protocol.value * params.amount,
                    source="self-deploy-fees",
                ),
                classification=classification,
            )

        return self._self_deploy_defaults(params, classification)

    def _self_deploy_defaults(self, params, classification) -> PricingResult:
        amount = params.amount
        return PricingResult(
            quote=PriceQuote(
                unit_price=DEFAULT_SELF_DEPLOY_CREATOR_FEE * amount,
                total_cost=(DEFAULT_SELF_DEPLOY_CREATOR_FEE + DEFAULT_SELF_DEPLOY_PROTOCOL_FEE) * amount,
                source="self-deploy-default-fees",
            ),
            classification=classification,
        )

    # ── Drop claim ────────────────────────────────────────────────────────────

    async def _drop_claim(self, params, classification) -> PricingResult:
        if classification.is_erc1155:
            return await self._drop_claim_1155(params, classification)
        return await self._drop_claim_721(params, classification)

    async def _drop_claim_1155(self, params, classification) -> PricingResult:
        address = params.contract_address
        config = get_provider_config(Provider.DROP_CLAIM, classification, params)

        if config.price_override is not None:
            price = config.price_override["unit_price"]
            return PricingResult(
                quote=PriceQuote(
                    unit_price=price,
                    total_cost=config.calculate_value(price, params),
                    source="drop-claim-override",
                ),
                classification=classification,
            )

        # Zero answers fall through; only a positive price counts as found
        for name in ("price", "mintPrice"):
            result = await self.gateway.execute(address, find_fn(GENERIC_PRICE_ABI, name), name)
            if result.ok and _is_uint(result.value) and result.value > 0:
                condition = ClaimCondition(price_per_token=result.value, currency=NATIVE_TOKEN)
                return await self._drop_claim_priced(params, classification, condition, f"drop-claim-{name}")

        result = await self.gateway.execute(address, DROP_TOKEN_CLAIM_CONDITION, "claimCondition", [0])
        if result.ok and isinstance(result.value, (list, tuple)) and len(result.value) > DROP_TOKEN_CONDITION_PRICE_INDEX:
            price = result.value[DROP_TOKEN_CONDITION_PRICE_INDEX]
            if _is_uint(price) and price > 0:
                condition = self._token_condition(result.value, price)
                return await self._drop_claim_priced(
                    params, classification, condition, "drop-claim-token-condition"
                )

        logger.info("%s: no ERC1155 drop price found, treating as free", address)
        return PricingResult(quote=PriceQuote.free("drop-claim-free"), classification=classification)

    def _token_condition(self, raw, price: int) -> ClaimCondition:
        """Condition for token 0; only price and currency are required to parse."""
        fields = _named(raw, DROP_TOKEN_CONDITION_FIELDS) or {}
        currency = fields.get("currency")
        if not isinstance(currency, str) or not currency:
            currency = NATIVE_TOKEN
        try:
            return ClaimCondition(
                start_timestamp=fields.get("startTimestamp", 0),
                max_claimable_supply=fields.get("maxClaimableSupply", 0),
                supply_claimed=fields.get("supplyClaimed", 0),
                merkle_root=fields.get("merkleRoot") or ZERO_BYTES32,
                price_per_token=price,
                currency=currency,
                metadata=fields.get("metadata") or "",
            )
        except ValidationError as e:
            logger.warning("token claim condition only partly readable: %s", e)
            return ClaimCondition(price_per_token=price, currency=currency)

    async def _drop_claim_priced(self, params, classification, condition, source) -> PricingResult:
        """Attach the discovered condition so mint args and msg.value agree."""
        classification = classification.model_copy(update={"claim_condition": condition})
        config = get_provider_config(Provider.DROP_CLAIM, classification, params)
        price = condition.price_per_token

        if not is_native_currency(condition.currency):
            erc20 = await self._erc20_details(
                condition.currency, params, params.contract_address, classification
            )
            return PricingResult(
                quote=PriceQuote(unit_price=price, total_cost=0, erc20=erc20, source=f"{source}-erc20"),
                classification=classification,
            )
        return PricingResult(
            quote=PriceQuote(
                unit_price=price,
                total_cost=config.calculate_value(price, params),
                source=source,
            ),
            classification=classification,
        )

    async def _drop_claim_721(self, params, classification) -> PricingResult:
        address = params.contract_address
        free = PricingResult(quote=PriceQuote.free("drop-claim-free"), classification=classification)

        window = await self.gateway.execute(address, DROP_CLAIM_CONDITION_RANGE, "claimCondition")
        value = window.value
        if not window.ok or not isinstance(value, (list, tuple)) or len(value) != 2:
            logger.warning("%s: invalid claimCondition response", address)
            return free
        start_id, count = value
        if not _is_uint(start_id) or not _is_uint(count):
            return free
        if count == 0:
            return free

        condition_id = start_id + count - 1
        result = await self.gateway.execute(
            address,
            find_fn(DROP_ERC721_ABI, "getClaimConditionById"),
            "getClaimConditionById",
            [condition_id],
        )
        fields = _named(result.value, DROP_CONDITION_FIELDS) if result.ok else None
        if fields is None:
            logger.warning("%s: claim condition %s unreadable", address, condition_id)
            return free

        try:
            condition = ClaimCondition(
                condition_id=condition_id,
                start_timestamp=fields["startTimestamp"],
                max_claimable_supply=fields["maxClaimableSupply"],
                supply_claimed=fields["supplyClaimed"],
                quantity_limit_per_wallet=fields["quantityLimitPerWallet"],
                merkle_root=fields["merkleRoot"],
                price_per_token=fields["pricePerToken"],
                currency=fields["currency"],
                metadata=fields.get("metadata") or "",
            )
        except (KeyError, ValidationError) as e:
            logger.warning("%s: claim condition %s rejected: %s", address, condition_id, e)
            return free

        return await self._drop_claim_priced(params, classification, condition, "drop-claim")

    # ── Accessor loop (unclassified) ──────────────────────────────────────────

    async def _accessor_loop(self, params, classification) -> PricingResult:
        config = get_provider_config(classification.provider, classification, params)
        args = [params.amount] if config.price_requires_amount else []
        for name in config.price_function_names:
            abi = find_fn(config.price_abi, name)
            if abi is None:
                continue
            result = await self.gateway.execute(params.contract_address, abi, name, args)
            if result.ok and _is_uint(result.value):
                return PricingResult(
                    quote=PriceQuote(
                        unit_price=result.value,
                        total_cost=config.calculate_value(result.value, params),
                        source=f"accessor-{name}",
                    ),
                    classification=classification,
                )
        return PricingResult(quote=PriceQuote.free("no-price-accessor"), classification=classification)
