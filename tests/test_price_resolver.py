import logging

import pytest

from mint_types import ConfigInconsistency, ContractClassification, MintRequestParams, Provider
from nft_standards import (
    DEFAULT_EXTENSION_FEE,
    DEFAULT_SELF_DEPLOY_CREATOR_FEE,
    DEFAULT_SELF_DEPLOY_PROTOCOL_FEE,
    EXTENSION_CLAIM_FIELDS_ERC721,
    EXTENSION_CLAIM_FIELDS_ERC1155,
    NATIVE_TOKEN,
    ZERO_ADDRESS,
    find_fn,
)
from price_resolver import PriceResolver

from conftest import CONTRACT, EXTENSION, USDC, WALLET

OVERRIDDEN = "0xcd0bafa3bba1b32869343fb69d2778daf4412181"
ZERO_ROOT = b"\x00" * 32


def params(**kw):
    return MintRequestParams(contract_address=kw.pop("contract_address", CONTRACT), chain_id=8453, **kw)


def extension_claim(**flags):
    return ContractClassification(
        provider=Provider.EXTENSION_CLAIM,
        extension_address=EXTENSION,
        has_extension=True,
        **flags,
    )


def claim_tuple(fields, **values):
    defaults = {
        "total": 1,
        "totalMax": 100,
        "walletMax": 5,
        "startDate": 1_700_000_000,
        "endDate": 0,
        "storageProtocol": 1,
        "contractVersion": 2,
        "identical": True,
        "merkleRoot": ZERO_ROOT,
        "location": "ar://x",
        "tokenId": 1,
        "cost": 1000,
        "paymentReceiver": WALLET,
        "erc20": ZERO_ADDRESS,
        "signingAddress": ZERO_ADDRESS,
    }
    defaults.update(values)
    return tuple(defaults[name] for name, _ in fields)


def drop_condition(price=1000, currency=NATIVE_TOKEN, start=0, root=ZERO_ROOT):
    return (start, 1000, 10, 5, root, price, currency, "")


# ── Extension claim ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_token_lookup_adopts_instance_id(gateway):
    gateway.on(EXTENSION, "MINT_FEE()", 500)
    gateway.on(
        EXTENSION,
        "getClaimForToken(address,uint256)",
        (42, claim_tuple(EXTENSION_CLAIM_FIELDS_ERC1155, cost=1000)),
    )
    result = await PriceResolver(gateway).resolve(params(token_id="7"), extension_claim(is_erc1155=True))

    assert result.classification.claim.instance_id == 42
    assert result.classification.claim.cost == 1000
    assert result.quote.unit_price == 500
    assert result.quote.total_cost == 1500
    assert result.quote.erc20 is None


@pytest.mark.asyncio
async def test_supplied_instance_id_is_kept(gateway):
    gateway.on(EXTENSION, "MINT_FEE()", 500)
    gateway.on(EXTENSION, "getClaim(address,uint256)", claim_tuple(EXTENSION_CLAIM_FIELDS_ERC1155))
    result = await PriceResolver(gateway).resolve(
        params(instance_id="9", token_id="7"), extension_claim(is_erc1155=True)
    )
    assert result.classification.claim.instance_id == 9
    assert gateway.called("getClaimForToken(address,uint256)") == []


@pytest.mark.asyncio
async def test_extension_calls_fall_back_to_other_abi_shape(gateway):
    def only_1155(abi, args):
        components = find_fn(abi, "getClaim")["outputs"][0]["components"]
        if len(components) != len(EXTENSION_CLAIM_FIELDS_ERC1155):
            raise ValueError("could not decode")
        return claim_tuple(EXTENSION_CLAIM_FIELDS_ERC1155, cost=250)

    gateway.on(EXTENSION, "MINT_FEE()", 500)
    gateway.on(EXTENSION, "getClaim(address,uint256)", only_1155)
    result = await PriceResolver(gateway).resolve(params(instance_id="1"), extension_claim(is_erc721=True))

    assert len(gateway.called("getClaim(address,uint256)")) == 2
    assert result.classification.claim.cost == 250
    assert result.quote.total_cost == 750


@pytest.mark.asyncio
async def test_erc721_claim_layout_is_read_first_for_erc721(gateway):
    gateway.on(EXTENSION, "MINT_FEE()", 1)
    gateway.on(EXTENSION, "getClaim(address,uint256)", claim_tuple(EXTENSION_CLAIM_FIELDS_ERC721, cost=9))
    result = await PriceResolver(gateway).resolve(params(instance_id="3"), extension_claim(is_erc721=True))
    assert result.classification.claim.cost == 9
    assert len(gateway.called("getClaim(address,uint256)")) == 1


@pytest.mark.asyncio
async def test_malformed_claim_degrades_to_fee_only(gateway):
    gateway.on(EXTENSION, "MINT_FEE()", 500)
    gateway.on(EXTENSION, "getClaim(address,uint256)", (1, 2, 3))
    result = await PriceResolver(gateway).resolve(params(instance_id="1"), extension_claim(is_erc1155=True))
    assert result.quote.total_cost == 500
    assert result.classification.claim is None


@pytest.mark.asyncio
async def test_recovered_claim_data_logs_at_warning(gateway, caplog):
    gateway.on(EXTENSION, "MINT_FEE()", 500)
    gateway.on(EXTENSION, "getClaim(address,uint256)", (1, 2, 3))
    with caplog.at_level(logging.DEBUG, logger="price_resolver"):
        await PriceResolver(gateway).resolve(params(instance_id="1"), extension_claim(is_erc1155=True))
    records = [r for r in caplog.records if r.name == "price_resolver"]
    assert any("missing required fields" in r.getMessage() for r in records)
    assert all(r.levelno < logging.ERROR for r in records)


@pytest.mark.asyncio
async def test_extension_claim_without_id_is_fee_only(gateway):
    gateway.on(EXTENSION, "MINT_FEE()", 500)
    result = await PriceResolver(gateway).resolve(params(), extension_claim(is_erc1155=True))
    assert result.quote.total_cost == 500
    assert result.quote.source == "extension-fee"


@pytest.mark.asyncio
async def test_extension_erc20_claim_charges_fee_only_in_native(gateway):
    gateway.on(EXTENSION, "MINT_FEE()", 500)
    gateway.on(
        EXTENSION,
        "getClaim(address,uint256)",
        claim_tuple(EXTENSION_CLAIM_FIELDS_ERC1155, cost=5_000_000, erc20=USDC),
    )
    gateway.on(USDC, "symbol()", "USDC")
    gateway.on(USDC, "decimals()", 6)
    gateway.on(USDC, "allowance(address,address)", 10)

    result = await PriceResolver(gateway).resolve(
        params(instance_id="1", recipient=WALLET), extension_claim(is_erc1155=True)
    )
    assert result.quote.total_cost == 500
    erc20 = result.quote.erc20
    assert (erc20.symbol, erc20.decimals, erc20.allowance, erc20.balance) == ("USDC", 6, 10, 0)
    allowance_call = gateway.called("allowance(address,address)")[0]
    assert allowance_call[2] == (WALLET, EXTENSION)


@pytest.mark.asyncio
async def test_extension_bad_decimals_falls_back_to_fee_only(gateway):
    gateway.on(EXTENSION, "MINT_FEE()", 500)
    gateway.on(
        EXTENSION,
        "getClaim(address,uint256)",
        claim_tuple(EXTENSION_CLAIM_FIELDS_ERC1155, erc20=USDC),
    )
    gateway.on(USDC, "symbol()", "USDC")
    gateway.on(USDC, "decimals()", 300)

    result = await PriceResolver(gateway).resolve(params(instance_id="1"), extension_claim(is_erc1155=True))
    assert result.quote.source == "extension-fee-only"
    assert result.quote.total_cost == 500
    assert result.quote.erc20 is None
    assert result.classification.claim is not None


@pytest.mark.asyncio
async def test_unreachable_extension_uses_default_fee(gateway):
    result = await PriceResolver(gateway).resolve(params(instance_id="1"), extension_claim(is_erc1155=True))
    assert result.quote.total_cost == DEFAULT_EXTENSION_FEE
    assert result.quote.source == "extension-default-fee"


# ── Self deploy ───────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_self_deploy_zero_unit_price_stops_the_cascade(gateway):
    gateway.on(CONTRACT, "mintPrice()", 0)
    gateway.on(CONTRACT, "protocolFee()", 100)
    result = await PriceResolver(gateway).resolve(
        params(amount=3), ContractClassification(provider=Provider.SELF_DEPLOY)
    )
    assert result.quote.total_cost == 0
    assert gateway.called("mintFee(uint256)") == []
    assert gateway.called("protocolFee()") == []


@pytest.mark.asyncio
async def test_self_deploy_fee_pair(gateway):
    gateway.on(CONTRACT, "mintFee(uint256)", lambda abi, args: 10 * args[0])
    gateway.on(CONTRACT, "protocolFee()", 100)
    result = await PriceResolver(gateway).resolve(
        params(amount=2), ContractClassification(provider=Provider.SELF_DEPLOY)
    )
    assert result.quote.unit_price == 20
    assert result.quote.total_cost == 20 + 100 * 2


@pytest.mark.asyncio
async def test_self_deploy_half_fee_pair_uses_defaults(gateway):
    gateway.on(CONTRACT, "mintFee(uint256)", 10)
    result = await PriceResolver(gateway).resolve(
        params(amount=2), ContractClassification(provider=Provider.SELF_DEPLOY)
    )
    assert result.quote.total_cost == (DEFAULT_SELF_DEPLOY_CREATOR_FEE + DEFAULT_SELF_DEPLOY_PROTOCOL_FEE) * 2
    assert result.quote.source == "self-deploy-default-fees"


# ── Drop claim, ERC1155 ───────────────────────────────────────────────────────


def drop_1155():
    return ContractClassification(provider=Provider.DROP_CLAIM, is_erc1155=True)


@pytest.mark.asyncio
async def test_drop_1155_override_wins_without_calls(gateway):
    gateway.on(OVERRIDDEN, "price()", 5)
    result = await PriceResolver(gateway).resolve(params(contract_address=OVERRIDDEN, amount=2), drop_1155())
    assert result.quote.total_cost == 2 * 10**18
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_drop_1155_zero_price_falls_through_to_mint_price(gateway):
    gateway.on(CONTRACT, "price()", 0)
    gateway.on(CONTRACT, "mintPrice()", 5)
    result = await PriceResolver(gateway).resolve(params(amount=3), drop_1155())
    assert result.quote.unit_price == 5
    assert result.quote.total_cost == 15
    condition = result.classification.claim_condition
    assert (condition.price_per_token, condition.currency) == (5, NATIVE_TOKEN)


@pytest.mark.asyncio
async def test_drop_1155_token_condition_price(gateway):
    gateway.on(CONTRACT, "claimCondition(uint256)", (0, 100, 0, ZERO_ROOT, 7, NATIVE_TOKEN, ""))
    result = await PriceResolver(gateway).resolve(params(amount=2), drop_1155())
    assert result.quote.total_cost == 14
    assert result.quote.source == "drop-claim-token-condition"
    condition = result.classification.claim_condition
    assert condition.price_per_token == 7
    assert condition.max_claimable_supply == 100


@pytest.mark.asyncio
async def test_drop_1155_token_condition_in_erc20(gateway):
    gateway.on(CONTRACT, "claimCondition(uint256)", (0, 100, 0, ZERO_ROOT, 7, USDC, ""))
    gateway.on(USDC, "symbol()", "USDC")
    gateway.on(USDC, "decimals()", 6)
    result = await PriceResolver(gateway).resolve(params(amount=2), drop_1155())
    assert result.quote.total_cost == 0
    assert result.quote.unit_price == 7
    assert result.quote.erc20.symbol == "USDC"
    assert result.classification.claim_condition.currency == USDC


@pytest.mark.asyncio
async def test_drop_1155_nothing_found_is_free(gateway):
    result = await PriceResolver(gateway).resolve(params(), drop_1155())
    assert result.quote.total_cost == 0


# ── Drop claim, ERC721 ────────────────────────────────────────────────────────


def drop_721():
    return ContractClassification(provider=Provider.DROP_CLAIM, is_erc721=True)


@pytest.mark.asyncio
async def test_drop_721_no_conditions_is_free_without_fetch(gateway):
    gateway.on(CONTRACT, "claimCondition()", (5, 0))
    result = await PriceResolver(gateway).resolve(params(), drop_721())
    assert result.quote.total_cost == 0
    assert gateway.called("getClaimConditionById(uint256)") == []


@pytest.mark.asyncio
async def test_drop_721_native_price_times_amount(gateway):
    gateway.on(CONTRACT, "claimCondition()", (5, 3))
    gateway.on(CONTRACT, "getClaimConditionById(uint256)", drop_condition(price=1000))
    classification = drop_721()
    result = await PriceResolver(gateway).resolve(params(amount=4), classification)

    assert result.quote.total_cost == 4000
    assert result.quote.erc20 is None
    assert gateway.called("getClaimConditionById(uint256)")[0][2] == (7,)
    assert result.classification.claim_condition.condition_id == 7
    assert result.classification.claim_condition.price_per_token == 1000
    assert classification.claim_condition is None


@pytest.mark.asyncio
async def test_drop_721_erc20_without_recipient(gateway):
    gateway.on(CONTRACT, "claimCondition()", (0, 1))
    gateway.on(CONTRACT, "getClaimConditionById(uint256)", drop_condition(price=1000, currency=USDC))
    gateway.on(USDC, "symbol()", "USDC")
    gateway.on(USDC, "decimals()", 6)
    result = await PriceResolver(gateway).resolve(params(amount=2), drop_721())

    assert result.quote.total_cost == 0
    assert result.quote.unit_price == 1000
    assert result.quote.erc20.allowance is None
    assert result.quote.erc20.balance is None
    assert gateway.called("allowance(address,address)") == []


@pytest.mark.asyncio
async def test_drop_721_bad_decimals_is_a_hard_branch_failure(gateway):
    gateway.on(CONTRACT, "claimCondition()", (0, 1))
    gateway.on(CONTRACT, "getClaimConditionById(uint256)", drop_condition(currency=USDC))
    gateway.on(USDC, "symbol()", "USDC")
    gateway.on(USDC, "decimals()", 256)
    result = await PriceResolver(gateway).resolve(params(recipient=WALLET), drop_721())

    assert result.quote.total_cost == 0
    assert result.quote.erc20 is None
    assert result.quote.source == "fallback"
    assert result.classification.claim_condition.currency == USDC


@pytest.mark.asyncio
async def test_erc20_leg_raises_config_inconsistency_for_bad_decimals(gateway):
    gateway.on(USDC, "symbol()", "X")
    gateway.on(USDC, "decimals()", -1)
    with pytest.raises(ConfigInconsistency):
        await PriceResolver(gateway)._erc20_details(USDC, params(), CONTRACT, drop_721())


# ── Unclassified ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_generic_accessors_tried_in_order(gateway):
    gateway.on(CONTRACT, "MINT_PRICE()", 3)
    result = await PriceResolver(gateway).resolve(params(amount=2), ContractClassification())
    assert result.quote.total_cost == 6
    assert [c[1] for c in gateway.calls] == ["mintPrice()", "price()", "MINT_PRICE()"]


@pytest.mark.asyncio
async def test_generic_without_accessor_is_free(gateway):
    result = await PriceResolver(gateway).resolve(params(), ContractClassification())
    assert result.quote.total_cost == 0
    assert result.quote.erc20 is None
