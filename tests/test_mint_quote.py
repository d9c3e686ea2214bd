import json

import pytest

import mint_quote
from mint_quote import MintPlan, format_units, plan_to_dict, quote_mint
from mint_types import ContractClassification, MintRequestParams, PriceQuote, Provider, ValidationResult
from nft_standards import DEFAULT_EXTENSION_FEE, KNOWN_EXTENSION_ADDRESSES, NATIVE_TOKEN

from conftest import CONTRACT, WALLET


def params(**kw):
    return MintRequestParams(contract_address=CONTRACT, chain_id=8453, **kw)


@pytest.mark.asyncio
async def test_drop_claim_plan_end_to_end(gateway):
    gateway.interfaces(CONTRACT, "ERC721")
    gateway.on(CONTRACT, "claimCondition()", (0, 1))
    gateway.on(
        CONTRACT,
        "getClaimConditionById(uint256)",
        (0, 1000, 0, 0, b"\x00" * 32, 1000, NATIVE_TOKEN, ""),
    )
    plan = await quote_mint(params(amount=2, recipient=WALLET), gateway)

    assert plan.classification.provider == Provider.DROP_CLAIM
    assert plan.classification.claim_condition.price_per_token == 1000
    assert plan.validation.is_valid
    assert plan.target == CONTRACT
    assert plan.function_name == "claim"
    assert plan.value == 2000
    assert plan.args[:4] == [WALLET, 2, NATIVE_TOKEN, 1000]


@pytest.mark.asyncio
async def test_invalid_plan_has_no_args(gateway):
    plan = await quote_mint(params(provider="manifold"), gateway)

    assert plan.target == KNOWN_EXTENSION_ADDRESSES[0]
    assert plan.validation.is_valid is False
    assert "instance_id or token_id" in plan.validation.missing_params
    assert plan.args is None
    assert plan.value == DEFAULT_EXTENSION_FEE


@pytest.mark.asyncio
async def test_unbuildable_args_invalidate_the_plan(gateway):
    plan = await quote_mint(params(provider="manifold", token_id="not-a-number"), gateway)
    assert plan.args is None
    assert any(e.startswith("Cannot build mint arguments") for e in plan.validation.errors)


def test_plan_to_dict_stringifies_integers():
    plan = MintPlan(
        classification=ContractClassification(provider=Provider.SELF_DEPLOY),
        quote=PriceQuote(unit_price=10**18, total_cost=3 * 10**18, source="self-deploy-mintPrice"),
        validation=ValidationResult(is_valid=True),
        target=CONTRACT,
        function_name="mint",
        abi=[],
        args=[3, b"\x01"],
        value=3 * 10**18,
    )
    data = plan_to_dict(plan)
    assert data["value"] == "3000000000000000000"
    assert data["quote"]["unit_price"] == "1000000000000000000"
    assert data["args"] == ["3", "0x01"]
    assert data["classification"]["provider"] == "nfts2me"
    assert data["validation"]["is_valid"] is True
    json.dumps(data)


def test_format_units():
    assert format_units(10**18) == "1"
    assert format_units(1_500_000, 6) == "1.5"
    assert format_units(0) == "0"


def test_main_prints_json_plan(monkeypatch, capsys):
    plan = MintPlan(
        classification=ContractClassification(),
        quote=PriceQuote.free("no-price-accessor"),
        validation=ValidationResult(is_valid=True),
        target=CONTRACT,
        function_name="mint",
        abi=[],
        args=[1],
    )
    seen = []

    async def fake_quote(request):
        seen.append(request)
        return plan

    monkeypatch.setattr(mint_quote, "quote_mint", fake_quote)
    code = mint_quote.main([CONTRACT, "--chain", "8453", "--amount", "1", "--json"])

    assert code == 0
    assert seen[0].chain_id == 8453
    out = json.loads(capsys.readouterr().out)
    assert out["target"] == CONTRACT
    assert out["quote"]["source"] == "no-price-accessor"


@pytest.mark.asyncio
async def test_erc1155_drop_args_carry_the_charged_price(gateway):
    gateway.interfaces(CONTRACT, "ERC1155")
    gateway.on(CONTRACT, "claimCondition(uint256)", (0, 100, 0, b"\x00" * 32, 0, NATIVE_TOKEN, ""))
    gateway.on(CONTRACT, "price()", 5)
    plan = await quote_mint(params(amount=3, recipient=WALLET), gateway)

    assert plan.classification.provider == Provider.DROP_CLAIM
    assert plan.value == 15
    assert plan.args[3] == NATIVE_TOKEN
    assert plan.args[4] * 3 == plan.value


def test_main_reports_unknown_chain(monkeypatch, capsys):
    monkeypatch.delenv("RPC_URL", raising=False)
    monkeypatch.delenv("RPC_URL_999999", raising=False)

    code = mint_quote.main([CONTRACT, "--chain", "999999"])

    assert code == 2
    err = capsys.readouterr().err
    assert "Error: UnknownChainError" in err
    assert "RPC_URL_999999" in err


def test_mint_plan_is_plain_frozen_model():
    assert not MintPlan.model_config.get("arbitrary_types_allowed")
    plan = MintPlan(
        classification=ContractClassification(),
        quote=PriceQuote.free(),
        validation=ValidationResult(is_valid=True),
        target=CONTRACT,
        function_name="mint",
        abi=[],
    )
    assert MintPlan.model_validate(plan.model_dump(mode="json")) == plan
    with pytest.raises(ValueError):
        plan.value = 1
