#!/usr/bin/env python3
"""
NFT mint quote — detect the provider, price the mint, validate parameters.
Usage: python src/mint_quote.py 0xContract --chain 8453 [--amount 2] [--json]
Output: a summary on stdout (or the full mint plan as JSON with --json)

The plan is what a transaction layer needs to submit the mint: target
address, function, ABI, arguments and msg.value. Nothing is signed or sent.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from call_gateway import CallGateway
from mint_types import (
    ContractClassification,
    MintEngineError,
    MintRequestParams,
    PriceQuote,
    Provider,
    ValidationResult,
)
from param_validator import validate_parameters
from price_resolver import PriceResolver
from provider_configs import get_provider_config
from provider_detector import PlatformDetector

# ── Plan ──────────────────────────────────────────────────────────────────────


class MintPlan(BaseModel):
    """Everything the submission layer needs; args is None when validation failed."""

    model_config = ConfigDict(frozen=True)

    classification: ContractClassification
    quote: PriceQuote
    validation: ValidationResult
    target: str
    function_name: str
    abi: list[Any]
    args: Optional[list[Any]] = None
    value: int = 0


async def quote_mint(params: MintRequestParams, gateway: Optional[CallGateway] = None) -> MintPlan:
    gateway = gateway or CallGateway.for_chain(params.chain_id)

    classification = await PlatformDetector(gateway).detect(params)
    pricing = await PriceResolver(gateway).resolve(params, classification)
    classification = pricing.classification

    validation = validate_parameters(params, classification)
    config = get_provider_config(classification.provider, classification, params)

    target = params.contract_address
    if classification.provider == Provider.EXTENSION_CLAIM and classification.extension_address:
        target = classification.extension_address

    args = None
    if validation.is_valid:
        try:
            args = config.build_args(params)
        except ValueError as e:
            validation = ValidationResult(
                is_valid=False,
                missing_params=validation.missing_params,
                errors=[*validation.errors, f"Cannot build mint arguments: {e}"],
            )

    return MintPlan(
        classification=classification,
        quote=pricing.quote,
        validation=validation,
        target=target,
        function_name=config.mint_function,
        abi=list(config.mint_abi),
        args=args,
        value=pricing.quote.total_cost,
    )


def _jsonable(obj):
    # Wei amounts overflow JS numbers; ship every int as a decimal string
    if isinstance(obj, bool) or obj is None:
        return obj
    if isinstance(obj, int):
        return str(obj)
    if isinstance(obj, (bytes, bytearray)):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, dict):
        return {k: _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    return obj


def plan_to_dict(plan: MintPlan) -> dict:
    return _jsonable(plan.model_dump(mode="python"))


def format_units(amount: int, decimals: int = 18) -> str:
    value = Decimal(amount) / (Decimal(10) ** decimals)
    return format(value.normalize(), "f") if value else "0"


# ── Main ──────────────────────────────────────────────────────────────────────


def print_plan(plan: MintPlan) -> None:
    c = plan.classification
    q = plan.quote
    print(f"\nProvider: {c.provider.value} ({c.standard})")
    if c.extension_address:
        print(f"  Extension: {c.extension_address}")
    print(f"  Price source: {q.source}")
    print(f"  Unit price: {format_units(q.unit_price)} (native)")
    print(f"  Total cost: {format_units(q.total_cost)} (native)")
    if q.erc20:
        print(f"  ERC20 payment: {q.erc20.symbol} ({q.erc20.address})")
        if q.erc20.balance is not None:
            print(f"    balance:   {format_units(q.erc20.balance, q.erc20.decimals)}")
            print(f"    allowance: {format_units(q.erc20.allowance or 0, q.erc20.decimals)}")
    if c.claim_condition:
        print(f"  Claim condition #{c.claim_condition.condition_id}, starts {c.claim_condition.start_timestamp}")
    if c.claim and c.claim.instance_id is not None:
        print(f"  Claim instance: {c.claim.instance_id}")

    v = plan.validation
    if v.is_valid:
        print(f"\n✓ Ready: {plan.function_name}() on {plan.target}, value={plan.value}")
    else:
        print("\nNOT MINTABLE")
        for name in v.missing_params:
            print(f"  missing: {name}")
        for err in v.errors:
            print(f"  ⚠ {err}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Detect an NFT contract's mint provider and price")
    parser.add_argument("contract_address", help="NFT contract address (0x...)")
    parser.add_argument("--chain", type=int, required=True, help="Chain id, e.g. 8453")
    parser.add_argument("--provider", choices=[p.value for p in Provider],
                        help="Skip detection and assume this provider")
    parser.add_argument("--recipient", help="Wallet receiving the NFT")
    parser.add_argument("--amount", type=int, default=1, help="Tokens to mint (default: 1)")
    parser.add_argument("--token-id", help="Token id")
    parser.add_argument("--instance-id", help="Claim instance id (extension-claim contracts)")
    parser.add_argument("--json", action="store_true", help="Print the full mint plan as JSON")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    params = MintRequestParams(
        contract_address=args.contract_address,
        chain_id=args.chain,
        provider=args.provider,
        recipient=args.recipient,
        amount=args.amount,
        token_id=args.token_id,
        instance_id=args.instance_id,
    )
    print(f"Quoting mint for {params.contract_address} on chain {params.chain_id}", file=sys.stderr)

    try:
        plan = asyncio.run(quote_mint(params))
    except MintEngineError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(plan_to_dict(plan), indent=2))
    else:
        print_plan(plan)
    return 0 if plan.validation.is_valid else 1


if __name__ == "__main__":
    sys.exit(main())
