"""Mint parameter validation. Pure: no remote calls, inputs are never modified."""

import time
from typing import Optional

from mint_types import ContractClassification, MintRequestParams, Provider, ValidationResult
from nft_standards import is_zero_root
from provider_configs import get_provider_config

MERKLE_UNSUPPORTED = "This NFT requires a merkle proof for minting - not supported yet"


def validate_parameters(
    params: MintRequestParams,
    classification: ContractClassification,
    now: Optional[int] = None,
) -> ValidationResult:
    """
    Check the caller's parameters against the detected provider.

    Returns a ValidationResult; problems are reported in missing_params /
    errors, never raised.
    """
    config = get_provider_config(classification.provider, classification, params)
    missing_params: list[str] = []
    errors: list[str] = []

    for name in config.required_params:
        if not getattr(params, name, None):
            missing_params.append(name)

    if classification.provider == Provider.EXTENSION_CLAIM:
        if not params.instance_id and not params.token_id:
            errors.append(
                "Extension-claim NFTs require either instance_id or token_id. "
                "Check the claim page URL (e.g. /instance/123456) or pass the token id."
            )
            missing_params.append("instance_id or token_id")

        if params.instance_id and not params.instance_id.isdigit():
            errors.append(
                f"Invalid instance_id format: {params.instance_id}. Must be a non-negative integer."
            )

        claim = classification.claim
        if claim is not None and not is_zero_root(claim.merkle_root):
            errors.append(MERKLE_UNSUPPORTED)

    if classification.provider == Provider.DROP_CLAIM:
        condition = classification.claim_condition
        if condition is not None:
            if not is_zero_root(condition.merkle_root):
                errors.append(MERKLE_UNSUPPORTED)
            current = int(time.time()) if now is None else now
            if condition.start_timestamp and current < condition.start_timestamp:
                errors.append("Claim has not started yet")

    return ValidationResult(
        is_valid=not missing_params and not errors,
        missing_params=missing_params,
        errors=errors,
    )
