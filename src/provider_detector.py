"""
Provider detection — classify a contract with as few reads as possible.

The cascade is ordered and the first match wins; the heuristics overlap, so
reordering steps changes results:

  1. curated override table (no remote call)
  2. provider named by the caller
  3. ERC721 / ERC1155 / getExtensions() probed concurrently
  4. non-empty extension list            -> extension-claim
  5. n2mVersion() answers                -> self-deploy
  6. ERC721 + claimCondition() -> (a, b) -> drop-claim
  7. ERC1155 + DROP_1155_STEPS           -> drop-claim
  8. nothing matched                     -> unclassified

Every failed probe means "capability absent". detect() never raises.
"""

import asyncio
import logging
from typing import NamedTuple, Optional

from call_gateway import CallGateway, InterfaceProbe
from mint_types import ContractClassification, MintRequestParams, Provider
from nft_standards import (
    CLASSIFICATION_OVERRIDES,
    DROP_CLAIM_CONDITION_RANGE,
    DROP_SHARED_METADATA,
    DROP_TOKEN_CLAIM_CONDITION,
    INTERFACE_IDS,
    SELF_DEPLOY_VERSION,
    SIGNATURE_MINT_REQUEST,
    SIGNATURE_VERIFY_REQUEST,
    SUPPORTS_INTERFACE,
    fn,
    tuple_param,
    zero_struct,
    zero_value,
)
from provider_configs import PROVIDER_CONFIGS

logger = logging.getLogger(__name__)


# ── Probe tables ──────────────────────────────────────────────────────────────


class Probe(NamedTuple):
    """One capability probe: call `name` with `args`, check the output shape."""

    name: str
    abi: dict
    args: tuple = ()
    expect: str = "callable"


class ProbeStep(NamedTuple):
    """A group of probes that classifies as `provider` when it matches.

    Each entry in `probes` is a tuple of alternates; an entry hits when any
    alternate hits. The step matches once `needed` entries hit, or, with
    require_all, when every entry hits in order.
    """

    label: str
    probes: tuple
    provider: Provider = Provider.DROP_CLAIM
    needed: int = 1
    require_all: bool = False


def _shape_ok(expect: str, value) -> bool:
    if expect == "callable":
        return True
    if expect == "true":
        return value is True
    if expect == "int":
        return isinstance(value, int) and not isinstance(value, bool)
    if expect == "record":
        return isinstance(value, (list, tuple, dict)) and len(value) > 0
    if expect == "int_pair":
        return (
            isinstance(value, (list, tuple))
            and len(value) == 2
            and all(isinstance(v, int) and not isinstance(v, bool) for v in value)
        )
    raise ValueError(f"unknown probe shape {expect!r}")


def _no_arg(name, output_type):
    return (Probe(name, fn(name, outputs=[("", output_type)])),)


_DROP_CLAIM_5_ARGS = [
    ("_receiver", "address"),
    ("_tokenId", "uint256"),
    ("_quantity", "uint256"),
    ("_currency", "address"),
    ("_pricePerToken", "uint256"),
]


def _drop_function(name):
    alternates = [Probe(name, fn(name, outputs=[("", "uint256")]))]
    if name in ("claim", "verifyClaim"):
        alternates.append(
            Probe(
                name,
                fn(name, _DROP_CLAIM_5_ARGS, state="payable"),
                tuple(zero_value(t) for _, t in _DROP_CLAIM_5_ARGS),
            )
        )
    return tuple(alternates)


def _extension_function(name):
    return (
        Probe(name, fn(name, outputs=[("", "address[]")])),
        Probe(name, fn(name, [("extensionName", "string")], [("", "address")]), ("",)),
    )


def _init_function(name):
    return (Probe(name, fn(name, [("data", "bytes")], state="nonpayable"), (b"",)),)


DROP_1155_STEPS = (
    ProbeStep(
        "per-token claimCondition",
        ((Probe("claimCondition", DROP_TOKEN_CLAIM_CONDITION, (0,), "record"),),),
    ),
    ProbeStep(
        "multi-phase active condition",
        (
            (
                Probe(
                    "getActiveClaimConditionId",
                    fn("getActiveClaimConditionId", outputs=[("", "uint256")]),
                    (),
                    "int",
                ),
            ),
        ),
    ),
    ProbeStep(
        "signature verify",
        (
            (
                Probe(
                    "verify",
                    fn(
                        "verify",
                        [tuple_param("req", SIGNATURE_VERIFY_REQUEST), ("signature", "bytes")],
                        [("success", "bool"), ("signer", "address")],
                    ),
                    (zero_struct(SIGNATURE_VERIFY_REQUEST), b""),
                ),
            ),
        ),
    ),
    ProbeStep(
        "indicator accessors",
        tuple(
            _no_arg(name, "string")
            for name in (
                "contractURI",
                "owner",
                "nextTokenIdToMint",
                "totalSupply",
                "mintTo",
                "lazyMint",
                "reveal",
                "setClaimConditions",
            )
        ),
        needed=2,
    ),
    ProbeStep(
        "drop functions",
        tuple(
            _drop_function(name)
            for name in ("claim", "setClaimConditions", "getActiveClaimConditionId", "verifyClaim")
        ),
    ),
    ProbeStep(
        "signature-mint interface",
        (
            (
                Probe(
                    "supportsInterface",
                    SUPPORTS_INTERFACE,
                    (bytes.fromhex(INTERFACE_IDS["SignatureMintERC1155"][2:]),),
                    "true",
                ),
            ),
        ),
    ),
    ProbeStep(
        "mintWithSignature",
        (
            (
                Probe(
                    "mintWithSignature",
                    fn(
                        "mintWithSignature",
                        [tuple_param("_req", SIGNATURE_MINT_REQUEST), ("_signature", "bytes")],
                        state="payable",
                    ),
                    (zero_struct(SIGNATURE_MINT_REQUEST), b""),
                ),
            ),
        ),
    ),
    ProbeStep(
        "extension management",
        tuple(
            _extension_function(name)
            for name in (
                "getAllExtensions",
                "addExtension",
                "removeExtension",
                "replaceExtension",
                "getMetadataForFunction",
            )
        ),
    ),
    ProbeStep(
        "extension initialisers",
        tuple(
            _init_function(name)
            for name in (
                "_initializeOwner",
                "_setupRole",
                "_setupContractURI",
                "_setupDefaultRoyalty",
                "_setupPrimarySaleRecipient",
            )
        ),
        needed=2,
    ),
    ProbeStep(
        "uri + totalSupply per token",
        (
            (Probe("uri", fn("uri", [("tokenId", "uint256")], [("", "string")]), (0,)),),
            (
                Probe(
                    "totalSupply",
                    fn("totalSupply", [("id", "uint256")], [("", "uint256")]),
                    (0,),
                ),
            ),
        ),
        require_all=True,
    ),
)


# ── Detector ──────────────────────────────────────────────────────────────────


class PlatformDetector:
    def __init__(
        self,
        gateway: CallGateway,
        probe: Optional[InterfaceProbe] = None,
        overrides: Optional[dict] = None,
        steps_1155: tuple = DROP_1155_STEPS,
    ):
        self.gateway = gateway
        self.probe = probe or InterfaceProbe(gateway)
        self.overrides = CLASSIFICATION_OVERRIDES if overrides is None else overrides
        self.steps_1155 = steps_1155

    async def detect(self, params: MintRequestParams) -> ContractClassification:
        try:
            return await self._detect(params)
        except Exception:
            logger.exception("detection failed for %s, falling back to generic", params.contract_address)
            return ContractClassification()

    async def _detect(self, params: MintRequestParams) -> ContractClassification:
        address = params.contract_address
        logger.info("detecting provider for %s on chain %s", address, params.chain_id)

        override = self.overrides.get(address.lower())
        if override is not None:
            logger.info("%s: curated override -> %s", address, override["provider"])
            return ContractClassification(**override)

        if params.provider is not None:
            return self._from_specified(params.provider)

        is_erc721, is_erc1155, extensions = await asyncio.gather(
            self.probe.is_erc721(address),
            self.probe.is_erc1155(address),
            self.probe.get_extensions(address),
        )
        flags = {"is_erc721": is_erc721, "is_erc1155": is_erc1155}

        if extensions:
            known = {a.lower() for a in PROVIDER_CONFIGS[Provider.EXTENSION_CLAIM].extension_addresses}
            chosen = next((ext for ext in extensions if ext.lower() in known), extensions[0])
            logger.info("%s: %d extension(s) -> extension-claim via %s", address, len(extensions), chosen)
            return ContractClassification(
                provider=Provider.EXTENSION_CLAIM,
                extension_address=chosen,
                has_extension=True,
                **flags,
            )

        version = await self.gateway.execute(address, SELF_DEPLOY_VERSION, "n2mVersion")
        if version.ok and version.value is not None:
            logger.info("%s: n2mVersion=%s -> self-deploy", address, version.value)
            return ContractClassification(provider=Provider.SELF_DEPLOY, **flags)

        if is_erc721 and await self._is_drop_721(address):
            return ContractClassification(provider=Provider.DROP_CLAIM, **flags)

        if is_erc1155:
            for step in self.steps_1155:
                if await self._run_step(address, step):
                    logger.info("%s: matched %r -> %s", address, step.label, step.provider.value)
                    return ContractClassification(provider=step.provider, **flags)

        logger.info("%s: no platform matched -> generic", address)
        return ContractClassification(provider=Provider.UNCLASSIFIED, **flags)

    def _from_specified(self, provider: Provider) -> ContractClassification:
        logger.info("using caller-specified provider %s", provider.value)
        config = PROVIDER_CONFIGS[provider]
        if provider == Provider.EXTENSION_CLAIM and config.extension_addresses:
            return ContractClassification(
                provider=provider,
                is_erc721=False,
                is_erc1155=True,
                extension_address=config.extension_addresses[0],
                has_extension=True,
            )
        return ContractClassification(provider=provider)

    async def _is_drop_721(self, address: str) -> bool:
        result = await self.gateway.execute(address, DROP_CLAIM_CONDITION_RANGE, "claimCondition")
        if not result.ok or not _shape_ok("int_pair", result.value):
            return False
        start_id, count = result.value
        logger.info("%s: claimCondition startId=%s count=%s -> drop-claim", address, start_id, count)

        # Confirmation only; a missing sharedMetadata never undoes the match
        shared = await self.gateway.execute(address, DROP_SHARED_METADATA, "sharedMetadata")
        if not shared.ok:
            logger.debug("%s: sharedMetadata absent, claimCondition is sufficient", address)
        return True

    async def _hits(self, address: str, alternates: tuple) -> bool:
        for probe in alternates:
            result = await self.gateway.execute(address, probe.abi, probe.name, probe.args)
            if result.ok and _shape_ok(probe.expect, result.value):
                return True
        return False

    async def _run_step(self, address: str, step: ProbeStep) -> bool:
        hits = 0
        for alternates in step.probes:
            hit = await self._hits(address, alternates)
            if step.require_all:
                if not hit:
                    return False
                continue
            if hit:
                hits += 1
                if hits >= step.needed:
                    return True
        return step.require_all
