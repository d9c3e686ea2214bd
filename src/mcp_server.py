#!/usr/bin/env python3
"""
NFT Mint MCP Server

Exposes mint provider detection and pricing as two read-only MCP tools.
Thin wrapper over mint_quote.py; all detection/pricing logic stays in the
engine modules.

Tools:
  nft_detect_provider  — classify a contract (extension-claim, self-deploy, drop-claim, generic)
  nft_quote_mint       — detect, price and validate; returns the full mint plan

Usage (stdio, local):
  python src/mcp_server.py

Claude Desktop config (add to claude_desktop_config.json):
  {
    "mcpServers": {
      "nft_mint_mcp": {
        "command": "python",
        "args": ["/path/to/nft-mint-detector/src/mcp_server.py"]
      }
    }
  }
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ConfigDict
from mcp.server.fastmcp import FastMCP
import mcpcat

# Load .env.local from repo root (two levels up from src/)
_REPO_ROOT = Path(__file__).parent.parent
_env_path = _REPO_ROOT / ".env.local"
if _env_path.exists():
    load_dotenv(_env_path)

# Add src/ to path so sibling modules import when run as a script
sys.path.insert(0, str(Path(__file__).parent))

from call_gateway import CallGateway  # noqa: E402
from mint_quote import plan_to_dict, quote_mint  # noqa: E402
from mint_types import MintRequestParams, Provider  # noqa: E402
from provider_detector import PlatformDetector  # noqa: E402

# stdout carries the MCP protocol; logs go to stderr
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    stream=sys.stderr,
    format="%(levelname)s %(name)s: %(message)s",
)

# ── Server ────────────────────────────────────────────────────────────────────

mcp = FastMCP("nft_mint_mcp")
mcpcat.init()

# ── Input models ──────────────────────────────────────────────────────────────


class DetectProviderInput(BaseModel):
    """Input model for nft_detect_provider."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )

    contract_address: str = Field(
        ...,
        description="NFT contract address (0x-prefixed, 42 chars).",
        min_length=42,
        max_length=42,
    )
    chain_id: int = Field(
        ...,
        description="EVM chain id the contract lives on (e.g., 1, 8453, 100).",
        ge=1,
    )


class QuoteMintInput(DetectProviderInput):
    """Input model for nft_quote_mint."""

    provider: Optional[Provider] = Field(
        None,
        description=(
            "Optional provider override: 'manifold', 'nfts2me', 'thirdweb' or 'generic'. "
            "Skips on-chain detection when set."
        ),
    )
    recipient: Optional[str] = Field(
        None,
        description=(
            "Wallet that will receive the NFT. Needed for ERC20 allowance/balance "
            "and for building mint arguments."
        ),
        min_length=42,
        max_length=42,
    )
    amount: int = Field(1, description="Number of tokens to mint.", ge=1, le=10_000)
    token_id: Optional[str] = Field(None, description="Token id, if known.")
    instance_id: Optional[str] = Field(
        None,
        description="Claim instance id for extension-claim contracts (from the claim page URL).",
    )


# ── Tools ─────────────────────────────────────────────────────────────────────


@mcp.tool(
    name="nft_detect_provider",
    annotations={
        "title": "Detect NFT Mint Provider",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def nft_detect_provider(params: DetectProviderInput) -> str:
    """Classify which minting platform convention an NFT contract follows.

    Runs a short cascade of read-only probes (ERC-165, extension list,
    platform-specific accessors). Never fails on a contract it does not
    recognise; those come back as provider "generic".

    Args:
        params (DetectProviderInput): Input containing:
            - contract_address (str): NFT contract (0x...)
            - chain_id (int): chain id

    Returns:
        str: JSON-formatted classification:

        {
            "provider": "manifold" | "nfts2me" | "thirdweb" | "generic",
            "is_erc721": bool,
            "is_erc1155": bool,
            "extension_address": str | null,
            "has_extension": bool
        }

    Error Handling:
        - Unknown chain with no RPC configured: returns error string
    """
    try:
        request = MintRequestParams(contract_address=params.contract_address, chain_id=params.chain_id)
        gateway = CallGateway.for_chain(params.chain_id)
        classification = await PlatformDetector(gateway).detect(request)
        return json.dumps(classification.model_dump(mode="json"), indent=2)
    except Exception as e:
        return f"Error: {type(e).__name__}: {e}"


@mcp.tool(
    name="nft_quote_mint",
    annotations={
        "title": "Quote NFT Mint",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def nft_quote_mint(params: QuoteMintInput) -> str:
    """Detect the provider, price the mint and validate parameters.

    Returns the mint plan a wallet needs to submit the transaction. Nothing
    is signed or sent. All integer amounts are decimal strings (wei / token
    base units).

    Args:
        params (QuoteMintInput): contract_address, chain_id and optional
            provider, recipient, amount, token_id, instance_id

    Returns:
        str: JSON-formatted mint plan:

        {
            "classification": {...},
            "quote": {
                "unit_price": str,
                "total_cost": str,          // native currency, wei
                "erc20": {...} | null,      // ERC20 leg when the claim is paid in a token
                "source": str
            },
            "validation": {"is_valid": bool, "missing_params": [str], "errors": [str]},
            "target": "0x...",              // address to call
            "function_name": str,
            "abi": [...],
            "args": [...] | null,           // null when validation failed
            "value": str                    // msg.value in wei
        }

    Examples:
        - Use when: "How much does it cost to mint 0xabc... on Base?"
        - Use when: Preparing a mint transaction for a wallet
        - Don't use when: You only need the platform (use nft_detect_provider)
    """
    try:
        request = MintRequestParams(**params.model_dump())
        plan = await quote_mint(request)
        return json.dumps(plan_to_dict(plan), indent=2)
    except Exception as e:
        return f"Error: {type(e).__name__}: {e}"


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    mcp.run()
