"""
Chain configuration — RPC endpoint per chain id and a cached AsyncWeb3 client.

Endpoints resolve in this order:
  1. RPC_URL_<chainId>   (e.g. RPC_URL_8453)
  2. RPC_URL             (any chain)
  3. DEFAULT_RPC_URLS    (public endpoints below)

.env.local and .env at the repo root are loaded on import (values already in
the environment win).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from mint_types import UnknownChainError

_REPO_ROOT = Path(__file__).parent.parent
for _env_name in (".env.local", ".env"):
    _env_path = _REPO_ROOT / _env_name
    if _env_path.exists():
        load_dotenv(_env_path)

# Free public endpoints, used only when nothing is configured
DEFAULT_RPC_URLS = {
    1: "https://eth.llamarpc.com",
    10: "https://mainnet.optimism.io",
    100: "https://rpc.gnosischain.com",
    137: "https://polygon-rpc.com",
    8453: "https://mainnet.base.org",
    42161: "https://arb1.arbitrum.io/rpc",
    7777777: "https://rpc.zora.energy",
    84532: "https://sepolia.base.org",
}

DEFAULT_RPC_TIMEOUT = 10.0

_clients: dict[int, object] = {}


def get_rpc_url(chain_id: int) -> str:
    url = os.getenv(f"RPC_URL_{chain_id}") or os.getenv("RPC_URL") or DEFAULT_RPC_URLS.get(chain_id)
    if not url:
        raise UnknownChainError(
            f"No RPC endpoint for chain {chain_id}. Set RPC_URL_{chain_id} or RPC_URL."
        )
    return url


def get_rpc_timeout() -> float:
    raw = os.getenv("RPC_TIMEOUT", "")
    try:
        return float(raw) if raw else DEFAULT_RPC_TIMEOUT
    except ValueError:
        return DEFAULT_RPC_TIMEOUT


def get_web3(chain_id: int):
    """Return (and cache) an AsyncWeb3 instance for chain_id."""
    if chain_id not in _clients:
        from aiohttp import ClientTimeout
        from web3 import AsyncHTTPProvider, AsyncWeb3

        provider = AsyncHTTPProvider(
            get_rpc_url(chain_id),
            request_kwargs={"timeout": ClientTimeout(total=get_rpc_timeout())},
        )
        _clients[chain_id] = AsyncWeb3(provider)
    return _clients[chain_id]
