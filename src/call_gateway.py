"""
Read-only contract calls that never raise.

CallGateway turns every web3 call into a CallResult: reverts, bad addresses,
ABI encode/decode errors and transport failures all come back as
CallResult.failure(...). Callers branch on .ok instead of wrapping each call
in try/except.

InterfaceProbe sits on top of it for ERC-165 and extension-list checks.
"""

import asyncio
import logging
from typing import Any, Iterable, Sequence

from mint_types import CallResult
from nft_standards import GET_EXTENSIONS, INTERFACE_IDS, SUPPORTS_INTERFACE

logger = logging.getLogger(__name__)


def function_signature(abi_fragment, function_name: str) -> str:
    """Canonical signature, e.g. claimCondition(uint256)."""
    entries = abi_fragment if isinstance(abi_fragment, list) else [abi_fragment]
    for entry in entries:
        if entry.get("name") == function_name:
            types = ",".join(_canonical_type(p) for p in entry.get("inputs", []))
            return f"{function_name}({types})"
    return f"{function_name}(?)"


def _canonical_type(param: dict) -> str:
    ptype = param["type"]
    if ptype.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){ptype[len('tuple'):]}"
    return ptype


class CallGateway:
    """Executes read-only calls against one chain."""

    def __init__(self, w3=None):
        self.w3 = w3

    @classmethod
    def for_chain(cls, chain_id: int) -> "CallGateway":
        from chains import get_web3

        return cls(get_web3(chain_id))

    async def execute(
        self,
        address: str,
        abi_fragment,
        function_name: str,
        args: Sequence[Any] = (),
    ) -> CallResult:
        try:
            value = await self._call(address, abi_fragment, function_name, tuple(args))
        except Exception as e:
            logger.debug(
                "call %s on %s failed: %s: %s",
                function_signature(abi_fragment, function_name),
                address,
                type(e).__name__,
                e,
            )
            return CallResult.failure(f"{type(e).__name__}: {e}")
        return CallResult.success(value)

    async def execute_many(self, calls: Iterable[tuple]) -> list[CallResult]:
        """Run independent calls concurrently; results keep the input order.

        Each call is (address, abi_fragment, function_name[, args]).
        """
        return list(await asyncio.gather(*(self.execute(*call) for call in calls)))

    async def _call(self, address: str, abi_fragment, function_name: str, args: tuple) -> Any:
        if self.w3 is None:
            raise RuntimeError("CallGateway has no web3 client")
        from web3 import Web3

        abi = abi_fragment if isinstance(abi_fragment, list) else [abi_fragment]
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        return await contract.functions[function_name](*args).call()


class InterfaceProbe:
    """Standard-interface and extension-list checks. Absence is never an error."""

    def __init__(self, gateway: CallGateway):
        self.gateway = gateway

    async def supports_interface(self, address: str, interface_id: str) -> bool:
        result = await self.gateway.execute(
            address,
            SUPPORTS_INTERFACE,
            "supportsInterface",
            [bytes.fromhex(interface_id[2:])],
        )
        return result.ok and result.value is True

    async def is_erc721(self, address: str) -> bool:
        return await self.supports_interface(address, INTERFACE_IDS["ERC721"])

    async def is_erc1155(self, address: str) -> bool:
        return await self.supports_interface(address, INTERFACE_IDS["ERC1155"])

    async def get_extensions(self, address: str) -> list[str]:
        result = await self.gateway.execute(address, GET_EXTENSIONS, "getExtensions")
        if not result.ok or not isinstance(result.value, (list, tuple)):
            return []
        return [str(ext) for ext in result.value]
