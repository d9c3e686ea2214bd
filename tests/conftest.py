"""Pytest configuration and fixtures for all tests."""

import pytest

from call_gateway import CallGateway, function_signature
from nft_standards import INTERFACE_IDS

CONTRACT = "0x1111111111111111111111111111111111111111"
EXTENSION = "0x26BBEA7803DcAc346D5F5f135b57Cf2c752A02bE"
USDC = "0x3333333333333333333333333333333333333333"
WALLET = "0x4444444444444444444444444444444444444444"


class FakeGateway(CallGateway):
    """CallGateway with a scripted transport.

    Responses are keyed by (address, signature). A response is a plain value,
    an exception instance to raise, or a callable(abi_fragment, args) -> value.
    Anything not scripted reverts.
    """

    def __init__(self):
        super().__init__(w3=None)
        self.responses = {}
        self.calls = []

    def on(self, address, signature, response):
        self.responses[(address.lower(), signature)] = response
        return self

    def interfaces(self, address, *names):
        wanted = {bytes.fromhex(INTERFACE_IDS[n][2:]) for n in names}
        return self.on(address, "supportsInterface(bytes4)", lambda abi, args: args[0] in wanted)

    def called(self, signature, address=None):
        return [
            c for c in self.calls
            if c[1] == signature and (address is None or c[0] == address.lower())
        ]

    async def _call(self, address, abi_fragment, function_name, args):
        signature = function_signature(abi_fragment, function_name)
        self.calls.append((address.lower(), signature, args))
        try:
            response = self.responses[(address.lower(), signature)]
        except KeyError:
            raise RuntimeError("execution reverted") from None
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(abi_fragment, args)
        return response


@pytest.fixture
def gateway():
    return FakeGateway()
