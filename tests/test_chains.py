import pytest

from chains import DEFAULT_RPC_TIMEOUT, DEFAULT_RPC_URLS, get_rpc_timeout, get_rpc_url
from mint_types import UnknownChainError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("RPC_URL", "RPC_URL_8453", "RPC_URL_999999", "RPC_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


def test_per_chain_variable_wins(monkeypatch):
    monkeypatch.setenv("RPC_URL", "https://any.example")
    monkeypatch.setenv("RPC_URL_8453", "https://base.example")
    assert get_rpc_url(8453) == "https://base.example"


def test_generic_variable_before_defaults(monkeypatch):
    monkeypatch.setenv("RPC_URL", "https://any.example")
    assert get_rpc_url(8453) == "https://any.example"


def test_public_default():
    assert get_rpc_url(8453) == DEFAULT_RPC_URLS[8453]


def test_unknown_chain_raises():
    with pytest.raises(UnknownChainError, match="RPC_URL_999999"):
        get_rpc_url(999999)


def test_rpc_timeout(monkeypatch):
    assert get_rpc_timeout() == DEFAULT_RPC_TIMEOUT
    monkeypatch.setenv("RPC_TIMEOUT", "2.5")
    assert get_rpc_timeout() == 2.5
    monkeypatch.setenv("RPC_TIMEOUT", "soon")
    assert get_rpc_timeout() == DEFAULT_RPC_TIMEOUT
