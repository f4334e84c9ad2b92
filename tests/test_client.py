from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any

import pytest
from eth_abi import encode
from ethereum_rpc import Address, Amount, BlockLabel, TxHash, unstructure

from pontoon import (
    BadResponseFormat,
    Client,
    ClientSession,
    ContractABI,
    FunctionFragment,
    Mutability,
    PendingTransaction,
    Provider,
    ProviderError,
    ProviderSession,
    TransactionFailed,
    Unreachable,
)
from pontoon._client import encode_request
from pontoon._provider import RPC_JSON

TX_HASH = TxHash(b"\xee" * 32)
TOKEN = Address(b"\xab" * 20)
OWNER = "0x" + "12" * 20


class FakeProviderSession(ProviderSession):
    def __init__(self) -> None:
        self.requests: list[tuple[str, tuple[RPC_JSON, ...]]] = []
        self.results: dict[str, list[RPC_JSON]] = {}

    async def rpc(self, method: str, *args: RPC_JSON) -> RPC_JSON:
        self.requests.append((method, args))
        result = self.results[method].pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeProvider(Provider):
    def __init__(self, provider_session: FakeProviderSession):
        self.provider_session = provider_session

    @asynccontextmanager
    async def session(self) -> AsyncIterator[FakeProviderSession]:
        yield self.provider_session


@pytest.fixture
def provider_session() -> FakeProviderSession:
    return FakeProviderSession()


@pytest.fixture
async def session(provider_session: FakeProviderSession) -> AsyncIterator[ClientSession]:
    client = Client(FakeProvider(provider_session))
    async with client.session() as session:
        yield session


@pytest.fixture
def abi() -> ContractABI:
    return ContractABI(
        [
            FunctionFragment(
                "balanceOf", inputs=["address"], outputs=["uint256"], mutability=Mutability.VIEW
            ),
            FunctionFragment("transfer", inputs=["address", "uint256"], outputs=["bool"]),
        ]
    )


def test_encode_request():
    request = {"to": TOKEN, "data": b"\x01\x02", "value": Amount.ether(1), "gas": 21000}
    assert encode_request(request) == {
        "to": unstructure(TOKEN),
        "data": "0x0102",
        "value": unstructure(Amount.ether(1)),
        "gas": "0x5208",
    }
    # Strings are passed as is
    assert encode_request({"from": OWNER}) == {"from": OWNER}


async def test_call(session, provider_session, abi):
    token = session.contract(abi, TOKEN)
    provider_session.results["eth_call"] = ["0x" + encode(["uint256"], [123]).hex()]

    call = token.function.balanceOf(OWNER)
    assert await call == 123
    assert provider_session.requests == [
        (
            "eth_call",
            (
                {"to": unstructure(TOKEN), "data": "0x" + call.data_bytes.hex()},
                unstructure(BlockLabel.LATEST),
            ),
        )
    ]


async def test_call_at_block(session, provider_session, abi):
    token = session.contract(abi, TOKEN)
    provider_session.results["eth_call"] = ["0x" + encode(["uint256"], [5]).hex()]

    assert await token.function.balanceOf(OWNER).call({"from": OWNER}, block=100) == 5
    _method, (request, block) = provider_session.requests[0]
    assert request["from"] == OWNER
    assert block == unstructure(100)


async def test_estimate_gas(session, provider_session, abi):
    token = session.contract(abi, TOKEN)
    provider_session.results["eth_estimateGas"] = ["0x5208"]

    call = token.function.transfer(OWNER, 1)
    assert await call.estimate_gas({"from": OWNER}) == 21000
    assert provider_session.requests == [
        (
            "eth_estimateGas",
            ({"to": unstructure(TOKEN), "data": "0x" + call.data_bytes.hex(), "from": OWNER},),
        )
    ]


async def test_send_transaction(session, provider_session, abi):
    token = session.contract(abi, TOKEN)
    provider_session.results["eth_sendTransaction"] = [unstructure(TX_HASH)]

    pending = await token.function.transfer(OWNER, 1).send_transaction({"from": OWNER})
    assert isinstance(pending, PendingTransaction)
    assert pending.tx_hash == TX_HASH
    method, (request,) = provider_session.requests[0]
    assert method == "eth_sendTransaction"
    assert request["from"] == OWNER


async def test_bad_response_format(session, provider_session, abi):
    token = session.contract(abi, TOKEN)
    provider_session.results["eth_call"] = [{"foo": 1}]

    with pytest.raises(BadResponseFormat, match="eth_call: "):
        await token.function.balanceOf(OWNER)


async def test_provider_error_propagates(session, provider_session, abi):
    token = session.contract(abi, TOKEN)
    error = ProviderError(Unreachable("the node is down"))
    provider_session.results["eth_estimateGas"] = [error]

    with pytest.raises(ProviderError) as excinfo:
        await token.function.transfer(OWNER, 1).estimate_gas()
    assert excinfo.value is error


async def test_pending_receipt(session, provider_session):
    provider_session.results["eth_getTransactionReceipt"] = [None]

    pending = PendingTransaction(session, TX_HASH)
    assert await pending.receipt() is None
    assert provider_session.requests == [("eth_getTransactionReceipt", (unstructure(TX_HASH),))]


async def test_wait_for_transaction_receipt(session, monkeypatch):
    receipts: list[Any] = [None, None, SimpleNamespace(succeeded=True)]
    queried = []

    async def get_transaction_receipt(tx_hash):
        queried.append(tx_hash)
        return receipts.pop(0)

    monkeypatch.setattr(session, "get_transaction_receipt", get_transaction_receipt)

    receipt = await PendingTransaction(session, TX_HASH).wait(poll_latency=0)
    assert receipt.succeeded
    assert queried == [TX_HASH] * 3


async def test_wait_for_failed_transaction(session, monkeypatch):
    async def get_transaction_receipt(_tx_hash):
        return SimpleNamespace(succeeded=False)

    monkeypatch.setattr(session, "get_transaction_receipt", get_transaction_receipt)

    with pytest.raises(TransactionFailed, match="Transaction failed"):
        await PendingTransaction(session, TX_HASH).wait(poll_latency=0)
