import json
from collections.abc import Mapping, Sequence
from typing import Any

import pytest
from ethereum_rpc import Address, Block

from pontoon import Codec, DecodingError, EncodingError, FunctionFragment, Mutability, Transport


class FakeContract:
    def __init__(self, address: Address):
        self.address = address


class JSONCodec(Codec):
    """
    A codec that serializes values as JSON,
    so that the tests do not depend on the ABI encoding rules.
    """

    def __init__(self, selector: bytes, arity: int):
        self._selector = selector
        self._arity = arity

    def signature(self) -> bytes:
        return self._selector

    def encode_inputs(self, args: Sequence[Any]) -> bytes:
        if len(args) != self._arity:
            raise EncodingError(f"Expected {self._arity} argument(s), got {len(args)}")
        return json.dumps(list(args)).encode()

    def _decode(self, data: bytes) -> tuple[Any, ...]:
        try:
            return tuple(json.loads(data))
        except ValueError as exc:
            raise DecodingError(str(exc)) from exc

    def decode_inputs(self, data: bytes) -> tuple[Any, ...]:
        return self._decode(data)

    def decode_outputs(self, data: bytes) -> tuple[Any, ...]:
        return self._decode(data)


class RecordingTransport(Transport):
    """Records the requests and returns preset results."""

    def __init__(self) -> None:
        self.requests: list[tuple[Any, ...]] = []
        self.call_result = b"[]"
        self.gas = 21000
        self.pending = object()
        self.error: None | Exception = None

    def _record(self, *request: Any) -> None:
        self.requests.append(request)
        if self.error is not None:
            raise self.error

    async def send_transaction(self, request: Mapping[str, Any]) -> Any:
        self._record("send_transaction", dict(request))
        return self.pending

    async def estimate_gas(self, request: Mapping[str, Any]) -> int:
        self._record("estimate_gas", dict(request))
        return self.gas

    async def call(self, request: Mapping[str, Any], block: None | Block = None) -> bytes:
        self._record("call", dict(request), block)
        return self.call_result


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def contract() -> FakeContract:
    return FakeContract(Address(b"\xab" * 20))


@pytest.fixture
def transfer_fragment() -> FunctionFragment:
    return FunctionFragment(
        "transfer",
        inputs=[("to", "address"), ("amount", "uint256")],
        outputs=["bool"],
        mutability=Mutability.NONPAYABLE,
    )


@pytest.fixture
def json_codec() -> JSONCodec:
    return JSONCodec(b"\x01\x02\x03\x04", arity=2)
