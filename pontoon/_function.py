from collections.abc import Generator, Mapping, Sequence
from typing import Any, Protocol

from ethereum_rpc import Address, Block

from ._codec import Codec, FunctionCodec
from ._fragment import FunctionFragment
from ._transport import Transport


class ContractRef(Protocol):
    """Anything that has a contract address."""

    @property
    def address(self) -> Address: ...


class BoundFunction:
    """
    A contract function bound to a specific contract and a transport.

    Calling this object with the function arguments
    returns a :py:class:`BoundFunctionCall`.
    The encoding and decoding helpers are available as regular methods.
    """

    fragment: FunctionFragment
    """The function's ABI fragment."""

    selector: bytes
    """The function selector, prepended to all the encoded calls."""

    def __init__(
        self,
        transport: Transport,
        contract: ContractRef,
        fragment: FunctionFragment,
        selector: None | bytes = None,
        codec: None | Codec = None,
    ):
        self._transport = transport
        self._contract = contract
        self._codec = codec if codec is not None else FunctionCodec(fragment)
        self.fragment = fragment
        self.selector = selector if selector is not None else self._codec.signature()

    @property
    def name(self) -> str:
        """The function name."""
        return self.fragment.name

    @property
    def transport(self) -> Transport:
        """The transport used by the calls created from this function."""
        return self._transport

    def __call__(self, *args: Any) -> "BoundFunctionCall":
        """
        Returns a call with encoded arguments bound to the contract's current address.

        Raises :py:class:`EncodingError` if the arguments do not match the input types.
        """
        return BoundFunctionCall(self, self._contract.address, self.encode(args))

    def encode(self, args: Sequence[Any]) -> bytes:
        """Returns the selector followed by the encoded ``args``."""
        return self.selector + self._codec.encode_inputs(args)

    def decode_output(self, output_bytes: bytes) -> Any:
        """
        Decodes the function's return values.

        If there is exactly one output value, it is returned by itself,
        otherwise a tuple is returned (an empty one if the function returns nothing).
        """
        results = self._codec.decode_outputs(output_bytes)
        if len(results) == 1:
            return results[0]
        return tuple(results)

    def match_input(self, data_bytes: bytes) -> None | tuple[Any, ...]:
        """
        Decodes the arguments from call data if it starts with this function's selector.
        Returns ``None`` if it does not.

        Raises :py:class:`DecodingError` if the selector matches, but the rest is malformed.
        """
        if not data_bytes.startswith(self.selector):
            return None
        return tuple(self._codec.decode_inputs(data_bytes[len(self.selector) :]))

    def __repr__(self) -> str:
        return f"BoundFunction({self.fragment.signature!r}, selector=0x{self.selector.hex()})"


class BoundFunctionCall:
    """
    A function call with encoded arguments bound to a specific contract address.

    Awaiting this object directly is the same as awaiting :py:meth:`call` with no arguments.
    """

    function: BoundFunction
    """The function that created this call."""

    contract_address: Address
    """The contract address."""

    data_bytes: bytes
    """Encoded call arguments with the selector."""

    def __init__(self, function: BoundFunction, contract_address: Address, data_bytes: bytes):
        self.function = function
        self.contract_address = contract_address
        self.data_bytes = data_bytes

    def request(self, options: None | Mapping[str, Any] = None) -> dict[str, Any]:
        """
        Returns the transaction fields for this call:
        ``to`` and ``data``, updated with ``options`` (the values from ``options`` take priority).
        """
        return {"to": self.contract_address, "data": self.data_bytes, **(options or {})}

    async def send_transaction(self, options: None | Mapping[str, Any] = None) -> Any:
        """
        Submits this call as a transaction.
        This can alter the contract state.

        Returns the transport's pending transaction handle.
        """
        return await self.function.transport.send_transaction(self.request(options))

    async def estimate_gas(self, options: None | Mapping[str, Any] = None) -> int:
        """Estimates the amount of gas this call would use as a transaction."""
        return await self.function.transport.estimate_gas(self.request(options))

    async def call(
        self, options: None | Mapping[str, Any] = None, block: None | Block = None
    ) -> Any:
        """
        Executes this call without creating a transaction (cannot alter the contract state)
        and returns the decoded output (see :py:meth:`BoundFunction.decode_output`).

        Raises :py:class:`DecodingError` if the output cannot be decoded.
        """
        output_bytes = await self.function.transport.call(self.request(options), block)
        return self.function.decode_output(output_bytes)

    def __await__(self) -> Generator[Any, None, Any]:
        return self.call().__await__()

    def __repr__(self) -> str:
        return (
            f"BoundFunctionCall({self.function.fragment.signature!r}, "
            f"to={self.contract_address!r}, data=0x{self.data_bytes.hex()})"
        )
