from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from eth_abi import decode, encode, is_encodable_type
from eth_abi.exceptions import DecodingError as ABIDecodingError
from eth_abi.exceptions import EncodingError as ABIEncodingError
from ethereum_rpc import Address, keccak

from ._fragment import FunctionFragment

# The number of bytes in a function selector.
SELECTOR_LENGTH = 4


class EncodingError(Exception):
    """Raised when the call arguments do not match the function's input types."""


class DecodingError(Exception):
    """Raised when a bytestring cannot be decoded with the expected types."""


class Codec(ABC):
    """
    ABI encoding and decoding for a single contract function.
    """

    @abstractmethod
    def signature(self) -> bytes:
        """Returns the function selector."""
        ...

    @abstractmethod
    def encode_inputs(self, args: Sequence[Any]) -> bytes:
        """
        Encodes the positional arguments (without the selector).
        Raises :py:class:`EncodingError` on a mismatch with the input types.
        """
        ...

    @abstractmethod
    def decode_inputs(self, data: bytes) -> tuple[Any, ...]:
        """
        Decodes the encoded arguments (without the selector).
        Raises :py:class:`DecodingError` if the data is malformed.
        """
        ...

    @abstractmethod
    def decode_outputs(self, data: bytes) -> tuple[Any, ...]:
        """
        Decodes the function's return values.
        Raises :py:class:`DecodingError` if the data is malformed.
        """
        ...


def _normalize(value: Any) -> Any:
    # `eth_abi` does not know about `ethereum_rpc` entities.
    if isinstance(value, Address):
        return bytes(value)
    if isinstance(value, list | tuple):
        return type(value)(_normalize(elem) for elem in value)
    return value


class FunctionCodec(Codec):
    """
    The :py:class:`Codec` for a :py:class:`FunctionFragment` backed by ``eth_abi``.

    Values are decoded into their ``eth_abi`` representation
    (e.g. addresses are returned as checksummed hex strings).
    """

    def __init__(self, fragment: FunctionFragment):
        for tp in fragment.input_types + fragment.output_types:
            if not is_encodable_type(tp):
                raise ValueError(f"Unsupported ABI type `{tp}` in `{fragment.signature}`")
        self._fragment = fragment
        self._input_types = fragment.input_types
        self._output_types = fragment.output_types

    def signature(self) -> bytes:
        return keccak(self._fragment.signature.encode())[:SELECTOR_LENGTH]

    def encode_inputs(self, args: Sequence[Any]) -> bytes:
        if len(args) != len(self._input_types):
            raise EncodingError(
                f"`{self._fragment.signature}` expects {len(self._input_types)} argument(s), "
                f"got {len(args)}"
            )
        try:
            return encode(self._input_types, _normalize(tuple(args)))
        except ABIEncodingError as exc:
            raise EncodingError(
                f"Could not encode the arguments for `{self._fragment.signature}`: {exc}"
            ) from exc

    def _decode(self, types: tuple[str, ...], data: bytes) -> tuple[Any, ...]:
        try:
            return tuple(decode(types, data))
        except (ABIDecodingError, UnicodeDecodeError) as exc:
            # `eth_abi` does not wrap UTF-8 errors for `string` values
            signature = "(" + ",".join(types) + ")"
            raise DecodingError(
                f"Could not decode the value with the expected signature {signature}: {exc}"
            ) from exc

    def decode_inputs(self, data: bytes) -> tuple[Any, ...]:
        return self._decode(self._input_types, data)

    def decode_outputs(self, data: bytes) -> tuple[Any, ...]:
        return self._decode(self._output_types, data)
