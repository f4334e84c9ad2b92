"""Async contract function calls over Ethereum JSON RPC."""

from ._client import (
    BadResponseFormat,
    Client,
    ClientSession,
    PendingTransaction,
    TransactionFailed,
)
from ._codec import SELECTOR_LENGTH, Codec, DecodingError, EncodingError, FunctionCodec
from ._contract import ContractABI, DeployedContract, Functions, OverloadedFunction
from ._fragment import ABI_JSON, FunctionFragment, Mutability
from ._function import BoundFunction, BoundFunctionCall
from ._provider import (
    InvalidResponse,
    ProtocolError,
    Provider,
    ProviderError,
    ProviderSession,
    TransportError,
    Unreachable,
)
from ._transport import Transport
from .http_provider import HTTPError, HTTPProvider

__all__ = [
    "ABI_JSON",
    "SELECTOR_LENGTH",
    "BadResponseFormat",
    "BoundFunction",
    "BoundFunctionCall",
    "Client",
    "ClientSession",
    "Codec",
    "ContractABI",
    "DecodingError",
    "DeployedContract",
    "EncodingError",
    "FunctionCodec",
    "FunctionFragment",
    "Functions",
    "HTTPError",
    "HTTPProvider",
    "InvalidResponse",
    "Mutability",
    "OverloadedFunction",
    "PendingTransaction",
    "ProtocolError",
    "Provider",
    "ProviderError",
    "ProviderSession",
    "TransactionFailed",
    "Transport",
    "TransportError",
    "Unreachable",
]
