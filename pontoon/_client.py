import logging
from collections.abc import AsyncIterator, Iterator, Mapping
from contextlib import asynccontextmanager, contextmanager
from typing import Any, TypeVar, cast

import anyio
from compages import StructuringError
from ethereum_rpc import Address, Block, BlockLabel, TxHash, TxReceipt, structure, unstructure

from ._contract import ContractABI, DeployedContract
from ._provider import RPC_JSON, Provider, ProviderSession, TransportError
from ._transport import Transport

logger = logging.getLogger(__name__)


class BadResponseFormat(TransportError):
    """Raised if the RPC provider returned an unexpectedly formatted response."""


class TransactionFailed(Exception):
    """Raised when a submitted transaction was processed, but its receipt reports a failure."""


@contextmanager
def convert_errors(method_name: str) -> Iterator[None]:
    try:
        yield
    except StructuringError as exc:
        raise BadResponseFormat(f"{method_name}: {exc}") from exc


RetType = TypeVar("RetType")


async def rpc_call(
    provider_session: ProviderSession, method_name: str, ret_type: type[RetType], *args: RPC_JSON
) -> RetType:
    """Catches various response formatting errors and returns them in a unified way."""
    result = await provider_session.rpc(method_name, *args)
    with convert_errors(method_name):
        return structure(ret_type, result)


def encode_request(request: Mapping[str, Any]) -> dict[str, RPC_JSON]:
    """
    Converts transaction fields into their JSON RPC representation.
    String values are assumed to be already encoded.
    """
    return {
        key: value if isinstance(value, str) else unstructure(value)
        for key, value in request.items()
    }


class Client:
    """An Ethereum RPC client."""

    def __init__(self, provider: Provider):
        self._provider = provider

    @asynccontextmanager
    async def session(self) -> AsyncIterator["ClientSession"]:
        """Opens a session to the client allowing the backend to optimize sequential requests."""
        async with self._provider.session() as provider_session:
            yield ClientSession(provider_session)


class PendingTransaction:
    """A transaction submitted via ``eth_sendTransaction``."""

    tx_hash: TxHash
    """The transaction hash."""

    def __init__(self, session: "ClientSession", tx_hash: TxHash):
        self._session = session
        self.tx_hash = tx_hash

    async def receipt(self) -> None | TxReceipt:
        """Returns the transaction receipt, or ``None`` if the transaction is not mined yet."""
        return await self._session.get_transaction_receipt(self.tx_hash)

    async def wait(self, poll_latency: float = 1.0) -> TxReceipt:
        """
        Waits for the transaction to be mined, querying the receipt every ``poll_latency`` seconds.

        Raises :py:class:`TransactionFailed` if the transaction was mined, but did not succeed.
        """
        receipt = await self._session.wait_for_transaction_receipt(self.tx_hash, poll_latency)
        if not receipt.succeeded:
            raise TransactionFailed(f"Transaction failed (receipt: {receipt})")
        return receipt

    def __repr__(self) -> str:
        return f"PendingTransaction({self.tx_hash!r})"


class ClientSession(Transport):
    """
    An open session to the provider, serving as the :py:class:`Transport` for contract calls.

    The methods of this class may raise
    :py:class:`ProviderError` (coming from the lower level)
    or :py:class:`BadResponseFormat` (failed to deserialize the response into the expected type).
    """

    def __init__(self, provider_session: ProviderSession):
        self._provider_session = provider_session

    def contract(self, abi: ContractABI, address: Address) -> DeployedContract:
        """Returns the contract at ``address`` with its functions bound to this session."""
        return DeployedContract(self, abi, address)

    async def send_transaction(self, request: Mapping[str, Any]) -> PendingTransaction:
        """
        Calls the ``eth_sendTransaction`` RPC method.
        The transaction is signed by the node, so ``from`` must be an account the node manages.
        """
        logger.debug("eth_sendTransaction to %s", request.get("to"))
        tx_hash = await rpc_call(
            self._provider_session, "eth_sendTransaction", TxHash, encode_request(request)
        )
        return PendingTransaction(self, tx_hash)

    async def estimate_gas(self, request: Mapping[str, Any]) -> int:
        """Calls the ``eth_estimateGas`` RPC method."""
        logger.debug("eth_estimateGas to %s", request.get("to"))
        return await rpc_call(
            self._provider_session, "eth_estimateGas", int, encode_request(request)
        )

    async def call(self, request: Mapping[str, Any], block: None | Block = None) -> bytes:
        """
        Calls the ``eth_call`` RPC method at ``block``
        (the latest block if ``block`` is ``None``).
        """
        if block is None:
            block = BlockLabel.LATEST
        logger.debug("eth_call to %s at %s", request.get("to"), block)
        return await rpc_call(
            self._provider_session,
            "eth_call",
            bytes,
            encode_request(request),
            cast("RPC_JSON", unstructure(block)),
        )

    async def get_transaction_receipt(self, tx_hash: TxHash) -> None | TxReceipt:
        """
        Calls the ``eth_getTransactionReceipt`` RPC method.
        Returns ``None`` for pending transactions.
        """
        # Need an explicit cast, mypy doesn't work with union types correctly.
        # See https://github.com/python/mypy/issues/16935
        return cast(
            "None | TxReceipt",
            await rpc_call(
                self._provider_session,
                "eth_getTransactionReceipt",
                None | TxReceipt,  # type: ignore[arg-type]
                cast("RPC_JSON", unstructure(tx_hash)),
            ),
        )

    async def wait_for_transaction_receipt(
        self, tx_hash: TxHash, poll_latency: float = 1.0
    ) -> TxReceipt:
        """Queries the transaction receipt waiting for ``poll_latency`` between each attempt."""
        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                return receipt
            await anyio.sleep(poll_latency)
