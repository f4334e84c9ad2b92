from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from ethereum_rpc import Block


class Transport(ABC):
    """
    The remote side of contract calls.

    ``request`` is a mapping with JSON RPC transaction field names
    (``to``, ``data``, ``from``, ``value``, ``gas`` etc).

    Implementations may raise any subclass of :py:class:`TransportError`;
    callers receive those unchanged.
    """

    @abstractmethod
    async def send_transaction(self, request: Mapping[str, Any]) -> Any:
        """Submits a transaction and returns an implementation-specific pending handle."""
        ...

    @abstractmethod
    async def estimate_gas(self, request: Mapping[str, Any]) -> int:
        """Returns the amount of gas the transaction would use if submitted now."""
        ...

    @abstractmethod
    async def call(self, request: Mapping[str, Any], block: None | Block = None) -> bytes:
        """
        Executes a read-only call at ``block``
        (``None`` means the implementation's default, normally the latest block)
        and returns the raw output.
        """
        ...
