"""HTTP provider based on `httpx`."""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from http import HTTPStatus
from json import JSONDecodeError
from typing import cast

import httpx
from compages import StructuringError
from ethereum_rpc import RPCError, structure

from ._provider import (
    RPC_JSON,
    InvalidResponse,
    ProtocolError,
    Provider,
    ProviderError,
    ProviderSession,
    Unreachable,
)

__all__ = ["HTTPError", "HTTPProvider"]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
"""Default timeout for a single HTTP request, in seconds."""


class HTTPError(ProtocolError):
    """
    Raised when the provider returns a response with a status code other than 200,
    and no ``"error"`` field in the associated JSON data.
    """

    status: HTTPStatus
    """The HTTP status of the response."""

    message: str
    """The response body."""

    def __init__(self, status_code: int, message: str):
        try:
            status = HTTPStatus(status_code)
        except ValueError:  # pragma: no cover
            # `httpx` only gives us an integer, and it may be a non-standard one.
            status = HTTPStatus.INTERNAL_SERVER_ERROR

        self.status = status
        self.message = message

    def __str__(self) -> str:  # noqa: D105
        return f"HTTP status {self.status}: {self.message}"


class HTTPProvider(Provider):
    """
    A provider for RPC via HTTP(S).

    ``timeout`` is applied to each request (in seconds).
    ``transport`` replaces the default ``httpx`` network transport
    (e.g. with ``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: None | httpx.AsyncBaseTransport = None,
    ):
        self._url = url
        self._timeout = timeout
        self._transport = transport

    @asynccontextmanager
    async def session(self) -> AsyncIterator["HTTPProviderSession"]:  # noqa: D102
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            yield HTTPProviderSession(self._url, client)


class HTTPProviderSession(ProviderSession):
    def __init__(self, url: str, http_client: httpx.AsyncClient):
        self._url = url
        self._client = http_client
        self._request_id = 0

    def _prepare_request(self, method: str, *args: RPC_JSON) -> RPC_JSON:
        self._request_id += 1
        return {"jsonrpc": "2.0", "method": method, "params": args, "id": self._request_id}

    async def rpc(self, method: str, *args: RPC_JSON) -> RPC_JSON:
        json = self._prepare_request(method, *args)
        logger.debug("RPC request to %s: %s", self._url, method)
        try:
            response = await self._client.post(self._url, json=json)
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ProviderError(Unreachable(str(exc))) from exc

        status = response.status_code

        try:
            response_json = response.json()
        except JSONDecodeError as exc:
            content = response.content.decode()
            raise ProviderError(
                InvalidResponse(f"Expected a JSON response, got HTTP status {status}: {content}")
            ) from exc

        if not isinstance(response_json, Mapping):
            raise ProviderError(
                InvalidResponse(f"RPC response must be a dictionary, got: {response_json}")
            )
        response_json = cast("Mapping[str, RPC_JSON]", response_json)

        # Node-side errors (e.g. a reverted call) come with the HTTP status 200,
        # so the "error" field has to be checked first.
        if "error" in response_json:
            try:
                error = structure(RPCError, response_json["error"])
            except StructuringError as exc:
                raise ProviderError(
                    InvalidResponse(f"Failed to parse an error response: {response_json}")
                ) from exc

            logger.debug("RPC error from %s for %s: %s", self._url, method, error)
            raise ProviderError(error)

        if status == HTTPStatus.OK:
            if "result" in response_json:
                return response_json["result"]
            raise ProviderError(
                InvalidResponse(f"`result` is not present in the response: {response_json}")
            )

        raise ProviderError(HTTPError(status, response.content.decode()))
