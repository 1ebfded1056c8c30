"""
Lightweight Ethereum JSON-RPC client.
Does not require web3 - uses direct HTTP queries against a node.

Only read methods are used: ``eth_call`` for contract reads and
``eth_getCode`` to confirm a contract exists at an address. Several calls
can be sent as one JSON-RPC batch (a single HTTP POST).
"""

import itertools
import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple

import httpx

from .exceptions import CallReverted, RpcError

log = logging.getLogger(__name__)

RpcCall = Tuple[str, Sequence[Any]]


def _hex_to_bytes(value: Any) -> bytes:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise RpcError(f"Malformed hex result: {value!r}")
    try:
        return bytes.fromhex(value[2:])
    except ValueError as e:
        raise RpcError(f"Malformed hex result: {value!r}") from e


class EthRpcClient:
    """Client for read-only Ethereum JSON-RPC calls.

    A new ``httpx.AsyncClient`` is opened per request; there is no shared
    connection state between verification runs.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize RPC client.

        Args:
            url: JSON-RPC endpoint of an Ethereum node.
            timeout: Per-request deadline in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._ids = itertools.count(1)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _post(self, payload: Any) -> Any:
        try:
            async with self._client() as client:
                resp = await client.post(self.url, json=payload)
                resp.raise_for_status()
                return resp.json()
        except httpx.TimeoutException as e:
            raise RpcError(f"JSON-RPC request to {self.url} timed out") from e
        except httpx.HTTPStatusError as e:
            raise RpcError(f"JSON-RPC HTTP error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise RpcError(f"JSON-RPC request failed: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise RpcError(f"JSON-RPC response is not JSON: {e}") from e

    @staticmethod
    def _unwrap(response: Any) -> Any:
        if not isinstance(response, dict):
            raise RpcError(f"Malformed JSON-RPC response: {response!r}")
        if response.get("error"):
            error = response["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            if "revert" in message.lower():
                raise CallReverted(message)
            raise RpcError(f"JSON-RPC error: {message}")
        if "result" not in response:
            raise RpcError("JSON-RPC response has no result")
        return response["result"]

    async def call(self, method: str, params: Sequence[Any]) -> Any:
        """Send a single JSON-RPC request and return its result."""
        request_id = next(self._ids)
        log.debug(f"rpc {method} id={request_id}")
        response = await self._post(
            {"jsonrpc": "2.0", "id": request_id, "method": method, "params": list(params)}
        )
        return self._unwrap(response)

    async def _batch_responses(self, calls: Iterable[RpcCall]) -> List[Any]:
        """Raw response objects for a batch, in request order."""
        requests = [
            {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": list(params)}
            for method, params in calls
        ]
        if not requests:
            return []
        log.debug(f"rpc batch size={len(requests)}")
        response = await self._post(requests)
        if not isinstance(response, list):
            # Some nodes answer a batch with a single error object
            self._unwrap(response)
            raise RpcError("JSON-RPC batch response is not a list")

        by_id = {r.get("id"): r for r in response if isinstance(r, dict)}
        responses = []
        for request in requests:
            if request["id"] not in by_id:
                raise RpcError(f"JSON-RPC batch response missing id {request['id']}")
            responses.append(by_id[request["id"]])
        return responses

    async def batch(self, calls: Iterable[RpcCall]) -> List[Any]:
        """Send several requests in one HTTP POST.

        Results are returned in request order regardless of the order the
        node answers in. Any failed member fails the whole batch.
        """
        return [self._unwrap(r) for r in await self._batch_responses(calls)]

    @staticmethod
    def eth_call_params(to: str, data: bytes) -> List[Any]:
        return [{"to": to, "data": "0x" + data.hex()}, "latest"]

    async def eth_call(self, to: str, data: bytes) -> bytes:
        """Execute a read-only contract call at the latest block."""
        result = _hex_to_bytes(await self.call("eth_call", self.eth_call_params(to, data)))
        if not result:
            raise CallReverted(f"Contract at {to} returned no data")
        return result

    async def eth_call_batch(self, calls: Sequence[Tuple[str, bytes]]) -> List[bytes]:
        """Execute several contract calls in one batch.

        Empty and reverted members are returned as ``b""`` rather than raised
        so callers can treat each member individually. Any other member error
        fails the whole batch.
        """
        responses = await self._batch_responses(
            ("eth_call", self.eth_call_params(to, data)) for to, data in calls
        )
        results = []
        for response in responses:
            try:
                results.append(_hex_to_bytes(self._unwrap(response)))
            except CallReverted:
                results.append(b"")
        return results

    async def get_code(self, address: str) -> bytes:
        """Deployed bytecode at an address (``b""`` for plain accounts)."""
        return _hex_to_bytes(await self.call("eth_getCode", [address, "latest"]))
