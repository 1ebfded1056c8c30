"""ENS (Ethereum Name Service) resolution.

Names are resolved in two hops per EIP-137: the registry maps a name's
namehash to a resolver contract, and the resolver answers ``addr`` and
``text`` queries for that namehash.

Batched lookups send one JSON-RPC batch per hop, so resolving any number of
names costs two HTTP round trips.
"""

import logging
from typing import List, Optional, Sequence

from eth_abi.exceptions import DecodingError

from .abi import decode_result, encode_call
from .exceptions import CallReverted
from .rpc import EthRpcClient
from app.opencerts.merkle import keccak256

log = logging.getLogger(__name__)


def namehash(name: str) -> bytes:
    """EIP-137 namehash of a dotted name (lowercased, no UTS-46 mapping)."""
    node = b"\x00" * 32
    if name:
        for label in reversed(name.lower().split(".")):
            node = keccak256(node + keccak256(label.encode("utf-8")))
    return node


def _decode_address(data: bytes) -> Optional[str]:
    if len(data) < 32:
        return None
    try:
        (address,) = decode_result(["address"], data)
    except DecodingError:
        return None
    return None if int(address, 16) == 0 else address


def _decode_text(data: bytes) -> str:
    if len(data) < 64:
        return ""
    try:
        (text,) = decode_result(["string"], data)
    except (DecodingError, UnicodeDecodeError):
        # Resolver answered with something that is not an ABI string
        return ""
    return text.strip()


class EnsResolver:
    """Forward resolution and text records for ENS names."""

    def __init__(self, rpc: EthRpcClient, registry_address: str):
        self.rpc = rpc
        self.registry_address = registry_address

    async def _resolvers(self, names: Sequence[str]) -> List[Optional[str]]:
        calls = [
            (self.registry_address, encode_call("resolver(bytes32)", ["bytes32"], [namehash(n)]))
            for n in names
        ]
        return [_decode_address(r) for r in await self.rpc.eth_call_batch(calls)]

    async def resolve_address(self, name: str) -> Optional[str]:
        """Address a name points to, or None if it has no resolver/record."""
        (resolver,) = await self._resolvers([name])
        if resolver is None:
            log.info(f"ens: no resolver for {name}")
            return None
        try:
            data = await self.rpc.eth_call(
                resolver, encode_call("addr(bytes32)", ["bytes32"], [namehash(name)])
            )
        except CallReverted:
            log.info(f"ens: resolver for {name} has no address record")
            return None
        return _decode_address(data)

    async def resolve_text_batch(self, names: Sequence[str], key: str) -> List[Optional[str]]:
        """Display text for each name, aligned with the input.

        A name with a text record yields the record. A name that resolves to
        an address but has no record yields the name itself. A name with no
        resolver or no address yields None.
        """
        names = list(names)
        resolvers = await self._resolvers(names)

        pending = [(i, r) for i, r in enumerate(resolvers) if r is not None]
        calls = []
        for i, resolver in pending:
            node = namehash(names[i])
            calls.append((resolver, encode_call("text(bytes32,string)", ["bytes32", "string"], [node, key])))
            calls.append((resolver, encode_call("addr(bytes32)", ["bytes32"], [node])))
        answers = await self.rpc.eth_call_batch(calls) if calls else []

        results: List[Optional[str]] = [None] * len(names)
        for n, (i, _) in enumerate(pending):
            text = _decode_text(answers[2 * n])
            address = _decode_address(answers[2 * n + 1])
            if text:
                results[i] = text
            elif address is not None:
                results[i] = names[i]
        log.info(
            f"ens: resolved {sum(r is not None for r in results)}/{len(names)} name(s) key={key}"
        )
        return results
