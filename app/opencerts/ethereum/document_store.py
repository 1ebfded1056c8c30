"""Document store contract access.

A document store records, per hash, whether it was issued and whether it was
revoked. Issuers record a batch's Merkle root; revocation may target any
hash on a certificate's path (a single certificate, a sub-batch, or the
whole batch).

Contract surface used here:
- ``name() -> string``            existence check
- ``isIssued(bytes32) -> bool``
- ``isRevoked(bytes32) -> bool``
"""

import logging
from typing import Optional

from eth_abi.exceptions import DecodingError

from .abi import bytes32, decode_result, encode_call
from .ens import EnsResolver
from .exceptions import CallReverted, RpcError
from .rpc import EthRpcClient
from app.opencerts.certificate import EnsName, EthereumAddress, IssuerRef
from app.opencerts.exceptions import StoreQueryFault, StoreUnresolvedError

log = logging.getLogger(__name__)


class DocumentStore:
    """Read-only handle on one issuer's document store.

    Handles are created per verification run and never mutate the store.
    """

    def __init__(self, rpc: EthRpcClient, address: str, issuer: Optional[str] = None):
        self.rpc = rpc
        self.address = address
        self.issuer = issuer or address

    def __repr__(self) -> str:
        return f"DocumentStore({self.address!r}, issuer={self.issuer!r})"

    async def _read_bool(self, signature: str, value: str) -> bool:
        try:
            data = await self.rpc.eth_call(self.address, encode_call(signature, ["bytes32"], [bytes32(value)]))
            (result,) = decode_result(["bool"], data)
        except RpcError as e:
            raise StoreQueryFault(f"{signature} on {self.address} failed: {e.message}") from e
        except DecodingError as e:
            raise StoreQueryFault(f"{signature} on {self.address} returned malformed data") from e
        return bool(result)

    async def is_issued(self, value: str) -> bool:
        """Whether the store recorded ``value`` as issued.

        Raises:
            StoreQueryFault: On transport failure or a malformed answer.
        """
        return await self._read_bool("isIssued(bytes32)", value)

    async def is_revoked(self, value: str) -> bool:
        """Whether the store recorded ``value`` as revoked.

        Raises:
            StoreQueryFault: On transport failure or a malformed answer.
        """
        return await self._read_bool("isRevoked(bytes32)", value)

    async def name(self) -> str:
        data = await self.rpc.eth_call(self.address, encode_call("name()"))
        (name,) = decode_result(["string"], data)
        return name


class DocumentStoreGateway:
    """Resolves issuer references to document store handles."""

    def __init__(self, rpc: EthRpcClient, ens: EnsResolver):
        self.rpc = rpc
        self.ens = ens

    async def _address_for(self, ref: IssuerRef) -> str:
        if isinstance(ref, EthereumAddress):
            return ref.address
        if isinstance(ref, EnsName):
            address = await self.ens.resolve_address(ref.name)
            if address is None:
                raise StoreUnresolvedError(str(ref), "ENS name does not resolve to an address")
            log.info(f"store: {ref.name} -> {address}")
            return address
        raise StoreUnresolvedError(str(ref), "unsupported issuer identifier")

    async def resolve_store(self, ref: IssuerRef) -> DocumentStore:
        """Locate and validate the document store for an issuer.

        The address must hold contract code and answer the ``name()`` read.

        Raises:
            StoreUnresolvedError: Name does not resolve, no contract is
                deployed, or the contract is not a document store.
            StoreQueryFault: The node could not be reached.
        """
        issuer = str(ref)
        try:
            address = await self._address_for(ref)
            code = await self.rpc.get_code(address)
            if not code:
                raise StoreUnresolvedError(issuer, f"no contract deployed at {address}")
            store = DocumentStore(self.rpc, address, issuer=issuer)
            try:
                await store.name()
            except (CallReverted, DecodingError, UnicodeDecodeError) as e:
                raise StoreUnresolvedError(
                    issuer, f"contract at {address} is not a document store"
                ) from e
        except StoreUnresolvedError:
            raise
        except RpcError as e:
            raise StoreQueryFault(f"Resolving store for {issuer} failed: {e.message}") from e
        return store
