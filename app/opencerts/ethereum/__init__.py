"""Ethereum access for certificate verification.

JSON-RPC transport, ENS resolution, the issuer registry and document store
handles. Nothing here holds state across verification runs.
"""

from .exceptions import EthereumError, RpcError, CallReverted
from .rpc import EthRpcClient
from .ens import EnsResolver, namehash
from .registry import IssuerRegistry, RegistryEntry, ChainNameResolver
from .document_store import DocumentStore, DocumentStoreGateway

__all__ = [
    # Exceptions
    "EthereumError",
    "RpcError",
    "CallReverted",
    # Transport
    "EthRpcClient",
    # Names
    "EnsResolver",
    "namehash",
    "IssuerRegistry",
    "RegistryEntry",
    "ChainNameResolver",
    # Stores
    "DocumentStore",
    "DocumentStoreGateway",
]
