"""Issuer identity resolution.

Turns a certificate's issuer references into display names. References are
split by kind and each kind is resolved with one batched lookup:

- ENS names via the name resolver's ENS lookup
- Raw addresses via the issuer registry lookup

The ENS lookup runs first; the address lookup is issued once it returns.
Results are returned address names first, then ENS names, independent of how
the two kinds are interleaved in the certificate.
"""

import logging
from typing import List, Protocol, Sequence

import httpx

from .certificate import EnsName, EthereumAddress, IssuerRef
from .exceptions import IdentityResolutionError, ResolutionFault

log = logging.getLogger(__name__)


class NameResolver(Protocol):
    """Batched name lookups; both raise ResolutionFault on backend errors."""

    async def resolve_ens_batch(self, names: Sequence[str]) -> List[str]:
        ...

    async def resolve_address_batch(self, addresses: Sequence[str]) -> List[str]:
        ...


def partition_issuers(issuers: Sequence[IssuerRef]) -> tuple:
    """Split references into (ens_names, addresses), keeping relative order."""
    ens_names = [i.name for i in issuers if isinstance(i, EnsName)]
    addresses = [i.address for i in issuers if isinstance(i, EthereumAddress)]
    return ens_names, addresses


class IssuerIdentityResolver:
    """Resolves issuer references into display names."""

    def __init__(self, resolver: NameResolver):
        self.resolver = resolver

    async def resolve(self, issuers: Sequence[IssuerRef]) -> List[str]:
        """Resolve issuers to names, address-resolved names first.

        Raises:
            IdentityResolutionError: If there are no issuers, nothing resolves,
                or a lookup fails (carrying the lookup's message).
        """
        if not issuers:
            raise IdentityResolutionError.missing()

        ens_names, addresses = partition_issuers(issuers)
        ens_resolved: List[str] = []
        address_resolved: List[str] = []

        try:
            if ens_names:
                ens_resolved = list(await self.resolver.resolve_ens_batch(ens_names))
            if addresses:
                address_resolved = list(await self.resolver.resolve_address_batch(addresses))
        except ResolutionFault as e:
            raise IdentityResolutionError.lookup_failed(e.message) from e
        except httpx.HTTPError as e:
            raise IdentityResolutionError.lookup_failed(str(e)) from e

        names = address_resolved + ens_resolved
        log.info(
            f"identity: ens={len(ens_names)}->{len(ens_resolved)} "
            f"addresses={len(addresses)}->{len(address_resolved)}"
        )
        if not names:
            raise IdentityResolutionError.missing()
        return names
