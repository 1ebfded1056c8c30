"""Issuer registry client and chain-backed name resolution.

The registry is a JSON document published by the OpenCerts operators:

    {"issuers": {"0x007d40224F6562461633ccfbaffd359EbB2FC9Ba": {"name": "..."}}}

Addresses are matched case-insensitively. Addresses missing from the
registry are dropped from lookup results rather than raised.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .ens import EnsResolver
from .exceptions import EthereumError
from app.opencerts.exceptions import ResolutionFault

logger = logging.getLogger("opencerts.registry")


@dataclass
class RegistryEntry:
    """Registry record for one document store address.

    Attributes:
        address: Store address as listed.
        name: Display name of the issuing organisation.
        display_card: Whether the issuer opted into a display card.
    """

    address: str
    name: str
    display_card: bool = False


def _parse_registry(data: Any) -> Dict[str, RegistryEntry]:
    """Parse registry JSON into a lowercase-address index."""
    issuers = data.get("issuers", {}) if isinstance(data, dict) else {}
    entries: Dict[str, RegistryEntry] = {}
    for address, record in issuers.items():
        if not isinstance(record, dict) or not record.get("name"):
            continue
        entries[address.lower()] = RegistryEntry(
            address=address,
            name=record["name"],
            display_card=bool(record.get("displayCard", False)),
        )
    return entries


class IssuerRegistry:
    """Fetches the registry once per lookup; nothing is cached across runs."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def fetch(self) -> Dict[str, RegistryEntry]:
        """Download and parse the registry.

        Raises:
            ResolutionFault: On timeout, HTTP error or invalid JSON.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"Registry fetch timeout: {self.url}")
            raise ResolutionFault(f"Issuer registry fetch timed out: {self.url}") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Registry fetch HTTP error: {e}")
            raise ResolutionFault(
                f"Issuer registry fetch failed: HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            logger.warning(f"Registry fetch failed: {e}")
            raise ResolutionFault(f"Issuer registry fetch failed: {e}") from e
        except ValueError as e:
            raise ResolutionFault(f"Issuer registry is not valid JSON: {e}") from e
        return _parse_registry(data)

    async def lookup_names(self, addresses: Sequence[str]) -> List[str]:
        """Display names of the registered addresses, in input order."""
        entries = await self.fetch()
        names = []
        for address in addresses:
            entry = entries.get(address.lower())
            if entry is None:
                logger.debug(f"Address not in registry: {address}")
                continue
            names.append(entry.name)
        return names


class ChainNameResolver:
    """NameResolver backed by ENS text records and the issuer registry."""

    def __init__(self, ens: EnsResolver, registry: IssuerRegistry, text_key: str = "name"):
        self.ens = ens
        self.registry = registry
        self.text_key = text_key

    async def resolve_ens_batch(self, names: Sequence[str]) -> List[str]:
        """Resolve ENS names to display text; unresolvable names are dropped."""
        try:
            resolved = await self.ens.resolve_text_batch(names, self.text_key)
        except EthereumError as e:
            raise ResolutionFault(e.message) from e
        return [r for r in resolved if r]

    async def resolve_address_batch(self, addresses: Sequence[str]) -> List[str]:
        return await self.registry.lookup_names(addresses)
