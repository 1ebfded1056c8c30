"""Shared fixtures for verifier unit tests.

Certificates are built on the fly so their target hash and Merkle root are
always consistent with the digest implementation under test.
"""

from typing import Iterable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.opencerts.certificate import Certificate, parse_certificate
from app.opencerts.digest import digest_document
from app.opencerts.merkle import build_chain


# Sibling hashes used as a two-level proof
PROOF_0 = "0x" + "11" * 32
PROOF_1 = "0x" + "ee" * 32

ISSUER_ADDRESS = "0xd2536C3cc7eb51447F6dA8d60Ba6344A79590b4F"
ISSUER_ADDRESS_2 = "0x0096Ca31c87771a2Ed212D4b2E689e712Bd938F9"
ENS_NAME = "govtech-test.sg.opencerts.eth"
ENS_NAME_2 = "govtech-test2.sg.opencerts.eth"
VALID_CERT_STORE = "0x007d40224f6562461633ccfbaffd359ebb2fc9ba"


class CertificateBuilder:
    """Builds signed certificate documents for tests."""

    def __init__(self) -> None:
        self.issuers: List[dict] = []
        self.proof: List[str] = []
        self.extra: dict = {}

    def add_issuer(self, store: str, name: Optional[str] = None) -> "CertificateBuilder":
        issuer = {"certificateStore": store}
        if name:
            issuer["name"] = name
        self.issuers.append(issuer)
        return self

    def with_proof(self, proof: Iterable[str]) -> "CertificateBuilder":
        self.proof = list(proof)
        return self

    def with_data(self, **fields) -> "CertificateBuilder":
        self.extra.update(fields)
        return self

    def document(self) -> dict:
        data = {
            "id": "certificate-id",
            "name": "Bachelor of Verification",
            "recipient": {"name": "Jane Tan", "email": "jane@example.com"},
            "issuers": self.issuers,
        }
        data.update(self.extra)
        target = digest_document(data)
        root = build_chain(target, self.proof)[-1]
        return {
            "data": data,
            "signature": {
                "type": "SHA3MerkleProof",
                "targetHash": target[2:],
                "proof": [p[2:] for p in self.proof],
                "merkleRoot": root[2:],
            },
        }

    def finish(self) -> Certificate:
        return parse_certificate(self.document())


def mock_store(issued: bool = True, revoked: bool = False) -> MagicMock:
    """Store handle whose answers can be tuned per test."""
    store = MagicMock()
    store.is_issued = AsyncMock(return_value=issued)
    store.is_revoked = AsyncMock(return_value=revoked)
    return store


@pytest.fixture
def builder() -> CertificateBuilder:
    return CertificateBuilder()


@pytest.fixture
def one_address_certificate() -> Certificate:
    return CertificateBuilder().add_issuer(ISSUER_ADDRESS).finish()


@pytest.fixture
def chained_certificate() -> Certificate:
    """Single issuer with a two-element proof (chain of three hashes)."""
    return CertificateBuilder().add_issuer(ISSUER_ADDRESS).with_proof([PROOF_0, PROOF_1]).finish()
