"""Certificate model and parsing.

An OpenCerts document has the layout::

    {
      "data": {... salted payload, including "issuers": [...] ...},
      "signature": {
        "type": "SHA3MerkleProof",
        "targetHash": "<hex>",
        "proof": ["<hex>", ...],
        "merkleRoot": "<hex>"
      },
      "privacy": {"obfuscatedData": ["<hex>", ...]}
    }

Every leaf value in ``data`` is salted as ``"<uuid>:<type>:<value>"`` so that
individual fields can later be obfuscated without breaking the document hash.
``certificate_data`` strips the salts to give the human-readable snapshot
that verdict events carry.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from app.core.config import SUPPORTED_SIGNATURE_TYPES
from .exceptions import CertificateParseError
from .merkle import normalize_hash

_SALTED_RE = re.compile(
    r"^[0-9a-fA-F-]{36}:(string|number|boolean|null|undefined):(.*)$", re.DOTALL
)
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

# Issuer fields naming the on-chain store, in lookup order.
STORE_FIELDS = ("certificateStore", "documentStore")


@dataclass(frozen=True)
class EnsName:
    """Issuer identified by an ENS name (e.g. ``govtech.opencerts.eth``)."""
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class EthereumAddress:
    """Issuer identified by a raw 20-byte chain address."""
    address: str

    def __str__(self) -> str:
        return self.address


IssuerRef = Union[EnsName, EthereumAddress]


def is_ethereum_address(value: str) -> bool:
    return bool(_ADDRESS_RE.match(value or ""))


def parse_issuer_ref(value: str) -> IssuerRef:
    """Classify an issuer identifier as an address or an ENS name."""
    if not isinstance(value, str) or not value.strip():
        raise CertificateParseError("Issuer identifier must be a non-empty string")
    value = value.strip()
    if is_ethereum_address(value):
        return EthereumAddress(value)
    return EnsName(value)


def unsalt(value: Any) -> Any:
    """Recursively strip ``<salt>:<type>:`` prefixes from salted values."""
    if isinstance(value, dict):
        return {k: unsalt(v) for k, v in value.items()}
    if isinstance(value, list):
        return [unsalt(v) for v in value]
    if isinstance(value, str):
        match = _SALTED_RE.match(value)
        if not match:
            return value
        kind, raw = match.groups()
        if kind == "string":
            return raw
        if kind == "number":
            number = float(raw)
            return int(number) if number.is_integer() else number
        if kind == "boolean":
            return raw == "true"
        return None
    return value


@dataclass(frozen=True)
class Certificate:
    """Immutable certificate value.

    Attributes:
        data: Salted canonical payload exactly as signed.
        target_hash: Leaf hash of this certificate in its batch.
        proof: Sibling hashes from leaf to root.
        merkle_root: Root the issuer recorded on chain.
        obfuscated_data: Hashes of fields removed from ``data``.
        raw: The full document as received.
    """
    data: Dict[str, Any]
    target_hash: str
    proof: Tuple[str, ...]
    merkle_root: str
    obfuscated_data: Tuple[str, ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def issuers(self) -> List[Dict[str, Any]]:
        issuers = unsalt(self.data.get("issuers") or [])
        return [i for i in issuers if isinstance(i, dict)]

    @property
    def issuer_refs(self) -> List[IssuerRef]:
        """One IssuerRef per issuer, taken from its store field."""
        refs = []
        for issuer in self.issuers:
            identifier = _store_identifier(issuer)
            if identifier:
                refs.append(parse_issuer_ref(identifier))
        return refs


def _store_identifier(issuer: Dict[str, Any]) -> Optional[str]:
    for key in STORE_FIELDS:
        value = issuer.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def certificate_data(certificate: Certificate) -> Dict[str, Any]:
    """Unsalted snapshot of the certificate payload for reporting."""
    return unsalt(certificate.data)


def first_issuer_identifier(data: Dict[str, Any]) -> Optional[str]:
    """Store identifier of the first issuer in an unsalted data snapshot."""
    issuers = data.get("issuers") or []
    if issuers and isinstance(issuers[0], dict):
        return _store_identifier(issuers[0])
    return None


def parse_certificate(document: Dict[str, Any]) -> Certificate:
    """Parse an OpenCerts JSON document into a Certificate.

    Raises:
        CertificateParseError: If required fields are missing or hashes are
            not 32-byte hex values.
    """
    if not isinstance(document, dict):
        raise CertificateParseError("Certificate must be a JSON object")

    data = document.get("data")
    if not isinstance(data, dict):
        raise CertificateParseError("Certificate is missing its data section")

    signature = document.get("signature")
    if not isinstance(signature, dict):
        raise CertificateParseError("Certificate is missing its signature section")

    signature_type = signature.get("type")
    if signature_type is not None and signature_type not in SUPPORTED_SIGNATURE_TYPES:
        raise CertificateParseError(f"Unsupported signature type: {signature_type}")

    proof = signature.get("proof") or []
    if not isinstance(proof, list):
        raise CertificateParseError("Certificate proof must be a list of hashes")

    privacy = document.get("privacy") or {}
    obfuscated = privacy.get("obfuscatedData") or [] if isinstance(privacy, dict) else []

    try:
        return Certificate(
            data=data,
            target_hash=normalize_hash(signature.get("targetHash")),
            proof=tuple(normalize_hash(p) for p in proof),
            merkle_root=normalize_hash(signature.get("merkleRoot")),
            obfuscated_data=tuple(normalize_hash(h) for h in obfuscated),
            raw=document,
        )
    except ValueError as e:
        raise CertificateParseError(f"Certificate signature is malformed: {e}") from e
