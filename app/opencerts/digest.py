"""Document digest and signature check.

The target hash of a certificate commits to every field of its data section:

1. Flatten ``data`` to dotted key paths (list indices become keys; empty
   containers are kept as leaf values).
2. Hash each field as ``keccak256(json({path: value}))``.
3. Add the hashes of obfuscated fields from ``privacy.obfuscatedData``.
4. Sort the hex digests and hash their JSON array.

Obfuscating a field therefore moves its hash from step 2 to step 3 without
changing the digest.
"""

import json
from typing import Any, Dict, List

from .certificate import Certificate
from .merkle import build_chain, keccak256


def flatten(data: Any, prefix: str = "") -> Dict[str, Any]:
    """Flatten nested dicts/lists into ``{"a.b.0": value}`` form."""
    out: Dict[str, Any] = {}
    if isinstance(data, dict) and data:
        items = data.items()
    elif isinstance(data, list) and data:
        items = ((str(i), v) for i, v in enumerate(data))
    else:
        if prefix:
            out[prefix] = data
        return out

    for key, value in items:
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, (dict, list)) and value:
            out.update(flatten(value, path))
        else:
            out[path] = value
    return out


def _json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def field_hashes(data: Dict[str, Any]) -> List[str]:
    """Hex digests (no prefix) of every flattened field."""
    return [
        keccak256(_json({path: value}).encode("utf-8")).hex()
        for path, value in flatten(data).items()
    ]


def digest_document(data: Dict[str, Any], obfuscated_data: List[str] = ()) -> str:
    """Compute the ``0x``-prefixed target hash of a data section."""
    hashes = field_hashes(data)
    hashes.extend(h[2:] if h.startswith("0x") else h for h in obfuscated_data)
    return "0x" + keccak256(_json(sorted(hashes)).encode("utf-8")).hex()


def verify_signature(certificate: Certificate) -> bool:
    """Check that the data hashes to the target and the proof reaches the root.

    Never raises for a parsed certificate.
    """
    digest = digest_document(certificate.data, list(certificate.obfuscated_data))
    if digest != certificate.target_hash:
        return False
    chain = build_chain(certificate.target_hash, certificate.proof)
    return chain[-1] == certificate.merkle_root
