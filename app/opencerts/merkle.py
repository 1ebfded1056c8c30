"""Merkle path reconstruction for certificate batches.

Certificates are issued in batches: every certificate's target hash is a leaf
of a Merkle tree whose root is recorded in the issuer's document store. The
certificate carries the sibling hashes needed to walk from its leaf to that
root.

Hashing:
- Keccak-256 (the Ethereum variant, not NIST SHA3-256)
- Parent = keccak256(min(a, b) || max(a, b)) with byte-wise ordering, so a
  pair hashes identically whichever side the running hash is on.

Hashes are rendered as ``0x``-prefixed lowercase hex throughout.
"""

from typing import Iterable, Tuple

from Crypto.Hash import keccak

HASH_SIZE = 32

HashChain = Tuple[str, ...]


def keccak256(data: bytes) -> bytes:
    """Keccak-256 digest of raw bytes."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def hash_to_bytes(value: str) -> bytes:
    """Decode a hex hash with or without the ``0x`` prefix.

    Raises:
        ValueError: If the value is not 32 bytes of hex.
    """
    if not isinstance(value, str):
        raise ValueError(f"hash must be a hex string, got {type(value).__name__}")
    text = value.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    raw = bytes.fromhex(text)
    if len(raw) != HASH_SIZE:
        raise ValueError(f"hash must be {HASH_SIZE} bytes, got {len(raw)}")
    return raw


def bytes_to_hash(raw: bytes) -> str:
    return "0x" + raw.hex()


def normalize_hash(value: str) -> str:
    """Canonical ``0x``-prefixed lowercase rendering of a hash."""
    return bytes_to_hash(hash_to_bytes(value))


def combine_hashes(a: str, b: str) -> str:
    """Order-insensitive parent hash of two sibling hashes."""
    left, right = sorted((hash_to_bytes(a), hash_to_bytes(b)))
    return bytes_to_hash(keccak256(left + right))


def build_chain(target_hash: str, proof: Iterable[str] = ()) -> HashChain:
    """Reconstruct the hash chain from a leaf through its proof to the root.

    The first element is the target hash, each following element is the
    parent produced by combining the running hash with the next sibling, and
    the last element is the Merkle root implied by the proof. The result is
    purely structural: comparing the root against the certificate's declared
    root is the caller's concern.

    Args:
        target_hash: Leaf hash of the certificate.
        proof: Sibling hashes ordered from leaf to root (may be empty).

    Returns:
        Tuple of length ``len(proof) + 1``.
    """
    current = normalize_hash(target_hash)
    chain = [current]
    for sibling in proof:
        current = combine_hashes(current, sibling)
        chain.append(current)
    return tuple(chain)
