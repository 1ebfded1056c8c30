"""Contract call encoding helpers over eth-abi."""

from typing import Any, Sequence, Tuple

from eth_abi import decode, encode

from app.opencerts.merkle import hash_to_bytes, keccak256


def selector(signature: str) -> bytes:
    """4-byte function selector, e.g. ``selector("name()") == 0x06fdde03``."""
    return keccak256(signature.encode("ascii"))[:4]


def encode_call(signature: str, types: Sequence[str] = (), args: Sequence[Any] = ()) -> bytes:
    """Calldata for a function given its canonical signature and arguments."""
    return selector(signature) + (encode(list(types), list(args)) if types else b"")


def decode_result(types: Sequence[str], data: bytes) -> Tuple[Any, ...]:
    return decode(list(types), data)


def bytes32(value: str) -> bytes:
    """A 0x-hex hash as the raw bytes32 argument."""
    return hash_to_bytes(value)
