"""OpenCerts certificate verification.

Merkle path reconstruction, document digests, issuer identity resolution and
the orchestration of the store, issuer, hash, issued and revocation checks.
"""
