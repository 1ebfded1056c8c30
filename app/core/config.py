"""
OpenCerts verifier configuration constants.

Constants are organized into:
- NORMATIVE: Fixed by the certificate format, cannot be changed
- POLICY: Implementation choices (timeouts, lookup keys)
- OPERATIONAL: Deployment-specific settings (env vars)
"""

import os

# =============================================================================
# NORMATIVE CONSTANTS (fixed by the certificate format)
# =============================================================================

# Signature types accepted in certificate["signature"]["type"]
SUPPORTED_SIGNATURE_TYPES: frozenset[str] = frozenset({"SHA3MerkleProof"})

# Canonical ENS registry (same address on mainnet and the public testnets)
DEFAULT_ENS_REGISTRY: str = "0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e"

# Telemetry category and label used for every failed check
ANALYTICS_EVENT_CATEGORY: str = "CERTIFICATE_ERROR"
ANALYTICS_EVENT_LABEL: str = "certificate-id"

# =============================================================================
# POLICY CONSTANTS (implementation choices)
# =============================================================================

# Per-call deadline for JSON-RPC reads against the chain.
# A call exceeding it is reported as an infrastructure fault, never retried.
RPC_TIMEOUT_SECONDS: float = float(os.getenv("OPENCERTS_RPC_TIMEOUT", "10.0"))

# Deadline for fetching the issuer registry JSON
REGISTRY_TIMEOUT_SECONDS: float = float(os.getenv("OPENCERTS_REGISTRY_TIMEOUT", "5.0"))

# ENS text record holding an issuer's display name.
# Names that resolve but carry no text fall back to the ENS name itself.
ENS_TEXT_KEY: str = os.getenv("OPENCERTS_ENS_TEXT_KEY", "name")

# =============================================================================
# OPERATIONAL SETTINGS (deployment-specific, via environment variables)
# =============================================================================

# Network label, for operator visibility only
NETWORK: str = os.getenv("OPENCERTS_NETWORK", "mainnet")

# JSON-RPC endpoint of an Ethereum node
ETH_RPC_URL: str = os.getenv("OPENCERTS_ETH_RPC_URL", "http://localhost:8545")

ENS_REGISTRY_ADDRESS: str = os.getenv("OPENCERTS_ENS_REGISTRY", DEFAULT_ENS_REGISTRY)

# Issuer registry mapping store addresses to display names
REGISTRY_URL: str = os.getenv(
    "OPENCERTS_REGISTRY_URL", "https://opencerts.io/static/registry.json"
)

# Telemetry is fire-and-forget; disabled unless a tracking id is configured
ANALYTICS_ENABLED: bool = os.getenv("OPENCERTS_ANALYTICS_ENABLED", "false").lower() == "true"
GA_TRACKING_ID: str = os.getenv("OPENCERTS_GA_TRACKING_ID", "")
GA_COLLECT_URL: str = os.getenv(
    "OPENCERTS_GA_COLLECT_URL", "https://www.google-analytics.com/collect"
)

# Admin endpoint visibility
# Default: True for dev, set to False in production deployments
ADMIN_ENDPOINT_ENABLED: bool = os.getenv("ADMIN_ENDPOINT_ENABLED", "true").lower() == "true"
