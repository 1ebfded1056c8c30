"""
OpenCerts verifier API models.

Verdict events, error registry and request/response bodies shared by the
verification engine, the HTTP service and the CLI.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Check categories and verdict kinds
# =============================================================================

class CheckName(str, Enum):
    """The five independent checks run against a certificate."""
    STORE = "store"
    ISSUER = "issuer"
    HASH = "hash"
    ISSUED = "issued"
    REVOCATION = "revocation"


class VerdictKind(str, Enum):
    """Terminal outcome of a single check."""
    STORE_OK = "STORE_OK"
    STORE_FAIL = "STORE_FAIL"
    ISSUER_OK = "ISSUER_OK"
    ISSUER_FAIL = "ISSUER_FAIL"
    HASH_OK = "HASH_OK"
    HASH_FAIL = "HASH_FAIL"
    ISSUED_OK = "ISSUED_OK"
    ISSUED_FAIL = "ISSUED_FAIL"
    REVOCATION_OK = "REVOCATION_OK"
    REVOCATION_FAIL = "REVOCATION_FAIL"


_KINDS: Dict[CheckName, tuple] = {
    CheckName.STORE: (VerdictKind.STORE_OK, VerdictKind.STORE_FAIL),
    CheckName.ISSUER: (VerdictKind.ISSUER_OK, VerdictKind.ISSUER_FAIL),
    CheckName.HASH: (VerdictKind.HASH_OK, VerdictKind.HASH_FAIL),
    CheckName.ISSUED: (VerdictKind.ISSUED_OK, VerdictKind.ISSUED_FAIL),
    CheckName.REVOCATION: (VerdictKind.REVOCATION_OK, VerdictKind.REVOCATION_FAIL),
}


# =============================================================================
# Error Models
# =============================================================================

class ErrorDetail(BaseModel):
    """Error detail attached to failed verdicts."""
    code: str
    message: str
    recoverable: bool


class ErrorCode:
    """Error code registry."""
    # Input layer
    CERTIFICATE_INVALID = "CERTIFICATE_INVALID"

    # Crypto layer
    HASH_MISMATCH = "HASH_MISMATCH"

    # Identity layer
    ISSUER_IDENTITY_MISSING = "ISSUER_IDENTITY_MISSING"
    ISSUER_RESOLUTION_FAILED = "ISSUER_RESOLUTION_FAILED"

    # Document store layer
    STORE_UNRESOLVED = "STORE_UNRESOLVED"
    STORE_QUERY_FAILED = "STORE_QUERY_FAILED"
    NOT_ISSUED = "NOT_ISSUED"
    REVOKED = "REVOKED"

    # Chain access
    RPC_FAILED = "RPC_FAILED"

    # Verifier layer
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Recoverable = infrastructure fault; retrying later may change the verdict.
ERROR_RECOVERABILITY: Dict[str, bool] = {
    ErrorCode.CERTIFICATE_INVALID: False,
    ErrorCode.HASH_MISMATCH: False,
    ErrorCode.ISSUER_IDENTITY_MISSING: False,
    ErrorCode.ISSUER_RESOLUTION_FAILED: True,   # Recoverable
    ErrorCode.STORE_UNRESOLVED: False,
    ErrorCode.STORE_QUERY_FAILED: True,         # Recoverable
    ErrorCode.NOT_ISSUED: False,
    ErrorCode.REVOKED: False,
    ErrorCode.RPC_FAILED: True,                 # Recoverable
    ErrorCode.INTERNAL_ERROR: True,             # Recoverable
}


# =============================================================================
# Verdict Events
# =============================================================================

class VerdictEvent(BaseModel):
    """One terminal event per executed check.

    Failure events carry the unsalted certificate data so a reporter can
    render the message without re-deriving any state.
    """
    kind: VerdictKind
    check: CheckName
    ok: bool
    error: Optional[str] = None
    code: Optional[str] = None
    recoverable: bool = False
    names: List[str] = Field(default_factory=list)
    issuer: Optional[str] = None
    revoked_hash: Optional[str] = None
    certificate: Optional[Dict[str, Any]] = None

    @classmethod
    def success(cls, check: CheckName, **extra: Any) -> "VerdictEvent":
        return cls(kind=_KINDS[check][0], check=check, ok=True, **extra)

    @classmethod
    def failure(
        cls,
        check: CheckName,
        error: ErrorDetail,
        certificate: Optional[Dict[str, Any]] = None,
        **extra: Any,
    ) -> "VerdictEvent":
        return cls(
            kind=_KINDS[check][1],
            check=check,
            ok=False,
            error=error.message,
            code=error.code,
            recoverable=error.recoverable,
            certificate=certificate,
            **extra,
        )


# =============================================================================
# Request / Response Models
# =============================================================================

class VerifyRequest(BaseModel):
    """Request body for /verify."""
    certificate: Dict[str, Any]


class VerifyResponse(BaseModel):
    """Response body for /verify."""
    request_id: str
    valid: bool
    events: List[VerdictEvent] = Field(default_factory=list)
    errors: Optional[List[ErrorDetail]] = None


class ChainRequest(BaseModel):
    """Request body for /chain."""
    target_hash: str
    proof: List[str] = Field(default_factory=list)


class ChainResponse(BaseModel):
    chain: List[str]
