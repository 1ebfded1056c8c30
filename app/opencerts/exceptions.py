"""
OpenCerts verifier exceptions.
Maps verification failures to structured error codes.

Substantive negatives (not issued, revoked, hash mismatch) use fixed
messages. Infrastructure faults pass the underlying message through and map
to recoverable codes.
"""

from typing import Optional

from app.opencerts.api_models import ErrorCode

ISSUER_IDENTITY_MISSING_MESSAGE = "Issuer identity missing in certificate"
HASH_MISMATCH_MESSAGE = "Certificate data does not match target hash"
NOT_ISSUED_MESSAGE = "Certificate has not been issued"
REVOKED_MESSAGE = "Certificate has been revoked, revoked hash: {}"


class CertificateError(Exception):
    """Base exception for certificate verification.

    Carries an error code that maps to ErrorCode constants.
    The caller is responsible for converting this to ErrorDetail.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class CertificateParseError(CertificateError):
    """Certificate JSON is structurally unusable."""

    def __init__(self, message: str = "Certificate is malformed"):
        super().__init__(ErrorCode.CERTIFICATE_INVALID, message)


class IdentityResolutionError(CertificateError):
    """No legible issuer identity could be established."""

    @classmethod
    def missing(cls) -> "IdentityResolutionError":
        """Factory for an empty or fully unresolvable issuer list."""
        return cls(
            code=ErrorCode.ISSUER_IDENTITY_MISSING,
            message=ISSUER_IDENTITY_MISSING_MESSAGE,
        )

    @classmethod
    def lookup_failed(cls, reason: str) -> "IdentityResolutionError":
        """Factory for name/address lookup faults.

        The underlying message is kept verbatim so reporters can show it.
        """
        return cls(code=ErrorCode.ISSUER_RESOLUTION_FAILED, message=reason)


class HashMismatchError(CertificateError):
    def __init__(self, message: str = HASH_MISMATCH_MESSAGE):
        super().__init__(ErrorCode.HASH_MISMATCH, message)


class NotIssuedError(CertificateError):
    def __init__(self, message: str = NOT_ISSUED_MESSAGE):
        super().__init__(ErrorCode.NOT_ISSUED, message)


class RevokedError(CertificateError):
    """A store flagged one of the hashes on the certificate's Merkle path."""

    def __init__(self, revoked_hash: str):
        self.revoked_hash = revoked_hash
        super().__init__(ErrorCode.REVOKED, REVOKED_MESSAGE.format(revoked_hash))


class StoreUnresolvedError(CertificateError):
    """Issuer's document store cannot be located or is not a document store."""

    def __init__(self, issuer: str, reason: Optional[str] = None):
        self.issuer = issuer
        message = f"Document store for issuer {issuer} could not be resolved"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(ErrorCode.STORE_UNRESOLVED, message)


class StoreQueryFault(CertificateError):
    """Transport/backend fault while reading a document store."""

    def __init__(self, message: str = "Document store query failed"):
        super().__init__(ErrorCode.STORE_QUERY_FAILED, message)


class ResolutionFault(CertificateError):
    """Transport/backend fault while resolving ENS names or registry entries."""

    def __init__(self, message: str = "Issuer name resolution failed"):
        super().__init__(ErrorCode.ISSUER_RESOLUTION_FAILED, message)
