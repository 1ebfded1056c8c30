"""Certificate verification orchestration.

Runs five independent checks over one certificate and emits exactly one
verdict event per check:

- store:      every issuer's declared document store exists
- issuer:     issuer identities resolve to legible names
- hash:       certificate data reproduces the target hash and Merkle root
- issued:     every store reports the target hash as issued
- revocation: no store reports any hash on the Merkle path as revoked

No check gates another. A failure (substantive or infrastructure) is
captured in that check's event and the remaining checks still run.
Collaborators (gateway, name resolver, reporter, analytics) are injected so
each check can be driven with canned results.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import httpx

log = logging.getLogger(__name__)

from .api_models import (
    CheckName,
    ErrorCode,
    ErrorDetail,
    ERROR_RECOVERABILITY,
    VerdictEvent,
)
from .certificate import Certificate, IssuerRef, certificate_data
from .digest import verify_signature
from .exceptions import (
    CertificateError,
    HashMismatchError,
    IdentityResolutionError,
    NotIssuedError,
    RevokedError,
    StoreQueryFault,
    StoreUnresolvedError,
)
from .identity import IssuerIdentityResolver
from .merkle import build_chain
from .reporting import AnalyticsAdapter, ErrorKind, NullAnalytics, Reporter


# =============================================================================
# Collaborator interfaces
# =============================================================================


class StoreHandle(Protocol):
    async def is_issued(self, value: str) -> bool:
        ...

    async def is_revoked(self, value: str) -> bool:
        ...


class StoreGateway(Protocol):
    async def resolve_store(self, ref: IssuerRef) -> StoreHandle:
        ...


# Faults a store query may surface that are reported rather than raised
_STORE_FAULTS = (StoreQueryFault, httpx.HTTPError, asyncio.TimeoutError)


# =============================================================================
# Error Conversion
# =============================================================================


def to_error_detail(exc: Exception) -> ErrorDetail:
    """Convert domain exception to ErrorDetail.

    Extracts error code and message from exception attributes,
    and looks up recoverability from ERROR_RECOVERABILITY mapping.
    Exceptions without a code are treated as recoverable internal faults.
    """
    code = getattr(exc, "code", ErrorCode.INTERNAL_ERROR)
    message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
    recoverable = ERROR_RECOVERABILITY.get(code, True)
    return ErrorDetail(code=code, message=message, recoverable=recoverable)


def _fail(
    reporter: Reporter,
    analytics: AnalyticsAdapter,
    check: CheckName,
    exc: Exception,
    snapshot: Dict[str, Any],
    kind: Optional[ErrorKind] = None,
    **extra: Any,
) -> None:
    detail = to_error_detail(exc)
    log.info(f"  {check.value}: FAIL code={detail.code} msg={detail.message}")
    reporter.report(VerdictEvent.failure(check, detail, certificate=snapshot, **extra))
    if kind is not None:
        analytics.send(kind, snapshot)


# =============================================================================
# Store Check
# =============================================================================


async def verify_certificate_store(
    certificate: Certificate,
    gateway: StoreGateway,
    reporter: Reporter,
) -> Optional[List[StoreHandle]]:
    """Resolve every issuer's document store.

    Unanimity is required: one unresolved issuer fails the check, naming the
    first offender in issuer order.

    Returns:
        One handle per issuer, or None when the check failed.
    """
    snapshot = certificate_data(certificate)
    refs = certificate.issuer_refs
    log.info(f"verify_certificate_store: {len(refs)} issuer(s)")

    if not refs:
        _fail(reporter, NullAnalytics(), CheckName.STORE,
              StoreUnresolvedError("<none>", "certificate names no document store"), snapshot)
        return None

    stores: List[StoreHandle] = []
    for ref in refs:
        try:
            stores.append(await gateway.resolve_store(ref))
        except (StoreUnresolvedError,) + _STORE_FAULTS as e:
            _fail(reporter, NullAnalytics(), CheckName.STORE, e, snapshot, issuer=str(ref))
            return None

    reporter.report(VerdictEvent.success(CheckName.STORE))
    return stores


# =============================================================================
# Issuer Check
# =============================================================================


async def verify_certificate_issuer(
    certificate: Certificate,
    resolver: IssuerIdentityResolver,
    reporter: Reporter,
    analytics: Optional[AnalyticsAdapter] = None,
) -> bool:
    """Resolve issuer identities and report ISSUER_OK(names) or ISSUER_FAIL."""
    analytics = analytics or NullAnalytics()
    snapshot = certificate_data(certificate)
    try:
        names = await resolver.resolve(certificate.issuer_refs)
    except IdentityResolutionError as e:
        _fail(reporter, analytics, CheckName.ISSUER, e, snapshot, ErrorKind.ISSUER)
        return False
    except Exception as e:
        # Any other lookup fault is reported with its own message
        _fail(reporter, analytics, CheckName.ISSUER,
              IdentityResolutionError.lookup_failed(str(e) or type(e).__name__),
              snapshot, ErrorKind.ISSUER)
        return False

    log.info(f"  issuer: OK names={names}")
    reporter.report(VerdictEvent.success(CheckName.ISSUER, names=names))
    return True


# =============================================================================
# Hash Check
# =============================================================================


def verify_certificate_hash(
    certificate: Certificate,
    reporter: Reporter,
    analytics: Optional[AnalyticsAdapter] = None,
    verify: Callable[[Certificate], bool] = verify_signature,
) -> bool:
    """Check the certificate data against its target hash and Merkle root.

    Returns the same boolean that the emitted event encodes, so callers can
    compose on it directly.
    """
    analytics = analytics or NullAnalytics()
    if verify(certificate):
        reporter.report(VerdictEvent.success(CheckName.HASH))
        return True
    _fail(reporter, analytics, CheckName.HASH, HashMismatchError(),
          certificate_data(certificate), ErrorKind.HASH)
    return False


# =============================================================================
# Issued Check
# =============================================================================


async def verify_certificate_issued(
    certificate: Certificate,
    certificate_stores: Sequence[StoreHandle],
    reporter: Reporter,
    analytics: Optional[AnalyticsAdapter] = None,
) -> bool:
    """Require every store to report the target hash as issued.

    One ``is_issued`` query per store, all in flight together. Only the
    target hash is checked; the Merkle path is not walked.
    """
    analytics = analytics or NullAnalytics()
    snapshot = certificate_data(certificate)
    target = certificate.target_hash
    try:
        results = await _query_all(s.is_issued(target) for s in certificate_stores)
    except _STORE_FAULTS as e:
        _fail(reporter, analytics, CheckName.ISSUED, _as_fault(e), snapshot, ErrorKind.ISSUED)
        return False

    log.info(f"  issued: target={target} results={results}")
    if certificate_stores and all(results):
        reporter.report(VerdictEvent.success(CheckName.ISSUED))
        return True
    _fail(reporter, analytics, CheckName.ISSUED, NotIssuedError(), snapshot, ErrorKind.ISSUED)
    return False


# =============================================================================
# Revocation Check
# =============================================================================


async def verify_certificate_not_revoked(
    certificate: Certificate,
    certificate_stores: Sequence[StoreHandle],
    reporter: Reporter,
    analytics: Optional[AnalyticsAdapter] = None,
) -> bool:
    """Walk the Merkle path and require every store to clear every hash.

    Hashes are checked in chain order (target, intermediates, root). All
    stores are queried for a hash before moving to the next one, and the
    walk stops at the first hash any store reports as revoked.
    """
    analytics = analytics or NullAnalytics()
    snapshot = certificate_data(certificate)
    chain = build_chain(certificate.target_hash, certificate.proof)

    if not certificate_stores:
        _fail(reporter, analytics, CheckName.REVOCATION,
              StoreUnresolvedError("<none>", "no document store to query"), snapshot,
              ErrorKind.REVOCATION)
        return False

    for value in chain:
        try:
            results = await _query_all(s.is_revoked(value) for s in certificate_stores)
        except _STORE_FAULTS as e:
            _fail(reporter, analytics, CheckName.REVOCATION, _as_fault(e), snapshot,
                  ErrorKind.REVOCATION)
            return False
        if any(results):
            log.info(f"  revocation: hash {value} revoked")
            _fail(reporter, analytics, CheckName.REVOCATION, RevokedError(value), snapshot,
                  ErrorKind.REVOCATION, revoked_hash=value)
            return False

    log.info(f"  revocation: {len(chain)} hash(es) clear on {len(certificate_stores)} store(s)")
    reporter.report(VerdictEvent.success(CheckName.REVOCATION))
    return True


async def _query_all(queries) -> List[bool]:
    """Await every store query, then re-raise the first failure.

    No query is left running once the check has reported.
    """
    results = await asyncio.gather(*queries, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)


def _as_fault(exc: BaseException) -> CertificateError:
    if isinstance(exc, CertificateError):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return StoreQueryFault("Document store query timed out")
    return StoreQueryFault(str(exc) or type(exc).__name__)


# =============================================================================
# Main Orchestrator
# =============================================================================


@dataclass
class VerificationResult:
    """Outcome of a full verification run.

    Attributes:
        events: Verdict events in emission order, one per check.
    """

    events: List[VerdictEvent] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return bool(self.events) and all(e.ok for e in self.events)

    @property
    def names(self) -> List[str]:
        """Resolved issuer names (empty if the issuer check failed)."""
        for event in self.events:
            if event.check == CheckName.ISSUER and event.ok:
                return event.names
        return []

    def event_for(self, check: CheckName) -> Optional[VerdictEvent]:
        for event in self.events:
            if event.check == check:
                return event
        return None


class _RunReporter:
    """Collects events for the result and forwards them to the caller's reporter."""

    def __init__(self, inner: Optional[Reporter]):
        self.inner = inner
        self.events: List[VerdictEvent] = []

    def report(self, event: VerdictEvent) -> None:
        self.events.append(event)
        if self.inner is not None:
            self.inner.report(event)


class VerificationOrchestrator:
    """Sequences the five checks over one certificate.

    Store resolution runs first because the issued and revocation checks
    read from the resolved stores. The issuer, hash, issued and revocation
    checks then run concurrently. If stores could not be resolved, the
    issued and revocation checks report the store failure instead of
    querying anything.
    """

    def __init__(
        self,
        gateway: StoreGateway,
        identity: IssuerIdentityResolver,
        reporter: Optional[Reporter] = None,
        analytics: Optional[AnalyticsAdapter] = None,
        verify: Callable[[Certificate], bool] = verify_signature,
    ):
        self.gateway = gateway
        self.identity = identity
        self.reporter = reporter
        self.analytics = analytics or NullAnalytics()
        self.verify = verify

    async def verify_certificate(self, certificate: Certificate) -> VerificationResult:
        """Run every check and return the events emitted.

        A check that raises unexpectedly still yields one failure event, so
        the result always holds exactly one event per check.
        """
        reporter = _RunReporter(self.reporter)
        snapshot = certificate_data(certificate)
        log.info(f"verify_certificate: target={certificate.target_hash} proof={len(certificate.proof)}")

        try:
            stores = await verify_certificate_store(certificate, self.gateway, reporter)
        except Exception as e:
            log.error(f"store check raised: {type(e).__name__}: {e}")
            _fail(reporter, NullAnalytics(), CheckName.STORE, e, snapshot)
            stores = None
        verify_certificate_hash(certificate, reporter, self.analytics, self.verify)

        checks = [(CheckName.ISSUER,
                   verify_certificate_issuer(certificate, self.identity, reporter, self.analytics))]
        if stores is not None:
            checks.append((CheckName.ISSUED,
                           verify_certificate_issued(certificate, stores, reporter, self.analytics)))
            checks.append((CheckName.REVOCATION,
                           verify_certificate_not_revoked(certificate, stores, reporter, self.analytics)))
        else:
            store_event = VerificationResult(events=reporter.events).event_for(CheckName.STORE)
            self._report_unreachable(certificate, reporter, store_event)

        outcomes = await asyncio.gather(*(c for _, c in checks), return_exceptions=True)
        for (check, _), outcome in zip(checks, outcomes):
            if not isinstance(outcome, Exception):
                continue
            log.error(f"{check.value} check raised: {type(outcome).__name__}: {outcome}")
            if all(e.check != check for e in reporter.events):
                _fail(reporter, NullAnalytics(), check, outcome, snapshot)

        return VerificationResult(events=reporter.events)

    def _report_unreachable(
        self,
        certificate: Certificate,
        reporter: Reporter,
        store_event: VerdictEvent,
    ) -> None:
        snapshot = certificate_data(certificate)
        detail = ErrorDetail(
            code=store_event.code or ErrorCode.STORE_UNRESOLVED,
            message=store_event.error or "Document store could not be resolved",
            recoverable=store_event.recoverable,
        )
        for check, kind in ((CheckName.ISSUED, ErrorKind.ISSUED),
                            (CheckName.REVOCATION, ErrorKind.REVOCATION)):
            reporter.report(VerdictEvent.failure(check, detail, certificate=snapshot))
            self.analytics.send(kind, snapshot)
