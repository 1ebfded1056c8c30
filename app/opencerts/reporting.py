"""Verdict reporting and failure telemetry.

Reporters receive verdict events in emission order. Analytics adapters
receive one record per failed check; they are fire-and-forget and must never
block or fail a verification run.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional, Protocol, Set

import httpx

from app.core.config import ANALYTICS_EVENT_CATEGORY, ANALYTICS_EVENT_LABEL
from .api_models import VerdictEvent
from .certificate import first_issuer_identifier

log = logging.getLogger(__name__)


# =============================================================================
# Reporters
# =============================================================================


class Reporter(Protocol):
    def report(self, event: VerdictEvent) -> None:
        ...


class CollectingReporter:
    """Keeps every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: List[VerdictEvent] = []

    def report(self, event: VerdictEvent) -> None:
        self.events.append(event)


class LoggingReporter:
    """Writes each verdict to the log, forwarding to an inner reporter."""

    def __init__(self, inner: Optional[Reporter] = None, logger: Optional[logging.Logger] = None):
        self.inner = inner
        self.logger = logger or log

    def report(self, event: VerdictEvent) -> None:
        extra = {"check": event.check.value}
        if event.issuer:
            extra["issuer"] = event.issuer
        if event.ok:
            self.logger.info(f"verdict {event.kind.value}", extra=extra)
        else:
            self.logger.warning(f"verdict {event.kind.value}: {event.error}", extra=extra)
        if self.inner is not None:
            self.inner.report(event)


# =============================================================================
# Analytics
# =============================================================================


class ErrorKind(IntEnum):
    """Failure category sent with each telemetry record."""
    ISSUER = 0
    HASH = 1
    ISSUED = 2
    REVOCATION = 3


@dataclass(frozen=True)
class AnalyticsRecord:
    """One telemetry event: category / action / label / value."""
    category: str
    action: str
    label: str
    value: int

    @classmethod
    def for_failure(cls, kind: ErrorKind, certificate: Dict[str, Any]) -> "AnalyticsRecord":
        """Record keyed by the first issuer's store identifier."""
        return cls(
            category=ANALYTICS_EVENT_CATEGORY,
            action=first_issuer_identifier(certificate) or "unknown",
            label=ANALYTICS_EVENT_LABEL,
            value=int(kind),
        )


class AnalyticsAdapter(Protocol):
    def send(self, kind: ErrorKind, certificate: Dict[str, Any]) -> None:
        ...


class NullAnalytics:
    def send(self, kind: ErrorKind, certificate: Dict[str, Any]) -> None:
        return None


class LoggingAnalytics:
    """Emits telemetry records to the log only."""

    def __init__(self) -> None:
        self.records: List[AnalyticsRecord] = []

    def send(self, kind: ErrorKind, certificate: Dict[str, Any]) -> None:
        record = AnalyticsRecord.for_failure(kind, certificate)
        self.records.append(record)
        log.info(
            f"analytics {record.category} action={record.action} "
            f"label={record.label} value={record.value}"
        )


class GoogleAnalyticsAdapter:
    """Posts failure events to the Google Analytics collect endpoint.

    Each send schedules a background task on the running loop; delivery
    errors are logged and dropped.
    """

    def __init__(
        self,
        tracking_id: str,
        collect_url: str,
        client_id: str = "opencerts-verifier",
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.tracking_id = tracking_id
        self.collect_url = collect_url
        self.client_id = client_id
        self.timeout = timeout
        self._transport = transport
        self._tasks: Set[asyncio.Task] = set()

    def payload(self, record: AnalyticsRecord) -> Dict[str, str]:
        return {
            "v": "1",
            "t": "event",
            "tid": self.tracking_id,
            "cid": self.client_id,
            "ec": record.category,
            "ea": record.action,
            "el": record.label,
            "ev": str(record.value),
        }

    async def _deliver(self, record: AnalyticsRecord) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.collect_url, data=self.payload(record))
                resp.raise_for_status()
        except httpx.HTTPError as e:
            log.warning(f"analytics delivery failed: {type(e).__name__}: {e}")

    def send(self, kind: ErrorKind, certificate: Dict[str, Any]) -> None:
        record = AnalyticsRecord.for_failure(kind, certificate)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.warning("analytics dropped: no running event loop")
            return
        task = loop.create_task(self._deliver(record))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for in-flight deliveries (used on shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))
