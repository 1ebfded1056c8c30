"""Tests for verdict reporters and failure telemetry."""

import logging
from urllib.parse import parse_qs

import httpx
import pytest

from app.opencerts.api_models import CheckName, ErrorCode, ErrorDetail, VerdictEvent, VerdictKind
from app.opencerts.reporting import (
    AnalyticsRecord,
    CollectingReporter,
    ErrorKind,
    GoogleAnalyticsAdapter,
    LoggingAnalytics,
    LoggingReporter,
)

from conftest import ISSUER_ADDRESS, ISSUER_ADDRESS_2

CERTIFICATE = {
    "id": "certificate-id",
    "issuers": [{"certificateStore": ISSUER_ADDRESS}, {"certificateStore": ISSUER_ADDRESS_2}],
}
COLLECT_URL = "http://analytics.test/collect"


class TestAnalyticsRecord:
    @pytest.mark.parametrize("kind,value", [
        (ErrorKind.ISSUER, 0),
        (ErrorKind.HASH, 1),
        (ErrorKind.ISSUED, 2),
        (ErrorKind.REVOCATION, 3),
    ])
    def test_keyed_by_first_issuer(self, kind, value):
        record = AnalyticsRecord.for_failure(kind, CERTIFICATE)
        assert record == AnalyticsRecord(
            category="CERTIFICATE_ERROR",
            action=ISSUER_ADDRESS,
            label="certificate-id",
            value=value,
        )

    def test_document_store_field(self):
        record = AnalyticsRecord.for_failure(
            ErrorKind.HASH, {"issuers": [{"documentStore": ISSUER_ADDRESS_2}]}
        )
        assert record.action == ISSUER_ADDRESS_2

    def test_no_issuers(self):
        assert AnalyticsRecord.for_failure(ErrorKind.HASH, {}).action == "unknown"


class TestLoggingAnalytics:
    def test_records_and_logs(self, caplog):
        analytics = LoggingAnalytics()
        with caplog.at_level(logging.INFO, logger="app.opencerts.reporting"):
            analytics.send(ErrorKind.REVOCATION, CERTIFICATE)

        assert analytics.records == [AnalyticsRecord.for_failure(ErrorKind.REVOCATION, CERTIFICATE)]
        assert "value=3" in caplog.text


class TestGoogleAnalyticsAdapter:
    def test_payload(self):
        adapter = GoogleAnalyticsAdapter("UA-1234-5", COLLECT_URL, client_id="cid")
        payload = adapter.payload(AnalyticsRecord.for_failure(ErrorKind.ISSUED, CERTIFICATE))
        assert payload == {
            "v": "1",
            "t": "event",
            "tid": "UA-1234-5",
            "cid": "cid",
            "ec": "CERTIFICATE_ERROR",
            "ea": ISSUER_ADDRESS,
            "el": "certificate-id",
            "ev": "2",
        }

    @pytest.mark.asyncio
    async def test_send_posts_in_background(self):
        posted = []

        def handler(request):
            posted.append(parse_qs(request.content.decode()))
            return httpx.Response(200)

        adapter = GoogleAnalyticsAdapter(
            "UA-1234-5", COLLECT_URL, transport=httpx.MockTransport(handler)
        )
        adapter.send(ErrorKind.HASH, CERTIFICATE)
        await adapter.drain()

        assert len(posted) == 1
        assert posted[0]["ev"] == ["1"]
        assert posted[0]["ea"] == [ISSUER_ADDRESS]

    @pytest.mark.asyncio
    async def test_delivery_failure_is_logged(self, caplog):
        adapter = GoogleAnalyticsAdapter(
            "UA-1234-5", COLLECT_URL, transport=httpx.MockTransport(lambda r: httpx.Response(500))
        )
        with caplog.at_level(logging.WARNING, logger="app.opencerts.reporting"):
            adapter.send(ErrorKind.ISSUER, CERTIFICATE)
            await adapter.drain()

        assert "analytics delivery failed" in caplog.text

    def test_send_without_loop_is_dropped(self, caplog):
        adapter = GoogleAnalyticsAdapter("UA-1234-5", COLLECT_URL)
        with caplog.at_level(logging.WARNING, logger="app.opencerts.reporting"):
            adapter.send(ErrorKind.ISSUER, CERTIFICATE)
        assert "no running event loop" in caplog.text


class TestReporters:
    def test_collecting_reporter_keeps_order(self):
        reporter = CollectingReporter()
        first = VerdictEvent.success(CheckName.STORE)
        second = VerdictEvent.success(CheckName.HASH)
        reporter.report(first)
        reporter.report(second)
        assert reporter.events == [first, second]

    def test_logging_reporter_forwards(self, caplog):
        inner = CollectingReporter()
        reporter = LoggingReporter(inner)
        failure = VerdictEvent.failure(
            CheckName.ISSUED,
            ErrorDetail(
                code=ErrorCode.NOT_ISSUED, message="Certificate has not been issued", recoverable=False
            ),
        )

        with caplog.at_level(logging.INFO, logger="app.opencerts.reporting"):
            reporter.report(VerdictEvent.success(CheckName.HASH))
            reporter.report(failure)

        assert [e.kind for e in inner.events] == [VerdictKind.HASH_OK, VerdictKind.ISSUED_FAIL]
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert warnings[0].check == "issued"
        assert "Certificate has not been issued" in warnings[0].getMessage()
