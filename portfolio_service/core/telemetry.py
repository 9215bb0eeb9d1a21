"""OpenTelemetry wiring and the instruments the ledger service records."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.metrics import Meter
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes
from sqlalchemy.ext.asyncio import AsyncEngine

from portfolio_service.config import AppSettings
from stock_ledger.models import IssueKind, LedgerResult

logger = logging.getLogger(__name__)

LEDGER_SCOPE = "stockfolio.ledger"
_TELEMETRY_INITIALISED = False
_METRIC_EXPORT_INTERVAL_MS = 15000


class LedgerMetrics:
    """Histograms and counters recorded around ledger replays and quote refreshes.

    Instruments come from the global meter by default, which is a no-op until
    ``setup_telemetry`` installs a provider.
    """

    def __init__(self, meter: Meter | None = None) -> None:
        meter = meter or metrics.get_meter(LEDGER_SCOPE)
        self.compute_duration = meter.create_histogram(
            "ledger.compute.duration",
            unit="ms",
            description="Wall time of one full FIFO replay",
        )
        self.transactions = meter.create_histogram(
            "ledger.compute.transactions",
            unit="{transaction}",
            description="Transactions replayed per computation",
        )
        self.issues = meter.create_counter(
            "ledger.issues",
            unit="{issue}",
            description="Oversold and malformed rows found during replay",
        )
        self.quote_failures = meter.create_counter(
            "prices.quote.failures",
            unit="{quote}",
            description="Quote fetches that failed and were skipped",
        )

    def record_compute(self, result: LedgerResult, transactions: int, elapsed_ms: float, policy: str) -> None:
        attributes = {"ledger.oversell_policy": policy}
        self.compute_duration.record(elapsed_ms, attributes)
        self.transactions.record(transactions, attributes)
        for issue in result.issues:
            self.record_issue(issue.kind)

    def record_issue(self, kind: IssueKind) -> None:
        self.issues.add(1, {"ledger.issue_kind": kind.value})

    def record_quote_failure(self, symbol: str) -> None:
        self.quote_failures.add(1, {"prices.symbol": symbol})


def sql_instrumentation_enabled(settings: AppSettings, engine: AsyncEngine | None) -> bool:
    return settings.storage_backend == "sql" and engine is not None


def setup_telemetry(app: FastAPI, settings: AppSettings, engine: AsyncEngine | None = None) -> bool:
    """Export traces, metrics and logs over OTLP for the Stockfolio service.

    FastAPI and outbound quote requests are always instrumented; SQLAlchemy
    only when the SQL store is configured. Returns ``True`` when active.
    """

    global _TELEMETRY_INITIALISED  # noqa: PLW0603 - single initialisation guard

    if _TELEMETRY_INITIALISED:
        return True
    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled via configuration")
        return False

    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: settings.telemetry_service_name or settings.app_name,
            ResourceAttributes.SERVICE_NAMESPACE: "stockfolio",
            "stockfolio.storage_backend": settings.storage_backend,
            "stockfolio.oversell_policy": settings.oversell_policy,
        }
    )
    exporter_options: dict[str, Any] = {"insecure": settings.telemetry_otlp_insecure}
    if settings.telemetry_otlp_endpoint:
        exporter_options["endpoint"] = settings.telemetry_otlp_endpoint

    tracer_provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.telemetry_sample_ratio)),
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_options)))
    trace.set_tracer_provider(tracer_provider)

    meter_provider = MeterProvider(
        resource=resource,
        metric_readers=[
            PeriodicExportingMetricReader(
                OTLPMetricExporter(**exporter_options),
                export_interval_millis=_METRIC_EXPORT_INTERVAL_MS,
            )
        ],
    )
    metrics.set_meter_provider(meter_provider)

    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter(**exporter_options)))
    set_logger_provider(logger_provider)
    # Adds trace ids to records emitted under the ledger.compute span
    LoggingInstrumentor().instrument(set_logging_format=False)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=tracer_provider, meter_provider=meter_provider)
    HTTPXClientInstrumentor().instrument(tracer_provider=tracer_provider)
    if sql_instrumentation_enabled(settings, engine):
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine, tracer_provider=tracer_provider)

    _TELEMETRY_INITIALISED = True
    logger.info("Telemetry exporting to %s", settings.telemetry_otlp_endpoint or "the default OTLP endpoint")
    return True


__all__ = ["LEDGER_SCOPE", "LedgerMetrics", "setup_telemetry", "sql_instrumentation_enabled"]
