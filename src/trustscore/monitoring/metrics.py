"""Prometheus metrics for aggregation passes and scheduled jobs."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from typing import Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, push_to_gateway

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class AggregationMetrics:
    """Counters and gauges describing the engine's batch work."""

    pushgateway_url: Optional[str] = None
    job_name: str = "trustscore"
    namespace: str = "trustscore"
    timeout_seconds: int = 5
    registry: CollectorRegistry = field(default_factory=CollectorRegistry)
    runs: Counter = field(init=False, repr=False)
    urls_processed: Counter = field(init=False, repr=False)
    urls_skipped: Counter = field(init=False, repr=False)
    skipped_ticks: Counter = field(init=False, repr=False)
    job_failures: Counter = field(init=False, repr=False)
    last_run_timestamp: Gauge = field(init=False, repr=False)
    last_run_duration: Gauge = field(init=False, repr=False)
    backlog: Gauge = field(init=False, repr=False)
    _hostname: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.pushgateway_url:
            self.pushgateway_url = os.getenv("PROMETHEUS_PUSHGATEWAY_URL") or None

        prefix = f"{self.namespace}_aggregation"
        self.runs = Counter(
            f"{prefix}_runs",
            "Completed aggregation passes",
            registry=self.registry,
        )
        self.urls_processed = Counter(
            f"{prefix}_urls_processed",
            "URLs whose stats were written",
            registry=self.registry,
        )
        self.urls_skipped = Counter(
            f"{prefix}_urls_skipped",
            "URLs skipped because scoring or persisting failed",
            labelnames=["phase"],
            registry=self.registry,
        )
        self.skipped_ticks = Counter(
            f"{self.namespace}_scheduler_skipped_ticks",
            "Ticks dropped because the previous run was still active",
            labelnames=["job"],
            registry=self.registry,
        )
        self.job_failures = Counter(
            f"{self.namespace}_scheduler_job_failures",
            "Scheduled job runs that raised",
            labelnames=["job"],
            registry=self.registry,
        )
        self.last_run_timestamp = Gauge(
            f"{prefix}_last_run_timestamp",
            "UTC timestamp of the latest aggregation pass",
            registry=self.registry,
        )
        self.last_run_duration = Gauge(
            f"{prefix}_last_run_duration_seconds",
            "Runtime of the latest aggregation pass in seconds",
            registry=self.registry,
        )
        self.backlog = Gauge(
            f"{prefix}_backlog_urls",
            "URLs with unprocessed ratings left after the latest pass",
            registry=self.registry,
        )
        self._hostname = socket.gethostname()

    def record_report(self, report) -> None:
        """Record a BatchReport."""
        self.runs.inc()
        self.urls_processed.inc(report.processed_count)
        for outcome in report.skipped:
            self.urls_skipped.labels(phase=outcome.phase.value).inc()
        if report.finished_at is not None:
            self.last_run_timestamp.set(report.finished_at.timestamp())
        self.last_run_duration.set(report.duration_seconds)
        self.backlog.set(report.remaining)

    def record_skipped_tick(self, job: str) -> None:
        self.skipped_ticks.labels(job=job).inc()

    def record_job_failure(self, job: str) -> None:
        self.job_failures.labels(job=job).inc()

    def push(self) -> bool:
        """Push the registry to the Pushgateway, if one is configured."""
        if not self.pushgateway_url:
            return False

        try:
            push_to_gateway(
                self.pushgateway_url,
                job=self.job_name,
                registry=self.registry,
                grouping_key={"instance": self._hostname},
                timeout=self.timeout_seconds,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to push metrics to Prometheus Pushgateway",
                pushgateway_url=self.pushgateway_url,
                error=str(exc),
            )
            return False

        return True
