from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from tcpbridge.core.session import Direction, SessionSummary


@dataclass(frozen=True)
class BridgeMetrics:
    sessions_total: Counter
    active_sessions: Gauge
    bytes_forwarded: Counter
    session_duration: Histogram
    upstream_connect_failures: Counter

    def session_started(self) -> None:
        self.active_sessions.inc()

    def session_finished(self, summary: SessionSummary | None) -> None:
        self.active_sessions.dec()
        if summary is None:
            return
        self.sessions_total.labels(summary.reason.value).inc()
        self.bytes_forwarded.labels(Direction.A_TO_B.value).inc(summary.bytes_a_to_b)
        self.bytes_forwarded.labels(Direction.B_TO_A.value).inc(summary.bytes_b_to_a)
        self.session_duration.observe(summary.duration_seconds)


_BRIDGE_METRICS: Dict[str, BridgeMetrics] = {}


def bridge_metrics(service_name: str = "tcpbridge") -> BridgeMetrics:
    metrics = _BRIDGE_METRICS.get(service_name)
    if metrics is None:
        metrics = BridgeMetrics(
            sessions_total=Counter(
                f"{service_name}_sessions_total",
                "Bridge sessions ended, by termination reason",
                ["reason"],
            ),
            active_sessions=Gauge(
                f"{service_name}_active_sessions",
                "Bridge sessions currently running",
            ),
            bytes_forwarded=Counter(
                f"{service_name}_bytes_forwarded_total",
                "Bytes forwarded, by direction",
                ["direction"],
            ),
            session_duration=Histogram(
                f"{service_name}_session_duration_seconds",
                "Bridge session duration in seconds",
            ),
            upstream_connect_failures=Counter(
                f"{service_name}_upstream_connect_failures_total",
                "Failed attempts to dial the relay target",
            ),
        )
        _BRIDGE_METRICS[service_name] = metrics
    return metrics


def start_metrics_server(port: int, *, addr: str = "0.0.0.0") -> None:
    start_http_server(port, addr=addr)
