from __future__ import annotations

from collections import defaultdict
from typing import Dict

from prometheus_client import Counter, Gauge, Histogram


_PLUGIN_EXECUTIONS = Counter(
    "quality_plugin_executions_total",
    "Plugin executions by outcome",
    labelnames=["plugin", "status"],
)
_PLUGIN_LATENCY = Histogram(
    "quality_plugin_latency_ms",
    "Plugin detection latency in ms",
    labelnames=["plugin", "status"],
    buckets=(10, 50, 100, 200, 500, 1000, 3000, 5000, 30000),
)
_ANALYSIS_DURATION = Histogram(
    "quality_analysis_duration_ms",
    "Engine operation duration in ms",
    labelnames=["operation"],
    buckets=(10, 50, 100, 500, 1000, 5000, 30000, 60000),
)
_CACHE_HIT_RATIO = Gauge(
    "quality_report_cache_hit_ratio",
    "Hit ratio of the report cache",
)
_RISKS_REPORTED = Gauge(
    "quality_risks_reported",
    "Number of risks in the most recent report",
)


class QualityMetricsCollector:
    def __init__(self) -> None:
        # In-memory mirrors to provide summaries without scraping Prometheus
        self._executions: Dict[str, int] = defaultdict(int)
        self._latency_sum_ms: float = 0.0
        self._latency_count: int = 0
        self._cache_hits: int = 0
        self._cache_misses: int = 0

    def record_plugin_execution(self, plugin: str, status: str, duration_ms: float) -> None:
        _PLUGIN_EXECUTIONS.labels(plugin=plugin, status=status).inc()
        _PLUGIN_LATENCY.labels(plugin=plugin, status=status).observe(duration_ms)
        self._executions[status] += 1
        self._latency_sum_ms += duration_ms
        self._latency_count += 1

    def record_analysis(self, operation: str, duration_ms: float) -> None:
        _ANALYSIS_DURATION.labels(operation=operation).observe(duration_ms)

    def record_cache_lookup(self, hit: bool) -> None:
        if hit:
            self._cache_hits += 1
        else:
            self._cache_misses += 1
        _CACHE_HIT_RATIO.set(self.get_cache_hit_ratio())

    def record_risks_reported(self, count: int) -> None:
        _RISKS_REPORTED.set(float(count))

    def get_cache_hit_ratio(self) -> float:
        total = self._cache_hits + self._cache_misses
        if total == 0:
            return 0.0
        return self._cache_hits / total

    def get_average_latency(self) -> float:
        if self._latency_count == 0:
            return 0.0
        return self._latency_sum_ms / self._latency_count

    def get_metrics_summary(self) -> Dict[str, object]:
        return {
            "plugin_executions": dict(self._executions),
            "average_plugin_latency_ms": self.get_average_latency(),
            "cache_hit_ratio": self.get_cache_hit_ratio(),
        }

    def reset_metrics(self) -> None:
        # Prometheus objects keep their own state; only the local mirrors reset.
        self._executions.clear()
        self._latency_sum_ms = 0.0
        self._latency_count = 0
        self._cache_hits = 0
        self._cache_misses = 0


__all__ = ["QualityMetricsCollector"]
