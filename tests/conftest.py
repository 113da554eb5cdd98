from __future__ import annotations

import pytest

from quality_orchestration.cache import ReportCache
from quality_orchestration.config import EngineConfig, Settings
from quality_orchestration.engine import QualityEngine
from quality_orchestration.metrics import QualityMetricsCollector


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine_config() -> EngineConfig:
    """Short timeout so timeout tests stay fast."""
    return EngineConfig(timeout_ms=50)


@pytest.fixture
def settings(engine_config: EngineConfig) -> Settings:
    return Settings(engine=engine_config)


@pytest.fixture
def metrics() -> QualityMetricsCollector:
    return QualityMetricsCollector()


@pytest.fixture
def engine(settings: Settings, metrics: QualityMetricsCollector) -> QualityEngine:
    return QualityEngine(settings=settings, metrics=metrics)


@pytest.fixture
def report_cache(clock: FakeClock) -> ReportCache:
    return ReportCache(ttl_seconds=300, max_entries=100, clock=clock)
