"""Plugin coordination: run applicable plugins against one test unit.

Each plugin's detection step is raced against a timer. Losing the race
abandons the plugin's work rather than cancelling it: the underlying task keeps
running in the background and its outcome is discarded. Plugins that need hard
cancellation must poll for it themselves; the engine does not provide a token.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, List, Optional, Set, Union

import structlog

from .errors import PluginTimeoutError
from .metrics import QualityMetricsCollector
from .models import (
    DetectionResult,
    ExecutionStats,
    Improvement,
    PluginError,
    PluginResult,
    PluginStatus,
    QualityAnalysisResult,
    QualityScore,
    TestUnit,
)
from .registry import RegisteredPlugin

logger = structlog.get_logger(__name__)

PluginOutcome = Union[PluginResult, PluginError]


class PluginCoordinator:
    """Executes plugins sequentially or concurrently with per-plugin isolation."""

    def __init__(self, metrics: Optional[QualityMetricsCollector] = None) -> None:
        self.metrics = metrics
        self._abandoned: Set[asyncio.Future] = set()
        self.logger = logger.bind(component="coordinator")

    @property
    def abandoned_count(self) -> int:
        """Number of timed-out plugin tasks still running in the background."""
        return len(self._abandoned)

    async def run(
        self,
        unit: TestUnit,
        plugins: List[RegisteredPlugin],
        *,
        timeout_ms: int,
        concurrent: bool = False,
    ) -> QualityAnalysisResult:
        """Run ``plugins`` on ``unit``.

        Sequential mode preserves registration order in ``plugin_results``.
        Concurrent mode appends outcomes as they settle, so the merged order is
        not defined.
        """
        start = time.perf_counter()
        result = QualityAnalysisResult()

        if concurrent:
            pending = [self._execute(entry, unit, timeout_ms) for entry in plugins]
            for settled in asyncio.as_completed(pending):
                self._collect(result, await settled)
        else:
            for entry in plugins:
                self._collect(result, await self._execute(entry, unit, timeout_ms))

        result.execution_stats = ExecutionStats(
            total_plugins=len(plugins),
            successful_plugins=len(result.plugin_results),
            failed_plugins=len(result.errors),
            total_execution_time_ms=int((time.perf_counter() - start) * 1000),
        )
        self.logger.debug(
            "Plugin run completed",
            unit=unit.path,
            concurrent=concurrent,
            successful=result.execution_stats.successful_plugins,
            failed=result.execution_stats.failed_plugins,
        )
        return result

    @staticmethod
    def _collect(result: QualityAnalysisResult, outcome: PluginOutcome) -> None:
        if isinstance(outcome, PluginResult):
            result.plugin_results.append(outcome)
        else:
            result.errors.append(outcome)

    async def _execute(
        self, entry: RegisteredPlugin, unit: TestUnit, timeout_ms: int
    ) -> PluginOutcome:
        start = time.perf_counter()
        try:
            detections = await self._detect_with_timeout(entry, unit, timeout_ms)
            score = QualityScore.model_validate(entry.plugin.evaluate_quality(detections))
            suggest = getattr(entry.plugin, "suggest_improvements", None)
            improvements = [
                Improvement.model_validate(item) for item in (suggest(score) if suggest else None) or []
            ]
        except PluginTimeoutError as exc:
            self.logger.warning("Plugin timed out", plugin=entry.plugin_id, timeout_ms=timeout_ms)
            return self._failure(entry, exc.message, PluginStatus.TIMED_OUT, exc.error_code, start)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Plugin failed", plugin=entry.plugin_id, error=str(exc))
            return self._failure(entry, str(exc), PluginStatus.FAILED, "PLUGIN_FAILED", start)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        if self.metrics:
            self.metrics.record_plugin_execution(entry.plugin_id, PluginStatus.SUCCEEDED.value, elapsed_ms)
        return PluginResult(
            plugin_id=entry.plugin_id,
            plugin_name=entry.plugin_name,
            detection_results=detections,
            quality_score=score,
            improvements=improvements,
            execution_time_ms=elapsed_ms,
        )

    async def _detect_with_timeout(
        self, entry: RegisteredPlugin, unit: TestUnit, timeout_ms: int
    ) -> List[DetectionResult]:
        detect = entry.plugin.detect_patterns
        if inspect.iscoroutinefunction(detect):
            pending: asyncio.Future = asyncio.ensure_future(detect(unit))
        else:
            # Blocking detectors run on the default executor so the timer can fire.
            pending = asyncio.get_running_loop().run_in_executor(None, detect, unit)

        outcome: Any = await self._race(entry, pending, timeout_ms)
        if inspect.isawaitable(outcome):
            outcome = await self._race(entry, asyncio.ensure_future(outcome), timeout_ms)
        return [DetectionResult.model_validate(item) for item in outcome or []]

    async def _race(self, entry: RegisteredPlugin, pending: asyncio.Future, timeout_ms: int) -> Any:
        try:
            return await asyncio.wait_for(asyncio.shield(pending), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            self._abandon(pending)
            raise PluginTimeoutError(entry.plugin_id, timeout_ms) from None

    def _abandon(self, task: asyncio.Future) -> None:
        self._abandoned.add(task)
        task.add_done_callback(self._reap)

    def _reap(self, task: asyncio.Future) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.debug("Abandoned plugin task failed", error=str(exc))

    def _failure(
        self,
        entry: RegisteredPlugin,
        message: str,
        status: PluginStatus,
        error_code: str,
        start: float,
    ) -> PluginError:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        if self.metrics:
            self.metrics.record_plugin_execution(entry.plugin_id, status.value, elapsed_ms)
        return PluginError(
            plugin_id=entry.plugin_id,
            plugin_name=entry.plugin_name,
            message=message,
            status=status,
            error_code=error_code,
            execution_time_ms=elapsed_ms,
        )


__all__ = ["PluginCoordinator", "PluginOutcome"]
