"""
Quality engine

Facade over the plugin registry, coordinator, aggregator and report layer.
One engine owns one registry and one report cache for its lifetime.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import PurePath
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import structlog
from pydantic import ValidationError

from .aggregator import ScoreAggregator, aggregate_recommendations
from .batch import BatchRiskProcessor, ProgressCallback
from .cache import ReportCache
from .config import EngineConfig, Settings
from .coordinator import PluginCoordinator
from .errors import ConfigurationError
from .metrics import QualityMetricsCollector
from .models import (
    AIReport,
    BasicAnalysisResult,
    BatchAnalysisSummary,
    DetectionResult,
    ExecutionStats,
    ExtendedAnalysisResult,
    Improvement,
    Issue,
    PluginError,
    ProjectContext,
    QualityAnalysisResult,
    QualityScore,
    RiskAssessment,
    ScoreDistribution,
    TestUnit,
    UnifiedAnalysisResult,
)
from .plugins.base import PluginVariant
from .registry import PluginRegistry, RegisteredPlugin, detect_variant, plugin_identifier
from .reporting import RiskReportFormatter
from .risk import RiskAssessor

logger = structlog.get_logger(__name__)

Target = Union[TestUnit, str]

# Detections below this confidence, with a location, are surfaced as issues
LOW_QUALITY_CONFIDENCE = 0.5

_OPTION_ALIASES = {"timeout": "timeout_ms", "skipPlugins": "skip_plugins"}
_REPORTING_OPTIONS = frozenset(
    {"cache_enabled", "cache_ttl_seconds", "cache_max_entries", "max_risks", "batch_size", "batch_fan_out", "report_path"}
)


def _as_unit(target: Target) -> TestUnit:
    if isinstance(target, TestUnit):
        return target
    return TestUnit(path=str(target))


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def default_context(unit: TestUnit) -> ProjectContext:
    return ProjectContext(
        root_path=str(PurePath(unit.path).parent),
        test_framework=unit.framework,
    )


def detection_to_issue(detection: DetectionResult, unit: TestUnit) -> Optional[Issue]:
    """Issue carried by a detection, or one derived from a low-confidence match."""
    if detection.issue is not None:
        return detection.issue
    if detection.location is None or detection.confidence >= LOW_QUALITY_CONFIDENCE:
        return None
    return Issue(
        type="quality",
        severity=detection.severity or "medium",
        message=detection.pattern_name or f"Low quality pattern: {detection.pattern_id}",
        file_path=detection.location.file or unit.path,
        line=detection.location.line,
        column=detection.location.column,
        category="pattern",
    )


def error_to_issue(error: PluginError, unit_path: Optional[str] = None) -> Issue:
    return Issue(
        type="error",
        severity="high",
        message=f"{error.plugin_name}: {error.message}",
        file_path=unit_path,
        category="structure",
    )


class QualityEngine:
    """Runs registered plugins over test units and turns their output into
    scores, recommendations and risk reports."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[PluginRegistry] = None,
        cache: Optional[ReportCache] = None,
        metrics: Optional[QualityMetricsCollector] = None,
    ):
        self.settings = settings or Settings()
        self.config: EngineConfig = self.settings.engine.model_copy(deep=True)
        self.registry = registry or PluginRegistry()
        self.metrics = metrics or QualityMetricsCollector()
        self.coordinator = PluginCoordinator(metrics=self.metrics)
        self.aggregator = ScoreAggregator()
        self._cache_override = cache
        self.logger = logger.bind(component="engine")
        self._build_reporting()

    def _build_reporting(self) -> None:
        if self._cache_override is not None:
            self.cache = self._cache_override
        else:
            self.cache = ReportCache(
                ttl_seconds=self.config.cache_ttl_seconds,
                max_entries=self.config.cache_max_entries,
            )
        self.assessor = RiskAssessor(max_risks=self.config.max_risks)
        self.formatter = RiskReportFormatter(
            assessor=self.assessor,
            cache=self.cache,
            batch=BatchRiskProcessor(
                max_risks=self.config.max_risks,
                batch_size=self.config.batch_size,
                fan_out=self.config.batch_fan_out,
            ),
            metrics=self.metrics,
            report_path=self.config.report_path,
            cache_enabled=self.config.cache_enabled,
        )

    # Registration

    def register_plugin(self, plugin: Any) -> bool:
        """Register a legacy ``analyze(path)`` plugin."""
        return self.registry.register(plugin, variant=PluginVariant.LEGACY)

    def register_quality_plugin(self, plugin: Any) -> bool:
        return self.registry.register(plugin, variant=PluginVariant.QUALITY)

    def register_custom_plugin(self, plugin: Any) -> bool:
        """Register a duck-typed plugin of either shape.

        The identifier is taken from ``id``, then ``name``, then generated.
        """
        variant = detect_variant(plugin)
        if variant is None:
            self.logger.warning("Rejected custom plugin without analyze or detect_patterns")
            return False
        plugin_id = (
            getattr(plugin, "id", None)
            or getattr(plugin, "name", None)
            or plugin_identifier(plugin)
            or f"custom-{int(time.time() * 1000)}"
        )
        return self.registry.register(plugin, variant=variant, plugin_id=plugin_id)

    def unregister(self, plugin_id: str) -> bool:
        return self.registry.unregister(plugin_id)

    def get_plugin(self, plugin_id: str) -> RegisteredPlugin:
        """Return a registered plugin or raise :class:`InvalidPluginError`."""
        return self.registry.require(plugin_id)

    def plugin_count(self) -> int:
        return len(self.registry)

    def quality_plugins(self) -> List[RegisteredPlugin]:
        return self.registry.list(PluginVariant.QUALITY)

    # Configuration

    def configure(self, **options: Any) -> EngineConfig:
        """Merge ``options`` into the current configuration."""
        normalized = {_OPTION_ALIASES.get(key, key): value for key, value in options.items()}
        unknown = sorted(set(normalized) - set(EngineConfig.model_fields))
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration options: {', '.join(unknown)}",
                details={"unknown": unknown},
            )
        try:
            updated = EngineConfig.model_validate({**self.config.model_dump(), **normalized})
        except ValidationError as exc:
            raise ConfigurationError(
                "Invalid configuration", details={"errors": exc.errors()}
            ) from exc

        self.config = updated
        if _REPORTING_OPTIONS.intersection(normalized):
            self._build_reporting()
        self.logger.info("Engine configured", options=sorted(normalized))
        return self.get_configuration()

    def get_configuration(self) -> EngineConfig:
        return self.config.model_copy(deep=True)

    # Analysis

    async def _run_unit(
        self, unit: TestUnit, context: Optional[ProjectContext] = None
    ) -> QualityAnalysisResult:
        selection = self.registry.applicable_plugins(
            context or default_context(unit), self.config.skip_plugins
        )
        result = await self.coordinator.run(
            unit,
            selection.plugins,
            timeout_ms=self.config.timeout_ms,
            concurrent=self.config.concurrent,
        )
        result.warnings = selection.warnings + result.warnings
        return result

    async def analyze(self, target: Union[Target, Sequence[Target]]) -> BasicAnalysisResult:
        """Run every applicable plugin over ``target`` and collect issues.

        ``errors`` is always present so an empty issue list can be told apart
        from a partially failed run.
        """
        start = time.perf_counter()
        units = [_as_unit(target)] if isinstance(target, (TestUnit, str)) else [_as_unit(t) for t in target]

        issues: List[Issue] = []
        errors: List[PluginError] = []
        for unit in units:
            analysis = await self._run_unit(unit)
            issues.extend(self._issues_from(analysis, unit))
            errors.extend(analysis.errors)

        elapsed = _elapsed_ms(start)
        self.metrics.record_analysis("analyze", elapsed)
        self.logger.info(
            "Analysis completed",
            units=len(units),
            issues=len(issues),
            errors=len(errors),
            duration_ms=elapsed,
        )
        return BasicAnalysisResult(
            total_units=len(units),
            issues=issues,
            execution_time_ms=elapsed,
            errors=errors,
        )

    async def analyze_with_quality(
        self, unit: Target, context: Optional[ProjectContext] = None
    ) -> ExtendedAnalysisResult:
        start = time.perf_counter()
        unit = _as_unit(unit)
        analysis = await self._run_unit(unit, context)
        elapsed = _elapsed_ms(start)
        self.metrics.record_analysis("analyze_with_quality", elapsed)
        return ExtendedAnalysisResult(
            unit=unit,
            quality_analysis=analysis,
            aggregated_score=self.aggregator.aggregate_results(analysis.plugin_results),
            recommendations=aggregate_recommendations(
                result.improvements for result in analysis.plugin_results
            ),
            execution_time_ms=elapsed,
        )

    async def analyze_batch(self, units: Sequence[Target]) -> BatchAnalysisSummary:
        """Quality-analyze many units; a unit that fails outright is logged and skipped."""
        start = time.perf_counter()
        outcomes = await asyncio.gather(
            *(self.analyze_with_quality(unit) for unit in units), return_exceptions=True
        )

        analyzed: List[ExtendedAnalysisResult] = []
        for unit, outcome in zip(units, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                self.logger.error(
                    "Unit analysis failed",
                    unit=_as_unit(unit).path,
                    error=str(outcome),
                )
                continue
            analyzed.append(outcome)

        scores = [result.aggregated_score.overall for result in analyzed]
        elapsed = _elapsed_ms(start)
        self.metrics.record_analysis("analyze_batch", elapsed)
        return BatchAnalysisSummary(
            total_units=len(units),
            average_score=sum(scores) / len(scores) if scores else 0.0,
            score_distribution=self._distribution(scores),
            units=analyzed,
            execution_time_ms=elapsed,
        )

    async def analyze_unified(self, units: Union[Target, Sequence[Target]]) -> UnifiedAnalysisResult:
        """Basic and quality analysis in one pass, with plugin errors folded into issues."""
        start = time.perf_counter()
        targets = [_as_unit(units)] if isinstance(units, (TestUnit, str)) else [_as_unit(u) for u in units]
        extended = await asyncio.gather(*(self.analyze_with_quality(unit) for unit in targets))

        merged = QualityAnalysisResult()
        issues: List[Issue] = []
        error_issues: List[Issue] = []
        for result in extended:
            analysis = result.quality_analysis
            merged.plugin_results.extend(analysis.plugin_results)
            merged.errors.extend(analysis.errors)
            merged.warnings.extend(analysis.warnings)
            issues.extend(self._issues_from(analysis, result.unit))
            error_issues.extend(error_to_issue(error, result.unit.path) for error in analysis.errors)

        elapsed = _elapsed_ms(start)
        merged.execution_stats = ExecutionStats(
            total_plugins=sum(r.quality_analysis.execution_stats.total_plugins for r in extended),
            successful_plugins=len(merged.plugin_results),
            failed_plugins=len(merged.errors),
            total_execution_time_ms=elapsed,
        )
        self.metrics.record_analysis("analyze_unified", elapsed)
        return UnifiedAnalysisResult(
            basic_analysis=BasicAnalysisResult(
                total_units=len(targets),
                issues=issues,
                execution_time_ms=elapsed,
                errors=list(merged.errors),
            ),
            quality_analysis=merged,
            combined_score=self.aggregator.aggregate_results(merged.plugin_results),
            all_issues=issues + error_issues,
        )

    @staticmethod
    def _issues_from(analysis: QualityAnalysisResult, unit: TestUnit) -> List[Issue]:
        issues: List[Issue] = []
        for result in analysis.plugin_results:
            for detection in result.detection_results:
                issue = detection_to_issue(detection, unit)
                if issue is not None:
                    issues.append(issue)
        return issues

    @staticmethod
    def _distribution(scores: Iterable[float]) -> ScoreDistribution:
        distribution = ScoreDistribution()
        for score in scores:
            if score >= 90:
                distribution.excellent += 1
            elif score >= 70:
                distribution.good += 1
            elif score >= 50:
                distribution.fair += 1
            else:
                distribution.poor += 1
        return distribution

    # Scores, risks and reports

    def aggregate_scores(self, scores: Sequence[Any]) -> QualityScore:
        return self.aggregator.aggregate(scores)

    def aggregate_recommendations(
        self, groups: Iterable[Iterable[Improvement]]
    ) -> List[Improvement]:
        return aggregate_recommendations(groups)

    def assess_risks(self, issues: Sequence[Any]) -> List[RiskAssessment]:
        return self.assessor.assess_risks(issues)

    def build_report(
        self,
        report_input: Any,
        use_cache: bool = True,
        include_risk_levels: Optional[Iterable[Any]] = None,
    ) -> AIReport:
        return self.formatter.format(
            report_input, use_cache=use_cache, include_risk_levels=include_risk_levels
        )

    async def format_batch(
        self, inputs: Sequence[Any], progress: Optional[ProgressCallback] = None
    ) -> AIReport:
        return await self.formatter.format_batch(inputs, progress=progress)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "plugins": self.plugin_count(),
            "abandoned_tasks": self.coordinator.abandoned_count,
            "cache": self.cache.get_stats(),
            "metrics": self.metrics.get_metrics_summary(),
        }


__all__ = [
    "LOW_QUALITY_CONFIDENCE",
    "QualityEngine",
    "default_context",
    "detection_to_issue",
    "error_to_issue",
]
