"""
AI-facing risk report formatting.

Builds ``AIReport`` payloads from a report summary plus raw issues. The rendered
HTML report itself is produced elsewhere; ``full_report_url`` only points at it.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import structlog
from pydantic import ValidationError

from .batch import BatchRiskProcessor, ProgressCallback
from .cache import ReportCache
from .errors import InvalidInputError
from .metrics import QualityMetricsCollector
from .models import AIReport, Issue, ReportInput, RiskAssessment, RiskLevel, RiskSummary
from .risk import LEVEL_RANK, RiskAssessor, map_severity

logger = structlog.get_logger(__name__)

DEFAULT_REPORT_PATH = ".quality/reports/index.html"

_GRADE_THRESHOLDS = ((90.0, "A"), (80.0, "B"), (70.0, "C"), (60.0, "D"))


def grade_for(score: float) -> str:
    for threshold, grade in _GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def validate_report_input(report_input: Any) -> ReportInput:
    """Coerce a model or mapping into ``ReportInput``."""
    if isinstance(report_input, ReportInput):
        return report_input
    if not isinstance(report_input, Mapping):
        raise InvalidInputError("Invalid report input")
    if "summary" not in report_input or "issues" not in report_input:
        raise InvalidInputError(
            "Missing required fields",
            details={"required": ["summary", "issues"]},
        )
    try:
        return ReportInput.model_validate(report_input)
    except ValidationError as exc:
        raise InvalidInputError(
            "Invalid report input", details={"errors": exc.errors()}
        ) from exc


def build_risk_summary(issues: Sequence[Issue], risks: Sequence[RiskAssessment]) -> RiskSummary:
    """Count input issues by severity and take the highest reported risk level.

    The overall risk never drops below ``LOW``.
    """
    levels = [map_severity(issue.severity) for issue in issues]
    overall = min(
        (risk.risk_level for risk in risks),
        key=LEVEL_RANK.__getitem__,
        default=RiskLevel.LOW,
    )
    if LEVEL_RANK[overall] > LEVEL_RANK[RiskLevel.LOW]:
        overall = RiskLevel.LOW
    return RiskSummary(
        total_issues=len(issues),
        critical_issues=levels.count(RiskLevel.CRITICAL),
        high_issues=levels.count(RiskLevel.HIGH),
        overall_risk=overall,
    )


def _normalize_levels(levels: Optional[Iterable[Any]]) -> Optional[set]:
    if not levels:
        return None
    try:
        return {RiskLevel(str(getattr(level, "value", level)).upper()) for level in levels}
    except ValueError as exc:
        raise InvalidInputError(f"Unknown risk level: {exc}") from exc


class RiskReportFormatter:
    """Formats assessed risks into AI-facing reports, with optional caching."""

    def __init__(
        self,
        assessor: Optional[RiskAssessor] = None,
        cache: Optional[ReportCache] = None,
        batch: Optional[BatchRiskProcessor] = None,
        metrics: Optional[QualityMetricsCollector] = None,
        report_path: str = DEFAULT_REPORT_PATH,
        cache_enabled: bool = True,
    ):
        self.assessor = assessor or RiskAssessor()
        self.cache = cache if cache is not None else ReportCache()
        self.batch = batch or BatchRiskProcessor(max_risks=self.assessor.max_risks)
        self.metrics = metrics
        self.report_path = report_path
        self.cache_enabled = cache_enabled
        self.logger = logger.bind(component="report_formatter")

    def format(
        self,
        report_input: Any,
        use_cache: bool = True,
        include_risk_levels: Optional[Iterable[Any]] = None,
        report_path: Optional[str] = None,
    ) -> AIReport:
        """Assess the input's issues and build an ``AIReport``.

        The full ranked risk list is cached under a score/issue-count
        fingerprint. Level filtering and the ``max_risks`` bound are applied
        after the cache, so one entry serves every filter and bound.
        """
        start = time.perf_counter()
        validated = validate_report_input(report_input)
        levels = _normalize_levels(include_risk_levels)

        risks = self._ranked_risks(validated, use_cache)
        if levels is not None:
            risks = [risk for risk in risks if risk.risk_level in levels]
        risks = risks[: self.assessor.max_risks]

        summary = validated.summary
        grade = summary.overall_grade or grade_for(summary.overall_score)
        report = AIReport(
            overall_assessment=self.build_assessment(summary.overall_score, grade, risks),
            key_risks=risks,
            full_report_url=report_path or self.report_path,
            summary=build_risk_summary(validated.issues, risks),
        )

        if self.metrics:
            self.metrics.record_risks_reported(len(risks))
            self.metrics.record_analysis("format_report", (time.perf_counter() - start) * 1000)
        return report

    def _ranked_risks(self, report_input: ReportInput, use_cache: bool) -> List[RiskAssessment]:
        caching = self.cache_enabled and use_cache
        key = ReportCache.build_key(report_input.summary.overall_score, len(report_input.issues))

        if caching:
            cached = self.cache.get(key)
            if self.metrics:
                self.metrics.record_cache_lookup(cached is not None)
            if cached is not None:
                self.logger.debug("Report cache hit", key=key)
                return [risk.model_copy() for risk in cached]

        risks = self.assessor.assess_risks(report_input.issues, truncate=False)
        if caching:
            self.cache.set(key, [risk.model_copy() for risk in risks])
        return risks

    async def format_batch(
        self,
        inputs: Sequence[Any],
        progress: Optional[ProgressCallback] = None,
        report_path: Optional[str] = None,
    ) -> AIReport:
        """Combine many independent inputs into one report.

        Issues from every input are grouped in one pass, so the same
        ``category-severity`` seen in several inputs folds into a single risk.
        The groups are then ranked globally in chunks; the summary score is
        the mean across inputs.
        """
        start = time.perf_counter()
        validated = [validate_report_input(item) for item in inputs]

        issues = [issue for item in validated for issue in item.issues]
        grouped = self.assessor.collect_risks(issues)

        risks = await self.batch.process(grouped, progress=progress)

        average = (
            sum(item.summary.overall_score for item in validated) / len(validated)
            if validated
            else 0.0
        )
        report = AIReport(
            overall_assessment=self.build_assessment(average, grade_for(average), risks),
            key_risks=risks,
            full_report_url=report_path or self.report_path,
            summary=build_risk_summary(issues, risks),
        )

        self.logger.info(
            "Batch report formatted",
            inputs=len(validated),
            grouped_risks=len(grouped),
            reported=len(risks),
        )
        if self.metrics:
            self.metrics.record_risks_reported(len(risks))
            self.metrics.record_analysis("format_batch", (time.perf_counter() - start) * 1000)
        return report

    @staticmethod
    def build_assessment(score: float, grade: str, risks: Sequence[RiskAssessment]) -> str:
        lines = [
            "Project quality assessment:",
            f"Overall score: {score:g}/100",
            f"Grade: {grade}",
            "",
        ]
        if not risks:
            lines.append("No issues were detected.")
            lines.append("Test quality looks excellent.")
            return "\n".join(lines)

        counts: Dict[RiskLevel, int] = {level: 0 for level in RiskLevel}
        for risk in risks:
            counts[risk.risk_level] += 1
        lines.extend(f"{level.value}: {count}" for level, count in counts.items() if count)
        return "\n".join(lines)


__all__ = [
    "DEFAULT_REPORT_PATH",
    "RiskReportFormatter",
    "build_risk_summary",
    "grade_for",
    "validate_report_input",
]
