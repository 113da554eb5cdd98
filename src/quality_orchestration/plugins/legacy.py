"""Adapter that presents a legacy analyzer through the quality-plugin contract."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Dict, List

from ..models import (
    CodeLocation,
    DetectionResult,
    Improvement,
    Issue,
    ProjectContext,
    QualityScore,
    TestUnit,
)
from .base import PluginVariant, QualityPlugin, QualityPluginBase

ISSUE_PENALTY = 5.0

_SEVERITY_CONFIDENCE: Dict[str, float] = {
    "critical": 0.9,
    "high": 0.7,
    "medium": 0.5,
    "low": 0.3,
    "info": 0.1,
}


class LegacyPluginAdapter(QualityPlugin):
    """Wrap an object exposing ``analyze(path)`` so the coordinator can treat it
    like any other quality plugin.

    Every reported issue becomes one detection result that carries the original
    issue, so :meth:`QualityEngine.analyze` can hand issues back unchanged.
    """

    variant = PluginVariant.LEGACY

    def __init__(self, plugin: Any, plugin_id: str) -> None:
        self._plugin = plugin
        self._id = plugin_id

    @property
    def wrapped(self) -> Any:
        return self._plugin

    @property
    def plugin_id(self) -> str:
        return self._id

    @property
    def plugin_name(self) -> str:
        return self._id

    @property
    def plugin_version(self) -> str:
        return str(getattr(self._plugin, "plugin_version", "legacy"))

    def is_applicable(self, context: ProjectContext) -> bool:
        return True

    async def detect_patterns(self, unit: TestUnit) -> List[DetectionResult]:
        analyze = self._plugin.analyze
        if inspect.iscoroutinefunction(analyze):
            issues: Any = await analyze(unit.path)
        else:
            loop = asyncio.get_running_loop()
            issues = await loop.run_in_executor(None, analyze, unit.path)
        if inspect.isawaitable(issues):
            issues = await issues
        return [self._to_detection(Issue.model_validate(issue)) for issue in issues or []]

    def evaluate_quality(self, results: List[DetectionResult]) -> QualityScore:
        return QualityPluginBase.uniform_score(100.0 - ISSUE_PENALTY * len(results), 1.0)

    def suggest_improvements(self, score: QualityScore) -> List[Improvement]:
        if score.overall >= 100.0:
            return []
        return [
            Improvement(
                id=f"{self._id}-issues",
                priority="high" if score.overall < 50.0 else "medium",
                type="fix",
                title=f"Resolve issues reported by {self._id}",
                description=f"{self._id} findings lowered the score to {score.overall:.0f}",
            )
        ]

    def _to_detection(self, issue: Issue) -> DetectionResult:
        location = None
        if issue.file_path:
            location = CodeLocation(file=issue.file_path, line=issue.line, column=issue.column)
        return DetectionResult(
            pattern_id=f"{self._id}:{issue.type}",
            pattern_name=issue.message,
            confidence=_SEVERITY_CONFIDENCE.get(issue.severity, 0.5),
            location=location,
            severity=issue.severity,
            issue=issue,
        )


__all__ = ["ISSUE_PENALTY", "LegacyPluginAdapter"]
