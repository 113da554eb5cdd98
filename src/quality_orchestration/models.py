"""Value objects exchanged between the engine, its plugins and the report layer.

Everything here is a plain pydantic model so callers can serialise results with
``model_dump`` / ``model_dump_json`` without knowing about engine internals.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

DEFAULT_DIMENSIONS = ("completeness", "correctness", "maintainability")


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class RiskLevel(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    MINIMAL = "MINIMAL"


class PluginStatus(str, Enum):
    """Lifecycle of one plugin inside a single scheduling call."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class TestUnit(BaseModel):
    """A single test source handed to the engine by the I/O layer."""

    __test__ = False  # not a pytest test class

    path: str
    content: str = ""
    framework: Optional[str] = None


class ProjectContext(BaseModel):
    """Project facts plugins may consult in their applicability check."""

    root_path: str = "."
    language: str = "other"
    test_framework: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CodeLocation(BaseModel):
    file: str
    line: int = 0
    column: Optional[int] = None


class Evidence(BaseModel):
    type: str
    description: str
    code: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class Issue(BaseModel):
    """Raw finding produced by a legacy analyzer or derived from a detection.

    ``severity`` is kept as a free-form string: upstream detectors are not
    trusted to stay within :class:`Severity`.
    """

    type: str
    severity: str
    message: str
    file_path: Optional[str] = None
    line: int = 0
    column: Optional[int] = None
    category: str = "general"


class DetectionResult(BaseModel):
    """One pattern match emitted by a plugin."""

    pattern_id: str
    pattern_name: Optional[str] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    location: Optional[CodeLocation] = None
    evidence: List[Evidence] = Field(default_factory=list)
    severity: Optional[str] = None
    issue: Optional[Issue] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class QualityScore(BaseModel):
    overall: float = Field(..., ge=0.0, le=100.0)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    dimensions: Dict[str, float] = Field(default_factory=dict)

    @classmethod
    def zero(cls) -> "QualityScore":
        return cls(
            overall=0.0,
            confidence=0.0,
            dimensions={name: 0.0 for name in DEFAULT_DIMENSIONS},
        )


class Improvement(BaseModel):
    id: str
    priority: str = "medium"
    type: str = "general"
    title: str
    description: str = ""
    location: Optional[CodeLocation] = None
    estimated_impact: Optional[float] = None


class PluginResult(BaseModel):
    """Successful outcome of one plugin on one test unit."""

    plugin_id: str
    plugin_name: str
    status: PluginStatus = PluginStatus.SUCCEEDED
    detection_results: List[DetectionResult] = Field(default_factory=list)
    quality_score: QualityScore
    improvements: List[Improvement] = Field(default_factory=list)
    execution_time_ms: int = 0


class PluginError(BaseModel):
    """Structured record for a plugin that failed or timed out."""

    plugin_id: str
    plugin_name: str
    message: str
    status: PluginStatus = PluginStatus.FAILED
    error_code: str = "PLUGIN_FAILED"
    execution_time_ms: int = 0


class ExecutionStats(BaseModel):
    total_plugins: int = 0
    successful_plugins: int = 0
    failed_plugins: int = 0
    total_execution_time_ms: int = 0


class QualityAnalysisResult(BaseModel):
    plugin_results: List[PluginResult] = Field(default_factory=list)
    errors: List[PluginError] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    execution_stats: ExecutionStats = Field(default_factory=ExecutionStats)


class BasicAnalysisResult(BaseModel):
    total_units: int
    issues: List[Issue] = Field(default_factory=list)
    execution_time_ms: int = 0
    errors: List[PluginError] = Field(default_factory=list)


class ExtendedAnalysisResult(BaseModel):
    unit: TestUnit
    quality_analysis: QualityAnalysisResult
    aggregated_score: QualityScore
    recommendations: List[Improvement] = Field(default_factory=list)
    execution_time_ms: int = 0


class UnifiedAnalysisResult(BaseModel):
    basic_analysis: BasicAnalysisResult
    quality_analysis: QualityAnalysisResult
    combined_score: QualityScore
    all_issues: List[Issue] = Field(default_factory=list)


class ScoreDistribution(BaseModel):
    excellent: int = 0
    good: int = 0
    fair: int = 0
    poor: int = 0


class BatchAnalysisSummary(BaseModel):
    total_units: int
    average_score: float = 0.0
    score_distribution: ScoreDistribution = Field(default_factory=ScoreDistribution)
    units: List[ExtendedAnalysisResult] = Field(default_factory=list)
    execution_time_ms: int = 0


class RiskAssessment(BaseModel):
    risk_level: RiskLevel
    category: str
    description: str
    impact: str
    likelihood: float = Field(..., ge=0.0, le=1.0)
    mitigation: Optional[str] = None


class ReportSummary(BaseModel):
    overall_score: float = Field(..., ge=0.0, le=100.0)
    overall_grade: Optional[str] = None
    total_units: int = 0


class ReportInput(BaseModel):
    """What the report layer needs to build an AI-facing risk report."""

    summary: ReportSummary
    issues: List[Issue]


class RiskSummary(BaseModel):
    """Issue counts behind a report and the highest reported risk level."""

    total_issues: int = 0
    critical_issues: int = 0
    high_issues: int = 0
    overall_risk: RiskLevel = RiskLevel.LOW


class AIReport(BaseModel):
    overall_assessment: str
    key_risks: List[RiskAssessment] = Field(default_factory=list)
    full_report_url: str
    summary: RiskSummary = Field(default_factory=RiskSummary)


__all__ = [
    "DEFAULT_DIMENSIONS",
    "AIReport",
    "BasicAnalysisResult",
    "BatchAnalysisSummary",
    "CodeLocation",
    "DetectionResult",
    "Evidence",
    "ExecutionStats",
    "ExtendedAnalysisResult",
    "Improvement",
    "Issue",
    "PluginError",
    "PluginResult",
    "PluginStatus",
    "ProjectContext",
    "QualityAnalysisResult",
    "QualityScore",
    "ReportInput",
    "ReportSummary",
    "RiskAssessment",
    "RiskLevel",
    "RiskSummary",
    "ScoreDistribution",
    "Severity",
    "TestUnit",
    "UnifiedAnalysisResult",
]
