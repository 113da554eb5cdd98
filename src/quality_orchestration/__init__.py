"""
Quality orchestration engine.

Pluggable test-quality analysis: plugin registration and timeout-bounded
execution, confidence-weighted score aggregation, and ranked risk reports.
"""

from .aggregator import ScoreAggregator, aggregate_recommendations
from .batch import BatchRiskProcessor
from .cache import ReportCache
from .config import EngineConfig, Settings
from .coordinator import PluginCoordinator
from .engine import QualityEngine
from .errors import (
    ConfigurationError,
    InvalidInputError,
    InvalidPluginError,
    PluginExecutionError,
    PluginTimeoutError,
    QualityOrchestrationError,
)
from .logging_config import configure_logging, get_logger
from .metrics import QualityMetricsCollector
from .models import (
    AIReport,
    BasicAnalysisResult,
    BatchAnalysisSummary,
    CodeLocation,
    DetectionResult,
    Evidence,
    ExtendedAnalysisResult,
    Improvement,
    Issue,
    PluginError,
    PluginResult,
    ProjectContext,
    QualityAnalysisResult,
    QualityScore,
    ReportInput,
    ReportSummary,
    RiskAssessment,
    RiskLevel,
    RiskSummary,
    Severity,
    TestUnit,
    UnifiedAnalysisResult,
)
from .plugins import LegacyPlugin, LegacyPluginAdapter, PluginVariant, QualityPlugin, QualityPluginBase
from .registry import PluginRegistry
from .reporting import RiskReportFormatter
from .risk import RiskAssessor

__version__ = "0.1.0"

__all__ = [
    "AIReport",
    "BasicAnalysisResult",
    "BatchAnalysisSummary",
    "BatchRiskProcessor",
    "CodeLocation",
    "ConfigurationError",
    "DetectionResult",
    "EngineConfig",
    "Evidence",
    "ExtendedAnalysisResult",
    "Improvement",
    "InvalidInputError",
    "InvalidPluginError",
    "Issue",
    "LegacyPlugin",
    "LegacyPluginAdapter",
    "PluginCoordinator",
    "PluginError",
    "PluginExecutionError",
    "PluginRegistry",
    "PluginResult",
    "PluginTimeoutError",
    "PluginVariant",
    "ProjectContext",
    "QualityAnalysisResult",
    "QualityEngine",
    "QualityMetricsCollector",
    "QualityOrchestrationError",
    "QualityPlugin",
    "QualityPluginBase",
    "QualityScore",
    "ReportCache",
    "ReportInput",
    "ReportSummary",
    "RiskAssessment",
    "RiskAssessor",
    "RiskLevel",
    "RiskSummary",
    "RiskReportFormatter",
    "ScoreAggregator",
    "Settings",
    "Severity",
    "TestUnit",
    "UnifiedAnalysisResult",
    "aggregate_recommendations",
    "configure_logging",
    "get_logger",
]
