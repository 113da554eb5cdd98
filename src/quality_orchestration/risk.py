"""
Risk assessment

Turns raw issues into grouped, ranked and size-bounded risk entries. Issues are
grouped by ``category-severity``; repeated evidence of the same class raises the
group's likelihood without ever exceeding certainty.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog
from pydantic import ValidationError

from .errors import InvalidInputError
from .models import Issue, RiskAssessment, RiskLevel, Severity

logger = structlog.get_logger(__name__)

# Likelihood added for every further issue folded into an existing group
DUPLICATE_LIKELIHOOD_STEP = 0.1
DEFAULT_MAX_RISKS = 10

_SEVERITY_LEVELS: Dict[Severity, RiskLevel] = {
    Severity.CRITICAL: RiskLevel.CRITICAL,
    Severity.HIGH: RiskLevel.HIGH,
    Severity.MEDIUM: RiskLevel.MEDIUM,
    Severity.LOW: RiskLevel.LOW,
    Severity.INFO: RiskLevel.MINIMAL,
}

_SEVERITY_WEIGHTS: Dict[Severity, float] = {
    Severity.CRITICAL: 0.9,
    Severity.HIGH: 0.7,
    Severity.MEDIUM: 0.5,
    Severity.LOW: 0.3,
    Severity.INFO: 0.1,
}
_UNKNOWN_SEVERITY_WEIGHT = 0.1

LEVEL_RANK: Dict[RiskLevel, int] = {
    RiskLevel.CRITICAL: 0,
    RiskLevel.HIGH: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.LOW: 3,
    RiskLevel.MINIMAL: 4,
}

_CATEGORY_IMPACT: Dict[str, str] = {
    "security": "Security vulnerabilities may be exposed to attackers",
    "coverage": "Untested code paths may hide defects that reach production",
    "assertion": "Tests may pass without actually validating behaviour",
    "structure": "Poor test structure makes the suite hard to maintain and extend",
    "pattern": "Problematic test patterns reduce the reliability of test results",
    "performance": "Slow tests lengthen feedback loops and may hide performance regressions",
    "error": "Error paths may behave unexpectedly under failure conditions",
    "test-quality": "Low test quality reduces confidence in the test suite",
    "documentation": "Missing documentation makes test intent hard to understand",
    "best-practice": "Deviations from best practices increase long-term maintenance cost",
}
_GENERIC_IMPACT = "May affect test reliability and maintainability"

_CATEGORY_MITIGATION: Dict[str, str] = {
    "security": "Add security-focused tests and validate all untrusted input",
    "coverage": "Add tests for uncovered branches and enforce coverage thresholds",
    "assertion": "Strengthen assertions to check concrete expected values",
    "structure": "Refactor tests into clear arrange/act/assert sections",
    "pattern": "Replace flagged patterns with the recommended alternatives",
    "performance": "Profile slow tests and isolate expensive fixtures",
    "error": "Add tests that exercise error handling and failure paths",
    "test-quality": "Review low-quality tests and rewrite the weakest first",
    "documentation": "Document test intent with descriptive names and docstrings",
    "best-practice": "Align tests with the project's testing conventions",
}
_GENERIC_MITIGATION = "Review the reported issues and address them by priority"

# Category-wide risks raised once a category repeats more than ``threshold`` times
_PATTERN_RISKS: Tuple[Tuple[str, int, RiskAssessment], ...] = (
    (
        "coverage",
        5,
        RiskAssessment(
            risk_level=RiskLevel.HIGH,
            category="coverage-pattern",
            description="Systematic test coverage gaps detected across multiple components",
            impact="Large portions of the codebase may be untested, increasing defect probability",
            likelihood=0.8,
            mitigation="Enforce coverage requirements with automated coverage checks",
        ),
    ),
    (
        "assertion",
        10,
        RiskAssessment(
            risk_level=RiskLevel.MEDIUM,
            category="assertion-pattern",
            description="Widespread assertion quality issues found",
            impact="Tests may not effectively validate functionality",
            likelihood=0.7,
            mitigation="Review and strengthen assertions across the suite",
        ),
    ),
    (
        "structure",
        3,
        RiskAssessment(
            risk_level=RiskLevel.MEDIUM,
            category="structure-pattern",
            description="Test structure violations indicate architectural issues",
            impact="Test maintainability and reliability suffer",
            likelihood=0.6,
            mitigation="Refactor the test layout around shared fixtures and clear phases",
        ),
    ),
)


def parse_severity(severity: Any) -> Optional[Severity]:
    """Case-insensitive lookup of a :class:`Severity`; ``None`` when unknown."""
    try:
        return Severity(str(getattr(severity, "value", severity)).lower())
    except ValueError:
        return None


def map_severity(severity: Any) -> RiskLevel:
    """Map an issue severity to a risk level; unknown values map to the lowest level."""
    parsed = parse_severity(severity)
    return RiskLevel.MINIMAL if parsed is None else _SEVERITY_LEVELS[parsed]


def severity_weight(severity: Any) -> float:
    parsed = parse_severity(severity)
    return _UNKNOWN_SEVERITY_WEIGHT if parsed is None else _SEVERITY_WEIGHTS[parsed]


def lookup_impact(category: str) -> str:
    return _CATEGORY_IMPACT.get(category, _GENERIC_IMPACT)


def lookup_mitigation(category: str) -> str:
    return _CATEGORY_MITIGATION.get(category, _GENERIC_MITIGATION)


def risk_sort_key(risk: RiskAssessment) -> Tuple[int, float]:
    """Level rank ascending, then likelihood descending."""
    return LEVEL_RANK[risk.risk_level], -risk.likelihood


def rank_risks(risks: Iterable[RiskAssessment]) -> List[RiskAssessment]:
    # sorted() is stable, so equal keys keep group-creation order
    return sorted(risks, key=risk_sort_key)


def coerce_issues(issues: Iterable[Any]) -> List[Issue]:
    """Validate issue payloads, accepting models or plain mappings."""
    coerced: List[Issue] = []
    for item in issues:
        if isinstance(item, Issue):
            coerced.append(item)
            continue
        if not isinstance(item, Mapping):
            raise InvalidInputError(f"Invalid issue of type {type(item).__name__}")
        try:
            coerced.append(Issue.model_validate(item))
        except ValidationError as exc:
            raise InvalidInputError("Invalid issue", details={"errors": exc.errors()}) from exc
    return coerced


def detect_pattern_risks(issues: Iterable[Any]) -> List[RiskAssessment]:
    """Return category-wide risks for categories that repeat past their threshold."""
    counts: Dict[str, int] = {}
    for issue in coerce_issues(issues):
        counts[issue.category] = counts.get(issue.category, 0) + 1
    return [
        template.model_copy()
        for category, threshold, template in _PATTERN_RISKS
        if counts.get(category, 0) > threshold
    ]


def deduplicate_risks(
    risks: Iterable[RiskAssessment], existing: Iterable[RiskAssessment] = ()
) -> List[RiskAssessment]:
    """Drop risks whose ``(category, description)`` pair was already seen,
    either earlier in ``risks`` or anywhere in ``existing``.
    """
    seen = {(risk.category, risk.description) for risk in existing}
    unique: List[RiskAssessment] = []
    for risk in risks:
        key = (risk.category, risk.description)
        if key not in seen:
            seen.add(key)
            unique.append(risk)
    return unique


class RiskAssessor:
    """Groups issues into risks and ranks them, bounded to ``max_risks`` entries."""

    def __init__(self, max_risks: int = DEFAULT_MAX_RISKS):
        if max_risks < 1:
            raise InvalidInputError("max_risks must be at least 1")
        self.max_risks = max_risks
        self.logger = logger.bind(component="risk_assessor")

    def group_issues(self, issues: Sequence[Any]) -> List[RiskAssessment]:
        """Group issues by category and severity, in first-seen order, unranked."""
        groups: Dict[str, RiskAssessment] = {}
        for issue in coerce_issues(issues):
            key = f"{issue.category}-{issue.severity}"
            existing = groups.get(key)
            if existing is None:
                groups[key] = RiskAssessment(
                    risk_level=map_severity(issue.severity),
                    category=issue.category,
                    description=issue.message,
                    impact=lookup_impact(issue.category),
                    likelihood=severity_weight(issue.severity),
                    mitigation=lookup_mitigation(issue.category),
                )
            else:
                existing.likelihood = min(1.0, existing.likelihood + DUPLICATE_LIKELIHOOD_STEP)
        return list(groups.values())

    def collect_risks(self, issues: Sequence[Any]) -> List[RiskAssessment]:
        """Grouped risks followed by any new pattern risks, unranked and untruncated.

        Groups are already distinct per ``category-severity``, so only pattern
        risks are de-duplicated against them.
        """
        coerced = coerce_issues(issues)
        grouped = self.group_issues(coerced)
        return grouped + deduplicate_risks(detect_pattern_risks(coerced), existing=grouped)

    def assess_risks(self, issues: Sequence[Any], truncate: bool = True) -> List[RiskAssessment]:
        """Rank every collected risk; keep the top ``max_risks`` unless ``truncate`` is off."""
        grouped = self.collect_risks(issues)
        ranked = rank_risks(grouped)
        if truncate:
            ranked = ranked[: self.max_risks]
        self.logger.debug(
            "Risks assessed",
            issues=len(issues),
            groups=len(grouped),
            reported=len(ranked),
        )
        return ranked


__all__ = [
    "DEFAULT_MAX_RISKS",
    "DUPLICATE_LIKELIHOOD_STEP",
    "LEVEL_RANK",
    "RiskAssessor",
    "coerce_issues",
    "deduplicate_risks",
    "detect_pattern_risks",
    "lookup_impact",
    "lookup_mitigation",
    "map_severity",
    "parse_severity",
    "rank_risks",
    "risk_sort_key",
    "severity_weight",
]
