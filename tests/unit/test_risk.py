"""Tests for risk grouping and ranking."""

import pytest

from quality_orchestration.errors import InvalidInputError
from quality_orchestration.models import RiskLevel, Severity
from quality_orchestration.risk import (
    DUPLICATE_LIKELIHOOD_STEP,
    LEVEL_RANK,
    RiskAssessor,
    deduplicate_risks,
    detect_pattern_risks,
    lookup_impact,
    lookup_mitigation,
    map_severity,
    parse_severity,
    severity_weight,
)

from tests.unit.helpers.factories import make_issue, make_risk


class TestSeverityMapping:
    @pytest.mark.parametrize(
        "severity,level",
        [
            ("critical", RiskLevel.CRITICAL),
            ("high", RiskLevel.HIGH),
            ("medium", RiskLevel.MEDIUM),
            ("low", RiskLevel.LOW),
            ("info", RiskLevel.MINIMAL),
            ("HIGH", RiskLevel.HIGH),
            ("catastrophic", RiskLevel.MINIMAL),
            (None, RiskLevel.MINIMAL),
        ],
    )
    def test_map_severity_is_total(self, severity, level):
        assert map_severity(severity) is level

    def test_severity_enum_members_accepted(self):
        assert map_severity(Severity.CRITICAL) is RiskLevel.CRITICAL
        assert severity_weight(Severity.INFO) == pytest.approx(0.1)
        assert parse_severity("Medium") is Severity.MEDIUM
        assert parse_severity("catastrophic") is None

    def test_severity_weights(self):
        assert severity_weight("critical") == pytest.approx(0.9)
        assert severity_weight("low") == pytest.approx(0.3)
        assert severity_weight("unheard-of") == pytest.approx(0.1)

    def test_impact_lookup_never_fails(self):
        assert "Security" in lookup_impact("security")
        assert lookup_impact("made-up-category")
        assert lookup_mitigation("made-up-category")


class TestRiskAssessor:
    def test_groups_duplicates_and_ranks(self):
        """Test duplicate issues fold into one group with increased likelihood."""
        issues = [
            make_issue("pattern", "critical"),
            make_issue("pattern", "critical"),
            make_issue("security", "high"),
        ]

        risks = RiskAssessor().assess_risks(issues)

        assert len(risks) == 2
        assert (risks[0].risk_level, risks[0].category) == (RiskLevel.CRITICAL, "pattern")
        assert (risks[1].risk_level, risks[1].category) == (RiskLevel.HIGH, "security")
        assert risks[0].likelihood == pytest.approx(min(1.0, 0.9 + DUPLICATE_LIKELIHOOD_STEP))
        assert risks[1].likelihood == pytest.approx(0.7)

    def test_likelihood_capped_at_one(self):
        issues = [make_issue("pattern", "critical") for _ in range(20)]

        risks = RiskAssessor().assess_risks(issues)

        assert len(risks) == 1
        assert risks[0].likelihood == 1.0

    def test_description_from_first_issue(self):
        issues = [
            make_issue("assertion", "medium", message="first"),
            make_issue("assertion", "medium", message="second"),
        ]

        risk = RiskAssessor().assess_risks(issues)[0]

        assert risk.description == "first"
        assert risk.impact == lookup_impact("assertion")
        assert risk.mitigation == lookup_mitigation("assertion")

    def test_output_bounded_by_max(self):
        issues = [make_issue(f"category-{i}", "medium") for i in range(25)]

        assert len(RiskAssessor().assess_risks(issues)) == 10
        assert len(RiskAssessor(max_risks=3).assess_risks(issues)) == 3

    def test_total_order(self):
        """Test level rank never decreases and likelihood never increases within a level."""
        issues = []
        for index, severity in enumerate(["low", "critical", "medium", "info", "high", "medium", "low"]):
            issues.extend(make_issue(f"cat-{index}", severity) for _ in range(index % 3 + 1))

        risks = RiskAssessor(max_risks=50).assess_risks(issues)

        for current, following in zip(risks, risks[1:]):
            assert LEVEL_RANK[current.risk_level] <= LEVEL_RANK[following.risk_level]
            if current.risk_level is following.risk_level:
                assert current.likelihood >= following.likelihood

    def test_ties_keep_creation_order(self):
        issues = [make_issue("b", "medium"), make_issue("a", "medium"), make_issue("c", "medium")]

        risks = RiskAssessor().assess_risks(issues)

        assert [risk.category for risk in risks] == ["b", "a", "c"]

    def test_group_issues_is_untruncated(self):
        issues = [make_issue(f"c{i}", "low") for i in range(15)]

        assert len(RiskAssessor(max_risks=5).group_issues(issues)) == 15

    def test_accepts_mappings(self):
        risks = RiskAssessor().assess_risks(
            [{"type": "t", "severity": "high", "message": "m", "category": "error"}]
        )

        assert risks[0].risk_level is RiskLevel.HIGH

    def test_invalid_issue_raises(self):
        with pytest.raises(InvalidInputError):
            RiskAssessor().assess_risks([{"severity": "high"}])

    def test_empty(self):
        assert RiskAssessor().assess_risks([]) == []


class TestPatternRisks:
    @pytest.mark.parametrize(
        "category,count,expected",
        [
            ("coverage", 5, []),
            ("coverage", 6, [("coverage-pattern", RiskLevel.HIGH, 0.8)]),
            ("assertion", 10, []),
            ("assertion", 11, [("assertion-pattern", RiskLevel.MEDIUM, 0.7)]),
            ("structure", 3, []),
            ("structure", 4, [("structure-pattern", RiskLevel.MEDIUM, 0.6)]),
            ("pattern", 50, []),
        ],
    )
    def test_thresholds(self, category, count, expected):
        risks = detect_pattern_risks([make_issue(category, "low") for _ in range(count)])

        assert [(r.category, r.risk_level, r.likelihood) for r in risks] == expected

    def test_pattern_risks_are_independent_copies(self):
        issues = [make_issue("structure", "low") for _ in range(4)]

        first = detect_pattern_risks(issues)[0]
        first.likelihood = 0.0

        assert detect_pattern_risks(issues)[0].likelihood == pytest.approx(0.6)

    def test_assessor_merges_pattern_risks(self):
        issues = [make_issue("structure", "low", message=f"s{i}") for i in range(4)]

        risks = RiskAssessor().assess_risks(issues)

        assert [risk.category for risk in risks] == ["structure-pattern", "structure"]

    def test_pattern_risks_do_not_count_toward_grouping(self):
        issues = [make_issue("coverage", "medium") for _ in range(6)]

        assessor = RiskAssessor()

        assert len(assessor.group_issues(issues)) == 1
        assert len(assessor.collect_risks(issues)) == 2


class TestDeduplicateRisks:
    def test_keeps_first_of_each_category_and_description(self):
        risks = [
            make_risk(RiskLevel.HIGH, 0.5, category="a", description="same"),
            make_risk(RiskLevel.LOW, 0.9, category="a", description="same"),
            make_risk(RiskLevel.LOW, 0.9, category="b", description="same"),
        ]

        unique = deduplicate_risks(risks)

        assert [(r.category, r.risk_level) for r in unique] == [("a", RiskLevel.HIGH), ("b", RiskLevel.LOW)]

    def test_existing_risks_filter_new_ones(self):
        existing = [make_risk(RiskLevel.HIGH, 0.5, category="a", description="same")]
        candidates = [make_risk(RiskLevel.LOW, 0.2, category="a", description="same")]

        assert deduplicate_risks(candidates, existing=existing) == []
