"""Score aggregation: combine per-plugin quality scores into one.

Contract rules:
- weight_i is the plugin's confidence, 1.0 when unset.
- overall and every dimension are weighted means with the same weights.
- confidence is the mean weight.
- zero plugins, or weights summing to zero, give zeros rather than NaN.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence

from pydantic import ValidationError

from .errors import InvalidInputError
from .models import DEFAULT_DIMENSIONS, Improvement, PluginResult, QualityScore

PRIORITY_ORDER: Dict[str, int] = {
    "critical": 0,
    "high": 1,
    "medium": 2,
    "low": 3,
}
_UNKNOWN_PRIORITY = 999


class ScoreAggregator:
    """Confidence-weighted aggregation of plugin scores."""

    # pylint: disable=too-few-public-methods

    def aggregate(self, scores: Sequence[Any]) -> QualityScore:
        """Aggregate plugin scores into a single quality score."""

        validated = [self._validate(score) for score in scores]
        if not validated:
            return QualityScore.zero()

        weights = [self._weight(score) for score in validated]
        total_weight = sum(weights)

        dimensions = {
            name: self._weighted_mean(
                [score.dimensions.get(name, 0.0) for score in validated], weights, total_weight
            )
            for name in self._dimension_names(validated)
        }
        overall = self._weighted_mean([score.overall for score in validated], weights, total_weight)

        return QualityScore(
            overall=_clamp(overall, 0.0, 100.0),
            confidence=_clamp(total_weight / len(validated), 0.0, 1.0),
            dimensions={name: _clamp(value, 0.0, 100.0) for name, value in dimensions.items()},
        )

    def aggregate_results(self, results: Iterable[PluginResult]) -> QualityScore:
        """Aggregate the scores carried by plugin results."""

        return self.aggregate([result.quality_score for result in results])

    @staticmethod
    def _validate(score: Any) -> QualityScore:
        if isinstance(score, QualityScore):
            return score
        if isinstance(score, Mapping):
            try:
                return QualityScore.model_validate(score)
            except ValidationError as exc:
                raise InvalidInputError(
                    "Invalid quality score", details={"errors": exc.errors()}
                ) from exc
        raise InvalidInputError(
            f"Invalid quality score of type {type(score).__name__}"
        )

    @staticmethod
    def _weight(score: QualityScore) -> float:
        return 1.0 if score.confidence is None else score.confidence

    @staticmethod
    def _dimension_names(scores: List[QualityScore]) -> List[str]:
        names = list(DEFAULT_DIMENSIONS)
        for score in scores:
            for name in score.dimensions:
                if name not in names:
                    names.append(name)
        return names

    @staticmethod
    def _weighted_mean(values: List[float], weights: List[float], total_weight: float) -> float:
        if total_weight <= 0:
            return 0.0
        return sum(value * weight for value, weight in zip(values, weights)) / total_weight


def aggregate_recommendations(groups: Iterable[Iterable[Improvement]]) -> List[Improvement]:
    """De-duplicate improvements by id (title when id is empty) and sort by
    priority; unknown priorities sort last, ties keep first-seen order."""

    unique: Dict[str, Improvement] = {}
    for group in groups:
        for improvement in group:
            key = improvement.id or improvement.title
            if key not in unique:
                unique[key] = improvement
    return sorted(
        unique.values(),
        key=lambda item: PRIORITY_ORDER.get(item.priority, _UNKNOWN_PRIORITY),
    )


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


__all__ = ["PRIORITY_ORDER", "ScoreAggregator", "aggregate_recommendations"]
