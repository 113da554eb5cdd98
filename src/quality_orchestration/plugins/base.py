"""Plugin contract: the legacy analyzer shape and the richer quality shape."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Awaitable, List, Union

import structlog

from ..models import (
    DEFAULT_DIMENSIONS,
    DetectionResult,
    Improvement,
    Issue,
    ProjectContext,
    QualityScore,
    TestUnit,
)


class PluginVariant(str, Enum):
    LEGACY = "legacy"
    QUALITY = "quality"


class LegacyPlugin(ABC):
    """Simple analyzer: file path in, issues out."""

    variant = PluginVariant.LEGACY

    @property
    @abstractmethod
    def plugin_name(self) -> str:
        """Return the plugin identifier."""

    @abstractmethod
    def analyze(self, target_path: str) -> Union[List[Issue], Awaitable[List[Issue]]]:
        """Return the issues found in ``target_path``. May be a coroutine."""


class QualityPlugin(ABC):
    """Contract for quality plugins."""

    variant = PluginVariant.QUALITY

    @property
    @abstractmethod
    def plugin_id(self) -> str:
        """Return the plugin identifier."""

    @property
    @abstractmethod
    def plugin_name(self) -> str:
        """Return a human readable plugin name."""

    @property
    @abstractmethod
    def plugin_version(self) -> str:
        """Return the plugin version string."""

    @abstractmethod
    def is_applicable(self, context: ProjectContext) -> bool:
        """Decide whether the plugin should run for ``context``."""

    @abstractmethod
    def detect_patterns(
        self, unit: TestUnit
    ) -> Union[List[DetectionResult], Awaitable[List[DetectionResult]]]:
        """Scan ``unit`` and return pattern matches. May be a coroutine."""

    @abstractmethod
    def evaluate_quality(self, results: List[DetectionResult]) -> QualityScore:
        """Score the plugin's own detections."""

    @abstractmethod
    def suggest_improvements(self, score: QualityScore) -> List[Improvement]:
        """Return improvement suggestions for ``score``."""


class QualityPluginBase(QualityPlugin):
    """Base implementation that handles the identity plumbing."""

    def __init__(self, plugin_id: str, name: str | None = None, version: str = "1.0.0") -> None:
        self._id = plugin_id
        self._name = name or plugin_id
        self._version = version
        self._logger = structlog.get_logger(__name__).bind(plugin=plugin_id)

    @property
    def plugin_id(self) -> str:
        return self._id

    @property
    def plugin_name(self) -> str:
        return self._name

    @property
    def plugin_version(self) -> str:
        return self._version

    def is_applicable(self, context: ProjectContext) -> bool:
        return True

    def suggest_improvements(self, score: QualityScore) -> List[Improvement]:
        return []

    @staticmethod
    def uniform_score(overall: float, confidence: float | None = 1.0) -> QualityScore:
        """Build a score whose default dimensions all equal ``overall``."""
        overall = max(0.0, min(100.0, overall))
        return QualityScore(
            overall=overall,
            confidence=confidence,
            dimensions={name: overall for name in DEFAULT_DIMENSIONS},
        )


__all__ = ["LegacyPlugin", "PluginVariant", "QualityPlugin", "QualityPluginBase"]
