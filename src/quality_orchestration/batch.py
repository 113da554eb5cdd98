"""Chunked risk ranking for very large risk sets.

Each chunk is ranked on a worker thread and cut to its local top-N; the
survivors are then re-ranked globally. Because every chunk keeps its own top-N
under the same total order (level, likelihood, original position), the global
top-N is identical to ranking the whole input in one pass.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Callable, List, Optional, Sequence, Tuple

import structlog

from .errors import InvalidInputError
from .models import RiskAssessment
from .risk import DEFAULT_MAX_RISKS, LEVEL_RANK

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[float], Any]
IndexedRisk = Tuple[int, RiskAssessment]

DEFAULT_BATCH_SIZE = 100
DEFAULT_FAN_OUT = 4


def _indexed_key(item: IndexedRisk) -> Tuple[int, float, int]:
    index, risk = item
    return LEVEL_RANK[risk.risk_level], -risk.likelihood, index


def _local_top(chunk: List[IndexedRisk], limit: int) -> List[IndexedRisk]:
    return sorted(chunk, key=_indexed_key)[:limit]


class BatchRiskProcessor:
    """Rank large risk lists in fixed-size chunks with bounded fan-out."""

    def __init__(
        self,
        max_risks: int = DEFAULT_MAX_RISKS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        fan_out: int = DEFAULT_FAN_OUT,
    ):
        if max_risks < 1 or batch_size < 1 or fan_out < 1:
            raise InvalidInputError(
                "max_risks, batch_size and fan_out must be positive",
                details={"max_risks": max_risks, "batch_size": batch_size, "fan_out": fan_out},
            )
        self.max_risks = max_risks
        self.batch_size = batch_size
        self.fan_out = fan_out
        self.logger = logger.bind(component="batch_processor")

    def chunk(self, risks: Sequence[RiskAssessment]) -> List[List[IndexedRisk]]:
        indexed = list(enumerate(risks))
        return [
            indexed[start : start + self.batch_size]
            for start in range(0, len(indexed), self.batch_size)
        ]

    async def process(
        self,
        risks: Sequence[RiskAssessment],
        progress: Optional[ProgressCallback] = None,
    ) -> List[RiskAssessment]:
        """Return the global top ``max_risks`` of ``risks``.

        ``progress`` receives a non-decreasing percentage, starting at 0 and
        ending at 100, after each completed chunk.
        """
        start = time.perf_counter()
        chunks = self.chunk(risks)
        await self._report(progress, 0.0)

        if not chunks:
            await self._report(progress, 100.0)
            return []

        semaphore = asyncio.Semaphore(self.fan_out)
        loop = asyncio.get_running_loop()

        async def rank_chunk(chunk: List[IndexedRisk]) -> List[IndexedRisk]:
            async with semaphore:
                return await loop.run_in_executor(None, _local_top, chunk, self.max_risks)

        survivors: List[IndexedRisk] = []
        completed = 0
        for finished in asyncio.as_completed([rank_chunk(chunk) for chunk in chunks]):
            survivors.extend(await finished)
            completed += 1
            await self._report(progress, completed * 100.0 / len(chunks))

        ranked = [risk for _, risk in sorted(survivors, key=_indexed_key)[: self.max_risks]]
        self.logger.debug(
            "Batch ranking completed",
            risks=len(risks),
            chunks=len(chunks),
            fan_out=self.fan_out,
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        return ranked

    @staticmethod
    async def _report(progress: Optional[ProgressCallback], value: float) -> None:
        if progress is None:
            return
        outcome = progress(min(100.0, value))
        if inspect.isawaitable(outcome):
            await outcome


__all__ = ["BatchRiskProcessor", "DEFAULT_BATCH_SIZE", "DEFAULT_FAN_OUT", "ProgressCallback"]
