"""Tests for chunked risk ranking."""

import random

import pytest

from quality_orchestration.batch import BatchRiskProcessor
from quality_orchestration.errors import InvalidInputError
from quality_orchestration.models import RiskLevel
from quality_orchestration.risk import rank_risks

from tests.unit.helpers.factories import make_risk


def _synthetic_risks(count, seed=7):
    rng = random.Random(seed)
    levels = list(RiskLevel)
    return [
        make_risk(
            rng.choice(levels),
            # coarse likelihoods force plenty of ties
            round(rng.randint(0, 10) / 10, 1),
            category=f"cat-{index}",
        )
        for index in range(count)
    ]


class TestBatchRiskProcessor:
    async def test_matches_unchunked_ranking(self):
        """Test 10,000 risks chunked give exactly the unchunked top 10."""
        risks = _synthetic_risks(10_000)
        processor = BatchRiskProcessor(max_risks=10, batch_size=100, fan_out=4)

        result = await processor.process(risks)

        expected = rank_risks(risks)[:10]
        assert [r.category for r in result] == [r.category for r in expected]

    @pytest.mark.parametrize("batch_size,fan_out", [(1, 1), (7, 3), (10_000, 8), (333, 16)])
    async def test_chunking_parameters_do_not_change_result(self, batch_size, fan_out):
        risks = _synthetic_risks(2_000, seed=batch_size)
        processor = BatchRiskProcessor(max_risks=25, batch_size=batch_size, fan_out=fan_out)

        result = await processor.process(risks)

        assert [r.category for r in result] == [r.category for r in rank_risks(risks)[:25]]

    async def test_progress_is_monotonic_from_zero_to_hundred(self):
        progress = []
        processor = BatchRiskProcessor(max_risks=10, batch_size=50, fan_out=4)

        await processor.process(_synthetic_risks(1_000), progress=progress.append)

        assert progress[0] == 0.0
        assert progress[-1] == 100.0
        assert progress == sorted(progress)
        assert len(progress) == 1 + 1_000 // 50

    async def test_async_progress_callback(self):
        seen = []

        async def report(value):
            seen.append(value)

        await BatchRiskProcessor(batch_size=10).process(_synthetic_risks(30), progress=report)

        assert seen[-1] == 100.0

    async def test_empty_input(self):
        progress = []

        result = await BatchRiskProcessor().process([], progress=progress.append)

        assert result == []
        assert progress == [0.0, 100.0]

    def test_invalid_parameters(self):
        with pytest.raises(InvalidInputError):
            BatchRiskProcessor(batch_size=0)
        with pytest.raises(InvalidInputError):
            BatchRiskProcessor(fan_out=0)
