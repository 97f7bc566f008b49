from unittest.mock import AsyncMock, patch

import pytest

from coinlens.common.custom_exceptions.data_unavailable_error import DataUnavailableError
from coinlens.core.domain.entities.AnalysisEntity import Analysis, IndicatorSet
from coinlens.core.domain.entities.AssetEntity import AssetRef
from coinlens.core.use_cases.market_analysis.recommendation_ranker import RecommendationRanker, rank_analyses
from mock_data.simulated_series import make_snapshot

SLEEP = "coinlens.core.use_cases.market_analysis.recommendation_ranker.asyncio.sleep"


def _analysis(asset_id, predicted, technical=50.0, overall=50.0, is_fallback=False):
    return Analysis(
        asset=AssetRef(id=asset_id, symbol=asset_id, name=asset_id),
        indicators=IndicatorSet.neutral(100.0),
        multi_timeframe=[],
        technical_score=technical,
        fundamental_score=50.0,
        sentiment_score=50.0,
        overall_score=overall,
        predicted_change=predicted,
        recommendation="NEUTRAL",
        risk_level="MEDIUM",
        price_target=100.0,
        confidence=40.0 if is_fallback else 60.0,
        is_fallback=is_fallback,
    )


def _universe():
    """Twenty analyses; every absolute predicted change appears twice with different technical scores."""
    return {
        f"asset-{i}": _analysis(f"asset-{i}", ((i % 10) + 1) * (1 if i < 10 else -1), technical=float(i))
        for i in range(20)
    }


class StubPipeline:
    def __init__(self, results, failing=(), broken=()):
        self.results = results
        self.failing = set(failing)
        self.broken = set(broken)
        self.analyzed = []

    async def analyze_asset(self, snapshot):
        self.analyzed.append(snapshot.id)
        if snapshot.id in self.failing:
            raise DataUnavailableError("Market data unavailable", f"{snapshot.id} not served")
        if snapshot.id in self.broken:
            raise RuntimeError("provider exploded")
        return self.results[snapshot.id]

    def build_momentum_fallback(self, snapshot):
        return _analysis(snapshot.id, 12.0, is_fallback=True)


EXPECTED_TOP_10 = [f"asset-{i}" for i in (19, 9, 18, 8, 17, 7, 16, 6, 15, 5)]


def test_rank_by_absolute_change_then_technical_score():
    ranked = rank_analyses(list(_universe().values()), top_n=10)
    assert [a.asset.id for a in ranked] == EXPECTED_TOP_10


def test_rank_analyses_with_fewer_than_top_n():
    analyses = [_analysis("a", 1.0), _analysis("b", -3.0)]
    assert [a.asset.id for a in rank_analyses(analyses, top_n=10)] == ["b", "a"]


@pytest.mark.parametrize("config", [{"batch_size": 0}, {"batch_delay_seconds": -1.0}, {"top_n": 0}])
def test_invalid_scheduling_config(config):
    with pytest.raises(ValueError):
        RecommendationRanker(StubPipeline({}), config)


@pytest.mark.asyncio
async def test_batches_are_spaced_out():
    universe = _universe()
    pipeline = StubPipeline(universe)
    ranker = RecommendationRanker(pipeline, {"batch_size": 5, "batch_delay_seconds": 1.0, "enough_results": 100})

    with patch(SLEEP, new_callable=AsyncMock) as sleep:
        top = await ranker.get_top_recommendations([make_snapshot(asset_id) for asset_id in universe])

    assert [a.asset.id for a in top] == EXPECTED_TOP_10
    assert len(pipeline.analyzed) == 20
    assert sleep.await_count == 3
    sleep.assert_awaited_with(1.0)


@pytest.mark.asyncio
async def test_failed_assets_are_excluded():
    universe = _universe()
    pipeline = StubPipeline(universe, failing={"asset-19"}, broken={"asset-9"})
    ranker = RecommendationRanker(pipeline, {"batch_delay_seconds": 0.0, "enough_results": 100})

    outcome = await ranker.analyze_universe([make_snapshot(asset_id) for asset_id in universe])

    assert sorted(outcome["failed"]) == ["asset-19", "asset-9"]
    assert len(outcome["analyses"]) == 18
    top = rank_analyses(outcome["analyses"], 10)
    assert top[0].asset.id == "asset-18"


@pytest.mark.asyncio
async def test_stops_once_enough_results():
    universe = _universe()
    pipeline = StubPipeline(universe)
    ranker = RecommendationRanker(pipeline, {"batch_size": 5, "enough_results": 5})

    with patch(SLEEP, new_callable=AsyncMock) as sleep:
        outcome = await ranker.analyze_universe([make_snapshot(asset_id) for asset_id in universe])

    assert len(outcome["analyses"]) == 5
    assert pipeline.analyzed == [f"asset-{i}" for i in range(5)]
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_fallbacks_rank_after_full_analyses():
    results = {f"asset-{i}": _analysis(f"asset-{i}", float(i)) for i in range(3)}
    failing = {f"asset-{i}" for i in range(3, 7)}
    pipeline = StubPipeline(results, failing=failing)
    ranker = RecommendationRanker(pipeline, {"batch_delay_seconds": 0.0, "allow_fallback": True})

    top = await ranker.get_top_recommendations([make_snapshot(f"asset-{i}") for i in range(7)])

    assert [a.asset.id for a in top[:3]] == ["asset-2", "asset-1", "asset-0"]
    assert len(top) == 7
    assert all(a.is_fallback for a in top[3:])
    assert not any(a.is_fallback for a in top[:3])


@pytest.mark.asyncio
async def test_fallback_disabled_by_default():
    results = {"asset-0": _analysis("asset-0", 1.0)}
    pipeline = StubPipeline(results, failing={"asset-1"})
    ranker = RecommendationRanker(pipeline, {"batch_delay_seconds": 0.0})

    top = await ranker.get_top_recommendations([make_snapshot("asset-0"), make_snapshot("asset-1")])
    assert [a.asset.id for a in top] == ["asset-0"]
