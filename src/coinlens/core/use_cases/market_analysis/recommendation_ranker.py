"""
Recommendation Ranker Module

Runs the analysis pipeline over a universe of assets in rate-limited batches and
selects the top recommendations by expected move size.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

from coinlens.common.config.analysis_config import get_ranker_config
from coinlens.common.custom_exceptions.data_unavailable_error import CoinlensError
from coinlens.common.logger import logger
from coinlens.core.domain.entities.AnalysisEntity import Analysis
from coinlens.core.domain.entities.AssetEntity import AssetSnapshot

from .analysis_pipeline import AnalysisPipeline


def rank_analyses(analyses: Sequence[Analysis], top_n: int = 10) -> List[Analysis]:
    """
    Order analyses by absolute predicted change, largest first, breaking ties by
    technical score and then overall score (asset id keeps the order total).
    """
    ordered = sorted(
        analyses,
        key=lambda a: (-abs(a.predicted_change), -a.technical_score, -a.overall_score, a.asset.id),
    )
    return ordered[:top_n]


class RecommendationRanker:
    """
    Scores a universe of assets and returns the top N.

    Scheduling is a policy of this class: snapshots are processed ``batch_size`` at a
    time with ``batch_delay_seconds`` between batches, stopping once ``enough_results``
    analyses have succeeded. Failed assets are logged and excluded.
    """

    def __init__(self, pipeline: AnalysisPipeline, config: Optional[Dict[str, Any]] = None):
        self.pipeline = pipeline
        self.config = get_ranker_config()
        if config:
            self.config.update(config)

        if self.config["batch_size"] < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.config['batch_size']}")
        if self.config["batch_delay_seconds"] < 0:
            raise ValueError(f"batch_delay_seconds must not be negative, got {self.config['batch_delay_seconds']}")
        if self.config["top_n"] < 1:
            raise ValueError(f"top_n must be at least 1, got {self.config['top_n']}")

    async def analyze_universe(self, snapshots: Sequence[AssetSnapshot]) -> Dict[str, Any]:
        """
        Analyze snapshots batch by batch.

        Returns:
            Dictionary with the successful ``analyses`` and the ids of ``failed`` assets
        """
        batch_size = self.config["batch_size"]
        analyses: List[Analysis] = []
        failed: List[str] = []

        for start in range(0, len(snapshots), batch_size):
            if start > 0:
                await asyncio.sleep(self.config["batch_delay_seconds"])

            batch = snapshots[start:start + batch_size]
            results = await asyncio.gather(
                *(self.pipeline.analyze_asset(snapshot) for snapshot in batch),
                return_exceptions=True,
            )

            for snapshot, result in zip(batch, results):
                if isinstance(result, CoinlensError):
                    logger.warning(f"[Ranker] Excluding {snapshot.id}: {result.message} ({result.detail})")
                    failed.append(snapshot.id)
                elif isinstance(result, Exception):
                    logger.error(f"[Ranker] Unexpected failure analysing {snapshot.id}: {result!r}")
                    failed.append(snapshot.id)
                elif isinstance(result, BaseException):
                    raise result
                else:
                    analyses.append(result)

            logger.info(f"[Ranker] Batch {start // batch_size + 1}: {len(analyses)} analyses, {len(failed)} failed")
            if len(analyses) >= self.config["enough_results"]:
                logger.info(f"[Ranker] Collected {len(analyses)} analyses, stopping early")
                break

        return {"analyses": analyses, "failed": failed}

    async def get_top_recommendations(self, snapshots: Sequence[AssetSnapshot]) -> List[Analysis]:
        """
        Top-N recommendations for the universe.

        When fallback is enabled and fewer than ``min_results`` full analyses succeed,
        momentum-only fallback analyses for the failed assets fill the remaining slots.
        They are flagged ``is_fallback`` and always rank after every full analysis.
        """
        top_n = self.config["top_n"]
        outcome = await self.analyze_universe(snapshots)
        ranked = rank_analyses(outcome["analyses"], top_n)

        if (self.config["allow_fallback"] and len(outcome["analyses"]) < self.config["min_results"]
                and len(ranked) < top_n):
            by_id = {snapshot.id: snapshot for snapshot in snapshots}
            fallbacks = []
            for asset_id in outcome["failed"]:
                try:
                    fallbacks.append(self.pipeline.build_momentum_fallback(by_id[asset_id]))
                except CoinlensError as e:
                    logger.warning(f"[Ranker] No fallback for {asset_id}: {e.message}")
            ranked.extend(rank_analyses(fallbacks, top_n - len(ranked)))

        logger.info(f"[Ranker] Returning {len(ranked)} recommendations")
        return ranked
