from .analysis_pipeline import AnalysisPipeline
from .recommendation_ranker import RecommendationRanker, rank_analyses

__all__ = ["AnalysisPipeline", "RecommendationRanker", "rank_analyses"]
