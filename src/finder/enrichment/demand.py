"""Trending and social-proof enrichment for findings.

SimulatedDemandProvider stands in for real trend/social sources: it draws
plausible metrics from an injected random.Random and folds them into a
demand score. It is enabled with SCAN_ENRICH_DEMAND and is seedable for
reproducible output.
"""

import math
import random
from abc import ABC, abstractmethod

from finder.models import DemandSignals

_VIRAL_THRESHOLD = 70
_TRENDING_THRESHOLD = 40
_HIGH_DEMAND = 70
_MODERATE_DEMAND = 40


class DemandProvider(ABC):
    """Source of demand indicators for a keyword."""

    @abstractmethod
    def signals(self, keyword: str) -> DemandSignals:
        ...


class SimulatedDemandProvider(DemandProvider):
    """Random-but-plausible trend and social-proof metrics.

    Demand score weights:
      search interest 30%, forum mentions 15%, social posts 15%,
      review volume 20%, average rating 20%.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def signals(self, keyword: str) -> DemandSignals:
        rng = self._rng
        trend_score = rng.randrange(100)
        search_interest = rng.randrange(100)
        forum_mentions = rng.randrange(200)
        social_posts = rng.randrange(50000)
        reviews = rng.randrange(5000)
        rating = 3.5 + rng.random() * 1.5

        demand_score = min(
            100,
            math.floor(
                search_interest * 0.3
                + (forum_mentions / 2) * 0.15
                + (social_posts / 500) * 0.15
                + (reviews / 50) * 0.2
                + (rating / 5 * 100) * 0.2
            ),
        )

        is_viral = trend_score > _VIRAL_THRESHOLD
        if is_viral:
            status = "viral"
        elif trend_score > _TRENDING_THRESHOLD:
            status = "trending"
        else:
            status = "normal"

        if demand_score > _HIGH_DEMAND:
            validation = "high_demand"
        elif demand_score > _MODERATE_DEMAND:
            validation = "moderate_demand"
        else:
            validation = "low_demand"

        return DemandSignals(
            trend_score=trend_score,
            is_viral=is_viral,
            demand_score=demand_score,
            status=status,
            validation=validation,
        )
