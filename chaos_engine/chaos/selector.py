"""
Crash-type selection.

One weighted random draw among the categories. The cumulative intervals
are built in CrashCategory declaration order, which only breaks ties; it
does not prioritise any category.
"""

import random
from collections.abc import Mapping

from chaos_engine.chaos.models import CrashCategory


class CrashTypeSelector:
    """Weighted random choice of the next crash category."""

    def __init__(self, rng: random.Random):
        self._rng = rng

    def choose(self, chances: Mapping[CrashCategory, float]) -> CrashCategory | None:
        """
        Draw a category with probability proportional to its chance.

        Args:
            chances: Base chance per category

        Returns:
            Selected category, or None when all chances sum to zero or less
        """
        weighted = [(category, max(0.0, chances.get(category, 0.0))) for category in CrashCategory]
        total = sum(weight for _, weight in weighted)
        if total <= 0:
            return None

        draw = self._rng.random() * total
        cumulative = 0.0
        for category, weight in weighted:
            cumulative += weight
            if draw < cumulative:
                return category

        # Float rounding can leave the draw on the final boundary
        return next(category for category, weight in reversed(weighted) if weight > 0)
