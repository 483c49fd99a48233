"""
Intensity scheduling.

Maps time since a category's activation to a progress ratio in [0, 1]
and to the per-tick trigger probability.
"""

import random

from chaos_engine.chaos.models import CategoryState, ChaosConfig, CrashCategory


def compute_progress(elapsed_s: float, buildup_duration_s: float) -> float:
    """Fraction of the buildup window that has elapsed, clamped to [0, 1]."""
    if buildup_duration_s <= 0:
        return 1.0
    return min(1.0, max(0.0, elapsed_s / buildup_duration_s))


class IntensityScheduler:
    """Progress ratio, effective chance and the per-tick trigger decision."""

    def __init__(self, config: ChaosConfig, rng: random.Random):
        self._config = config
        self._rng = rng

    def update_config(self, config: ChaosConfig) -> None:
        """Update configuration."""
        self._config = config

    def progress(self, elapsed_s: float) -> float:
        return compute_progress(elapsed_s, self._config.buildup_duration_s)

    def effective_chance(self, category: CrashCategory, progress: float) -> float:
        """
        Per-tick trigger probability for a category.

        Ranges from 0 at activation to base_chance * amplification once the
        buildup window has passed.
        """
        progress = min(1.0, max(0.0, progress))
        return self._config.chance_for(category) * progress * self._config.amplification_factor

    def should_trigger(self, state: CategoryState, chance: float) -> bool:
        """
        Decide whether the active category fires on this tick.

        The first evaluation after selection always fires.
        """
        if not state.has_triggered:
            return True
        return self._rng.random() < chance
