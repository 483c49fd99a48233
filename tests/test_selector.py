"""
Tests for weighted crash-type selection.
"""

import random
from collections import Counter

import pytest

from chaos_engine.chaos.models import CrashCategory
from chaos_engine.chaos.selector import CrashTypeSelector
from tests.helpers import DEFAULT_CHANCES, only


class FixedRandom(random.Random):
    """Random source that always draws the same value."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


class TestCrashTypeSelector:
    """Tests for CrashTypeSelector."""

    def test_zero_chances_never_select(self) -> None:
        """No category is chosen when every chance is zero."""
        selector = CrashTypeSelector(random.Random(1))
        zero = {category: 0.0 for category in CrashCategory}

        assert all(selector.choose(zero) is None for _ in range(1000))

    def test_negative_total_is_noop(self) -> None:
        selector = CrashTypeSelector(random.Random(1))

        assert selector.choose({CrashCategory.MEMORY_LEAK: -1.0}) is None

    def test_single_category_always_selected(self) -> None:
        selector = CrashTypeSelector(random.Random(1))
        chances = only(CrashCategory.NETWORK_DELAY, 0.2)

        assert {selector.choose(chances) for _ in range(500)} == {CrashCategory.NETWORK_DELAY}

    @pytest.mark.parametrize(
        ("draw", "expected"),
        [
            (0.0, CrashCategory.HIGH_CPU_LOAD),
            (0.27, CrashCategory.HIGH_CPU_LOAD),
            (0.28, CrashCategory.MEMORY_LEAK),
            (0.44, CrashCategory.MEMORY_LEAK),
            (0.45, CrashCategory.NETWORK_DELAY),
            (0.77, CrashCategory.NETWORK_DELAY),
            (0.78, CrashCategory.RESOURCE_EXHAUSTION),
            (0.999, CrashCategory.RESOURCE_EXHAUSTION),
        ],
    )
    def test_cumulative_intervals_in_fixed_order(
        self, draw: float, expected: CrashCategory
    ) -> None:
        """Intervals are CPU [0, .05), memory [.05, .08), network [.08, .14), resource."""
        selector = CrashTypeSelector(FixedRandom(draw))

        assert selector.choose(DEFAULT_CHANCES) == expected

    def test_draw_on_final_boundary_resolves_to_last_weighted(self) -> None:
        """A draw that rounds onto the total still returns a weighted category."""
        selector = CrashTypeSelector(FixedRandom(1.0))
        chances = {
            CrashCategory.HIGH_CPU_LOAD: 0.5,
            CrashCategory.MEMORY_LEAK: 0.5,
            CrashCategory.NETWORK_DELAY: 0.0,
            CrashCategory.RESOURCE_EXHAUSTION: 0.0,
        }

        assert selector.choose(chances) == CrashCategory.MEMORY_LEAK

    def test_frequencies_converge_to_weights(self) -> None:
        """Over 100k draws each category is within 5% relative error of its weight."""
        selector = CrashTypeSelector(random.Random(1234))
        draws = 100_000

        counts = Counter(selector.choose(DEFAULT_CHANCES) for _ in range(draws))

        total = sum(DEFAULT_CHANCES.values())
        for category, chance in DEFAULT_CHANCES.items():
            expected = chance / total
            observed = counts[category] / draws
            assert abs(observed - expected) / expected < 0.05, category
