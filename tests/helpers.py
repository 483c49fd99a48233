"""
Shared test helpers: fake clock, instant sleep and small cycle configs.
"""

import asyncio
from typing import Any

from chaos_engine.chaos.injectors import InjectorLimits
from chaos_engine.chaos.models import ChaosConfig, CrashCategory

DEFAULT_CHANCES = {
    CrashCategory.HIGH_CPU_LOAD: 0.05,
    CrashCategory.MEMORY_LEAK: 0.03,
    CrashCategory.NETWORK_DELAY: 0.06,
    CrashCategory.RESOURCE_EXHAUSTION: 0.04,
}

TEST_LIMITS = InjectorLimits(
    cpu_max_iterations=20_000,
    memory_max_chunk_bytes=4096,
    network_max_delay_ms=0.0,
    resource_max_tasks=3,
    resource_hold_s=0.05,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


async def instant_sleep(_seconds: float) -> None:
    """Yield to the loop without waiting."""
    await asyncio.sleep(0)


def only(category: CrashCategory, chance: float = 1.0) -> dict[CrashCategory, float]:
    """Chances that always select a single category."""
    return {c: (chance if c == category else 0.0) for c in CrashCategory}


def make_config(**overrides: Any) -> ChaosConfig:
    """Small, fast cycle configuration for tests."""
    values: dict[str, Any] = {
        "chances": dict(DEFAULT_CHANCES),
        "buildup_duration_s": 100.0,
        "crash_window_s": 50.0,
        "initial_delay_s": 0.0,
        "initial_delay_range": (0.0, 0.0),
        "tick_interval_s": 5.0,
        "stabilization_delay_s": 10.0,
        "recovery_pause_s": 0.0,
    }
    values.update(overrides)
    return ChaosConfig(**values)
