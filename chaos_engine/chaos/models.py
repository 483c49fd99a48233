"""
Chaos state machine data models.

Defines the crash categories, the immutable cycle configuration and the
mutable per-category and per-cycle state owned by the supervisor.
"""

import random
from dataclasses import dataclass, field, replace
from enum import Enum

from chaos_engine.config import Settings


class CrashCategory(str, Enum):
    """Failure categories, in the fixed order used for weighted selection."""

    HIGH_CPU_LOAD = "HighCPULoad"
    MEMORY_LEAK = "MemoryLeak"
    NETWORK_DELAY = "NetworkDelay"
    RESOURCE_EXHAUSTION = "ResourceExhaustion"

    @property
    def label(self) -> str:
        """Human-readable name used in response bodies."""
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    CrashCategory.HIGH_CPU_LOAD: "High CPU Load",
    CrashCategory.MEMORY_LEAK: "Memory Leak",
    CrashCategory.NETWORK_DELAY: "Network Delay",
    CrashCategory.RESOURCE_EXHAUSTION: "Resource Exhaustion",
}


class CyclePhase(str, Enum):
    """Where the chaos cycle currently is."""

    WARMING_UP = "warming_up"
    IDLE = "idle"
    BUILDUP = "buildup"
    CRASHED = "crashed"
    RESETTING = "resetting"


class TickKind(str, Enum):
    """What a single request evaluation decided."""

    OBSERVE = "observe"
    INITIALIZING = "initializing"
    WARMUP_STARTED = "warmup_started"
    INJECT = "inject"
    CRASH = "crash"
    RESETTING = "resetting"


# Asymptotic trigger probability is this multiple of the base chance
DEFAULT_AMPLIFICATION = 6.0


@dataclass(frozen=True)
class ChaosConfig:
    """
    Cycle configuration, fixed for the lifetime of a cycle.

    The initial delay is the only randomized field; it is drawn once when
    the config is built and redrawn on every cycle reset.
    """

    chances: dict[CrashCategory, float]
    buildup_duration_s: float
    crash_window_s: float
    initial_delay_s: float
    initial_delay_range: tuple[float, float] = (0.0, 300.0)
    tick_interval_s: float = 5.0
    stabilization_delay_s: float = 10.0
    recovery_pause_s: float = 2.0
    amplification_factor: float = DEFAULT_AMPLIFICATION

    @classmethod
    def from_settings(cls, settings: Settings, rng: random.Random) -> "ChaosConfig":
        """Build a config from settings, drawing the first initial delay."""
        delay_range = (settings.initial_delay_min_s, settings.initial_delay_max_s)
        return cls(
            chances={
                CrashCategory.HIGH_CPU_LOAD: settings.high_cpu_chance,
                CrashCategory.MEMORY_LEAK: settings.memory_leak_chance,
                CrashCategory.NETWORK_DELAY: settings.network_delay_chance,
                CrashCategory.RESOURCE_EXHAUSTION: settings.resource_exhaustion_chance,
            },
            buildup_duration_s=settings.buildup_duration_s,
            crash_window_s=settings.crash_window_s,
            initial_delay_s=rng.uniform(*delay_range),
            initial_delay_range=delay_range,
            tick_interval_s=settings.tick_interval_s,
            stabilization_delay_s=settings.stabilization_delay_s,
            recovery_pause_s=settings.recovery_pause_s,
            amplification_factor=settings.amplification_factor,
        )

    @property
    def crash_after_s(self) -> float:
        """Elapsed time past which a triggered tick forces a crash."""
        return self.buildup_duration_s + self.crash_window_s

    def chance_for(self, category: CrashCategory) -> float:
        """Base trigger chance for a category."""
        return self.chances.get(category, 0.0)

    def redraw_initial_delay(self, rng: random.Random) -> "ChaosConfig":
        """Return a copy with a freshly drawn initial delay."""
        return replace(self, initial_delay_s=rng.uniform(*self.initial_delay_range))


@dataclass
class CategoryState:
    """Mutable state of one crash category."""

    activated_at: float | None = None
    has_triggered: bool = False
    trigger_count: int = 0

    def reset(self) -> None:
        """Return to the zero value."""
        self.activated_at = None
        self.has_triggered = False
        self.trigger_count = 0


@dataclass
class CycleState:
    """Singleton cycle state owned by the supervisor."""

    cycle_started_at: float
    cycle: int = 1
    phase: CyclePhase = CyclePhase.WARMING_UP
    active_category: CrashCategory | None = None
    warmup_started: bool = False
    warmup_started_at: float | None = None
    categories: dict[CrashCategory, CategoryState] = field(
        default_factory=lambda: {category: CategoryState() for category in CrashCategory}
    )

    def active_state(self) -> CategoryState | None:
        """State of the active category, if any."""
        if self.active_category is None:
            return None
        return self.categories[self.active_category]


@dataclass(frozen=True)
class TickOutcome:
    """Result of evaluating one request against the chaos state machine."""

    kind: TickKind
    cycle: int
    category: CrashCategory | None = None
    elapsed_s: float = 0.0
    progress: float = 0.0
    effective_chance: float = 0.0
    trigger_count: int = 0
    remaining_delay_s: float = 0.0
