"""
Failure injectors.

Each crash category has one injector. Severity grows linearly with the
buildup progress and is capped so a development machine is never
overwhelmed:
- CPU burn: busy loop in a worker thread
- Memory growth: random bytes appended to a shared buffer
- Network delay: the calling request sleeps
- Resource exhaustion: short-lived holder tasks
"""

import asyncio
import gc
import random
import threading
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from chaos_engine.chaos.background import BackgroundWorkSet
from chaos_engine.chaos.models import CrashCategory, TickOutcome
from chaos_engine.config import Settings
from chaos_engine.logging import get_logger

logger = get_logger(__name__)

MAX_CPU_ITERATIONS = 1_000_000
MAX_MEMORY_CHUNK_BYTES = 1024 * 1024
MAX_NETWORK_DELAY_MS = 500.0
MAX_RESOURCE_TASKS = 10
RESOURCE_HOLD_S = 2.0

# Busy loops poll their cancel event this often
CPU_CANCEL_CHECK_EVERY = 10_000


@dataclass(frozen=True)
class InjectorLimits:
    """Severity caps reached at full buildup progress."""

    cpu_max_iterations: int = MAX_CPU_ITERATIONS
    memory_max_chunk_bytes: int = MAX_MEMORY_CHUNK_BYTES
    network_max_delay_ms: float = MAX_NETWORK_DELAY_MS
    resource_max_tasks: int = MAX_RESOURCE_TASKS
    resource_hold_s: float = RESOURCE_HOLD_S

    @classmethod
    def from_settings(cls, settings: Settings) -> "InjectorLimits":
        return cls(
            cpu_max_iterations=settings.cpu_max_iterations,
            memory_max_chunk_bytes=settings.memory_max_chunk_bytes,
            network_max_delay_ms=settings.network_max_delay_ms,
            resource_max_tasks=settings.resource_max_tasks,
            resource_hold_s=settings.resource_hold_s,
        )


@dataclass(frozen=True)
class InjectionReport:
    """What an injector did on one trigger."""

    category: CrashCategory
    severity: float
    unit: str


def scale(cap: float, progress: float) -> float:
    """Linear severity for a progress ratio, never above the cap."""
    return cap * min(1.0, max(0.0, progress))


def burn_cpu(iterations: int, cancel_event: threading.Event) -> int:
    """
    Spin for up to `iterations` rounds of throwaway arithmetic.

    Returns:
        Number of iterations actually completed
    """
    acc = 0
    for i in range(iterations):
        if i % CPU_CANCEL_CHECK_EVERY == 0 and cancel_event.is_set():
            return i
        acc = (acc * 31 + i) & 0xFFFFFFFF
    return iterations


class FailureInjector(ABC):
    """Base class for one category's failure simulation."""

    category: CrashCategory

    @abstractmethod
    async def inject(self, outcome: TickOutcome) -> InjectionReport:
        """
        Apply this category's failure at the outcome's progress.

        Args:
            outcome: Triggered tick outcome (progress, elapsed, cycle)

        Returns:
            Report of the applied severity
        """

    def reset(self) -> None:
        """Drop state accumulated during the finished cycle."""

    def get_stats(self) -> dict[str, Any]:
        return {}


class CpuBurnInjector(FailureInjector):
    """Launches a bounded busy loop detached from the request."""

    category = CrashCategory.HIGH_CPU_LOAD

    def __init__(self, limits: InjectorLimits, work: BackgroundWorkSet):
        self._limits = limits
        self._work = work
        self._burns_started = 0

    async def inject(self, outcome: TickOutcome) -> InjectionReport:
        iterations = int(scale(self._limits.cpu_max_iterations, outcome.progress))
        logger.warning(
            "High CPU Load simulated at %.1fs (%d iterations)",
            outcome.elapsed_s,
            iterations,
        )
        if iterations > 0:
            task = self._work.spawn_thread(
                burn_cpu,
                iterations,
                generation=outcome.cycle,
                name=f"cpu-burn-{outcome.trigger_count}",
            )
            if task is not None:
                self._burns_started += 1
        return InjectionReport(category=self.category, severity=iterations, unit="iterations")

    def get_stats(self) -> dict[str, Any]:
        return {"burns_started": self._burns_started}


class MemoryGrowthInjector(FailureInjector):
    """
    Grows a process-wide buffer by a random chunk per trigger.

    The buffer only grows within a cycle; reset() empties it and moves on
    to the next generation. Chunks for an older cycle are dropped.
    """

    category = CrashCategory.MEMORY_LEAK

    def __init__(self, limits: InjectorLimits, rng: random.Random, generation: int = 1):
        self._limits = limits
        self._rng = random.Random(rng.getrandbits(64))
        self._lock = threading.Lock()
        self._buffer = bytearray()
        self._generation = generation
        self._dropped_total = 0

    @property
    def buffer_size(self) -> int:
        with self._lock:
            return len(self._buffer)

    @property
    def generation(self) -> int:
        return self._generation

    def _grow(self, size: int, cycle: int) -> int | None:
        """
        Append `size` random bytes for `cycle`.

        Returns:
            Retained bytes, or None if the cycle was already reset
        """
        with self._lock:
            if cycle < self._generation:
                self._dropped_total += 1
                return None
            if size > 0:
                self._buffer.extend(self._rng.randbytes(size))
            total = len(self._buffer)
        gc.collect()
        return total

    async def inject(self, outcome: TickOutcome) -> InjectionReport:
        size = int(scale(self._limits.memory_max_chunk_bytes, outcome.progress))
        total = await asyncio.to_thread(self._grow, size, outcome.cycle)
        if total is None:
            logger.debug(
                "Dropped memory chunk from stale cycle %d (current %d)",
                outcome.cycle,
                self._generation,
            )
            return InjectionReport(category=self.category, severity=0, unit="bytes")

        logger.warning(
            "Memory Leak simulated at %.1fs (+%d bytes, %d retained)",
            outcome.elapsed_s,
            size,
            total,
        )
        return InjectionReport(category=self.category, severity=size, unit="bytes")

    def reset(self) -> None:
        with self._lock:
            released = len(self._buffer)
            self._buffer = bytearray()
            self._generation += 1
        if released:
            logger.info("Released %d leaked bytes", released)
        gc.collect()

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "buffer_bytes": len(self._buffer),
                "generation": self._generation,
                "dropped_total": self._dropped_total,
            }


class NetworkDelayInjector(FailureInjector):
    """Delays the calling request only."""

    category = CrashCategory.NETWORK_DELAY

    def __init__(
        self,
        limits: InjectorLimits,
        rng: random.Random,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._limits = limits
        self._rng = rng
        self._sleep = sleep

    async def inject(self, outcome: TickOutcome) -> InjectionReport:
        max_delay_ms = scale(self._limits.network_max_delay_ms, outcome.progress)
        delay_ms = self._rng.uniform(0.0, max_delay_ms) if max_delay_ms > 0 else 0.0
        logger.warning(
            "Network Delay simulated at %.1fs (%.0fms of max %.0fms)",
            outcome.elapsed_s,
            delay_ms,
            max_delay_ms,
        )
        if delay_ms > 0:
            await self._sleep(delay_ms / 1000.0)
        return InjectionReport(category=self.category, severity=delay_ms, unit="ms")


class ResourceExhaustionInjector(FailureInjector):
    """Spawns holder tasks that each keep a slot for a short while."""

    category = CrashCategory.RESOURCE_EXHAUSTION

    def __init__(self, limits: InjectorLimits, work: BackgroundWorkSet):
        self._limits = limits
        self._work = work
        self._held = 0

    @property
    def held(self) -> int:
        """Holders currently keeping a slot."""
        return self._held

    async def _hold(self) -> None:
        self._held += 1
        try:
            await asyncio.sleep(self._limits.resource_hold_s)
        finally:
            self._held -= 1

    async def inject(self, outcome: TickOutcome) -> InjectionReport:
        count = int(scale(self._limits.resource_max_tasks, outcome.progress))
        logger.warning(
            "Resource Exhaustion simulated at %.1fs (%d holders)",
            outcome.elapsed_s,
            count,
        )
        for i in range(count):
            self._work.spawn(
                self._hold(),
                generation=outcome.cycle,
                name=f"resource-holder-{outcome.trigger_count}-{i}",
            )
        return InjectionReport(category=self.category, severity=count, unit="tasks")

    def get_stats(self) -> dict[str, Any]:
        return {"held": self._held}


class InjectorSet:
    """One injector per crash category."""

    def __init__(self, injectors: list[FailureInjector]):
        self._injectors = {injector.category: injector for injector in injectors}
        missing = [category for category in CrashCategory if category not in self._injectors]
        if missing:
            raise ValueError(f"No injector for categories: {[c.value for c in missing]}")

    @classmethod
    def build(
        cls,
        limits: InjectorLimits,
        work: BackgroundWorkSet,
        rng: random.Random,
    ) -> "InjectorSet":
        """Create the standard injector for every category."""
        return cls(
            [
                CpuBurnInjector(limits, work),
                MemoryGrowthInjector(limits, rng),
                NetworkDelayInjector(limits, rng),
                ResourceExhaustionInjector(limits, work),
            ]
        )

    def get(self, category: CrashCategory) -> FailureInjector:
        return self._injectors[category]

    def reset(self) -> None:
        """Reset every injector at the end of a cycle."""
        for injector in self._injectors.values():
            injector.reset()

    def get_stats(self) -> dict[str, dict[str, Any]]:
        return {
            category.value: injector.get_stats()
            for category, injector in self._injectors.items()
        }
