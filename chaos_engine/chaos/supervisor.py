"""
Crash/recovery supervisor.

Owns the whole chaos state machine:

    warming_up -> idle -> buildup -> crashed -> resetting -> warming_up

Every read-modify-write of cycle and category state happens under one
lock, and the clock gate is consulted inside it, so concurrent requests
landing in the same interval cannot both select a category or both count
a trigger. Injector side effects run after the lock is released.
"""

import asyncio
import random
import threading
import time
from collections.abc import Awaitable, Callable
from typing import Any

from chaos_engine.chaos.background import BackgroundWorkSet
from chaos_engine.chaos.gates import ClockGate, WarmupGate
from chaos_engine.chaos.injectors import InjectionReport, InjectorLimits, InjectorSet
from chaos_engine.chaos.intensity import IntensityScheduler
from chaos_engine.chaos.models import (
    ChaosConfig,
    CrashCategory,
    CycleState,
    CyclePhase,
    TickKind,
    TickOutcome,
)
from chaos_engine.chaos.selector import CrashTypeSelector
from chaos_engine.chaos.status import CategorySnapshot, ChaosStatus
from chaos_engine.config import Settings
from chaos_engine.logging import get_logger

logger = get_logger(__name__)


class ChaosSupervisor:
    """
    Single owner of the chaos cycle.

    Thread-safe tick evaluation; recovery runs on the event loop.
    """

    def __init__(
        self,
        config: ChaosConfig,
        limits: InjectorLimits | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize supervisor.

        Args:
            config: Cycle configuration (initial delay already drawn)
            limits: Injector severity caps
            rng: Random source shared by selection, triggering and injectors
            clock: Monotonic time source in seconds
            sleep: Async sleep used for the recovery pause
        """
        self._config = config
        self._rng = rng or random.Random()
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()

        self._clock_gate = ClockGate(config.tick_interval_s)
        self._warmup_gate = WarmupGate()
        self._selector = CrashTypeSelector(self._rng)
        self._scheduler = IntensityScheduler(config, self._rng)

        self._state = CycleState(cycle_started_at=self._clock())
        self._work = BackgroundWorkSet(generation=self._state.cycle)
        self._injectors = InjectorSet.build(limits or InjectorLimits(), self._work, self._rng)
        self._recovery_task: asyncio.Task[None] | None = None
        self._crash_count = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChaosSupervisor":
        """Build a supervisor from application settings."""
        rng = random.Random(settings.random_seed)
        return cls(
            config=ChaosConfig.from_settings(settings, rng),
            limits=InjectorLimits.from_settings(settings),
            rng=rng,
        )

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def config(self) -> ChaosConfig:
        return self._config

    @property
    def injectors(self) -> InjectorSet:
        return self._injectors

    @property
    def background(self) -> BackgroundWorkSet:
        return self._work

    @property
    def cycle(self) -> int:
        return self._state.cycle

    @property
    def phase(self) -> CyclePhase:
        return self._state.phase

    @property
    def crash_count(self) -> int:
        return self._crash_count

    # =========================================================================
    # Tick evaluation
    # =========================================================================

    def evaluate_tick(self) -> TickOutcome:
        """
        Evaluate one inbound request against the state machine.

        Returns:
            What the request should experience
        """
        with self._lock:
            now = self._clock()
            state = self._state

            if state.phase in (CyclePhase.CRASHED, CyclePhase.RESETTING):
                return TickOutcome(kind=TickKind.RESETTING, cycle=state.cycle)

            if not self._clock_gate.try_advance(now):
                return self._observe(now)

            if not state.warmup_started:
                remaining = self._warmup_gate.remaining(
                    now, state.cycle_started_at, self._config.initial_delay_s
                )
                if remaining > 0:
                    return TickOutcome(
                        kind=TickKind.INITIALIZING,
                        cycle=state.cycle,
                        remaining_delay_s=remaining,
                    )
                self._start_warmup(now)
                return TickOutcome(kind=TickKind.WARMUP_STARTED, cycle=state.cycle)

            if (
                state.active_category is None
                and state.warmup_started_at is not None
                and now - state.warmup_started_at >= self._config.stabilization_delay_s
            ):
                self._select(now)

            return self._evaluate_active(now)

    def _observe(self, now: float) -> TickOutcome:
        """Outcome for a request that arrived between ticks."""
        state = self._state
        if not state.warmup_started:
            remaining = self._warmup_gate.remaining(
                now, state.cycle_started_at, self._config.initial_delay_s
            )
            if remaining > 0:
                return TickOutcome(
                    kind=TickKind.INITIALIZING,
                    cycle=state.cycle,
                    remaining_delay_s=remaining,
                )
        return TickOutcome(kind=TickKind.OBSERVE, cycle=state.cycle)

    def _start_warmup(self, now: float) -> None:
        state = self._state
        state.warmup_started = True
        state.warmup_started_at = now
        state.phase = CyclePhase.IDLE
        for category_state in state.categories.values():
            category_state.activated_at = now
        logger.info("Chaos initialization started after initial delay")

    def _select(self, now: float) -> None:
        state = self._state
        category = self._selector.choose(self._config.chances)
        if category is None:
            return

        state.active_category = category
        state.phase = CyclePhase.BUILDUP
        category_state = state.categories[category]
        if category_state.trigger_count == 0:
            category_state.activated_at = now
        logger.info("Chaos Monkey selected crash type: %s", category.value)

    def _evaluate_active(self, now: float) -> TickOutcome:
        state = self._state
        category = state.active_category
        category_state = state.active_state()
        if category is None or category_state is None:
            return TickOutcome(kind=TickKind.OBSERVE, cycle=state.cycle)

        activated_at = category_state.activated_at if category_state.activated_at is not None else now
        elapsed = max(0.0, now - activated_at)
        progress = self._scheduler.progress(elapsed)
        chance = self._scheduler.effective_chance(category, progress)

        if not self._scheduler.should_trigger(category_state, chance):
            return TickOutcome(
                kind=TickKind.OBSERVE,
                cycle=state.cycle,
                category=category,
                elapsed_s=elapsed,
                progress=progress,
                effective_chance=chance,
                trigger_count=category_state.trigger_count,
            )

        category_state.has_triggered = True
        category_state.trigger_count += 1
        count = category_state.trigger_count

        if elapsed > self._config.crash_after_s:
            logger.error("Server crashed due to sustained %s!", category.value)
            self._crash_count += 1
            state.phase = CyclePhase.CRASHED
            self._enter_resetting(category)
            return TickOutcome(
                kind=TickKind.CRASH,
                cycle=state.cycle,
                category=category,
                elapsed_s=elapsed,
                progress=progress,
                effective_chance=chance,
                trigger_count=count,
            )

        return TickOutcome(
            kind=TickKind.INJECT,
            cycle=state.cycle,
            category=category,
            elapsed_s=elapsed,
            progress=progress,
            effective_chance=chance,
            trigger_count=count,
        )

    # =========================================================================
    # Injection
    # =========================================================================

    async def inject(self, outcome: TickOutcome) -> InjectionReport:
        """Run the injector for a triggered outcome outside the state lock."""
        if outcome.kind != TickKind.INJECT or outcome.category is None:
            raise ValueError(f"Outcome {outcome.kind.value} does not carry an injection")
        return await self._injectors.get(outcome.category).inject(outcome)

    # =========================================================================
    # Crash and recovery
    # =========================================================================

    def _enter_resetting(self, category: CrashCategory) -> None:
        """Synchronous part of the reset; caller holds the lock."""
        state = self._state
        state.categories[category].reset()
        state.active_category = None
        state.warmup_started = False
        state.warmup_started_at = None
        state.phase = CyclePhase.RESETTING
        self._clock_gate.reset()
        self._injectors.reset()
        logger.info("Server crashed, restarting at application level...")

    def schedule_recovery(self) -> asyncio.Task[None] | None:
        """
        Start the asynchronous tail of a reset on the running event loop.

        Returns:
            The recovery task, or None if there is nothing to recover from
        """
        if self._state.phase != CyclePhase.RESETTING:
            return None
        if self._recovery_task is not None and not self._recovery_task.done():
            return self._recovery_task
        self._recovery_task = asyncio.create_task(self._recover(), name="chaos-recovery")
        return self._recovery_task

    async def _recover(self) -> None:
        next_cycle = self._state.cycle + 1
        await self._work.cancel_generation(next_cycle)
        await self._sleep(self._config.recovery_pause_s)

        with self._lock:
            self._config = self._config.redraw_initial_delay(self._rng)
            self._scheduler.update_config(self._config)
            state = self._state
            state.cycle = next_cycle
            state.cycle_started_at = self._clock()
            state.phase = CyclePhase.WARMING_UP
            self._clock_gate.reset()

        logger.info(
            "Restarting server... (cycle %d, initial delay: %.1fs)",
            next_cycle,
            self._config.initial_delay_s,
        )

    async def wait_for_recovery(self) -> None:
        """Wait until a pending recovery has finished."""
        task = self._recovery_task
        if task is not None:
            await task

    async def shutdown(self) -> None:
        """Cancel pending recovery and all background work."""
        task = self._recovery_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._work.cancel_generation(self._state.cycle)
        self._injectors.reset()

    # =========================================================================
    # Status
    # =========================================================================

    def snapshot(self) -> ChaosStatus:
        """Read-only copy of the current state; never mutates anything."""
        with self._lock:
            now = self._clock()
            state = self._state
            active_state = state.active_state()
            uptime = None
            if active_state is not None and active_state.activated_at is not None:
                uptime = max(0.0, now - active_state.activated_at)

            remaining = 0.0
            if not state.warmup_started and state.phase == CyclePhase.WARMING_UP:
                remaining = self._warmup_gate.remaining(
                    now, state.cycle_started_at, self._config.initial_delay_s
                )

            categories = [
                CategorySnapshot(
                    category=category,
                    active=category == state.active_category,
                    has_triggered=category_state.has_triggered,
                    trigger_count=category_state.trigger_count,
                    elapsed_s=(
                        max(0.0, now - category_state.activated_at)
                        if category_state.activated_at is not None
                        else None
                    ),
                )
                for category, category_state in state.categories.items()
            ]

            return ChaosStatus(
                phase=state.phase,
                cycle=state.cycle,
                active_category=state.active_category,
                uptime_s=uptime,
                warmup_started=state.warmup_started,
                remaining_delay_s=remaining,
                initial_delay_s=self._config.initial_delay_s,
                categories=categories,
            )


# Global supervisor instance
_supervisor: ChaosSupervisor | None = None


def get_supervisor(settings: Settings | None = None) -> ChaosSupervisor:
    """Get the global supervisor instance, creating it on first use."""
    global _supervisor
    if _supervisor is None:
        if settings is None:
            from chaos_engine.config import get_settings

            settings = get_settings()
        _supervisor = ChaosSupervisor.from_settings(settings)
    return _supervisor


def reset_supervisor() -> None:
    """Drop the global supervisor (for testing)."""
    global _supervisor
    _supervisor = None
