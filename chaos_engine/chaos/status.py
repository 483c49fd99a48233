"""
Status reporting.

Read-only view of the chaos cycle and the text bodies the unstable
service answers with.
"""

from dataclasses import dataclass, field
from typing import Any

from chaos_engine.chaos.models import CrashCategory, CyclePhase


@dataclass(frozen=True)
class CategorySnapshot:
    """Copy of one category's state."""

    category: CrashCategory
    active: bool
    has_triggered: bool
    trigger_count: int
    elapsed_s: float | None


@dataclass(frozen=True)
class ChaosStatus:
    """Point-in-time copy of the supervisor state."""

    phase: CyclePhase
    cycle: int
    active_category: CrashCategory | None
    uptime_s: float | None
    warmup_started: bool
    remaining_delay_s: float
    initial_delay_s: float
    categories: list[CategorySnapshot] = field(default_factory=list)

    @property
    def is_initializing(self) -> bool:
        return self.phase == CyclePhase.WARMING_UP and self.remaining_delay_s > 0

    @property
    def is_resetting(self) -> bool:
        return self.phase in (CyclePhase.CRASHED, CyclePhase.RESETTING)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "cycle": self.cycle,
            "active_category": self.active_category.value if self.active_category else None,
            "uptime_s": round(self.uptime_s, 3) if self.uptime_s is not None else None,
            "warmup_started": self.warmup_started,
            "remaining_delay_s": round(self.remaining_delay_s, 3),
            "initial_delay_s": round(self.initial_delay_s, 3),
            "categories": {
                snap.category.value: {
                    "active": snap.active,
                    "has_triggered": snap.has_triggered,
                    "trigger_count": snap.trigger_count,
                    "elapsed_s": round(snap.elapsed_s, 3) if snap.elapsed_s is not None else None,
                }
                for snap in self.categories
            },
        }


def format_duration(seconds: float) -> str:
    """
    Render a duration the way Go prints time.Duration.

    Examples: "0s", "350ms", "4.25s", "4m12.5s", "1h2m3s".
    """
    seconds = round(seconds, 3)
    if seconds <= 0:
        return "0s"
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"

    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    secs_text = f"{secs:.3f}".rstrip("0").rstrip(".") + "s"

    parts = []
    if hours:
        parts.append(f"{int(hours)}h")
    if hours or minutes:
        parts.append(f"{int(minutes)}m")
    parts.append(secs_text)
    return "".join(parts)


def initializing_message(remaining_s: float) -> str:
    return f"Server is initializing... (Remaining delay: {format_duration(remaining_s)})"


def running_message(status: ChaosStatus) -> str:
    if status.active_category is not None and status.uptime_s is not None:
        return (
            f"Server is running... (Chaos Type: {status.active_category.value}, "
            f"Uptime: {format_duration(status.uptime_s)})"
        )
    return "Server is running... (No chaos active)"


def health_message(status: ChaosStatus) -> str:
    if status.active_category is not None and status.uptime_s is not None:
        return (
            f"Health check: OK (Chaos Type: {status.active_category.value}, "
            f"Uptime: {format_duration(status.uptime_s)})"
        )
    return "Health check: OK (No chaos active)"


def failure_message(category: CrashCategory, trigger_count: int) -> str:
    return f"Error: Server failed due to {category.label} buildup (Count: {trigger_count})"


def restarting_message() -> str:
    return "Server is restarting..."
