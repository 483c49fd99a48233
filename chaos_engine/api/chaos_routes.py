"""
Chaos API routes.

The unstable service surface:
- GET /        evaluates the chaos state machine and may fail or crash
- GET /health  reports the current category without mutating anything
- GET /chaos/status and /chaos/logs for diagnostics
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from chaos_engine.chaos.errors import ForcedCrash
from chaos_engine.chaos.models import TickKind
from chaos_engine.chaos.status import (
    failure_message,
    health_message,
    initializing_message,
    restarting_message,
    running_message,
)
from chaos_engine.chaos.supervisor import ChaosSupervisor, get_supervisor
from chaos_engine.config import Settings, get_settings_dep
from chaos_engine.logging import get_in_memory_logs, set_cycle_id

router = APIRouter(tags=["Chaos"])
diagnostics_router = APIRouter(prefix="/chaos", tags=["Diagnostics"])


def get_supervisor_dep(settings: Settings = Depends(get_settings_dep)) -> ChaosSupervisor:
    """
    Dependency for routes to get the chaos supervisor.
    Allows for easy dependency override in tests.
    """
    return get_supervisor(settings)


# =============================================================================
# Response Models
# =============================================================================


class ChaosStatusResponse(BaseModel):
    """Diagnostics snapshot of the chaos cycle."""

    phase: str
    cycle: int
    active_category: str | None = None
    uptime_s: float | None = None
    warmup_started: bool
    remaining_delay_s: float
    initial_delay_s: float
    crash_count: int
    categories: dict[str, dict[str, Any]] = Field(default_factory=dict)
    injectors: dict[str, dict[str, Any]] = Field(default_factory=dict)
    background: dict[str, int] = Field(default_factory=dict)
    config: dict[str, Any] = Field(default_factory=dict)
    timestamp: str


class LogsResponse(BaseModel):
    """Recent log records."""

    logs: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0


# =============================================================================
# Routes
# =============================================================================


@router.get("/", response_class=PlainTextResponse)
async def chaos_root(
    supervisor: ChaosSupervisor = Depends(get_supervisor_dep),
) -> PlainTextResponse:
    """
    Serve a request through the chaos state machine.

    Answers 200 while healthy or initializing, 500 when an injector fires,
    503 while the cycle resets, and drops the connection on a forced crash.
    """
    outcome = supervisor.evaluate_tick()
    set_cycle_id(outcome.cycle)

    if outcome.kind == TickKind.INITIALIZING:
        return PlainTextResponse(initializing_message(outcome.remaining_delay_s))

    if outcome.kind == TickKind.RESETTING:
        return PlainTextResponse(restarting_message(), status_code=503)

    if outcome.kind == TickKind.CRASH and outcome.category is not None:
        supervisor.schedule_recovery()
        raise ForcedCrash(outcome.category, outcome.trigger_count, outcome.elapsed_s)

    if outcome.kind == TickKind.INJECT and outcome.category is not None:
        await supervisor.inject(outcome)
        return PlainTextResponse(
            failure_message(outcome.category, outcome.trigger_count),
            status_code=500,
        )

    return PlainTextResponse(running_message(supervisor.snapshot()))


@router.get("/health", response_class=PlainTextResponse)
async def health(
    supervisor: ChaosSupervisor = Depends(get_supervisor_dep),
) -> PlainTextResponse:
    """Health check; always 200 and never touches chaos state."""
    return PlainTextResponse(health_message(supervisor.snapshot()))


@diagnostics_router.get("/status", response_model=ChaosStatusResponse)
async def chaos_status(
    supervisor: ChaosSupervisor = Depends(get_supervisor_dep),
    settings: Settings = Depends(get_settings_dep),
) -> ChaosStatusResponse:
    """
    Get a read-only snapshot of the chaos cycle.

    Includes per-category state, injector stats, background work
    and the configuration summary.
    """
    status = supervisor.snapshot().to_dict()
    return ChaosStatusResponse(
        **status,
        crash_count=supervisor.crash_count,
        injectors=supervisor.injectors.get_stats(),
        background=supervisor.background.get_stats(),
        config=settings.get_summary(),
        timestamp=datetime.now(UTC).isoformat(),
    )


@diagnostics_router.get("/logs", response_model=LogsResponse)
async def chaos_logs(
    level: str = Query(default="INFO", description="Minimum log level"),
    limit: int = Query(default=50, ge=1, le=1000, description="Maximum records"),
) -> LogsResponse:
    """Get recent log records from the in-memory buffer."""
    logs = get_in_memory_logs(level=level, limit=limit)
    return LogsResponse(logs=logs, count=len(logs))
