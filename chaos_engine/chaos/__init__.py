"""
Chaos state machine.

Provides:
- Clock and warm-up gating of chaos evaluation
- Weighted crash-type selection
- Intensity scheduling over the buildup window
- Failure injectors for CPU, memory, network and resource pressure
- The crash/recovery supervisor that owns the cycle
"""

from chaos_engine.chaos.errors import ChaosError, ForcedCrash
from chaos_engine.chaos.models import (
    ChaosConfig,
    CrashCategory,
    CyclePhase,
    TickKind,
    TickOutcome,
)
from chaos_engine.chaos.status import ChaosStatus
from chaos_engine.chaos.supervisor import ChaosSupervisor, get_supervisor, reset_supervisor

__all__ = [
    # Errors
    "ChaosError",
    "ForcedCrash",
    # Models
    "ChaosConfig",
    "CrashCategory",
    "CyclePhase",
    "TickKind",
    "TickOutcome",
    # Status
    "ChaosStatus",
    # Supervisor
    "ChaosSupervisor",
    "get_supervisor",
    "reset_supervisor",
]
