"""
Pytest configuration and shared fixtures.
"""

import os
import random
from collections.abc import Callable, Generator
from contextlib import ExitStack
from typing import Any

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing app modules
os.environ.setdefault("CHAOS_ENV", "development")
os.environ.setdefault("CHAOS_LOG_LEVEL", "DEBUG")

from chaos_engine.chaos import supervisor as supervisor_module  # noqa: E402
from chaos_engine.chaos.injectors import InjectorLimits  # noqa: E402
from chaos_engine.chaos.supervisor import ChaosSupervisor  # noqa: E402
from chaos_engine.config import get_settings  # noqa: E402
from chaos_engine.logging import clear_cycle_id, clear_in_memory_logs  # noqa: E402
from tests.helpers import TEST_LIMITS, FakeClock, instant_sleep, make_config  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def supervisor_factory(
    clock: FakeClock, rng: random.Random
) -> Callable[..., ChaosSupervisor]:
    """Build supervisors on the shared fake clock and seeded random source."""

    def _make(limits: InjectorLimits = TEST_LIMITS, **overrides: Any) -> ChaosSupervisor:
        return ChaosSupervisor(
            make_config(**overrides),
            limits=limits,
            rng=rng,
            clock=clock,
            sleep=instant_sleep,
        )

    return _make


@pytest.fixture
def client_factory() -> Generator[Callable[[ChaosSupervisor], TestClient], None, None]:
    """
    Open TestClients on the abort-wrapped app, serving a given supervisor.

    The supervisor is installed as the global singleton so both the routes
    and the lifespan handler see it.
    """
    from chaos_engine.main import asgi_app

    with ExitStack() as stack:

        def _make(supervisor: ChaosSupervisor) -> TestClient:
            supervisor_module._supervisor = supervisor
            return stack.enter_context(TestClient(asgi_app))

        yield _make


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset module-level singletons between tests."""
    yield

    supervisor_module.reset_supervisor()
    get_settings.cache_clear()
    clear_in_memory_logs()
    clear_cycle_id()
