"""
Tests for settings and cycle configuration.
"""

import random

import pytest
from pydantic import ValidationError

from chaos_engine.chaos.injectors import InjectorLimits
from chaos_engine.chaos.models import ChaosConfig, CrashCategory
from chaos_engine.config import AppEnvironment, Settings, get_settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CHAOS_LOG_LEVEL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.port == 8080
        assert settings.log_level == "INFO"
        assert settings.high_cpu_chance == 0.05
        assert settings.memory_leak_chance == 0.03
        assert settings.network_delay_chance == 0.06
        assert settings.resource_exhaustion_chance == 0.04
        assert settings.buildup_duration_s == 2100.0
        assert settings.crash_window_s == 600.0
        assert settings.initial_delay_max_s == 300.0
        assert settings.tick_interval_s == 5.0
        assert settings.total_chance == pytest.approx(0.18)
        assert settings.chaos_enabled is True

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHAOS_PORT", "9090")
        monkeypatch.setenv("CHAOS_NETWORK_DELAY_CHANCE", "0.5")
        monkeypatch.setenv("CHAOS_ENV", "production")

        settings = Settings(_env_file=None)

        assert settings.port == 9090
        assert settings.network_delay_chance == 0.5
        assert settings.env == AppEnvironment.PRODUCTION

    def test_chance_out_of_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, memory_leak_chance=1.5)

    def test_log_level_normalized(self) -> None:
        assert Settings(_env_file=None, log_level="warning").log_level == "WARNING"

    def test_invalid_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_unordered_delay_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, initial_delay_min_s=20.0, initial_delay_max_s=10.0)

    def test_all_zero_chances_disable_chaos(self) -> None:
        settings = Settings(
            _env_file=None,
            high_cpu_chance=0.0,
            memory_leak_chance=0.0,
            network_delay_chance=0.0,
            resource_exhaustion_chance=0.0,
        )

        assert settings.chaos_enabled is False
        assert settings.get_summary()["chaos_enabled"] is False

    def test_summary_includes_recovery_and_caps(self) -> None:
        settings = Settings(_env_file=None, recovery_pause_s=5.0, resource_max_tasks=4)

        summary = settings.get_summary()

        assert summary["recovery_pause_s"] == 5.0
        assert summary["resource_max_tasks"] == 4
        assert summary["cpu_max_iterations"] == 1_000_000
        assert summary["memory_max_chunk_bytes"] == 1024 * 1024
        assert summary["network_max_delay_ms"] == 500.0
        assert summary["resource_hold_s"] == 2.0

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


class TestChaosConfig:
    """Tests for ChaosConfig."""

    def test_from_settings(self) -> None:
        settings = Settings(
            _env_file=None,
            initial_delay_min_s=5.0,
            initial_delay_max_s=15.0,
            amplification_factor=3.0,
        )

        config = ChaosConfig.from_settings(settings, random.Random(9))

        assert config.chances[CrashCategory.NETWORK_DELAY] == 0.06
        assert 5.0 <= config.initial_delay_s <= 15.0
        assert config.initial_delay_range == (5.0, 15.0)
        assert config.amplification_factor == 3.0
        assert config.crash_after_s == 2700.0

    def test_redraw_keeps_everything_else(self) -> None:
        settings = Settings(_env_file=None, initial_delay_min_s=0.0, initial_delay_max_s=300.0)
        config = ChaosConfig.from_settings(settings, random.Random(9))

        redrawn = config.redraw_initial_delay(random.Random(10))

        assert redrawn.chances == config.chances
        assert redrawn.buildup_duration_s == config.buildup_duration_s
        assert 0.0 <= redrawn.initial_delay_s <= 300.0
        assert redrawn.initial_delay_s != config.initial_delay_s

    def test_missing_category_has_zero_chance(self) -> None:
        config = ChaosConfig(
            chances={CrashCategory.MEMORY_LEAK: 0.2},
            buildup_duration_s=10.0,
            crash_window_s=5.0,
            initial_delay_s=0.0,
        )

        assert config.chance_for(CrashCategory.HIGH_CPU_LOAD) == 0.0

    def test_injector_limits_from_settings(self) -> None:
        settings = Settings(_env_file=None, resource_max_tasks=4, network_max_delay_ms=50.0)

        limits = InjectorLimits.from_settings(settings)

        assert limits.resource_max_tasks == 4
        assert limits.network_max_delay_ms == 50.0
        assert limits.cpu_max_iterations == 1_000_000
