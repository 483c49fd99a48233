"""
Configuration management for the chaos engine.

Uses pydantic-settings for type-safe environment variable handling.
Every tunable of the chaos cycle is a startup constant that can be
overridden with a CHAOS_* environment variable (or a local .env file).
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppEnvironment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Durations are expressed in seconds unless the field name says otherwise.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAOS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    env: AppEnvironment = Field(
        default=AppEnvironment.DEVELOPMENT,
        description="Application environment",
    )

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, ge=1, le=65535, description="Server port")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Emit JSON formatted log lines")

    # Base trigger chance per crash category
    high_cpu_chance: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Base chance for the high CPU load category",
    )
    memory_leak_chance: float = Field(
        default=0.03,
        ge=0.0,
        le=1.0,
        description="Base chance for the memory leak category",
    )
    network_delay_chance: float = Field(
        default=0.06,
        ge=0.0,
        le=1.0,
        description="Base chance for the network delay category",
    )
    resource_exhaustion_chance: float = Field(
        default=0.04,
        ge=0.0,
        le=1.0,
        description="Base chance for the resource exhaustion category",
    )

    # Cycle timing
    buildup_duration_s: float = Field(
        default=35 * 60,
        ge=0.0,
        description="Time for a category to ramp up to full intensity",
    )
    crash_window_s: float = Field(
        default=10 * 60,
        ge=0.0,
        description="Extra time after buildup before the forced crash",
    )
    initial_delay_min_s: float = Field(
        default=0.0,
        ge=0.0,
        description="Lower bound of the randomized warm-up delay",
    )
    initial_delay_max_s: float = Field(
        default=5 * 60,
        ge=0.0,
        description="Upper bound of the randomized warm-up delay",
    )
    tick_interval_s: float = Field(
        default=5.0,
        ge=0.0,
        description="Minimum spacing between chaos evaluations",
    )
    stabilization_delay_s: float = Field(
        default=10.0,
        ge=0.0,
        description="Delay after warm-up before a category may be selected",
    )
    recovery_pause_s: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Pause between a forced crash and the next warm-up",
    )

    # Intensity and injector caps
    amplification_factor: float = Field(
        default=6.0,
        ge=0.0,
        description="Multiplier applied to the base chance at full progress",
    )
    cpu_max_iterations: int = Field(
        default=1_000_000,
        ge=0,
        description="Busy-loop iterations at full CPU burn intensity",
    )
    memory_max_chunk_bytes: int = Field(
        default=1024 * 1024,
        ge=0,
        description="Bytes retained per memory leak injection at full intensity",
    )
    network_max_delay_ms: float = Field(
        default=500.0,
        ge=0.0,
        description="Maximum injected request delay at full intensity",
    )
    resource_max_tasks: int = Field(
        default=10,
        ge=0,
        description="Resource holder tasks spawned at full intensity",
    )
    resource_hold_s: float = Field(
        default=2.0,
        ge=0.0,
        description="How long each resource holder keeps its slot",
    )

    random_seed: int | None = Field(
        default=None,
        description="Seed for the chaos random source (unset = nondeterministic)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @model_validator(mode="after")
    def validate_initial_delay_range(self) -> "Settings":
        """Ensure the warm-up delay range is ordered."""
        if self.initial_delay_min_s > self.initial_delay_max_s:
            raise ValueError(
                "initial_delay_min_s must not exceed initial_delay_max_s "
                f"({self.initial_delay_min_s} > {self.initial_delay_max_s})"
            )
        return self

    @property
    def total_chance(self) -> float:
        """Sum of the per-category base chances."""
        return (
            self.high_cpu_chance
            + self.memory_leak_chance
            + self.network_delay_chance
            + self.resource_exhaustion_chance
        )

    @property
    def chaos_enabled(self) -> bool:
        """Check if any category can ever be selected."""
        return self.total_chance > 0

    def get_summary(self) -> dict[str, str | float | int | bool]:
        """Get a flat configuration summary, safe for logging and API responses."""
        return {
            "env": self.env.value,
            "host": self.host,
            "port": self.port,
            "high_cpu_chance": self.high_cpu_chance,
            "memory_leak_chance": self.memory_leak_chance,
            "network_delay_chance": self.network_delay_chance,
            "resource_exhaustion_chance": self.resource_exhaustion_chance,
            "buildup_duration_s": self.buildup_duration_s,
            "crash_window_s": self.crash_window_s,
            "initial_delay_min_s": self.initial_delay_min_s,
            "initial_delay_max_s": self.initial_delay_max_s,
            "tick_interval_s": self.tick_interval_s,
            "stabilization_delay_s": self.stabilization_delay_s,
            "recovery_pause_s": self.recovery_pause_s,
            "amplification_factor": self.amplification_factor,
            "cpu_max_iterations": self.cpu_max_iterations,
            "memory_max_chunk_bytes": self.memory_max_chunk_bytes,
            "network_max_delay_ms": self.network_max_delay_ms,
            "resource_max_tasks": self.resource_max_tasks,
            "resource_hold_s": self.resource_hold_s,
            "chaos_enabled": self.chaos_enabled,
        }


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure single instance throughout application.
    """
    return Settings()


def get_settings_dep() -> Settings:
    """
    Dependency for FastAPI routes to get settings.
    Allows for easy dependency override in tests.
    """
    return get_settings()
