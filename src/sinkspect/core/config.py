# src/sinkspect/core/config.py
"""
Configuration schema and loading for sinkspect.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from sinkspect.contracts.enums import ParallelismPolicy

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class CollectorSettings(BaseModel):
    """Settings for one verification run.

    Example YAML:
        collector:
          parallelism_policy: strict
          deadline_seconds: 30
          interrupted_is_failure: true
    """

    model_config = {"frozen": True, "extra": "forbid"}

    parallelism_policy: ParallelismPolicy = Field(
        default=ParallelismPolicy.STRICT,
        description="How to treat an OPEN announcing a different parallelism",
    )
    deadline_seconds: float | None = Field(
        default=30.0,
        gt=0,
        description="Overall time budget before the channel is forced closed (null = no deadline)",
    )
    interrupted_is_failure: bool = Field(
        default=True,
        description="Raise ChannelInterruptedError for INTERRUPTED outcomes in the run helper",
    )


class LoggingSettings(BaseModel):
    """Logging output settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: str = Field(default="INFO", description="Root log level")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        normalized = v.upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level {v!r}; expected one of {sorted(_LOG_LEVELS)}")
        return normalized


class SinkspectSettings(BaseModel):
    """Top-level settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    collector: CollectorSettings = Field(default_factory=CollectorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: Path) -> SinkspectSettings:
    """Load settings from a YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (SINKSPECT_*) - highest priority
    2. Config file
    3. Defaults from the Pydantic schema - lowest priority

    Environment variable format: SINKSPECT_COLLECTOR__DEADLINE_SECONDS for
    nested keys.

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="SINKSPECT",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; Pydantic fields are lowercase
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config: dict[str, Any] = {
        k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys
    }
    return SinkspectSettings(**raw_config)


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value
