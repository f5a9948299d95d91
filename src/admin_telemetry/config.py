"""Environment-driven settings.

## Environment Variables

- SERVICE_NAME: service name stamped on log records (default: shadcn-admin)
- LOG_LEVEL: debug, info, warn, error (default: info)
- HEALTH_CHECK_TIMEOUT_MS: timeout for the built-in probes (default: 5000)
- MEMORY_MAX_PERCENT: memory usage above which the memory liveness
  check fails (default: 95)
- DATABASE_PATH: SQLite database pinged by the database readiness check;
  unset disables the check
- ENABLE_FAULT_INJECTION: mount /simulate-unhealthy and /restore-healthy
  (default: true)

Empty variables count as unset.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from admin_telemetry.core.models import DEFAULT_CHECK_TIMEOUT_MS, LogLevel
from admin_telemetry.errors import ConfigError

# Field name -> environment variable.
ENV_VARS = {
    "service_name": "SERVICE_NAME",
    "log_level": "LOG_LEVEL",
    "check_timeout_ms": "HEALTH_CHECK_TIMEOUT_MS",
    "memory_max_percent": "MEMORY_MAX_PERCENT",
    "database_path": "DATABASE_PATH",
    "enable_fault_injection": "ENABLE_FAULT_INJECTION",
}


def _env(field_name: str) -> AliasChoices:
    return AliasChoices(field_name, ENV_VARS[field_name])


class TelemetryConfig(BaseSettings):
    """Settings for the composition root."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    service_name: str = Field(default="shadcn-admin", validation_alias=_env("service_name"))
    log_level: LogLevel = Field(default=LogLevel.INFO, validation_alias=_env("log_level"))
    check_timeout_ms: int = Field(
        default=DEFAULT_CHECK_TIMEOUT_MS, gt=0, validation_alias=_env("check_timeout_ms")
    )
    memory_max_percent: float = Field(
        default=95.0, validation_alias=_env("memory_max_percent")
    )
    database_path: str | None = Field(default=None, validation_alias=_env("database_path"))
    enable_fault_injection: bool = Field(
        default=True, validation_alias=_env("enable_fault_injection")
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            # Accept the stdlib spelling too.
            if value == "warning":
                return LogLevel.WARN
        return value


def _describe(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        loc = str(detail["loc"][0]) if detail["loc"] else ""
        parts.append(f"{ENV_VARS.get(loc, loc.upper())}: {detail['msg']}")
    return "; ".join(parts)


def load_config(environ: Mapping[str, str] | None = None) -> TelemetryConfig:
    """Build a TelemetryConfig from environment variables.

    Args:
        environ: Variables that take precedence over the process
            environment. Defaults to reading os.environ only.

    Returns:
        The parsed configuration.

    Raises:
        ConfigError: If a variable is set to an unparseable value.
    """
    overrides = {
        key: value
        for key, value in (environ or {}).items()
        if key in ENV_VARS.values() and value.strip()
    }
    try:
        return TelemetryConfig(**overrides)
    except ValidationError as e:
        raise ConfigError(_describe(e)) from None
