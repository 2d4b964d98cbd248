"""
Resilience configuration.

Sources (highest to lowest priority):
1. Config file (toml/yaml/json)
2. Environment variables (AULA_ prefix)
3. Explicit code input
4. Code defaults

Config file example (aula.toml):
```toml
log_level = "DEBUG"

[retry]
max_retries = 2
retry_delay_ms = 500

[circuit_breaker.services.calendar]
failure_threshold = 2
recovery_timeout_ms = 15000

[reporting]
endpoint = "https://errores.aula.cl/api/report"
```

Environment variable example:
```bash
export AULA_REPORTING_ENDPOINT=https://errores.aula.cl/api/report
export AULA_RETRY_MAX_RETRIES=1
export AULA_LOG_LEVEL=DEBUG
```
"""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from aula_resilience.exception.config import CircuitBreakerSettings, RetryConfig
from aula_resilience.log import setup_logging
from aula_resilience.reporting.config import ReportingConfig

logger = logging.getLogger(__name__)


class DegradationConfig(BaseModel):
    """Last-known-good cache settings."""

    max_entries: int | None = Field(
        default=1000,
        ge=1,
        description="Cached keys kept before evicting the least recently used; None is unbounded",
    )


class NotificationConfig(BaseModel):
    """User-facing notification settings."""

    max_notifications: int = Field(default=10, ge=1, description="Notifications kept, newest first")
    auto_dismiss_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Lifetime of low severity notifications",
    )


# === Config file sources ===


def _find_config_file() -> Path | None:
    search_paths = [
        Path.cwd(),
        Path.cwd() / "config",
        Path.home() / ".config" / "aula",
    ]
    extensions = [".toml", ".yaml", ".yml", ".json"]
    names = ["aula", "resilience"]

    for path in search_paths:
        for name in names:
            for ext in extensions:
                file = path / f"{name}{ext}"
                if file.exists():
                    return file
    return None


def _load_config_file(file_path: Path) -> dict[str, Any]:
    suffix = file_path.suffix.lower()
    content = file_path.read_text(encoding="utf-8")

    if suffix == ".toml":
        return tomllib.loads(content)
    if suffix in (".yaml", ".yml"):
        return yaml.safe_load(content) or {}
    if suffix == ".json":
        return json.loads(content)

    logger.warning("Unsupported config file format: %s", suffix)
    return {}


class FileConfigSource(PydanticBaseSettingsSource):
    """Config file source (toml/yaml/json)."""

    def __init__(self, settings_cls: type[BaseSettings], config_file: Path | None = None):
        super().__init__(settings_cls)
        self._config_file = config_file or _find_config_file()
        self._file_data: dict[str, Any] = {}
        if self._config_file is None:
            return
        if not self._config_file.exists():
            raise ConfigurationError(f"Config file not found: {self._config_file}")
        try:
            self._file_data = _load_config_file(self._config_file)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config file {self._config_file}: {e}") from e

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._file_data.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._file_data


# === Main config class ===


class ResilienceConfig(BaseSettings):
    """Settings for retries, breakers, degradation, notifications and reporting."""

    model_config = SettingsConfigDict(
        env_prefix="AULA_",
        # Split once after the section name: AULA_RETRY_MAX_RETRIES -> retry.max_retries
        env_nested_delimiter="_",
        env_nested_max_split=1,
        extra="allow",
    )

    config_file: Path | None = Field(default=None, exclude=True)

    retry: RetryConfig = Field(default_factory=RetryConfig)
    circuit_breaker: CircuitBreakerSettings = Field(default_factory=CircuitBreakerSettings)
    degradation: DegradationConfig = Field(default_factory=DegradationConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)

    verbose: bool = Field(default=False, description="Enable verbose logging")
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=False, description="Emit logs as JSON lines")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Config file overrides env, env overrides code input."""
        init_data = init_settings()
        config_file = init_data.get("config_file")
        return (
            FileConfigSource(settings_cls, Path(config_file) if config_file else None),
            env_settings,
            init_settings,
        )


class ConfigurationError(Exception):
    """Configuration error."""

    pass


def resilience_configure(
    config_file: str | Path | None = None,
    **kwargs,
) -> ResilienceConfig:
    """
    Load configuration and initialize logging.

    Args:
        config_file: Optional config file path (toml/yaml/json)
        **kwargs: Default config values (overridden by file/env)

    Raises:
        ConfigurationError: the file is unreadable or a value is invalid

    Example:
    ```python
    config = resilience_configure(retry={"max_retries": 1}, log_level="DEBUG")
    ```
    """
    try:
        config = ResilienceConfig(
            config_file=Path(config_file) if config_file else None,
            **kwargs,
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid resilience configuration: {e}") from e

    level = logging.DEBUG if config.verbose else config.log_level
    setup_logging(level, json_format=config.log_json)

    logger.info(
        "Configuration loaded: max_retries=%s breakers=%s reporting=%s",
        config.retry.max_retries,
        ",".join(sorted(config.circuit_breaker.services)),
        config.reporting.endpoint or "local",
        extra={"event": "config.loaded"},
    )
    return config
