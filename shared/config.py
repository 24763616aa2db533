"""
Shared configuration management for observable services.
"""

import re
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_LEVELS = ("debug", "info", "warning", "error", "critical")
LOG_FORMATS = ("console", "json")

_LABEL_NAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="OBSERVABLE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int = 3000
    host: str = "0.0.0.0"


class MetricsOptions(BaseSettings):
    """Options accepted by the metrics façade."""

    model_config = SettingsConfigDict(
        env_prefix="OBSERVABLE_METRICS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="info")
    log_format: str = Field(default="console")
    prefix: str = Field(default="")
    default_metrics_labels: Dict[str, str] = Field(default_factory=dict)
    collect_interval_seconds: float = Field(default=10.0, gt=0)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().lower()
        if level == "warn":
            level = "warning"
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}, expected one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        fmt = value.strip().lower()
        if fmt not in LOG_FORMATS:
            raise ValueError(f"unknown log format {value!r}, expected one of {', '.join(LOG_FORMATS)}")
        return fmt

    @field_validator("default_metrics_labels")
    @classmethod
    def _check_label_names(cls, labels: Dict[str, str]) -> Dict[str, str]:
        for key in labels:
            # Names starting with __ are reserved for Prometheus internal use
            if not _LABEL_NAME.match(key) or key.startswith("__"):
                raise ValueError(f"invalid label name {key!r}")
        return labels


def get_config(service_name: str, port: Optional[int] = None) -> ServiceConfig:
    """Get configuration for a specific service.

    An explicit ``port`` wins over ``OBSERVABLE_PORT``.
    """
    if port is None:
        return ServiceConfig(service_name=service_name)
    return ServiceConfig(service_name=service_name, port=port)
