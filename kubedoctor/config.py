"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubedoctor.models.config import (
    DEFAULT_COMPLETION_ENDPOINT,
    CacheConfig,
    CompletionConfig,
    DiagnosisConfig,
    KubeDoctorConfig,
    LogConfig,
)
from kubedoctor.models.faults import Severity


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEDOCTOR_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    valid = {"json", "console"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log format: {value}. Must be one of {valid}")
    return value.lower()


def _validate_severity(value: str) -> Severity:
    try:
        return Severity(value.lower())
    except ValueError:
        valid = [s.value for s in Severity]
        raise ValueError(f"Invalid minimum severity: {value}. Must be one of {valid}") from None


def _validate_completion(config: CompletionConfig) -> CompletionConfig:
    if config.enabled and not config.api_key:
        raise ValueError("KUBEDOCTOR_COMPLETION_API_KEY is required when completion is enabled")
    if not config.endpoint.startswith(("http://", "https://")):
        raise ValueError(f"Invalid completion endpoint: {config.endpoint}")
    return config


def load_config() -> KubeDoctorConfig:
    """Load configuration from KUBEDOCTOR_* environment variables."""
    return KubeDoctorConfig(
        cluster_id=_env("CLUSTER_ID", ""),
        completion=_validate_completion(
            CompletionConfig(
                enabled=_env_bool("COMPLETION_ENABLED", False),
                endpoint=_env("COMPLETION_ENDPOINT", DEFAULT_COMPLETION_ENDPOINT),
                api_key=_env("COMPLETION_API_KEY", ""),
                model=_env("COMPLETION_MODEL", "openai/gpt-4o-mini"),
                timeout_seconds=_env_int("COMPLETION_TIMEOUT", 60, min_val=5, max_val=300),
                max_tokens=_env_int("COMPLETION_MAX_TOKENS", 700, min_val=100, max_val=4096),
            )
        ),
        diagnosis=DiagnosisConfig(
            min_severity=_validate_severity(_env("DIAGNOSIS_MIN_SEVERITY", "medium")),
        ),
        cache=CacheConfig(
            enabled=_env_bool("CACHE_ENABLED", True),
            ttl_minutes=_env_int("CACHE_TTL_MINUTES", 30, min_val=1, max_val=1440),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
