"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

from kubedoctor.models.faults import Severity

DEFAULT_COMPLETION_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"


@dataclass
class CompletionConfig:
    """Completion backend configuration."""

    enabled: bool = False
    endpoint: str = DEFAULT_COMPLETION_ENDPOINT
    api_key: str = ""
    model: str = "openai/gpt-4o-mini"
    timeout_seconds: int = 60
    max_tokens: int = 700


@dataclass
class DiagnosisConfig:
    """Diagnosis gating configuration."""

    min_severity: Severity = Severity.MEDIUM


@dataclass
class CacheConfig:
    """Diagnosis cache configuration."""

    enabled: bool = True
    ttl_minutes: int = 30


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class KubeDoctorConfig:
    """Top-level kubedoctor configuration."""

    cluster_id: str = ""
    completion: CompletionConfig = field(default_factory=CompletionConfig)
    diagnosis: DiagnosisConfig = field(default_factory=DiagnosisConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    log: LogConfig = field(default_factory=LogConfig)
