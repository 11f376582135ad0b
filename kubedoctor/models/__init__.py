"""Core data structures for kubedoctor."""

from kubedoctor.models.analysis import (
    DiagnosisResult,
    DiagnosisSource,
    FallbackDiagnosis,
    ParsedResponse,
    ResourceKey,
)
from kubedoctor.models.config import KubeDoctorConfig
from kubedoctor.models.faults import ContextKey, FaultKind, FaultRecord, Severity
from kubedoctor.models.resources import EventInfo, ResourceSnapshot

__all__ = [
    "ContextKey",
    "DiagnosisResult",
    "DiagnosisSource",
    "EventInfo",
    "FallbackDiagnosis",
    "FaultKind",
    "FaultRecord",
    "KubeDoctorConfig",
    "ParsedResponse",
    "ResourceKey",
    "ResourceSnapshot",
    "Severity",
]
