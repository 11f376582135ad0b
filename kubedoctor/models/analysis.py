"""Diagnosis output data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from kubedoctor.models.faults import FaultRecord


class DiagnosisSource(StrEnum):
    """Where a diagnosis came from."""

    LLM = "llm"
    CACHE = "cache"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ResourceKey:
    """Identity of a concrete resource. ``namespace`` is None for Nodes."""

    namespace: str | None
    resource_kind: str
    resource_name: str

    @classmethod
    def of(cls, fault: FaultRecord) -> ResourceKey:
        return cls(fault.namespace, fault.resource_kind, fault.resource_name)

    def __str__(self) -> str:
        return f"{self.namespace or '-'}/{self.resource_kind}/{self.resource_name}"


@dataclass(frozen=True)
class ParsedResponse:
    """Sections recovered from a completion response."""

    root_cause: str = ""
    steps: list[str] = field(default_factory=list)
    preventions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FallbackDiagnosis:
    """Hand-authored diagnosis used when no completion is available."""

    root_cause: str
    diagnosis: str
    steps: list[str]
    preventions: list[str] = field(default_factory=list)


@dataclass
class DiagnosisResult:
    """One diagnosis per correlation group.

    Contract between the diagnosis coordinator and its consumers.
    """

    primary: FaultRecord
    root_cause: str
    diagnosis: str
    source: DiagnosisSource
    related: list[FaultRecord] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    preventions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        """Serialise to a JSON-compatible dict."""
        return {
            "primary": self.primary.to_dict(),
            "related": [f.to_dict() for f in self.related],
            "root_cause": self.root_cause,
            "diagnosis": self.diagnosis,
            "steps": list(self.steps),
            "preventions": list(self.preventions),
            "source": self.source.value,
        }
