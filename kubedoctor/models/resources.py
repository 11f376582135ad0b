"""Raw inputs supplied by the cluster collaborator."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ResourceSnapshot:
    """Point-in-time view of one Kubernetes object.

    ``raw`` is the object exactly as returned by the API server
    (``metadata``, ``spec``, ``status``).
    """

    kind: str
    raw: Mapping[str, object] = field(default_factory=dict)

    @property
    def metadata(self) -> Mapping[str, object]:
        meta = self.raw.get("metadata")
        return meta if isinstance(meta, Mapping) else {}

    @property
    def name(self) -> str:
        return str(self.metadata.get("name") or "")

    @property
    def namespace(self) -> str | None:
        ns = self.metadata.get("namespace")
        return str(ns) if ns else None


@dataclass(frozen=True)
class EventInfo:
    """A Kubernetes Event attached to a resource."""

    type: str
    reason: str
    message: str
    count: int = 1
    first_timestamp: datetime | None = None
    last_timestamp: datetime | None = None
