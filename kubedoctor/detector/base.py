"""Detector base class and shared snapshot helpers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime

from kubedoctor.errors import SnapshotError
from kubedoctor.models.faults import ContextKey, FaultKind, FaultRecord, Severity
from kubedoctor.models.resources import ResourceSnapshot


class Detector(ABC):
    """Maps one resource snapshot to zero or more fault records.

    Implementations must be pure: the only inputs are the snapshot and
    ``now``. Shape problems raise :class:`SnapshotError`, which the
    engine turns into an UNKNOWN fault.
    """

    resource_kinds: tuple[str, ...] = ()

    @abstractmethod
    def detect(self, snapshot: ResourceSnapshot, now: datetime) -> list[FaultRecord]: ...


# ---------------------------------------------------------------------------
# Snapshot access
# ---------------------------------------------------------------------------


def dig(obj: object, *path: str, default: object = None) -> object:
    """Walk nested mappings, returning *default* when any hop is missing."""
    current = obj
    for key in path:
        if not isinstance(current, Mapping):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def as_mapping(value: object, where: str) -> Mapping[str, object]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise SnapshotError(f"{where} is not an object")
    return value


def as_list(value: object, where: str) -> list[object]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise SnapshotError(f"{where} is not a list")
    return list(value)


def as_int(value: object, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise SnapshotError(f"expected an integer, got {value!r}")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError) as exc:
        raise SnapshotError(f"expected an integer, got {value!r}") from exc


def parse_time(value: object) -> datetime | None:
    """Parse an RFC 3339 API timestamp. Naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError as exc:
            raise SnapshotError(f"invalid timestamp {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def conditions(snapshot: ResourceSnapshot) -> list[Mapping[str, object]]:
    raw = as_list(dig(snapshot.raw, "status", "conditions"), "status.conditions")
    return [as_mapping(c, "status.conditions[]") for c in raw]


def find_condition(snapshot: ResourceSnapshot, cond_type: str) -> Mapping[str, object] | None:
    for cond in conditions(snapshot):
        if cond.get("type") == cond_type:
            return cond
    return None


def resolve_owner(snapshot: ResourceSnapshot) -> tuple[str, str]:
    """Return ``(owner_kind, owner_name)`` for a Pod.

    A ReplicaSet owner is reported as its Deployment, whose name is the
    ReplicaSet name without the trailing pod-template hash.
    """
    refs = as_list(dig(snapshot.raw, "metadata", "ownerReferences"), "metadata.ownerReferences")
    if not refs:
        return snapshot.kind, snapshot.name
    ref = as_mapping(refs[0], "metadata.ownerReferences[]")
    kind = str(ref.get("kind") or "")
    name = str(ref.get("name") or "")
    if kind == "ReplicaSet":
        cut = name.rfind("-")
        return "Deployment", name[:cut] if cut > 0 else name
    return kind or snapshot.kind, name or snapshot.name


# ---------------------------------------------------------------------------
# Record construction
# ---------------------------------------------------------------------------


def make_fault(
    kind: FaultKind,
    snapshot: ResourceSnapshot,
    now: datetime,
    summary: str,
    description: str,
    symptoms: Sequence[str] = (),
    context: Mapping[ContextKey, object] | None = None,
    severity: Severity | None = None,
) -> FaultRecord:
    """Build a FaultRecord for *snapshot*, dropping empty context values."""
    ctx = {k: v for k, v in (context or {}).items() if v is not None and v != ""}
    return FaultRecord(
        kind=kind,
        resource_kind=snapshot.kind,
        resource_name=snapshot.name,
        namespace=snapshot.namespace,
        summary=summary,
        description=description,
        detected_at=now,
        symptoms=tuple(s for s in symptoms if s),
        context=ctx,
        severity=severity,
    )


def first_keyword(text: str, table: Sequence[tuple[str, Sequence[str]]], default: str) -> str:
    """Return the category of the first table row with a keyword in *text*.

    Matching is case-insensitive and strictly in table order.
    """
    lowered = text.lower()
    for category, keywords in table:
        if any(k in lowered for k in keywords):
            return category
    return default
