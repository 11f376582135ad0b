"""Detector dispatch.

:func:`detect` is total: unsupported kinds and malformed snapshots come
back as a single UNKNOWN fault instead of an exception.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime

from kubedoctor.detector.base import Detector, make_fault
from kubedoctor.detector.jobs import CronJobDetector, JobDetector
from kubedoctor.detector.node import NodeDetector
from kubedoctor.detector.pod import PodDetector
from kubedoctor.detector.workloads import (
    DaemonSetDetector,
    DeploymentDetector,
    ReplicaSetDetector,
    StatefulSetDetector,
)
from kubedoctor.models.faults import ContextKey, FaultKind, FaultRecord
from kubedoctor.models.resources import ResourceSnapshot
from kubedoctor.observability.logging import get_logger

_logger = get_logger("detector")

_DETECTORS: tuple[Detector, ...] = (
    PodDetector(),
    DeploymentDetector(),
    StatefulSetDetector(),
    DaemonSetDetector(),
    ReplicaSetDetector(),
    NodeDetector(),
    JobDetector(),
    CronJobDetector(),
)

_BY_KIND: dict[str, Detector] = {kind: d for d in _DETECTORS for kind in d.resource_kinds}

SUPPORTED_KINDS: frozenset[str] = frozenset(_BY_KIND)


def _unknown(snapshot: ResourceSnapshot, now: datetime, reason: str) -> FaultRecord:
    return make_fault(
        FaultKind.UNKNOWN,
        snapshot,
        now,
        summary=f"{snapshot.kind} {snapshot.name or '<unnamed>'} could not be analysed",
        description=reason,
        symptoms=[reason],
        context={ContextKey.ISSUE_CATEGORY: "UNRECOGNIZED_STATE"},
    )


def detect(
    resource_kind: str,
    snapshot: Mapping[str, object] | ResourceSnapshot,
    now: datetime | None = None,
) -> list[FaultRecord]:
    """Map one resource snapshot to its fault records.

    Args:
        resource_kind: Kubernetes kind of the snapshot (``Pod``, ``Node``, ...).
        snapshot:      Raw API object, or an already wrapped ResourceSnapshot.
        now:           Reference time for age-based checks and the records'
                       ``detected_at``. Defaults to the current UTC time.

    Returns:
        Zero or more FaultRecords in detection order. Never raises.
    """
    now = now or datetime.now(tz=UTC)
    if isinstance(snapshot, ResourceSnapshot):
        wrapped = ResourceSnapshot(kind=resource_kind, raw=snapshot.raw)
    elif isinstance(snapshot, Mapping):
        wrapped = ResourceSnapshot(kind=resource_kind, raw=snapshot)
    else:
        wrapped = ResourceSnapshot(kind=resource_kind)
        return [_unknown(wrapped, now, f"Snapshot is not an object: {type(snapshot).__name__}")]

    detector = _BY_KIND.get(resource_kind)
    if detector is None:
        return [_unknown(wrapped, now, f"Unsupported resource kind: {resource_kind}")]

    try:
        faults = detector.detect(wrapped, now)
    except Exception as exc:
        _logger.warning(
            "snapshot_malformed",
            resource_kind=resource_kind,
            resource_name=wrapped.name,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return [_unknown(wrapped, now, f"Malformed {resource_kind} snapshot: {exc}")]

    return faults
