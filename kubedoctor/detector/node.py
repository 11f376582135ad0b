"""Node readiness and pressure faults."""

from __future__ import annotations

from datetime import datetime

from kubedoctor.detector.base import Detector, conditions, make_fault
from kubedoctor.models.faults import ContextKey, FaultKind, FaultRecord
from kubedoctor.models.resources import ResourceSnapshot

_PRESSURE_CATEGORIES: dict[str, str] = {
    "MemoryPressure": "MEMORY_PRESSURE",
    "DiskPressure": "DISK_PRESSURE",
    "PIDPressure": "PID_PRESSURE",
    "NetworkUnavailable": "NETWORK_UNAVAILABLE",
}


class NodeDetector(Detector):
    """Reports NotReady nodes and each active pressure condition."""

    resource_kinds = ("Node",)

    def detect(self, snapshot: ResourceSnapshot, now: datetime) -> list[FaultRecord]:
        conds = conditions(snapshot)
        faults: list[FaultRecord] = []
        ready = next((c for c in conds if c.get("type") == "Ready"), None)
        if ready is None or ready.get("status") != "True":
            reason = str((ready or {}).get("reason") or "Unknown")
            message = str((ready or {}).get("message") or "Ready condition missing")
            faults.append(
                make_fault(
                    FaultKind.NODE_NOT_READY,
                    snapshot,
                    now,
                    summary=f"Node {snapshot.name} is NotReady ({reason})",
                    description=f"Node '{snapshot.name}' is not Ready: {message}",
                    symptoms=[reason, message],
                    context={
                        ContextKey.NODE_NAME: snapshot.name,
                        ContextKey.ISSUE_CATEGORY: "NODE_NOT_READY",
                        ContextKey.FAILURE_REASON: reason,
                    },
                )
            )

        active = [c for c in conds if c.get("type") in _PRESSURE_CATEGORIES and c.get("status") == "True"]
        pressure_types = [str(c.get("type")) for c in active]
        for cond in active:
            cond_type = str(cond.get("type"))
            message = str(cond.get("message") or cond_type)
            faults.append(
                make_fault(
                    FaultKind.NODE_PRESSURE,
                    snapshot,
                    now,
                    summary=f"Node {snapshot.name} reports {cond_type}",
                    description=f"Node '{snapshot.name}' is under {cond_type}: {message}",
                    symptoms=[message],
                    context={
                        ContextKey.NODE_NAME: snapshot.name,
                        ContextKey.ISSUE_CATEGORY: _PRESSURE_CATEGORIES[cond_type],
                        ContextKey.PRESSURE_TYPES: pressure_types,
                    },
                )
            )
        return faults
