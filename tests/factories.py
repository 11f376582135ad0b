"""Snapshot and fault factories shared by the unit and integration tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from kubedoctor.models.faults import ContextKey, FaultKind, FaultRecord, Severity
from kubedoctor.models.resources import EventInfo

NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=UTC)

POD_NAME = "api-7d9f8b6c5d-x2kj"
REPLICASET_NAME = "api-7d9f8b6c5d"


def iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


# ---------------------------------------------------------------------------
# Raw snapshots
# ---------------------------------------------------------------------------


def make_pod(
    name: str = POD_NAME,
    namespace: str = "default",
    phase: str = "Running",
    container_statuses: list[dict] | None = None,
    containers: list[dict] | None = None,
    conditions: list[dict] | None = None,
    owner: tuple[str, str] | None = ("ReplicaSet", REPLICASET_NAME),
    status_extra: dict | None = None,
    metadata_extra: dict | None = None,
    spec_extra: dict | None = None,
) -> dict:
    """Return a raw Pod object with a single ``app`` container by default."""
    metadata: dict = {"name": name, "namespace": namespace, "creationTimestamp": iso(NOW - timedelta(hours=2))}
    if owner is not None:
        metadata["ownerReferences"] = [{"kind": owner[0], "name": owner[1], "controller": True}]
    metadata.update(metadata_extra or {})
    spec: dict = {
        "nodeName": "worker-1",
        "containers": containers
        if containers is not None
        else [
            {
                "name": "app",
                "image": "registry.example.com/api:1.4.2",
                "resources": {"limits": {"memory": "256Mi"}, "requests": {"memory": "128Mi"}},
            }
        ],
    }
    spec.update(spec_extra or {})
    status: dict = {"phase": phase}
    if container_statuses is not None:
        status["containerStatuses"] = container_statuses
    if conditions is not None:
        status["conditions"] = conditions
    status.update(status_extra or {})
    return {"apiVersion": "v1", "kind": "Pod", "metadata": metadata, "spec": spec, "status": status}


def waiting_status(
    reason: str,
    message: str = "",
    restarts: int = 0,
    last_terminated: dict | None = None,
    name: str = "app",
) -> dict:
    status: dict = {
        "name": name,
        "ready": False,
        "restartCount": restarts,
        "image": "registry.example.com/api:1.4.2",
        "state": {"waiting": {"reason": reason, "message": message}},
    }
    if last_terminated is not None:
        status["lastState"] = {"terminated": last_terminated}
    return status


def oom_crash_loop_pod() -> dict:
    """Pod in CrashLoopBackOff whose last termination was an OOM kill (exit 137, 8 restarts)."""
    return make_pod(
        container_statuses=[
            waiting_status(
                "CrashLoopBackOff",
                "back-off 5m0s restarting failed container=app",
                restarts=8,
                last_terminated={"exitCode": 137, "reason": "OOMKilled"},
            )
        ]
    )


def pending_pod(message: str, volumes: list[dict] | None = None) -> dict:
    return make_pod(
        phase="Pending",
        conditions=[{"type": "PodScheduled", "status": "False", "reason": "Unschedulable", "message": message}],
        spec_extra={"volumes": volumes or [], "nodeName": None},
    )


def make_node(name: str = "worker-1", ready: str = "True", pressure: tuple[str, ...] = ()) -> dict:
    conds = [{"type": "Ready", "status": ready, "reason": "KubeletReady" if ready == "True" else "KubeletNotReady"}]
    for cond_type in ("MemoryPressure", "DiskPressure", "PIDPressure"):
        conds.append({"type": cond_type, "status": "True" if cond_type in pressure else "False"})
    return {"kind": "Node", "metadata": {"name": name}, "status": {"conditions": conds}}


# ---------------------------------------------------------------------------
# Fault records and events
# ---------------------------------------------------------------------------


def make_fault(
    kind: FaultKind = FaultKind.OOM_KILLED,
    resource_kind: str = "Pod",
    resource_name: str = POD_NAME,
    namespace: str | None = "default",
    summary: str = "",
    description: str = "",
    context: dict[ContextKey, object] | None = None,
    severity: Severity | None = None,
) -> FaultRecord:
    """Create a FaultRecord with sensible defaults for testing."""
    return FaultRecord(
        kind=kind,
        resource_kind=resource_kind,
        resource_name=resource_name,
        namespace=namespace,
        summary=summary or f"{kind.code} on {resource_name}",
        description=description or kind.description,
        detected_at=NOW,
        context=context if context is not None else {ContextKey.OWNER_KIND: "Deployment", ContextKey.OWNER_NAME: "api"},
        severity=severity,
    )


def make_event(
    reason: str = "BackOff",
    message: str = "Back-off restarting failed container",
    type: str = "Warning",
    count: int = 1,
) -> EventInfo:
    return EventInfo(type=type, reason=reason, message=message, count=count, last_timestamp=NOW)


# A well-formed three-section completion for an OOM kill.
LLM_RESPONSE = """\
### Root Cause
The container needs more than its 256Mi **memory limit** under normal load.

### Solution
1. Raise limits.memory in deployment.yaml:
```yaml
resources:
  limits:
    memory: 512Mi  # <- was 256Mi
```
2. Roll out the change with kubectl rollout restart deployment/api -n default

### Prevention
- Size limits from observed peak usage
- Alert when usage exceeds 80% of the limit
"""
