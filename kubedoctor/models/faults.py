"""Fault taxonomy and fault record data structures."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, StrEnum
from types import MappingProxyType


class Severity(StrEnum):
    """Fault severity level.

    Ordering is defined by :attr:`rank` (lower is more severe), never by
    declaration order.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, other: Severity) -> bool:
        """Return True when this severity is as severe as *other* or more."""
        return self.rank <= other.rank


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


class FaultKind(Enum):
    """Closed set of detectable fault categories.

    Each member carries a stable ``code``, a ``description`` and its
    default ``severity``.
    """

    CRASH_LOOP_BACK_OFF = ("CrashLoopBackOff", "Container keeps restarting after crashing", Severity.CRITICAL)
    IMAGE_PULL_BACK_OFF = ("ImagePullBackOff", "Container image could not be pulled", Severity.CRITICAL)
    OOM_KILLED = ("OOMKilled", "Container was killed for exceeding its memory limit", Severity.CRITICAL)
    CREATE_CONTAINER_CONFIG_ERROR = (
        "CreateContainerConfigError",
        "Container configuration references a missing ConfigMap or Secret",
        Severity.CRITICAL,
    )
    CREATE_CONTAINER_ERROR = ("CreateContainerError", "Container runtime failed to create the container", Severity.CRITICAL)
    PENDING = ("Pending", "Pod cannot be scheduled onto a node", Severity.HIGH)
    ERROR = ("Error", "Pod terminated with an error", Severity.HIGH)
    EVICTED = ("Evicted", "Pod was evicted from its node", Severity.HIGH)
    TERMINATING_STUCK = ("TerminatingStuck", "Pod is stuck in Terminating", Severity.HIGH)
    LIVENESS_PROBE_FAILED = ("LivenessProbeFailed", "Liveness probe failures are restarting the container", Severity.HIGH)
    READINESS_PROBE_FAILED = ("ReadinessProbeFailed", "Readiness probe keeps the container out of service", Severity.MEDIUM)
    STARTUP_PROBE_FAILED = ("StartupProbeFailed", "Startup probe does not succeed in time", Severity.HIGH)
    CONFIG_ERROR = ("ConfigError", "Referenced ConfigMap or Secret volume is missing", Severity.HIGH)
    PVC_ERROR = ("PVCError", "PersistentVolumeClaim is missing or unusable", Severity.HIGH)
    VOLUME_MOUNT_ERROR = ("VolumeMountError", "Volume could not be mounted into the pod", Severity.HIGH)
    NETWORK_ERROR = ("NetworkError", "Pod networking could not be set up", Severity.MEDIUM)
    RESOURCE_QUOTA_EXCEEDED = ("ResourceQuotaExceeded", "Namespace resource quota rejected new pods", Severity.HIGH)
    INSUFFICIENT_RESOURCES = ("InsufficientResources", "Node lacked resources to admit the pod", Severity.HIGH)
    NODE_NOT_READY = ("NodeNotReady", "Node is not Ready", Severity.CRITICAL)
    NODE_PRESSURE = ("NodePressure", "Node reports a resource pressure condition", Severity.MEDIUM)
    DEPLOYMENT_UNAVAILABLE = ("DeploymentUnavailable", "Workload has fewer available replicas than desired", Severity.HIGH)
    JOB_FAILED = ("JobFailed", "Job pods failed", Severity.HIGH)
    CRONJOB_FAILED = ("CronJobFailed", "CronJob is not producing successful runs", Severity.MEDIUM)
    UNKNOWN = ("Unknown", "Unrecognized abnormal state", Severity.LOW)

    def __init__(self, code: str, description: str, severity: Severity) -> None:
        self.code = code
        self.description = description
        self.severity = severity

    @classmethod
    def from_code(cls, code: str) -> FaultKind:
        for kind in cls:
            if kind.code == code:
                return kind
        raise ValueError(f"Unknown fault kind code: {code}")


class ContextKey(StrEnum):
    """Registry of keys a detector may attach to a fault's context."""

    ISSUE_CATEGORY = "issueCategory"
    ERROR_CATEGORY = "errorCategory"
    OWNER_KIND = "ownerKind"
    OWNER_NAME = "ownerName"
    CLUSTER_ID = "clusterId"
    PHASE = "phase"
    CONTAINER_NAME = "containerName"
    IMAGE = "image"
    RESTART_COUNT = "restartCount"
    EXIT_CODE = "exitCode"
    EXIT_CODE_DESCRIPTION = "exitCodeDescription"
    TERMINATION_REASON = "terminationReason"
    TERMINATION_MESSAGE = "terminationMessage"
    WAITING_REASON = "waitingReason"
    ERROR_MESSAGE = "errorMessage"
    HAS_LIVENESS_PROBE = "hasLivenessProbe"
    HAS_STARTUP_PROBE = "hasStartupProbe"
    FAILURE_THRESHOLD = "failureThreshold"
    PERIOD_SECONDS = "periodSeconds"
    TIMEOUT_SECONDS = "timeoutSeconds"
    INITIAL_DELAY_SECONDS = "initialDelaySeconds"
    SCHEDULING_MESSAGE = "schedulingMessage"
    PVC_NAME = "pvcName"
    STORAGE_CLASS_NAME = "storageClassName"
    NODE_NAME = "nodeName"
    MEMORY_LIMIT = "memoryLimit"
    MEMORY_REQUEST = "memoryRequest"
    EVICTION_MESSAGE = "evictionMessage"
    FINALIZERS = "finalizers"
    STUCK_MINUTES = "stuckMinutes"
    PRESSURE_TYPES = "pressureTypes"
    DESIRED_REPLICAS = "desiredReplicas"
    AVAILABLE_REPLICAS = "availableReplicas"
    FAILED_COUNT = "failedCount"
    SUCCEEDED_COUNT = "succeededCount"
    BACKOFF_LIMIT = "backoffLimit"
    COMPLETIONS = "completions"
    PARALLELISM = "parallelism"
    ACTIVE_DEADLINE_SECONDS = "activeDeadlineSeconds"
    FAILURE_REASON = "failureReason"
    FAILURE_MESSAGE = "failureMessage"
    RESTART_POLICY = "restartPolicy"
    SCHEDULE = "schedule"
    CONCURRENCY_POLICY = "concurrencyPolicy"
    ACTIVE_COUNT = "activeCount"
    LAST_SCHEDULE_TIME = "lastScheduleTime"
    LAST_SUCCESSFUL_TIME = "lastSuccessfulTime"


def _freeze(context: Mapping[ContextKey, object] | None) -> Mapping[ContextKey, object]:
    return MappingProxyType(dict(context or {}))


@dataclass(frozen=True, eq=False)
class FaultRecord:
    """One detected abnormality on one resource.

    Immutable: the context is a read-only mapping, and additions go
    through :meth:`with_context`, which returns a new record. Records
    compare by identity so two detections with equal fields stay
    distinct inside a correlation group.
    """

    kind: FaultKind
    resource_kind: str
    resource_name: str
    namespace: str | None
    summary: str
    description: str
    detected_at: datetime
    symptoms: tuple[str, ...] = ()
    context: Mapping[ContextKey, object] = field(default_factory=dict)
    severity: Severity | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "context", _freeze(self.context))
        object.__setattr__(self, "symptoms", tuple(self.symptoms))
        if self.severity is None:
            object.__setattr__(self, "severity", self.kind.severity)

    def get(self, key: ContextKey, default: object = None) -> object:
        return self.context.get(key, default)

    def with_context(self, key: ContextKey, value: object) -> FaultRecord:
        """Return a copy of this record with *key* set to *value*."""
        updated = dict(self.context)
        updated[key] = value
        return dataclasses.replace(self, context=updated)

    @property
    def owner_kind(self) -> str:
        return str(self.context.get(ContextKey.OWNER_KIND) or self.resource_kind)

    @property
    def owner_name(self) -> str:
        return str(self.context.get(ContextKey.OWNER_NAME) or self.resource_name)

    def to_dict(self) -> dict[str, object]:
        """Serialise to a JSON-compatible dict."""
        return {
            "kind": self.kind.code,
            "severity": str(self.severity),
            "resource_kind": self.resource_kind,
            "namespace": self.namespace,
            "resource_name": self.resource_name,
            "summary": self.summary,
            "description": self.description,
            "symptoms": list(self.symptoms),
            "context": {str(k): v for k, v in self.context.items()},
            "detected_at": self.detected_at.isoformat(),
        }
