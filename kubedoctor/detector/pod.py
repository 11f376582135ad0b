"""Pod fault detection.

Each container is checked against an ordered chain and reports at most
one fault, so an OOM-driven crash loop is classified as OOMKilled rather
than twice. Pod-level checks (phase, scheduling, deletion, mounts,
networking) run after the container checks.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta

from kubedoctor.detector.base import (
    Detector,
    as_int,
    as_list,
    as_mapping,
    conditions,
    dig,
    find_condition,
    first_keyword,
    make_fault,
    parse_time,
    resolve_owner,
)
from kubedoctor.models.faults import ContextKey, FaultKind, FaultRecord
from kubedoctor.models.resources import ResourceSnapshot

TERMINATING_STUCK_AFTER = timedelta(minutes=5)

_EXIT_CODES: dict[int, str] = {
    0: "completed normally",
    1: "application error",
    2: "shell builtin misuse",
    126: "command not executable",
    127: "command not found",
    128: "invalid exit argument",
    130: "interrupted (SIGINT)",
    137: "killed (SIGKILL): out of memory or forced termination",
    143: "terminated (SIGTERM)",
    255: "exit status out of range",
}

_BENIGN_WAITING = frozenset({"", "ContainerCreating", "PodInitializing"})

_IMAGE_PULL_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("AUTHENTICATION_FAILED", ("401", "unauthorized", "authentication required", "denied")),
    ("IMAGE_NOT_FOUND", ("404", "not found", "manifest unknown", "does not exist")),
    ("REGISTRY_UNREACHABLE", ("timeout", "connection refused", "no such host")),
    ("RATE_LIMITED", ("429", "rate limit", "too many requests")),
    ("IMAGE_FORMAT_ERROR", ("manifest", "platform", "architecture")),
    ("ACCESS_DENIED", ("403", "forbidden")),
)

_CREATE_CONTAINER_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("COMMAND_NOT_FOUND", ("executable file not found", "no such file or directory", "not found")),
    ("PERMISSION_DENIED", ("permission denied",)),
    ("ENTRYPOINT_ERROR", ("entrypoint",)),
    ("VOLUME_MOUNT_ERROR", ("mount", "volume")),
    ("OCI_RUNTIME_ERROR", ("oci runtime", "runc")),
)

_EVICTION_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("EPHEMERAL_STORAGE_EXCEEDED", ("ephemeral", "ephemeral-storage")),
    ("DISK_PRESSURE", ("diskpressure", "disk pressure", "nodefs", "imagefs")),
    ("MEMORY_PRESSURE", ("memorypressure", "memory pressure", "low on resource: memory")),
    ("PID_PRESSURE", ("pidpressure", "pid pressure")),
)

_MOUNT_MARKERS: tuple[str, ...] = (
    "mountvolume",
    "failed to mount",
    "unable to attach or mount",
    "read-only file system",
    "fsgroup",
    "chown",
    "subpath",
)

_MOUNT_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("READONLY_FS", ("read-only file system",)),
    ("FSGROUP_ERROR", ("fsgroup", "chown")),
    ("PERMISSION_DENIED", ("permission denied",)),
    ("SUBPATH_ERROR", ("subpath",)),
    ("CSI_MOUNT_ERROR", ("csi",)),
    ("MOUNT_SETUP_FAILED", ("mountvolume.setup failed", "failed to mount", "unable to attach or mount")),
)

_NETWORK_MARKERS: tuple[str, ...] = ("network", "cni", "sandbox", "dns")
_NETWORK_REASONS: tuple[str, ...] = ("networknotready", "cni", "sandboxcreate")

_NETWORK_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("CNI_ERROR", ("cni", "calico", "flannel", "cilium", "weave")),
    ("DNS_ERROR", ("dns", "resolv")),
    ("SANDBOX_ERROR", ("sandbox",)),
)

_RE_MISSING_CONFIG = re.compile(r'(configmap|secret)s?\s+"([^"]+)"\s+not found', re.IGNORECASE)
_RE_MISSING_PVC = re.compile(r'persistentvolumeclaim\s+"([^"]+)"\s+not found', re.IGNORECASE)


def describe_exit_code(code: int | None) -> str:
    """Return a human-readable meaning for a container exit code."""
    if code is None:
        return "unknown"
    if code in _EXIT_CODES:
        return _EXIT_CODES[code]
    if code > 128:
        return f"terminated by signal {code - 128}"
    return "unknown"


@dataclass(frozen=True)
class _Container:
    """A container status joined with its spec entry."""

    name: str
    status: Mapping[str, object]
    spec: Mapping[str, object]

    @property
    def image(self) -> str:
        return str(self.spec.get("image") or self.status.get("image") or "")

    @property
    def restart_count(self) -> int:
        return as_int(self.status.get("restartCount"))

    @property
    def ready(self) -> bool:
        return bool(self.status.get("ready"))

    @property
    def started(self) -> bool | None:
        value = self.status.get("started")
        return None if value is None else bool(value)

    @property
    def waiting_reason(self) -> str:
        return str(dig(self.status, "state", "waiting", "reason", default=""))

    @property
    def waiting_message(self) -> str:
        return str(dig(self.status, "state", "waiting", "message", default=""))

    @property
    def is_running(self) -> bool:
        return dig(self.status, "state", "running") is not None

    @property
    def last_terminated(self) -> Mapping[str, object]:
        return as_mapping(dig(self.status, "lastState", "terminated"), "lastState.terminated")

    @property
    def last_exit_code(self) -> int | None:
        code = self.last_terminated.get("exitCode")
        return None if code is None else as_int(code)

    def probe(self, name: str) -> Mapping[str, object] | None:
        value = self.spec.get(name)
        return as_mapping(value, name) if value is not None else None

    def resource(self, section: str, name: str) -> str | None:
        value = dig(self.spec, "resources", section, name)
        return None if value is None else str(value)


def _containers(pod: ResourceSnapshot) -> list[_Container]:
    result: list[_Container] = []
    for status_key, spec_key in (
        ("initContainerStatuses", "initContainers"),
        ("containerStatuses", "containers"),
    ):
        specs = {
            str(as_mapping(s, spec_key).get("name")): as_mapping(s, spec_key)
            for s in as_list(dig(pod.raw, "spec", spec_key), f"spec.{spec_key}")
        }
        for raw in as_list(dig(pod.raw, "status", status_key), f"status.{status_key}"):
            status = as_mapping(raw, f"status.{status_key}[]")
            name = str(status.get("name") or "")
            result.append(_Container(name=name, status=status, spec=specs.get(name, {})))
    return result


def _probe_context(probe: Mapping[str, object] | None) -> dict[ContextKey, object]:
    if probe is None:
        return {}
    return {
        ContextKey.FAILURE_THRESHOLD: as_int(probe.get("failureThreshold"), 3),
        ContextKey.PERIOD_SECONDS: as_int(probe.get("periodSeconds"), 10),
        ContextKey.TIMEOUT_SECONDS: as_int(probe.get("timeoutSeconds"), 1),
        ContextKey.INITIAL_DELAY_SECONDS: as_int(probe.get("initialDelaySeconds"), 0),
    }


@dataclass(frozen=True)
class _PodScope:
    """Values shared by every check on one pod."""

    pod: ResourceSnapshot
    now: datetime
    owner_kind: str
    owner_name: str

    @property
    def phase(self) -> str:
        return str(dig(self.pod.raw, "status", "phase", default=""))

    def base_context(self, container: _Container | None = None) -> dict[ContextKey, object]:
        ctx: dict[ContextKey, object] = {
            ContextKey.OWNER_KIND: self.owner_kind,
            ContextKey.OWNER_NAME: self.owner_name,
            ContextKey.PHASE: self.phase,
            ContextKey.NODE_NAME: dig(self.pod.raw, "spec", "nodeName"),
        }
        if container is not None:
            ctx[ContextKey.CONTAINER_NAME] = container.name
            ctx[ContextKey.RESTART_COUNT] = container.restart_count
            ctx[ContextKey.IMAGE] = container.image
        return ctx


# ---------------------------------------------------------------------------
# Container checks, evaluated in order; the first hit wins
# ---------------------------------------------------------------------------


def _check_oom(scope: _PodScope, c: _Container) -> FaultRecord | None:
    last = c.last_terminated
    current_reason = dig(c.status, "state", "terminated", "reason")
    if last.get("reason") != "OOMKilled" and current_reason != "OOMKilled":
        return None
    limit = c.resource("limits", "memory")
    exit_code = c.last_exit_code if c.last_exit_code is not None else 137
    return make_fault(
        FaultKind.OOM_KILLED,
        scope.pod,
        scope.now,
        summary=f"Container {c.name} was OOMKilled ({c.restart_count} restarts)",
        description=(
            f"Container '{c.name}' exceeded its memory limit ({limit or 'not set'}) "
            "and was killed by the kernel OOM killer."
        ),
        symptoms=[f"Exit code {exit_code}", f"Restart count: {c.restart_count}", f"Memory limit: {limit or 'not set'}"],
        context={
            **scope.base_context(c),
            ContextKey.EXIT_CODE: exit_code,
            ContextKey.TERMINATION_REASON: "OOMKilled",
            ContextKey.MEMORY_LIMIT: limit,
            ContextKey.MEMORY_REQUEST: c.resource("requests", "memory"),
        },
    )


def _check_crash_loop(scope: _PodScope, c: _Container) -> FaultRecord | None:
    if c.waiting_reason != "CrashLoopBackOff":
        return None
    last = c.last_terminated
    exit_code = c.last_exit_code
    reason = str(last.get("reason") or "")
    liveness = c.probe("livenessProbe")
    startup = c.probe("startupProbe")
    category = None
    if exit_code in (137, 143) and reason != "OOMKilled":
        if startup is not None and c.started is False:
            category = "STARTUP_PROBE_KILLED"
        elif liveness is not None:
            category = "LIVENESS_PROBE_KILLED"
    meaning = describe_exit_code(exit_code)
    return make_fault(
        FaultKind.CRASH_LOOP_BACK_OFF,
        scope.pod,
        scope.now,
        summary=f"Container {c.name} is crash looping ({c.restart_count} restarts)",
        description=f"Container '{c.name}' keeps exiting with code {exit_code} ({meaning}).",
        symptoms=[c.waiting_message, f"Restart count: {c.restart_count}", f"Last exit code: {exit_code}"],
        context={
            **scope.base_context(c),
            ContextKey.ISSUE_CATEGORY: category,
            ContextKey.EXIT_CODE: exit_code,
            ContextKey.EXIT_CODE_DESCRIPTION: meaning,
            ContextKey.TERMINATION_REASON: reason,
            ContextKey.TERMINATION_MESSAGE: last.get("message"),
            ContextKey.HAS_LIVENESS_PROBE: True if liveness is not None else None,
            ContextKey.HAS_STARTUP_PROBE: True if startup is not None else None,
            **_probe_context(liveness or startup),
        },
    )


def _check_image_pull(scope: _PodScope, c: _Container) -> FaultRecord | None:
    if c.waiting_reason not in ("ImagePullBackOff", "ErrImagePull", "InvalidImageName"):
        return None
    message = c.waiting_message
    category = first_keyword(message, _IMAGE_PULL_CATEGORIES, "UNKNOWN")
    return make_fault(
        FaultKind.IMAGE_PULL_BACK_OFF,
        scope.pod,
        scope.now,
        summary=f"Image {c.image} for container {c.name} cannot be pulled",
        description=f"Pulling image '{c.image}' failed ({category}).",
        symptoms=[c.waiting_reason, message],
        context={
            **scope.base_context(c),
            ContextKey.ERROR_CATEGORY: category,
            ContextKey.ISSUE_CATEGORY: category,
            ContextKey.ERROR_MESSAGE: message,
        },
    )


def _config_error_category(message: str) -> str:
    lowered = message.lower()
    if "couldn't find key" in lowered or ("key" in lowered and "not found" in lowered):
        if "configmap" in lowered:
            return "CONFIGMAP_KEY_NOT_FOUND"
        if "secret" in lowered:
            return "SECRET_KEY_NOT_FOUND"
    if "configmap" in lowered and "not found" in lowered:
        return "CONFIGMAP_NOT_FOUND"
    if "secret" in lowered and "not found" in lowered:
        return "SECRET_NOT_FOUND"
    return "CONFIG_REFERENCE_ERROR"


def _check_create_config(scope: _PodScope, c: _Container) -> FaultRecord | None:
    if c.waiting_reason != "CreateContainerConfigError":
        return None
    message = c.waiting_message
    category = _config_error_category(message)
    return make_fault(
        FaultKind.CREATE_CONTAINER_CONFIG_ERROR,
        scope.pod,
        scope.now,
        summary=f"Container {c.name} configuration is invalid",
        description=f"Container '{c.name}' references configuration that cannot be resolved: {message}",
        symptoms=[c.waiting_reason, message],
        context={**scope.base_context(c), ContextKey.ISSUE_CATEGORY: category, ContextKey.ERROR_MESSAGE: message},
    )


def _check_create_container(scope: _PodScope, c: _Container) -> FaultRecord | None:
    if c.waiting_reason != "CreateContainerError":
        return None
    message = c.waiting_message
    category = first_keyword(message, _CREATE_CONTAINER_CATEGORIES, "CONTAINER_CREATE_ERROR")
    return make_fault(
        FaultKind.CREATE_CONTAINER_ERROR,
        scope.pod,
        scope.now,
        summary=f"Container {c.name} could not be created",
        description=f"The container runtime rejected container '{c.name}': {message}",
        symptoms=[c.waiting_reason, message],
        context={**scope.base_context(c), ContextKey.ISSUE_CATEGORY: category, ContextKey.ERROR_MESSAGE: message},
    )


def _check_startup_probe(scope: _PodScope, c: _Container) -> FaultRecord | None:
    probe = c.probe("startupProbe")
    if probe is None or c.started is not False or c.restart_count == 0:
        return None
    ctx = _probe_context(probe)
    budget = ctx[ContextKey.FAILURE_THRESHOLD] * ctx[ContextKey.PERIOD_SECONDS]  # type: ignore[operator]
    return make_fault(
        FaultKind.STARTUP_PROBE_FAILED,
        scope.pod,
        scope.now,
        summary=f"Startup probe of container {c.name} never succeeds",
        description=f"Container '{c.name}' did not pass its startup probe within {budget}s and was restarted.",
        symptoms=[f"Restart count: {c.restart_count}", "started=false"],
        context={**scope.base_context(c), ContextKey.HAS_STARTUP_PROBE: True, **ctx},
    )


def _check_liveness_probe(scope: _PodScope, c: _Container) -> FaultRecord | None:
    probe = c.probe("livenessProbe")
    if probe is None or not c.is_running or c.restart_count < 1:
        return None
    if c.last_exit_code not in (137, 143) or c.last_terminated.get("reason") == "OOMKilled":
        return None
    return make_fault(
        FaultKind.LIVENESS_PROBE_FAILED,
        scope.pod,
        scope.now,
        summary=f"Liveness probe is restarting container {c.name}",
        description=(
            f"Container '{c.name}' was killed with exit code {c.last_exit_code} after failing its liveness probe."
        ),
        symptoms=[f"Restart count: {c.restart_count}", f"Last exit code: {c.last_exit_code}"],
        context={
            **scope.base_context(c),
            ContextKey.EXIT_CODE: c.last_exit_code,
            ContextKey.HAS_LIVENESS_PROBE: True,
            **_probe_context(probe),
        },
    )


def _check_readiness_probe(scope: _PodScope, c: _Container) -> FaultRecord | None:
    probe = c.probe("readinessProbe")
    if probe is None or scope.phase != "Running" or not c.is_running or c.ready:
        return None
    return make_fault(
        FaultKind.READINESS_PROBE_FAILED,
        scope.pod,
        scope.now,
        summary=f"Container {c.name} is running but not ready",
        description=f"Container '{c.name}' fails its readiness probe and receives no Service traffic.",
        symptoms=["ready=false"],
        context={**scope.base_context(c), **_probe_context(probe)},
    )


def _check_unknown_waiting(scope: _PodScope, c: _Container) -> FaultRecord | None:
    reason = c.waiting_reason
    if reason in _BENIGN_WAITING:
        return None
    return make_fault(
        FaultKind.UNKNOWN,
        scope.pod,
        scope.now,
        summary=f"Container {c.name} is waiting: {reason}",
        description=f"Container '{c.name}' is waiting with unrecognized reason {reason}.",
        symptoms=[reason, c.waiting_message],
        context={**scope.base_context(c), ContextKey.WAITING_REASON: reason, ContextKey.ERROR_MESSAGE: c.waiting_message},
    )


_CONTAINER_CHECKS: tuple[Callable[[_PodScope, _Container], FaultRecord | None], ...] = (
    _check_oom,
    _check_crash_loop,
    _check_image_pull,
    _check_create_config,
    _check_create_container,
    _check_startup_probe,
    _check_liveness_probe,
    _check_readiness_probe,
    _check_unknown_waiting,
)


# ---------------------------------------------------------------------------
# Pod-level checks
# ---------------------------------------------------------------------------


def _check_failed_phase(scope: _PodScope) -> list[FaultRecord]:
    if scope.phase != "Failed":
        return []
    reason = str(dig(scope.pod.raw, "status", "reason", default=""))
    message = str(dig(scope.pod.raw, "status", "message", default=""))
    ctx = scope.base_context()
    if reason == "Evicted":
        category = first_keyword(message, _EVICTION_CATEGORIES, "NODE_RESOURCE_PRESSURE")
        return [
            make_fault(
                FaultKind.EVICTED,
                scope.pod,
                scope.now,
                summary=f"Pod was evicted ({category})",
                description=f"The kubelet evicted the pod: {message}",
                symptoms=[reason, message],
                context={**ctx, ContextKey.ISSUE_CATEGORY: category, ContextKey.EVICTION_MESSAGE: message},
            )
        ]
    if reason.startswith("OutOf"):
        return [
            make_fault(
                FaultKind.INSUFFICIENT_RESOURCES,
                scope.pod,
                scope.now,
                summary=f"Pod rejected by node: {reason}",
                description=f"The node could not admit the pod ({reason}): insufficient resource. {message}".strip(),
                symptoms=[reason, message],
                context={**ctx, ContextKey.FAILURE_REASON: reason, ContextKey.FAILURE_MESSAGE: message},
            )
        ]
    return [
        make_fault(
            FaultKind.ERROR,
            scope.pod,
            scope.now,
            summary=f"Pod failed{': ' + reason if reason else ''}",
            description=message or "The pod terminated in the Failed phase.",
            symptoms=[reason, message],
            context={**ctx, ContextKey.FAILURE_REASON: reason, ContextKey.FAILURE_MESSAGE: message},
        )
    ]


def _first_claim_name(pod: ResourceSnapshot) -> str | None:
    for raw in as_list(dig(pod.raw, "spec", "volumes"), "spec.volumes"):
        claim = dig(raw, "persistentVolumeClaim", "claimName")
        if claim:
            return str(claim)
    return None


def _pending_reason(message: str) -> tuple[str, str]:
    """Return ``(description, issue_category)`` for a scheduler message."""
    lowered = message.lower()
    if "unbound" in lowered and "persistentvolumeclaim" in lowered:
        return "PersistentVolumeClaim is unbound; no volume could be provisioned", "PVC_BINDING"
    if "insufficient" in lowered:
        if "insufficient cpu" in lowered:
            return "Insufficient CPU on every candidate node", "RESOURCE_SHORTAGE_CPU"
        if "insufficient memory" in lowered:
            return "Insufficient memory on every candidate node", "RESOURCE_SHORTAGE_MEMORY"
        return "Insufficient resources on every candidate node", "RESOURCE_SHORTAGE"
    if "taint" in lowered or "toleration" in lowered:
        return "Node taints are not tolerated by the pod", "TAINT_TOLERATION"
    if "didn't match" in lowered or "matchnodeselector" in lowered or "affinity" in lowered:
        return "No node matches the pod's nodeSelector or affinity", "NODE_SELECTION"
    return "The scheduler could not place the pod", "SCHEDULING_FAILED"


def _check_pending(scope: _PodScope) -> list[FaultRecord]:
    if scope.phase != "Pending":
        return []
    cond = find_condition(scope.pod, "PodScheduled")
    if cond is None or cond.get("status") != "False":
        return []
    message = str(cond.get("message") or "")
    ctx = scope.base_context()
    missing = _RE_MISSING_PVC.search(message)
    if missing:
        return [
            make_fault(
                FaultKind.PVC_ERROR,
                scope.pod,
                scope.now,
                summary=f"PersistentVolumeClaim {missing.group(1)} does not exist",
                description=f"The pod references PersistentVolumeClaim '{missing.group(1)}', which was not found.",
                symptoms=[message],
                context={
                    **ctx,
                    ContextKey.ISSUE_CATEGORY: "PVC_NOT_FOUND",
                    ContextKey.PVC_NAME: missing.group(1),
                    ContextKey.SCHEDULING_MESSAGE: message,
                },
            )
        ]
    description, category = _pending_reason(message)
    return [
        make_fault(
            FaultKind.PENDING,
            scope.pod,
            scope.now,
            summary=f"Pod is unschedulable: {description}",
            description=description,
            symptoms=[message],
            context={
                **ctx,
                ContextKey.ISSUE_CATEGORY: category,
                ContextKey.SCHEDULING_MESSAGE: message,
                ContextKey.PVC_NAME: _first_claim_name(scope.pod) if category == "PVC_BINDING" else None,
            },
        )
    ]


def _terminating_category(finalizers: list[str]) -> str:
    if not finalizers:
        return "GRACEFUL_SHUTDOWN_STUCK"
    joined = " ".join(finalizers).lower()
    if "volume" in joined or "pvc" in joined or "attach" in joined:
        return "VOLUME_DETACH_STUCK"
    if "cni" in joined or "network" in joined:
        return "CNI_CLEANUP_STUCK"
    if "kubernetes.io" in joined:
        return "KUBERNETES_FINALIZER_STUCK"
    return "CUSTOM_FINALIZER_STUCK"


def _check_terminating(scope: _PodScope) -> list[FaultRecord]:
    deleted_at = parse_time(dig(scope.pod.raw, "metadata", "deletionTimestamp"))
    if deleted_at is None or scope.now - deleted_at < TERMINATING_STUCK_AFTER:
        return []
    minutes = int((scope.now - deleted_at).total_seconds() // 60)
    finalizers = [str(f) for f in as_list(dig(scope.pod.raw, "metadata", "finalizers"), "metadata.finalizers")]
    category = _terminating_category(finalizers)
    return [
        make_fault(
            FaultKind.TERMINATING_STUCK,
            scope.pod,
            scope.now,
            summary=f"Pod stuck terminating for {minutes} minutes",
            description=f"Pod deletion has not completed after {minutes} minutes ({category}).",
            symptoms=[f"Finalizers: {', '.join(finalizers) or 'none'}"],
            context={
                **scope.base_context(),
                ContextKey.ISSUE_CATEGORY: category,
                ContextKey.FINALIZERS: finalizers or None,
                ContextKey.STUCK_MINUTES: minutes,
            },
        )
    ]


def _waiting_messages(scope: _PodScope) -> list[str]:
    return [c.waiting_message for c in _containers(scope.pod) if c.waiting_message]


def _mount_messages(scope: _PodScope) -> list[str]:
    # Scheduling messages belong to the Pending check.
    messages = [
        str(cond.get("message"))
        for cond in conditions(scope.pod)
        if cond.get("type") != "PodScheduled" and cond.get("status") == "False" and cond.get("message")
    ]
    return messages + _waiting_messages(scope)


def _network_messages(scope: _PodScope) -> list[str]:
    messages: list[str] = []
    for cond in conditions(scope.pod):
        if cond.get("type") == "PodScheduled":
            continue
        message = str(cond.get("message") or "")
        reason = str(cond.get("reason") or "").lower()
        if cond.get("type") == "ContainersReady" and cond.get("status") == "False" and message:
            messages.append(message)
        elif any(m in reason for m in _NETWORK_REASONS):
            messages.append(message or reason)
    return messages + _waiting_messages(scope)


def _check_volume_mount(scope: _PodScope) -> list[FaultRecord]:
    for message in _mount_messages(scope):
        lowered = message.lower()
        if not (any(m in lowered for m in _MOUNT_MARKERS) or ("csi" in lowered and "mount" in lowered)):
            continue
        ctx = scope.base_context()
        missing_config = _RE_MISSING_CONFIG.search(message)
        if missing_config:
            ref_kind = "ConfigMap" if missing_config.group(1).lower() == "configmap" else "Secret"
            return [
                make_fault(
                    FaultKind.CONFIG_ERROR,
                    scope.pod,
                    scope.now,
                    summary=f"{ref_kind} volume {missing_config.group(2)} is missing",
                    description=f"The pod mounts {ref_kind} '{missing_config.group(2)}', which does not exist.",
                    symptoms=[message],
                    context={**ctx, ContextKey.ISSUE_CATEGORY: f"{ref_kind.upper()}_NOT_FOUND", ContextKey.ERROR_MESSAGE: message},
                )
            ]
        missing_pvc = _RE_MISSING_PVC.search(message)
        if missing_pvc:
            return [
                make_fault(
                    FaultKind.PVC_ERROR,
                    scope.pod,
                    scope.now,
                    summary=f"PersistentVolumeClaim {missing_pvc.group(1)} does not exist",
                    description=f"The pod mounts PersistentVolumeClaim '{missing_pvc.group(1)}', which was not found.",
                    symptoms=[message],
                    context={
                        **ctx,
                        ContextKey.ISSUE_CATEGORY: "PVC_NOT_FOUND",
                        ContextKey.PVC_NAME: missing_pvc.group(1),
                        ContextKey.ERROR_MESSAGE: message,
                    },
                )
            ]
        category = first_keyword(message, _MOUNT_CATEGORIES, "VOLUME_MOUNT_UNKNOWN")
        return [
            make_fault(
                FaultKind.VOLUME_MOUNT_ERROR,
                scope.pod,
                scope.now,
                summary=f"Volume mount failed ({category})",
                description=f"A volume could not be mounted into the pod: {message}",
                symptoms=[message],
                context={
                    **ctx,
                    ContextKey.ISSUE_CATEGORY: category,
                    ContextKey.ERROR_MESSAGE: message,
                    ContextKey.PVC_NAME: _first_claim_name(scope.pod),
                },
            )
        ]
    return []


def _check_network(scope: _PodScope) -> list[FaultRecord]:
    for message in _network_messages(scope):
        lowered = message.lower()
        if any(m in lowered for m in _MOUNT_MARKERS):
            continue
        if not any(m in lowered for m in _NETWORK_MARKERS):
            continue
        category = first_keyword(message, _NETWORK_CATEGORIES, "NETWORK_UNKNOWN")
        return [
            make_fault(
                FaultKind.NETWORK_ERROR,
                scope.pod,
                scope.now,
                summary=f"Pod networking failed ({category})",
                description=f"Pod network setup failed: {message}",
                symptoms=[message],
                context={**scope.base_context(), ContextKey.ISSUE_CATEGORY: category, ContextKey.ERROR_MESSAGE: message},
            )
        ]
    return []


_POD_CHECKS: tuple[Callable[[_PodScope], list[FaultRecord]], ...] = (
    _check_failed_phase,
    _check_pending,
    _check_terminating,
    _check_volume_mount,
    _check_network,
)


class PodDetector(Detector):
    """Detects container and pod level faults on a Pod snapshot."""

    resource_kinds = ("Pod",)

    def detect(self, snapshot: ResourceSnapshot, now: datetime) -> list[FaultRecord]:
        owner_kind, owner_name = resolve_owner(snapshot)
        scope = _PodScope(pod=snapshot, now=now, owner_kind=owner_kind, owner_name=owner_name)
        faults: list[FaultRecord] = []
        for container in _containers(snapshot):
            for check in _CONTAINER_CHECKS:
                fault = check(scope, container)
                if fault is not None:
                    faults.append(fault)
                    break
        for pod_check in _POD_CHECKS:
            faults.extend(pod_check(scope))
        return faults
