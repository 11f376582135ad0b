"""Tests for snapshot-to-fault detection across every supported kind."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import pytest

from kubedoctor.detector import SUPPORTED_KINDS, describe_exit_code, detect
from kubedoctor.detector.pod import PodDetector
from kubedoctor.models.faults import ContextKey, FaultKind, Severity
from kubedoctor.models.resources import ResourceSnapshot

from tests.factories import (
    NOW,
    POD_NAME,
    iso,
    make_node,
    make_pod,
    oom_crash_loop_pod,
    pending_pod,
    waiting_status,
)

# ---------------------------------------------------------------------------
# Container faults
# ---------------------------------------------------------------------------


class TestContainerFaults:
    def test_oom_crash_loop_is_reported_once_as_oom(self) -> None:
        faults = detect("Pod", oom_crash_loop_pod(), NOW)

        assert len(faults) == 1
        fault = faults[0]
        assert fault.kind is FaultKind.OOM_KILLED
        assert fault.severity is Severity.CRITICAL
        assert fault.resource_name == POD_NAME
        assert fault.namespace == "default"
        assert fault.detected_at == NOW
        assert fault.get(ContextKey.RESTART_COUNT) == 8
        assert fault.get(ContextKey.EXIT_CODE) == 137
        assert fault.get(ContextKey.MEMORY_LIMIT) == "256Mi"
        assert fault.get(ContextKey.CONTAINER_NAME) == "app"

    def test_replicaset_owner_resolves_to_deployment(self) -> None:
        fault = detect("Pod", oom_crash_loop_pod(), NOW)[0]
        assert fault.owner_kind == "Deployment"
        assert fault.owner_name == "api"

    def test_bare_pod_owns_itself(self) -> None:
        raw = make_pod(owner=None, container_statuses=[waiting_status("CrashLoopBackOff", restarts=3)])
        fault = detect("Pod", raw, NOW)[0]
        assert fault.owner_kind == "Pod"
        assert fault.owner_name == POD_NAME

    def test_crash_loop_with_application_error(self) -> None:
        raw = make_pod(
            container_statuses=[
                waiting_status("CrashLoopBackOff", restarts=5, last_terminated={"exitCode": 1, "reason": "Error"})
            ]
        )
        faults = detect("Pod", raw, NOW)

        assert [f.kind for f in faults] == [FaultKind.CRASH_LOOP_BACK_OFF]
        assert faults[0].get(ContextKey.EXIT_CODE_DESCRIPTION) == "application error"
        assert ContextKey.ISSUE_CATEGORY not in faults[0].context

    def test_crash_loop_killed_by_liveness_probe(self) -> None:
        raw = make_pod(
            containers=[{"name": "app", "image": "api:1", "livenessProbe": {"httpGet": {"path": "/healthz"}}}],
            container_statuses=[
                waiting_status("CrashLoopBackOff", restarts=4, last_terminated={"exitCode": 137, "reason": "Error"})
            ],
        )
        fault = detect("Pod", raw, NOW)[0]

        assert fault.kind is FaultKind.CRASH_LOOP_BACK_OFF
        assert fault.get(ContextKey.ISSUE_CATEGORY) == "LIVENESS_PROBE_KILLED"
        assert fault.get(ContextKey.HAS_LIVENESS_PROBE) is True
        assert fault.get(ContextKey.FAILURE_THRESHOLD) == 3

    @pytest.mark.parametrize(
        ("message", "category"),
        [
            ('failed to pull image "api:9.9": manifest unknown', "IMAGE_NOT_FOUND"),
            ("pull access denied, repository does not exist or may require authorization", "AUTHENTICATION_FAILED"),
            ("dial tcp: lookup registry.internal: no such host", "REGISTRY_UNREACHABLE"),
            ("toomanyrequests: You have reached your pull rate limit", "RATE_LIMITED"),
        ],
    )
    def test_image_pull_category(self, message: str, category: str) -> None:
        raw = make_pod(container_statuses=[waiting_status("ImagePullBackOff", message)])
        fault = detect("Pod", raw, NOW)[0]

        assert fault.kind is FaultKind.IMAGE_PULL_BACK_OFF
        assert fault.get(ContextKey.ERROR_CATEGORY) == category
        assert fault.get(ContextKey.ISSUE_CATEGORY) == category

    def test_create_container_config_error(self) -> None:
        raw = make_pod(container_statuses=[waiting_status("CreateContainerConfigError", 'secret "db-creds" not found')])
        fault = detect("Pod", raw, NOW)[0]

        assert fault.kind is FaultKind.CREATE_CONTAINER_CONFIG_ERROR
        assert fault.get(ContextKey.ISSUE_CATEGORY) == "SECRET_NOT_FOUND"

    def test_readiness_probe_failure(self) -> None:
        raw = make_pod(
            containers=[{"name": "app", "image": "api:1", "readinessProbe": {"httpGet": {"path": "/ready"}}}],
            container_statuses=[{"name": "app", "ready": False, "restartCount": 0, "state": {"running": {}}}],
        )
        faults = detect("Pod", raw, NOW)

        assert [f.kind for f in faults] == [FaultKind.READINESS_PROBE_FAILED]
        assert faults[0].severity is Severity.MEDIUM

    def test_unrecognized_waiting_reason_is_unknown(self) -> None:
        raw = make_pod(container_statuses=[waiting_status("RunContainerError", "something odd")])
        fault = detect("Pod", raw, NOW)[0]

        assert fault.kind is FaultKind.UNKNOWN
        assert fault.get(ContextKey.WAITING_REASON) == "RunContainerError"

    def test_healthy_pod_has_no_faults(self) -> None:
        raw = make_pod(container_statuses=[{"name": "app", "ready": True, "restartCount": 0, "state": {"running": {}}}])
        assert detect("Pod", raw, NOW) == []


# ---------------------------------------------------------------------------
# Pod-level faults
# ---------------------------------------------------------------------------


class TestPodFaults:
    @pytest.mark.parametrize(
        ("message", "category"),
        [
            ("0/3 nodes are available: 3 Insufficient memory.", "RESOURCE_SHORTAGE_MEMORY"),
            ("0/3 nodes are available: 3 Insufficient cpu.", "RESOURCE_SHORTAGE_CPU"),
            ("0/3 nodes are available: 3 node(s) had untolerated taint {dedicated: gpu}.", "TAINT_TOLERATION"),
            ("0/3 nodes are available: 3 node(s) didn't match Pod's node affinity/selector.", "NODE_SELECTION"),
            ("0/3 nodes are available: preemption is not helpful.", "SCHEDULING_FAILED"),
        ],
    )
    def test_pending_category(self, message: str, category: str) -> None:
        faults = detect("Pod", pending_pod(message), NOW)

        assert [f.kind for f in faults] == [FaultKind.PENDING]
        assert faults[0].get(ContextKey.ISSUE_CATEGORY) == category
        assert faults[0].get(ContextKey.SCHEDULING_MESSAGE) == message

    def test_pending_on_unbound_claim_names_the_claim(self) -> None:
        raw = pending_pod(
            "0/3 nodes are available: pod has unbound immediate PersistentVolumeClaims.",
            volumes=[{"name": "data", "persistentVolumeClaim": {"claimName": "data-api-0"}}],
        )
        fault = detect("Pod", raw, NOW)[0]

        assert fault.kind is FaultKind.PENDING
        assert fault.get(ContextKey.ISSUE_CATEGORY) == "PVC_BINDING"
        assert fault.get(ContextKey.PVC_NAME) == "data-api-0"

    def test_missing_claim_is_pvc_error(self) -> None:
        fault = detect("Pod", pending_pod('persistentvolumeclaim "data-api-0" not found'), NOW)[0]

        assert fault.kind is FaultKind.PVC_ERROR
        assert fault.get(ContextKey.PVC_NAME) == "data-api-0"

    def test_evicted_pod(self) -> None:
        raw = make_pod(
            phase="Failed",
            status_extra={"reason": "Evicted", "message": "The node was low on resource: ephemeral-storage."},
        )
        fault = detect("Pod", raw, NOW)[0]

        assert fault.kind is FaultKind.EVICTED
        assert fault.get(ContextKey.ISSUE_CATEGORY) == "EPHEMERAL_STORAGE_EXCEEDED"

    def test_out_of_resource_admission_is_insufficient_resources(self) -> None:
        raw = make_pod(phase="Failed", status_extra={"reason": "OutOfcpu", "message": "Node didn't have enough cpu"})
        assert detect("Pod", raw, NOW)[0].kind is FaultKind.INSUFFICIENT_RESOURCES

    def test_failed_phase_without_known_reason_is_error(self) -> None:
        raw = make_pod(phase="Failed", status_extra={"reason": "DeadlineExceeded"})
        assert detect("Pod", raw, NOW)[0].kind is FaultKind.ERROR

    def test_terminating_stuck_after_grace(self) -> None:
        raw = make_pod(
            metadata_extra={
                "deletionTimestamp": iso(NOW - timedelta(minutes=12)),
                "finalizers": ["example.com/cleanup"],
            }
        )
        fault = detect("Pod", raw, NOW)[0]

        assert fault.kind is FaultKind.TERMINATING_STUCK
        assert fault.get(ContextKey.STUCK_MINUTES) == 12
        assert fault.get(ContextKey.ISSUE_CATEGORY) == "CUSTOM_FINALIZER_STUCK"

    def test_recent_deletion_is_not_stuck(self) -> None:
        raw = make_pod(metadata_extra={"deletionTimestamp": iso(NOW - timedelta(minutes=2))})
        assert detect("Pod", raw, NOW) == []

    def test_missing_configmap_volume_is_config_error(self) -> None:
        raw = make_pod(
            container_statuses=[
                waiting_status(
                    "ContainerCreating",
                    'MountVolume.SetUp failed for volume "cfg" : configmap "app-config" not found',
                )
            ]
        )
        faults = detect("Pod", raw, NOW)

        assert [f.kind for f in faults] == [FaultKind.CONFIG_ERROR]
        assert faults[0].get(ContextKey.ISSUE_CATEGORY) == "CONFIGMAP_NOT_FOUND"

    def test_read_only_mount_is_volume_mount_error(self) -> None:
        raw = make_pod(
            container_statuses=[
                waiting_status("ContainerCreating", "MountVolume.SetUp failed: read-only file system")
            ]
        )
        fault = detect("Pod", raw, NOW)[0]

        assert fault.kind is FaultKind.VOLUME_MOUNT_ERROR
        assert fault.get(ContextKey.ISSUE_CATEGORY) == "READONLY_FS"

    def test_sandbox_network_failure(self) -> None:
        raw = make_pod(
            container_statuses=[
                waiting_status(
                    "ContainerCreating",
                    'Failed to create pod sandbox: plugin type="calico" failed (add): failed to setup network',
                )
            ]
        )
        fault = detect("Pod", raw, NOW)[0]

        assert fault.kind is FaultKind.NETWORK_ERROR
        assert fault.get(ContextKey.ISSUE_CATEGORY) == "CNI_ERROR"

    def test_network_not_ready_condition_reason(self) -> None:
        raw = make_pod(
            conditions=[
                {
                    "type": "Ready",
                    "status": "False",
                    "reason": "NetworkNotReady",
                    "message": "container runtime network not ready: cni plugin not initialized",
                }
            ]
        )
        faults = detect("Pod", raw, NOW)

        assert [f.kind for f in faults] == [FaultKind.NETWORK_ERROR]
        assert faults[0].get(ContextKey.ISSUE_CATEGORY) == "CNI_ERROR"

    def test_network_taint_on_pending_pod_is_only_pending(self) -> None:
        raw = pending_pod(
            "0/3 nodes are available: 3 node(s) had untolerated taint {node.kubernetes.io/network-unavailable: }."
        )
        assert [f.kind for f in detect("Pod", raw, NOW)] == [FaultKind.PENDING]

    def test_missing_claim_is_reported_once(self) -> None:
        raw = pending_pod('persistentvolumeclaim "data-api-0" not found')
        assert [f.kind for f in detect("Pod", raw, NOW)] == [FaultKind.PVC_ERROR]


# ---------------------------------------------------------------------------
# Workloads, nodes and jobs
# ---------------------------------------------------------------------------


class TestWorkloadFaults:
    def test_deployment_below_desired_replicas(self) -> None:
        raw = {"metadata": {"name": "api", "namespace": "default"}, "spec": {"replicas": 3}, "status": {"availableReplicas": 1}}
        faults = detect("Deployment", raw, NOW)

        assert [f.kind for f in faults] == [FaultKind.DEPLOYMENT_UNAVAILABLE]
        assert faults[0].get(ContextKey.DESIRED_REPLICAS) == 3
        assert faults[0].get(ContextKey.AVAILABLE_REPLICAS) == 1

    def test_deployment_blocked_by_quota(self) -> None:
        raw = {
            "metadata": {"name": "api", "namespace": "default"},
            "spec": {"replicas": 2},
            "status": {
                "availableReplicas": 0,
                "conditions": [
                    {
                        "type": "ReplicaFailure",
                        "status": "True",
                        "message": 'pods "api-x" is forbidden: exceeded quota: compute, requested: cpu=2',
                    }
                ],
            },
        }
        kinds = [f.kind for f in detect("Deployment", raw, NOW)]
        assert kinds == [FaultKind.RESOURCE_QUOTA_EXCEEDED, FaultKind.DEPLOYMENT_UNAVAILABLE]

    def test_healthy_statefulset(self) -> None:
        raw = {"metadata": {"name": "db", "namespace": "data"}, "spec": {"replicas": 3}, "status": {"readyReplicas": 3}}
        assert detect("StatefulSet", raw, NOW) == []

    def test_daemonset_not_ready_everywhere(self) -> None:
        raw = {"metadata": {"name": "agent", "namespace": "ops"}, "status": {"desiredNumberScheduled": 5, "numberReady": 4}}
        assert [f.kind for f in detect("DaemonSet", raw, NOW)] == [FaultKind.DEPLOYMENT_UNAVAILABLE]

    def test_replicaset_owned_by_deployment_is_skipped(self) -> None:
        raw = {
            "metadata": {"name": "api-7d9f8b6c5d", "namespace": "default", "ownerReferences": [{"kind": "Deployment", "name": "api"}]},
            "spec": {"replicas": 3},
            "status": {"readyReplicas": 0},
        }
        assert detect("ReplicaSet", raw, NOW) == []


class TestNodeFaults:
    def test_not_ready_node(self) -> None:
        faults = detect("Node", make_node(ready="False"), NOW)

        assert [f.kind for f in faults] == [FaultKind.NODE_NOT_READY]
        assert faults[0].namespace is None
        assert faults[0].severity is Severity.CRITICAL

    def test_one_fault_per_pressure_condition(self) -> None:
        faults = detect("Node", make_node(pressure=("MemoryPressure", "DiskPressure")), NOW)

        assert [f.kind for f in faults] == [FaultKind.NODE_PRESSURE, FaultKind.NODE_PRESSURE]
        assert [f.get(ContextKey.ISSUE_CATEGORY) for f in faults] == ["MEMORY_PRESSURE", "DISK_PRESSURE"]
        assert faults[0].get(ContextKey.PRESSURE_TYPES) == ["MemoryPressure", "DiskPressure"]

    def test_healthy_node(self) -> None:
        assert detect("Node", make_node(), NOW) == []


class TestJobFaults:
    def _job(self, **status: object) -> dict:
        return {
            "metadata": {
                "name": "nightly-report-28475",
                "namespace": "batch",
                "ownerReferences": [{"kind": "CronJob", "name": "nightly-report"}],
            },
            "spec": {
                "backoffLimit": 3,
                "template": {"spec": {"restartPolicy": "Never", "containers": [{"name": "report", "image": "report:2"}]}},
            },
            "status": status,
        }

    def test_backoff_limit_exceeded(self) -> None:
        raw = self._job(
            failed=4,
            conditions=[
                {
                    "type": "Failed",
                    "status": "True",
                    "reason": "BackoffLimitExceeded",
                    "message": "Job has reached the specified backoff limit",
                }
            ],
        )
        fault = detect("Job", raw, NOW)[0]

        assert fault.kind is FaultKind.JOB_FAILED
        assert fault.get(ContextKey.ISSUE_CATEGORY) == "BACKOFF_LIMIT_EXCEEDED"
        assert fault.owner_kind == "CronJob"
        assert fault.get(ContextKey.FAILED_COUNT) == 4
        assert fault.get(ContextKey.IMAGE) == "report:2"

    def test_complete_job_is_healthy(self) -> None:
        raw = self._job(failed=1, succeeded=1, conditions=[{"type": "Complete", "status": "True"}])
        assert detect("Job", raw, NOW) == []


class TestCronJobFaults:
    def _cronjob(self, spec: dict | None = None, status: dict | None = None) -> dict:
        return {
            "metadata": {"name": "nightly-report", "namespace": "batch", "creationTimestamp": iso(NOW - timedelta(days=10))},
            "spec": {"schedule": "0 2 * * *", **(spec or {})},
            "status": status or {},
        }

    def test_suspended(self) -> None:
        fault = detect("CronJob", self._cronjob(spec={"suspend": True}), NOW)[0]

        assert fault.kind is FaultKind.CRONJOB_FAILED
        assert fault.severity is Severity.MEDIUM
        assert fault.get(ContextKey.ISSUE_CATEGORY) == "SUSPENDED"

    def test_too_many_active_with_forbid_is_high(self) -> None:
        raw = self._cronjob(spec={"concurrencyPolicy": "Forbid"}, status={"active": [{"name": "a"}, {"name": "b"}]})
        fault = detect("CronJob", raw, NOW)[0]

        assert fault.severity is Severity.HIGH
        assert fault.get(ContextKey.ISSUE_CATEGORY) == "TOO_MANY_ACTIVE"

    def test_stale_schedule(self) -> None:
        raw = self._cronjob(status={"lastScheduleTime": iso(NOW - timedelta(hours=30))})
        fault = detect("CronJob", raw, NOW)[0]
        assert fault.get(ContextKey.ISSUE_CATEGORY) == "SCHEDULE_STALE"

    def test_recently_scheduled_is_healthy(self) -> None:
        raw = self._cronjob(status={"lastScheduleTime": iso(NOW - timedelta(hours=3))})
        assert detect("CronJob", raw, NOW) == []


# ---------------------------------------------------------------------------
# Dispatch edge cases
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_supported_kinds(self) -> None:
        assert SUPPORTED_KINDS == {
            "Pod",
            "Deployment",
            "StatefulSet",
            "DaemonSet",
            "ReplicaSet",
            "Node",
            "Job",
            "CronJob",
        }

    def test_unsupported_kind_yields_single_unknown(self) -> None:
        faults = detect("Service", {"metadata": {"name": "web", "namespace": "default"}}, NOW)

        assert len(faults) == 1
        assert faults[0].kind is FaultKind.UNKNOWN
        assert faults[0].resource_kind == "Service"

    def test_non_mapping_snapshot_yields_unknown(self) -> None:
        faults = detect("Pod", "not an object", NOW)  # type: ignore[arg-type]
        assert [f.kind for f in faults] == [FaultKind.UNKNOWN]

    def test_malformed_snapshot_yields_unknown_and_logs(self, log_events: list[dict]) -> None:
        raw = make_pod(container_statuses="oops")  # type: ignore[arg-type]
        faults = detect("Pod", raw, NOW)

        assert [f.kind for f in faults] == [FaultKind.UNKNOWN]
        assert faults[0].get(ContextKey.ISSUE_CATEGORY) == "UNRECOGNIZED_STATE"
        assert any(e["event"] == "snapshot_malformed" for e in log_events)

    def test_infinite_counter_yields_unknown(self) -> None:
        raw = oom_crash_loop_pod()
        raw["status"]["containerStatuses"][0]["restartCount"] = float("inf")
        faults = detect("Pod", raw, NOW)

        assert [f.kind for f in faults] == [FaultKind.UNKNOWN]
        assert faults[0].resource_name == POD_NAME

    def test_unexpected_detector_error_yields_unknown(self, log_events: list[dict]) -> None:
        with patch.object(PodDetector, "detect", side_effect=RuntimeError("boom")):
            faults = detect("Pod", oom_crash_loop_pod(), NOW)

        assert [f.kind for f in faults] == [FaultKind.UNKNOWN]
        assert any(e["event"] == "snapshot_malformed" and e["error_type"] == "RuntimeError" for e in log_events)

    def test_accepts_wrapped_snapshot(self) -> None:
        snapshot = ResourceSnapshot(kind="Pod", raw=oom_crash_loop_pod())
        assert detect("Pod", snapshot, NOW)[0].kind is FaultKind.OOM_KILLED

    def test_detection_is_deterministic(self) -> None:
        first = [f.to_dict() for f in detect("Pod", oom_crash_loop_pod(), NOW)]
        second = [f.to_dict() for f in detect("Pod", oom_crash_loop_pod(), NOW)]
        assert first == second


class TestExitCodes:
    @pytest.mark.parametrize(
        ("code", "meaning"),
        [(1, "application error"), (139, "terminated by signal 11"), (None, "unknown"), (42, "unknown")],
    )
    def test_describe_exit_code(self, code: int | None, meaning: str) -> None:
        assert describe_exit_code(code) == meaning
