"""Replica availability faults for Deployments, StatefulSets, DaemonSets and ReplicaSets."""

from __future__ import annotations

from datetime import datetime

from kubedoctor.detector.base import Detector, as_int, as_list, dig, find_condition, make_fault
from kubedoctor.models.faults import ContextKey, FaultKind, FaultRecord
from kubedoctor.models.resources import ResourceSnapshot


def _quota_fault(snapshot: ResourceSnapshot, now: datetime) -> FaultRecord | None:
    cond = find_condition(snapshot, "ReplicaFailure")
    if cond is None or cond.get("status") != "True":
        return None
    message = str(cond.get("message") or "")
    if "exceeded quota" not in message.lower():
        return None
    return make_fault(
        FaultKind.RESOURCE_QUOTA_EXCEEDED,
        snapshot,
        now,
        summary=f"{snapshot.kind} {snapshot.name} is blocked by a ResourceQuota",
        description=f"New pods were rejected because the namespace resource quota is exhausted: {message}",
        symptoms=[message],
        context={
            ContextKey.OWNER_KIND: snapshot.kind,
            ContextKey.OWNER_NAME: snapshot.name,
            ContextKey.ISSUE_CATEGORY: "QUOTA_EXCEEDED",
            ContextKey.FAILURE_MESSAGE: message,
        },
    )


def _unavailable_fault(snapshot: ResourceSnapshot, now: datetime, desired: int, ready: int, noun: str) -> FaultRecord:
    return make_fault(
        FaultKind.DEPLOYMENT_UNAVAILABLE,
        snapshot,
        now,
        summary=f"{snapshot.kind} {snapshot.name}: {ready}/{desired} {noun}",
        description=f"{snapshot.kind} '{snapshot.name}' has {ready} of {desired} desired replicas {noun}.",
        symptoms=[f"Desired: {desired}", f"{noun.capitalize()}: {ready}"],
        context={
            ContextKey.OWNER_KIND: snapshot.kind,
            ContextKey.OWNER_NAME: snapshot.name,
            ContextKey.DESIRED_REPLICAS: desired,
            ContextKey.AVAILABLE_REPLICAS: ready,
        },
    )


class DeploymentDetector(Detector):
    """Deployment with fewer available replicas than desired."""

    resource_kinds = ("Deployment",)

    def detect(self, snapshot: ResourceSnapshot, now: datetime) -> list[FaultRecord]:
        faults: list[FaultRecord] = []
        quota = _quota_fault(snapshot, now)
        if quota is not None:
            faults.append(quota)
        desired = as_int(dig(snapshot.raw, "spec", "replicas"), 1)
        available = as_int(dig(snapshot.raw, "status", "availableReplicas"))
        if available < desired:
            faults.append(_unavailable_fault(snapshot, now, desired, available, "available"))
        return faults


class StatefulSetDetector(Detector):
    """StatefulSet with fewer ready replicas than desired."""

    resource_kinds = ("StatefulSet",)

    def detect(self, snapshot: ResourceSnapshot, now: datetime) -> list[FaultRecord]:
        desired = as_int(dig(snapshot.raw, "spec", "replicas"), 1)
        ready = as_int(dig(snapshot.raw, "status", "readyReplicas"))
        if ready >= desired:
            return []
        return [_unavailable_fault(snapshot, now, desired, ready, "ready")]


class DaemonSetDetector(Detector):
    """DaemonSet whose pods are not ready on every scheduled node."""

    resource_kinds = ("DaemonSet",)

    def detect(self, snapshot: ResourceSnapshot, now: datetime) -> list[FaultRecord]:
        desired = as_int(dig(snapshot.raw, "status", "desiredNumberScheduled"))
        ready = as_int(dig(snapshot.raw, "status", "numberReady"))
        if ready >= desired:
            return []
        return [_unavailable_fault(snapshot, now, desired, ready, "ready")]


class ReplicaSetDetector(Detector):
    """Standalone ReplicaSet with fewer ready replicas than desired.

    ReplicaSets owned by a Deployment are reported through the Deployment.
    """

    resource_kinds = ("ReplicaSet",)

    def detect(self, snapshot: ResourceSnapshot, now: datetime) -> list[FaultRecord]:
        owners = as_list(dig(snapshot.raw, "metadata", "ownerReferences"), "metadata.ownerReferences")
        if any(dig(ref, "kind") == "Deployment" for ref in owners):
            return []
        faults: list[FaultRecord] = []
        quota = _quota_fault(snapshot, now)
        if quota is not None:
            faults.append(quota)
        desired = as_int(dig(snapshot.raw, "spec", "replicas"), 1)
        ready = as_int(dig(snapshot.raw, "status", "readyReplicas"))
        if ready < desired:
            faults.append(_unavailable_fault(snapshot, now, desired, ready, "ready"))
        return faults
