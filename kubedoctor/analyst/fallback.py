"""Hand-authored diagnoses used when no completion is available.

Steps are plain remediation text with no leading numbers; numbering is
left to the presentation layer.
"""

from __future__ import annotations

from kubedoctor.models.analysis import FallbackDiagnosis
from kubedoctor.models.faults import FaultKind, FaultRecord

FALLBACK_ROOT_CAUSE = "AI diagnosis unavailable; showing built-in remediation guidance."

_PVC_MARKERS = ("pvc", "volume", "unbound")


def fallback_steps(fault: FaultRecord) -> list[str]:
    """Return the fixed remediation checklist for *fault*'s kind."""
    name = fault.resource_name
    ns = fault.namespace or "NAMESPACE"
    match fault.kind:
        case FaultKind.OOM_KILLED:
            return [
                "Increase the container's memory limit",
                "Optimise the application's memory usage",
                "Check the application for a memory leak",
            ]
        case FaultKind.IMAGE_PULL_BACK_OFF:
            return [
                f"Verify the image name and tag: kubectl describe pod {name} -n {ns}",
                "Check that the node can reach and authenticate to the registry",
                "Confirm imagePullSecrets are configured correctly",
            ]
        case FaultKind.CRASH_LOOP_BACK_OFF:
            return [
                f"Read the logs of the crashed container: kubectl logs {name} -n {ns} --previous",
                "Review the application's startup command and configuration",
                "Check that every required environment variable is set",
            ]
        case FaultKind.PENDING:
            if any(m in fault.description.lower() for m in _PVC_MARKERS):
                return [
                    "Check StorageClasses: kubectl get storageclass",
                    f"Check claim status: kubectl get pvc -n {ns}",
                    "Check the CSI driver or provisioner: kubectl get pods -n kube-system | grep -E 'csi|provisioner'",
                    "Without dynamic provisioning, create a matching PersistentVolume manually",
                ]
            return [
                "Check node capacity: kubectl describe nodes | grep -A5 'Allocated resources'",
                "Check node taints: kubectl describe nodes | grep -A3 Taints",
                f"Check the pod's nodeSelector and affinity: kubectl describe pod {name} -n {ns}",
            ]
        case FaultKind.CREATE_CONTAINER_CONFIG_ERROR | FaultKind.CONFIG_ERROR:
            return [
                f"Check that the ConfigMap or Secret exists: kubectl get configmap,secret -n {ns}",
                f"Check the referenced keys: kubectl describe configmap CM_NAME -n {ns}",
                "Create the resource in the same namespace or mark the reference optional: true",
            ]
        case FaultKind.CREATE_CONTAINER_ERROR:
            return [
                f"Inspect the pod: kubectl describe pod {name} -n {ns}",
                "Check that the image provides the configured command or entrypoint",
                "Review securityContext settings such as runAsUser and fsGroup",
                "Check that volumeMounts paths are valid",
            ]
        case FaultKind.TERMINATING_STUCK:
            return [
                f"Inspect finalizers: kubectl get pod {name} -n {ns} -o jsonpath='{{.metadata.finalizers}}'",
                "Check volume attachments: kubectl get volumeattachments",
                "Check CNI plugin logs: kubectl logs -n kube-system -l k8s-app=calico-node",
                f"Force delete as a last resort (risk of data loss): kubectl delete pod {name} -n {ns} --force --grace-period=0",
            ]
        case FaultKind.VOLUME_MOUNT_ERROR | FaultKind.PVC_ERROR:
            return [
                f"Check volume and claim status: kubectl get pv,pvc -n {ns}",
                f"Review the pod's securityContext: kubectl get pod {name} -n {ns} -o yaml | grep -A10 securityContext",
                "Set fsGroup when the volume has permission problems",
                "Check the CSI driver logs: kubectl logs -n kube-system -l app=csi-driver",
            ]
        case FaultKind.EVICTED:
            return [
                f"Find the eviction cause: kubectl describe pod {name} -n {ns}",
                "Check node conditions: kubectl describe nodes | grep -A5 Conditions",
                f"Remove the evicted pod: kubectl delete pod {name} -n {ns}",
                "Set ephemeral-storage requests and limits",
            ]
        case FaultKind.JOB_FAILED:
            return [
                f"Read the Job's pod logs: kubectl logs job/{name} -n {ns}",
                f"Review Job events: kubectl describe job {name} -n {ns}",
                "Review and adjust backoffLimit",
                "Fix the application error, then recreate the Job",
            ]
        case FaultKind.CRONJOB_FAILED:
            return [
                f"Inspect the CronJob: kubectl describe cronjob {name} -n {ns}",
                f"List recent Jobs: kubectl get jobs -n {ns}",
                "Validate the schedule syntax",
                "Make sure spec.suspend is false",
            ]
        case FaultKind.NODE_NOT_READY | FaultKind.NODE_PRESSURE:
            return [
                f"Inspect node conditions: kubectl describe node {name}",
                f"Check resource usage: kubectl top node {name}",
                "Check kubelet and container runtime health on the node",
            ]
        case _:
            return [
                "Inspect the resource with kubectl describe",
                "Read the container logs with kubectl logs",
                "Review related events with kubectl get events",
            ]


def fallback(fault: FaultRecord) -> FallbackDiagnosis:
    """Build the built-in diagnosis for *fault*. Never fails."""
    return FallbackDiagnosis(
        root_cause=FALLBACK_ROOT_CAUSE,
        diagnosis=fault.description,
        steps=fallback_steps(fault),
        preventions=[],
    )
