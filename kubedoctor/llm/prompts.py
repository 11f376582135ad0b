"""Prompt text for the kubedoctor completion backend.

The system prompt is assembled from a fixed header, one diagnostic rule
block chosen by fault kind, and fixed solution/output footers. The model
is asked to answer in three ``###`` sections that the response parser
reads back.
"""

from __future__ import annotations

from kubedoctor.models.faults import ContextKey, FaultKind, FaultRecord

ROOT_CAUSE_HEADER = "### Root Cause"
SOLUTION_HEADER = "### Solution"
PREVENTION_HEADER = "### Prevention"

SYSTEM_HEADER: str = """\
<role>Kubernetes expert diagnostician</role>

<process>
1. Commit to exactly one root cause (never list candidates)
2. Output exactly one YAML fix for that cause
3. If the cause cannot be confirmed, request exactly one piece of missing data
</process>

<constraints>
# Pending (event based)
Insufficient => RESOURCE_SHORTAGE (do not mention PVCs)
unbound PVC => PVC_BINDING
Taints => TAINT_TOLERATION

# CrashLoopBackOff (log based, ignore events)
Quote the log error; if there are no logs say "logs required"

# Common
No bash/sh wrappers, no trailing colons, never edit a Pod directly (edit its owner)
</constraints>

"""

SOLUTION_REQUIREMENTS: str = """\
<solution_requirements>
Steps: 1-2 only
YAML: one file where possible, two at most
Wrap YAML in a ```yaml code block
YAML rules: changed field = new value + inline "# <- reason" comment; unchanged sections collapse into a single "# rest unchanged" line
Forbidden: marking changed fields as unchanged, listing unchanged fields with their children
Forbidden commands: apply -f, get pods, describe pod
Allowed commands: rollout, logs --previous, exec, get events, top
</solution_requirements>

"""

PLACEHOLDERS_TEMPLATE: str = """\
<placeholders>
File: {resource_file} | Vars: POD_NAME, NAMESPACE (upper case) | no <> brackets
</placeholders>

"""

OUTPUT_FORMAT: str = f"""\
<output_format>
{ROOT_CAUSE_HEADER} (1-2 sentences)
{SOLUTION_HEADER} (1-2 steps, one YAML)
{PREVENTION_HEADER} (2-3 bullets)
</output_format>"""

_RESOURCE_FILES: dict[str, str] = {
    "Pod": "pod.yaml",
    "Deployment": "deployment.yaml",
    "StatefulSet": "statefulset.yaml",
    "DaemonSet": "daemonset.yaml",
    "ReplicaSet": "replicaset.yaml",
    "Node": "node.yaml",
    "Job": "job.yaml",
    "CronJob": "cronjob.yaml",
}


def resource_file_name(kind: str) -> str:
    """Return the manifest file name the model should refer to for *kind*."""
    return _RESOURCE_FILES.get(kind, f"{kind.lower()}.yaml")


# ---------------------------------------------------------------------------
# Diagnostic rule blocks
# ---------------------------------------------------------------------------


def _pending_rules(text: str, owner_kind: str) -> str:
    """Pending branches on the scheduling sub-category, then on the owner kind."""
    if any(k in text for k in ("pvc", "persistentvolumeclaim", "unbound", "storagec", "volume")):
        lines = ["## Pending/PVC_BINDING", "unbound PVC => storageClassName unset or StorageClass missing"]
        if owner_kind == "StatefulSet":
            lines.append(
                "StatefulSet => edit spec.volumeClaimTemplates[].spec.storageClassName "
                "(sibling of template, not under template.spec; never create a standalone PVC)"
            )
        elif owner_kind == "DaemonSet":
            lines.append("DaemonSet => prefer hostPath/emptyDir; if a PVC is required use RWX storage such as NFS")
        else:
            lines.append("Deployment/Pod => a standalone PVC is fine; match its storageClassName")
        lines.append("No StorageClass => create the StorageClass and provisioner first")
        return "\n".join(lines) + "\n"

    if any(k in text for k in ("insufficient", "memory", "cpu", "resource_shortage")):
        is_cpu = "cpu" in text
        is_memory = "memory" in text
        lines = ["## Pending/RESOURCE_SHORTAGE (never mention PVC or StorageClass)"]
        if is_cpu and not is_memory:
            lines.append("CPU shortage => lower requests.cpu to a concrete smaller value (e.g. 500m -> 200m)")
        elif is_memory:
            lines.append("Memory shortage => lower requests.memory to a concrete smaller value (e.g. 512Mi -> 256Mi)")
        else:
            lines.append("Resource shortage => lower requests.cpu/memory to concrete smaller values")
        if owner_kind == "Pod":
            lines.append("Edit location: Pod.spec.containers[].resources")
        else:
            lines.append(f"Edit location: {owner_kind}.spec.template.spec.containers[].resources")
        lines.append("Alternatively: add nodes, enable the cluster autoscaler, remove unused pods")
        return "\n".join(lines) + "\n"

    if "taint" in text or "toleration" in text:
        lines = ["## Pending/TAINT", "Pod has no matching toleration => add tolerations"]
        if owner_kind == "DaemonSet":
            lines.append("DaemonSet => operator: Exists (tolerate every taint)")
        return "\n".join(lines) + "\n"

    if any(k in text for k in ("topologyspreadconstraints", "topology spread", "topology_spread")):
        return "## Pending/TOPOLOGY\nmaxSkew unsatisfiable => whenUnsatisfiable: ScheduleAnyway or add nodes\n"

    if any(k in text for k in ("anti-affinity", "podantiaffinity", "pod_anti_affinity")):
        return "## Pending/ANTI_AFFINITY\nrequired => change to preferred or add nodes\n"

    if any(k in text for k in ("nodeselector", "affinity", "didn't match", "node(s)", "node_selection")):
        return "## Pending/NODE_SELECTOR\nno matching node => drop the nodeSelector or label a node\n"

    return "## Pending/UNKNOWN\nDecide from the event messages only; do not guess\n"


_CRASH_LOOP_RULES = """\
## CrashLoopBackOff (log based, ignore events)
ECONNREFUSED => SERVICE_DOWN (check the target Service)
UnknownHost => DNS_FAIL (CoreDNS / service name)
address in use => PORT_CONFLICT
permission denied/126 => PERMISSION (securityContext)
not found/127 => CMD_NOT_FOUND (command / image)
137 + TermReason: OOMKilled => OOM (raise memory limit)
137 + HasLivenessProbe: true + TermReason != OOMKilled => PROBE_KILL (fix livenessProbe)
137 + TermReason: Error => external SIGKILL (check liveness probe first)
panic/Exception => APP_ERROR (stack trace)
SSL/certificate => TLS_ERROR
no logs => point to 'kubectl logs --previous'

Category: LIVENESS_PROBE_KILLED => the liveness probe is the cause, not OOM; fix probe settings or endpoint
Category: STARTUP_PROBE_KILLED => the startup probe is the cause, not OOM; raise failureThreshold*periodSeconds
Database connection failures, in order: 1) app resilience 2) startupProbe 3) separate readiness/liveness 4) initContainer
Forbidden: database checks in a livenessProbe
DNS: same namespace 'mysql', other namespace 'mysql.NS.svc'
"""

_IMAGE_PULL_RULES = """\
## ImagePullBackOff (event based; each cause has a different fix)
404/manifest unknown => IMAGE_NOT_FOUND => check image name/tag spelling and existence
no such host => REGISTRY_NOT_FOUND => registry URL typo or nonexistent registry
401/unauthorized => AUTH_FAIL => imagePullSecrets required
403/forbidden => PERMISSION => IAM / registry permissions
x509 => CERT_ERROR => CA certificate
429/rate limit => RATE_LIMIT => authenticate or use a mirror
timeout => NETWORK => egress / firewall

Important: never mention imagePullSecrets unless the error is 401/403
For a nonexistent image or registry the fix is correcting the image reference
"""

_OOM_RULES = """\
## OOMKilled
exit 137 => OOM
MemoryLimit present => propose a concrete increase from the current value (e.g. 100Mi -> 200Mi)
MemoryLimit unset => recommend adding limits.memory
Causes: low limit / leak / heap overrun / traffic spike
Java apps => -Xmx = 75% of the limit
"""

_CREATE_CONFIG_RULES = """\
## CreateContainerConfigError
ConfigMap/Secret not found => create it in the same namespace
key not found => verify the key name
Fix: optional: true or create the resource
"""

_CREATE_CONTAINER_RULES = """\
## CreateContainerError
not found => CMD_NOT_FOUND (check command)
permission denied => PERMISSION (securityContext)
entrypoint => ENTRYPOINT_ERR (override command/args)
mount/volume => MOUNT_ERR (check mountPath)
OCI runtime => RUNTIME_ERR (image compatibility)
"""

_STARTUP_RULES = """\
## StartupProbe Failed
Causes: startup too slow / app crash / wrong endpoint
Fix: failureThreshold*periodSeconds = total allowance (e.g. 30*10 = 5 minutes)
"""

_VOLUME_MOUNT_RULES = """\
## VolumeMountError
MOUNT_FAILED => PVC not bound (get pv,pvc)
PERMISSION => set fsGroup
READONLY => readOnly: false
CSI_ERR => CSI driver pod logs
SUBPATH => verify the path exists
"""

_NETWORK_RULES = """\
## NetworkError
DNS_FAIL => check CoreDNS
NETPOL_BLOCK => get networkpolicy -A
SVC_NOT_FOUND => get svc, DNS = SVC.NS.svc
CNI_ERR => calico/flannel health
CIDR_EXHAUST => clean up pods
"""

_NODE_NOT_READY_RULES = """\
## NodeNotReady
KUBELET_DOWN => restart kubelet
RUNTIME_FAIL => check containerd/docker
PRESSURE => check disk/memory/pid
"""

_NODE_PRESSURE_RULES = "## NodePressure\nDisk > 85% / memory / PID => drain + prune + add nodes\n"

_QUOTA_RULES = "## QuotaExceeded => lower requests / delete pods / request a quota increase\n"

_INSUFFICIENT_RULES = "## InsufficientResources => lower requests / add nodes / PriorityClass\n"

_TERMINATING_RULES = """\
## TerminatingStuck
FINALIZER => patch finalizers to null
VOLUME => get volumeattachments
CNI => CNI logs / clear cache
SIGTERM ignored => shorten terminationGracePeriodSeconds
Force: --force --grace-period=0 (risk of data loss)
"""

_EVICTED_RULES = """\
## Evicted
EPHEMERAL => ephemeral-storage limits
DISK => prune images
MEMORY => lower requests / add nodes
Controller-managed pod => recreated automatically; delete the evicted pod to clean up
Standalone pod => not recreated; delete and recreate it
"""

_JOB_RULES = """\
## JobFailed (logs are the root cause; quote the log error)
Never guess user intent; always give a fact-based cause and fix
Log pinpoints the failure => give the concrete fix
exit 1 without a specific log error => "command exited 1, check script logic" + command/args YAML
Transient (DB connection / upstream timeout / network) => raise backoffLimit or wait for dependencies in an initContainer
Permanent (NPE / syntax error / bad config) => fix command/args/image/code; raising backoffLimit is pointless
DEADLINE_EXCEEDED => activeDeadlineSeconds exceeded; raise the deadline or speed up the run
exit 137 => OOM, raise resources.limits.memory
exit 127 => command not found, check image/command
Forbidden: calling it a test job / intended failure / no action needed, raising backoffLimit for permanent errors, guessing without logs
Edit location: Job.spec.template.spec (never the Pod)
Job owned by a CronJob => edit CronJob.spec.jobTemplate.spec.template.spec
"""

_CRONJOB_RULES = """\
## CronJobFailed
SUSPENDED => set spec.suspend: false
TOO_MANY_ACTIVE => earlier Jobs not finishing; check concurrencyPolicy/activeDeadlineSeconds
SCHEDULE_STALE => check the schedule syntax and kube-controller-manager health
Edit location: CronJob.spec
"""

_DEPLOYMENT_RULES = """\
## WorkloadUnavailable
Replicas below desired => diagnose the failing pods, not the controller
Check rollout status and the newest ReplicaSet's pod errors
"""

_ERROR_RULES = """\
## PodError
Failed phase => use the pod's reason/message and the container exit codes
exit: 0=OK, 1=ERR, 137=OOM, 143=SIGTERM
"""

_DEFAULT_RULES = """\
## Default
exit: 0=OK, 1=ERR, 137=OOM, 143=SIGTERM
Forbidden: guessing, claiming a resource shortage without "Insufficient"
"""


def _pvc_error_rules(owner_kind: str) -> str:
    if owner_kind == "StatefulSet":
        return (
            "## PVCError (StatefulSet)\n"
            "edit spec.volumeClaimTemplates (sibling of template; never create a standalone PVC)\n"
            "No StorageClass => set storageClassName\n"
        )
    return "## PVCError\nNo StorageClass => get sc, set storageClassName\nStatic => create a hostPath/local PV\n"


def _probe_rules(kind: FaultKind) -> str:
    probe = "Liveness" if kind is FaultKind.LIVENESS_PROBE_FAILED else "Readiness"
    return (
        f"## {probe}ProbeFailed\n"
        "wrong path/port => check the endpoint\n"
        "timeout => raise timeoutSeconds\n"
        "slow start => add a startupProbe\n"
    )


def _combined_text(fault: FaultRecord) -> str:
    category = fault.context.get(ContextKey.ISSUE_CATEGORY) or ""
    parts = [fault.description, fault.summary, " ".join(fault.symptoms), str(category)]
    return " ".join(parts).lower()


def rule_block(fault: FaultRecord) -> str:
    """Return the ``<diagnostic_rules>`` block for *fault*'s kind."""
    owner_kind = str(fault.context.get(ContextKey.OWNER_KIND) or "Pod")
    match fault.kind:
        case FaultKind.PENDING:
            body = _pending_rules(_combined_text(fault), owner_kind)
        case FaultKind.CRASH_LOOP_BACK_OFF:
            body = _CRASH_LOOP_RULES
        case FaultKind.IMAGE_PULL_BACK_OFF:
            body = _IMAGE_PULL_RULES
        case FaultKind.OOM_KILLED:
            body = _OOM_RULES
        case FaultKind.CREATE_CONTAINER_CONFIG_ERROR | FaultKind.CONFIG_ERROR:
            body = _CREATE_CONFIG_RULES
        case FaultKind.CREATE_CONTAINER_ERROR:
            body = _CREATE_CONTAINER_RULES
        case FaultKind.LIVENESS_PROBE_FAILED | FaultKind.READINESS_PROBE_FAILED:
            body = _probe_rules(fault.kind)
        case FaultKind.STARTUP_PROBE_FAILED:
            body = _STARTUP_RULES
        case FaultKind.PVC_ERROR:
            body = _pvc_error_rules(owner_kind)
        case FaultKind.NETWORK_ERROR:
            body = _NETWORK_RULES
        case FaultKind.VOLUME_MOUNT_ERROR:
            body = _VOLUME_MOUNT_RULES
        case FaultKind.NODE_NOT_READY:
            body = _NODE_NOT_READY_RULES
        case FaultKind.NODE_PRESSURE:
            body = _NODE_PRESSURE_RULES
        case FaultKind.RESOURCE_QUOTA_EXCEEDED:
            body = _QUOTA_RULES
        case FaultKind.INSUFFICIENT_RESOURCES:
            body = _INSUFFICIENT_RULES
        case FaultKind.TERMINATING_STUCK:
            body = _TERMINATING_RULES
        case FaultKind.EVICTED:
            body = _EVICTED_RULES
        case FaultKind.JOB_FAILED:
            body = _JOB_RULES
        case FaultKind.CRONJOB_FAILED:
            body = _CRONJOB_RULES
        case FaultKind.DEPLOYMENT_UNAVAILABLE:
            body = _DEPLOYMENT_RULES
        case FaultKind.ERROR:
            body = _ERROR_RULES
        case FaultKind.UNKNOWN:
            body = _DEFAULT_RULES
        case _:
            body = _DEFAULT_RULES
    return f"<diagnostic_rules>\n{body}</diagnostic_rules>\n\n"


def system_prompt(fault: FaultRecord) -> str:
    """Assemble the full system prompt for *fault*."""
    return (
        SYSTEM_HEADER
        + rule_block(fault)
        + SOLUTION_REQUIREMENTS
        + PLACEHOLDERS_TEMPLATE.format(resource_file=resource_file_name(fault.owner_kind))
        + OUTPUT_FORMAT
    )
