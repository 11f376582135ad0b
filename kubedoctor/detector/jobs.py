"""Job and CronJob faults."""

from __future__ import annotations

from datetime import datetime, timedelta

from kubedoctor.detector.base import (
    Detector,
    as_int,
    as_list,
    dig,
    find_condition,
    make_fault,
    parse_time,
)
from kubedoctor.models.faults import ContextKey, FaultKind, FaultRecord, Severity
from kubedoctor.models.resources import ResourceSnapshot

CRONJOB_STALE_AFTER = timedelta(hours=24)
CRONJOB_FIRST_RUN_GRACE = timedelta(hours=1)


def _job_issue_category(reason: str, message: str) -> str:
    reason = reason.lower()
    message = message.lower()
    if "backofflimitexceeded" in reason or "backoff limit" in message:
        return "BACKOFF_LIMIT_EXCEEDED"
    if "deadlineexceeded" in reason or "deadline" in message:
        return "DEADLINE_EXCEEDED"
    if "oom" in message or "memory" in message:
        return "OOM"
    if "image" in message or "pull" in message:
        return "IMAGE_ERROR"
    return "EXECUTION_FAILED"


class JobDetector(Detector):
    """Job that has failed pods or a Failed condition and is not Complete."""

    resource_kinds = ("Job",)

    def detect(self, snapshot: ResourceSnapshot, now: datetime) -> list[FaultRecord]:
        complete = find_condition(snapshot, "Complete")
        if complete is not None and complete.get("status") == "True":
            return []
        failed_cond = find_condition(snapshot, "Failed")
        has_failed = failed_cond is not None and failed_cond.get("status") == "True"
        failed = as_int(dig(snapshot.raw, "status", "failed"))
        succeeded = as_int(dig(snapshot.raw, "status", "succeeded"))
        if not has_failed and failed == 0:
            return []

        reason = str((failed_cond or {}).get("reason") or "") if has_failed else ""
        message = str((failed_cond or {}).get("message") or "") if has_failed else ""
        owners = as_list(dig(snapshot.raw, "metadata", "ownerReferences"), "metadata.ownerReferences")
        owner_kind = str(dig(owners[0], "kind", default="Job")) if owners else "Job"
        owner_name = str(dig(owners[0], "name", default=snapshot.name)) if owners else snapshot.name
        containers = as_list(dig(snapshot.raw, "spec", "template", "spec", "containers"), "containers")
        image = dig(containers[0], "image") if containers else None
        backoff_limit = dig(snapshot.raw, "spec", "backoffLimit")

        summary = f"Job {snapshot.name} failed"
        if reason:
            summary += f" ({reason})"
        summary += f": {failed} failed pods"
        return [
            make_fault(
                FaultKind.JOB_FAILED,
                snapshot,
                now,
                summary=summary,
                description="The Job failed to run to completion. Check the pod logs for the failure cause.",
                symptoms=[
                    f"Failed pods: {failed}",
                    f"Succeeded pods: {succeeded}" if succeeded else "",
                    f"Reason: {reason}" if reason else "",
                    f"Message: {message}" if message else "",
                    f"backoffLimit: {backoff_limit}" if backoff_limit is not None else "",
                ],
                context={
                    ContextKey.OWNER_KIND: owner_kind,
                    ContextKey.OWNER_NAME: owner_name,
                    ContextKey.ISSUE_CATEGORY: _job_issue_category(reason, message),
                    ContextKey.FAILED_COUNT: failed,
                    ContextKey.SUCCEEDED_COUNT: succeeded,
                    ContextKey.IMAGE: image,
                    ContextKey.BACKOFF_LIMIT: backoff_limit,
                    ContextKey.COMPLETIONS: dig(snapshot.raw, "spec", "completions"),
                    ContextKey.PARALLELISM: dig(snapshot.raw, "spec", "parallelism"),
                    ContextKey.ACTIVE_DEADLINE_SECONDS: dig(snapshot.raw, "spec", "activeDeadlineSeconds"),
                    ContextKey.RESTART_POLICY: dig(snapshot.raw, "spec", "template", "spec", "restartPolicy"),
                    ContextKey.FAILURE_REASON: reason,
                    ContextKey.FAILURE_MESSAGE: message,
                },
            )
        ]


class CronJobDetector(Detector):
    """CronJob that is suspended, piling up active runs, or not firing."""

    resource_kinds = ("CronJob",)

    def detect(self, snapshot: ResourceSnapshot, now: datetime) -> list[FaultRecord]:
        spec = snapshot.raw.get("spec") or {}
        schedule = dig(spec, "schedule")
        policy = str(dig(spec, "concurrencyPolicy", default="Allow"))
        active = len(as_list(dig(snapshot.raw, "status", "active"), "status.active"))
        last_schedule = parse_time(dig(snapshot.raw, "status", "lastScheduleTime"))
        last_success = parse_time(dig(snapshot.raw, "status", "lastSuccessfulTime"))
        base: dict[ContextKey, object] = {
            ContextKey.OWNER_KIND: "CronJob",
            ContextKey.OWNER_NAME: snapshot.name,
            ContextKey.SCHEDULE: schedule,
            ContextKey.CONCURRENCY_POLICY: policy,
            ContextKey.ACTIVE_COUNT: active,
            ContextKey.LAST_SCHEDULE_TIME: last_schedule.isoformat() if last_schedule else None,
            ContextKey.LAST_SUCCESSFUL_TIME: last_success.isoformat() if last_success else None,
        }

        if dig(spec, "suspend") is True:
            return [
                self._fault(
                    snapshot,
                    now,
                    base,
                    category="SUSPENDED",
                    severity=Severity.MEDIUM,
                    summary=f"CronJob {snapshot.name} is suspended",
                    description="spec.suspend is true, so no new Jobs are created.",
                )
            ]
        if active > 1 and policy == "Forbid":
            return [
                self._fault(
                    snapshot,
                    now,
                    base,
                    category="TOO_MANY_ACTIVE",
                    severity=Severity.HIGH,
                    summary=f"CronJob {snapshot.name} has {active} active Jobs",
                    description=(
                        f"{active} Jobs are active although concurrencyPolicy is Forbid; "
                        "earlier runs are not finishing."
                    ),
                )
            ]
        if last_schedule is not None:
            if now - last_schedule > CRONJOB_STALE_AFTER:
                hours = int((now - last_schedule).total_seconds() // 3600)
                return [
                    self._fault(
                        snapshot,
                        now,
                        base,
                        category="SCHEDULE_STALE",
                        severity=Severity.MEDIUM,
                        summary=f"CronJob {snapshot.name} has not run for {hours} hours",
                        description=f"The last scheduled run was {hours} hours ago for schedule '{schedule}'.",
                    )
                ]
        else:
            created = parse_time(dig(snapshot.raw, "metadata", "creationTimestamp"))
            if created is not None and now - created > CRONJOB_FIRST_RUN_GRACE:
                return [
                    self._fault(
                        snapshot,
                        now,
                        base,
                        category="SCHEDULE_STALE",
                        severity=Severity.MEDIUM,
                        summary=f"CronJob {snapshot.name} has never been scheduled",
                        description=f"No run has been scheduled since creation for schedule '{schedule}'.",
                    )
                ]
        return []

    def _fault(
        self,
        snapshot: ResourceSnapshot,
        now: datetime,
        base: dict[ContextKey, object],
        *,
        category: str,
        severity: Severity,
        summary: str,
        description: str,
    ) -> FaultRecord:
        return make_fault(
            FaultKind.CRONJOB_FAILED,
            snapshot,
            now,
            summary=summary,
            description=description,
            symptoms=[category],
            context={**base, ContextKey.ISSUE_CATEGORY: category},
            severity=severity,
        )
