"""File-backed inputs for offline diagnosis.

Reads a Kubernetes List dump (``kubectl get pods,deploy,events -A -o json``)
and an optional directory of ``<namespace>/<name>.log`` files.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from pathlib import Path

from kubedoctor.detector.base import parse_time
from kubedoctor.errors import CollaboratorFetchError, SnapshotError
from kubedoctor.models.faults import FaultRecord
from kubedoctor.models.resources import EventInfo, ResourceSnapshot

EventIndex = dict[tuple[str | None, str, str], list[EventInfo]]


def _event_info(item: Mapping[str, object]) -> EventInfo:
    def ts(key: str):
        try:
            return parse_time(item.get(key))
        except SnapshotError:
            return None

    count = item.get("count")
    return EventInfo(
        type=str(item.get("type") or "Normal"),
        reason=str(item.get("reason") or ""),
        message=str(item.get("message") or ""),
        count=count if isinstance(count, int) and count > 0 else 1,
        first_timestamp=ts("firstTimestamp"),
        last_timestamp=ts("lastTimestamp"),
    )


def load_dump(path: Path) -> tuple[list[ResourceSnapshot], EventIndex]:
    """Split a JSON dump into resource snapshots and per-resource events.

    Raises:
        ValueError: if the file is not JSON or holds no object list.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, Mapping):
        items = data.get("items") if "items" in data else [data]
    else:
        items = data
    if not isinstance(items, list):
        raise ValueError(f"{path}: expected a Kubernetes List or a JSON array of objects")

    snapshots: list[ResourceSnapshot] = []
    events: EventIndex = {}
    for item in items:
        if not isinstance(item, Mapping):
            continue
        kind = str(item.get("kind") or "")
        if kind == "Event":
            target = item.get("involvedObject")
            if not isinstance(target, Mapping):
                continue
            key = (target.get("namespace") or None, str(target.get("kind") or ""), str(target.get("name") or ""))
            events.setdefault(key, []).append(_event_info(item))  # type: ignore[arg-type]
        else:
            snapshots.append(ResourceSnapshot(kind=kind, raw=item))
    return snapshots, events


class FileContextSource:
    """Serves events from a dump and logs from ``<logs_dir>/<namespace>/<name>.log``.

    A missing log file means no logs. Unreadable files raise
    :class:`CollaboratorFetchError`.
    """

    def __init__(self, events: EventIndex | None = None, logs_dir: Path | None = None) -> None:
        self._events = events or {}
        self._logs_dir = logs_dir

    async def fetch_logs(self, fault: FaultRecord) -> str:
        if self._logs_dir is None:
            return ""
        path = self._logs_dir / (fault.namespace or "_cluster") / f"{fault.resource_name}.log"
        if not path.is_file():
            return ""
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8", errors="replace")
        except OSError as exc:
            raise CollaboratorFetchError(f"Cannot read {path}: {exc}") from exc

    async def fetch_events(self, fault: FaultRecord) -> list[EventInfo]:
        return list(self._events.get((fault.namespace, fault.resource_kind, fault.resource_name), []))
