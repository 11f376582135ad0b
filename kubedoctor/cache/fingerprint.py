"""Cache fingerprints for recurring failure patterns.

A fingerprint deliberately omits the resource name and namespace so the
same failure on different pods shares one cached diagnosis.
"""

from __future__ import annotations

from kubedoctor.models.faults import ContextKey, FaultRecord

# Checked strictly in this order; the first hit wins.
_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("PVC", ("pvc", "volume", "storagec")),
    ("CPU", ("cpu",)),
    ("MEMORY", ("memory",)),
    ("RESOURCE", ("insufficient", "resource")),
    ("TAINT", ("taint", "toleration")),
    ("NODE", ("node", "affinity", "selector")),
)


def derive_issue_category(description: str) -> str:
    """Classify a fault description by keyword, or return ``""``."""
    lowered = description.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(k in lowered for k in keywords):
            return category
    return ""


def fingerprint(fault: FaultRecord) -> str:
    """Return ``code:resourceKind:ownerKind:issueCategory`` for *fault*."""
    owner_kind = fault.context.get(ContextKey.OWNER_KIND)
    category = fault.context.get(ContextKey.ISSUE_CATEGORY)
    if category is None:
        category = derive_issue_category(fault.description)
    return ":".join(
        (
            fault.kind.code,
            fault.resource_kind,
            "" if owner_kind is None else str(owner_kind),
            str(category),
        )
    )
