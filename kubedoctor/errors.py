"""Exception hierarchy for kubedoctor.

None of these are fatal to a scan. Each is raised close to its source and
absorbed by the component that owns the recovery.
"""

from __future__ import annotations


class KubeDoctorError(Exception):
    """Base class for all kubedoctor errors."""


class SnapshotError(KubeDoctorError):
    """A resource snapshot is malformed or of an unsupported shape.

    Raised inside the detector and turned into an UNKNOWN fault.
    """


class CollaboratorFetchError(KubeDoctorError):
    """Log or event retrieval from the cluster collaborator failed."""


class CompletionError(KubeDoctorError):
    """The completion backend call failed.

    Covers transport errors, timeouts, non-2xx responses and bodies
    without a usable ``choices[0].message.content``.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
