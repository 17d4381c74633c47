"""
Complaint lifecycle rules.

    Submitted -> Assigned -> In Progress -> Resolved -> Closed
                                              |
                                              +-> (reopen) Submitted

Each operation checks the source state and the caller's identity, then
mutates the complaint in place and returns it. Nothing here touches the
store; callers persist the result.
"""
from typing import Dict, FrozenSet, Optional

from .constants import (
    ASSIGNED_STATUSES,
    ComplaintStatus,
    REOPEN_DEFAULT_FEEDBACK,
)
from .errors import InvalidTransition, PermissionDenied
from .models import Complaint, utcnow
from .schemas import ComplaintDraft, ResidentProfile, WorkerProfile

SUBMITTED = ComplaintStatus.SUBMITTED.value
ASSIGNED = ComplaintStatus.ASSIGNED.value
IN_PROGRESS = ComplaintStatus.IN_PROGRESS.value
RESOLVED = ComplaintStatus.RESOLVED.value
CLOSED = ComplaintStatus.CLOSED.value

# operation -> statuses it may be applied from
ALLOWED_SOURCES: Dict[str, FrozenSet[str]] = {
    "assign": frozenset({SUBMITTED}),
    "revoke": frozenset({ASSIGNED}),
    "start": frozenset({SUBMITTED, ASSIGNED}),
    "resolve": frozenset({IN_PROGRESS}),
    "close": frozenset({RESOLVED}),
    "reopen": frozenset({RESOLVED}),
}


def assignee_consistent(complaint: Complaint) -> bool:
    """True when the assignee is set exactly for the assigned statuses."""
    return bool(complaint.assigned_worker_id) == (complaint.status in ASSIGNED_STATUSES)


def _require(operation: str, complaint: Complaint) -> None:
    allowed = ALLOWED_SOURCES[operation]
    if complaint.status not in allowed:
        raise InvalidTransition(operation, complaint.status, set(allowed))


def _move(complaint: Complaint, new_status: str) -> Complaint:
    complaint.status = new_status
    complaint.updated_at = utcnow()
    return complaint


def _require_owner(complaint: Complaint, resident: ResidentProfile) -> None:
    if complaint.student_id != resident.uid:
        raise PermissionDenied("Only the resident who raised this complaint can do that")


def create(resident: ResidentProfile, draft: ComplaintDraft, priority: Optional[str] = None) -> Complaint:
    """Build a new Submitted complaint carrying the resident's identity."""
    now = utcnow()
    return Complaint(
        title=draft.title,
        description=draft.description,
        category=draft.category.value,
        priority=priority or draft.priority.value,
        status=SUBMITTED,
        student_id=resident.uid,
        student_name=resident.name,
        room_number=resident.room_number,
        facility_name=resident.facility_name,
        created_at=now,
        updated_at=now,
    )


def assign(complaint: Complaint, worker: WorkerProfile) -> Complaint:
    _require("assign", complaint)
    complaint.assigned_worker_id = worker.uid
    complaint.assigned_worker_name = worker.name
    return _move(complaint, ASSIGNED)


def revoke(complaint: Complaint) -> Complaint:
    """Take an assigned complaint back; it returns to the unassigned pool."""
    _require("revoke", complaint)
    complaint.assigned_worker_id = None
    complaint.assigned_worker_name = None
    return _move(complaint, SUBMITTED)


def start(complaint: Complaint, worker: WorkerProfile) -> Complaint:
    """Accept an assigned complaint, or claim an unassigned one, and begin work."""
    _require("start", complaint)
    if complaint.status == SUBMITTED:
        if complaint.assigned_worker_id and complaint.assigned_worker_id != worker.uid:
            raise PermissionDenied("Complaint is already claimed by another worker")
        complaint.assigned_worker_id = worker.uid
        complaint.assigned_worker_name = worker.name
    elif complaint.assigned_worker_id != worker.uid:
        raise PermissionDenied("Complaint is assigned to another worker")
    return _move(complaint, IN_PROGRESS)


def resolve(complaint: Complaint, worker: WorkerProfile, remarks: Optional[str] = None) -> Complaint:
    _require("resolve", complaint)
    if complaint.assigned_worker_id != worker.uid:
        raise PermissionDenied("Complaint is assigned to another worker")
    if remarks:
        complaint.remarks = remarks
    return _move(complaint, RESOLVED)


def close(complaint: Complaint, resident: ResidentProfile, feedback: str) -> Complaint:
    """Accept the fix. Closing twice is rejected, not ignored."""
    _require("close", complaint)
    _require_owner(complaint, resident)
    complaint.feedback = feedback
    return _move(complaint, CLOSED)


def reopen(complaint: Complaint, resident: ResidentProfile, feedback: Optional[str] = None) -> Complaint:
    """Reject the fix: back to Submitted and unassigned, with the resident's feedback."""
    _require("reopen", complaint)
    _require_owner(complaint, resident)
    complaint.feedback = feedback or REOPEN_DEFAULT_FEEDBACK
    complaint.remarks = None
    complaint.assigned_worker_id = None
    complaint.assigned_worker_name = None
    return _move(complaint, SUBMITTED)


__all__ = [
    "ALLOWED_SOURCES",
    "assignee_consistent",
    "create",
    "assign",
    "revoke",
    "start",
    "resolve",
    "close",
    "reopen",
]
