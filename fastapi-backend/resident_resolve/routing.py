"""
Work routing for the worker and administrator dashboards.

Workers see the complaints of the specialty they declared for the session:
the ones assigned to them and the unassigned Submitted ones they can claim.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from .constants import (
    CATEGORIES,
    ComplaintStatus,
    OPEN_STATUSES,
    PRIORITY_WEIGHT,
    Priority,
    RESOLVED_STATUSES,
)
from .models import Complaint, User
from .schemas import CategoryCount, DashboardSummary

_EPOCH = datetime.min


def _created_key(complaint: Complaint) -> datetime:
    created = complaint.created_at
    if created is None:
        return _EPOCH
    # SQLite hands back naive datetimes; compare everything as naive UTC
    if created.tzinfo is not None:
        created = created.astimezone(timezone.utc).replace(tzinfo=None)
    return created


def _rank(complaint: Complaint) -> Tuple[int, int]:
    return (
        0 if complaint.status == ComplaintStatus.IN_PROGRESS.value else 1,
        -PRIORITY_WEIGHT.get(complaint.priority, 0),
    )


def order_tasks(complaints: Iterable[Complaint]) -> List[Complaint]:
    """In Progress first, then heavier priority, then newest."""
    # Two stable passes: newest first, then the rank
    by_newest = sorted(complaints, key=_created_key, reverse=True)
    return sorted(by_newest, key=_rank)


def is_claimable(complaint: Complaint) -> bool:
    return complaint.status == ComplaintStatus.SUBMITTED.value and not complaint.assigned_worker_id


def route_tasks(
    complaints: Iterable[Complaint], worker_id: str, specialty: str
) -> Tuple[List[Complaint], List[Complaint]]:
    """Split a worker's view into (assigned to me, claimable), each ordered."""
    assigned: List[Complaint] = []
    claimable: List[Complaint] = []
    for complaint in complaints:
        if complaint.category != specialty:
            continue
        if complaint.assigned_worker_id == worker_id:
            assigned.append(complaint)
        elif is_claimable(complaint):
            claimable.append(complaint)
    return order_tasks(assigned), order_tasks(claimable)


def rank_workers(workers: Sequence[User], category: Optional[str]) -> List[User]:
    """Specialists in ``category`` first; otherwise keep the given order."""
    if not category:
        return list(workers)
    return sorted(workers, key=lambda w: 0 if w.profession == category else 1)


def filter_complaints(
    complaints: Iterable[Complaint],
    status: Optional[str] = None,
    category: Optional[str] = None,
) -> List[Complaint]:
    """Administrator list: optional status/category filters, newest first."""
    selected = [
        c
        for c in complaints
        if (status is None or c.status == status) and (category is None or c.category == category)
    ]
    return sorted(selected, key=_created_key, reverse=True)


def summarize(complaints: Sequence[Complaint]) -> DashboardSummary:
    submitted = ComplaintStatus.SUBMITTED.value
    assigned = ComplaintStatus.ASSIGNED.value
    return DashboardSummary(
        total=len(complaints),
        unassigned=sum(1 for c in complaints if c.status == submitted),
        pending=sum(1 for c in complaints if c.status in (submitted, assigned)),
        in_progress=sum(1 for c in complaints if c.status == ComplaintStatus.IN_PROGRESS.value),
        resolved=sum(1 for c in complaints if c.status in RESOLVED_STATUSES),
        urgent=sum(
            1
            for c in complaints
            if c.priority == Priority.HIGH.value and c.status in (submitted, assigned)
        ),
        by_category=[
            CategoryCount(name=name, count=sum(1 for c in complaints if c.category == name))
            for name in CATEGORIES
        ],
    )


def has_open_complaint(complaints: Iterable[Complaint], student_id: str, category: str) -> bool:
    return any(
        c.student_id == student_id and c.category == category and c.status in OPEN_STATUSES
        for c in complaints
    )


__all__ = [
    "order_tasks",
    "route_tasks",
    "rank_workers",
    "filter_complaints",
    "summarize",
    "has_open_complaint",
]
