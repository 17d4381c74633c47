"""Complaint routes: submission, listing and every lifecycle transition."""

from datetime import datetime, timezone
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query, status as http_status

from .. import auth, lifecycle
from ..classifier import PriorityClassifier
from ..constants import (
    CONNECTIVITY_COMPLAINT_TITLE,
    ComplaintCategory,
    ComplaintStatus,
    Priority,
    Role,
)
from ..dependencies import current_administrator, current_resident, current_worker, get_classifier
from ..errors import PermissionDenied, ResidentResolveError
from ..models import Complaint, User
from ..observability import complaint_transitions_total, complaints_created_total
from ..routing import filter_complaints, has_open_complaint
from ..schemas import (
    AdministratorProfile,
    AssignmentRecord,
    AssignRequest,
    CloseRequest,
    ComplaintDraft,
    ReopenRequest,
    ResidentProfile,
    ResolveRequest,
    WorkerProfile,
    to_profile,
)
from ..store import COMPLAINTS, USERS, RecordStore, get_store
from ..websocket_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")


async def _publish_created(complaint: Complaint, source: str) -> None:
    complaints_created_total.labels(category=complaint.category, source=source).inc()
    try:
        await manager.broadcast_new_complaint(
            complaint_id=complaint.id,
            facility_name=complaint.facility_name,
            category=complaint.category,
            priority=complaint.priority,
        )
    except Exception as e:
        logger.error(f"Failed to broadcast new complaint event: {e}")


async def _publish_transition(
    complaint: Complaint,
    operation: str,
    old_status: str,
    actor_id: str,
    actor_name: str,
    old_assignee: Optional[str],
) -> None:
    complaint_transitions_total.labels(operation=operation, status=complaint.status).inc()
    logger.info(f"Complaint {complaint.id}: {operation} {old_status} -> {complaint.status} by {actor_id}")
    try:
        if old_status != complaint.status:
            await manager.broadcast_status_update(
                complaint_id=complaint.id,
                old_status=old_status,
                new_status=complaint.status,
                updated_by=actor_name,
            )
        if old_assignee != complaint.assigned_worker_id:
            await manager.broadcast_assignment(
                complaint_id=complaint.id,
                assigned_to=complaint.assigned_worker_id,
                assigned_by=actor_id,
            )
    except Exception as e:
        logger.error(f"Failed to broadcast update events: {e}")


async def _save(store: RecordStore, complaint: Complaint, old_assignee: Optional[str], actor_id: str) -> Complaint:
    # Assignment changes are audited alongside the complaint write
    if old_assignee != complaint.assigned_worker_id:
        return await store.record_assignment(complaint, assigned_by=actor_id)
    return await store.upsert(COMPLAINTS, complaint)


@router.post("/complaints", response_model=Complaint, status_code=http_status.HTTP_201_CREATED)
async def submit_complaint(
    draft: ComplaintDraft,
    resident: ResidentProfile = Depends(current_resident),
    store: RecordStore = Depends(get_store),
    oracle: PriorityClassifier = Depends(get_classifier),
):
    """Raise a complaint. The model's priority wins over the manual one when it answers."""
    priority = draft.priority.value
    if draft.auto_classify:
        priority = await oracle.classify(draft.description, fallback=priority)

    complaint = await store.upsert(COMPLAINTS, lifecycle.create(resident, draft, priority))
    await _publish_created(complaint, source="resident")
    return complaint


@router.get("/complaints/mine", response_model=List[Complaint])
async def list_my_complaints(
    resident: ResidentProfile = Depends(current_resident),
    store: RecordStore = Depends(get_store),
):
    return filter_complaints(await store.get_all(COMPLAINTS, student_id=resident.uid))


@router.get("/complaints", response_model=List[Complaint])
async def list_complaints(
    status: Optional[ComplaintStatus] = Query(None),
    category: Optional[ComplaintCategory] = Query(None),
    _: AdministratorProfile = Depends(current_administrator),
    store: RecordStore = Depends(get_store),
):
    return filter_complaints(
        await store.get_all(COMPLAINTS),
        status=status.value if status else None,
        category=category.value if category else None,
    )


@router.get("/complaints/{complaint_id}", response_model=Complaint)
async def get_complaint(
    complaint_id: str,
    user: User = Depends(auth.get_current_user),
    store: RecordStore = Depends(get_store),
):
    complaint = await store.get(COMPLAINTS, complaint_id)
    if user.role == Role.RESIDENT.value and complaint.student_id != user.uid:
        raise PermissionDenied("Residents can only view their own complaints")
    return complaint


@router.patch("/complaints/{complaint_id}/assign", response_model=Complaint)
async def assign_complaint(
    complaint_id: str,
    body: AssignRequest,
    admin: AdministratorProfile = Depends(current_administrator),
    store: RecordStore = Depends(get_store),
):
    """Assign a worker, or revoke the assignment when no worker id is given."""
    complaint = await store.get(COMPLAINTS, complaint_id)
    old_status, old_assignee = complaint.status, complaint.assigned_worker_id

    if body.worker_id:
        target = await store.get(USERS, body.worker_id)
        worker = to_profile(target)
        if not isinstance(worker, WorkerProfile):
            raise ResidentResolveError(f"User {target.uid} is not a worker")
        lifecycle.assign(complaint, worker)
        operation = "assign"
    else:
        lifecycle.revoke(complaint)
        operation = "revoke"

    complaint = await _save(store, complaint, old_assignee, admin.uid)
    await _publish_transition(complaint, operation, old_status, admin.uid, admin.name, old_assignee)
    return complaint


@router.get("/complaints/{complaint_id}/assignments", response_model=List[AssignmentRecord])
async def list_assignments(
    complaint_id: str,
    _: AdministratorProfile = Depends(current_administrator),
    store: RecordStore = Depends(get_store),
):
    """Assignment history for a complaint, newest first."""
    await store.get(COMPLAINTS, complaint_id)
    rows = await store.list_assignments(complaint_id)
    return [AssignmentRecord(**row.model_dump()) for row in rows]


@router.post("/complaints/{complaint_id}/start", response_model=Complaint)
async def start_work(
    complaint_id: str,
    worker: WorkerProfile = Depends(current_worker),
    store: RecordStore = Depends(get_store),
):
    """Accept an assigned complaint, or claim an unassigned one."""
    complaint = await store.get(COMPLAINTS, complaint_id)
    old_status, old_assignee = complaint.status, complaint.assigned_worker_id
    lifecycle.start(complaint, worker)
    complaint = await _save(store, complaint, old_assignee, worker.uid)
    operation = "start" if old_assignee else "claim"
    await _publish_transition(complaint, operation, old_status, worker.uid, worker.name, old_assignee)
    return complaint


@router.post("/complaints/{complaint_id}/resolve", response_model=Complaint)
async def resolve_complaint(
    complaint_id: str,
    body: ResolveRequest,
    worker: WorkerProfile = Depends(current_worker),
    store: RecordStore = Depends(get_store),
):
    complaint = await store.get(COMPLAINTS, complaint_id)
    old_status, old_assignee = complaint.status, complaint.assigned_worker_id
    lifecycle.resolve(complaint, worker, body.remarks)
    complaint = await _save(store, complaint, old_assignee, worker.uid)
    await _publish_transition(complaint, "resolve", old_status, worker.uid, worker.name, old_assignee)
    return complaint


@router.post("/complaints/{complaint_id}/close", response_model=Complaint)
async def close_complaint(
    complaint_id: str,
    body: CloseRequest,
    resident: ResidentProfile = Depends(current_resident),
    store: RecordStore = Depends(get_store),
):
    complaint = await store.get(COMPLAINTS, complaint_id)
    old_status, old_assignee = complaint.status, complaint.assigned_worker_id
    lifecycle.close(complaint, resident, body.feedback)
    complaint = await _save(store, complaint, old_assignee, resident.uid)
    await _publish_transition(complaint, "close", old_status, resident.uid, resident.name, old_assignee)
    return complaint


@router.post("/complaints/{complaint_id}/reopen", response_model=Complaint)
async def reopen_complaint(
    complaint_id: str,
    body: ReopenRequest,
    resident: ResidentProfile = Depends(current_resident),
    store: RecordStore = Depends(get_store),
):
    """Send a resolved complaint back to the unassigned pool."""
    complaint = await store.get(COMPLAINTS, complaint_id)
    old_status, old_assignee = complaint.status, complaint.assigned_worker_id
    lifecycle.reopen(complaint, resident, body.feedback)
    complaint = await _save(store, complaint, old_assignee, resident.uid)
    await _publish_transition(complaint, "reopen", old_status, resident.uid, resident.name, old_assignee)
    return complaint


@router.post("/connectivity/offline")
async def report_connectivity_loss(
    resident: ResidentProfile = Depends(current_resident),
    store: RecordStore = Depends(get_store),
):
    """File an Internet complaint for a resident whose client went offline.

    Nothing is filed while the resident already has an open Internet complaint.
    """
    internet = ComplaintCategory.INTERNET.value
    mine = await store.get_all(COMPLAINTS, student_id=resident.uid)
    if has_open_complaint(mine, resident.uid, internet):
        return {"created": False, "complaint_id": None}

    detected_at = datetime.now(timezone.utc).strftime("%H:%M:%S UTC")
    draft = ComplaintDraft(
        title=CONNECTIVITY_COMPLAINT_TITLE,
        description=(
            "Automatic report: the ResidentResolve system detected a loss of internet "
            f"connectivity at {detected_at}. The resident is currently offline."
        ),
        category=ComplaintCategory.INTERNET,
        priority=Priority.HIGH,
        auto_classify=False,
    )
    complaint = await store.upsert(COMPLAINTS, lifecycle.create(resident, draft))
    await _publish_created(complaint, source="connectivity")
    return {"created": True, "complaint_id": complaint.id}
