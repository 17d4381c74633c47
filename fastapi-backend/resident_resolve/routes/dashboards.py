"""Read-only views: facility ratings, administrator summary and worker task boards."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..config import get_settings
from ..constants import ComplaintCategory, Role
from ..dependencies import current_administrator, current_worker
from ..ratings import FacilityStats, facility_stats, search_facilities
from ..routing import rank_workers, route_tasks, summarize
from ..schemas import AdministratorProfile, DashboardSummary, TaskBoard, WorkerProfile, to_profile
from ..store import COMPLAINTS, USERS, RecordStore, get_store

router = APIRouter(prefix="/api/v1")


@router.get("/facilities", response_model=List[FacilityStats])
async def list_facilities(
    search: Optional[str] = Query(None),
    store: RecordStore = Depends(get_store),
):
    """Public facility browser, best rated first."""
    stats = facility_stats(await store.get_all(COMPLAINTS), get_settings().known_facilities)
    return search_facilities(stats, search)


@router.get("/dashboard/summary", response_model=DashboardSummary)
async def dashboard_summary(
    _: AdministratorProfile = Depends(current_administrator),
    store: RecordStore = Depends(get_store),
):
    return summarize(await store.get_all(COMPLAINTS))


@router.get("/workers", response_model=List[WorkerProfile])
async def list_workers(
    category: Optional[ComplaintCategory] = Query(None),
    _: AdministratorProfile = Depends(current_administrator),
    store: RecordStore = Depends(get_store),
):
    """Workers to pick from when assigning; specialists for ``category`` come first."""
    workers = await store.get_all(USERS, role=Role.WORKER.value)
    ranked = rank_workers(workers, category.value if category else None)
    return [to_profile(w) for w in ranked]


@router.get("/tasks", response_model=TaskBoard)
async def task_board(
    specialty: Optional[ComplaintCategory] = Query(None),
    worker: WorkerProfile = Depends(current_worker),
    store: RecordStore = Depends(get_store),
):
    """The worker's current workspace and the requests they can claim."""
    focus = specialty or worker.profession
    if focus is None:
        raise HTTPException(status_code=400, detail="Choose a specialty for this session")
    assigned, claimable = route_tasks(await store.get_all(COMPLAINTS), worker.uid, focus.value)
    return TaskBoard(specialty=focus, assigned=assigned, claimable=claimable)
