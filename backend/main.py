"""
FastAPI Backend for the Field Activity Approvals dashboard
Main application with REST API endpoints
"""

import asyncio

from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from typing import List, Optional
from contextlib import asynccontextmanager

from loguru import logger

from config import ACTIVITY_TYPES, API_HOST, API_PORT, MOCK_SEED
from database import (
    init_db, get_db, SessionLocal, load_activities, get_activity,
    replace_activities, save_activities,
)
from models import (
    ActivityRecord, ApprovalsView, ApproveRequest, BulkApproveRequest,
    BulkApproveResult, EnvCheck, GroupMode, RealDataResponse,
)
from data_processor import ApprovalsProcessor
from filters import ActivityFilters, FilterError
from mock_data import generate_mock_activities
from real_data import RealDataLoader, get_real_data_client
from selection import ApprovalError, SelectionState, approve_activity, bulk_approve


APP_NAME = "Field Activity Approvals API"
APP_VERSION = "1.0.0"
REAL_DATA_POLL_SECONDS = 0.05

# Global instances
processor = ApprovalsProcessor()


def _mock_seed() -> Optional[int]:
    return int(MOCK_SEED) if MOCK_SEED else None


def seed_mock_activities(db: Session, force: bool = False) -> int:
    """Fill the working set with mock activities if it is empty (or always when forced)"""
    if not force and load_activities(db):
        return 0
    activities = generate_mock_activities(seed=_mock_seed())
    return replace_activities(db, activities)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info(f"Starting {APP_NAME}...")
    init_db()

    db = SessionLocal()
    try:
        seeded = seed_mock_activities(db)
        if seeded:
            logger.info(f"Seeded {seeded} mock activities")
    finally:
        db.close()

    yield

    logger.info("Shutting down...")


# Create FastAPI app
app = FastAPI(
    title=APP_NAME,
    description="Backend API for reviewing and approving field-worker activities",
    version=APP_VERSION,
    lifespan=lifespan
)

# Enable CORS for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters(q: str, status: str, day: Optional[str]) -> ActivityFilters:
    try:
        return ActivityFilters(query=q, status=status, day=day or None).validate()
    except FilterError as e:
        raise HTTPException(status_code=422, detail=str(e))


# ==================== API ENDPOINTS ====================

@app.get("/")
def root():
    """Root endpoint - API status"""
    return {
        "status": "running",
        "name": APP_NAME,
        "version": APP_VERSION,
        "real_data_configured": get_real_data_client().is_configured(),
    }


@app.get("/api/activity-types", response_model=List[str])
def get_activity_types():
    """Activity types offered when approving"""
    return ACTIVITY_TYPES


@app.get("/api/activities", response_model=List[ActivityRecord])
def get_activities(
    q: str = "",
    status: str = "ALL",
    day: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Get the filtered activity list, ungrouped and in load order.
    """
    filters = _filters(q, status, day)
    return processor.filter_activities(load_activities(db), filters)


@app.get("/api/activities/{activity_id}", response_model=ActivityRecord)
def get_activity_details(activity_id: str, db: Session = Depends(get_db)):
    """Get a single activity for the details drawer"""
    activity = get_activity(db, activity_id)
    if activity is None:
        raise HTTPException(status_code=404, detail="Activity not found")
    return activity


@app.get("/api/approvals", response_model=ApprovalsView)
def get_approvals(
    group_by: GroupMode = GroupMode.DAY,
    q: str = "",
    status: str = "ALL",
    day: Optional[str] = None,
    selected: List[str] = Query(default=[]),
    collapsed: List[str] = Query(default=[]),
    db: Session = Depends(get_db)
):
    """
    Get the grouped approvals view.
    Groups and their items are already in display order; selected ids that
    the filters hide are dropped from the returned selection.
    """
    filters = _filters(q, status, day)
    return processor.build_view(
        load_activities(db),
        filters,
        mode=group_by,
        selection=SelectionState.of(selected),
        collapsed=collapsed,
    )


@app.post("/api/activities/{activity_id}/approve", response_model=ActivityRecord)
def approve_single_activity(
    activity_id: str,
    request: ApproveRequest,
    db: Session = Depends(get_db)
):
    """Approve one activity with the chosen activity type and an optional note"""
    activity = get_activity(db, activity_id)
    if activity is None:
        raise HTTPException(status_code=404, detail="Activity not found")

    try:
        approved = approve_activity(
            activity,
            request.activity_type,
            manager_note=request.manager_note,
            approve_partial=request.approve_partial,
        )
    except ApprovalError as e:
        raise HTTPException(status_code=400, detail=str(e))

    save_activities(db, [approved])
    logger.info(f"Approved {activity_id} as {approved.activity_type}")
    return approved


@app.post("/api/activities/bulk-approve", response_model=BulkApproveResult)
def bulk_approve_activities(request: BulkApproveRequest, db: Session = Depends(get_db)):
    """
    Approve all selected activities at once.
    Selected ids outside the current filters are dropped before approving.
    """
    activity_type = request.activity_type.strip()
    if not activity_type:
        raise HTTPException(status_code=400, detail="Select an activity type before approving")

    filters = _filters(request.q, request.status, request.day)
    activities = load_activities(db)
    _, selection = processor.visible_selection(activities, filters, SelectionState.of(request.ids))

    outcome = bulk_approve(activities, selection, activity_type)
    approved_ids = set(outcome.approved_ids)
    changed = [a for a in outcome.activities if a.id in approved_ids]
    save_activities(db, changed)

    logger.info(f"Bulk approved {len(outcome.approved_ids)} activities as {activity_type}")
    return BulkApproveResult(
        updated=len(outcome.approved_ids),
        ids=outcome.approved_ids,
        activity_type=activity_type,
        selected=outcome.selection.as_list(),
    )


@app.post("/api/mock/reset")
def reset_mock_activities(db: Session = Depends(get_db)):
    """Replace the working set with freshly generated mock activities"""
    count = seed_mock_activities(db, force=True)
    return {"message": "Mock activities regenerated", "count": count}


@app.get("/api/real-data", response_model=RealDataResponse)
async def get_real_data(request: Request):
    """
    Load worker/plot segments from the remote data source.
    Failures are reported in the response body, not retried.
    If the caller goes away mid-load, the load is cancelled and its
    late response discarded.
    """
    loader = RealDataLoader(get_real_data_client())
    loader.start()
    while loader.load_thread.is_alive():
        if await request.is_disconnected():
            logger.info("Real data caller disconnected, cancelling load")
            loader.cancel()
            break
        await asyncio.sleep(REAL_DATA_POLL_SECONDS)
    return loader.to_response()


@app.get("/api/check-env", response_model=EnvCheck)
def check_env():
    """Report which remote data settings are present"""
    return get_real_data_client().env_check()


# ==================== MAIN ====================

if __name__ == "__main__":
    import uvicorn

    logger.info(f"{APP_NAME} - Backend Server")

    uvicorn.run(
        "main:app",
        host=API_HOST,
        port=API_PORT,
        reload=True
    )
