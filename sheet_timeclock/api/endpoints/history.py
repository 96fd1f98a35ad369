import logging
from typing import Optional

from fastapi import APIRouter, Depends

from sheet_timeclock.api.responses import envelope
from sheet_timeclock.core.database import RecordStore, get_store
from sheet_timeclock.core.security import require_authenticated
from sheet_timeclock.models.common import Employee
from sheet_timeclock.models.payroll import SessionSubmit
from sheet_timeclock.services import history_service

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/api/history")
async def get_history(
    email: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    store: RecordStore = Depends(get_store),
    employee: Employee = Depends(require_authenticated),
):
    """Session history, newest first"""
    records = history_service.list_history(store, employee, email=email, start_date=start_date, end_date=end_date)
    return envelope(data=records)

@router.post("/api/history")
async def record_session(
    submission: SessionSubmit,
    store: RecordStore = Depends(get_store),
    employee: Employee = Depends(require_authenticated),
):
    """Record a session timed by the client"""
    record = history_service.record_submitted_session(store, employee, submission)
    return envelope(data=record)

@router.get("/api/history/summary")
async def get_history_summary(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    email: Optional[str] = None,
    store: RecordStore = Depends(get_store),
    employee: Employee = Depends(require_authenticated),
):
    summary = history_service.history_summary(store, employee, start_date=start_date, end_date=end_date, email=email)
    return envelope(data=summary)
