import logging

from fastapi import APIRouter, Depends

from sheet_timeclock.api.deps import get_session_engine
from sheet_timeclock.api.responses import envelope
from sheet_timeclock.core.database import RecordStore, get_store
from sheet_timeclock.core.errors import NotFoundError
from sheet_timeclock.core.security import require_authenticated
from sheet_timeclock.models.common import Employee
from sheet_timeclock.models.payroll import SessionStart
from sheet_timeclock.services.document_service import get_document
from sheet_timeclock.services.session_engine import SessionEngine

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/api/sessions/start")
async def start_session(
    data: SessionStart,
    store: RecordStore = Depends(get_store),
    engine: SessionEngine = Depends(get_session_engine),
    employee: Employee = Depends(require_authenticated),
):
    """Start working on a tracked sheet"""
    document = get_document(store, data.document_id)
    if document is None:
        raise NotFoundError("Sheet not found in tracking list")
    
    session = await engine.start_session(employee, document.id, document.title, document.last_modified)
    return envelope(data=session.view(), message=f"Session started on {document.title}")

@router.get("/api/sessions/active")
async def active_session(
    engine: SessionEngine = Depends(get_session_engine),
    employee: Employee = Depends(require_authenticated),
):
    session = engine.active_for(employee.id)
    return envelope(data=session.view() if session else None)

@router.post("/api/sessions/end")
async def end_session(
    engine: SessionEngine = Depends(get_session_engine),
    employee: Employee = Depends(require_authenticated),
):
    """Stop the running session and record it if it counts"""
    outcome = await engine.end_session(employee)
    message = "Session recorded" if outcome.recorded else "No significant activity to record"
    return envelope(data=outcome, message=message)
