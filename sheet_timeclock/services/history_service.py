import logging
from datetime import datetime, time, timezone
from typing import Callable, List, Optional

from sheet_timeclock.core.config import TrackingConfig
from sheet_timeclock.core.database import HISTORY, RecordStore
from sheet_timeclock.core.errors import ValidationError
from sheet_timeclock.models.common import Employee, as_utc
from sheet_timeclock.models.payroll import HistorySummary, SessionRecord, SessionSubmit
from sheet_timeclock.services.payroll_service import build_session_record, filter_history, summarize_history

logger = logging.getLogger(__name__)

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def parse_range_bound(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """Parse an ISO date or datetime query value; bare dates cover the whole day"""
    if not value:
        return None
    try:
        if len(value) == 10:
            day = datetime.strptime(value, "%Y-%m-%d").date()
            return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)
        return as_utc(datetime.fromisoformat(value))
    except ValueError:
        raise ValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD or an ISO 8601 timestamp")

def load_history(store: RecordStore) -> List[SessionRecord]:
    return [SessionRecord.model_validate(record) for record in store.load(HISTORY)]

def append_record(store: RecordStore, record: SessionRecord) -> SessionRecord:
    with store.update(HISTORY) as history:
        history.append(record.model_dump(mode="json"))
    
    logger.info(
        f"Recorded session for {record.employee_email} on '{record.document_title}': "
        f"{record.duration_minutes} min, {record.salary_amount} {TrackingConfig.CURRENCY}, "
        f"modified: {record.had_modifications}"
    )
    return record

def scoped_email(employee: Employee, email: Optional[str]) -> Optional[str]:
    """Admins may look at anyone; everybody else only sees their own sessions"""
    return email if employee.is_admin else employee.email

def list_history(
    store: RecordStore,
    employee: Employee,
    email: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[SessionRecord]:
    records = filter_history(
        load_history(store),
        email=scoped_email(employee, email),
        start_date=parse_range_bound(start_date),
        end_date=parse_range_bound(end_date, end_of_day=True),
    )
    return sorted(records, key=lambda r: r.end_time, reverse=True)

def history_summary(
    store: RecordStore,
    employee: Employee,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    email: Optional[str] = None,
) -> HistorySummary:
    records = filter_history(
        load_history(store),
        email=scoped_email(employee, email),
        start_date=parse_range_bound(start_date),
        end_date=parse_range_bound(end_date, end_of_day=True),
    )
    return summarize_history(records, TrackingConfig.CURRENCY)

def record_submitted_session(
    store: RecordStore,
    employee: Employee,
    submission: SessionSubmit,
    now: Callable[[], datetime] = utcnow,
) -> SessionRecord:
    """Record a session the client timed on its own"""
    if submission.end_time < submission.start_time:
        raise ValidationError("Session end time is before its start time")
    
    record = build_session_record(
        employee,
        document_id=submission.document_id,
        document_title=submission.document_title,
        start_time=submission.start_time,
        end_time=submission.end_time,
        had_modifications=submission.had_modifications,
        recorded_at=now(),
    )
    if record is None:
        raise ValidationError("No significant activity to record")
    
    return append_record(store, record)
