import uuid
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sheet_timeclock.models.common import Employee
from sheet_timeclock.models.payroll import HistorySummary, SessionRecord

MICROSECONDS_PER_MINUTE = 60 * 1000 * 1000

def round_half_up(value) -> int:
    """Round to the nearest integer, halves away from zero"""
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def calculate_duration_minutes(start_time: datetime, end_time: datetime) -> int:
    """Whole minutes between two instants, rounded half-up"""
    elapsed_us = (end_time - start_time) // timedelta(microseconds=1)
    return round_half_up(Decimal(elapsed_us) / MICROSECONDS_PER_MINUTE)

def calculate_salary(duration_minutes: int, hourly_rate: float) -> int:
    """Pay for a session, computed exactly and rounded half-up"""
    return round_half_up(Decimal(duration_minutes) * Decimal(str(hourly_rate)) / 60)

def is_significant(duration_minutes: int, had_modifications: bool) -> bool:
    """Sessions with no observed edit and under a minute are not recorded"""
    return had_modifications or duration_minutes >= 1

def build_session_record(
    employee: Employee,
    document_id: str,
    document_title: str,
    start_time: datetime,
    end_time: datetime,
    had_modifications: bool,
    recorded_at: datetime,
) -> Optional[SessionRecord]:
    """Close out a session; returns None when it is not worth recording"""
    duration_minutes = max(0, calculate_duration_minutes(start_time, end_time))
    if not is_significant(duration_minutes, had_modifications):
        return None
    
    return SessionRecord(
        id=uuid.uuid4().hex,
        employee_name=employee.name,
        employee_email=employee.email,
        document_id=document_id,
        document_title=document_title,
        start_time=start_time,
        end_time=end_time,
        duration_minutes=duration_minutes,
        had_modifications=had_modifications,
        salary_amount=calculate_salary(duration_minutes, employee.hourly_rate),
        recorded_at=recorded_at,
    )

def filter_history(
    records: List[SessionRecord],
    email: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[SessionRecord]:
    """Filter by employee and by an inclusive range on the session start"""
    result = []
    for record in records:
        if email and record.employee_email.lower() != email.lower():
            continue
        if start_date and record.start_time < start_date:
            continue
        if end_date and record.start_time > end_date:
            continue
        result.append(record)
    return result

def summarize_history(records: List[SessionRecord], currency: str) -> HistorySummary:
    total_sessions = len(records)
    total_duration = sum(r.duration_minutes for r in records)
    total_salary = sum(r.salary_amount for r in records)
    
    summary = HistorySummary(
        total_sessions=total_sessions,
        total_duration_minutes=total_duration,
        total_salary=total_salary,
        sessions_with_modifications=sum(1 for r in records if r.had_modifications),
        currency=currency,
    )
    
    if total_sessions > 0:
        summary.avg_duration_minutes = round_half_up(Decimal(total_duration) / total_sessions)
        summary.avg_salary = round_half_up(Decimal(total_salary) / total_sessions)
    
    return summary
