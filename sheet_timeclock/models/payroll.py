from typing import Optional

from pydantic import BaseModel, Field

from sheet_timeclock.models.common import UtcDatetime

class SessionRecord(BaseModel):
    """A closed work session as kept in the history collection"""
    id: str
    employee_name: str
    employee_email: str
    document_id: str
    document_title: str
    start_time: UtcDatetime
    end_time: UtcDatetime
    duration_minutes: int = Field(ge=0)
    had_modifications: bool
    salary_amount: int
    recorded_at: UtcDatetime

class SessionSubmit(BaseModel):
    """A session reported by the client after it ended locally"""
    start_time: UtcDatetime
    end_time: UtcDatetime
    document_id: str = Field(min_length=1)
    document_title: str = Field(min_length=1)
    had_modifications: bool = False

class SessionStart(BaseModel):
    document_id: str = Field(min_length=1)

class ActiveSessionView(BaseModel):
    session_id: str
    document_id: str
    document_title: str
    start_time: UtcDatetime
    elapsed_seconds: int
    had_modifications: bool
    last_modification: Optional[UtcDatetime] = None

class SessionOutcome(BaseModel):
    """Result of closing a work session"""
    recorded: bool
    duration_minutes: int
    had_modifications: bool
    record: Optional[SessionRecord] = None

class HistorySummary(BaseModel):
    total_sessions: int
    total_duration_minutes: int
    total_salary: int
    sessions_with_modifications: int
    avg_duration_minutes: Optional[int] = None
    avg_salary: Optional[int] = None
    currency: str
