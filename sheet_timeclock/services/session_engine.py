"""Work session lifecycle.

Each caller is either idle or has exactly one active work session. An active
session owns two background tasks, an elapsed-time tick and a poll of the
document's modification time. Both are cancelled together when the session
closes, and the closed session is turned into a history record unless it is
too short to count.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from sheet_timeclock.core.config import TrackingConfig
from sheet_timeclock.core.errors import TimeclockError, ValidationError
from sheet_timeclock.models.common import DocumentStatus, Employee
from sheet_timeclock.models.payroll import ActiveSessionView, SessionOutcome, SessionRecord
from sheet_timeclock.services.payroll_service import build_session_record, calculate_duration_minutes

logger = logging.getLogger(__name__)

StatusChecker = Callable[[str, Employee], DocumentStatus]
Recorder = Callable[[SessionRecord], SessionRecord]

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

@dataclass
class ActiveSession:
    session_id: str
    employee: Employee
    document_id: str
    document_title: str
    start_time: datetime
    # Latest external modification time seen for the document
    observed_modified: Optional[datetime] = None
    elapsed_seconds: int = 0
    had_modifications: bool = False
    last_modification: Optional[datetime] = None
    tasks: List[asyncio.Task] = field(default_factory=list, repr=False)
    # Status check the poll started and has not applied yet
    pending_check: Optional[asyncio.Future] = field(default=None, repr=False)

    def view(self) -> ActiveSessionView:
        return ActiveSessionView(
            session_id=self.session_id,
            document_id=self.document_id,
            document_title=self.document_title,
            start_time=self.start_time,
            elapsed_seconds=self.elapsed_seconds,
            had_modifications=self.had_modifications,
            last_modification=self.last_modification,
        )

class SessionEngine:
    def __init__(
        self,
        status_checker: StatusChecker,
        recorder: Recorder,
        poll_interval: float = None,
        tick_interval: float = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.status_checker = status_checker
        self.recorder = recorder
        self.poll_interval = TrackingConfig.POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.tick_interval = TrackingConfig.TICK_INTERVAL_SECONDS if tick_interval is None else tick_interval
        self.clock = clock
        self._sessions: Dict[str, ActiveSession] = {}
        self._by_employee: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    def active_for(self, employee_id: str) -> Optional[ActiveSession]:
        session_id = self._by_employee.get(employee_id)
        return self._sessions.get(session_id) if session_id else None

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    async def start_session(
        self,
        employee: Employee,
        document_id: str,
        document_title: str,
        last_modified: Optional[datetime] = None,
    ) -> ActiveSession:
        async with self._lock:
            if employee.id in self._by_employee:
                raise ValidationError("A work session is already active")
            
            session = ActiveSession(
                session_id=uuid.uuid4().hex,
                employee=employee,
                document_id=document_id,
                document_title=document_title,
                start_time=self.clock(),
                observed_modified=last_modified,
            )
            session.tasks = [
                asyncio.create_task(self._tick(session), name=f"tick-{session.session_id}"),
                asyncio.create_task(self._poll(session), name=f"poll-{session.session_id}"),
            ]
            self._sessions[session.session_id] = session
            self._by_employee[employee.id] = session.session_id
        
        logger.info(f"Work session {session.session_id} started by {employee.email} on '{document_title}' ({document_id})")
        return session

    async def end_session(self, employee: Employee) -> SessionOutcome:
        """Close the caller's session; the caller is idle afterwards even if recording fails"""
        async with self._lock:
            session_id = self._by_employee.pop(employee.id, None)
            if session_id is None:
                raise ValidationError("No active work session")
            session = self._sessions.pop(session_id)
        
        end_time = self.clock()
        await self._cancel_tasks(session)
        
        # A check already running in a worker thread may have seen an edit
        if session.pending_check is not None:
            await asyncio.wait({session.pending_check})
            self._settle_check(session)
        
        record = build_session_record(
            employee,
            document_id=session.document_id,
            document_title=session.document_title,
            start_time=session.start_time,
            end_time=end_time,
            had_modifications=session.had_modifications,
            recorded_at=end_time,
        )
        duration_minutes = max(0, calculate_duration_minutes(session.start_time, end_time))
        
        if record is None:
            logger.info(f"Work session {session_id} discarded: {duration_minutes} min without modifications")
            return SessionOutcome(recorded=False, duration_minutes=duration_minutes, had_modifications=False)
        
        await asyncio.to_thread(self.recorder, record)
        return SessionOutcome(
            recorded=True,
            duration_minutes=record.duration_minutes,
            had_modifications=record.had_modifications,
            record=record,
        )

    async def close_all(self):
        """Best-effort close of every active session, used on shutdown"""
        for session in list(self._sessions.values()):
            try:
                await self.end_session(session.employee)
            except TimeclockError as e:
                logger.error(f"Could not close work session {session.session_id} on shutdown: {e.message}")
            except Exception:
                logger.exception(f"Unexpected error closing work session {session.session_id} on shutdown")

    async def _cancel_tasks(self, session: ActiveSession):
        for task in session.tasks:
            task.cancel()
        await asyncio.gather(*session.tasks, return_exceptions=True)
        session.tasks = []

    async def _tick(self, session: ActiveSession):
        while True:
            await asyncio.sleep(self.tick_interval)
            session.elapsed_seconds = max(0, int((self.clock() - session.start_time).total_seconds()))

    async def _poll(self, session: ActiveSession):
        while True:
            await asyncio.sleep(self.poll_interval)
            session.pending_check = asyncio.ensure_future(
                asyncio.to_thread(self.status_checker, session.document_id, session.employee)
            )
            # asyncio.wait never cancels the check, so a cancelled poll leaves it for end_session
            await asyncio.wait({session.pending_check})
            self._settle_check(session)

    def _settle_check(self, session: ActiveSession):
        """Apply the result of the finished status check, if any"""
        check, session.pending_check = session.pending_check, None
        if check is None:
            return
        
        try:
            status = check.result()
        except TimeclockError as e:
            logger.warning(f"Modification check for {session.document_id} failed: {e.message}")
            return
        except Exception as e:
            logger.error(f"Unexpected error checking {session.document_id} for modifications: {e}")
            return
        
        newer = session.observed_modified is None or status.last_modified > session.observed_modified
        if status.has_changes or (newer and session.observed_modified is not None):
            session.had_modifications = True
            session.last_modification = status.last_modified
            logger.info(f"Work session {session.session_id}: sheet modified at {status.last_modified.isoformat()}")
        if newer:
            session.observed_modified = status.last_modified
