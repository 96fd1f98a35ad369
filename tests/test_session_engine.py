import asyncio
import threading
from datetime import timedelta

import pytest

from sheet_timeclock.core.errors import AccessError, ValidationError
from sheet_timeclock.models.common import DocumentStatus, Employee
from sheet_timeclock.services.session_engine import SessionEngine

from conftest import utc

T0 = utc(2024, 3, 1, 9, 0, 0)
BASELINE = utc(2024, 3, 1, 8, 0, 0)

pytestmark = pytest.mark.anyio


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class ScriptedStatus:
    """Returns queued statuses; the last one repeats"""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def __call__(self, document_id, employee):
        self.calls += 1
        result = self.results[0] if len(self.results) == 1 else self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def employee(email="jana@example.com", rate=300):
    return Employee(id=email, name=email.split("@")[0], email=email, hourly_rate=rate, created_at=T0)


async def wait_for(condition, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def recorded():
    return []


def make_engine(status, clock, recorded):
    return SessionEngine(
        status_checker=status,
        recorder=recorded.append,
        poll_interval=0.01,
        tick_interval=0.01,
        clock=clock,
    )


async def test_modified_session_is_recorded_with_pay(clock, recorded):
    status = ScriptedStatus(DocumentStatus(has_changes=True, last_modified=T0 + timedelta(seconds=45)))
    engine = make_engine(status, clock, recorded)
    worker = employee(rate=300)

    await engine.start_session(worker, "doc-1", "Timesheet", BASELINE)
    await wait_for(lambda: engine.active_for(worker.id).had_modifications)
    clock.advance(seconds=130)
    outcome = await engine.end_session(worker)

    assert outcome.recorded
    record = recorded[0]
    assert record.duration_minutes == 2
    assert record.had_modifications is True
    assert record.salary_amount == 10
    assert record.start_time == T0
    assert record.end_time == T0 + timedelta(seconds=130)
    assert engine.active_for(worker.id) is None


async def test_short_idle_session_is_discarded(clock, recorded):
    status = ScriptedStatus(DocumentStatus(has_changes=False, last_modified=BASELINE))
    engine = make_engine(status, clock, recorded)
    worker = employee()

    await engine.start_session(worker, "doc-1", "Timesheet", BASELINE)
    await wait_for(lambda: status.calls >= 2)
    clock.advance(seconds=20)
    outcome = await engine.end_session(worker)

    assert outcome.recorded is False
    assert outcome.duration_minutes == 0
    assert recorded == []
    assert engine.active_count == 0


async def test_elapsed_seconds_follow_the_clock(clock, recorded):
    engine = make_engine(ScriptedStatus(DocumentStatus(has_changes=False, last_modified=BASELINE)), clock, recorded)
    worker = employee()

    session = await engine.start_session(worker, "doc-1", "Timesheet", BASELINE)
    clock.advance(seconds=42)
    await wait_for(lambda: session.elapsed_seconds == 42)

    assert session.view().elapsed_seconds == 42
    await engine.end_session(worker)


async def test_second_start_is_rejected(clock, recorded):
    engine = make_engine(ScriptedStatus(DocumentStatus(has_changes=False, last_modified=BASELINE)), clock, recorded)
    worker = employee()
    first = await engine.start_session(worker, "doc-1", "Timesheet")

    with pytest.raises(ValidationError):
        await engine.start_session(worker, "doc-2", "Other")

    assert engine.active_for(worker.id) is first
    assert engine.active_count == 1
    await engine.end_session(worker)


async def test_end_without_session_is_rejected(clock, recorded):
    engine = make_engine(ScriptedStatus(DocumentStatus(has_changes=False, last_modified=BASELINE)), clock, recorded)

    with pytest.raises(ValidationError):
        await engine.end_session(employee())


async def test_end_cancels_both_tasks(clock, recorded):
    engine = make_engine(ScriptedStatus(DocumentStatus(has_changes=False, last_modified=BASELINE)), clock, recorded)
    worker = employee()
    session = await engine.start_session(worker, "doc-1", "Timesheet")
    tasks = list(session.tasks)

    clock.advance(minutes=5)
    await engine.end_session(worker)

    assert len(tasks) == 2
    assert all(task.cancelled() for task in tasks)
    assert session.tasks == []


async def test_poll_failures_do_not_stop_polling(clock, recorded):
    status = ScriptedStatus(
        AccessError("Unable to access sheet"),
        RuntimeError("network down"),
        DocumentStatus(has_changes=True, last_modified=T0 + timedelta(minutes=1)),
    )
    engine = make_engine(status, clock, recorded)
    worker = employee()

    session = await engine.start_session(worker, "doc-1", "Timesheet", BASELINE)
    await wait_for(lambda: session.had_modifications)

    assert session.last_modification == T0 + timedelta(minutes=1)
    await engine.end_session(worker)
    assert recorded[0].had_modifications is True


async def test_sessions_are_per_employee(clock, recorded):
    engine = make_engine(ScriptedStatus(DocumentStatus(has_changes=False, last_modified=BASELINE)), clock, recorded)
    jana, petr = employee("jana@example.com"), employee("petr@example.com")

    await engine.start_session(jana, "doc-1", "Timesheet")
    await engine.start_session(petr, "doc-1", "Timesheet")
    clock.advance(minutes=3)
    await engine.end_session(jana)

    assert engine.active_for(jana.id) is None
    assert engine.active_for(petr.id) is not None
    await engine.end_session(petr)


async def test_close_all_records_every_session(clock, recorded):
    engine = make_engine(ScriptedStatus(DocumentStatus(has_changes=False, last_modified=BASELINE)), clock, recorded)
    await engine.start_session(employee("jana@example.com"), "doc-1", "Timesheet")
    await engine.start_session(employee("petr@example.com"), "doc-1", "Timesheet")
    clock.advance(minutes=10)

    await engine.close_all()

    assert engine.active_count == 0
    assert sorted(r.employee_email for r in recorded) == ["jana@example.com", "petr@example.com"]
    assert all(r.duration_minutes == 10 for r in recorded)


async def test_close_all_survives_a_failing_close(clock):
    recorded = []

    def flaky_recorder(record):
        if not recorded:
            recorded.append(None)
            raise TypeError("cannot serialise record")
        recorded.append(record)

    engine = SessionEngine(
        status_checker=ScriptedStatus(DocumentStatus(has_changes=False, last_modified=BASELINE)),
        recorder=flaky_recorder,
        poll_interval=0.01,
        tick_interval=0.01,
        clock=clock,
    )
    await engine.start_session(employee("jana@example.com"), "doc-1", "Timesheet")
    await engine.start_session(employee("petr@example.com"), "doc-1", "Timesheet")
    clock.advance(minutes=10)

    await engine.close_all()

    assert engine.active_count == 0
    assert len(recorded) == 2


async def test_status_check_in_flight_at_end_is_applied(clock, recorded):
    release = threading.Event()
    calls = []

    def slow_checker(document_id, worker):
        calls.append(document_id)
        release.wait(timeout=2)
        return DocumentStatus(has_changes=True, last_modified=T0 + timedelta(seconds=10))

    engine = make_engine(slow_checker, clock, recorded)
    worker = employee()

    await engine.start_session(worker, "doc-1", "Timesheet", BASELINE)
    await wait_for(lambda: calls)
    clock.advance(seconds=20)
    ending = asyncio.create_task(engine.end_session(worker))
    await asyncio.sleep(0.05)
    assert not ending.done()

    release.set()
    outcome = await ending

    assert outcome.recorded is True
    assert outcome.had_modifications is True
    assert recorded[0].duration_minutes == 0
    assert len(calls) == 1
