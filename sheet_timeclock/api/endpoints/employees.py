import logging

from fastapi import APIRouter, Depends

from sheet_timeclock.api.deps import get_session_engine
from sheet_timeclock.api.responses import envelope
from sheet_timeclock.core.database import RecordStore, get_store
from sheet_timeclock.core.security import require_admin, require_authenticated
from sheet_timeclock.models.admin import CredentialChange, CredentialReset, EmployeeCreate
from sheet_timeclock.models.common import Employee
from sheet_timeclock.services import employee_service
from sheet_timeclock.services.session_engine import SessionEngine

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/api/employees", dependencies=[Depends(require_admin)])
async def list_employees(store: RecordStore = Depends(get_store)):
    """List all employees"""
    employees = employee_service.list_employees(store)
    return envelope(data=[emp.to_public() for emp in employees])

@router.post("/api/employees", dependencies=[Depends(require_admin)])
async def add_employee(data: EmployeeCreate, store: RecordStore = Depends(get_store)):
    employee = employee_service.add_employee(store, data)
    return envelope(data=employee.to_public(), message=f"Employee {employee.name} added")

@router.get("/api/employees/profile")
async def get_profile(employee: Employee = Depends(require_authenticated)):
    """Profile of the logged-in employee"""
    return envelope(data=employee.to_public())

@router.put("/api/employees/credential")
async def change_credential(
    passwords: CredentialChange,
    store: RecordStore = Depends(get_store),
    employee: Employee = Depends(require_authenticated),
):
    """Let a logged-in employee change their own password"""
    employee_service.change_credential(store, employee.id, passwords.current_password, passwords.new_password)
    return envelope(message="Password updated successfully")

@router.post("/api/employees/{employee_id}/reset-credential", dependencies=[Depends(require_admin)])
async def reset_credential(employee_id: str, data: CredentialReset, store: RecordStore = Depends(get_store)):
    employee_service.reset_credential(store, employee_id, data.new_password)
    return envelope(message="Password reset successfully")

@router.delete("/api/employees/{employee_id}", dependencies=[Depends(require_admin)])
async def delete_employee(
    employee_id: str,
    store: RecordStore = Depends(get_store),
    engine: SessionEngine = Depends(get_session_engine),
):
    """Delete an employee, closing their running work session first"""
    employee = employee_service.delete_employee(store, employee_id)
    
    # The deleted account can no longer reach the end-session route
    if engine.active_for(employee.id):
        outcome = await engine.end_session(employee)
        logger.info(f"Work session closed on deletion of {employee.email} (recorded: {outcome.recorded})")
    
    return envelope(message=f"Employee {employee.name} deleted successfully")
