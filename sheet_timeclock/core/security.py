import logging
from typing import Optional

from fastapi import Depends, Request
from passlib.context import CryptContext

from sheet_timeclock.core.database import EMPLOYEES, RecordStore, get_store
from sheet_timeclock.core.errors import AuthError, ForbiddenOperation
from sheet_timeclock.models.common import Employee

logger = logging.getLogger(__name__)

# --- Password Hashing ---
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError as e:
        logger.error(f"Stored password hash could not be verified: {e}")
        return False

# --- Login session ---
SESSION_EMPLOYEE_KEY = "employee_id"
SESSION_STATE_KEY = "oauth_state"

def login_session(request: Request, employee: Employee):
    request.session.clear()
    request.session[SESSION_EMPLOYEE_KEY] = employee.id

def session_employee(request: Request, store: RecordStore) -> Optional[Employee]:
    """Resolve the employee behind the login cookie, if it is still on file"""
    employee_id = request.session.get(SESSION_EMPLOYEE_KEY)
    if not employee_id:
        return None
    
    record = next((emp for emp in store.load(EMPLOYEES) if emp.get("id") == employee_id), None)
    if record is None:
        # Account was deleted while the cookie was still alive
        request.session.pop(SESSION_EMPLOYEE_KEY, None)
        return None
    return Employee.model_validate(record)

# --- Guards ---
async def require_authenticated(request: Request, store: RecordStore = Depends(get_store)) -> Employee:
    employee = session_employee(request, store)
    if employee is None:
        raise AuthError("Not authenticated")
    return employee

async def require_admin(employee: Employee = Depends(require_authenticated)) -> Employee:
    if not employee.is_admin:
        logger.warning(f"Admin endpoint access denied for {employee.email}")
        raise ForbiddenOperation("Admin access required")
    return employee
