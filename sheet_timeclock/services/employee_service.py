import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sheet_timeclock.core.config import ServerConfig
from sheet_timeclock.core.database import EMPLOYEES, RecordStore
from sheet_timeclock.core.errors import AuthError, DuplicateError, ForbiddenOperation, NotFoundError
from sheet_timeclock.core.security import get_password_hash, verify_password
from sheet_timeclock.models.admin import EmployeeCreate
from sheet_timeclock.models.common import Employee

logger = logging.getLogger(__name__)

def normalize_email(email: str) -> str:
    return (email or "").strip().lower()

def is_configured_admin(email: str) -> bool:
    return bool(ServerConfig.ADMIN_EMAIL) and normalize_email(email) == normalize_email(ServerConfig.ADMIN_EMAIL)

def find_by_email(store: RecordStore, email: str) -> Optional[Employee]:
    wanted = normalize_email(email)
    for record in store.load(EMPLOYEES):
        if normalize_email(record.get("email")) == wanted:
            return Employee.model_validate(record)
    return None

def find_by_id(store: RecordStore, employee_id: str) -> Optional[Employee]:
    for record in store.load(EMPLOYEES):
        if record.get("id") == employee_id:
            return Employee.model_validate(record)
    return None

def list_employees(store: RecordStore) -> List[Employee]:
    return [Employee.model_validate(record) for record in store.load(EMPLOYEES)]

def add_employee(store: RecordStore, data: EmployeeCreate) -> Employee:
    """Create an employee; admin status follows the configured admin email"""
    email = normalize_email(data.email)
    
    with store.update(EMPLOYEES) as employees:
        if any(normalize_email(emp.get("email")) == email for emp in employees):
            raise DuplicateError("Employee with this email already exists")
        
        employee = Employee(
            id=uuid.uuid4().hex,
            name=data.name.strip(),
            email=email,
            password_hash=get_password_hash(data.password),
            hourly_rate=data.hourly_rate,
            created_at=datetime.now(timezone.utc),
            is_admin=is_configured_admin(email),
        )
        employees.append(employee.model_dump(mode="json"))
    
    logger.info(f"Added employee {employee.name} <{employee.email}> (admin: {employee.is_admin})")
    return employee

def change_credential(store: RecordStore, employee_id: str, current_password: str, new_password: str):
    """Self-service password change, checked against the current password"""
    with store.update(EMPLOYEES) as employees:
        record = next((emp for emp in employees if emp.get("id") == employee_id), None)
        if record is None:
            raise NotFoundError("Employee not found")
        
        if not verify_password(current_password, record.get("password_hash")):
            logger.warning(f"Password change rejected for {record.get('email')}: wrong current password")
            raise AuthError("Current password is incorrect")
        
        record["password_hash"] = get_password_hash(new_password)
    
    logger.info(f"Password updated for {record.get('email')}")

def reset_credential(store: RecordStore, employee_id: str, new_password: str):
    with store.update(EMPLOYEES) as employees:
        record = next((emp for emp in employees if emp.get("id") == employee_id), None)
        if record is None:
            raise NotFoundError("Employee not found")
        record["password_hash"] = get_password_hash(new_password)
    
    logger.info(f"Password reset by admin for {record.get('email')}")

def delete_employee(store: RecordStore, employee_id: str) -> Employee:
    with store.update(EMPLOYEES) as employees:
        index = next((i for i, emp in enumerate(employees) if emp.get("id") == employee_id), None)
        if index is None:
            raise NotFoundError("Employee not found")
        
        employee = Employee.model_validate(employees[index])
        if employee.is_admin or is_configured_admin(employee.email):
            logger.warning(f"Refused to delete admin account {employee.email}")
            raise ForbiddenOperation("Cannot delete admin account")
        
        del employees[index]
    
    logger.info(f"Deleted employee {employee.name} <{employee.email}>")
    return employee
