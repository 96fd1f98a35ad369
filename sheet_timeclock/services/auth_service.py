import logging
from typing import Optional

from sheet_timeclock.core.database import EMPLOYEES, RecordStore
from sheet_timeclock.core.errors import AuthError
from sheet_timeclock.core.security import verify_password
from sheet_timeclock.models.common import Employee, ProviderProfile
from sheet_timeclock.services.employee_service import find_by_email, normalize_email

logger = logging.getLogger(__name__)

def authenticate(store: RecordStore, email: str, password: str) -> Employee:
    """Local credential login, open to non-admin employees only"""
    employee = find_by_email(store, email)
    
    if employee is None:
        logger.warning(f"Login failed - unknown email '{email}'")
        raise AuthError("Invalid credentials")
    
    # Admins sign in through the identity provider
    if employee.is_admin:
        logger.warning(f"Login failed - admin {employee.email} must use the identity provider")
        raise AuthError("Invalid credentials")
    
    if not verify_password(password, employee.password_hash):
        logger.warning(f"Login failed - wrong password for {employee.email}")
        raise AuthError("Invalid credentials")
    
    logger.info(f"Login success for {employee.email}")
    return employee

def authenticate_via_provider(store: RecordStore, profile: ProviderProfile, access_token: Optional[str]) -> Optional[Employee]:
    """Match a provider-verified identity to an existing employee.

    Unknown identities get ``None``; accounts are never created implicitly.
    The access token is kept on the record for later metadata lookups.
    """
    wanted = normalize_email(profile.email)
    
    with store.update(EMPLOYEES) as employees:
        record = next((emp for emp in employees if normalize_email(emp.get("email")) == wanted), None)
        if record is None:
            logger.warning(f"Provider login for unprovisioned identity '{profile.email}'")
            return None
        
        if access_token:
            record["access_token"] = access_token
        employee = Employee.model_validate(record)
    
    logger.info(f"Provider login success for {employee.email} (admin: {employee.is_admin})")
    return employee
