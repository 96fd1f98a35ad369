from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field

def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC and normalise aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]

class EmployeePublic(BaseModel):
    """Employee as returned by the API - never carries credentials"""
    id: str
    name: str
    email: str
    hourly_rate: float
    created_at: UtcDatetime
    is_admin: bool = False

class Employee(EmployeePublic):
    """Employee as kept in the record store"""
    hourly_rate: float = Field(ge=0)
    password_hash: Optional[str] = None
    # Google access token from the last provider sign-in, used for metadata lookups
    access_token: Optional[str] = None

    def to_public(self) -> EmployeePublic:
        return EmployeePublic.model_validate(self.model_dump(exclude={"password_hash", "access_token"}))

class TrackedDocument(BaseModel):
    id: str
    title: str
    added_at: UtcDatetime
    last_modified: UtcDatetime
    added_by: str

class DocumentMetadata(BaseModel):
    title: str
    last_modified: UtcDatetime

class DocumentStatus(BaseModel):
    has_changes: bool
    last_modified: UtcDatetime

class ProviderProfile(BaseModel):
    """Verified identity handed back by the identity provider"""
    email: str
    display_name: Optional[str] = None

class LoginRequest(BaseModel):
    email: str
    password: str

class DocumentAdd(BaseModel):
    document_url: str
