from pydantic import BaseModel, EmailStr, Field

class EmployeeCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)
    hourly_rate: float = Field(gt=0)

class CredentialReset(BaseModel):
    """Admin-forced password reset"""
    new_password: str = Field(min_length=1)

class CredentialChange(BaseModel):
    """Self-service password change"""
    current_password: str
    new_password: str = Field(min_length=1)
