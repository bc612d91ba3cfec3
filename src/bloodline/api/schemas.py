from pydantic import BaseModel, EmailStr, Field
from typing import Literal

from bloodline.models.account import AccountStatus, Role


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

class StatusChange(BaseModel):
    status: str

class AccountStatusChange(BaseModel):
    status: str

class RoleChange(BaseModel):
    role: str

class CreatedRequestResponse(BaseModel):
    message: str = "Donation request created successfully"
    request_id: str

class MessageResponse(BaseModel):
    message: str

class AccountResponse(BaseModel):
    email: EmailStr
    name: str
    role: Role
    status: AccountStatus
    avatar: str | None = None
    blood_group: str | None = None
    district: str | None = None
    upazila: str | None = None

class StatsResponse(BaseModel):
    total_donors: int
    total_requests: int

class HealthResponse(BaseModel):
    status: Literal["running"] = "running"
    message: str
