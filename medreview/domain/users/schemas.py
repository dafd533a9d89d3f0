"""User domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import UserRole
from ...shared.sanitization import validate_and_sanitize_input
from ...shared.validators import validate_available_slots, validate_email, validate_phone


class UserCreate(BaseModel):
    """Schema for signing up a new user"""

    name: str = Field(..., min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None
    role: UserRole = UserRole.CUSTOMER
    specialization: Optional[str] = Field(None, max_length=255)
    licenseNumber: Optional[str] = Field(None, max_length=100)
    hourlyRate: Optional[float] = Field(None, ge=0)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_phone(v)
        return v

    @field_validator("name", "specialization")
    @classmethod
    def clean_text(cls, v):
        return validate_and_sanitize_input(v, max_length=255)


class UserUpdate(BaseModel):
    """Schema for profile updates; role and email cannot be changed here"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = None
    specialization: Optional[str] = Field(None, max_length=255)
    licenseNumber: Optional[str] = Field(None, max_length=100)
    hourlyRate: Optional[float] = Field(None, ge=0)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return validate_phone(v)
        return v

    @field_validator("name", "specialization")
    @classmethod
    def clean_text(cls, v):
        return validate_and_sanitize_input(v, max_length=255)


class AvailabilityUpdate(BaseModel):
    """Weekly availability, e.g. {"monday": [{"start": "09:00", "end": "12:00"}]}"""

    availableSlots: dict[str, list[dict[str, str]]]

    @field_validator("availableSlots")
    @classmethod
    def check_slots(cls, v):
        return validate_available_slots(v)


class UserResponse(BaseModel):
    """Schema for user response"""

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    isActive: bool
    emailVerified: bool
    specialization: Optional[str] = None
    licenseNumber: Optional[str] = None
    hourlyRate: Optional[float] = None
    availableSlots: Optional[dict] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserStatsResponse(BaseModel):
    totalUsers: int
    activeUsers: int
    verifiedUsers: int
    customers: int
    reviewers: int
    admins: int
