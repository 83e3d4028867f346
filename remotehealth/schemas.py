"""Inbound payload validation."""
import re
from datetime import datetime
from typing import Optional

import pytz
from flask import current_app, has_app_context
from pydantic import BaseModel, Field, field_validator

ROLES = ("admin", "doctor", "patient")


def to_clinic_time(value: Optional[datetime]) -> Optional[datetime]:
    """Stored times are naive clinic-local; convert offset-carrying input to that."""
    if value is None or value.tzinfo is None:
        return value
    tz_name = current_app.config.get("CLINIC_TIMEZONE", "UTC") if has_app_context() else "UTC"
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        tz = pytz.UTC
    return value.astimezone(tz).replace(tzinfo=None)


class Credentials(BaseModel):
    role: str
    username: str
    password: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        v = v.strip().lower()
        if v not in ROLES:
            raise ValueError(f"role must be one of {', '.join(ROLES)}")
        return v

    @field_validator("username", "password")
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v


class UserIn(BaseModel):
    id: str = Field(..., description="Stable user id, e.g. D001 or P001")
    name: str
    email: Optional[str] = None
    password: str

    @field_validator("id", "name")
    @classmethod
    def strip_required(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", v):
            raise ValueError("Invalid email address.")
        return v


class AppointmentRequestIn(BaseModel):
    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    scheduled_at: datetime

    @field_validator("scheduled_at")
    @classmethod
    def localize(cls, v):
        return to_clinic_time(v)


class ScheduleIn(BaseModel):
    scheduled_at: datetime

    @field_validator("scheduled_at")
    @classmethod
    def localize(cls, v):
        return to_clinic_time(v)


class VitalSignIn(BaseModel):
    heart_rate: int = Field(..., ge=0, le=400)
    oxygen_level: int = Field(..., ge=0, le=100)
    blood_pressure: Optional[str] = None
    temperature: float = Field(..., ge=0, le=50)
    recorded_at: Optional[datetime] = None

    @field_validator("recorded_at")
    @classmethod
    def localize(cls, v):
        return to_clinic_time(v)


class PrescriptionIn(BaseModel):
    medication: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1)
    schedule: str = Field(..., min_length=1)
    tests: Optional[str] = None


class FeedbackIn(BaseModel):
    comments: str = Field(..., min_length=1)


class PasswordResetIn(BaseModel):
    username: str = Field(..., min_length=1)
    role: str = "patient"
    message: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        v = v.strip().lower()
        if v not in ROLES:
            raise ValueError(f"role must be one of {', '.join(ROLES)}")
        return v


class VideoCallIn(BaseModel):
    to: str = Field(..., min_length=1)
    password: Optional[str] = None
