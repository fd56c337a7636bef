"""
tracker/schemas.py

Pydantic request schemas for every body the API accepts.
Message text is part of the API contract; clients match on it.

Security notes:
- unknown fields (createdBy, id, ...) are dropped, never stored
- ownership always comes from the authenticated caller, not the body
"""

from __future__ import annotations

import re
from typing import Annotated, ClassVar, Dict, List, Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from tracker.models import PROJECT_PRIORITIES, PROJECT_STATUSES, USER_ROLES, ProjectPriority, ProjectStatus, UserRole
from tracker.validation import RequestModel, format_datetime, parse_iso_datetime

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
PHONE_PATTERN = r"^[+]?[1-9]\d{0,15}$"
PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")

INVALID_STATUS_MESSAGE = "Invalid status. Valid statuses are: " + ", ".join(PROJECT_STATUSES)

EMAIL_MESSAGES = {
    "pattern": "Please provide a valid email address",
    "required": "Email is required",
}
NAME_MESSAGES = {
    "max_length": "Name must not exceed 100 characters",
    "required": "Name is required",
}


def one_of(label: str, choices: List[str]) -> str:
    return f'"{label}" must be one of [{", ".join(choices)}]'


# ========================================================================
# AUTH SCHEMAS
# ========================================================================

class SignupRequest(RequestModel):
    """Self-service registration. role defaults to "user"."""
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9]+$")
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.user

    error_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        "username": {
            "pattern": "Username must contain only alphanumeric characters",
            "min_length": "Username must be at least 3 characters long",
            "max_length": "Username must not exceed 50 characters",
            "required": "Username is required",
        },
        "email": EMAIL_MESSAGES,
        "password": {
            "min_length": "Password must be at least 6 characters long",
            "pattern": "Password must contain at least one lowercase letter, one uppercase letter, and one digit",
            "required": "Password is required",
        },
        "role": {"choices": one_of("role", USER_ROLES)},
    }
    untrimmed: ClassVar[Tuple[str, ...]] = ("password",)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v):
        if not PASSWORD_RULE.match(v):
            raise cls.rule_error("password", "pattern")
        return v


class LoginRequest(RequestModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)

    error_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        "email": EMAIL_MESSAGES,
        "password": {"required": "Password is required"},
    }
    untrimmed: ClassVar[Tuple[str, ...]] = ("password",)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.lower()


# ========================================================================
# CLIENT SCHEMAS
# ========================================================================

class Address(RequestModel):
    street: Optional[str] = Field(None, min_length=1)
    city: Optional[str] = Field(None, min_length=1)
    state: Optional[str] = Field(None, min_length=1)
    zip_code: Optional[str] = Field(None, min_length=1)
    country: Optional[str] = Field(None, min_length=1)


class ClientRequest(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    phone: Optional[str] = Field(None, min_length=1, pattern=PHONE_PATTERN)
    address: Optional[Address] = None
    company: Optional[str] = Field(None, min_length=1)
    industry: Optional[str] = Field(None, min_length=1)
    is_active: bool = True

    error_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        "name": NAME_MESSAGES,
        "email": EMAIL_MESSAGES,
        "phone": {"pattern": "Please provide a valid phone number"},
    }

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.lower()


# ========================================================================
# PROJECT SCHEMAS
# ========================================================================

class Deliverable(RequestModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    completed: bool = False


class ProjectRequest(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    client: int = Field(..., gt=0)
    status: ProjectStatus = ProjectStatus.planning
    priority: ProjectPriority = ProjectPriority.medium
    budget: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    deliverables: Optional[List[Deliverable]] = None
    team_members: Optional[List[Annotated[int, Field(gt=0)]]] = None
    tags: Optional[List[Annotated[str, Field(min_length=1)]]] = None
    is_active: bool = True

    error_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        "name": NAME_MESSAGES,
        "description": {"max_length": "Description must not exceed 1000 characters"},
        "client": {"id": "Invalid client ID format", "required": "Client is required"},
        "status": {"choices": one_of("status", PROJECT_STATUSES)},
        "priority": {"choices": one_of("priority", PROJECT_PRIORITIES)},
        "budget": {"minimum": "Budget must be a positive number"},
        "startDate": {
            "date": "Start date must be in ISO format",
            "string": "Start date must be in ISO format",
        },
        "endDate": {
            "date": "End date must be in ISO format",
            "string": "End date must be in ISO format",
            "after": "End date must be after start date",
        },
        "teamMembers": {"id": "Invalid team member ID format"},
    }

    @field_validator("start_date", "end_date")
    @classmethod
    def iso_date(cls, v, info):
        """Normalize to UTC ISO 8601 with a Z suffix."""
        if v is None:
            return v
        dt = parse_iso_datetime(v)
        if dt is None:
            raise cls.rule_error(to_camel(info.field_name), "date")
        return format_datetime(dt)

    @model_validator(mode="after")
    def end_not_before_start(self):
        start = parse_iso_datetime(self.start_date)
        end = parse_iso_datetime(self.end_date)
        if start and end and end < start:
            raise self.rule_error("endDate", "after")
        return self


class ProjectStatusRequest(RequestModel):
    status: ProjectStatus

    error_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        "status": {
            "required": INVALID_STATUS_MESSAGE,
            "choices": INVALID_STATUS_MESSAGE,
            "string": INVALID_STATUS_MESSAGE,
        },
    }


class TeamMemberRequest(RequestModel):
    user_id: int = Field(..., gt=0)

    error_messages: ClassVar[Dict[str, Dict[str, str]]] = {
        "userId": {
            "required": "User ID is required",
            "id": "Invalid user ID format",
        },
    }
