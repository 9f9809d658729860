import re
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from learnflow_backend.interface.base import SuccessResponse
from learnflow_backend.interface.roles import UserRole

USERNAME_PATTERN = re.compile(r"^[a-z0-9_]{3,30}$")
MIN_PASSWORD_LENGTH = 6


def normalize_username(value: str) -> str:
    return (value or "").strip().lower()


def is_valid_username(value: str) -> bool:
    return bool(USERNAME_PATTERN.match(normalize_username(value)))


def check_username(value: str) -> str:
    value = normalize_username(value)
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username must be 3-30 characters: letters, numbers or underscores")
    return value


def check_password(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return value


def empty_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class UserGet(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    role: UserRole
    full_name: Optional[str] = None
    created_by: Optional[str] = None
    is_active: bool
    password_set: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    username: str
    password: Optional[str] = None
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    role: UserRole
    send_invite: bool = False

    @field_validator("username")
    @classmethod
    def validate_username(cls, value):
        return check_username(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value):
        return check_password(value)

    @field_validator("email", "full_name", mode="before")
    @classmethod
    def blank_is_none(cls, value):
        return empty_to_none(value)


class UserUpdate(BaseModel):
    is_active: Optional[bool] = None
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    created_by: Optional[str] = None

    @field_validator("email", "full_name", mode="before")
    @classmethod
    def blank_is_none(cls, value):
        return empty_to_none(value)


class UserQuery(BaseModel):
    role: Optional[UserRole] = None
    search: Optional[str] = None
    is_active: Optional[bool] = None


class UserResponse(SuccessResponse):
    user: UserGet


class UserCreatedResponse(UserResponse):
    invite_link: Optional[str] = None


class UserListResponse(SuccessResponse):
    users: List[UserGet] = []


class BulkUserRow(BaseModel):
    username: str = ""
    email: Optional[str] = None
    full_name: Optional[str] = None


class BulkUserCreate(BaseModel):
    users: List[BulkUserRow] = Field(..., min_length=1)
    role: UserRole


class BulkUserResult(BaseModel):
    username: str
    success: bool
    error: Optional[str] = None
    id: Optional[str] = None


class BulkUserResponse(SuccessResponse):
    message: str
    results: List[BulkUserResult] = []
