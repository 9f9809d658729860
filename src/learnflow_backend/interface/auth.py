from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from learnflow_backend.interface.base import SuccessResponse
from learnflow_backend.interface.users import UserGet, check_password, normalize_username


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def normalize(cls, value):
        return normalize_username(value)


class LoginResponse(SuccessResponse):
    user: UserGet
    redirect: str


class MeResponse(SuccessResponse):
    user: UserGet


class PasswordChange(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, value):
        return check_password(value)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., pattern=r"^\d{6}$")
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, value):
        return check_password(value)


class InviteResend(BaseModel):
    user_id: str


class InviteAccept(BaseModel):
    token: str = Field(..., min_length=1)
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, value):
        return check_password(value)


class InvitedUser(BaseModel):
    username: str
    full_name: Optional[str] = None
    email: Optional[str] = None


class InviteInfoResponse(SuccessResponse):
    user: InvitedUser


class InviteSentResponse(SuccessResponse):
    message: str
    invite_link: str
