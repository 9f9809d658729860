import logging
from typing import Annotated
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from learnflow_backend.api.exceptions import (
    BadRequestException,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
)
from learnflow_backend.api.crud import get_or_404
from learnflow_backend.database import get_db
from learnflow_backend.interface.auth import (
    ForgotPasswordRequest,
    InviteAccept,
    InviteInfoResponse,
    InvitedUser,
    InviteResend,
    InviteSentResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    PasswordChange,
    ResetPasswordRequest,
)
from learnflow_backend.interface.base import MessageResponse, SuccessResponse
from learnflow_backend.interface.users import UserGet
from learnflow_backend.model.auth import User
from learnflow_backend.permissions.auth import (
    decode_session_cookie,
    encode_session_cookie,
    get_current_principal,
    get_current_user,
    hash_password,
    verify_password,
)
from learnflow_backend.permissions.core import require_access
from learnflow_backend.permissions.handlers import Action
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.permissions.roles import dashboard_path
from learnflow_backend.services.activity import log_activity
from learnflow_backend.services.credentials import (
    accept_invite,
    invite_link,
    issue_invite,
    issue_reset_code,
    reset_password,
    verify_invite,
)
from learnflow_backend.services.email import EmailService, get_email_service
from learnflow_backend.services.sessions import SessionRepository, get_session_repository
from learnflow_backend.settings import settings
from learnflow_backend.utils import client_ip

logger = logging.getLogger(__name__)

auth_router = APIRouter()


def set_session_cookie(response: Response, session_id: str, user_id: str):
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=encode_session_cookie(session_id, user_id),
        max_age=settings.session_max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
        path="/",
    )


def clear_session_cookie(response: Response):
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")


@auth_router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    sessions: Annotated[SessionRepository, Depends(get_session_repository)],
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.username == payload.username).first()

    if user is None or not verify_password(payload.password, user.password_hash):
        raise UnauthorizedException("Invalid credentials")

    if not user.is_active:
        raise ForbiddenException("Account is deactivated")

    fallback = request.client.host if request.client else None
    session = sessions.create_session(user.id, client_ip(request.headers, fallback))
    log_activity(db, user.id, "login", "session", session.id)
    db.commit()

    set_session_cookie(response, session.id, user.id)
    logger.info(f"User {user.username} logged in")

    return LoginResponse(user=UserGet.model_validate(user), redirect=dashboard_path(user.role))


@auth_router.post("/logout", response_model=SuccessResponse)
def logout(
    request: Request,
    response: Response,
    sessions: Annotated[SessionRepository, Depends(get_session_repository)],
    db: Session = Depends(get_db),
):
    cookie = decode_session_cookie(request.cookies.get(settings.SESSION_COOKIE_NAME))

    if cookie is not None and sessions.invalidate_session(cookie["sessionId"]):
        log_activity(db, cookie["userId"], "logout", "session", cookie["sessionId"])
        db.commit()

    clear_session_cookie(response)
    return SuccessResponse()


@auth_router.get("/me", response_model=MeResponse)
def me(user: Annotated[User, Depends(get_current_user)]):
    return MeResponse(user=UserGet.model_validate(user))


@auth_router.post("/password", response_model=MessageResponse)
def change_password(
    payload: PasswordChange,
    user: Annotated[User, Depends(get_current_user)],
    db: Session = Depends(get_db),
):
    if not verify_password(payload.current_password, user.password_hash):
        raise BadRequestException("Current password is incorrect")

    user.password_hash = hash_password(payload.new_password)
    user.password_set = True
    log_activity(db, user.id, "password_changed", "user", user.id)
    db.commit()

    return MessageResponse(message="Password updated")


@auth_router.post("/forgot", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    email_service: Annotated[EmailService, Depends(get_email_service)],
    db: Session = Depends(get_db),
):
    email = str(payload.email).lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()

    if user is None:
        raise NotFoundException("Email not found")

    reset = issue_reset_code(db, user)
    email_service.send_reset_code(email, reset.code)
    db.commit()

    return MessageResponse(message="Reset code sent to your email")


@auth_router.post("/reset", response_model=MessageResponse)
def reset(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    user = reset_password(db, str(payload.email).lower(), payload.code, payload.password)
    log_activity(db, user.id, "password_reset", "user", user.id)
    db.commit()

    return MessageResponse(message="Password has been reset")


@auth_router.get("/invite", response_model=InviteInfoResponse)
def get_invite(token: str, db: Session = Depends(get_db)):
    invite = verify_invite(db, token)
    user = invite.user

    if not user.is_active:
        raise ForbiddenException("Account is deactivated")

    return InviteInfoResponse(user=InvitedUser(username=user.username, full_name=user.full_name, email=user.email))


@auth_router.post("/invite", response_model=InviteSentResponse)
def resend_invite(
    payload: InviteResend,
    principal: Annotated[Principal, Depends(get_current_principal)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
    db: Session = Depends(get_db),
):
    user = get_or_404(db, User, payload.user_id, "User not found")
    require_access(principal, Action.UPDATE, user, db)

    invite = issue_invite(db, user, issued_by=principal.user_id)
    link = invite_link(invite.token)
    email_service.send_invite(user.email, user.full_name, link)
    db.commit()

    return InviteSentResponse(message="Invite sent", invite_link=link)


@auth_router.post("/invite/accept", response_model=MessageResponse)
def accept(payload: InviteAccept, db: Session = Depends(get_db)):
    user = accept_invite(db, payload.token, payload.password)

    if not user.is_active:
        db.rollback()
        raise ForbiddenException("Account is deactivated")

    log_activity(db, user.id, "invite_accepted", "user", user.id)
    db.commit()

    return MessageResponse(message="Password set. You can now log in.")
