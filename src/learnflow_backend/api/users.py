import logging
from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends
from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from learnflow_backend.api.crud import commit_or_conflict, get_or_404
from learnflow_backend.api.exceptions import (
    BadRequestException,
    ConflictException,
    DependencyException,
    ForbiddenException,
)
from learnflow_backend.database import get_db
from learnflow_backend.interface.roles import AUTHOR_ROLES, UserRole
from learnflow_backend.interface.users import (
    BulkUserCreate,
    BulkUserResponse,
    BulkUserResult,
    UserCreate,
    UserCreatedResponse,
    UserGet,
    UserListResponse,
    UserQuery,
    UserResponse,
    UserUpdate,
    is_valid_username,
    normalize_username,
)
from learnflow_backend.interface.base import MessageResponse
from learnflow_backend.model.auth import User
from learnflow_backend.permissions.auth import get_current_principal, hash_password
from learnflow_backend.permissions.core import check_permissions, require_access
from learnflow_backend.permissions.handlers import Action
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.permissions.roles import can_manage
from learnflow_backend.services.activity import log_activity
from learnflow_backend.services.credentials import invite_link, issue_invite
from learnflow_backend.services.email import EmailService, get_email_service
from learnflow_backend.utils import generate_password

logger = logging.getLogger(__name__)

user_router = APIRouter()

_email_adapter = TypeAdapter(EmailStr)


def _valid_email(value: str) -> Optional[str]:
    try:
        return str(_email_adapter.validate_python(value)).lower()
    except ValidationError:
        return None


def _username_taken(db: Session, username: str) -> bool:
    return db.query(User.id).filter(User.username == username).first() is not None


def _email_taken(db: Session, email: str) -> bool:
    return db.query(User.id).filter(func.lower(User.email) == email.lower()).first() is not None


def _send_invite(db: Session, user: User, principal: Principal, email_service: EmailService) -> Optional[str]:
    """Issue and mail an invite. Mail failures are logged, the link is still returned."""
    invite = issue_invite(db, user, issued_by=principal.user_id)
    link = invite_link(invite.token)
    try:
        email_service.send_invite(user.email, user.full_name, link)
    except DependencyException:
        logger.warning(f"Invite email for {user.username} could not be sent")
    return link


@user_router.get("", response_model=UserListResponse)
def list_users(
    principal: Annotated[Principal, Depends(get_current_principal)],
    params: UserQuery = Depends(),
    db: Session = Depends(get_db),
):
    query = check_permissions(principal, User, Action.READ, db)

    if principal.is_admin:
        if params.role is not None:
            query = query.filter(User.role == params.role)
        else:
            query = query.filter(User.role.in_(list(AUTHOR_ROLES)))
    elif params.role is not None:
        query = query.filter(User.role == params.role)

    if params.search:
        pattern = f"%{params.search.strip()}%"
        query = query.filter(or_(User.username.ilike(pattern), User.full_name.ilike(pattern)))

    if params.is_active is not None:
        query = query.filter(User.is_active.is_(params.is_active))

    users = query.order_by(User.created_at.desc()).all()
    return UserListResponse(users=[UserGet.model_validate(u) for u in users])


@user_router.post("", response_model=UserCreatedResponse)
def create_user(
    payload: UserCreate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
    db: Session = Depends(get_db),
):
    user = User(
        username=payload.username,
        email=str(payload.email).lower() if payload.email else None,
        full_name=payload.full_name,
        role=payload.role,
        created_by=principal.user_id,
    )
    require_access(principal, Action.CREATE, user, db)

    if _username_taken(db, user.username):
        raise ConflictException("Username already exists")

    if user.email and _email_taken(db, user.email):
        raise ConflictException("Email already exists")

    wants_invite = payload.send_invite or payload.password is None
    if wants_invite and not user.email:
        raise BadRequestException("An email address is required to send an invite")

    user.password_hash = hash_password(payload.password or generate_password())
    user.password_set = payload.password is not None

    db.add(user)
    db.flush()

    link = _send_invite(db, user, principal, email_service) if wants_invite else None

    log_activity(db, principal.user_id, "created_user", "user", user.id, {
        "username": user.username,
        "role": user.role.value,
    })
    commit_or_conflict(db, "Username or email already exists")
    db.refresh(user)

    return UserCreatedResponse(user=UserGet.model_validate(user), invite_link=link)


@user_router.post("/bulk", response_model=BulkUserResponse, response_model_exclude_none=True)
def bulk_create_users(
    payload: BulkUserCreate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
    db: Session = Depends(get_db),
):
    if not principal.can_manage(payload.role):
        raise ForbiddenException("You do not have permission to create this user type")

    results: List[BulkUserResult] = []
    seen_usernames = set()
    seen_emails = set()

    for row in payload.users:
        username = normalize_username(row.username)
        result = BulkUserResult(username=username or row.username, success=False)
        results.append(result)

        if not is_valid_username(username):
            result.error = "Invalid username format"
            continue

        email = None
        if row.email and row.email.strip():
            email = _valid_email(row.email.strip())
            if email is None:
                result.error = "Invalid email address"
                continue

        if username in seen_usernames or _username_taken(db, username):
            result.error = "Username already exists"
            continue

        if email and (email in seen_emails or _email_taken(db, email)):
            result.error = "Email already exists"
            continue

        user = User(
            username=username,
            email=email,
            full_name=(row.full_name or "").strip() or None,
            role=payload.role,
            created_by=principal.user_id,
            password_hash=hash_password(generate_password()),
            password_set=False,
        )
        db.add(user)
        db.flush()

        if email:
            _send_invite(db, user, principal, email_service)

        seen_usernames.add(username)
        if email:
            seen_emails.add(email)

        result.success = True
        result.id = user.id

    created = sum(1 for r in results if r.success)
    failed = len(results) - created

    log_activity(db, principal.user_id, "bulk_created_users", "user", None, {
        "role": payload.role.value,
        "created": created,
        "failed": failed,
    })
    commit_or_conflict(db, "Username or email already exists")

    return BulkUserResponse(message=f"Created {created} users, {failed} failed", results=results)


@user_router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    user = get_or_404(db, User, user_id, "User not found")
    require_access(principal, Action.READ, user, db)
    return UserResponse(user=UserGet.model_validate(user))


@user_router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    payload: UserUpdate,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    user = get_or_404(db, User, user_id, "User not found")
    require_access(principal, Action.UPDATE, user, db)

    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise BadRequestException("No updates provided")

    if "created_by" in updates:
        if not principal.is_admin:
            raise ForbiddenException("Only administrators can reassign users")
        new_owner = get_or_404(db, User, updates["created_by"], "New owner not found")
        if not new_owner.is_active or not can_manage(new_owner.role, user.role):
            raise BadRequestException("The new owner cannot manage this user")

    if updates.get("is_active") is None:
        updates.pop("is_active", None)

    if updates.get("email"):
        updates["email"] = str(updates["email"]).lower()
        if updates["email"] != (user.email or "").lower() and _email_taken(db, updates["email"]):
            raise ConflictException("Email already exists")

    for key, value in updates.items():
        setattr(user, key, value)

    log_activity(db, principal.user_id, "updated_user", "user", user.id, {
        key: (str(value) if value is not None else None) for key, value in updates.items()
    })
    commit_or_conflict(db, "Email already exists")
    db.refresh(user)

    return UserResponse(user=UserGet.model_validate(user))


@user_router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    user = get_or_404(db, User, user_id, "User not found")

    if user.id == principal.user_id:
        raise BadRequestException("You cannot delete your own account")

    require_access(principal, Action.DELETE, user, db)

    if db.query(User.id).filter(User.created_by == user.id).first() is not None:
        raise BadRequestException("Reassign managed users first")

    username, role = user.username, user.role.value
    db.delete(user)
    log_activity(db, principal.user_id, "deleted_user", "user", user_id, {"username": username, "role": role})
    db.commit()

    logger.info(f"User {username} deleted by {principal.user_id}")
    return MessageResponse(message="User deleted")
