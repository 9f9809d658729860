"""
Invite tokens and password-reset codes.

Both are single use and expire. Issuing a new invite for a user revokes that
user's outstanding invites; issuing a new reset code revokes the outstanding
codes for the same email.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from learnflow_backend.api.exceptions import BadRequestException, NotFoundException
from learnflow_backend.model.auth import PasswordReset, User, UserInvite
from learnflow_backend.permissions.auth import hash_password
from learnflow_backend.settings import settings
from learnflow_backend.utils import ensure_utc, generate_reset_code, utcnow

logger = logging.getLogger(__name__)


def invite_link(token: str) -> str:
    return f"{settings.APP_URL}/invite/{token}"


def issue_invite(db: Session, user: User, issued_by: Optional[str] = None, now: Optional[datetime] = None) -> UserInvite:
    if not user.email:
        raise BadRequestException("User does not have an email address")

    now = now or utcnow()

    db.query(UserInvite).filter(
        UserInvite.user_id == user.id,
        UserInvite.used_at.is_(None),
        UserInvite.revoked_at.is_(None),
    ).update({UserInvite.revoked_at: now}, synchronize_session=False)

    invite = UserInvite(
        token=str(uuid.uuid4()),
        user_id=user.id,
        email=user.email,
        created_by=issued_by,
        created_at=now,
        expires_at=now + timedelta(hours=settings.INVITE_TTL_HOURS),
    )
    db.add(invite)
    db.flush()

    logger.info(f"Issued invite for user {user.id}")
    return invite


def verify_invite(db: Session, token: str, now: Optional[datetime] = None) -> UserInvite:
    invite = db.query(UserInvite).filter(UserInvite.token == token).first()

    if invite is None or invite.used_at is not None or invite.revoked_at is not None:
        raise NotFoundException("Invite not found or already used")

    if ensure_utc(invite.expires_at) <= (now or utcnow()):
        raise BadRequestException("Invite has expired")

    return invite


def accept_invite(db: Session, token: str, password: str, now: Optional[datetime] = None) -> User:
    now = now or utcnow()
    invite = verify_invite(db, token, now)
    user = invite.user

    user.password_hash = hash_password(password)
    user.password_set = True
    invite.used_at = now
    db.flush()

    logger.info(f"Invite accepted by user {user.id}")
    return user


def issue_reset_code(db: Session, user: User, now: Optional[datetime] = None) -> PasswordReset:
    now = now or utcnow()

    db.query(PasswordReset).filter(
        PasswordReset.email == user.email,
        PasswordReset.used_at.is_(None),
        PasswordReset.revoked_at.is_(None),
    ).update({PasswordReset.revoked_at: now}, synchronize_session=False)

    reset = PasswordReset(
        user_id=user.id,
        email=user.email,
        code=generate_reset_code(),
        created_at=now,
        expires_at=now + timedelta(minutes=settings.RESET_CODE_TTL_MINUTES),
    )
    db.add(reset)
    db.flush()

    logger.info(f"Issued password reset code for user {user.id}")
    return reset


def reset_password(db: Session, email: str, code: str, password: str, now: Optional[datetime] = None) -> User:
    """Consume the most recent outstanding code for email and set the new password."""

    now = now or utcnow()

    reset = (
        db.query(PasswordReset)
        .filter(
            PasswordReset.email == email,
            PasswordReset.code == code,
            PasswordReset.revoked_at.is_(None),
        )
        .order_by(PasswordReset.created_at.desc())
        .first()
    )

    if reset is None or reset.used_at is not None:
        raise BadRequestException("Invalid or used code")

    if ensure_utc(reset.expires_at) <= now:
        raise BadRequestException("Code has expired")

    user = reset.user
    user.password_hash = hash_password(password)
    user.password_set = True
    reset.used_at = now
    db.flush()

    logger.info(f"Password reset for user {user.id}")
    return user
