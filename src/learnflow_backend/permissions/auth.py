"""
Session-cookie authentication.

The cookie carries ``{"sessionId", "userId"}`` (base64 encoded JSON). It is never
trusted on its own: every request re-reads the session row and the user.
"""

import base64
import binascii
import json
import logging
from typing import Annotated, Optional
from fastapi import Depends, Request
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from learnflow_backend.api.exceptions import ForbiddenException, UnauthorizedException
from learnflow_backend.database import get_db
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.auth import User, UserSession
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.services.sessions import SessionRepository, get_session_repository
from learnflow_backend.settings import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


def encode_session_cookie(session_id: str, user_id: str) -> str:
    payload = json.dumps({"sessionId": session_id, "userId": user_id}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode()).decode()


def decode_session_cookie(value: Optional[str]) -> Optional[dict]:
    if not value:
        return None
    try:
        data = json.loads(base64.urlsafe_b64decode(value.encode()).decode())
    except (ValueError, UnicodeDecodeError, binascii.Error):
        logger.info("Discarding malformed session cookie")
        return None
    if not isinstance(data, dict) or not data.get("sessionId") or not data.get("userId"):
        return None
    return data


class PrincipalBuilder:
    """Builder for creating Principal objects from a stored session"""

    @staticmethod
    def build(session: UserSession, user: User) -> Principal:
        return Principal(
            user_id=user.id,
            role=user.role,
            username=user.username,
            session_id=session.id,
        )


def authenticate_request(request: Request, sessions: SessionRepository) -> tuple[UserSession, User]:
    cookie = decode_session_cookie(request.cookies.get(settings.SESSION_COOKIE_NAME))
    if cookie is None:
        raise UnauthorizedException("Unauthorized")

    session = sessions.lookup_session(cookie["sessionId"])
    if session is None or session.user_id != cookie["userId"]:
        raise UnauthorizedException("Unauthorized")

    user = session.user
    if user is None or not user.is_active:
        raise UnauthorizedException("Unauthorized")

    return session, user


def get_current_principal(
    request: Request,
    sessions: Annotated[SessionRepository, Depends(get_session_repository)],
) -> Principal:
    """Main dependency for getting the current authenticated principal."""
    session, user = authenticate_request(request, sessions)
    return PrincipalBuilder.build(session, user)


def get_current_user(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
) -> User:
    user = db.query(User).filter(User.id == principal.user_id).first()
    if user is None:
        raise UnauthorizedException("Unauthorized")
    return user


def require_roles(*roles: UserRole):
    """Dependency factory limiting an endpoint to the given roles."""

    allowed = frozenset(roles)

    def dependency(principal: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
        if principal.role not in allowed:
            raise ForbiddenException("Forbidden")
        return principal

    return dependency
