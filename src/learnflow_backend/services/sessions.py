import logging
from datetime import datetime, timedelta
from typing import Optional
from fastapi import Depends
from sqlalchemy.orm import Session

from learnflow_backend.database import get_db
from learnflow_backend.model.auth import UserSession
from learnflow_backend.settings import settings
from learnflow_backend.utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


def is_session_valid(session: UserSession, now: Optional[datetime] = None, max_age_days: Optional[int] = None) -> bool:
    if session.logout_at is not None:
        return False
    now = now or utcnow()
    max_age = timedelta(days=max_age_days if max_age_days is not None else settings.SESSION_MAX_AGE_DAYS)
    return now - ensure_utc(session.login_at) < max_age


class SessionRepository:
    """Store-backed login sessions; the cookie only carries the ids."""

    def __init__(self, db: Session):
        self.db = db

    def create_session(self, user_id: str, ip_address: Optional[str] = None) -> UserSession:
        session = UserSession(user_id=user_id, ip_address=ip_address, login_at=utcnow())
        self.db.add(session)
        self.db.flush()
        logger.info(f"Session {session.id} opened for user {user_id}")
        return session

    def lookup_session(self, session_id: str) -> Optional[UserSession]:
        if not session_id:
            return None
        session = self.db.query(UserSession).filter(UserSession.id == session_id).first()
        if session is None or not is_session_valid(session):
            return None
        return session

    def invalidate_session(self, session_id: str) -> bool:
        session = self.db.query(UserSession).filter(UserSession.id == session_id).first()
        if session is None or session.logout_at is not None:
            return False
        session.logout_at = utcnow()
        self.db.flush()
        logger.info(f"Session {session_id} closed")
        return True


def get_session_repository(db: Session = Depends(get_db)) -> SessionRepository:
    return SessionRepository(db)
