import logging
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from learnflow_backend.model.activity import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    user_id: Optional[str],
    action: str,
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> ActivityLog:
    """Append an audit entry. The caller owns the transaction and commits it."""

    entry = ActivityLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details or {},
    )
    db.add(entry)
    logger.debug(f"activity {action} by {user_id} on {target_type}:{target_id}")
    return entry
