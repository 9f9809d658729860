import logging
from typing import Any, Optional, Type
from sqlalchemy import exc
from sqlalchemy.orm import Session

from learnflow_backend.api.exceptions import ConflictException, NotFoundException

logger = logging.getLogger(__name__)


def get_or_404(db: Session, model: Type[Any], id: Optional[str], detail: Optional[str] = None):
    item = db.query(model).filter(model.id == id).first() if id else None
    if item is None:
        raise NotFoundException(detail=detail or f"{model.__name__} not found")
    return item


def commit_or_conflict(db: Session, detail: str = "Conflicts with an existing record"):
    """Commit the unit of work; unique/foreign-key violations become a ConflictException."""
    write_or_conflict(db.commit, db, detail)


def flush_or_conflict(db: Session, detail: str = "Conflicts with an existing record"):
    write_or_conflict(db.flush, db, detail)


def write_or_conflict(write, db: Session, detail: str):
    try:
        write()
    except exc.IntegrityError as e:
        db.rollback()
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
        logger.info(f"Integrity error: {error_msg.splitlines()[0] if error_msg else e}")
        raise ConflictException(detail=detail)


def apply_updates(item: Any, updates: dict) -> bool:
    changed = False
    for key, value in updates.items():
        if getattr(item, key) != value:
            setattr(item, key, value)
            changed = True
    return changed
