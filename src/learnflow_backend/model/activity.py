from sqlalchemy import JSON, Column, DateTime, ForeignKey, String

from learnflow_backend.utils import new_id, utcnow
from .base import Base


class ActivityLog(Base):
    __tablename__ = 'activity_log'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(ForeignKey('user.id', ondelete='SET NULL'), index=True)
    action = Column(String(63), nullable=False)
    target_type = Column(String(63))
    target_id = Column(String(36))
    details = Column("metadata", JSON)
    created_at = Column(DateTime(True), nullable=False, default=utcnow, index=True)
