from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from learnflow_backend.utils import new_id, utcnow
from .base import Base


class LectureProgress(Base):
    __tablename__ = 'lecture_progress'
    __table_args__ = (
        UniqueConstraint('user_id', 'lecture_id', name='uq_lecture_progress_user_lecture'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    lecture_id = Column(ForeignKey('lecture.id', ondelete='CASCADE'), nullable=False, index=True)
    time_spent_seconds = Column(Integer, nullable=False, default=0)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(True))
    last_watched_at = Column(DateTime(True))

    user = relationship("User", back_populates="progress")
    lecture = relationship("Lecture", back_populates="progress")


class FileDownload(Base):
    __tablename__ = 'file_download'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    file_id = Column(ForeignKey('lecture_file.id', ondelete='CASCADE'), nullable=False, index=True)
    downloaded_at = Column(DateTime(True), nullable=False, default=utcnow)

    user = relationship("User", back_populates="downloads")
    file = relationship("LectureFile", back_populates="downloads")
