from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from learnflow_backend.utils import new_id, utcnow
from .base import Base


class CourseAssignment(Base):
    __tablename__ = 'course_assignment'
    __table_args__ = (
        UniqueConstraint('user_id', 'course_id', name='uq_course_assignment_user_course'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    course_id = Column(ForeignKey('course.id', ondelete='CASCADE'), nullable=False, index=True)
    assigned_by = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)

    user = relationship("User", foreign_keys=[user_id], back_populates="course_assignments")
    course = relationship("Course", back_populates="assignments")


class IndexAssignment(Base):
    __tablename__ = 'index_assignment'
    __table_args__ = (
        UniqueConstraint('user_id', 'index_id', name='uq_index_assignment_user_index'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    index_id = Column(ForeignKey('content_index.id', ondelete='CASCADE'), nullable=False, index=True)
    assigned_by = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)

    user = relationship("User", foreign_keys=[user_id], back_populates="index_assignments")
    index = relationship("Index", back_populates="assignments")
