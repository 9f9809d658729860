from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import relationship

from learnflow_backend.interface.roles import UserRole
from learnflow_backend.utils import new_id, utcnow
from .base import Base


class User(Base):
    __tablename__ = 'user'

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(True), nullable=False, default=utcnow, onupdate=utcnow)
    created_by = Column(ForeignKey('user.id', ondelete='RESTRICT'), index=True)
    username = Column(String(30), nullable=False, unique=True)
    email = Column(String(320), unique=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name='user_role', values_callable=lambda roles: [r.value for r in roles]),
        nullable=False
    )
    full_name = Column(String(255))
    is_active = Column(Boolean, nullable=False, default=True)
    password_set = Column(Boolean, nullable=False, default=False)

    creator = relationship("User", remote_side=[id], back_populates="managed_users")
    managed_users = relationship("User", back_populates="creator", uselist=True, lazy="select")

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan", lazy="select")
    invites = relationship(
        "UserInvite", foreign_keys="UserInvite.user_id",
        back_populates="user", cascade="all, delete-orphan", lazy="select"
    )
    password_resets = relationship("PasswordReset", back_populates="user", cascade="all, delete-orphan", lazy="select")
    indexes = relationship("Index", back_populates="owner", cascade="all, delete-orphan", lazy="select")
    course_assignments = relationship(
        "CourseAssignment", foreign_keys="CourseAssignment.user_id",
        back_populates="user", cascade="all, delete-orphan", lazy="select"
    )
    index_assignments = relationship(
        "IndexAssignment", foreign_keys="IndexAssignment.user_id",
        back_populates="user", cascade="all, delete-orphan", lazy="select"
    )
    granted_course_assignments = relationship(
        "CourseAssignment", foreign_keys="CourseAssignment.assigned_by", cascade="all, delete-orphan", lazy="select"
    )
    granted_index_assignments = relationship(
        "IndexAssignment", foreign_keys="IndexAssignment.assigned_by", cascade="all, delete-orphan", lazy="select"
    )
    progress = relationship("LectureProgress", back_populates="user", cascade="all, delete-orphan", lazy="select")
    downloads = relationship("FileDownload", back_populates="user", cascade="all, delete-orphan", lazy="select")


class UserSession(Base):
    __tablename__ = 'user_session'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    login_at = Column(DateTime(True), nullable=False, default=utcnow, index=True)
    logout_at = Column(DateTime(True))
    ip_address = Column(String(64))

    user = relationship("User", back_populates="sessions")


class UserInvite(Base):
    __tablename__ = 'user_invite'

    id = Column(String(36), primary_key=True, default=new_id)
    token = Column(String(64), nullable=False, unique=True)
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    email = Column(String(320), nullable=False)
    created_by = Column(ForeignKey('user.id', ondelete='SET NULL'))
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(True), nullable=False)
    used_at = Column(DateTime(True))
    revoked_at = Column(DateTime(True))

    user = relationship("User", foreign_keys=[user_id], back_populates="invites")


class PasswordReset(Base):
    __tablename__ = 'password_reset'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    email = Column(String(320), nullable=False, index=True)
    code = Column(String(6), nullable=False)
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(True), nullable=False)
    used_at = Column(DateTime(True))
    revoked_at = Column(DateTime(True))

    user = relationship("User", back_populates="password_resets")
