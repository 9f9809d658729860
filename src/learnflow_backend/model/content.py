from sqlalchemy import (
    BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from learnflow_backend.utils import new_id, utcnow
from .base import Base


class Index(Base):
    __tablename__ = 'content_index'

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(True), nullable=False, default=utcnow, onupdate=utcnow)
    created_by = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)

    owner = relationship("User", back_populates="indexes")
    courses = relationship(
        "Course", back_populates="index", cascade="all, delete-orphan",
        order_by="Course.title", lazy="select"
    )
    assignments = relationship("IndexAssignment", back_populates="index", cascade="all, delete-orphan", lazy="select")


class Course(Base):
    __tablename__ = 'course'

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(True), nullable=False, default=utcnow, onupdate=utcnow)
    index_id = Column(ForeignKey('content_index.id', ondelete='CASCADE'), nullable=False, index=True)
    created_by = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    thumbnail_url = Column(String(2048))
    is_active = Column(Boolean, nullable=False, default=True)

    index = relationship("Index", back_populates="courses")
    sections = relationship(
        "Section", back_populates="course", cascade="all, delete-orphan",
        order_by="Section.order_index", lazy="select"
    )
    assignments = relationship("CourseAssignment", back_populates="course", cascade="all, delete-orphan", lazy="select")


class Section(Base):
    __tablename__ = 'section'
    __table_args__ = (
        UniqueConstraint('course_id', 'order_index', name='uq_section_course_order'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    course_id = Column(ForeignKey('course.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    order_index = Column(Integer, nullable=False, default=0)

    course = relationship("Course", back_populates="sections")
    lectures = relationship(
        "Lecture", back_populates="section", cascade="all, delete-orphan",
        order_by="Lecture.order_index", lazy="select"
    )


class Lecture(Base):
    __tablename__ = 'lecture'

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(True), nullable=False, default=utcnow, onupdate=utcnow)
    section_id = Column(ForeignKey('section.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    youtube_url = Column(String(2048))
    video_storage_path = Column(String(1024))
    video_mime_type = Column(String(255))
    order_index = Column(Integer, nullable=False, default=0)
    duration_seconds = Column(Integer, nullable=False, default=0)

    section = relationship("Section", back_populates="lectures")
    files = relationship(
        "LectureFile", back_populates="lecture", cascade="all, delete-orphan",
        order_by="LectureFile.created_at", lazy="select"
    )
    progress = relationship("LectureProgress", back_populates="lecture", cascade="all, delete-orphan", lazy="select")


class LectureFile(Base):
    __tablename__ = 'lecture_file'

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, default=utcnow)
    lecture_id = Column(ForeignKey('lecture.id', ondelete='CASCADE'), nullable=False, index=True)
    uploaded_by = Column(ForeignKey('user.id', ondelete='SET NULL'))
    file_name = Column(String(255), nullable=False)
    storage_path = Column(String(1024), nullable=False)
    file_size = Column(BigInteger, nullable=False, default=0)
    file_type = Column(String(255))

    lecture = relationship("Lecture", back_populates="files")
    downloads = relationship("FileDownload", back_populates="file", cascade="all, delete-orphan", lazy="select")
