from .base import Base, metadata
from .auth import User, UserSession, UserInvite, PasswordReset
from .content import Index, Course, Section, Lecture, LectureFile
from .assignment import CourseAssignment, IndexAssignment
from .progress import LectureProgress, FileDownload
from .activity import ActivityLog

__all__ = [
    'Base',
    'metadata',
    'User',
    'UserSession',
    'UserInvite',
    'PasswordReset',
    'Index',
    'Course',
    'Section',
    'Lecture',
    'LectureFile',
    'CourseAssignment',
    'IndexAssignment',
    'LectureProgress',
    'FileDownload',
    'ActivityLog',
]
