"""
Entry points of the access-control layer.

Route handlers ask ``require_access`` before touching a concrete entity and
``check_permissions`` to obtain a query restricted to what the principal may list.
"""

from typing import Any, Type
from sqlalchemy.orm import Session, Query

from learnflow_backend.api.exceptions import ForbiddenException, NotFoundException
from learnflow_backend.model.auth import User
from learnflow_backend.model.content import Course, Index, Lecture, LectureFile, Section
from learnflow_backend.permissions.handlers import AccessDecision, Action, Deny, permission_registry
from learnflow_backend.permissions.handlers_impl import (
    CoursePermissionHandler,
    IndexPermissionHandler,
    LectureFilePermissionHandler,
    LecturePermissionHandler,
    SectionPermissionHandler,
    UserPermissionHandler,
)
from learnflow_backend.permissions.principal import Principal


def initialize_permission_handlers():
    """Initialize and register all permission handlers"""

    permission_registry.register(User, UserPermissionHandler(User))

    permission_registry.register(Index, IndexPermissionHandler(Index))
    permission_registry.register(Course, CoursePermissionHandler(Course))
    permission_registry.register(Section, SectionPermissionHandler(Section))
    permission_registry.register(Lecture, LecturePermissionHandler(Lecture))
    permission_registry.register(LectureFile, LectureFilePermissionHandler(LectureFile))


def can_access(principal: Principal, action: Action, instance: Any, db: Session) -> AccessDecision:
    return permission_registry.can_access(principal, action, instance, db)


def require_access(principal: Principal, action: Action, instance: Any, db: Session, not_found: str = "Not found"):
    """Raise the matching HTTP error unless the principal may act on instance."""

    if instance is None:
        raise NotFoundException(detail=not_found)

    decision = can_access(principal, action, instance, db)

    if isinstance(decision, Deny):
        if decision.hidden:
            raise NotFoundException(detail=decision.reason)
        raise ForbiddenException(detail=decision.reason)

    return instance


def check_permissions(principal: Principal, entity: Type[Any], action: Action, db: Session) -> Query:
    return permission_registry.check_permissions(principal, entity, action, db)


initialize_permission_handlers()
