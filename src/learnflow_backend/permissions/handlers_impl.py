from typing import Any
from sqlalchemy.orm import Session, Query

from learnflow_backend.api.exceptions import ForbiddenException
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.assignment import IndexAssignment
from learnflow_backend.model.auth import User
from learnflow_backend.model.content import Course, Index
from learnflow_backend.permissions.handlers import AccessDecision, Action, Allow, Deny, PermissionHandler
from learnflow_backend.permissions.ownership import content_course, content_owner_id
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.services.assignments import has_course_access, resolve_assigned_course_ids


class ContentPermissionHandler(PermissionHandler):
    """Ownership rules shared by every node of the Index > Course > Section > Lecture > File tree.

    Admins read everything but author nothing. Trainers and CRM staff have full
    control over nodes whose traced owner is themselves. Learners get read-only
    access through the parent course's assignment rule.
    """

    label = "content"

    def can_perform_action(self, principal: Principal, action: Action, instance: Any, db: Session) -> AccessDecision:

        if self.check_admin(principal):
            if action == Action.READ:
                return Allow()
            return Deny(reason="Administrators cannot modify course content")

        if principal.is_author:
            if content_owner_id(instance) == principal.user_id:
                return Allow()
            return Deny(reason=f"You do not have access to this {self.label}")

        if principal.is_learner:
            if action != Action.READ:
                return Deny(reason=f"You cannot modify this {self.label}")
            return self.learner_read(principal, instance, db)

        return Deny()

    def learner_read(self, principal: Principal, instance: Any, db: Session) -> AccessDecision:
        course = content_course(instance)
        if course is None:
            return Deny()
        if not course.is_active:
            return Deny(reason="Course not available", hidden=True)
        if has_course_access(db, principal.user_id, course):
            return Allow()
        return Deny(reason="Not assigned to this course")


class IndexPermissionHandler(ContentPermissionHandler):

    label = "index"

    def learner_read(self, principal: Principal, instance: Any, db: Session) -> AccessDecision:
        if not instance.is_active:
            return Deny(reason="Index not available", hidden=True)
        assigned = (
            db.query(IndexAssignment.id)
            .filter(IndexAssignment.user_id == principal.user_id, IndexAssignment.index_id == instance.id)
            .first()
        )
        if assigned is not None:
            return Allow()
        return Deny(reason="Not assigned to this index")

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if self.check_admin(principal) and action == Action.READ:
            return db.query(Index)

        if principal.is_author:
            return db.query(Index).filter(Index.created_by == principal.user_id)

        if principal.is_learner and action == Action.READ:
            return (
                db.query(Index)
                .join(IndexAssignment, IndexAssignment.index_id == Index.id)
                .filter(IndexAssignment.user_id == principal.user_id, Index.is_active.is_(True))
            )

        raise ForbiddenException()


class CoursePermissionHandler(ContentPermissionHandler):

    label = "course"

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if self.check_admin(principal) and action == Action.READ:
            return db.query(Course)

        if principal.is_author:
            return db.query(Course).filter(Course.created_by == principal.user_id)

        if principal.is_learner and action == Action.READ:
            course_ids = resolve_assigned_course_ids(db, principal.user_id)
            return db.query(Course).filter(Course.id.in_(course_ids))

        raise ForbiddenException()


class SectionPermissionHandler(ContentPermissionHandler):
    label = "section"


class LecturePermissionHandler(ContentPermissionHandler):
    label = "lecture"


class LectureFilePermissionHandler(ContentPermissionHandler):
    label = "file"


class UserPermissionHandler(PermissionHandler):
    """Managed-user rules: admins manage every non-admin, trainers and CRM staff
    manage the accounts they created, everyone may read themselves."""

    def can_perform_action(self, principal: Principal, action: Action, instance: Any, db: Session) -> AccessDecision:

        if action == Action.CREATE:
            if principal.can_manage(instance.role):
                return Allow()
            return Deny(reason="You do not have permission to create this user type")

        is_self = instance.id == principal.user_id

        if action == Action.READ:
            if is_self or self.check_admin(principal) or self._is_creator(principal, instance):
                return Allow()
            return Deny(reason="You do not manage this user")

        if action == Action.DELETE and is_self:
            return Deny(reason="You cannot delete your own account")

        if instance.role == UserRole.ADMIN:
            return Deny(reason="Administrator accounts cannot be modified")

        if self.check_admin(principal) or self._is_creator(principal, instance):
            return Allow()

        return Deny(reason="You do not manage this user")

    def _is_creator(self, principal: Principal, instance: User) -> bool:
        return principal.is_author and instance.created_by == principal.user_id

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if self.check_admin(principal):
            return db.query(User).filter(User.role != UserRole.ADMIN)

        if principal.is_author:
            return db.query(User).filter(User.created_by == principal.user_id)

        raise ForbiddenException()
