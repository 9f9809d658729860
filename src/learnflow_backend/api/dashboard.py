import logging
from typing import Annotated, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnflow_backend.api.crud import get_or_404
from learnflow_backend.api.exceptions import BadRequestException, ForbiddenException
from learnflow_backend.database import get_db
from learnflow_backend.interface.dashboard import AdminDashboard, LearnerDashboard, StaffDashboard
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.auth import User
from learnflow_backend.permissions.auth import get_current_principal
from learnflow_backend.permissions.principal import Principal
from learnflow_backend.services.dashboard import admin_dashboard, learner_dashboard, staff_dashboard

logger = logging.getLogger(__name__)

dashboard_router = APIRouter()


def dashboard_subject(db: Session, principal: Principal, roles: frozenset, user_id: Optional[str]) -> User:
    """The user whose dashboard is shown. Only admins may look at somebody else's."""

    if principal.is_admin:
        if not user_id:
            raise BadRequestException("user_id is required")
        user = get_or_404(db, User, user_id, "User not found")
        if user.role not in roles:
            raise BadRequestException("User does not match this dashboard")
        return user

    if principal.role not in roles or (user_id and user_id != principal.user_id):
        raise ForbiddenException("Forbidden")

    return get_or_404(db, User, principal.user_id, "User not found")


@dashboard_router.get("/admin", response_model=AdminDashboard)
def get_admin_dashboard(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
):
    if not principal.is_admin:
        raise ForbiddenException("Forbidden")
    return admin_dashboard(db)


@dashboard_router.get("/trainer", response_model=StaffDashboard)
def get_trainer_dashboard(
    principal: Annotated[Principal, Depends(get_current_principal)],
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    trainer = dashboard_subject(db, principal, frozenset({UserRole.TRAINER}), user_id)
    return staff_dashboard(db, trainer)


@dashboard_router.get("/crm", response_model=StaffDashboard)
def get_crm_dashboard(
    principal: Annotated[Principal, Depends(get_current_principal)],
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    crm = dashboard_subject(db, principal, frozenset({UserRole.CRM}), user_id)
    return staff_dashboard(db, crm)


@dashboard_router.get("/learner", response_model=LearnerDashboard)
def get_learner_dashboard(
    principal: Annotated[Principal, Depends(get_current_principal)],
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    learner = dashboard_subject(db, principal, frozenset({UserRole.CANDIDATE, UserRole.OTHER}), user_id)
    return learner_dashboard(db, learner)
