from typing import Optional
from pydantic import BaseModel, model_validator

from learnflow_backend.interface.roles import UserRole
from learnflow_backend.permissions.roles import can_manage, is_content_author, is_learner


class Principal(BaseModel):
    """The authenticated actor of a request, derived from a valid session"""

    user_id: str
    role: UserRole
    username: Optional[str] = None
    session_id: Optional[str] = None

    is_admin: bool = False

    @model_validator(mode='after')
    def set_admin_flag(self):
        self.is_admin = self.role == UserRole.ADMIN
        return self

    @property
    def is_learner(self) -> bool:
        return is_learner(self.role)

    @property
    def is_author(self) -> bool:
        return is_content_author(self.role)

    def can_manage(self, target_role: UserRole | str) -> bool:
        return can_manage(self.role, target_role)
