from typing import Dict, FrozenSet, Optional

from learnflow_backend.interface.roles import AUTHOR_ROLES, LEARNER_ROLES, UserRole


class RoleHierarchy:
    """Static mapping of which role may create and manage which other roles"""

    DEFAULT_HIERARCHY: Dict[UserRole, FrozenSet[UserRole]] = {
        UserRole.ADMIN: frozenset({UserRole.TRAINER, UserRole.CRM}),
        UserRole.TRAINER: frozenset({UserRole.CANDIDATE}),
        UserRole.CRM: frozenset({UserRole.OTHER}),
        UserRole.CANDIDATE: frozenset(),
        UserRole.OTHER: frozenset(),
    }

    def __init__(self, hierarchy: Optional[Dict[UserRole, FrozenSet[UserRole]]] = None):
        self.hierarchy = hierarchy or self.DEFAULT_HIERARCHY

        missing = set(UserRole) - set(self.hierarchy.keys())
        if missing:
            raise ValueError(f"Role hierarchy is missing roles: {sorted(r.value for r in missing)}")

    def manageable_roles(self, role: UserRole | str) -> FrozenSet[UserRole]:
        try:
            return self.hierarchy[UserRole(role)]
        except ValueError:
            return frozenset()

    def can_manage(self, manager_role: UserRole | str, target_role: UserRole | str) -> bool:
        try:
            target = UserRole(target_role)
        except ValueError:
            return False
        return target in self.manageable_roles(manager_role)


role_hierarchy = RoleHierarchy()


def can_manage(manager_role: UserRole | str, target_role: UserRole | str) -> bool:
    return role_hierarchy.can_manage(manager_role, target_role)


def is_learner(role: UserRole | str) -> bool:
    return role in LEARNER_ROLES


def is_content_author(role: UserRole | str) -> bool:
    return role in AUTHOR_ROLES


DASHBOARD_PATHS: Dict[UserRole, str] = {
    UserRole.ADMIN: "/admin",
    UserRole.TRAINER: "/trainer",
    UserRole.CRM: "/crm",
    UserRole.CANDIDATE: "/learn",
    UserRole.OTHER: "/learn",
}


def check_dashboard_paths(paths: Dict[UserRole, str]) -> Dict[UserRole, str]:
    missing = set(UserRole) - set(paths)
    if missing:
        raise ValueError(f"Dashboard paths are missing roles: {sorted(r.value for r in missing)}")
    return paths


check_dashboard_paths(DASHBOARD_PATHS)


def dashboard_path(role: UserRole | str) -> str:
    return DASHBOARD_PATHS[UserRole(role)]
