"""
Permission system of the LearnFlow backend.

Main components:
- roles: static role hierarchy (who may create and manage whom)
- principal: the authenticated actor of a request
- handlers: access decisions, handler interface and registry
- ownership: created_by tracing through the content tree
- handlers_impl / core: concrete handlers and the access-check entry points
- auth: session-cookie authentication producing a Principal
"""

from .roles import RoleHierarchy, role_hierarchy, can_manage, dashboard_path
from .principal import Principal
from .handlers import Action, Allow, Deny, AccessDecision, PermissionHandler, PermissionRegistry, permission_registry

__all__ = [
    "RoleHierarchy",
    "role_hierarchy",
    "can_manage",
    "dashboard_path",
    "Principal",
    "Action",
    "Allow",
    "Deny",
    "AccessDecision",
    "PermissionHandler",
    "PermissionRegistry",
    "permission_registry",
]
