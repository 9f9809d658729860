from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Literal, Optional, Type, Union
from pydantic import BaseModel
from sqlalchemy.orm import Session, Query

from learnflow_backend.permissions.principal import Principal
from learnflow_backend.api.exceptions import ForbiddenException


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Allow(BaseModel):
    allowed: Literal[True] = True

    def __bool__(self) -> bool:
        return True


class Deny(BaseModel):
    """A refused action.

    ``hidden`` marks denials that must look like the entity does not exist
    (answered with 404 instead of 403).
    """
    allowed: Literal[False] = False
    reason: str = "Forbidden"
    hidden: bool = False

    def __bool__(self) -> bool:
        return False


AccessDecision = Union[Allow, Deny]


class PermissionHandler(ABC):
    """Base class for entity-specific permission handlers"""

    def __init__(self, entity: Type[Any]):
        self.entity = entity
        self.resource_name = entity.__tablename__

    @abstractmethod
    def can_perform_action(self, principal: Principal, action: Action, instance: Any, db: Session) -> AccessDecision:
        """Decide whether principal may perform action on a concrete instance.

        For ``Action.CREATE`` the instance is the not yet persisted entity with its
        parent relationship populated.
        """
        pass

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        """Build a query restricted to the rows the principal may see"""
        if self.check_admin(principal) and action == Action.READ:
            return db.query(self.entity)
        raise ForbiddenException()

    def check_admin(self, principal: Principal) -> bool:
        return principal.is_admin


class PermissionRegistry:
    """Registry for managing entity permission handlers"""

    _instance = None
    _handlers: Dict[Type[Any], PermissionHandler] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def register(self, entity: Type[Any], handler: PermissionHandler):
        self._handlers[entity] = handler

    def get_handler(self, entity: Type[Any]) -> Optional[PermissionHandler]:
        return self._handlers.get(entity)

    def can_access(self, principal: Principal, action: Action, instance: Any, db: Session) -> AccessDecision:
        handler = self.get_handler(type(instance))
        if handler is None:
            return Deny(reason="Forbidden")
        return handler.can_perform_action(principal, action, instance, db)

    def check_permissions(self, principal: Principal, entity: Type[Any], action: Action, db: Session) -> Query:
        handler = self.get_handler(entity)
        if not handler:
            if not principal.is_admin:
                raise ForbiddenException()
            return db.query(entity)

        return handler.build_query(principal, action, db)


# Global registry instance
permission_registry = PermissionRegistry()
