from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    TRAINER = "trainer"
    CRM = "crm"
    CANDIDATE = "candidate"
    OTHER = "other"


LEARNER_ROLES = frozenset({UserRole.CANDIDATE, UserRole.OTHER})
AUTHOR_ROLES = frozenset({UserRole.TRAINER, UserRole.CRM})
