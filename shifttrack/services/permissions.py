"""
Permission checking service.
Callers may read their own records; manager operations are scoped to the
manager's organization.
"""
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..models.models import ROLE_MANAGER, User
from .errors import Forbidden, Unauthorized


class Caller(BaseModel):
    """Identity of the current request, as resolved by the auth layer."""
    model_config = ConfigDict(frozen=True)

    user_id: uuid.UUID
    role: str
    organization_id: uuid.UUID

    @classmethod
    def from_user(cls, user: User) -> "Caller":
        return cls(
            user_id=user.id,
            role=user.role,
            organization_id=user.organization_id,
        )

    @property
    def is_manager(self) -> bool:
        return self.role == ROLE_MANAGER


def require_caller(caller: Optional[Caller]) -> Caller:
    if caller is None:
        raise Unauthorized()
    return caller


def require_manager(caller: Optional[Caller]) -> Caller:
    caller = require_caller(caller)
    if not caller.is_manager:
        raise Forbidden("Unauthorized: Only managers can perform this action.")
    return caller


def ensure_same_organization(caller: Caller, user: Optional[User]) -> User:
    """
    Check that a target user belongs to the caller's organization.
    Unknown users are reported the same way as foreign ones.
    """
    if user is None or user.organization_id != caller.organization_id:
        raise Forbidden("Cannot access a user outside your organization.")
    return user
