"""
Request dependencies for the authenticated principal.

Authentication happens upstream: the gateway in front of this service
verifies the session and forwards the user's id and role as headers.
"""

from typing import Annotated, Optional

from fastapi import Depends, Header
from pydantic import BaseModel

from school_admin.config import ROLES
from school_admin.errors import Unauthenticated, Forbidden

UserIdHeader = Annotated[Optional[str], Header(alias="X-User-Id")]
UserRoleHeader = Annotated[Optional[str], Header(alias="X-User-Role")]


class Principal(BaseModel):
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_principal(user_id: UserIdHeader = None, role: UserRoleHeader = None) -> Principal:
    if not user_id or not role:
        raise Unauthenticated("Missing authenticated principal")
    role = role.strip().lower()
    if role not in ROLES:
        raise Forbidden("Unknown role: {}".format(role))
    return Principal(user_id=user_id.strip(), role=role)


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise Forbidden("Administrator access required")
    return principal
