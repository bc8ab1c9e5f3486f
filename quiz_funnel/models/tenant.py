"""Tenant context supplied by the authorization collaborator."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


ROLE_USER = "user"
ROLE_ADMIN = "admin"


class TenantContext(BaseModel):
    """Validated principal for one request.

    Exactly one of ``user_id`` and ``shop_id`` identifies the principal; shop
    principals never carry the admin role.
    """

    model_config = ConfigDict(frozen=True)

    user_id: Optional[int] = None
    shop_id: Optional[int] = None
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        # an admin is always an identified user
        return self.role == ROLE_ADMIN and self.user_id is not None and self.shop_id is None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None and self.shop_id is None


__all__ = ["TenantContext", "ROLE_USER", "ROLE_ADMIN"]
