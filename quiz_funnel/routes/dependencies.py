"""Request-scoped dependencies shared by the routers."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException

from quiz_funnel.models.tenant import ROLE_ADMIN, ROLE_USER, TenantContext


def tenant_context(
    x_principal_id: Optional[int] = Header(default=None),
    x_principal_role: Optional[str] = Header(default=None),
    x_shop_id: Optional[int] = Header(default=None),
) -> TenantContext:
    """Build the tenant from headers forwarded by the authentication layer.

    Missing headers yield an anonymous tenant; the ownership gate rejects it.
    """
    if x_principal_id is not None and x_shop_id is not None:
        raise HTTPException(
            status_code=400,
            detail={
                "title": "Bad Request",
                "status": 400,
                "detail": "X-Principal-Id and X-Shop-Id are mutually exclusive",
            },
        )
    role = (x_principal_role or ROLE_USER).strip().lower()
    if role not in (ROLE_USER, ROLE_ADMIN):
        raise HTTPException(
            status_code=400,
            detail={"title": "Bad Request", "status": 400, "detail": f"Unknown principal role: {role}"},
        )
    if role == ROLE_ADMIN and x_principal_id is None:
        raise HTTPException(
            status_code=400,
            detail={"title": "Bad Request", "status": 400, "detail": "Admin role requires X-Principal-Id"},
        )
    if x_shop_id is not None:
        return TenantContext(shop_id=x_shop_id, role=ROLE_USER)
    return TenantContext(user_id=x_principal_id, role=role)


__all__ = ["tenant_context"]
