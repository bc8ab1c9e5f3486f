"""Ownership gate shared by every quiz-scoped operation."""

from __future__ import annotations

import logging
from typing import Optional

from quiz_funnel.logic.errors import Unauthorized
from quiz_funnel.models.tenant import TenantContext

logger = logging.getLogger(__name__)


def ensure_owner(
    tenant: TenantContext,
    *,
    quiz_id: int,
    owner_user_id: Optional[int],
    owner_shop_id: Optional[int],
) -> None:
    """Raise ``Unauthorized`` unless ``tenant`` may act on the quiz.

    Admins may act on any quiz. Shop principals must match the quiz's shop;
    user principals must match the quiz's user.
    """
    if tenant.is_admin:
        return
    if tenant.shop_id is not None:
        if owner_shop_id != tenant.shop_id:
            logger.info("ownership.denied quiz_id=%s shop_id=%s", quiz_id, tenant.shop_id)
            raise Unauthorized("Unauthorized: You do not own this quiz", quiz_id=quiz_id)
        return
    if tenant.user_id is not None:
        if owner_user_id != tenant.user_id:
            logger.info("ownership.denied quiz_id=%s user_id=%s", quiz_id, tenant.user_id)
            raise Unauthorized("Unauthorized: You do not own this quiz", quiz_id=quiz_id)
        return
    raise Unauthorized("Unauthorized: Authentication required", quiz_id=quiz_id)


__all__ = ["ensure_owner"]
