from __future__ import annotations

from fastapi import Header, status

from chip_settle.api.errors import api_error
from chip_settle.runtime import get_services

__all__ = ["current_user_id", "get_services"]


def current_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    """Identity is established upstream; this only reads who is calling."""
    user_id = x_user_id.strip()
    if not user_id:
        raise api_error(
            code="invalid_user_id",
            message="X-User-Id header must not be blank",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )
    return user_id
