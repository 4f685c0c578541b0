from __future__ import annotations

from fastapi import Depends, HTTPException, status

from priceportal.core.context import AuthContext
from priceportal.dependencies.auth import get_auth_context


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def require_staff(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """admin OR operator: read / approve style endpoints"""
    if not ctx.is_staff:
        raise _forbidden("Admin/Operator only")
    return ctx


def require_admin(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """admin: destructive / configuration endpoints"""
    if not ctx.is_admin:
        raise _forbidden("Admin only")
    return ctx
