from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session


def store_failure(db: Session, message: str) -> HTTPException:
    """Roll back the request session and build the generic 500 for a failed store call."""
    db.rollback()
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


class ErrorWithDetails(HTTPException):
    """HTTPException whose envelope carries an extra `details` field."""

    def __init__(self, status_code: int, message: str, details: Optional[Any] = None) -> None:
        super().__init__(status_code=status_code, detail=message)
        self.details = details
