from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class SuccessOut(BaseModel):
    success: bool = True


class ErrorOut(BaseModel):
    error: str
    details: Optional[Any] = None
