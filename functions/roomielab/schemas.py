"""
Pydantic response envelopes shared by every route.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class ApiResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Any = None


class FieldErrorDetail(BaseModel):
    field: str
    location: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    errors: Optional[list[FieldErrorDetail]] = None
    stack: Optional[str] = None


def ok(data: Any = None, message: Optional[str] = None) -> ApiResponse:
    return ApiResponse(success=True, message=message, data=data)
