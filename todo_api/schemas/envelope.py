from pydantic import BaseModel
from typing import Any, Generic, Optional, TypeVar
import time

T = TypeVar("T")


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    error: Optional[ErrorDetail] = None
    message: Optional[str] = None
    timestamp: int
    request_id: Optional[str] = None


def _now_ms() -> int:
    return int(time.time() * 1000)


def ok(data: Any = None, request_id: Optional[str] = None, message: Optional[str] = None) -> ApiResponse:
    return ApiResponse(data=data, message=message, timestamp=_now_ms(), request_id=request_id)


def fail(code: str, message: str, request_id: Optional[str] = None, details: Any = None) -> ApiResponse:
    return ApiResponse(
        success=False,
        error=ErrorDetail(code=code, message=message, details=details),
        timestamp=_now_ms(),
        request_id=request_id,
    )
