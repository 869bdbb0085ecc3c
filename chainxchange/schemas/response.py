from pydantic import BaseModel, Field
from typing import Any, Dict, Generic, Optional, TypeVar

Payload = TypeVar("Payload")

# HTTP status -> machine-readable code carried in ErrorDetail.code
ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_SERVER_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
}


def error_code_for(status_code: int) -> str:
    return ERROR_CODES.get(status_code, f"HTTP_{status_code}")


class APIResponse(BaseModel, Generic[Payload]):
    """Envelope for every successful ChainXchange response.

    Market views that fell back to placeholder prices still answer through
    this envelope; ``message`` then says so and the payload carries ``live=False``.
    """
    message: str = Field(..., description="What happened, e.g. 'Purchase successful' or a fallback warning.")
    data: Optional[Payload] = Field(None, description="Trade result, portfolio, market list or other payload.")

class ErrorDetail(BaseModel):
    code: str = Field(..., description="One of ERROR_CODES, e.g. SERVICE_UNAVAILABLE when CoinGecko is down")
    message: str = Field(..., description="Message shown to the trader, e.g. 'Insufficient funds'")
    details: Optional[Dict[str, Any]] = Field(None, description="Validation errors or the failing error type")

class ErrorResponse(BaseModel):
    error: ErrorDetail
    timestamp: str = Field(..., description="ISO 8601 UTC time the error was rendered")
    path: str = Field(..., description="Full URL of the failed request")
    request_id: Optional[str] = Field(None, description="Matches the X-Request-ID response header")
