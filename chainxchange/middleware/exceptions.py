from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from chainxchange.core.exceptions import MarketDataError
from chainxchange.schemas.response import ErrorDetail, ErrorResponse, error_code_for
from datetime import datetime, timezone
import logging
import uuid

logger = logging.getLogger(__name__)

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())

def _error_response(request: Request, request_id: str, code: str, message: str, details=None) -> dict:
    error_response = ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details),
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=str(request.url),
        request_id=request_id
    )
    return jsonable_encoder(error_response)

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = _request_id(request)
    content = _error_response(
        request, request_id, error_code_for(422), "Request validation failed",
        details={"validation_errors": exc.errors()}
    )
    logger.warning(f"[{request_id}] Validation error: {exc.errors()}", extra={"request_id": request_id})
    return JSONResponse(status_code=422, content=content)

async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = _request_id(request)
    content = _error_response(
        request, request_id, error_code_for(exc.status_code),
        exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    )
    logger.warning(f"[{request_id}] HTTP {exc.status_code}: {exc.detail}", extra={"request_id": request_id})
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

async def market_data_exception_handler(request: Request, exc: MarketDataError):
    request_id = _request_id(request)
    content = _error_response(
        request, request_id, error_code_for(503), "Market data temporarily unavailable",
        details={"error_type": type(exc).__name__}
    )
    logger.error(f"[{request_id}] Market data error: {exc}", extra={"request_id": request_id})
    return JSONResponse(status_code=503, content=content)

async def global_exception_handler(request: Request, exc: Exception):
    request_id = _request_id(request)
    content = _error_response(
        request, request_id, error_code_for(500), "An unexpected error occurred",
        details={"error_type": type(exc).__name__}
    )
    logger.error(f"[{request_id}] Unhandled exception: {exc}", exc_info=True, extra={"request_id": request_id})
    return JSONResponse(status_code=500, content=content)
