"""
ReviewDesk API Response Utilities
Standardized response format and error handling
"""
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

from .exceptions import ReviewDeskError
from .logging_config import api_logger


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================
# SUCCESS RESPONSES
# ============================================================

def success(data: Any = None, message: str = None, meta: Dict = None) -> Dict:
    """Create success response"""
    response = {
        "ok": True,
        "timestamp": _timestamp(),
    }

    if data is not None:
        response["data"] = data

    if message:
        response["message"] = message

    if meta:
        response["meta"] = meta

    return response


def deleted(message: str = "Deleted successfully") -> Dict:
    """200 Deleted response"""
    return success(message=message)


# ============================================================
# ERROR RESPONSES
# ============================================================

def error_body(message: str, error_code: str, details: Optional[Dict] = None) -> Dict:
    body = {
        "ok": False,
        "error": message,
        "error_code": error_code,
        "timestamp": _timestamp(),
    }
    if details is not None:
        body["details"] = details
    return body


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

async def domain_exception_handler(request: Request, exc: ReviewDeskError) -> JSONResponse:
    """Render domain errors with their mapped status."""
    log = api_logger.warning if exc.status_code < 500 else api_logger.error
    log(
        f"API Error: {exc.message}",
        status_code=exc.status_code,
        error_code=exc.error_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.error_code, exc.details),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and unparseable timestamps are user-correctable (400)."""
    errors: List[Dict[str, Any]] = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})

    api_logger.warning(
        "Request validation failed",
        path=request.url.path,
        errors=errors,
    )
    return JSONResponse(
        status_code=400,
        content=error_body("Invalid request", "VALIDATION_ERROR", {"errors": errors}),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    api_logger.warning(
        f"HTTP Error: {exc.detail}",
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), f"HTTP_{exc.status_code}"),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log full context, return a generic 500."""
    api_logger.error(
        f"Unexpected error: {exc}",
        error=exc,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=500,
        content=error_body("An unexpected error occurred", "INTERNAL_ERROR"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReviewDeskError, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
