from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError, HTTPException
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from api.utils.logger import logger
from api.utils.exceptions import BaseAPIException, ValidationFailedException


def _failure(status_code: int, message: str, error: dict | None = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "failure",
            "status_code": status_code,
            "message": message,
            "error": jsonable_encoder(error or {}),
        },
        headers=headers,
    )


async def base_api_exception_handler(request: Request, exc: BaseAPIException):
    """Handle custom API exceptions and log them."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.__class__.__name__}: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _failure(exc.status_code, exc.detail, exc.error, headers=exc.headers)


def _field_name(loc: tuple) -> str:
    # ("body", "email") -> "email"; ("path", "id") -> "id"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "body"


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """Reformat pydantic errors into per-field messages."""
    details = [
        {
            "field": _field_name(tuple(err.get("loc", ()))),
            "message": str(err.get("msg", "Invalid value")).removeprefix("Value error, "),
        }
        for err in exc.errors()
    ]
    return await base_api_exception_handler(request, ValidationFailedException(details))


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTPException and log them."""
    logger.warning(
        f"HTTP {exc.status_code}: {exc.detail}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _failure(exc.status_code, str(exc.detail), headers=exc.headers)


async def general_exception_handler(request: Request, exc: Exception):
    """Log unexpected exceptions with traceback; never leak internals to the client."""
    logger.exception(
        f"Unhandled exception on {request.method} {request.url.path}: {exc!r}",
        exc_info=exc,
    )
    return _failure(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again.",
    )


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """429 in the standard failure envelope."""
    logger.warning(f"Rate limit hit on {request.method} {request.url.path}: {exc.detail}")
    return _failure(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too many requests. Please try again later.",
        {"limit": str(exc.detail)},
    )
