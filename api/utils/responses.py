"""
Response envelope helpers.

Every successful route answers with the same shape:
    {"status": "success", "status_code": ..., "message": ..., "data": ...}
"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(
    status_code: int = 200,
    message: str = "OK",
    data: Optional[Any] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "success",
            "status_code": status_code,
            "message": message,
            "data": jsonable_encoder(data) if data is not None else None,
        },
    )


def auth_response(
    status_code: int,
    message: str,
    user: dict[str, Any],
    token: str,
) -> JSONResponse:
    """Success envelope carrying the account and a fresh session token."""
    return success_response(
        status_code=status_code,
        message=message,
        data={"user": user, "token": token},
    )
