"""
API error mapping - Domain error kinds to HTTP responses.

Routes let domain exceptions propagate; a single handler turns each
ErrorKind into a status code and a JSON body.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.models import ErrorResponse
from src.domain.exceptions import AccountError, ErrorKind

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.NO_OTP: status.HTTP_400_BAD_REQUEST,
    ErrorKind.OTP_EXPIRED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_OTP: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_OR_EXPIRED_CODE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ALREADY_VERIFIED: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_ACTIVE: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    """Render a domain error as {"error": kind, "detail": message}."""
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    if exc.kind is ErrorKind.UNAVAILABLE:
        logger.warning("Store unavailable on %s %s", request.method, request.url.path)

    headers = {"WWW-Authenticate": "Bearer"} if exc.kind is ErrorKind.UNAUTHORIZED else None
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=exc.kind.value, detail=exc.message).model_dump(),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AccountError, account_error_handler)
