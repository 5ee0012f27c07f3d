import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class RequestInvalid(Exception):
    """Raised by a route when its explicit validation fails."""

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(message)
        self.message = message
        self.errors = errors


class NoFieldsToUpdate(Exception):
    """An update request carried none of the updatable fields."""

    message = "No fields to update"


class AuthError(Exception):
    """Business-rule failure in the identity subsystem."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code


class InvalidCredentials(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_EMAIL_OR_PASSWORD"


class UserAlreadyExists(AuthError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "USER_ALREADY_EXISTS"


class UserBanned(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "BANNED_USER"


class UserNotFound(AuthError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "USER_NOT_FOUND"


def error_response(message: str, status_code: int, **extra) -> JSONResponse:
    content = {"status": "error", "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def register_error_handlers(app: FastAPI) -> None:
    """Install the JSON error envelope for every failure the API can produce."""

    @app.exception_handler(RequestInvalid)
    async def request_invalid(request: Request, exc: RequestInvalid):
        return error_response(exc.message, status.HTTP_400_BAD_REQUEST, errors=exc.errors)

    @app.exception_handler(RequestValidationError)
    async def request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        return error_response("Validation failed", status.HTTP_400_BAD_REQUEST, errors=errors)

    @app.exception_handler(NoFieldsToUpdate)
    async def no_fields_to_update(request: Request, exc: NoFieldsToUpdate):
        return error_response(exc.message, status.HTTP_422_UNPROCESSABLE_ENTITY)

    @app.exception_handler(AuthError)
    async def auth_error(request: Request, exc: AuthError):
        return error_response(exc.message, exc.status_code, code=exc.code)

    @app.exception_handler(HTTPException)
    async def http_exception(request: Request, exc: HTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "message": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)
