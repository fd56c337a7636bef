"""
tracker/errors.py

Error taxonomy and FastAPI handlers.

Every error that reaches a client is rendered as {"message": ..., "errors": [...]?}.
Record-level denials reuse NotFoundError so a caller cannot tell "missing" from
"not yours".
"""

from __future__ import annotations

import traceback
from typing import List, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tracker.config import IS_DEV


class APIError(Exception):
    """Base class for errors with a defined HTTP rendering."""

    status_code = 500
    message = "Server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[str]] = None):
        self.message = message or self.message
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors is not None:
            body["errors"] = list(self.errors)
        return body


# ---------------------------------------------------------
# 401 - authentication
# ---------------------------------------------------------
class AuthError(APIError):
    status_code = 401
    message = "Invalid token."


class TokenMissingError(AuthError):
    message = "Access denied. No token provided."


class InvalidTokenError(AuthError):
    message = "Invalid token."


class TokenExpiredError(AuthError):
    message = "Token expired."


class InactiveUserError(AuthError):
    message = "Account is deactivated."


class InvalidCredentialsError(AuthError):
    message = "Invalid credentials"


# ---------------------------------------------------------
# 403 - role gates (checked before any record lookup)
# ---------------------------------------------------------
class ForbiddenError(APIError):
    status_code = 403
    message = "Access denied. Admin privileges required."


# ---------------------------------------------------------
# 400 - bad input and business rules
# ---------------------------------------------------------
class ValidationError(APIError):
    status_code = 400
    message = "Validation Error"

    def __init__(self, errors: List[str], message: Optional[str] = None):
        super().__init__(message, errors=errors)


class InvalidIdError(APIError):
    status_code = 400
    message = "Invalid ID format"


class BusinessRuleError(APIError):
    status_code = 400
    message = "Request violates a business rule"


# ---------------------------------------------------------
# 404 - not found or outside the caller's scope
# ---------------------------------------------------------
class NotFoundError(APIError):
    status_code = 404
    message = "Not found"


# ---------------------------------------------------------
# Handlers
# ---------------------------------------------------------
async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code in (401, 403):
        print(f"[SECURITY] {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    elif IS_DEV:
        print(f"[API] {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework-level HTTP errors (unknown route, bad method) in the common envelope."""
    if exc.status_code == 404:
        message = "Route not found"
    else:
        message = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"message": message})


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()]
    return JSONResponse(status_code=400, content={"message": "Validation Error", "errors": errors})


async def handle_broad_exceptions(request: Request, call_next):
    """Catch anything no specific handler dealt with; details stay in the server log."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        print(f"[ERROR] Unhandled {type(err).__name__} on {request.method} {request.url.path}: {err}")
        traceback.print_exc()
        return JSONResponse(status_code=500, content={"message": "Server error"})


def register_error_handlers(app) -> None:
    app.add_exception_handler(APIError, handle_api_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.middleware("http")(handle_broad_exceptions)
