# estoque/errors.py
"""API error type and the handlers that render every failure as the JSON
envelope `{"success": false, "error": ..., "details": ...}`."""
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .utils import logger


class ApiError(Exception):
    def __init__(self, status_code: int, error: str, details=None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details


class BadRequest(ApiError):
    def __init__(self, error, details=None):
        super().__init__(400, error, details)


class NotFound(ApiError):
    def __init__(self, error, details=None):
        super().__init__(404, error, details)


class Conflict(ApiError):
    def __init__(self, error, details=None):
        super().__init__(409, error, details)


def error_response(status_code, error, details=None):
    body = {"success": False, "error": error}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI):
    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.error)
        return error_response(exc.status_code, exc.error, exc.details)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return error_response(400, "Dados inválidos", details)

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return error_response(409, "Registro duplicado ou em conflito", str(exc.orig))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
        return error_response(500, "Erro interno do servidor", str(exc))
