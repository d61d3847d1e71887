"""Central mapping from raised errors to JSON error responses."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import UsersApiError
from app.schemas.common import ErrorResponse

LOGGER = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Internal Server Error"


def _server_error(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.error("❌ %s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    detail = str(exc) if request.app.state.settings.EXPOSE_ERROR_DETAILS else GENERIC_SERVER_ERROR
    return JSONResponse(status_code=500, content=ErrorResponse(error=detail or GENERIC_SERVER_ERROR).model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(UsersApiError)
    async def handle_users_api_error(request: Request, exc: UsersApiError) -> JSONResponse:
        if exc.status_code >= 500:
            return _server_error(request, exc)
        return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=exc.message).model_dump())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        causes = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
        )
        return JSONResponse(status_code=400, content=ErrorResponse(error=causes or "Invalid request").model_dump())

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        return _server_error(request, exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        return _server_error(request, exc)
