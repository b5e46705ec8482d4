"""
FastAPI application entry point for the RoomieLab backend.
"""

from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from roomielab.config import get_settings
from roomielab.errors import ApiError, ErrorKind
from roomielab.routes import (
    auth_router,
    designs_router,
    favorites_router,
    furniture_router,
    projects_router,
    users_router,
)
from roomielab.schemas import ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _field_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        location = loc[0] if loc else "body"
        errors.append(
            {
                "field": ".".join(loc[1:]) or location,
                "location": location,
                "message": error.get("msg", "Invalid value"),
            }
        )
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    settings = get_settings()

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        return _error_response(
            exc.status_code, ErrorResponse(error=exc.message, errors=exc.errors)
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _error_response(
            ErrorKind.VALIDATION.status_code,
            ErrorResponse(
                error=ErrorKind.VALIDATION.default_message, errors=_field_errors(exc)
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = f"Route not found - {request.url.path}"
        else:
            message = str(exc.detail)
        return _error_response(exc.status_code, ErrorResponse(error=message))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        body = ErrorResponse(error=ErrorKind.INTERNAL.default_message)
        if not settings.is_production:
            body.stack = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        return _error_response(ErrorKind.INTERNAL.status_code, body)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="RoomieLab Backend", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/health")
    def health():
        return {"status": "OK", "message": "Server is running"}

    prefix = settings.api_prefix
    app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["auth"])
    app.include_router(users_router, prefix=f"{prefix}/users", tags=["users"])
    app.include_router(
        furniture_router, prefix=f"{prefix}/furniture", tags=["furniture"]
    )
    app.include_router(
        favorites_router, prefix=f"{prefix}/favorites", tags=["favorites"]
    )
    app.include_router(projects_router, prefix=f"{prefix}/projects", tags=["projects"])
    app.include_router(designs_router, prefix=f"{prefix}/designs", tags=["designs"])
    return app


app = create_app()
