from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from homeplanner.core.exceptions import SchedulingError
from homeplanner.core.logging import request_logger

def setup_error_handlers(app: FastAPI) -> None:
    """Configure error handlers for the application."""

    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
        """Map engine errors to their HTTP status with the shared error body."""
        if exc.status_code >= 500:
            request_logger.error(
                "Scheduling engine failure",
                extra={
                    "error": str(exc.detail),
                    "error_type": exc.__class__.__name__,
                    "path": request.url.path
                }
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "status_code": exc.status_code,
                "type": "http_error"
            },
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle request validation errors."""
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": jsonable_errors(exc),
                "status_code": status.HTTP_422_UNPROCESSABLE_ENTITY,
                "type": "validation_error"
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle all other exceptions."""
        request_logger.error(
            "Unhandled exception",
            extra={
                "error": str(exc),
                "error_type": exc.__class__.__name__,
                "path": request.url.path
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
                "type": "server_error"
            }
        )

def jsonable_errors(exc: RequestValidationError) -> list:
    """Strip non-serialisable context (e.g. the raised ValueError) from pydantic errors."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors
