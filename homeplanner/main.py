from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel
import logging

from homeplanner.core.config import settings
from homeplanner.api.v1.api import api_router
from homeplanner.core.error_handler import setup_error_handlers
from homeplanner.core.logging import RequestLoggingMiddleware, setup_logging
from homeplanner.core.metrics import setup_metrics
from homeplanner.db.database import dispose_db, init_db

setup_logging()
logger = logging.getLogger(__name__)

class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handle startup and shutdown events.
    """
    logger.info("Starting up application...")
    await init_db()

    yield

    logger.info("Shutting down application...")
    await dispose_db()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    Home Planner scheduling engine API.

    ## Features

    * 📅 **Events**
        * Elastic and blocker events
        * Daily, weekly and monthly recurrence with per-occurrence exceptions
        * Edit and delete scopes: `this`, `future`, `all`
    * ⛔ **Conflict detection**
        * Blocker events sharing a participant may not overlap
        * Dry-run validation for live feedback

    ## Authentication

    Every endpoint requires a bearer JWT whose subject is the user id:
    `Authorization: Bearer <token>`

    ## Error Handling

    Errors share one body: `{"detail", "status_code", "type"}`
    * 400: Bad Request - Invalid input or participant
    * 401: Unauthorized - Missing or invalid token
    * 403: Forbidden - Not a family member, or a synced event
    * 404: Not Found - Event doesn't exist
    * 409: Conflict - Blocker overlap, with the conflicting events
    * 500: Internal Server Error - Server-side error
    """,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs" if settings.SHOW_DOCS else None,
    redoc_url=f"{settings.API_V1_STR}/redoc" if settings.SHOW_DOCS else None,
    lifespan=lifespan
)

# Add CORS middleware
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(RequestLoggingMiddleware)
setup_metrics(app)
setup_error_handlers(app)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)

# Custom OpenAPI schema
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=app.description,
        routes=app.routes,
    )

    openapi_schema["components"]["securitySchemes"] = {
        "bearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT"
        }
    }
    openapi_schema["security"] = [{"bearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi

@app.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check"
)
async def health() -> HealthResponse:
    """Liveness check."""
    return HealthResponse(
        status="healthy",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT
    )
