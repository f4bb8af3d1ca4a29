"""
FastAPI application entry point.
Main application setup and configuration.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError as PydanticValidationError
import logging

from rental_market.config import settings
from rental_market.database import database
from rental_market.routers import auth_router, properties_router
from rental_market.utils.exceptions import APIException
from rental_market.services.error_handler import ErrorHandlerService
from rental_market.middleware.validation import ValidationMiddleware

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Connects the store on startup and disposes it on shutdown.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    database.connect()
    if settings.auto_create_tables:
        await database.create_tables()

    if not await database.ping():
        logger.error("Failed to connect to database on startup")

    yield

    logger.info("Shutting down application")
    await database.disconnect()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    A small property-rental marketplace API.

    ## Features

    * **Listings**: create, list, update and delete property listings
    * **Images**: up to five images per listing, served under `/uploads`
    * **My listings**: filter listings by owner with `?userId=`
    * **Accounts**: register and log in to obtain a bearer token that identifies the listing owner
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Authentication",
            "description": "Account registration and token issuance"
        },
        {
            "name": "Properties",
            "description": "Property listing management with image uploads"
        },
        {
            "name": "Health",
            "description": "System health endpoints"
        }
    ],
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

app.add_middleware(
    ValidationMiddleware,
    max_request_size=settings.max_request_size,
    enable_request_logging=settings.debug,
)

# API routers
app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(properties_router, prefix=settings.api_prefix)

# Uploaded images, referenced by listings as "<upload_url_prefix>/<name>"
app.mount(settings.upload_url_prefix, StaticFiles(directory=settings.upload_dir), name="uploads")


# Every error leaves the API in the {"error": {...}} envelope
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    return ErrorHandlerService.handle_api_exception(exc, request)


@app.exception_handler(RequestValidationError)
@app.exception_handler(PydanticValidationError)
async def validation_exception_handler(request: Request, exc):
    """Unparseable form fields and rejected schema values are both answered with 400."""
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    return ErrorHandlerService.handle_database_error(exc, request)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Unknown routes, wrong methods and the health check's 503."""
    if isinstance(exc, APIException):
        return ErrorHandlerService.handle_api_exception(exc, request)
    return ErrorHandlerService.handle_http_exception(exc, request)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    return ErrorHandlerService.handle_unexpected_error(exc, request)


@app.get("/", tags=["Health"])
async def root():
    """Service name, version and where to find the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "api_prefix": settings.api_prefix,
        "uploads": settings.upload_url_prefix,
        "docs": "/docs",
    }


@app.get(f"{settings.api_prefix}/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint with database connectivity test.
    """
    if not await database.ping():
        raise HTTPException(status_code=503, detail="Database connection failed")

    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.app_version,
        "database": "connected"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "rental_market.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
