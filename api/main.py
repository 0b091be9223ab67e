"""
Lead Desk API - Main Application.

FastAPI application with CORS enabled for frontend communication. Domain
errors raised by the services are mapped to HTTP status codes here so the
routers stay free of try/except blocks.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from config import get_settings
from domain.errors import (
    AuthorizationError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Lead Desk API",
    description="REST API for assigning, calling and reporting on sales leads",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - Allow all origins for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.exception_handler(ValidationError)
def handle_validation_error(request: Request, exc: ValidationError):
    return _error(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError):
    # Malformed bodies and query strings share the 400 used for domain validation.
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(InvalidCredentialsError)
def handle_invalid_credentials(request: Request, exc: InvalidCredentialsError):
    return _error(status.HTTP_401_UNAUTHORIZED, str(exc))


@app.exception_handler(AuthorizationError)
def handle_authorization_error(request: Request, exc: AuthorizationError):
    # The denial reason is logged by the service; the client only sees the generic message.
    return _error(status.HTTP_403_FORBIDDEN, str(exc))


@app.exception_handler(NotFoundError)
def handle_not_found(request: Request, exc: NotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, str(exc))


@app.exception_handler(ConflictError)
def handle_conflict(request: Request, exc: ConflictError):
    return _error(status.HTTP_409_CONFLICT, str(exc))


@app.exception_handler(PersistenceError)
def handle_persistence_error(request: Request, exc: PersistenceError):
    logger.error(
        "Persistence failure",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "lead-desk-api",
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Lead Desk API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


# Import and include routers
from api.routers import admin, leads, users

app.include_router(leads.router, prefix="/api/v1", tags=["Leads"])
app.include_router(users.router, prefix="/api/v1", tags=["Users"])
app.include_router(admin.router, prefix="/api/v1", tags=["Admin"])
