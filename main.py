"""
Booking Ledger API Server

FastAPI application for the student/educator marketplace ledger.
Serves users, catalog, educators, session bookings and reviews.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ledger.api.routes import catalog, educators, health, reviews, sessions, users
from ledger.errors import LedgerError
from ledger.services.ledger_service import LedgerService, get_ledger_service, shutdown_ledger_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(service: Optional[LedgerService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: LedgerService to serve; when omitted the global service is
            built from the environment at startup and closed at shutdown
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("Starting Booking Ledger API server...")
        owns_service = app.state.service is None
        if owns_service:
            app.state.service = await get_ledger_service()
        logger.info(f"Storage backend ready: {app.state.service.backend.name}")

        yield

        # Shutdown
        logger.info("Shutting down Booking Ledger API server...")
        if owns_service:
            await shutdown_ledger_service()
            app.state.service = None

    app = FastAPI(
        title="Booking Ledger API",
        description="Bookings, reviews and ratings for the student/educator marketplace",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )
    app.state.service = service

    # CORS middleware for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, specify exact origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing"""
        start_time = time.time()

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Duration: {duration_ms:.2f}ms"
        )

        return response

    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(request: Request, exc: LedgerError):
        """Map ledger errors onto their status codes"""
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.to_dict()}
        )

    # Validation error handler
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report the first offending field the way ValidationFailedError does"""
        errors = exc.errors()
        loc = [str(part) for part in errors[0]["loc"]] if errors else []
        # Drop the "body"/"query"/"path" prefix
        field = ".".join(loc[1:]) or ".".join(loc) or "request"
        message = errors[0]["msg"] if errors else "Request validation failed"

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": {
                    "code": "VALIDATION_FAILED",
                    "message": f"{field}: {message}",
                    "details": {"field": field}
                }
            }
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all uncaught exceptions"""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL",
                    "message": "An internal server error occurred",
                    "details": str(exc) if app.debug else None
                }
            }
        )

    # Include routers
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(catalog.router)
    app.include_router(educators.router)
    app.include_router(sessions.router)
    app.include_router(reviews.router)

    # Root endpoint
    @app.get("/", tags=["Root"])
    async def root():
        """API root endpoint"""
        return {
            "name": "Booking Ledger API",
            "version": "1.0.0",
            "description": "Bookings, reviews and ratings for the student/educator marketplace",
            "docs": "/api/docs",
            "health": "/health"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
