from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shuttle.config import settings
from shuttle.database import init_db
from shuttle.exceptions import (
    AppError, AuthenticationError, ExternalError, PaymentDeclinedError, ThrottledError
)
from shuttle.observability import get_logger, setup_logging
from shuttle.admin import router as admin_router
from shuttle.auth import router as auth_router
from shuttle.bookings import router as bookings_router, payments_router
from shuttle.bookings.payment_service import build_payment_gateway
from shuttle.routes import router as routes_router
from shuttle.security.rate_limiter import RateLimiterRegistry

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables (when enabled) before serving"""
    logger.info("Application starting", environment=settings.ENVIRONMENT, debug=settings.DEBUG)
    if settings.AUTO_CREATE_TABLES:
        init_db()
        logger.info("Database tables ensured")
    yield
    logger.info("Application shutting down")

def _error_response(status_code: int, error: str, details=None, headers=None) -> JSONResponse:
    content = {"error": error}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)

async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    """Render every AppError as {error, details?}"""
    headers = None

    if isinstance(exc, ThrottledError):
        headers = {"Retry-After": str(exc.retry_after)}
    elif isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}

    if isinstance(exc, PaymentDeclinedError):
        details = None
    elif isinstance(exc, ExternalError):
        logger.error(
            "External collaborator failed",
            method=request.method,
            path=request.url.path,
            error=exc.message,
            exc_info=exc,
        )
        details = None
    else:
        details = exc.details
        if exc.status_code < 500:
            logger.info(
                "Request rejected",
                method=request.method,
                path=request.url.path,
                status_code=exc.status_code,
                error=exc.message,
            )

    return _error_response(exc.status_code, exc.public_message, details, headers)

async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies/params are reported in the same shape as field validation"""
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        details.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    logger.info("Request rejected", method=request.method, path=request.url.path, status_code=400)
    return _error_response(400, "Validation failed", details)

async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework errors (missing bearer token, unknown path) in the same shape"""
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

def create_app() -> FastAPI:
    """Application factory; each app owns its rate limiters and payment gateway"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Shuttle booking marketplace API",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.state.rate_limiters = RateLimiterRegistry.from_settings(settings)
    app.state.payment_gateway = build_payment_gateway(settings)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)

    # Include routers
    app.include_router(
        auth_router,
        prefix=f"{settings.API_V1_STR}/auth",
        tags=["Authentication"]
    )

    app.include_router(
        routes_router,
        prefix=f"{settings.API_V1_STR}/routes",
        tags=["Routes"]
    )

    app.include_router(
        bookings_router,
        prefix=f"{settings.API_V1_STR}/bookings",
        tags=["Bookings"]
    )

    app.include_router(
        payments_router,
        prefix=f"{settings.API_V1_STR}/payments",
        tags=["Payments"]
    )

    app.include_router(admin_router)

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "message": "Shuttle Booking Marketplace API",
            "version": "1.0.0",
            "docs": "/docs"
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
