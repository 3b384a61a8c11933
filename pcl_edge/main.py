from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
import logging
import uuid

from .config import settings
from .edge_config import get_edge_config
from .errors import EdgeError
from .services.notifier import get_notifier
from .utils.logging_config import clear_request_context, get_logger, set_request_context, setup_logging
from .utils.rate_limiter import limiter
from .utils.responses import error_response, failure_cors_headers

from .routers import checkout, health, notify, proxy, sms

logger = get_logger("pcl_edge.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(settings.log_level, settings.log_json)
    logger.info(f"Starting pcl-edge ({settings.environment})")

    # Build the route table now so an ambiguous group config fails at startup
    config = get_edge_config()
    logger.log_with_context(
        logging.INFO,
        "Edge configuration loaded",
        **config.readiness()
    )

    yield

    logger.info("Shutting down pcl-edge...")
    await get_notifier().drain()


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# Request ID Middleware
class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"ok": False, "error": "rate_limited"},
        headers=failure_cors_headers(request)
    )


async def edge_error_handler(request: Request, exc: EdgeError):
    return error_response(exc, headers=failure_cors_headers(request))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": "internal_error"},
        headers=failure_cors_headers(request)
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="PCL Edge",
        description="Edge layer between the booking widget, the payment processor and the script backends",
        version="1.0.0",
        lifespan=lifespan
    )

    # Rate limiter state
    app.state.limiter = limiter

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(EdgeError, edge_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health.router)
    app.include_router(checkout.router)
    app.include_router(proxy.router)
    app.include_router(notify.router)
    app.include_router(sms.router)

    @app.get("/")
    async def root():
        return {"service": "pcl-edge", "status": "running"}

    return app


app = create_app()
