"""
FastAPI service generating Xray client subscription configs.

Reads the stored proxy settings and serves ready-to-use Xray documents.
"""

# Performance: Install uvloop if available (Linux/macOS only)
try:
    import uvloop
    uvloop.install()
except ImportError:
    pass  # Windows - uvloop not available, use default asyncio

from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.config import Settings
from core.logging import configure_logging, get_logger
from middleware.auth import AuthMiddleware
from routers import settings as settings_router, subscriptions
from services.pages import render_error_page
from services.xray.helpers import is_valid_uuid
from services.xray.exceptions import DatasetNotFoundError, XrayConfigError

# Initialize settings and logging
settings = Settings()
configure_logging(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting Xray config service")
    if not is_valid_uuid(container.settings().uuid):
        logger.warning("UUID is not a valid v4 UUID, VLESS clients will reject it")
    await container.database().startup()
    logger.info("Services started successfully")
    yield
    await container.database().shutdown()
    logger.info("Services shutdown complete")


app = FastAPI(
    title="Xray Config Service",
    version="1.0.0",
    description="Generates Xray client subscription configs from stored proxy settings",
    lifespan=lifespan,
    default_response_class=ORJSONResponse
)


@app.exception_handler(XrayConfigError)
async def xray_config_error_handler(request: Request, exc: XrayConfigError):
    """Generation failures render the shared error page."""
    if isinstance(exc, DatasetNotFoundError):
        logger.error("Dataset unavailable", path=request.url.path, error=str(exc))
        return HTMLResponse(render_error_page(str(exc)), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.error("Config generation failed", path=request.url.path,
                 error_type=type(exc).__name__, error=str(exc))
    return HTMLResponse(
        render_error_page("An error occurred while generating configs.", exc),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled exception: {type(e).__name__}: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "error": f"{type(e).__name__}: {str(e)}",
                    "detail": "Internal server error"
                }
            )


app.add_middleware(CatchAllExceptionsMiddleware)
app.add_middleware(AuthMiddleware)

if settings.cors_origins:
    logger.info("Configuring CORS middleware", origins=settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(subscriptions.router)
app.include_router(settings_router.router)


@app.get("/health")
async def health_check():
    """Service health check."""
    return {
        "status": "OK",
        "service": "xray-config",
        "version": app.version,
        "environment": "development" if settings.is_development else "production",
        "database": container.database().is_ready,
        "timestamp": datetime.now().isoformat()
    }


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Xray config service",
               host=settings.host, port=settings.port, debug=settings.debug)
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
        proxy_headers=True
    )
