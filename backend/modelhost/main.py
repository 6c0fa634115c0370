"""Model Host Backend Application.

This is the main entry point for the model host service: a small HTTP API
that stores 3D model files in an S3 bucket and tells connected browsers
about new uploads in real time.

Modules:
    - uploads: upload, list, delete and signed-URL endpoints
    - live: WebSocket registry broadcasting upload events
    - storage: S3 storage client
    - config: YAML + environment settings
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from modelhost.config import AppSettings, get_config
from modelhost.errors import RequestError, StorageError
from modelhost.live import ConnectionManager
from modelhost.live.router import router as live_router
from modelhost.storage import S3StorageClient, StorageClient
from modelhost.uploads.router import router as uploads_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
# botocore.auth logs the full SigV4 canonical request — including
# x-amz-security-token — which leaks credentials into the console.
for _noisy in (
    "botocore",
    "boto3",
    "s3transfer",
    "urllib3",
    "urllib3.connectionpool",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    settings: AppSettings = app.state.settings

    configured_level = getattr(logging, settings.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", settings.logging.level.upper())

    if app.state.storage is None:
        # ConfigurationError propagates and aborts startup
        settings.validate_for_startup()
        app.state.storage = S3StorageClient.from_settings(settings)
        logger.info(
            "S3 storage ready: bucket=%s region=%s",
            settings.storage.bucket,
            settings.storage.region,
        )

    connections: ConnectionManager = app.state.connections
    connections.start()

    yield  # Application runs here

    # Shutdown
    await connections.shutdown()
    logger.info("Application shutdown complete")


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as ``{"error": <message>}``."""

    @app.exception_handler(RequestError)
    async def request_error_handler(request: Request, exc: RequestError) -> JSONResponse:
        logger.debug("Rejected %s %s: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Unhandled storage failure on %s %s: %s", request.method, request.url.path, exc)
        return _error(500, "Storage operation failed")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 405:
            message = "Method not allowed"
        else:
            message = str(exc.detail)
        return _error(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        logger.debug("Invalid request %s %s: %s", request.method, request.url.path, errors)
        return _error(400, f"Invalid request: {detail}")


def create_app(
    settings: Optional[AppSettings] = None,
    storage: Optional[StorageClient] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Application settings. Defaults to ``get_config()``.
        storage: Storage client to use. When omitted, an S3 client is built
            from *settings* at startup.
    """
    settings = settings or get_config()

    app = FastAPI(
        title="Model Host API",
        description="Upload, list and delete 3D model files stored in S3",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.storage = storage
    app.state.connections = ConnectionManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(uploads_router)
    app.include_router(live_router)

    @app.get("/health")
    async def health() -> dict:
        """Health check endpoint.

        Returns:
            dict: Status and the number of open live-update connections.
        """
        return {"status": "ok", "connections": app.state.connections.count()}

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the application with uvicorn."""
    import uvicorn

    settings = get_config()
    uvicorn.run(
        "modelhost.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload,
        log_level=settings.logging.level.lower(),
    )
