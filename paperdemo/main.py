"""FastAPI application for the Paper Demo Generator."""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import router
from .config import get_settings
from .core.errors import NotFound, Unauthenticated, Unauthorized
from .runtime import Runtime, build_runtime

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} API...")

    runtime = getattr(app.state, "runtime", None)
    if runtime is None:
        runtime = build_runtime(settings)
        app.state.runtime = runtime

    await runtime.startup()
    logger.info(f"Database: {runtime.settings.database_path}")
    logger.info(f"Dispatcher: {runtime.settings.dispatcher_backend}")
    logger.info(f"Generation model: {runtime.settings.generation_model}")

    yield

    logger.info(f"Shutting down {settings.app_name} API...")
    await runtime.shutdown()


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app(runtime: Optional[Runtime] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        runtime: Pre-built runtime. When omitted, the production runtime is
            built during startup.
    """
    settings = get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="""
Turns uploaded academic papers into interactive, AI-generated demos.

## Pipeline

1. **Upload** a paper and register it as a document
2. **Extract** text and metadata in the background
3. **Generate** a self-contained HTML demo for a concept of the paper
4. **Execute** the demo in a disposable sandbox and store the served page

Status of documents and artifacts is polled through the read endpoints.
        """,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    if runtime is not None:
        app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Unauthenticated)
    async def unauthenticated_handler(request: Request, exc: Unauthenticated):
        return _error_response(status.HTTP_401_UNAUTHORIZED, exc)

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized):
        return _error_response(status.HTTP_403_FORBIDDEN, exc)

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return _error_response(status.HTTP_404_NOT_FOUND, exc)

    app.include_router(router)

    @app.get("/")
    async def root():
        return {
            "name": f"{settings.app_name} API",
            "version": settings.app_version,
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "paperdemo.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug,
        reload_excludes=["data/*", "*.pyc", "__pycache__", ".pytest_cache"],
        log_level=get_settings().log_level.lower(),
    )
