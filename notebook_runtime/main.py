import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notebook_runtime.api import api_router
from notebook_runtime.core import settings, setup_logging
from notebook_runtime.kernel import ExecutionDispatcher

logger = logging.getLogger(__name__)


def create_app(dispatcher: Optional[ExecutionDispatcher] = None) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle manager."""
        setup_logging(settings.LOG_LEVEL)
        logger.info("Starting %s...", settings.APP_TITLE)

        app.state.dispatcher = dispatcher or ExecutionDispatcher.from_settings(settings)
        if app.state.dispatcher.host_engine is None:
            logger.info("No host engine configured; delegated languages will be simulated")

        yield

        logger.info("Shutting down...")
        await app.state.dispatcher.aclose()

    app = FastAPI(
        title=settings.APP_TITLE,
        lifespan=lifespan,
        debug=settings.DEBUG
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router with /api/v1 prefix
    app.include_router(api_router, prefix="/api/v1")

    # Health check endpoint
    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
