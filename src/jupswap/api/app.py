"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jupswap import __version__
from jupswap.config import get_settings
from jupswap.swap import create_orchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    orchestrator = create_orchestrator(get_settings())
    app.state.orchestrator = orchestrator
    if not orchestrator.custodian.is_ready():
        logger.warning("No wallet configured - running in quote-only mode")
    yield
    # Shutdown
    await orchestrator.ledger.close()
    await orchestrator.custodian.close()
    app.state.orchestrator = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Jupiter Swap API",
        description="Quote and execute Jupiter swaps on Solana",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from jupswap.api.routes import health, swaps

    app.include_router(health.router, tags=["Health"])
    app.include_router(swaps.router, prefix="/api/v1")

    return app


# Default app instance
app = create_app()
