"""Health check endpoints."""

from fastapi import APIRouter, Request

from jupswap import __version__
from jupswap.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "jupswap"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration and wallet state."""
    settings = get_settings()
    orchestrator = getattr(request.app.state, "orchestrator", None)
    wallet_ready = orchestrator is not None and orchestrator.custodian.is_ready()
    return {
        "status": "healthy",
        "service": "jupswap",
        "version": __version__,
        "wallet": {
            "ready": wallet_ready,
            "public_key": orchestrator.custodian.public_identity() if wallet_ready else None,
        },
        "config": settings.get_safe_dict(),
    }
