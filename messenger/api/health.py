"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Liveness probe reporting whether handler registration is closed."""
    messenger = request.app.state.messenger
    return {
        "status": "healthy",
        "handlers": len(messenger.registry),
        "registry_frozen": messenger.registry.frozen,
    }
