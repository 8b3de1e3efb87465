from __future__ import annotations

from fastapi import APIRouter, Depends

from app.adapters.store.base import AbstractKeyValueStore
from app.core.dependencies import get_store
from app.schemas.weather import CacheHealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Returns a simple status response to verify the API is operational.
    Used by load balancers and monitoring systems to determine service health.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/cache", response_model=CacheHealthResponse)
async def cache_health(
    store: AbstractKeyValueStore = Depends(get_store),
) -> CacheHealthResponse:
    """Report whether the cache backend is reachable.

    Always answers 200: the API keeps serving (uncached) when the cache is
    down, so an unreachable backend is "degraded", not "unhealthy".
    """

    reachable = await store.ping()
    return CacheHealthResponse(
        status="ok" if reachable else "degraded",
        backend=store.backend_name,
    )
