from fastapi import APIRouter

from movieflix.core.version import __version__
from movieflix.services.container import ClientServices


def create_diagnostics_router(services: ClientServices) -> APIRouter:
    """Operator access to connectivity state and the persisted error log."""
    router = APIRouter(prefix="/diagnostics", tags=["diagnostics"])

    @router.get("/status", summary="Connectivity and queue state")
    async def status() -> dict:
        return {
            "version": __version__,
            "online": services.api.online,
            "queued_requests": services.api.queue_size,
        }

    @router.get("/errors", summary="Persisted error log, oldest first")
    async def get_errors() -> list[dict]:
        records = await services.errors.get_error_logs()
        return [record.model_dump(by_alias=True) for record in records]

    @router.delete("/errors", summary="Reset the error log")
    async def clear_errors() -> dict:
        cleared = await services.errors.clear_error_logs()
        return {"cleared": cleared}

    @router.get("/storage", summary="Durable storage usage")
    async def storage() -> dict:
        stats = await services.store.stats()
        return {"total_keys": stats.total_keys, "total_size_kb": stats.total_size_kb}

    return router
