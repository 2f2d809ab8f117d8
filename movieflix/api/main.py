from fastapi import APIRouter

from movieflix.services.container import ClientServices

from .endpoints.diagnostics import create_diagnostics_router


def create_api_router(services: ClientServices) -> APIRouter:
    api_router = APIRouter()

    @api_router.get("/health", summary="Simple readiness check")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    api_router.include_router(create_diagnostics_router(services))
    return api_router
