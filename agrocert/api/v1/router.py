from fastapi import APIRouter

from agrocert.api.v1.endpoints import fichas


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Fichas de Inspeccion ====================
api_router.include_router(
    fichas.router,
    prefix="/fichas",
    tags=["Fichas de Inspeccion"]
)
