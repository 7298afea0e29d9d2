"""
Fichas API Endpoints - inspection record aggregate.

API endpoints for:
- Creating and replacing the whole aggregate
- Loading one aggregate (by id or by productor/gestion)
- Listing root records and status counts
- Hard delete

Domain errors (validation, duplicates, not found, store failures) are
translated to HTTP responses by the handlers registered in main.py.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Response, status

from agrocert.api.deps import FichaServiceDep
from agrocert.schemas.ficha import (
    FichaCompletaCreate,
    FichaCompletaReplace,
    FichaCompletaResponse,
    FichaEstadisticas,
    FichaListResponse,
    FichaResponse,
)

router = APIRouter()


@router.post(
    "",
    response_model=FichaCompletaResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Ficha Completa"
)
async def create_ficha(data: FichaCompletaCreate, service: FichaServiceDep):
    """Create an inspection record with all of its sections in one transaction."""
    return await service.create_ficha_completa(data)


@router.get(
    "",
    response_model=FichaListResponse,
    summary="List Fichas"
)
async def list_fichas(
    service: FichaServiceDep,
    gestion: Optional[int] = None,
    estado_ficha: Optional[str] = None,
    codigo_productor: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    """List root records, newest inspection first."""
    items, total = await service.list_fichas(
        gestion=gestion,
        estado_ficha=estado_ficha,
        codigo_productor=codigo_productor,
        skip=skip,
        limit=limit,
    )
    return FichaListResponse(
        items=[FichaResponse.model_validate(item) for item in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/buscar",
    response_model=FichaCompletaResponse,
    summary="Find Ficha by Productor and Gestion"
)
async def find_ficha(
    service: FichaServiceDep,
    codigo_productor: str = Query(..., min_length=1),
    gestion: int = Query(...),
):
    ficha = await service.find_by_productor_gestion(codigo_productor, gestion)
    if not ficha:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No existe ficha para el productor {codigo_productor} en la gestion {gestion}"
        )
    return ficha


@router.get(
    "/estadisticas",
    response_model=FichaEstadisticas,
    summary="Ficha Statistics"
)
async def get_estadisticas(service: FichaServiceDep, gestion: Optional[int] = None):
    """Counts per workflow status."""
    return await service.get_estadisticas(gestion)


@router.get(
    "/{id_ficha}",
    response_model=FichaCompletaResponse,
    summary="Get Ficha Completa"
)
async def get_ficha(id_ficha: UUID, service: FichaServiceDep):
    return await service.load_ficha_completa(id_ficha)


@router.put(
    "/{id_ficha}",
    response_model=FichaCompletaResponse,
    summary="Replace Ficha Completa"
)
async def replace_ficha(id_ficha: UUID, data: FichaCompletaReplace, service: FichaServiceDep):
    """
    Replace the editable root fields and every section.

    Section ids are regenerated on every call.
    """
    return await service.replace_ficha_completa(id_ficha, data)


@router.delete(
    "/{id_ficha}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Ficha"
)
async def delete_ficha(id_ficha: UUID, service: FichaServiceDep):
    """Delete the record and all of its sections."""
    await service.delete_ficha(id_ficha)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
