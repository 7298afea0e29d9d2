"""
Ficha Reader - reconstitutes the inspection record aggregate.

The root is read first; the eleven sections are then fetched concurrently,
each on its own short-lived session.
"""
import asyncio
import logging
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agrocert.core.exceptions import NotFound
from agrocert.database import async_session_factory
from agrocert.models.catalogo import TipoCultivo
from agrocert.models.ficha import (
    AccionCorrectiva,
    ActividadPecuaria,
    ArchivoFicha,
    CosechaVentas,
    DetalleCultivoParcela,
    EvaluacionConocimientoNormas,
    EvaluacionMitigacion,
    EvaluacionPoscosecha,
    FichaInspeccion,
    ManejoCultivo,
    NoConformidad,
    PlanificacionSiembra,
    RevisionDocumentacion,
)
from agrocert.models.parcela import Parcela
from agrocert.schemas.ficha import (
    AccionCorrectivaResponse,
    ActividadPecuariaResponse,
    ArchivoFichaResponse,
    CosechaVentasResponse,
    DetalleCultivoResponse,
    EvaluacionConocimientoResponse,
    EvaluacionMitigacionResponse,
    EvaluacionPoscosechaResponse,
    FichaCompletaResponse,
    FichaResponse,
    ManejoCultivoResponse,
    NoConformidadResponse,
    PlanificacionSiembraResponse,
    RevisionDocumentacionResponse,
)
from agrocert.services.ficha_validation import normalize_codigo_productor

logger = logging.getLogger(__name__)


class FichaReader:
    """Read side of the inspection record aggregate."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = None):
        self.session_factory = session_factory or async_session_factory

    # ==================== Helpers ====================

    async def _fetch_one(self, model, id_ficha: UUID, schema) -> Optional[Any]:
        async with self.session_factory() as session:
            result = await session.execute(select(model).where(model.id_ficha == id_ficha))
            row = result.scalars().first()
            return schema.model_validate(row) if row is not None else None

    async def _fetch_list(self, model, id_ficha: UUID, schema, order_by) -> List[Any]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(model).where(model.id_ficha == id_ficha).order_by(*order_by)
            )
            return [schema.model_validate(row) for row in result.scalars().all()]

    async def _fetch_detalles(self, id_ficha: UUID) -> List[DetalleCultivoResponse]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(
                    DetalleCultivoParcela,
                    TipoCultivo.nombre_cultivo,
                    Parcela.numero_parcela,
                    Parcela.rotacion,
                    Parcela.utiliza_riego,
                    Parcela.tipo_barrera,
                    Parcela.insumos_organicos,
                    Parcela.latitud_sud,
                    Parcela.longitud_oeste,
                    ManejoCultivo,
                )
                .outerjoin(
                    TipoCultivo,
                    TipoCultivo.id_tipo_cultivo == DetalleCultivoParcela.id_tipo_cultivo,
                )
                .outerjoin(Parcela, Parcela.id_parcela == DetalleCultivoParcela.id_parcela)
                .outerjoin(ManejoCultivo, ManejoCultivo.id_detalle == DetalleCultivoParcela.id_detalle)
                .where(DetalleCultivoParcela.id_ficha == id_ficha)
                .order_by(DetalleCultivoParcela.posicion)
            )

            detalles = []
            for row in result.all():
                detalle = row.DetalleCultivoParcela
                manejo = row.ManejoCultivo
                detalles.append(DetalleCultivoResponse(
                    id_detalle=detalle.id_detalle,
                    id_ficha=detalle.id_ficha,
                    id_parcela=detalle.id_parcela,
                    id_tipo_cultivo=detalle.id_tipo_cultivo,
                    superficie_ha=detalle.superficie_ha,
                    situacion_actual=detalle.situacion_actual,
                    created_at=detalle.created_at,
                    nombre_cultivo=row.nombre_cultivo,
                    numero_parcela=row.numero_parcela,
                    rotacion=row.rotacion,
                    utiliza_riego=row.utiliza_riego,
                    tipo_barrera=row.tipo_barrera,
                    insumos_organicos=row.insumos_organicos,
                    latitud_sud=row.latitud_sud,
                    longitud_oeste=row.longitud_oeste,
                    manejo=ManejoCultivoResponse.model_validate(manejo) if manejo is not None else None,
                ))
            return detalles

    # ==================== Public API ====================

    async def get_root(self, id_ficha: UUID) -> Optional[FichaInspeccion]:
        async with self.session_factory() as session:
            return await session.get(FichaInspeccion, id_ficha)

    async def load_ficha_completa(self, id_ficha: UUID) -> FichaCompletaResponse:
        """
        Load the root and every present section.

        Raises:
            NotFound: when the root does not exist.
        """
        ficha = await self.get_root(id_ficha)
        if ficha is None:
            raise NotFound(id_ficha)

        (
            revision,
            acciones,
            no_conformidades,
            mitigacion,
            poscosecha,
            conocimiento,
            pecuarias,
            detalles,
            cosecha,
            planificaciones,
            archivos,
        ) = await asyncio.gather(
            self._fetch_one(RevisionDocumentacion, id_ficha, RevisionDocumentacionResponse),
            self._fetch_list(
                AccionCorrectiva, id_ficha, AccionCorrectivaResponse,
                (AccionCorrectiva.numero_accion, AccionCorrectiva.posicion),
            ),
            self._fetch_list(
                NoConformidad, id_ficha, NoConformidadResponse, (NoConformidad.posicion,)
            ),
            self._fetch_one(EvaluacionMitigacion, id_ficha, EvaluacionMitigacionResponse),
            self._fetch_one(EvaluacionPoscosecha, id_ficha, EvaluacionPoscosechaResponse),
            self._fetch_one(
                EvaluacionConocimientoNormas, id_ficha, EvaluacionConocimientoResponse
            ),
            self._fetch_list(
                ActividadPecuaria, id_ficha, ActividadPecuariaResponse,
                (ActividadPecuaria.posicion,),
            ),
            self._fetch_detalles(id_ficha),
            self._fetch_list(
                CosechaVentas, id_ficha, CosechaVentasResponse, (CosechaVentas.created_at,)
            ),
            self._fetch_list(
                PlanificacionSiembra, id_ficha, PlanificacionSiembraResponse,
                (PlanificacionSiembra.posicion,),
            ),
            self._fetch_list(
                ArchivoFicha, id_ficha, ArchivoFichaResponse, (ArchivoFicha.posicion,)
            ),
        )

        return FichaCompletaResponse(
            ficha=FichaResponse.model_validate(ficha),
            revision_documentacion=revision,
            acciones_correctivas=acciones,
            no_conformidades=no_conformidades,
            evaluacion_mitigacion=mitigacion,
            evaluacion_poscosecha=poscosecha,
            evaluacion_conocimiento=conocimiento,
            actividades_pecuarias=pecuarias,
            detalles_cultivo=detalles,
            cosecha_ventas=cosecha,
            planificaciones_siembra=planificaciones,
            archivos=archivos,
        )

    async def find_id_by_productor_gestion(
        self,
        codigo_productor: str,
        gestion: int,
    ) -> Optional[UUID]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(FichaInspeccion.id_ficha).where(
                    FichaInspeccion.codigo_productor == normalize_codigo_productor(codigo_productor),
                    FichaInspeccion.gestion == gestion,
                )
            )
            return result.scalar_one_or_none()

    async def find_by_productor_gestion(
        self,
        codigo_productor: str,
        gestion: int,
    ) -> Optional[FichaCompletaResponse]:
        """The producer's ficha for the cycle, or None."""
        id_ficha = await self.find_id_by_productor_gestion(codigo_productor, gestion)
        if id_ficha is None:
            return None
        return await self.load_ficha_completa(id_ficha)

    async def exists_by_productor_gestion(self, codigo_productor: str, gestion: int) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(FichaInspeccion).where(
                    FichaInspeccion.codigo_productor == normalize_codigo_productor(codigo_productor),
                    FichaInspeccion.gestion == gestion,
                )
            )
            return (result.scalar() or 0) > 0
