"""
Parcela Service - plot reads and inspection-time updates.

Plots belong to the producer, not to the inspection record. An inspection
only refreshes the attributes observed in the field, leaving every field it
did not capture untouched.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from agrocert.models.parcela import Parcela
from agrocert.schemas.ficha import ParcelaInspeccionadaIn

logger = logging.getLogger(__name__)


class ParcelaService:
    """Plot store operations used by the inspection engine."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active(self, id_parcela: UUID) -> Optional[Parcela]:
        result = await self.db.execute(
            select(Parcela).where(
                Parcela.id_parcela == id_parcela,
                Parcela.activo == True,  # noqa: E712
            )
        )
        return result.scalar_one_or_none()

    async def apply_inspection_update(self, data: ParcelaInspeccionadaIn) -> int:
        """
        Refresh one active plot with the attributes captured in the field.

        Absent attributes keep their stored value. The GPS pair is only
        overwritten when both coordinates are supplied.

        Returns the number of rows touched (0 for unknown or inactive plots).
        """
        values = {
            "rotacion": func.coalesce(data.rotacion, Parcela.rotacion),
            "utiliza_riego": func.coalesce(data.utiliza_riego, Parcela.utiliza_riego),
            "tipo_barrera": func.coalesce(data.tipo_barrera, Parcela.tipo_barrera),
            "insumos_organicos": func.coalesce(data.insumos_organicos, Parcela.insumos_organicos),
        }
        if data.latitud_sud is not None and data.longitud_oeste is not None:
            values["latitud_sud"] = data.latitud_sud
            values["longitud_oeste"] = data.longitud_oeste

        result = await self.db.execute(
            update(Parcela)
            .where(
                Parcela.id_parcela == data.id_parcela,
                Parcela.activo == True,  # noqa: E712
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(f"Parcela {data.id_parcela} no encontrada o inactiva, no se actualiza")
        return result.rowcount

    async def apply_inspection_updates(self, parcelas: List[ParcelaInspeccionadaIn]) -> int:
        """Apply every plot update in order. Returns the number of rows touched."""
        updated = 0
        for parcela in parcelas:
            updated += await self.apply_inspection_update(parcela)
        return updated
