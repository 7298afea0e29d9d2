"""
Reference data lookups used while writing an inspection record.

Runs on the caller's session so the read belongs to the same transaction as
the write it gates.
"""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agrocert.models.catalogo import TipoCultivo

logger = logging.getLogger(__name__)


class ReferenceLookup:
    """Read-only access to the crop type catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_certifiable(self, id_tipo_cultivo: UUID) -> bool:
        """True when the crop type is the principal certifiable crop. Unknown ids are not."""
        result = await self.db.execute(
            select(TipoCultivo.es_principal_certificable).where(
                TipoCultivo.id_tipo_cultivo == id_tipo_cultivo
            )
        )
        flag = result.scalar_one_or_none()
        if flag is None:
            logger.info(f"Tipo de cultivo {id_tipo_cultivo} no encontrado, se trata como no certificable")
            return False
        return bool(flag)
