"""
Ficha Service - write side of the inspection record aggregate.

Create, replace and delete run each in a single transaction: either every
table of the aggregate changes or none does. Reads are delegated to
FichaReader once the transaction has committed.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from sqlalchemy import select, update, delete, func, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agrocert.core.exceptions import (
    DuplicateAggregate,
    FichaError,
    NotFound,
    StoreError,
)
from agrocert.database import async_session_factory
from agrocert.models.ficha import EstadoFicha, FichaInspeccion
from agrocert.schemas.ficha import (
    FichaCompletaCreate,
    FichaCompletaReplace,
    FichaCompletaResponse,
    FichaEstadisticas,
)
from agrocert.services import ficha_validation as rules
from agrocert.services.ficha_reader import FichaReader
from agrocert.services.ficha_sections import FichaSectionWriter

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_duplicate_ficha(error: IntegrityError) -> bool:
    """True when the integrity error comes from the (codigo_productor, gestion) constraint."""
    message = str(error.orig)
    return (
        "uq_ficha_productor_gestion" in message
        or "ficha_inspeccion.codigo_productor" in message
    )


class FichaService:
    """Orchestrates writes of the whole inspection record aggregate."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = None,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.session_factory = session_factory or async_session_factory
        self.id_factory = id_factory
        self.clock = clock
        self.reader = FichaReader(self.session_factory)

    # ==================== CREATE ====================

    async def create_ficha_completa(self, data: FichaCompletaCreate) -> FichaCompletaResponse:
        """
        Create the root and every present section atomically.

        Raises:
            ValidationFailed: root or section rules violated, all of them listed
            CardinalityViolation: harvest section not exactly one valid record
            DuplicateAggregate: producer already has a ficha for the cycle
            StoreError: the database failed
        """
        ficha_in = data.ficha
        rules.ensure_valid(rules.validate_secciones(data, rules.validate_ficha(ficha_in)))

        codigo_productor = rules.normalize_codigo_productor(ficha_in.codigo_productor)
        if await self.reader.exists_by_productor_gestion(codigo_productor, ficha_in.gestion):
            logger.warning(
                f"Ficha duplicada: productor {codigo_productor}, gestion {ficha_in.gestion}"
            )
            raise DuplicateAggregate(codigo_productor, ficha_in.gestion)

        id_ficha = self.id_factory()
        now = self.clock()
        logger.info(f"Creando ficha {id_ficha} para productor {codigo_productor}/{ficha_in.gestion}")

        async with self.session_factory() as session:
            try:
                session.add(FichaInspeccion(
                    id_ficha=id_ficha,
                    codigo_productor=codigo_productor,
                    created_at=now,
                    updated_at=now,
                    **ficha_in.model_dump(exclude={"codigo_productor"}),
                ))
                await session.flush()

                writer = FichaSectionWriter(session, self.id_factory, self.clock)
                await writer.write_all(id_ficha, data)

                await session.commit()

            except FichaError:
                await session.rollback()
                raise
            except IntegrityError as e:
                await session.rollback()
                if _is_duplicate_ficha(e):
                    logger.warning(
                        f"Ficha duplicada detectada por la base de datos: "
                        f"{codigo_productor}/{ficha_in.gestion}"
                    )
                    raise DuplicateAggregate(codigo_productor, ficha_in.gestion) from e
                logger.error(f"Integrity error creating ficha {id_ficha}: {e}")
                raise StoreError("Ficha creation failed: invalid data reference") from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database error creating ficha {id_ficha}: {e}")
                raise StoreError("Ficha creation failed: database error") from e

        logger.info(f"Ficha {id_ficha} creada")
        return await self.reader.load_ficha_completa(id_ficha)

    # ==================== REPLACE ====================

    async def replace_ficha_completa(
        self,
        id_ficha: uuid.UUID,
        data: FichaCompletaReplace,
    ) -> FichaCompletaResponse:
        """
        Replace the mutable root fields and every section atomically.

        Sections are deleted and reinserted, so child ids change on every
        call. Callers must not keep child ids across a replace.
        """
        ficha_in = data.ficha
        rules.ensure_valid(rules.validate_secciones(data, rules.validate_ficha_update(ficha_in)))

        logger.info(f"Reemplazando ficha {id_ficha}")

        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    update(FichaInspeccion)
                    .where(FichaInspeccion.id_ficha == id_ficha)
                    .values(
                        fecha_inspeccion=ficha_in.fecha_inspeccion,
                        inspector_interno=ficha_in.inspector_interno,
                        persona_entrevistada=ficha_in.persona_entrevistada,
                        categoria_gestion_anterior=ficha_in.categoria_gestion_anterior,
                        comentarios_actividad_pecuaria=ficha_in.comentarios_actividad_pecuaria,
                        comentarios_evaluacion=ficha_in.comentarios_evaluacion,
                        updated_at=self.clock(),
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFound(id_ficha)

                writer = FichaSectionWriter(session, self.id_factory, self.clock)
                await writer.delete_all(id_ficha)
                await writer.write_all(id_ficha, data)

                await session.commit()

            except FichaError:
                await session.rollback()
                raise
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database error replacing ficha {id_ficha}: {e}")
                raise StoreError("Ficha replace failed: database error") from e

        logger.info(f"Ficha {id_ficha} reemplazada")
        return await self.reader.load_ficha_completa(id_ficha)

    # ==================== DELETE ====================

    async def delete_ficha(self, id_ficha: uuid.UUID) -> None:
        """Hard delete. Every section goes with the root by cascade."""
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    delete(FichaInspeccion)
                    .where(FichaInspeccion.id_ficha == id_ficha)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFound(id_ficha)
                await session.commit()
            except FichaError:
                await session.rollback()
                raise
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database error deleting ficha {id_ficha}: {e}")
                raise StoreError("Ficha delete failed: database error") from e

        logger.info(f"Ficha {id_ficha} eliminada")

    # ==================== READS ====================

    async def load_ficha_completa(self, id_ficha: uuid.UUID) -> FichaCompletaResponse:
        return await self.reader.load_ficha_completa(id_ficha)

    async def find_by_productor_gestion(
        self,
        codigo_productor: str,
        gestion: int,
    ) -> Optional[FichaCompletaResponse]:
        return await self.reader.find_by_productor_gestion(codigo_productor, gestion)

    async def exists_by_productor_gestion(self, codigo_productor: str, gestion: int) -> bool:
        return await self.reader.exists_by_productor_gestion(codigo_productor, gestion)

    async def list_fichas(
        self,
        gestion: Optional[int] = None,
        estado_ficha: Optional[str] = None,
        codigo_productor: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[FichaInspeccion], int]:
        """Get paginated root records, newest inspection first."""
        filters = []

        if gestion:
            filters.append(FichaInspeccion.gestion == gestion)

        if estado_ficha:
            filters.append(FichaInspeccion.estado_ficha == estado_ficha)

        if codigo_productor:
            filters.append(
                FichaInspeccion.codigo_productor == rules.normalize_codigo_productor(codigo_productor)
            )

        stmt = select(FichaInspeccion)
        count_stmt = select(func.count(FichaInspeccion.id_ficha))
        if filters:
            stmt = stmt.where(and_(*filters))
            count_stmt = count_stmt.where(and_(*filters))

        stmt = stmt.order_by(
            FichaInspeccion.fecha_inspeccion.desc(),
            FichaInspeccion.created_at.desc(),
        ).offset(skip).limit(limit)

        async with self.session_factory() as session:
            total = (await session.execute(count_stmt)).scalar() or 0
            result = await session.execute(stmt)
            return list(result.scalars().all()), total

    async def count_by_estado(self, estado_ficha: str, gestion: Optional[int] = None) -> int:
        count_stmt = select(func.count(FichaInspeccion.id_ficha)).where(
            FichaInspeccion.estado_ficha == estado_ficha
        )
        if gestion:
            count_stmt = count_stmt.where(FichaInspeccion.gestion == gestion)
        async with self.session_factory() as session:
            return (await session.execute(count_stmt)).scalar() or 0

    async def count_by_gestion(self, gestion: int) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                select(func.count(FichaInspeccion.id_ficha)).where(
                    FichaInspeccion.gestion == gestion
                )
            )
            return result.scalar() or 0

    async def get_estadisticas(self, gestion: Optional[int] = None) -> FichaEstadisticas:
        """Counts per workflow status, optionally for one cycle."""
        por_estado = {}
        for estado in EstadoFicha:
            por_estado[estado.value] = await self.count_by_estado(estado.value, gestion)

        if gestion:
            total = await self.count_by_gestion(gestion)
        else:
            total = sum(por_estado.values())

        return FichaEstadisticas(gestion=gestion, total=total, por_estado=por_estado)
