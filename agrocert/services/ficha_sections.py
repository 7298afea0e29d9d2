"""
Section writer shared by the create and replace orchestrators.

Writes every owned section of one inspection record on the caller's
transactional session, in a fixed order. Entities are expected to have
passed validate_secciones already; only the checks that need the database
state run here. The caller owns commit and rollback.
"""
import logging
from datetime import datetime
from typing import Callable, Dict
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from agrocert.core.exceptions import CardinalityViolation
from agrocert.models.ficha import (
    AccionCorrectiva,
    ActividadPecuaria,
    ArchivoFicha,
    CosechaVentas,
    DetalleCultivoParcela,
    EvaluacionConocimientoNormas,
    EvaluacionMitigacion,
    EvaluacionPoscosecha,
    ManejoCultivo,
    NoConformidad,
    PlanificacionSiembra,
    RevisionDocumentacion,
    TipoMani,
)
from agrocert.schemas.ficha import FichaSecciones, ManejoCultivoIn
from agrocert.services import ficha_validation as rules
from agrocert.services.parcela_service import ParcelaService
from agrocert.services.reference_lookup import ReferenceLookup

logger = logging.getLogger(__name__)


# Every table owned directly by the root. Crop management hangs off
# detalle_cultivo_parcela and goes with it.
OWNED_SECTION_MODELS = (
    RevisionDocumentacion,
    AccionCorrectiva,
    NoConformidad,
    EvaluacionMitigacion,
    EvaluacionPoscosecha,
    EvaluacionConocimientoNormas,
    ActividadPecuaria,
    DetalleCultivoParcela,
    CosechaVentas,
    PlanificacionSiembra,
    ArchivoFicha,
)

_MANEJO_FIELDS = set(ManejoCultivoIn.model_fields)


def check_cosecha_cardinality(secciones: FichaSecciones) -> None:
    """Exactly one harvest record, with a known tipo_mani."""
    count = len(secciones.cosecha_ventas)
    if count != 1:
        raise CardinalityViolation(
            f"Se requiere exactamente un registro de cosecha y ventas, se recibieron {count}",
            section="cosecha_ventas",
        )
    tipo_mani = secciones.cosecha_ventas[0].tipo_mani
    allowed = [t.value for t in TipoMani]
    if tipo_mani not in allowed:
        raise CardinalityViolation(
            f"tipo_mani debe ser uno de: {', '.join(allowed)}",
            section="cosecha_ventas",
        )


class FichaSectionWriter:
    """Inserts the owned sections of one ficha inside an open transaction."""

    def __init__(
        self,
        db: AsyncSession,
        id_factory: Callable[[], UUID],
        clock: Callable[[], datetime],
    ):
        self.db = db
        self.id_factory = id_factory
        self.clock = clock
        self.reference_lookup = ReferenceLookup(db)
        self.parcela_service = ParcelaService(db)

    async def write_all(self, id_ficha: UUID, secciones: FichaSecciones) -> Dict[str, int]:
        """
        Write every present section in order. Returns rows written per section.

        Raises CardinalityViolation for a bad harvest section and
        ValidationFailed for invalid crop management data. Rows already
        flushed stay pending in the caller's transaction.
        """
        counts: Dict[str, int] = {}
        now = self.clock()

        # Single-valued and plain list sections
        if secciones.revision_documentacion is not None:
            self.db.add(RevisionDocumentacion(
                id_revision=self.id_factory(),
                id_ficha=id_ficha,
                **secciones.revision_documentacion.model_dump(),
            ))
            counts["revision_documentacion"] = 1

        for posicion, accion in enumerate(secciones.acciones_correctivas):
            self.db.add(AccionCorrectiva(
                id_accion=self.id_factory(),
                id_ficha=id_ficha,
                posicion=posicion,
                created_at=now,
                **accion.model_dump(),
            ))
        counts["acciones_correctivas"] = len(secciones.acciones_correctivas)

        for posicion, nc in enumerate(secciones.no_conformidades):
            self.db.add(NoConformidad(
                id_no_conformidad=self.id_factory(),
                id_ficha=id_ficha,
                posicion=posicion,
                created_at=now,
                **nc.model_dump(),
            ))
        counts["no_conformidades"] = len(secciones.no_conformidades)

        if secciones.evaluacion_mitigacion is not None:
            self.db.add(EvaluacionMitigacion(
                id_evaluacion=self.id_factory(),
                id_ficha=id_ficha,
                **secciones.evaluacion_mitigacion.model_dump(),
            ))
            counts["evaluacion_mitigacion"] = 1

        if secciones.evaluacion_poscosecha is not None:
            self.db.add(EvaluacionPoscosecha(
                id_evaluacion_poscosecha=self.id_factory(),
                id_ficha=id_ficha,
                **secciones.evaluacion_poscosecha.model_dump(),
            ))
            counts["evaluacion_poscosecha"] = 1

        if secciones.evaluacion_conocimiento is not None:
            self.db.add(EvaluacionConocimientoNormas(
                id_evaluacion_conocimiento=self.id_factory(),
                id_ficha=id_ficha,
                **secciones.evaluacion_conocimiento.model_dump(),
            ))
            counts["evaluacion_conocimiento"] = 1

        for posicion, actividad in enumerate(secciones.actividades_pecuarias):
            self.db.add(ActividadPecuaria(
                id_actividad=self.id_factory(),
                id_ficha=id_ficha,
                posicion=posicion,
                created_at=now,
                **actividad.model_dump(),
            ))
        counts["actividades_pecuarias"] = len(secciones.actividades_pecuarias)

        await self.db.flush()

        counts["detalles_cultivo"], counts["manejo_cultivo"] = await self._write_detalles(
            id_ficha, secciones, now
        )

        # Harvest & sales
        check_cosecha_cardinality(secciones)
        cosecha = secciones.cosecha_ventas[0]
        self.db.add(CosechaVentas(
            id_cosecha=self.id_factory(),
            id_ficha=id_ficha,
            created_at=now,
            **cosecha.model_dump(),
        ))
        counts["cosecha_ventas"] = 1

        for posicion, plan in enumerate(secciones.planificaciones_siembra):
            self.db.add(PlanificacionSiembra(
                id_planificacion=self.id_factory(),
                id_ficha=id_ficha,
                posicion=posicion,
                created_at=now,
                updated_at=now,
                **plan.model_dump(),
            ))
        counts["planificaciones_siembra"] = len(secciones.planificaciones_siembra)

        for posicion, archivo in enumerate(secciones.archivos):
            self.db.add(ArchivoFicha(
                id_archivo=self.id_factory(),
                id_ficha=id_ficha,
                posicion=posicion,
                created_at=now,
                **archivo.model_dump(),
            ))
        counts["archivos"] = len(secciones.archivos)

        await self.db.flush()

        # Plot updates
        counts["parcelas_actualizadas"] = await self.parcela_service.apply_inspection_updates(
            secciones.parcelas_inspeccionadas
        )

        logger.info(f"Ficha {id_ficha}: secciones escritas {counts}")
        return counts

    async def _write_detalles(self, id_ficha: UUID, secciones: FichaSecciones, now: datetime):
        detalles_count = 0
        manejo_count = 0

        for posicion, detalle in enumerate(secciones.detalles_cultivo):
            id_detalle = self.id_factory()
            self.db.add(DetalleCultivoParcela(
                id_detalle=id_detalle,
                id_ficha=id_ficha,
                posicion=posicion,
                created_at=now,
                **detalle.model_dump(exclude=_MANEJO_FIELDS),
            ))
            await self.db.flush()
            detalles_count += 1

            if not await self.reference_lookup.is_certifiable(detalle.id_tipo_cultivo):
                continue

            if not detalle.has_seed_origin():
                logger.info(
                    f"Detalle {id_detalle}: cultivo certificable sin procedencia_semilla, "
                    f"no se registra manejo"
                )
                continue

            manejo = detalle.manejo()
            rules.ensure_valid(rules.validate_manejo_cultivo(manejo), "manejo_cultivo")
            self.db.add(ManejoCultivo(
                id_manejo=self.id_factory(),
                id_detalle=id_detalle,
                created_at=now,
                **manejo.model_dump(),
            ))
            await self.db.flush()
            manejo_count += 1

        return detalles_count, manejo_count

    async def delete_all(self, id_ficha: UUID) -> None:
        """Remove every owned section of the ficha."""
        detalle_ids = select(DetalleCultivoParcela.id_detalle).where(
            DetalleCultivoParcela.id_ficha == id_ficha
        )
        # Manejo rows reference detalle_cultivo_parcela, remove them first
        await self.db.execute(
            delete(ManejoCultivo)
            .where(ManejoCultivo.id_detalle.in_(detalle_ids))
            .execution_options(synchronize_session=False)
        )
        for model in OWNED_SECTION_MODELS:
            await self.db.execute(
                delete(model)
                .where(model.id_ficha == id_ficha)
                .execution_options(synchronize_session=False)
            )
        logger.info(f"Ficha {id_ficha}: secciones eliminadas")
