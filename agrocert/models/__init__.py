# Models module - importing registers every table on Base.metadata
from agrocert.models.catalogo import TipoCultivo
from agrocert.models.parcela import Parcela, TipoBarrera
from agrocert.models.ficha import (
    FichaInspeccion,
    RevisionDocumentacion,
    AccionCorrectiva,
    NoConformidad,
    EvaluacionMitigacion,
    EvaluacionPoscosecha,
    EvaluacionConocimientoNormas,
    ActividadPecuaria,
    DetalleCultivoParcela,
    ManejoCultivo,
    CosechaVentas,
    PlanificacionSiembra,
    ArchivoFicha,
)

__all__ = [
    "TipoCultivo",
    "Parcela",
    "TipoBarrera",
    "FichaInspeccion",
    "RevisionDocumentacion",
    "AccionCorrectiva",
    "NoConformidad",
    "EvaluacionMitigacion",
    "EvaluacionPoscosecha",
    "EvaluacionConocimientoNormas",
    "ActividadPecuaria",
    "DetalleCultivoParcela",
    "ManejoCultivo",
    "CosechaVentas",
    "PlanificacionSiembra",
    "ArchivoFicha",
]
