"""
Ficha Validation Service

Business rules for every entity of the inspection record aggregate.

Each validate_* function is pure: it reads the candidate entity, performs no
I/O and returns a ValidationResult holding every violation found (errors)
plus non-blocking observations (warnings).
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Type

from agrocert.core.exceptions import ValidationFailed
from agrocert.models.ficha import (
    OTRO,
    CategoriaProductor,
    CategoriaSemilla,
    ComplianceStatus,
    ControlHierbas,
    EstadoFicha,
    EstadoSeguimiento,
    EstadoSync,
    EstadoUpload,
    MetodoAporque,
    MetodoCosecha,
    OrigenCaptura,
    ProcedenciaSemilla,
    ResultadoCertificacion,
    TipoAbonamiento,
    TipoArchivo,
    TipoGanado,
    TratamientoSemillas,
)
from agrocert.models.parcela import TipoBarrera
from agrocert.schemas.ficha import (
    AccionCorrectivaIn,
    ActividadPecuariaIn,
    ArchivoFichaIn,
    CosechaVentasIn,
    DetalleCultivoIn,
    EvaluacionConocimientoIn,
    EvaluacionMitigacionIn,
    EvaluacionPoscosechaIn,
    FichaCreate,
    FichaSecciones,
    FichaUpdate,
    ManejoCultivoIn,
    NoConformidadIn,
    ParcelaInspeccionadaIn,
    PlanificacionSiembraIn,
    RevisionDocumentacionIn,
)

logger = logging.getLogger(__name__)


GESTION_MIN = 2000
GESTION_MAX = 2050
MAX_SUPERFICIE_HA = Decimal("10000")
MAX_CANTIDAD_ANIMALES = 10000
MAX_NUMERO_PARCELAS = 100
MAX_TAMANO_ARCHIVO = 50 * 1024 * 1024
# Planned crops may exceed the plot area by this factor before a warning
PLANIFICACION_TOLERANCIA = Decimal("1.1")


@dataclass
class ValidationResult:
    """Result of validating one entity, or a whole payload."""
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    # section of each error, None for root fields
    sections: List[Optional[str]] = field(default_factory=list)

    def add_error(self, message: str, section: Optional[str] = None) -> None:
        self.errors.append(message)
        self.sections.append(section)
        self.valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def merge(self, other: "ValidationResult", section: str, index: Optional[int] = None) -> None:
        """Fold an entity result in, prefixing messages with where the entity sits."""
        label = section if index is None else f"{section}[{index}]"
        for error in other.errors:
            self.add_error(f"{label}: {error}", section)
        for warning in other.warnings:
            self.add_warning(f"{label}: {warning}")

    @property
    def failed_section(self) -> Optional[str]:
        """The section holding every error, when there is exactly one."""
        names = set(self.sections)
        return names.pop() if len(names) == 1 else None


def ensure_valid(result: ValidationResult, section: Optional[str] = None) -> None:
    """Raise ValidationFailed when the result holds errors. Warnings are only logged."""
    for warning in result.warnings:
        logger.warning(f"Validation warning ({section or 'ficha'}): {warning}")
    if not result.valid:
        raise ValidationFailed(result.errors, section=section or result.failed_section)


# ============================================================================
# FIELD CHECKS
# ============================================================================

def _values(enum_cls: Type[Enum]) -> List[str]:
    return [member.value for member in enum_cls]


def _check_enum(result: ValidationResult, name: str, value: Optional[str],
                enum_cls: Type[Enum], required: bool = True) -> None:
    if value is None or value == "":
        if required:
            result.add_error(f"{name} es requerido")
        return
    allowed = _values(enum_cls)
    if value not in allowed:
        result.add_error(f"{name} debe ser uno de: {', '.join(allowed)}")


def _check_max_length(result: ValidationResult, name: str, value: Optional[str],
                      max_length: int) -> None:
    if value is not None and len(value) > max_length:
        result.add_error(f"{name} no puede exceder {max_length} caracteres")


def _check_length(result: ValidationResult, name: str, value: Optional[str],
                  min_length: int, max_length: int) -> None:
    text = (value or "").strip()
    if not text:
        result.add_error(f"{name} es requerido")
    elif len(text) < min_length:
        result.add_error(f"{name} debe tener al menos {min_length} caracteres")
    elif len(text) > max_length:
        result.add_error(f"{name} no puede exceder {max_length} caracteres")


def _check_range(result: ValidationResult, name: str, value, minimum=None,
                 maximum=None) -> None:
    if value is None:
        return
    if minimum is not None and value < minimum:
        result.add_error(f"{name} no puede ser menor a {minimum}")
    if maximum is not None and value > maximum:
        result.add_error(f"{name} no puede exceder {maximum}")


def _check_compliance(result: ValidationResult, data: Any, names: List[str]) -> None:
    for name in names:
        _check_enum(result, name, getattr(data, name), ComplianceStatus)


# ============================================================================
# ROOT
# ============================================================================

def normalize_codigo_productor(codigo_productor: str) -> str:
    """Producer codes are stored and looked up trimmed and upper-cased."""
    return (codigo_productor or "").strip().upper()


def _check_ficha_common(result: ValidationResult, data: FichaUpdate) -> None:
    if data.fecha_inspeccion is None:
        result.add_error("fecha_inspeccion es requerida")
    _check_length(result, "inspector_interno", data.inspector_interno, 3, 100)
    _check_max_length(result, "persona_entrevistada", data.persona_entrevistada, 100)
    _check_enum(
        result, "categoria_gestion_anterior", data.categoria_gestion_anterior,
        CategoriaProductor, required=False
    )
    _check_max_length(
        result, "comentarios_actividad_pecuaria", data.comentarios_actividad_pecuaria, 2000
    )
    _check_max_length(result, "comentarios_evaluacion", data.comentarios_evaluacion, 2000)


def validate_ficha(data: FichaCreate) -> ValidationResult:
    """Validate the root of a new inspection record."""
    result = ValidationResult()

    codigo = (data.codigo_productor or "").strip()
    if not codigo:
        result.add_error("codigo_productor es requerido")
    elif len(codigo) < 5:
        result.add_error("codigo_productor debe tener al menos 5 caracteres")
    elif len(codigo) > 20:
        result.add_error("codigo_productor no puede exceder 20 caracteres")

    if data.gestion is None:
        result.add_error("gestion es requerida")
    elif not GESTION_MIN <= data.gestion <= GESTION_MAX:
        result.add_error(f"gestion debe estar entre {GESTION_MIN} y {GESTION_MAX}")

    _check_ficha_common(result, data)
    _check_enum(result, "origen_captura", data.origen_captura, OrigenCaptura)
    _check_enum(result, "estado_sync", data.estado_sync, EstadoSync)
    _check_enum(result, "estado_ficha", data.estado_ficha, EstadoFicha)
    _check_enum(
        result, "resultado_certificacion", data.resultado_certificacion, ResultadoCertificacion
    )

    if not (data.created_by or "").strip():
        result.add_error("created_by es requerido")

    return result


def validate_ficha_update(data: FichaUpdate) -> ValidationResult:
    """Validate the mutable root fields accepted by a replace."""
    result = ValidationResult()
    _check_ficha_common(result, data)
    return result


# ============================================================================
# SINGLE-VALUED SECTIONS
# ============================================================================

def validate_revision_documentacion(data: RevisionDocumentacionIn) -> ValidationResult:
    result = ValidationResult()
    _check_compliance(result, data, [
        "solicitud_ingreso",
        "normas_reglamentos",
        "contrato_produccion",
        "croquis_unidad",
        "diario_campo",
        "registro_cosecha",
        "recibo_pago",
    ])
    _check_max_length(
        result, "observaciones_documentacion", data.observaciones_documentacion, 1000
    )
    return result


def validate_evaluacion_mitigacion(data: EvaluacionMitigacionIn) -> ValidationResult:
    result = ValidationResult()
    _check_compliance(result, data, [
        "practica_mitigacion_riesgos",
        "mitigacion_contaminacion",
        "deposito_herramientas",
        "deposito_insumos_organicos",
        "evita_quema_residuos",
    ])
    _check_max_length(
        result, "practica_mitigacion_riesgos_descripcion",
        data.practica_mitigacion_riesgos_descripcion, 1000
    )
    _check_max_length(
        result, "mitigacion_contaminacion_descripcion",
        data.mitigacion_contaminacion_descripcion, 1000
    )
    return result


def validate_evaluacion_poscosecha(data: EvaluacionPoscosechaIn) -> ValidationResult:
    result = ValidationResult()
    _check_compliance(result, data, [
        "secado_tendal",
        "envases_limpios",
        "almacen_protegido",
        "evidencia_comercializacion",
    ])
    _check_max_length(result, "comentarios_poscosecha", data.comentarios_poscosecha, 1000)
    return result


def validate_evaluacion_conocimiento(data: EvaluacionConocimientoIn) -> ValidationResult:
    result = ValidationResult()
    _check_compliance(result, data, ["conoce_normas_organicas", "recibio_capacitacion"])
    _check_max_length(result, "comentarios_conocimiento", data.comentarios_conocimiento, 1000)
    return result


# ============================================================================
# LIST-VALUED SECTIONS
# ============================================================================

def validate_accion_correctiva(data: AccionCorrectivaIn) -> ValidationResult:
    result = ValidationResult()
    if data.numero_accion is None or data.numero_accion < 1:
        result.add_error("numero_accion debe ser mayor o igual a 1")
    _check_length(result, "descripcion_accion", data.descripcion_accion, 5, 500)
    _check_max_length(
        result, "implementacion_descripcion", data.implementacion_descripcion, 500
    )
    return result


def validate_no_conformidad(data: NoConformidadIn) -> ValidationResult:
    result = ValidationResult()
    _check_length(
        result, "descripcion_no_conformidad", data.descripcion_no_conformidad, 5, 500
    )
    _check_max_length(
        result, "accion_correctiva_propuesta", data.accion_correctiva_propuesta, 500
    )
    _check_enum(result, "estado_seguimiento", data.estado_seguimiento, EstadoSeguimiento)
    return result


def validate_actividad_pecuaria(data: ActividadPecuariaIn) -> ValidationResult:
    result = ValidationResult()
    _check_enum(result, "tipo_ganado", data.tipo_ganado, TipoGanado)
    _check_range(result, "cantidad", data.cantidad, 0, MAX_CANTIDAD_ANIMALES)
    _check_max_length(result, "animal_especifico", data.animal_especifico, 100)
    _check_max_length(result, "sistema_manejo", data.sistema_manejo, 200)
    _check_max_length(result, "uso_guano", data.uso_guano, 500)
    return result


def validate_detalle_cultivo(data: DetalleCultivoIn) -> ValidationResult:
    """Validate the crop detail itself. Crop management is validated separately."""
    result = ValidationResult()
    if data.id_parcela is None:
        result.add_error("id_parcela es requerido")
    if data.id_tipo_cultivo is None:
        result.add_error("id_tipo_cultivo es requerido")
    if data.superficie_ha is None or data.superficie_ha <= 0:
        result.add_error("superficie_ha debe ser mayor a 0")
    elif data.superficie_ha > MAX_SUPERFICIE_HA:
        result.add_error(f"superficie_ha no puede exceder {MAX_SUPERFICIE_HA}")
    _check_max_length(result, "situacion_actual", data.situacion_actual, 100)
    return result


# choice field -> (allowed values, free-text companion or None)
_MANEJO_CHOICES = (
    ("procedencia_semilla", ProcedenciaSemilla, None),
    ("categoria_semilla", CategoriaSemilla, None),
    ("tratamiento_semillas", TratamientoSemillas, "tratamiento_semillas_otro"),
    ("tipo_abonamiento", TipoAbonamiento, "tipo_abonamiento_otro"),
    ("metodo_aporque", MetodoAporque, "metodo_aporque_otro"),
    ("control_hierbas", ControlHierbas, "control_hierbas_otro"),
    ("metodo_cosecha", MetodoCosecha, "metodo_cosecha_otro"),
)


def validate_manejo_cultivo(data: ManejoCultivoIn) -> ValidationResult:
    """
    Validate crop management data.

    Every choice is optional, but when present it must be a known value, and
    choosing "otro" requires its free-text companion.
    """
    result = ValidationResult()
    for name, enum_cls, otro_name in _MANEJO_CHOICES:
        value = getattr(data, name)
        _check_enum(result, name, value, enum_cls, required=False)
        if otro_name is None:
            continue
        otro_value = getattr(data, otro_name)
        _check_max_length(result, otro_name, otro_value, 200)
        if value == OTRO and not (otro_value or "").strip():
            result.add_error(f"{otro_name} es requerido cuando {name} es '{OTRO}'")
    return result


def validate_cosecha_ventas(data: CosechaVentasIn) -> ValidationResult:
    """Quantities and notes. tipo_mani is checked together with the section cardinality."""
    result = ValidationResult()
    _check_range(result, "superficie_actual_ha", data.superficie_actual_ha, 0, MAX_SUPERFICIE_HA)
    _check_range(result, "cosecha_estimada_qq", data.cosecha_estimada_qq, 0)
    _check_range(result, "numero_parcelas", data.numero_parcelas, 0, MAX_NUMERO_PARCELAS)
    _check_range(result, "destino_consumo_qq", data.destino_consumo_qq, 0)
    _check_range(result, "destino_semilla_qq", data.destino_semilla_qq, 0)
    _check_range(result, "destino_ventas_qq", data.destino_ventas_qq, 0)
    _check_max_length(result, "observaciones", data.observaciones, 1000)
    return result


def validate_planificacion_siembra(data: PlanificacionSiembraIn) -> ValidationResult:
    result = ValidationResult()
    if data.id_parcela is None:
        result.add_error("id_parcela es requerido")
    _check_range(
        result, "area_parcela_planificada_ha", data.area_parcela_planificada_ha,
        0, MAX_SUPERFICIE_HA
    )
    for name in ("mani_ha", "maiz_ha", "papa_ha", "aji_ha",
                 "leguminosas_ha", "otros_cultivos_ha", "descanso_ha"):
        _check_range(result, name, getattr(data, name), 0)
    _check_max_length(result, "otros_cultivos_detalle", data.otros_cultivos_detalle, 200)

    area = data.area_parcela_planificada_ha or Decimal("0")
    suma = data.suma_cultivos()
    if area > 0 and suma > area * PLANIFICACION_TOLERANCIA:
        result.add_warning(
            f"La suma de cultivos ({suma} ha) excede el area planificada ({area} ha)"
        )
    return result


def validate_archivo_ficha(data: ArchivoFichaIn) -> ValidationResult:
    result = ValidationResult()
    _check_enum(result, "tipo_archivo", data.tipo_archivo, TipoArchivo)
    _check_length(result, "nombre_original", data.nombre_original, 1, 255)
    if not (data.ruta_almacenamiento or "").strip():
        result.add_error("ruta_almacenamiento es requerida")
    if data.tamano_bytes is None or data.tamano_bytes <= 0:
        result.add_error("tamano_bytes debe ser mayor a 0")
    elif data.tamano_bytes > MAX_TAMANO_ARCHIVO:
        result.add_error("tamano_bytes no puede exceder 50 MB")
    _check_enum(result, "estado_upload", data.estado_upload, EstadoUpload)
    return result


def validate_parcela_inspeccionada(data: ParcelaInspeccionadaIn) -> ValidationResult:
    result = ValidationResult()
    if data.id_parcela is None:
        result.add_error("id_parcela es requerido")
    _check_enum(result, "tipo_barrera", data.tipo_barrera, TipoBarrera, required=False)
    _check_max_length(result, "insumos_organicos", data.insumos_organicos, 500)
    _check_range(result, "latitud_sud", data.latitud_sud, -90, 90)
    _check_range(result, "longitud_oeste", data.longitud_oeste, -180, 180)
    return result


# ============================================================================
# WHOLE PAYLOAD
# ============================================================================

# section -> validator, in write order. Crop management is checked at write
# time because it depends on the crop type being certifiable.
_LIST_SECTIONS = (
    ("acciones_correctivas", validate_accion_correctiva),
    ("no_conformidades", validate_no_conformidad),
    ("actividades_pecuarias", validate_actividad_pecuaria),
    ("detalles_cultivo", validate_detalle_cultivo),
    ("cosecha_ventas", validate_cosecha_ventas),
    ("planificaciones_siembra", validate_planificacion_siembra),
    ("archivos", validate_archivo_ficha),
    ("parcelas_inspeccionadas", validate_parcela_inspeccionada),
)

_SINGLE_SECTIONS = (
    ("revision_documentacion", validate_revision_documentacion),
    ("evaluacion_mitigacion", validate_evaluacion_mitigacion),
    ("evaluacion_poscosecha", validate_evaluacion_poscosecha),
    ("evaluacion_conocimiento", validate_evaluacion_conocimiento),
)


def validate_secciones(
    secciones: FichaSecciones,
    result: Optional[ValidationResult] = None,
) -> ValidationResult:
    """
    Validate every section entity of a payload in one pass.

    Errors are prefixed with the section name and, for list sections, the
    entity index, e.g. "archivos[1]: tipo_archivo es requerido". Pass the
    root result in to get a single list covering the whole payload.
    """
    if result is None:
        result = ValidationResult()

    for name, validator in _SINGLE_SECTIONS:
        entity = getattr(secciones, name)
        if entity is not None:
            result.merge(validator(entity), name)

    for name, validator in _LIST_SECTIONS:
        for index, entity in enumerate(getattr(secciones, name)):
            result.merge(validator(entity), name, index)

    return result
