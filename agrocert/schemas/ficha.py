"""
Ficha Schemas - inspection record aggregate.

Pydantic schemas for:
- Root inspection record (create / replace / response)
- Every owned section (input and response shapes)
- The composed aggregate view returned by the reader
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from agrocert.schemas.base import BaseCreateSchema, BaseResponseSchema


# ============================================================================
# ROOT INPUT SCHEMAS
# ============================================================================

class FichaBase(BaseCreateSchema):
    """Root fields that can be set on create and replaced afterwards."""
    fecha_inspeccion: date
    inspector_interno: str
    persona_entrevistada: Optional[str] = None
    categoria_gestion_anterior: Optional[str] = None
    comentarios_actividad_pecuaria: Optional[str] = None
    comentarios_evaluacion: Optional[str] = None


class FichaCreate(FichaBase):
    """Root fields for a new inspection record."""
    codigo_productor: str
    gestion: int
    id_gestion: Optional[UUID] = None
    origen_captura: str = "online"
    fecha_sincronizacion: Optional[datetime] = None
    estado_sync: str = "pendiente"
    estado_ficha: str = "borrador"
    resultado_certificacion: str = "pendiente"
    created_by: str


class FichaUpdate(FichaBase):
    """Root fields accepted by a full replace. Identity fields are immutable."""
    pass


# ============================================================================
# SECTION INPUT SCHEMAS
# ============================================================================

class RevisionDocumentacionIn(BaseCreateSchema):
    solicitud_ingreso: str
    normas_reglamentos: str
    contrato_produccion: str
    croquis_unidad: str
    diario_campo: str
    registro_cosecha: str
    recibo_pago: str
    observaciones_documentacion: Optional[str] = None


class AccionCorrectivaIn(BaseCreateSchema):
    numero_accion: int
    descripcion_accion: str
    implementacion_descripcion: Optional[str] = None


class NoConformidadIn(BaseCreateSchema):
    descripcion_no_conformidad: str
    accion_correctiva_propuesta: Optional[str] = None
    fecha_limite_implementacion: Optional[date] = None
    estado_seguimiento: str = "pendiente"


class EvaluacionMitigacionIn(BaseCreateSchema):
    practica_mitigacion_riesgos: str
    mitigacion_contaminacion: str
    deposito_herramientas: str
    deposito_insumos_organicos: str
    evita_quema_residuos: str
    practica_mitigacion_riesgos_descripcion: Optional[str] = None
    mitigacion_contaminacion_descripcion: Optional[str] = None


class EvaluacionPoscosechaIn(BaseCreateSchema):
    secado_tendal: str
    envases_limpios: str
    almacen_protegido: str
    evidencia_comercializacion: str
    comentarios_poscosecha: Optional[str] = None


class EvaluacionConocimientoIn(BaseCreateSchema):
    conoce_normas_organicas: str
    recibio_capacitacion: str
    comentarios_conocimiento: Optional[str] = None


class ActividadPecuariaIn(BaseCreateSchema):
    tipo_ganado: str
    animal_especifico: Optional[str] = None
    cantidad: int = 0
    sistema_manejo: Optional[str] = None
    uso_guano: Optional[str] = None


class ManejoCultivoIn(BaseCreateSchema):
    """Crop management fields, only persisted for certifiable crops."""
    procedencia_semilla: Optional[str] = None
    categoria_semilla: Optional[str] = None
    tratamiento_semillas: Optional[str] = None
    tratamiento_semillas_otro: Optional[str] = None
    tipo_abonamiento: Optional[str] = None
    tipo_abonamiento_otro: Optional[str] = None
    metodo_aporque: Optional[str] = None
    metodo_aporque_otro: Optional[str] = None
    control_hierbas: Optional[str] = None
    control_hierbas_otro: Optional[str] = None
    metodo_cosecha: Optional[str] = None
    metodo_cosecha_otro: Optional[str] = None


class DetalleCultivoIn(ManejoCultivoIn):
    """
    Crop on one plot.

    The crop management fields travel flattened on the same object, the way
    the capture form submits them.
    """
    id_parcela: UUID
    id_tipo_cultivo: UUID
    superficie_ha: Decimal
    situacion_actual: Optional[str] = None

    def has_seed_origin(self) -> bool:
        return bool(self.procedencia_semilla)

    def manejo(self) -> ManejoCultivoIn:
        return ManejoCultivoIn.model_validate(
            self.model_dump(include=set(ManejoCultivoIn.model_fields))
        )


class CosechaVentasIn(BaseCreateSchema):
    tipo_mani: str
    superficie_actual_ha: Decimal = Decimal("0")
    cosecha_estimada_qq: Decimal = Decimal("0")
    numero_parcelas: int = 0
    destino_consumo_qq: Decimal = Decimal("0")
    destino_semilla_qq: Decimal = Decimal("0")
    destino_ventas_qq: Decimal = Decimal("0")
    observaciones: Optional[str] = None


class PlanificacionSiembraIn(BaseCreateSchema):
    id_parcela: UUID
    area_parcela_planificada_ha: Decimal = Decimal("0")
    mani_ha: Decimal = Decimal("0")
    maiz_ha: Decimal = Decimal("0")
    papa_ha: Decimal = Decimal("0")
    aji_ha: Decimal = Decimal("0")
    leguminosas_ha: Decimal = Decimal("0")
    otros_cultivos_ha: Decimal = Decimal("0")
    otros_cultivos_detalle: Optional[str] = None
    descanso_ha: Decimal = Decimal("0")

    def suma_cultivos(self) -> Decimal:
        return (
            self.mani_ha + self.maiz_ha + self.papa_ha + self.aji_ha
            + self.leguminosas_ha + self.otros_cultivos_ha + self.descanso_ha
        )


class ArchivoFichaIn(BaseCreateSchema):
    tipo_archivo: str
    nombre_original: str
    ruta_almacenamiento: str
    tamano_bytes: int
    mime_type: Optional[str] = None
    estado_upload: str = "pendiente"
    hash_archivo: Optional[str] = None
    fecha_captura: Optional[datetime] = None


class ParcelaInspeccionadaIn(BaseCreateSchema):
    """Plot attributes observed in the field. Absent fields keep their stored value."""
    id_parcela: UUID
    rotacion: Optional[bool] = None
    utiliza_riego: Optional[bool] = None
    tipo_barrera: Optional[str] = None
    insumos_organicos: Optional[str] = None
    latitud_sud: Optional[Decimal] = None
    longitud_oeste: Optional[Decimal] = None


class FichaSecciones(BaseCreateSchema):
    """Every optional section of the aggregate."""
    revision_documentacion: Optional[RevisionDocumentacionIn] = None
    acciones_correctivas: List[AccionCorrectivaIn] = Field(default_factory=list)
    no_conformidades: List[NoConformidadIn] = Field(default_factory=list)
    evaluacion_mitigacion: Optional[EvaluacionMitigacionIn] = None
    evaluacion_poscosecha: Optional[EvaluacionPoscosechaIn] = None
    evaluacion_conocimiento: Optional[EvaluacionConocimientoIn] = None
    actividades_pecuarias: List[ActividadPecuariaIn] = Field(default_factory=list)
    detalles_cultivo: List[DetalleCultivoIn] = Field(default_factory=list)
    cosecha_ventas: List[CosechaVentasIn] = Field(default_factory=list)
    planificaciones_siembra: List[PlanificacionSiembraIn] = Field(default_factory=list)
    archivos: List[ArchivoFichaIn] = Field(default_factory=list)
    parcelas_inspeccionadas: List[ParcelaInspeccionadaIn] = Field(default_factory=list)


class FichaCompletaCreate(FichaSecciones):
    """Payload for creating the whole aggregate."""
    ficha: FichaCreate


class FichaCompletaReplace(FichaSecciones):
    """
    Payload for replacing the whole aggregate.

    Not a patch: any section left out is removed.
    """
    ficha: FichaUpdate


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class FichaResponse(BaseResponseSchema):
    id_ficha: UUID
    codigo_productor: str
    id_gestion: Optional[UUID] = None
    gestion: int
    fecha_inspeccion: date
    inspector_interno: str
    persona_entrevistada: Optional[str] = None
    categoria_gestion_anterior: Optional[str] = None
    origen_captura: str
    fecha_sincronizacion: Optional[datetime] = None
    estado_sync: str
    estado_ficha: str
    resultado_certificacion: str
    comentarios_actividad_pecuaria: Optional[str] = None
    comentarios_evaluacion: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: datetime


class RevisionDocumentacionResponse(BaseResponseSchema):
    id_revision: UUID
    id_ficha: UUID
    solicitud_ingreso: str
    normas_reglamentos: str
    contrato_produccion: str
    croquis_unidad: str
    diario_campo: str
    registro_cosecha: str
    recibo_pago: str
    observaciones_documentacion: Optional[str] = None


class AccionCorrectivaResponse(BaseResponseSchema):
    id_accion: UUID
    id_ficha: UUID
    numero_accion: int
    descripcion_accion: str
    implementacion_descripcion: Optional[str] = None
    created_at: datetime


class NoConformidadResponse(BaseResponseSchema):
    id_no_conformidad: UUID
    id_ficha: UUID
    descripcion_no_conformidad: str
    accion_correctiva_propuesta: Optional[str] = None
    fecha_limite_implementacion: Optional[date] = None
    estado_seguimiento: str
    created_at: datetime


class EvaluacionMitigacionResponse(BaseResponseSchema):
    id_evaluacion: UUID
    id_ficha: UUID
    practica_mitigacion_riesgos: str
    mitigacion_contaminacion: str
    deposito_herramientas: str
    deposito_insumos_organicos: str
    evita_quema_residuos: str
    practica_mitigacion_riesgos_descripcion: Optional[str] = None
    mitigacion_contaminacion_descripcion: Optional[str] = None


class EvaluacionPoscosechaResponse(BaseResponseSchema):
    id_evaluacion_poscosecha: UUID
    id_ficha: UUID
    secado_tendal: str
    envases_limpios: str
    almacen_protegido: str
    evidencia_comercializacion: str
    comentarios_poscosecha: Optional[str] = None


class EvaluacionConocimientoResponse(BaseResponseSchema):
    id_evaluacion_conocimiento: UUID
    id_ficha: UUID
    conoce_normas_organicas: str
    recibio_capacitacion: str
    comentarios_conocimiento: Optional[str] = None


class ActividadPecuariaResponse(BaseResponseSchema):
    id_actividad: UUID
    id_ficha: UUID
    tipo_ganado: str
    animal_especifico: Optional[str] = None
    cantidad: int
    sistema_manejo: Optional[str] = None
    uso_guano: Optional[str] = None
    created_at: datetime


class ManejoCultivoResponse(BaseResponseSchema):
    id_manejo: UUID
    id_detalle: UUID
    procedencia_semilla: Optional[str] = None
    categoria_semilla: Optional[str] = None
    tratamiento_semillas: Optional[str] = None
    tratamiento_semillas_otro: Optional[str] = None
    tipo_abonamiento: Optional[str] = None
    tipo_abonamiento_otro: Optional[str] = None
    metodo_aporque: Optional[str] = None
    metodo_aporque_otro: Optional[str] = None
    control_hierbas: Optional[str] = None
    control_hierbas_otro: Optional[str] = None
    metodo_cosecha: Optional[str] = None
    metodo_cosecha_otro: Optional[str] = None


class DetalleCultivoResponse(BaseResponseSchema):
    """Crop detail decorated with the crop name and the plot's current attributes."""
    id_detalle: UUID
    id_ficha: UUID
    id_parcela: UUID
    id_tipo_cultivo: UUID
    superficie_ha: Decimal
    situacion_actual: Optional[str] = None
    created_at: datetime

    # Read-time decoration
    nombre_cultivo: Optional[str] = None
    numero_parcela: Optional[int] = None
    rotacion: Optional[bool] = None
    utiliza_riego: Optional[bool] = None
    tipo_barrera: Optional[str] = None
    insumos_organicos: Optional[str] = None
    latitud_sud: Optional[Decimal] = None
    longitud_oeste: Optional[Decimal] = None

    manejo: Optional[ManejoCultivoResponse] = None


class CosechaVentasResponse(BaseResponseSchema):
    id_cosecha: UUID
    id_ficha: UUID
    tipo_mani: str
    superficie_actual_ha: Decimal
    cosecha_estimada_qq: Decimal
    numero_parcelas: int
    destino_consumo_qq: Decimal
    destino_semilla_qq: Decimal
    destino_ventas_qq: Decimal
    observaciones: Optional[str] = None
    created_at: datetime


class PlanificacionSiembraResponse(BaseResponseSchema):
    id_planificacion: UUID
    id_ficha: UUID
    id_parcela: UUID
    area_parcela_planificada_ha: Decimal
    mani_ha: Decimal
    maiz_ha: Decimal
    papa_ha: Decimal
    aji_ha: Decimal
    leguminosas_ha: Decimal
    otros_cultivos_ha: Decimal
    otros_cultivos_detalle: Optional[str] = None
    descanso_ha: Decimal
    created_at: datetime


class ArchivoFichaResponse(BaseResponseSchema):
    id_archivo: UUID
    id_ficha: UUID
    tipo_archivo: str
    nombre_original: str
    ruta_almacenamiento: str
    tamano_bytes: int
    mime_type: Optional[str] = None
    estado_upload: str
    hash_archivo: Optional[str] = None
    fecha_captura: Optional[datetime] = None
    created_at: datetime


class FichaCompletaResponse(BaseModel):
    """The root plus every present section."""
    ficha: FichaResponse
    revision_documentacion: Optional[RevisionDocumentacionResponse] = None
    acciones_correctivas: List[AccionCorrectivaResponse] = Field(default_factory=list)
    no_conformidades: List[NoConformidadResponse] = Field(default_factory=list)
    evaluacion_mitigacion: Optional[EvaluacionMitigacionResponse] = None
    evaluacion_poscosecha: Optional[EvaluacionPoscosechaResponse] = None
    evaluacion_conocimiento: Optional[EvaluacionConocimientoResponse] = None
    actividades_pecuarias: List[ActividadPecuariaResponse] = Field(default_factory=list)
    detalles_cultivo: List[DetalleCultivoResponse] = Field(default_factory=list)
    cosecha_ventas: List[CosechaVentasResponse] = Field(default_factory=list)
    planificaciones_siembra: List[PlanificacionSiembraResponse] = Field(default_factory=list)
    archivos: List[ArchivoFichaResponse] = Field(default_factory=list)


class FichaListResponse(BaseModel):
    """Paginated root records."""
    items: List[FichaResponse]
    total: int
    skip: int
    limit: int


class FichaEstadisticas(BaseModel):
    """Record counts per workflow status."""
    gestion: Optional[int] = None
    total: int
    por_estado: dict[str, int]
