"""
Ficha de Inspeccion Models - inspection record aggregate.

This module implements the inspection record and its owned sections:
- FichaInspeccion: Root record, one per (productor, gestion)
- RevisionDocumentacion: Documentation review (0..1)
- AccionCorrectiva: Corrective actions from the previous cycle (0..N)
- NoConformidad: Non-conformities found in this cycle (0..N)
- EvaluacionMitigacion / EvaluacionPoscosecha / EvaluacionConocimientoNormas (0..1 each)
- ActividadPecuaria: Livestock activities (0..N)
- DetalleCultivoParcela: Per-plot crop detail (0..N)
- ManejoCultivo: Crop management, only for principal-certifiable crops (0..1 per detail)
- CosechaVentas: Harvest & sales (exactly 1)
- PlanificacionSiembra: Planting plan per plot (0..N)
- ArchivoFicha: Attached file metadata (0..N)

Every section row is deleted together with its root (ON DELETE CASCADE).
"""
import uuid
from datetime import datetime, timezone, date
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    String, DateTime, ForeignKey, Integer, BigInteger, Text,
    Numeric, Date, Index, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column

from agrocert.database import Base
from agrocert.db_types import UUIDType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# ENUMS
# ============================================================================

class ComplianceStatus(str, Enum):
    """Compliance flag used by the evaluation sections."""
    CUMPLE = "cumple"
    PARCIAL = "parcial"
    NO_CUMPLE = "no_cumple"
    NO_APLICA = "no_aplica"


class CategoriaProductor(str, Enum):
    """Producer category awarded in the previous cycle."""
    E = "E"
    SEGUNDO_TRANSICION = "2T"
    PRIMER_TRANSICION = "1T"
    CERO_TRANSICION = "0T"


class OrigenCaptura(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class EstadoSync(str, Enum):
    PENDIENTE = "pendiente"
    SINCRONIZADO = "sincronizado"
    CONFLICTO = "conflicto"


class EstadoFicha(str, Enum):
    """Workflow status. Managed outside the aggregate engine."""
    BORRADOR = "borrador"
    REVISION = "revision"
    APROBADO = "aprobado"
    RECHAZADO = "rechazado"


class ResultadoCertificacion(str, Enum):
    APROBADO = "aprobado"
    RECHAZADO = "rechazado"
    PENDIENTE = "pendiente"


class EstadoSeguimiento(str, Enum):
    """Follow-up state of a non-conformity."""
    PENDIENTE = "pendiente"
    SEGUIMIENTO = "seguimiento"
    CORREGIDO = "corregido"


class TipoGanado(str, Enum):
    MAYOR = "mayor"
    MENOR = "menor"
    AVES = "aves"


class TipoMani(str, Enum):
    """Harvest discriminator - the two values are mutually exclusive."""
    ECOLOGICO = "ecologico"
    TRANSICION = "transicion"


class ProcedenciaSemilla(str, Enum):
    ASOCIACION = "asociacion"
    PROPIA = "propia"
    OTRO_PRODUCTOR = "otro_productor"
    NO_SEMBRO = "no_sembro"


class CategoriaSemilla(str, Enum):
    ORGANICA = "organica"
    TRANSICION = "transicion"
    CONVENCIONAL = "convencional"
    NINGUNA = "ninguna"


class TratamientoSemillas(str, Enum):
    SIN_TRATAMIENTO = "sin_tratamiento"
    AGROQUIMICO = "agroquimico"
    INSUMOS_ORGANICOS = "insumos_organicos"
    OTRO = "otro"


class TipoAbonamiento(str, Enum):
    RASTROJO = "rastrojo"
    GUANO = "guano"
    OTRO = "otro"


class MetodoAporque(str, Enum):
    CON_YUNTA = "con_yunta"
    MANUAL = "manual"
    OTRO = "otro"


class ControlHierbas(str, Enum):
    CON_BUEYES = "con_bueyes"
    CARPIDA_MANUAL = "carpida_manual"
    OTRO = "otro"


class MetodoCosecha(str, Enum):
    CON_YUNTA = "con_yunta"
    MANUAL = "manual"
    OTRO = "otro"


class TipoArchivo(str, Enum):
    CROQUIS = "croquis"
    FOTO_PARCELA = "foto_parcela"
    DOCUMENTO_PDF = "documento_pdf"


class EstadoUpload(str, Enum):
    PENDIENTE = "pendiente"
    SUBIDO = "subido"
    ERROR = "error"


# Sentinel value that makes the matching "_otro" free-text field required
OTRO = "otro"


# ============================================================================
# ROOT
# ============================================================================

class FichaInspeccion(Base):
    """
    Inspection record for one producer in one certification cycle.

    The (codigo_productor, gestion) pair is unique at the store level.
    """
    __tablename__ = "ficha_inspeccion"
    __table_args__ = (
        UniqueConstraint('codigo_productor', 'gestion', name='uq_ficha_productor_gestion'),
        Index('ix_ficha_inspeccion_estado', 'estado_ficha'),
    )

    id_ficha: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)

    # Identity
    codigo_productor: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    id_gestion: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    gestion: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # Inspection data
    fecha_inspeccion: Mapped[date] = mapped_column(Date, nullable=False)
    inspector_interno: Mapped[str] = mapped_column(String(100), nullable=False)
    persona_entrevistada: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    categoria_gestion_anterior: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    # Offline capture control
    origen_captura: Mapped[str] = mapped_column(String(20), default="online", nullable=False)
    fecha_sincronizacion: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    estado_sync: Mapped[str] = mapped_column(String(20), default="pendiente", nullable=False)

    # Workflow
    estado_ficha: Mapped[str] = mapped_column(String(20), default="borrador", nullable=False)
    resultado_certificacion: Mapped[str] = mapped_column(
        String(20),
        default="pendiente",
        nullable=False
    )

    # Free text
    comentarios_actividad_pecuaria: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    comentarios_evaluacion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Audit
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow
    )


def _ficha_fk() -> Mapped[uuid.UUID]:
    return mapped_column(
        UUIDType,
        ForeignKey("ficha_inspeccion.id_ficha", ondelete="CASCADE"),
        nullable=False,
        index=True
    )


# ============================================================================
# SINGLE-VALUED SECTIONS
# ============================================================================

class RevisionDocumentacion(Base):
    """Documentation review (seven compliance flags)."""
    __tablename__ = "revision_documentacion"
    __table_args__ = (
        UniqueConstraint('id_ficha', name='uq_revision_documentacion_ficha'),
    )

    id_revision: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_ficha: Mapped[uuid.UUID] = _ficha_fk()

    solicitud_ingreso: Mapped[str] = mapped_column(String(20), nullable=False)
    normas_reglamentos: Mapped[str] = mapped_column(String(20), nullable=False)
    contrato_produccion: Mapped[str] = mapped_column(String(20), nullable=False)
    croquis_unidad: Mapped[str] = mapped_column(String(20), nullable=False)
    diario_campo: Mapped[str] = mapped_column(String(20), nullable=False)
    registro_cosecha: Mapped[str] = mapped_column(String(20), nullable=False)
    recibo_pago: Mapped[str] = mapped_column(String(20), nullable=False)
    observaciones_documentacion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class EvaluacionMitigacion(Base):
    """Risk-mitigation evaluation."""
    __tablename__ = "evaluacion_mitigacion"
    __table_args__ = (
        UniqueConstraint('id_ficha', name='uq_evaluacion_mitigacion_ficha'),
    )

    id_evaluacion: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_ficha: Mapped[uuid.UUID] = _ficha_fk()

    practica_mitigacion_riesgos: Mapped[str] = mapped_column(String(20), nullable=False)
    mitigacion_contaminacion: Mapped[str] = mapped_column(String(20), nullable=False)
    deposito_herramientas: Mapped[str] = mapped_column(String(20), nullable=False)
    deposito_insumos_organicos: Mapped[str] = mapped_column(String(20), nullable=False)
    evita_quema_residuos: Mapped[str] = mapped_column(String(20), nullable=False)
    practica_mitigacion_riesgos_descripcion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mitigacion_contaminacion_descripcion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class EvaluacionPoscosecha(Base):
    """Post-harvest evaluation."""
    __tablename__ = "evaluacion_poscosecha"
    __table_args__ = (
        UniqueConstraint('id_ficha', name='uq_evaluacion_poscosecha_ficha'),
    )

    id_evaluacion_poscosecha: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_ficha: Mapped[uuid.UUID] = _ficha_fk()

    secado_tendal: Mapped[str] = mapped_column(String(20), nullable=False)
    envases_limpios: Mapped[str] = mapped_column(String(20), nullable=False)
    almacen_protegido: Mapped[str] = mapped_column(String(20), nullable=False)
    evidencia_comercializacion: Mapped[str] = mapped_column(String(20), nullable=False)
    comentarios_poscosecha: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class EvaluacionConocimientoNormas(Base):
    """Knowledge-of-standards evaluation."""
    __tablename__ = "evaluacion_conocimiento_normas"
    __table_args__ = (
        UniqueConstraint('id_ficha', name='uq_evaluacion_conocimiento_ficha'),
    )

    id_evaluacion_conocimiento: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_ficha: Mapped[uuid.UUID] = _ficha_fk()

    conoce_normas_organicas: Mapped[str] = mapped_column(String(20), nullable=False)
    recibio_capacitacion: Mapped[str] = mapped_column(String(20), nullable=False)
    comentarios_conocimiento: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# ============================================================================
# LIST-VALUED SECTIONS
# ============================================================================
# posicion keeps the payload order so the aggregate reads back the same way
# it was written.

class AccionCorrectiva(Base):
    """Corrective action carried over from the previous cycle."""
    __tablename__ = "acciones_correctivas"

    id_accion: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_ficha: Mapped[uuid.UUID] = _ficha_fk()
    posicion: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    numero_accion: Mapped[int] = mapped_column(Integer, nullable=False)
    descripcion_accion: Mapped[str] = mapped_column(Text, nullable=False)
    implementacion_descripcion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class NoConformidad(Base):
    """Non-conformity detected in the current cycle."""
    __tablename__ = "no_conformidades"

    id_no_conformidad: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_ficha: Mapped[uuid.UUID] = _ficha_fk()
    posicion: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    descripcion_no_conformidad: Mapped[str] = mapped_column(Text, nullable=False)
    accion_correctiva_propuesta: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fecha_limite_implementacion: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    estado_seguimiento: Mapped[str] = mapped_column(
        String(20),
        default="pendiente",
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ActividadPecuaria(Base):
    """Livestock activity."""
    __tablename__ = "actividad_pecuaria"

    id_actividad: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_ficha: Mapped[uuid.UUID] = _ficha_fk()
    posicion: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    tipo_ganado: Mapped[str] = mapped_column(String(10), nullable=False)
    animal_especifico: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    cantidad: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sistema_manejo: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    uso_guano: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class DetalleCultivoParcela(Base):
    """Crop planted on one plot, as seen during this inspection."""
    __tablename__ = "detalle_cultivo_parcela"
    __table_args__ = (
        Index('ix_detalle_cultivo_parcela_parcela', 'id_parcela'),
    )

    id_detalle: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_ficha: Mapped[uuid.UUID] = _ficha_fk()
    posicion: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    id_parcela: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("parcelas.id_parcela"),
        nullable=False
    )
    id_tipo_cultivo: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("tipos_cultivo.id_tipo_cultivo"),
        nullable=False
    )
    superficie_ha: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    situacion_actual: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ManejoCultivo(Base):
    """
    Crop management detail for principal-certifiable crops.

    Owned by a DetalleCultivoParcela row and removed with it.
    """
    __tablename__ = "manejo_cultivo_mani"
    __table_args__ = (
        UniqueConstraint('id_detalle', name='uq_manejo_cultivo_detalle'),
    )

    id_manejo: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_detalle: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("detalle_cultivo_parcela.id_detalle", ondelete="CASCADE"),
        nullable=False
    )

    procedencia_semilla: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    categoria_semilla: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    tratamiento_semillas: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    tratamiento_semillas_otro: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    tipo_abonamiento: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    tipo_abonamiento_otro: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    metodo_aporque: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    metodo_aporque_otro: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    control_hierbas: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    control_hierbas_otro: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    metodo_cosecha: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    metodo_cosecha_otro: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class CosechaVentas(Base):
    """Harvest and sales summary. Exactly one per ficha."""
    __tablename__ = "cosecha_ventas"

    id_cosecha: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_ficha: Mapped[uuid.UUID] = _ficha_fk()

    tipo_mani: Mapped[str] = mapped_column(String(20), nullable=False)
    superficie_actual_ha: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=0)
    cosecha_estimada_qq: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    numero_parcelas: Mapped[int] = mapped_column(Integer, default=0)
    destino_consumo_qq: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    destino_semilla_qq: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    destino_ventas_qq: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    observaciones: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class PlanificacionSiembra(Base):
    """Planting plan for the next cycle, one row per plot."""
    __tablename__ = "planificacion_siembra"

    id_planificacion: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_ficha: Mapped[uuid.UUID] = _ficha_fk()
    posicion: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    id_parcela: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("parcelas.id_parcela"),
        nullable=False
    )
    area_parcela_planificada_ha: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=0)
    mani_ha: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=0)
    maiz_ha: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=0)
    papa_ha: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=0)
    aji_ha: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=0)
    leguminosas_ha: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=0)
    otros_cultivos_ha: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=0)
    otros_cultivos_detalle: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    descanso_ha: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow
    )


class ArchivoFicha(Base):
    """Metadata of a file attached to the ficha. Binary content lives elsewhere."""
    __tablename__ = "archivos_ficha"

    id_archivo: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True)
    id_ficha: Mapped[uuid.UUID] = _ficha_fk()
    posicion: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    tipo_archivo: Mapped[str] = mapped_column(String(20), nullable=False)
    nombre_original: Mapped[str] = mapped_column(String(255), nullable=False)
    ruta_almacenamiento: Mapped[str] = mapped_column(String(500), nullable=False)
    tamano_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    estado_upload: Mapped[str] = mapped_column(String(20), default="pendiente", nullable=False)
    hash_archivo: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    fecha_captura: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
