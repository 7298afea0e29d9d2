"""
Parcela Models - producer plots.

Plots are not owned by the inspection record. The engine only reads them
for display and applies partial updates with data captured in the field.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Integer, Numeric, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from agrocert.database import Base
from agrocert.db_types import UUIDType


class TipoBarrera(str, Enum):
    """Barrier protecting the plot from neighbouring contamination."""
    NINGUNA = "ninguna"
    VIVA = "viva"
    MUERTA = "muerta"


class Parcela(Base):
    """Plot belonging to a producer."""
    __tablename__ = "parcelas"
    __table_args__ = (
        UniqueConstraint('codigo_productor', 'numero_parcela', name='uq_parcela_productor_numero'),
        Index('ix_parcelas_productor', 'codigo_productor'),
    )

    id_parcela: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    codigo_productor: Mapped[str] = mapped_column(String(20), nullable=False)
    numero_parcela: Mapped[int] = mapped_column(Integer, nullable=False)
    superficie_ha: Mapped[Decimal] = mapped_column(Numeric(10, 4), default=0)

    # GPS
    latitud_sud: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 7), nullable=True)
    longitud_oeste: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 7), nullable=True)

    # Attributes captured during inspections
    utiliza_riego: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    rotacion: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    tipo_barrera: Mapped[str] = mapped_column(String(20), default="ninguna", nullable=False)
    insumos_organicos: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    activo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
