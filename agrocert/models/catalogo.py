"""
Catalog Models - reference data read by the inspection engine.

- TipoCultivo: Crop type, flags whether it is the principal certifiable crop
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from agrocert.database import Base
from agrocert.db_types import UUIDType


class TipoCultivo(Base):
    """Crop type catalog entry."""
    __tablename__ = "tipos_cultivo"

    id_tipo_cultivo: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    nombre_cultivo: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    # Crops with this flag require the crop management sub-record
    es_principal_certificable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    activo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
