"""
Test configuration.

Every test gets its own SQLite file database with the full schema, seeded
with a small crop catalog and one producer's plots.
"""
import os
import tempfile
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'agrocert_test.db')}",
)

import pytest

from agrocert.database import create_engine_for_url, create_session_factory, init_db
from agrocert.models import Parcela, TipoCultivo
from agrocert.schemas.ficha import FichaCompletaCreate, FichaCompletaReplace
from agrocert.services.ficha_service import FichaService


FIXED_NOW = datetime(2024, 5, 10, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
async def engine(tmp_path):
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'fichas.db'}")
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def catalogo(session_factory) -> SimpleNamespace:
    """Crop types and plots referenced by the payloads."""
    ids = SimpleNamespace(
        mani=uuid.uuid4(),
        maiz=uuid.uuid4(),
        parcela_1=uuid.uuid4(),
        parcela_2=uuid.uuid4(),
        parcela_inactiva=uuid.uuid4(),
    )
    async with session_factory() as session:
        session.add_all([
            TipoCultivo(id_tipo_cultivo=ids.mani, nombre_cultivo="Mani", es_principal_certificable=True),
            TipoCultivo(id_tipo_cultivo=ids.maiz, nombre_cultivo="Maiz", es_principal_certificable=False),
            Parcela(
                id_parcela=ids.parcela_1,
                codigo_productor="P0001",
                numero_parcela=1,
                superficie_ha=Decimal("2.5"),
                latitud_sud=Decimal("-19.5"),
                longitud_oeste=Decimal("-65.25"),
                rotacion=False,
                utiliza_riego=False,
                tipo_barrera="ninguna",
                insumos_organicos="guano de oveja",
            ),
            Parcela(
                id_parcela=ids.parcela_2,
                codigo_productor="P0001",
                numero_parcela=2,
                superficie_ha=Decimal("1.0"),
            ),
            Parcela(
                id_parcela=ids.parcela_inactiva,
                codigo_productor="P0001",
                numero_parcela=3,
                superficie_ha=Decimal("0.5"),
                activo=False,
            ),
        ])
        await session.commit()
    return ids


@pytest.fixture
def service(session_factory) -> FichaService:
    return FichaService(session_factory=session_factory, clock=lambda: FIXED_NOW)


def _cumple(*names):
    return {name: "cumple" for name in names}


@pytest.fixture
def make_payload(catalogo):
    """Build a valid create payload as a plain dict. Keyword arguments replace sections."""

    def _make(codigo_productor="P0001", gestion=2024, fecha_inspeccion="2024-05-10", **secciones):
        payload = {
            "ficha": {
                "codigo_productor": codigo_productor,
                "gestion": gestion,
                "fecha_inspeccion": fecha_inspeccion,
                "inspector_interno": "Juan Mamani",
                "persona_entrevistada": "Maria Quispe",
                "categoria_gestion_anterior": "2T",
                "created_by": "tecnico01",
            },
            "revision_documentacion": _cumple(
                "solicitud_ingreso", "normas_reglamentos", "contrato_produccion",
                "croquis_unidad", "diario_campo", "registro_cosecha", "recibo_pago",
            ),
            "detalles_cultivo": [
                {
                    "id_parcela": str(catalogo.parcela_1),
                    "id_tipo_cultivo": str(catalogo.mani),
                    "superficie_ha": "1.5",
                    "situacion_actual": "en floracion",
                    "procedencia_semilla": "propia",
                    "categoria_semilla": "organica",
                    "tratamiento_semillas": "sin_tratamiento",
                    "tipo_abonamiento": "guano",
                    "metodo_aporque": "con_yunta",
                    "control_hierbas": "carpida_manual",
                    "metodo_cosecha": "manual",
                },
            ],
            "cosecha_ventas": [
                {
                    "tipo_mani": "ecologico",
                    "superficie_actual_ha": "1.5",
                    "cosecha_estimada_qq": "30",
                    "numero_parcelas": 1,
                    "destino_consumo_qq": "5",
                    "destino_semilla_qq": "5",
                    "destino_ventas_qq": "20",
                },
            ],
        }
        payload.update(secciones)
        return payload

    return _make


@pytest.fixture
def create_payload(make_payload):
    def _build(**kwargs) -> FichaCompletaCreate:
        return FichaCompletaCreate.model_validate(make_payload(**kwargs))
    return _build


@pytest.fixture
def replace_payload(make_payload):
    def _build(**kwargs) -> FichaCompletaReplace:
        data = make_payload(**kwargs)
        return FichaCompletaReplace.model_validate(data)
    return _build
