"""Aggregate create / replace / load / delete against a real SQLite database."""
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from agrocert.core.exceptions import (
    CardinalityViolation,
    DuplicateAggregate,
    NotFound,
    StoreError,
    ValidationFailed,
)
from agrocert.models import (
    AccionCorrectiva,
    CosechaVentas,
    DetalleCultivoParcela,
    FichaInspeccion,
    ManejoCultivo,
    Parcela,
    RevisionDocumentacion,
)
from agrocert.services.ficha_sections import OWNED_SECTION_MODELS
from agrocert.services.parcela_service import ParcelaService
from agrocert.services.reference_lookup import ReferenceLookup


async def _count(session_factory, model) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar()


async def _assert_nothing_written(session_factory):
    assert await _count(session_factory, FichaInspeccion) == 0
    assert await _count(session_factory, ManejoCultivo) == 0
    for model in OWNED_SECTION_MODELS:
        assert await _count(session_factory, model) == 0, model.__tablename__


# ==================== Scenario ====================

async def test_create_and_load_producer_cycle(service, create_payload, catalogo):
    created = await service.create_ficha_completa(create_payload(acciones_correctivas=[]))

    loaded = await service.load_ficha_completa(created.ficha.id_ficha)

    assert loaded.ficha.codigo_productor == "P0001"
    assert loaded.ficha.gestion == 2024
    assert loaded.revision_documentacion is not None
    assert loaded.acciones_correctivas == []
    assert len(loaded.cosecha_ventas) == 1
    assert loaded.cosecha_ventas[0].tipo_mani == "ecologico"
    assert len(loaded.detalles_cultivo) == 1

    detalle = loaded.detalles_cultivo[0]
    assert detalle.nombre_cultivo == "Mani"
    assert detalle.numero_parcela == 1
    assert detalle.insumos_organicos == "guano de oveja"
    assert detalle.manejo is not None
    assert detalle.manejo.procedencia_semilla == "propia"
    assert detalle.manejo.metodo_cosecha == "manual"


async def test_create_uses_injected_ids(session_factory, create_payload, catalogo):
    from agrocert.services.ficha_service import FichaService

    issued = []

    def id_factory():
        value = uuid.uuid4()
        issued.append(value)
        return value

    service = FichaService(session_factory=session_factory, id_factory=id_factory)
    created = await service.create_ficha_completa(create_payload())

    assert created.ficha.id_ficha == issued[0]
    # root, revision, detalle, manejo, cosecha
    assert len(issued) == 5


async def test_absent_sections_read_back_empty(service, create_payload):
    created = await service.create_ficha_completa(create_payload(revision_documentacion=None))

    assert created.revision_documentacion is None
    assert created.evaluacion_mitigacion is None
    assert created.evaluacion_poscosecha is None
    assert created.evaluacion_conocimiento is None
    assert created.no_conformidades == []
    assert created.actividades_pecuarias == []
    assert created.planificaciones_siembra == []
    assert created.archivos == []


# ==================== Uniqueness ====================

async def test_duplicate_producer_cycle_rejected(service, create_payload):
    await service.create_ficha_completa(create_payload())

    with pytest.raises(DuplicateAggregate) as exc_info:
        await service.create_ficha_completa(create_payload())

    assert exc_info.value.codigo_productor == "P0001"
    assert exc_info.value.gestion == 2024
    assert await service.count_by_gestion(2024) == 1


async def test_duplicate_caught_by_store_constraint(service, create_payload, monkeypatch):
    await service.create_ficha_completa(create_payload())

    async def _not_found(*args, **kwargs):
        return False

    # Simulate a concurrent writer passing the pre-check
    monkeypatch.setattr(service.reader, "exists_by_productor_gestion", _not_found)

    with pytest.raises(DuplicateAggregate):
        await service.create_ficha_completa(create_payload())

    assert await service.count_by_gestion(2024) == 1


async def test_same_producer_other_cycle_allowed(service, create_payload):
    await service.create_ficha_completa(create_payload(gestion=2024))
    await service.create_ficha_completa(create_payload(gestion=2025))

    assert await service.exists_by_productor_gestion("P0001", 2025)


async def test_producer_code_case_variant_is_duplicate(service, create_payload):
    await service.create_ficha_completa(create_payload(codigo_productor="P0001"))

    with pytest.raises(DuplicateAggregate) as exc_info:
        await service.create_ficha_completa(create_payload(codigo_productor=" p0001 "))

    assert exc_info.value.codigo_productor == "P0001"
    assert await service.count_by_gestion(2024) == 1


async def test_producer_code_stored_and_looked_up_normalized(service, create_payload):
    created = await service.create_ficha_completa(create_payload(codigo_productor="  p0007 "))

    assert created.ficha.codigo_productor == "P0007"
    assert await service.exists_by_productor_gestion("p0007", 2024)
    found = await service.find_by_productor_gestion(" P0007", 2024)
    assert found.ficha.id_ficha == created.ficha.id_ficha
    items, total = await service.list_fichas(codigo_productor="p0007")
    assert total == 1
    assert items[0].id_ficha == created.ficha.id_ficha


async def test_four_character_producer_code_is_rejected(service, create_payload, session_factory):
    # Producer codes need at least five characters, so "P001" never gets stored
    with pytest.raises(ValidationFailed) as exc_info:
        await service.create_ficha_completa(create_payload(codigo_productor="P001"))

    assert exc_info.value.errors == ["codigo_productor debe tener al menos 5 caracteres"]
    await _assert_nothing_written(session_factory)


# ==================== Atomicity ====================

async def test_invalid_root_opens_no_transaction(service, create_payload, session_factory):
    with pytest.raises(ValidationFailed) as exc_info:
        await service.create_ficha_completa(create_payload(codigo_productor="P1"))

    assert exc_info.value.section is None
    assert exc_info.value.errors == ["codigo_productor debe tener al menos 5 caracteres"]
    await _assert_nothing_written(session_factory)


async def test_invalid_plot_update_writes_nothing(
    service, create_payload, session_factory, catalogo
):
    payload = create_payload(
        acciones_correctivas=[{"numero_accion": 1, "descripcion_accion": "Renovar croquis"}],
        archivos=[{
            "tipo_archivo": "croquis",
            "nombre_original": "croquis.png",
            "ruta_almacenamiento": "fichas/croquis.png",
            "tamano_bytes": 2048,
        }],
        parcelas_inspeccionadas=[
            {"id_parcela": str(catalogo.parcela_1), "rotacion": True},
            {"id_parcela": str(catalogo.parcela_2), "latitud_sud": "-95", "longitud_oeste": "-65"},
        ],
    )

    with pytest.raises(ValidationFailed) as exc_info:
        await service.create_ficha_completa(payload)

    assert exc_info.value.section == "parcelas_inspeccionadas"
    await _assert_nothing_written(session_factory)
    async with session_factory() as session:
        parcela = await session.get(Parcela, catalogo.parcela_1)
        assert parcela.rotacion is False


async def test_invalid_section_entity_rolls_back(service, create_payload, session_factory):
    payload = create_payload(
        archivos=[{
            "tipo_archivo": "video",
            "nombre_original": "visita.mp4",
            "ruta_almacenamiento": "fichas/visita.mp4",
            "tamano_bytes": 1024,
        }],
    )

    with pytest.raises(ValidationFailed) as exc_info:
        await service.create_ficha_completa(payload)

    assert exc_info.value.section == "archivos"
    assert exc_info.value.errors[0].startswith("archivos[0]: tipo_archivo")
    await _assert_nothing_written(session_factory)


async def test_every_violation_is_reported_together(service, create_payload, session_factory):
    payload = create_payload(
        codigo_productor="P1",
        acciones_correctivas=[
            {"numero_accion": 0, "descripcion_accion": "Renovar croquis"},
            {"numero_accion": 2, "descripcion_accion": "x"},
        ],
        archivos=[{
            "tipo_archivo": "video",
            "nombre_original": "visita.mp4",
            "ruta_almacenamiento": "fichas/visita.mp4",
            "tamano_bytes": 1024,
        }],
    )

    with pytest.raises(ValidationFailed) as exc_info:
        await service.create_ficha_completa(payload)

    errors = exc_info.value.errors
    assert len(errors) == 4
    assert errors[0] == "codigo_productor debe tener al menos 5 caracteres"
    assert errors[1].startswith("acciones_correctivas[0]: numero_accion")
    assert errors[2].startswith("acciones_correctivas[1]: descripcion_accion")
    assert errors[3].startswith("archivos[0]: tipo_archivo")
    assert exc_info.value.section is None
    await _assert_nothing_written(session_factory)


async def test_replace_reports_every_section_violation(service, create_payload, replace_payload):
    created = await service.create_ficha_completa(create_payload())

    payload = replace_payload(
        no_conformidades=[{"descripcion_no_conformidad": "Uso de urea", "estado_seguimiento": "x"}],
        actividades_pecuarias=[{"tipo_ganado": "peces", "cantidad": 3}],
    )
    with pytest.raises(ValidationFailed) as exc_info:
        await service.replace_ficha_completa(created.ficha.id_ficha, payload)

    assert [e.split(":")[0] for e in exc_info.value.errors] == [
        "no_conformidades[0]",
        "actividades_pecuarias[0]",
    ]
    loaded = await service.load_ficha_completa(created.ficha.id_ficha)
    assert loaded.no_conformidades == []


# ==================== Text cleanup ====================

async def test_free_text_is_trimmed_and_blank_stored_as_null(service, make_payload):
    from agrocert.schemas.ficha import FichaCompletaCreate

    data = make_payload()
    data["ficha"]["inspector_interno"] = "  Juan Mamani  "
    data["ficha"]["persona_entrevistada"] = "   "
    data["ficha"]["comentarios_evaluacion"] = "\tSin observaciones \n"
    data["detalles_cultivo"][0]["situacion_actual"] = "  "

    created = await service.create_ficha_completa(FichaCompletaCreate.model_validate(data))

    loaded = await service.load_ficha_completa(created.ficha.id_ficha)
    assert loaded.ficha.inspector_interno == "Juan Mamani"
    assert loaded.ficha.persona_entrevistada is None
    assert loaded.ficha.comentarios_evaluacion == "Sin observaciones"
    assert loaded.detalles_cultivo[0].situacion_actual is None


async def test_store_failure_is_wrapped_and_rolled_back(
    service, make_payload, session_factory, catalogo
):
    from agrocert.schemas.ficha import FichaCompletaCreate

    data = make_payload()
    data["detalles_cultivo"][0]["id_parcela"] = str(uuid.uuid4())  # unknown plot

    with pytest.raises(StoreError) as exc_info:
        await service.create_ficha_completa(FichaCompletaCreate.model_validate(data))

    assert exc_info.value.__cause__ is not None
    await _assert_nothing_written(session_factory)


# ==================== Conditional crop management ====================

async def test_manejo_only_for_certifiable_crops_with_seed_origin(service, make_payload, catalogo):
    from agrocert.schemas.ficha import FichaCompletaCreate

    data = make_payload()
    certificable_con_semilla = data["detalles_cultivo"][0]
    no_certificable = {
        **certificable_con_semilla,
        "id_parcela": str(catalogo.parcela_2),
        "id_tipo_cultivo": str(catalogo.maiz),
    }
    certificable_sin_semilla = {
        "id_parcela": str(catalogo.parcela_2),
        "id_tipo_cultivo": str(catalogo.mani),
        "superficie_ha": "0.5",
        "categoria_semilla": "organica",
    }
    data["detalles_cultivo"] = [certificable_con_semilla, no_certificable, certificable_sin_semilla]

    created = await service.create_ficha_completa(FichaCompletaCreate.model_validate(data))

    detalles = created.detalles_cultivo
    assert len(detalles) == 3
    assert detalles[0].manejo is not None
    assert detalles[1].nombre_cultivo == "Maiz"
    assert detalles[1].manejo is None
    # Seed data for a certifiable crop without seed origin is dropped silently
    assert detalles[2].nombre_cultivo == "Mani"
    assert detalles[2].manejo is None


async def test_invalid_manejo_fails_whole_create(service, make_payload, session_factory):
    from agrocert.schemas.ficha import FichaCompletaCreate

    data = make_payload()
    data["detalles_cultivo"][0]["control_hierbas"] = "otro"

    with pytest.raises(ValidationFailed) as exc_info:
        await service.create_ficha_completa(FichaCompletaCreate.model_validate(data))

    assert exc_info.value.section == "manejo_cultivo"
    await _assert_nothing_written(session_factory)


async def test_reference_lookup(session_factory, catalogo):
    async with session_factory() as session:
        lookup = ReferenceLookup(session)
        assert await lookup.is_certifiable(catalogo.mani) is True
        assert await lookup.is_certifiable(catalogo.maiz) is False
        assert await lookup.is_certifiable(uuid.uuid4()) is False


# ==================== Harvest cardinality ====================

@pytest.mark.parametrize("cosecha", [
    [],
    [{"tipo_mani": "ecologico"}, {"tipo_mani": "transicion"}],
    [{"tipo_mani": "organico"}],
])
async def test_harvest_cardinality(service, create_payload, session_factory, cosecha):
    with pytest.raises(CardinalityViolation) as exc_info:
        await service.create_ficha_completa(create_payload(cosecha_ventas=cosecha))

    assert exc_info.value.section == "cosecha_ventas"
    assert isinstance(exc_info.value, ValidationFailed)
    await _assert_nothing_written(session_factory)


async def test_transition_harvest_accepted(service, create_payload):
    created = await service.create_ficha_completa(
        create_payload(cosecha_ventas=[{"tipo_mani": "transicion", "numero_parcelas": 2}])
    )
    assert created.cosecha_ventas[0].tipo_mani == "transicion"
    assert created.cosecha_ventas[0].numero_parcelas == 2


# ==================== Round trip ====================

async def test_round_trip_keeps_payload_order(service, create_payload, catalogo):
    payload = create_payload(
        acciones_correctivas=[
            {"numero_accion": 1, "descripcion_accion": "Actualizar diario de campo"},
            {"numero_accion": 2, "descripcion_accion": "Construir barrera viva"},
            {"numero_accion": 3, "descripcion_accion": "Limpiar deposito de insumos"},
        ],
        no_conformidades=[
            {"descripcion_no_conformidad": "Sin registro de cosecha"},
            {"descripcion_no_conformidad": "Envases reutilizados", "estado_seguimiento": "seguimiento"},
            {"descripcion_no_conformidad": "Quema de rastrojo"},
        ],
        actividades_pecuarias=[
            {"tipo_ganado": "menor", "animal_especifico": "ovejas", "cantidad": 12},
            {"tipo_ganado": "aves", "animal_especifico": "gallinas", "cantidad": 20},
        ],
        evaluacion_mitigacion={
            "practica_mitigacion_riesgos": "cumple",
            "mitigacion_contaminacion": "parcial",
            "deposito_herramientas": "cumple",
            "deposito_insumos_organicos": "cumple",
            "evita_quema_residuos": "no_cumple",
        },
        evaluacion_poscosecha={
            "secado_tendal": "cumple",
            "envases_limpios": "cumple",
            "almacen_protegido": "no_aplica",
            "evidencia_comercializacion": "cumple",
        },
        evaluacion_conocimiento={
            "conoce_normas_organicas": "cumple",
            "recibio_capacitacion": "parcial",
        },
        planificaciones_siembra=[
            {"id_parcela": str(catalogo.parcela_2), "area_parcela_planificada_ha": "1", "maiz_ha": "1"},
            {"id_parcela": str(catalogo.parcela_1), "area_parcela_planificada_ha": "2", "mani_ha": "2"},
        ],
        archivos=[
            {"tipo_archivo": "croquis", "nombre_original": "b.png", "ruta_almacenamiento": "f/b.png", "tamano_bytes": 10},
            {"tipo_archivo": "foto_parcela", "nombre_original": "a.jpg", "ruta_almacenamiento": "f/a.jpg", "tamano_bytes": 20},
        ],
    )

    created = await service.create_ficha_completa(payload)
    loaded = await service.load_ficha_completa(created.ficha.id_ficha)

    assert [a.numero_accion for a in loaded.acciones_correctivas] == [1, 2, 3]
    assert [n.descripcion_no_conformidad for n in loaded.no_conformidades] == [
        "Sin registro de cosecha", "Envases reutilizados", "Quema de rastrojo",
    ]
    assert loaded.no_conformidades[0].estado_seguimiento == "pendiente"
    assert [a.animal_especifico for a in loaded.actividades_pecuarias] == ["ovejas", "gallinas"]
    assert [p.id_parcela for p in loaded.planificaciones_siembra] == [catalogo.parcela_2, catalogo.parcela_1]
    assert [a.nombre_original for a in loaded.archivos] == ["b.png", "a.jpg"]
    assert loaded.evaluacion_mitigacion.evita_quema_residuos == "no_cumple"
    assert loaded.evaluacion_poscosecha.almacen_protegido == "no_aplica"
    assert loaded.evaluacion_conocimiento.recibio_capacitacion == "parcial"


async def test_find_by_productor_gestion(service, create_payload):
    created = await service.create_ficha_completa(create_payload())

    found = await service.find_by_productor_gestion("P0001", 2024)
    missing = await service.find_by_productor_gestion("P0001", 2023)

    assert found.ficha.id_ficha == created.ficha.id_ficha
    assert missing is None


async def test_load_unknown_ficha(service):
    with pytest.raises(NotFound):
        await service.load_ficha_completa(uuid.uuid4())


# ==================== Replace ====================

async def test_replace_is_idempotent_for_root_but_regenerates_child_ids(
    service, create_payload, replace_payload
):
    created = await service.create_ficha_completa(create_payload())
    id_ficha = created.ficha.id_ficha

    first = await service.replace_ficha_completa(id_ficha, replace_payload())
    second = await service.replace_ficha_completa(id_ficha, replace_payload())

    assert first.ficha.model_dump() == second.ficha.model_dump()
    assert first.revision_documentacion.id_revision != second.revision_documentacion.id_revision
    assert first.cosecha_ventas[0].id_cosecha != second.cosecha_ventas[0].id_cosecha
    assert first.detalles_cultivo[0].id_detalle != second.detalles_cultivo[0].id_detalle
    assert first.detalles_cultivo[0].manejo.id_manejo != second.detalles_cultivo[0].manejo.id_manejo
    assert created.detalles_cultivo[0].id_detalle not in (
        first.detalles_cultivo[0].id_detalle,
        second.detalles_cultivo[0].id_detalle,
    )


async def test_replace_updates_root_and_drops_missing_sections(
    service, create_payload, replace_payload, session_factory
):
    created = await service.create_ficha_completa(create_payload(
        acciones_correctivas=[{"numero_accion": 1, "descripcion_accion": "Renovar contrato"}],
    ))
    id_ficha = created.ficha.id_ficha

    payload = replace_payload(revision_documentacion=None, detalles_cultivo=[])
    payload.ficha.inspector_interno = "Ana Choque"
    payload.ficha.comentarios_evaluacion = "Sin observaciones"

    replaced = await service.replace_ficha_completa(id_ficha, payload)

    assert replaced.ficha.inspector_interno == "Ana Choque"
    assert replaced.ficha.comentarios_evaluacion == "Sin observaciones"
    assert replaced.ficha.codigo_productor == "P0001"
    assert replaced.ficha.created_by == "tecnico01"
    assert replaced.revision_documentacion is None
    assert replaced.acciones_correctivas == []
    assert replaced.detalles_cultivo == []
    assert len(replaced.cosecha_ventas) == 1

    assert await _count(session_factory, RevisionDocumentacion) == 0
    assert await _count(session_factory, AccionCorrectiva) == 0
    assert await _count(session_factory, DetalleCultivoParcela) == 0
    assert await _count(session_factory, ManejoCultivo) == 0
    assert await _count(session_factory, CosechaVentas) == 1


async def test_replace_unknown_ficha(service, replace_payload):
    with pytest.raises(NotFound):
        await service.replace_ficha_completa(uuid.uuid4(), replace_payload())


async def test_failed_replace_keeps_previous_aggregate(service, create_payload, replace_payload):
    created = await service.create_ficha_completa(create_payload())
    id_ficha = created.ficha.id_ficha

    payload = replace_payload(cosecha_ventas=[])
    payload.ficha.inspector_interno = "Ana Choque"

    with pytest.raises(CardinalityViolation):
        await service.replace_ficha_completa(id_ficha, payload)

    loaded = await service.load_ficha_completa(id_ficha)
    assert loaded.ficha.inspector_interno == "Juan Mamani"
    assert loaded.revision_documentacion.id_revision == created.revision_documentacion.id_revision
    assert loaded.detalles_cultivo[0].manejo is not None


# ==================== Delete ====================

async def test_delete_cascades_to_every_section(service, create_payload, session_factory):
    created = await service.create_ficha_completa(create_payload(
        acciones_correctivas=[{"numero_accion": 1, "descripcion_accion": "Renovar contrato"}],
    ))

    await service.delete_ficha(created.ficha.id_ficha)

    with pytest.raises(NotFound):
        await service.load_ficha_completa(created.ficha.id_ficha)
    await _assert_nothing_written(session_factory)
    assert await _count(session_factory, Parcela) == 3


async def test_delete_unknown_ficha(service):
    with pytest.raises(NotFound):
        await service.delete_ficha(uuid.uuid4())


# ==================== Queries ====================

async def test_list_and_counts(service, create_payload):
    await service.create_ficha_completa(create_payload(fecha_inspeccion="2024-05-10"))
    await service.create_ficha_completa(
        create_payload(codigo_productor="P0002", fecha_inspeccion="2024-06-01")
    )
    await service.create_ficha_completa(
        create_payload(gestion=2023, fecha_inspeccion="2023-05-02")
    )

    items, total = await service.list_fichas(gestion=2024)
    assert total == 2
    assert [f.codigo_productor for f in items] == ["P0002", "P0001"]

    items, total = await service.list_fichas(codigo_productor="P0001", limit=1)
    assert total == 2
    assert len(items) == 1
    assert items[0].gestion == 2024

    assert await service.count_by_gestion(2024) == 2
    assert await service.count_by_estado("borrador") == 3
    assert await service.count_by_estado("aprobado") == 0

    estadisticas = await service.get_estadisticas(2024)
    assert estadisticas.total == 2
    assert estadisticas.por_estado["borrador"] == 2


# ==================== Plot updates ====================

async def test_plot_updates_keep_absent_fields(service, create_payload, session_factory, catalogo):
    await service.create_ficha_completa(create_payload(
        parcelas_inspeccionadas=[
            {"id_parcela": str(catalogo.parcela_1), "rotacion": True, "tipo_barrera": "viva"},
            {"id_parcela": str(catalogo.parcela_2), "latitud_sud": "-19.1"},
            {"id_parcela": str(catalogo.parcela_inactiva), "rotacion": True},
        ],
    ))

    async with session_factory() as session:
        parcelas = ParcelaService(session)
        parcela_1 = await parcelas.get_active(catalogo.parcela_1)
        parcela_2 = await parcelas.get_active(catalogo.parcela_2)
        assert await parcelas.get_active(catalogo.parcela_inactiva) is None
        inactiva = await session.get(Parcela, catalogo.parcela_inactiva)

    assert parcela_1.rotacion is True
    assert parcela_1.tipo_barrera == "viva"
    assert parcela_1.utiliza_riego is False
    assert parcela_1.insumos_organicos == "guano de oveja"
    assert parcela_1.latitud_sud == Decimal("-19.5")
    # A lone coordinate does not overwrite the GPS pair
    assert parcela_2.latitud_sud is None
    assert inactiva.rotacion is False


async def test_plot_gps_pair_overwritten_together(service, create_payload, session_factory, catalogo):
    created = await service.create_ficha_completa(create_payload(
        parcelas_inspeccionadas=[
            {"id_parcela": str(catalogo.parcela_1), "latitud_sud": "-19.75", "longitud_oeste": "-65.5"},
        ],
    ))

    async with session_factory() as session:
        parcela = await ParcelaService(session).get_active(catalogo.parcela_1)

    assert parcela.latitud_sud == Decimal("-19.75")
    assert parcela.longitud_oeste == Decimal("-65.5")
    assert parcela.tipo_barrera == "ninguna"
    assert created.detalles_cultivo[0].latitud_sud == Decimal("-19.75")
