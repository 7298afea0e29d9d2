"""Create inspection record schema

Revision ID: 001_ficha_inspeccion
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers
revision = '001_ficha_inspeccion'
down_revision = None
branch_labels = None
depends_on = None


def _ficha_fk():
    return sa.Column(
        'id_ficha',
        UUID(as_uuid=True),
        sa.ForeignKey('ficha_inspeccion.id_ficha', ondelete='CASCADE'),
        nullable=False,
    )


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False)


def upgrade():
    """Create reference, plot and inspection record tables"""

    # ====================
    # REFERENCE DATA
    # ====================
    op.create_table(
        'tipos_cultivo',
        sa.Column('id_tipo_cultivo', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('nombre_cultivo', sa.String(100), unique=True, nullable=False),
        sa.Column('es_principal_certificable', sa.Boolean, server_default='false', nullable=False),
        sa.Column('activo', sa.Boolean, server_default='true', nullable=False),
        _created_at(),
    )

    op.create_table(
        'parcelas',
        sa.Column('id_parcela', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('codigo_productor', sa.String(20), nullable=False),
        sa.Column('numero_parcela', sa.Integer, nullable=False),
        sa.Column('superficie_ha', sa.Numeric(10, 4), server_default='0', nullable=False),
        sa.Column('latitud_sud', sa.Numeric(10, 7), nullable=True),
        sa.Column('longitud_oeste', sa.Numeric(10, 7), nullable=True),
        sa.Column('utiliza_riego', sa.Boolean, server_default='false', nullable=False),
        sa.Column('rotacion', sa.Boolean, server_default='false', nullable=False),
        sa.Column('tipo_barrera', sa.String(20), server_default='ninguna', nullable=False),
        sa.Column('insumos_organicos', sa.String(500), nullable=True),
        sa.Column('activo', sa.Boolean, server_default='true', nullable=False),
        _created_at(),
        sa.UniqueConstraint('codigo_productor', 'numero_parcela', name='uq_parcela_productor_numero'),
        sa.CheckConstraint("tipo_barrera IN ('ninguna', 'viva', 'muerta')", name='ck_parcelas_tipo_barrera'),
    )
    op.create_index('ix_parcelas_productor', 'parcelas', ['codigo_productor'])

    # ====================
    # ROOT
    # ====================
    op.create_table(
        'ficha_inspeccion',
        sa.Column('id_ficha', UUID(as_uuid=True), primary_key=True),
        sa.Column('codigo_productor', sa.String(20), nullable=False),
        sa.Column('id_gestion', UUID(as_uuid=True), nullable=True),
        sa.Column('gestion', sa.Integer, nullable=False),
        sa.Column('fecha_inspeccion', sa.Date, nullable=False),
        sa.Column('inspector_interno', sa.String(100), nullable=False),
        sa.Column('persona_entrevistada', sa.String(100), nullable=True),
        sa.Column('categoria_gestion_anterior', sa.String(5), nullable=True),
        sa.Column('origen_captura', sa.String(20), server_default='online', nullable=False),
        sa.Column('fecha_sincronizacion', sa.DateTime(timezone=True), nullable=True),
        sa.Column('estado_sync', sa.String(20), server_default='pendiente', nullable=False),
        sa.Column('estado_ficha', sa.String(20), server_default='borrador', nullable=False),
        sa.Column('resultado_certificacion', sa.String(20), server_default='pendiente', nullable=False),
        sa.Column('comentarios_actividad_pecuaria', sa.Text, nullable=True),
        sa.Column('comentarios_evaluacion', sa.Text, nullable=True),
        sa.Column('created_by', sa.String(64), nullable=False),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.UniqueConstraint('codigo_productor', 'gestion', name='uq_ficha_productor_gestion'),
        sa.CheckConstraint('gestion BETWEEN 2000 AND 2050', name='ck_ficha_gestion'),
    )
    op.create_index('ix_ficha_inspeccion_codigo_productor', 'ficha_inspeccion', ['codigo_productor'])
    op.create_index('ix_ficha_inspeccion_gestion', 'ficha_inspeccion', ['gestion'])
    op.create_index('ix_ficha_inspeccion_estado', 'ficha_inspeccion', ['estado_ficha'])

    # ====================
    # SINGLE-VALUED SECTIONS
    # ====================
    op.create_table(
        'revision_documentacion',
        sa.Column('id_revision', UUID(as_uuid=True), primary_key=True),
        _ficha_fk(),
        sa.Column('solicitud_ingreso', sa.String(20), nullable=False),
        sa.Column('normas_reglamentos', sa.String(20), nullable=False),
        sa.Column('contrato_produccion', sa.String(20), nullable=False),
        sa.Column('croquis_unidad', sa.String(20), nullable=False),
        sa.Column('diario_campo', sa.String(20), nullable=False),
        sa.Column('registro_cosecha', sa.String(20), nullable=False),
        sa.Column('recibo_pago', sa.String(20), nullable=False),
        sa.Column('observaciones_documentacion', sa.Text, nullable=True),
        sa.UniqueConstraint('id_ficha', name='uq_revision_documentacion_ficha'),
    )

    op.create_table(
        'evaluacion_mitigacion',
        sa.Column('id_evaluacion', UUID(as_uuid=True), primary_key=True),
        _ficha_fk(),
        sa.Column('practica_mitigacion_riesgos', sa.String(20), nullable=False),
        sa.Column('mitigacion_contaminacion', sa.String(20), nullable=False),
        sa.Column('deposito_herramientas', sa.String(20), nullable=False),
        sa.Column('deposito_insumos_organicos', sa.String(20), nullable=False),
        sa.Column('evita_quema_residuos', sa.String(20), nullable=False),
        sa.Column('practica_mitigacion_riesgos_descripcion', sa.Text, nullable=True),
        sa.Column('mitigacion_contaminacion_descripcion', sa.Text, nullable=True),
        sa.UniqueConstraint('id_ficha', name='uq_evaluacion_mitigacion_ficha'),
    )

    op.create_table(
        'evaluacion_poscosecha',
        sa.Column('id_evaluacion_poscosecha', UUID(as_uuid=True), primary_key=True),
        _ficha_fk(),
        sa.Column('secado_tendal', sa.String(20), nullable=False),
        sa.Column('envases_limpios', sa.String(20), nullable=False),
        sa.Column('almacen_protegido', sa.String(20), nullable=False),
        sa.Column('evidencia_comercializacion', sa.String(20), nullable=False),
        sa.Column('comentarios_poscosecha', sa.Text, nullable=True),
        sa.UniqueConstraint('id_ficha', name='uq_evaluacion_poscosecha_ficha'),
    )

    op.create_table(
        'evaluacion_conocimiento_normas',
        sa.Column('id_evaluacion_conocimiento', UUID(as_uuid=True), primary_key=True),
        _ficha_fk(),
        sa.Column('conoce_normas_organicas', sa.String(20), nullable=False),
        sa.Column('recibio_capacitacion', sa.String(20), nullable=False),
        sa.Column('comentarios_conocimiento', sa.Text, nullable=True),
        sa.UniqueConstraint('id_ficha', name='uq_evaluacion_conocimiento_ficha'),
    )

    # ====================
    # LIST-VALUED SECTIONS
    # ====================
    op.create_table(
        'acciones_correctivas',
        sa.Column('id_accion', UUID(as_uuid=True), primary_key=True),
        _ficha_fk(),
        sa.Column('posicion', sa.Integer, server_default='0', nullable=False),
        sa.Column('numero_accion', sa.Integer, nullable=False),
        sa.Column('descripcion_accion', sa.Text, nullable=False),
        sa.Column('implementacion_descripcion', sa.Text, nullable=True),
        _created_at(),
    )

    op.create_table(
        'no_conformidades',
        sa.Column('id_no_conformidad', UUID(as_uuid=True), primary_key=True),
        _ficha_fk(),
        sa.Column('posicion', sa.Integer, server_default='0', nullable=False),
        sa.Column('descripcion_no_conformidad', sa.Text, nullable=False),
        sa.Column('accion_correctiva_propuesta', sa.Text, nullable=True),
        sa.Column('fecha_limite_implementacion', sa.Date, nullable=True),
        sa.Column('estado_seguimiento', sa.String(20), server_default='pendiente', nullable=False),
        _created_at(),
    )

    op.create_table(
        'actividad_pecuaria',
        sa.Column('id_actividad', UUID(as_uuid=True), primary_key=True),
        _ficha_fk(),
        sa.Column('posicion', sa.Integer, server_default='0', nullable=False),
        sa.Column('tipo_ganado', sa.String(10), nullable=False),
        sa.Column('animal_especifico', sa.String(100), nullable=True),
        sa.Column('cantidad', sa.Integer, server_default='0', nullable=False),
        sa.Column('sistema_manejo', sa.String(200), nullable=True),
        sa.Column('uso_guano', sa.Text, nullable=True),
        _created_at(),
    )

    op.create_table(
        'detalle_cultivo_parcela',
        sa.Column('id_detalle', UUID(as_uuid=True), primary_key=True),
        _ficha_fk(),
        sa.Column('posicion', sa.Integer, server_default='0', nullable=False),
        sa.Column('id_parcela', UUID(as_uuid=True), sa.ForeignKey('parcelas.id_parcela'), nullable=False),
        sa.Column('id_tipo_cultivo', UUID(as_uuid=True), sa.ForeignKey('tipos_cultivo.id_tipo_cultivo'), nullable=False),
        sa.Column('superficie_ha', sa.Numeric(10, 4), nullable=False),
        sa.Column('situacion_actual', sa.String(100), nullable=True),
        _created_at(),
    )
    op.create_index('ix_detalle_cultivo_parcela_parcela', 'detalle_cultivo_parcela', ['id_parcela'])

    op.create_table(
        'manejo_cultivo_mani',
        sa.Column('id_manejo', UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'id_detalle',
            UUID(as_uuid=True),
            sa.ForeignKey('detalle_cultivo_parcela.id_detalle', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('procedencia_semilla', sa.String(20), nullable=True),
        sa.Column('categoria_semilla', sa.String(20), nullable=True),
        sa.Column('tratamiento_semillas', sa.String(20), nullable=True),
        sa.Column('tratamiento_semillas_otro', sa.String(200), nullable=True),
        sa.Column('tipo_abonamiento', sa.String(20), nullable=True),
        sa.Column('tipo_abonamiento_otro', sa.String(200), nullable=True),
        sa.Column('metodo_aporque', sa.String(20), nullable=True),
        sa.Column('metodo_aporque_otro', sa.String(200), nullable=True),
        sa.Column('control_hierbas', sa.String(20), nullable=True),
        sa.Column('control_hierbas_otro', sa.String(200), nullable=True),
        sa.Column('metodo_cosecha', sa.String(20), nullable=True),
        sa.Column('metodo_cosecha_otro', sa.String(200), nullable=True),
        _created_at(),
        sa.UniqueConstraint('id_detalle', name='uq_manejo_cultivo_detalle'),
    )

    op.create_table(
        'cosecha_ventas',
        sa.Column('id_cosecha', UUID(as_uuid=True), primary_key=True),
        _ficha_fk(),
        sa.Column('tipo_mani', sa.String(20), nullable=False),
        sa.Column('superficie_actual_ha', sa.Numeric(10, 4), server_default='0', nullable=False),
        sa.Column('cosecha_estimada_qq', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('numero_parcelas', sa.Integer, server_default='0', nullable=False),
        sa.Column('destino_consumo_qq', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('destino_semilla_qq', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('destino_ventas_qq', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('observaciones', sa.Text, nullable=True),
        _created_at(),
        sa.CheckConstraint("tipo_mani IN ('ecologico', 'transicion')", name='ck_cosecha_ventas_tipo_mani'),
    )

    op.create_table(
        'planificacion_siembra',
        sa.Column('id_planificacion', UUID(as_uuid=True), primary_key=True),
        _ficha_fk(),
        sa.Column('posicion', sa.Integer, server_default='0', nullable=False),
        sa.Column('id_parcela', UUID(as_uuid=True), sa.ForeignKey('parcelas.id_parcela'), nullable=False),
        sa.Column('area_parcela_planificada_ha', sa.Numeric(10, 4), server_default='0', nullable=False),
        sa.Column('mani_ha', sa.Numeric(10, 4), server_default='0', nullable=False),
        sa.Column('maiz_ha', sa.Numeric(10, 4), server_default='0', nullable=False),
        sa.Column('papa_ha', sa.Numeric(10, 4), server_default='0', nullable=False),
        sa.Column('aji_ha', sa.Numeric(10, 4), server_default='0', nullable=False),
        sa.Column('leguminosas_ha', sa.Numeric(10, 4), server_default='0', nullable=False),
        sa.Column('otros_cultivos_ha', sa.Numeric(10, 4), server_default='0', nullable=False),
        sa.Column('otros_cultivos_detalle', sa.String(200), nullable=True),
        sa.Column('descanso_ha', sa.Numeric(10, 4), server_default='0', nullable=False),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )

    op.create_table(
        'archivos_ficha',
        sa.Column('id_archivo', UUID(as_uuid=True), primary_key=True),
        _ficha_fk(),
        sa.Column('posicion', sa.Integer, server_default='0', nullable=False),
        sa.Column('tipo_archivo', sa.String(20), nullable=False),
        sa.Column('nombre_original', sa.String(255), nullable=False),
        sa.Column('ruta_almacenamiento', sa.String(500), nullable=False),
        sa.Column('tamano_bytes', sa.BigInteger, nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=True),
        sa.Column('estado_upload', sa.String(20), server_default='pendiente', nullable=False),
        sa.Column('hash_archivo', sa.String(128), nullable=True),
        sa.Column('fecha_captura', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    for table in (
        'revision_documentacion', 'evaluacion_mitigacion', 'evaluacion_poscosecha',
        'evaluacion_conocimiento_normas', 'acciones_correctivas', 'no_conformidades',
        'actividad_pecuaria', 'detalle_cultivo_parcela', 'cosecha_ventas',
        'planificacion_siembra', 'archivos_ficha',
    ):
        op.create_index(f'ix_{table}_id_ficha', table, ['id_ficha'])


def downgrade():
    """Drop inspection record tables"""
    op.drop_table('archivos_ficha')
    op.drop_table('planificacion_siembra')
    op.drop_table('cosecha_ventas')
    op.drop_table('manejo_cultivo_mani')
    op.drop_table('detalle_cultivo_parcela')
    op.drop_table('actividad_pecuaria')
    op.drop_table('no_conformidades')
    op.drop_table('acciones_correctivas')
    op.drop_table('evaluacion_conocimiento_normas')
    op.drop_table('evaluacion_poscosecha')
    op.drop_table('evaluacion_mitigacion')
    op.drop_table('revision_documentacion')
    op.drop_table('ficha_inspeccion')
    op.drop_table('parcelas')
    op.drop_table('tipos_cultivo')
