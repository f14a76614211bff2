"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MODULOS = ('SISTEMA', 'DASHBOARD', 'TENANTS', 'USUARIOS', 'PERFILES', 'ROLES', 'ORDENES',
           'CLIENTES', 'CARRIERS', 'EMBARCADORES', 'DIRECCIONES', 'ENTIDADES', 'CATALOGOS')
ACCIONES = ('VER', 'CREAR', 'EDITAR', 'ELIMINAR', 'ACTIVAR')
PARTY_TABLES = ('clientes', 'carriers', 'embarcadores')
TENANT_SCOPED = ('perfiles', 'roles', 'perfiles_roles', 'usuarios', 'entidades', 'clientes', 'carriers',
                 'embarcadores', 'direcciones', 'tipos_carga', 'tipos_servicio', 'equipos', 'ordenes')


def _party_columns():
    """Columnas compartidas por entidades y sus especializaciones."""
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('es_persona', sa.Boolean(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=False),
        sa.Column('razon_social', sa.String(), nullable=True),
        sa.Column('rut', sa.String(), nullable=False),
        sa.Column('contacto', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('telefono', sa.String(), nullable=True),
        sa.Column('direccion', sa.String(), nullable=True),
        sa.Column('comuna_id', sa.Integer(), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['comuna_id'], ['comunas.id'], ),
        sa.PrimaryKeyConstraint('id'),
    ]


def upgrade() -> None:
    # 1. Tenants
    op.create_table('tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=False),
        sa.Column('rut', sa.String(), nullable=False),
        sa.Column('contacto', sa.String(), nullable=False),
        sa.Column('logo_url', sa.String(), nullable=True),
        sa.Column('tipo_tenant', sa.Enum('ADMIN', 'SHIPPER', 'CARRIER', name='tipotenant'), nullable=False),
        sa.Column('activo', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tenants_id'), 'tenants', ['id'], unique=False)
    op.create_index(op.f('ix_tenants_nombre'), 'tenants', ['nombre'], unique=False)
    op.create_index(op.f('ix_tenants_rut'), 'tenants', ['rut'], unique=True)

    # 2. Geografía (global)
    op.create_table('regiones',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('codigo', sa.String(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=False),
        sa.Column('ordinal', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('codigo')
    )
    op.create_index(op.f('ix_regiones_id'), 'regiones', ['id'], unique=False)

    op.create_table('comunas',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=False),
        sa.Column('region_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['region_id'], ['regiones.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_comunas_id'), 'comunas', ['id'], unique=False)
    op.create_index(op.f('ix_comunas_nombre'), 'comunas', ['nombre'], unique=False)

    # 3. Perfiles, roles y vínculos
    op.create_table('perfiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=False),
        sa.Column('descripcion', sa.String(), nullable=True),
        sa.Column('tipo', sa.Enum('BASICO', 'AVANZADO', 'ADMINISTRADOR', name='tipoperfil'), nullable=False),
        sa.Column('activo', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'nombre', name='uq_perfil_tenant_nombre')
    )

    op.create_table('roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('codigo', sa.String(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=False),
        sa.Column('modulo', sa.Enum(*MODULOS, name='modulo'), nullable=False),
        sa.Column('tipo_accion', sa.Enum(*ACCIONES, name='tipoaccion'), nullable=False),
        sa.Column('orden', sa.Integer(), nullable=True),
        sa.Column('visible', sa.Boolean(), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'codigo', name='uq_rol_tenant_codigo')
    )

    op.create_table('perfiles_roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('perfil_id', sa.Integer(), nullable=False),
        sa.Column('rol_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['perfil_id'], ['perfiles.id'], ),
        sa.ForeignKeyConstraint(['rol_id'], ['roles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('perfil_id', 'rol_id', name='uq_perfil_rol')
    )
    op.create_index(op.f('ix_perfiles_roles_perfil_id'), 'perfiles_roles', ['perfil_id'], unique=False)
    op.create_index(op.f('ix_perfiles_roles_rol_id'), 'perfiles_roles', ['rol_id'], unique=False)

    # 4. Usuarios
    op.create_table('usuarios',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('perfil_id', sa.Integer(), nullable=False),
        sa.Column('correo', sa.String(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=False),
        sa.Column('rut', sa.String(), nullable=True),
        sa.Column('telefono', sa.String(), nullable=True),
        sa.Column('hashed_password', sa.String(), nullable=True),
        sa.Column('estado', sa.Enum('ACTIVO', 'INACTIVO', 'PENDIENTE', name='estadousuario'), nullable=False),
        sa.Column('activo', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['perfil_id'], ['perfiles.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_usuarios_correo'), 'usuarios', ['correo'], unique=True)

    # 5. Entidades y especializaciones
    op.create_table('entidades',
        *_party_columns(),
        sa.Column('tipo_entidad', sa.Enum('CLIENTE', 'CARRIER', 'EMBARCADOR', 'REMITENTE', 'DESTINATARIO',
                                          'PERSONA', name='tipoentidad'), nullable=False),
        sa.UniqueConstraint('tenant_id', 'rut', name='uq_entidad_tenant_rut')
    )
    op.create_index(op.f('ix_entidades_nombre'), 'entidades', ['nombre'], unique=False)
    op.create_index(op.f('ix_entidades_rut'), 'entidades', ['rut'], unique=False)

    for table, constraint in zip(PARTY_TABLES, ('uq_cliente_tenant_rut', 'uq_carrier_tenant_rut',
                                                'uq_embarcador_tenant_rut')):
        op.create_table(table,
            *_party_columns(),
            sa.Column('entidad_id', sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(['entidad_id'], ['entidades.id'], ),
            sa.UniqueConstraint('tenant_id', 'rut', name=constraint)
        )
        op.create_index(op.f(f'ix_{table}_nombre'), table, ['nombre'], unique=False)
        op.create_index(op.f(f'ix_{table}_rut'), table, ['rut'], unique=False)

    # 6. Direcciones
    op.create_table('direcciones',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('comuna_id', sa.Integer(), nullable=False),
        sa.Column('direccion_texto', sa.String(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=True),
        sa.Column('calle', sa.String(), nullable=True),
        sa.Column('numero', sa.String(), nullable=True),
        sa.Column('contacto', sa.String(), nullable=True),
        sa.Column('telefono', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('referencia', sa.String(), nullable=True),
        sa.Column('latitud', sa.Float(), nullable=True),
        sa.Column('longitud', sa.Float(), nullable=True),
        sa.Column('frecuencia', sa.Integer(), nullable=False),
        sa.Column('ultima_vez_usada', sa.DateTime(timezone=True), nullable=True),
        sa.Column('origen', sa.Enum('MANUAL', 'GEOCODIFICADA', 'REUTILIZADA', name='origendireccion'), nullable=False),
        sa.Column('es_principal', sa.Boolean(), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['comuna_id'], ['comunas.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    # 7. Catálogos del tenant
    for table, constraint in (('tipos_carga', 'uq_tipo_carga_tenant_nombre'),
                              ('tipos_servicio', 'uq_tipo_servicio_tenant_nombre')):
        op.create_table(table,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('tenant_id', sa.Integer(), nullable=False),
            sa.Column('nombre', sa.String(), nullable=False),
            sa.Column('descripcion', sa.String(), nullable=True),
            sa.Column('activo', sa.Boolean(), nullable=True),
            sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('tenant_id', 'nombre', name=constraint)
        )

    op.create_table('equipos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('patente', sa.String(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=True),
        sa.Column('carrier_id', sa.Integer(), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['carrier_id'], ['carriers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'patente', name='uq_equipo_tenant_patente')
    )

    # 8. Órdenes
    op.create_table('ordenes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('codigo', sa.String(), nullable=False),
        sa.Column('numero_ot', sa.String(), nullable=False),
        sa.Column('fecha', sa.Date(), nullable=False),
        sa.Column('fecha_entrega_estimada', sa.Date(), nullable=True),
        sa.Column('estado', sa.Enum('PENDIENTE', 'PLANIFICADA', 'EN_TRANSPORTE', 'ENTREGADA', 'CANCELADA',
                                    name='ordenestado'), nullable=False),
        sa.Column('tipo_tarifa', sa.Enum('PESO_VOLUMEN', 'PESO', 'VOLUMEN', 'FIJA', name='tipotarifa'), nullable=False),
        sa.Column('cliente_id', sa.Integer(), nullable=False),
        sa.Column('remitente_id', sa.Integer(), nullable=False),
        sa.Column('destinatario_id', sa.Integer(), nullable=False),
        sa.Column('direccion_origen_id', sa.Integer(), nullable=False),
        sa.Column('direccion_destino_id', sa.Integer(), nullable=False),
        sa.Column('tipo_carga_id', sa.Integer(), nullable=False),
        sa.Column('tipo_servicio_id', sa.Integer(), nullable=False),
        sa.Column('equipo_id', sa.Integer(), nullable=True),
        sa.Column('peso_total_kg', sa.Float(), nullable=True),
        sa.Column('volumen_total_m3', sa.Float(), nullable=True),
        sa.Column('alto_cm', sa.Float(), nullable=True),
        sa.Column('largo_cm', sa.Float(), nullable=True),
        sa.Column('ancho_cm', sa.Float(), nullable=True),
        sa.Column('observaciones', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['cliente_id'], ['clientes.id'], ),
        sa.ForeignKeyConstraint(['remitente_id'], ['entidades.id'], ),
        sa.ForeignKeyConstraint(['destinatario_id'], ['entidades.id'], ),
        sa.ForeignKeyConstraint(['direccion_origen_id'], ['direcciones.id'], ),
        sa.ForeignKeyConstraint(['direccion_destino_id'], ['direcciones.id'], ),
        sa.ForeignKeyConstraint(['tipo_carga_id'], ['tipos_carga.id'], ),
        sa.ForeignKeyConstraint(['tipo_servicio_id'], ['tipos_servicio.id'], ),
        sa.ForeignKeyConstraint(['equipo_id'], ['equipos.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'codigo', name='uq_orden_tenant_codigo'),
        sa.UniqueConstraint('tenant_id', 'numero_ot', name='uq_orden_tenant_numero_ot')
    )
    op.create_index(op.f('ix_ordenes_codigo'), 'ordenes', ['codigo'], unique=False)

    # Índice por tenant en todas las tablas con dueño
    for table in TENANT_SCOPED:
        op.create_index(op.f(f'ix_{table}_tenant_id'), table, ['tenant_id'], unique=False)


def downgrade() -> None:
    for table in TENANT_SCOPED:
        op.drop_index(op.f(f'ix_{table}_tenant_id'), table_name=table)

    op.drop_table('ordenes')
    op.drop_table('equipos')
    op.drop_table('tipos_servicio')
    op.drop_table('tipos_carga')
    op.drop_table('direcciones')
    for table in reversed(PARTY_TABLES):
        op.drop_table(table)
    op.drop_table('entidades')
    op.drop_table('usuarios')
    op.drop_table('perfiles_roles')
    op.drop_table('roles')
    op.drop_table('perfiles')
    op.drop_table('comunas')
    op.drop_table('regiones')
    op.drop_table('tenants')

    for enum_name in ('tipotarifa', 'ordenestado', 'origendireccion', 'tipoentidad', 'estadousuario',
                      'tipoaccion', 'modulo', 'tipoperfil', 'tipotenant'):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
