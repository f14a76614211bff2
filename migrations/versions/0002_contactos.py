"""Add contactos table and the contactos permission module

Revision ID: 0002_contactos
Revises: 0001_initial_schema
Create Date: 2026-10-18 16:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0002_contactos'
down_revision: Union[str, Sequence[str], None] = '0001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACCIONES = ('VER', 'CREAR', 'EDITAR', 'ELIMINAR', 'ACTIVAR')


def upgrade() -> None:
    # 1. Nuevo módulo en el enum (ADD VALUE no corre dentro de una transacción)
    with op.get_context().autocommit_block():
        op.execute("ALTER TYPE modulo ADD VALUE IF NOT EXISTS 'CONTACTOS'")

    # 2. Contactos
    op.create_table('contactos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('entidad_id', sa.Integer(), nullable=False),
        sa.Column('comuna_id', sa.Integer(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=False),
        sa.Column('rut', sa.String(), nullable=False),
        sa.Column('es_persona', sa.Boolean(), nullable=False),
        sa.Column('cargo', sa.String(), nullable=True),
        sa.Column('contacto', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('telefono', sa.String(), nullable=True),
        sa.Column('direccion', sa.String(), nullable=True),
        sa.Column('activo', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ),
        sa.ForeignKeyConstraint(['entidad_id'], ['entidades.id'], ),
        sa.ForeignKeyConstraint(['comuna_id'], ['comunas.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'rut', name='uq_contacto_tenant_rut')
    )
    op.create_index(op.f('ix_contactos_id'), 'contactos', ['id'], unique=False)
    op.create_index(op.f('ix_contactos_tenant_id'), 'contactos', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_contactos_entidad_id'), 'contactos', ['entidad_id'], unique=False)
    op.create_index(op.f('ix_contactos_nombre'), 'contactos', ['nombre'], unique=False)

    # 3. Roles del módulo para los tenants existentes, asignados a su perfil administrador
    for orden, accion in enumerate(ACCIONES, start=100):
        op.execute(f"""
            INSERT INTO roles (tenant_id, codigo, nombre, modulo, tipo_accion, orden, visible, activo)
            SELECT t.id, '{accion.lower()}_contactos', '{accion.capitalize()} contactos',
                   'CONTACTOS', '{accion}', {orden}, true, true
            FROM tenants t
            WHERE NOT EXISTS (
                SELECT 1 FROM roles r WHERE r.tenant_id = t.id AND r.codigo = '{accion.lower()}_contactos'
            )
        """)
    op.execute("""
        INSERT INTO perfiles_roles (tenant_id, perfil_id, rol_id)
        SELECT p.tenant_id, p.id, r.id
        FROM perfiles p
        JOIN roles r ON r.tenant_id = p.tenant_id AND r.modulo = 'CONTACTOS'
        WHERE p.tipo = 'ADMINISTRADOR'
          AND NOT EXISTS (
              SELECT 1 FROM perfiles_roles pr WHERE pr.perfil_id = p.id AND pr.rol_id = r.id
          )
    """)


def downgrade() -> None:
    op.execute("""
        DELETE FROM perfiles_roles
        WHERE rol_id IN (SELECT id FROM roles WHERE modulo = 'CONTACTOS')
    """)
    op.execute("DELETE FROM roles WHERE modulo = 'CONTACTOS'")

    op.drop_index(op.f('ix_contactos_nombre'), table_name='contactos')
    op.drop_index(op.f('ix_contactos_entidad_id'), table_name='contactos')
    op.drop_index(op.f('ix_contactos_tenant_id'), table_name='contactos')
    op.drop_index(op.f('ix_contactos_id'), table_name='contactos')
    op.drop_table('contactos')
    # Postgres no permite quitar valores de un enum; 'CONTACTOS' queda sin uso
