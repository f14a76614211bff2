from typing import NamedTuple, Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from logistica_common import security
from logistica_common.errors import ConflictError
from logistica_common.permissions import Modulo, TipoAccion
from .. import models, schemas
from ..crud import tenants as crud_tenants
from ..crud import users as crud_users

logger = logging.getLogger("logistica.provisioning")

ADMIN_PROFILE_NAME = "Administrador"


class ProvisionedTenant(NamedTuple):
    tenant: models.Tenant
    perfil: models.Perfil
    usuario: Optional[models.Usuario]


def default_roles(tenant_id: int) -> List[models.Rol]:
    """Un rol por cada par (módulo, acción) del vocabulario."""
    roles = []
    orden = 0
    for modulo in Modulo:
        for accion in TipoAccion:
            orden += 1
            roles.append(models.Rol(
                tenant_id=tenant_id,
                codigo=f"{accion.value.lower()}_{modulo.value}",
                nombre=f"{accion.value.capitalize()} {modulo.value}",
                modulo=modulo,
                tipo_accion=accion,
                orden=orden,
                visible=True,
                activo=True
            ))
    return roles


async def provision_tenant(db: AsyncSession, data: schemas.TenantCreate) -> ProvisionedTenant:
    """
    Alta atómica de un tenant.

    Crea el tenant, su catálogo de roles, un perfil administrador con todos
    ellos y, si se indica, el primer usuario. O todo o nada.
    """
    # 1. Verificar duplicados
    await crud_tenants.ensure_rut_available(db, data.rut)
    if data.administrador and await crud_users.get_user_by_email(db, data.administrador.correo):
        raise ConflictError("El correo del administrador ya está registrado")

    try:
        # 2. Tenant (flush para obtener el ID)
        tenant = crud_tenants.build_tenant(data)
        db.add(tenant)
        await db.flush()

        # 3. Roles + perfil administrador
        roles = default_roles(tenant.id)
        db.add_all(roles)
        perfil = models.Perfil(
            tenant_id=tenant.id,
            nombre=ADMIN_PROFILE_NAME,
            descripcion="Acceso completo a todos los módulos",
            tipo=models.TipoPerfil.ADMINISTRADOR,
            activo=True
        )
        db.add(perfil)
        await db.flush()

        db.add_all([
            models.PerfilRol(tenant_id=tenant.id, perfil_id=perfil.id, rol_id=rol.id)
            for rol in roles
        ])

        # 4. Primer usuario (opcional)
        usuario = None
        if data.administrador:
            admin = data.administrador
            usuario = models.Usuario(
                tenant_id=tenant.id,
                perfil_id=perfil.id,
                correo=admin.correo.lower(),
                nombre=admin.nombre,
                hashed_password=security.get_password_hash(admin.password) if admin.password else None,
                # Igual que crud_users.create_user: sin contraseña queda pendiente
                estado=models.EstadoUsuario.ACTIVO if admin.password else models.EstadoUsuario.PENDIENTE,
                activo=True
            )
            db.add(usuario)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(tenant)

    logger.info(f"🏢 Tenant aprovisionado: {tenant.nombre} ({tenant.rut}) con {len(roles)} roles")
    return ProvisionedTenant(tenant=tenant, perfil=perfil, usuario=usuario)
