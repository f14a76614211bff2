from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from logistica_common.errors import UnauthorizedOperation, ForbiddenError
from logistica_common.permissions import Modulo, TipoAccion, PermissionSet, Permission
from logistica_common.security import UserPayload, get_current_user
from .database import get_db
from .models import TipoTenant
from .crud import tenants as crud_tenants
from .crud import users as crud_users
from .services.permissions import resolve_profile_permissions

logger = logging.getLogger("logistica.security")


class Actor:
    """
    Quién hace la petición, ya verificado contra la base de datos.

    Solo guarda valores planos (no objetos ORM) para seguir siendo válido
    aunque la sesión haga rollback a mitad de la petición.
    """
    def __init__(self, user: UserPayload, tenant_id: int, tipo_tenant: TipoTenant,
                 profile_id, permissions: PermissionSet):
        self.user = user
        self.tenant_id = tenant_id
        self.tipo_tenant = tipo_tenant
        self.profile_id = profile_id
        self.permissions = permissions

    @property
    def is_admin_tenant(self) -> bool:
        return self.tipo_tenant == TipoTenant.ADMIN


async def get_current_actor(
    user: UserPayload = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Actor:
    # 1. El tenant del token debe existir y estar activo (sin tenant por defecto)
    tenant = await crud_tenants.get_tenant(db, user.tenant_id)
    if not tenant or not tenant.activo:
        logger.warning(f"Token con tenant inexistente o inactivo: {user.tenant_id}")
        raise UnauthorizedOperation("Tenant inexistente o inactivo")

    # 2. El perfil vigente sale de la base, no del token
    profile_id = user.profile_id
    if user.user_id is not None:
        usuario = await crud_users.find_user(db, user.tenant_id, user.user_id)
        if not usuario or not usuario.activo:
            raise UnauthorizedOperation("Usuario inexistente o inactivo")
        profile_id = usuario.perfil_id

    permissions = await resolve_profile_permissions(db, user.tenant_id, profile_id)
    return Actor(user, tenant.id, tenant.tipo_tenant, profile_id, permissions)


class RequireModulePermission:
    """Compuerta de la API: 403 si el actor no tiene el par (módulo, acción)."""

    def __init__(self, modulo: Modulo, accion: TipoAccion):
        self.permission = Permission(modulo, accion)

    async def __call__(self, actor: Actor = Depends(get_current_actor)) -> Actor:
        if not actor.permissions.allows(self.permission.modulo, self.permission.accion):
            logger.warning(
                f"⛔ Permiso denegado {self.permission.code} a {actor.user.sub} (tenant {actor.tenant_id})"
            )
            raise ForbiddenError(f"Acceso denegado. Requieres permiso: {self.permission.code}")
        return actor


async def require_admin_tenant(actor: Actor = Depends(get_current_actor)) -> Actor:
    """La gestión de tenants es exclusiva del tenant administrador."""
    if not actor.is_admin_tenant:
        raise ForbiddenError("Solo el tenant administrador puede gestionar tenants")
    return actor
