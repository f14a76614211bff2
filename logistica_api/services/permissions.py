from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from logistica_common.permissions import PermissionSet
from .. import models


async def resolve_profile_permissions(
    db: AsyncSession, tenant_id: int, profile_id: Optional[int]
) -> PermissionSet:
    """
    Conjunto efectivo de permisos (módulo, acción) de un perfil.

    Solo cuentan vínculos cuyo perfil, rol y propio registro de vínculo
    pertenecen al tenant indicado, con perfil y rol activos. Sin vínculos
    el resultado es el conjunto vacío: se deniega todo.
    """
    if profile_id is None:
        return PermissionSet.empty()

    query = (
        select(models.Rol.modulo, models.Rol.tipo_accion)
        .join(models.PerfilRol, models.PerfilRol.rol_id == models.Rol.id)
        .join(models.Perfil, models.Perfil.id == models.PerfilRol.perfil_id)
        .filter(
            models.PerfilRol.perfil_id == profile_id,
            models.PerfilRol.tenant_id == tenant_id,
            models.Rol.tenant_id == tenant_id,
            models.Perfil.tenant_id == tenant_id,
            models.Perfil.activo == True,
            models.Rol.activo == True
        )
        .distinct()
    )
    rows = (await db.execute(query)).all()
    return PermissionSet((modulo, accion) for modulo, accion in rows)
