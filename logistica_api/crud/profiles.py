from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func, delete
import logging

from logistica_common.errors import NotFoundError, ConflictError, InvalidReferenceError
from .. import models, schemas
from .common import paginate, search_filter
from .roles import get_roles_by_ids, get_active_roles

logger = logging.getLogger("logistica.profiles")


# --- LECTURA ---
async def get_profile(db: AsyncSession, tenant_id: int, profile_id: int) -> models.Perfil:
    query = select(models.Perfil).filter(
        models.Perfil.id == profile_id,
        models.Perfil.tenant_id == tenant_id
    )
    profile = (await db.execute(query)).scalars().first()
    if not profile:
        raise NotFoundError("Perfil no encontrado")
    return profile

async def get_profile_by_name(db: AsyncSession, tenant_id: int, nombre: str) -> Optional[models.Perfil]:
    query = select(models.Perfil).filter(
        func.lower(models.Perfil.nombre) == nombre.strip().lower(),
        models.Perfil.tenant_id == tenant_id
    )
    return (await db.execute(query)).scalars().first()

async def get_profiles(
    db: AsyncSession,
    tenant_id: int,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    activo: Optional[bool] = None
):
    conditions = [models.Perfil.tenant_id == tenant_id]
    if activo is not None:
        conditions.append(models.Perfil.activo == activo)

    text_filter = search_filter(search, models.Perfil.nombre, models.Perfil.descripcion)
    if text_filter is not None:
        conditions.append(text_filter)

    return await paginate(
        db, models.Perfil, conditions, page, limit,
        order_by=(models.Perfil.nombre.asc(),)
    )

async def get_assigned_role_ids(db: AsyncSession, tenant_id: int, profile_id: int) -> List[int]:
    query = select(models.PerfilRol.rol_id).filter(
        models.PerfilRol.perfil_id == profile_id,
        models.PerfilRol.tenant_id == tenant_id
    )
    return list((await db.execute(query)).scalars().all())

async def get_profile_detail(db: AsyncSession, tenant_id: int, profile_id: int) -> Dict[str, Any]:
    """Perfil + códigos de sus roles activos."""
    profile = await get_profile(db, tenant_id, profile_id)
    query = (
        select(models.Rol.codigo)
        .join(models.PerfilRol, models.PerfilRol.rol_id == models.Rol.id)
        .filter(
            models.PerfilRol.perfil_id == profile.id,
            models.PerfilRol.tenant_id == tenant_id,
            models.Rol.tenant_id == tenant_id,
            models.Rol.activo == True
        )
        .order_by(models.Rol.orden.asc())
    )
    codes = (await db.execute(query)).scalars().all()
    return {**schemas.ProfileResponse.model_validate(profile).model_dump(), "roles": list(codes)}

async def get_available_roles(db: AsyncSession, tenant_id: int, profile_id: int) -> List[Dict[str, Any]]:
    """Todos los roles activos del tenant marcando los ya asignados al perfil."""
    await get_profile(db, tenant_id, profile_id)
    assigned = set(await get_assigned_role_ids(db, tenant_id, profile_id))
    return [
        {
            "id": role.id,
            "codigo": role.codigo,
            "nombre": role.nombre,
            "modulo": role.modulo,
            "tipo_accion": role.tipo_accion,
            "asignado": role.id in assigned,
        }
        for role in await get_active_roles(db, tenant_id)
    ]


# --- ESCRITURA ---
async def create_profile(db: AsyncSession, tenant_id: int, data: schemas.ProfileCreate) -> models.Perfil:
    if await get_profile_by_name(db, tenant_id, data.nombre):
        raise ConflictError(f"Ya existe un perfil con el nombre {data.nombre}")

    profile = models.Perfil(tenant_id=tenant_id, activo=True, **data.model_dump())
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile

async def update_profile(db: AsyncSession, tenant_id: int, profile_id: int, data: schemas.ProfileUpdate) -> models.Perfil:
    profile = await get_profile(db, tenant_id, profile_id)
    update_data = data.model_dump(exclude_unset=True)

    if update_data.get("nombre"):
        existing = await get_profile_by_name(db, tenant_id, update_data["nombre"])
        if existing and existing.id != profile.id:
            raise ConflictError(f"Ya existe un perfil con el nombre {update_data['nombre']}")

    for key, value in update_data.items():
        if value is not None or key == "descripcion":
            setattr(profile, key, value)

    await db.commit()
    await db.refresh(profile)
    return profile

async def deactivate_profile(db: AsyncSession, tenant_id: int, profile_id: int) -> models.Perfil:
    profile = await get_profile(db, tenant_id, profile_id)

    users_query = select(func.count(models.Usuario.id)).filter(
        models.Usuario.perfil_id == profile.id,
        models.Usuario.tenant_id == tenant_id,
        models.Usuario.activo == True
    )
    active_users = (await db.execute(users_query)).scalar() or 0
    if active_users > 0:
        raise ConflictError(
            f"No se puede desactivar el perfil: está asignado a {active_users} usuario(s) activo(s)"
        )

    profile.activo = False
    await db.commit()
    await db.refresh(profile)
    return profile

async def assign_roles(db: AsyncSession, tenant_id: int, profile_id: int, role_ids: List[int]) -> Dict[str, Any]:
    """
    Reemplaza el conjunto de roles del perfil.

    Todos los roles deben existir, estar activos y ser del mismo tenant;
    basta uno ajeno para rechazar la operación completa.
    """
    profile = await get_profile(db, tenant_id, profile_id)
    requested = set(role_ids)

    roles = await get_roles_by_ids(db, tenant_id, list(requested))
    if len(roles) != len(requested):
        missing = sorted(requested - {role.id for role in roles})
        raise InvalidReferenceError(f"Roles inexistentes, inactivos o de otro tenant: {missing}")

    try:
        await db.execute(
            delete(models.PerfilRol).where(
                models.PerfilRol.perfil_id == profile.id,
                models.PerfilRol.tenant_id == tenant_id
            )
        )
        db.add_all([
            models.PerfilRol(tenant_id=tenant_id, perfil_id=profile.id, rol_id=role.id)
            for role in roles
        ])
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"🔑 Perfil {profile.id} con {len(roles)} rol(es) asignado(s) (tenant {tenant_id})")
    return await get_profile_detail(db, tenant_id, profile_id)
