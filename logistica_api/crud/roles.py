from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from logistica_common.errors import NotFoundError, ConflictError
from logistica_common.permissions import Modulo
from .. import models, schemas
from .common import paginate, search_filter


async def get_role(db: AsyncSession, tenant_id: int, role_id: int) -> models.Rol:
    query = select(models.Rol).filter(models.Rol.id == role_id, models.Rol.tenant_id == tenant_id)
    role = (await db.execute(query)).scalars().first()
    if not role:
        raise NotFoundError("Rol no encontrado")
    return role

async def get_role_by_code(db: AsyncSession, tenant_id: int, codigo: str) -> Optional[models.Rol]:
    query = select(models.Rol).filter(models.Rol.codigo == codigo, models.Rol.tenant_id == tenant_id)
    return (await db.execute(query)).scalars().first()

async def get_roles_by_ids(db: AsyncSession, tenant_id: int, ids: List[int]) -> List[models.Rol]:
    """Solo roles activos del tenant; los ids ajenos simplemente no aparecen."""
    if not ids:
        return []
    query = (
        select(models.Rol)
        .filter(
            models.Rol.id.in_(set(ids)),
            models.Rol.tenant_id == tenant_id,
            models.Rol.activo == True
        )
        .order_by(models.Rol.orden.asc())
    )
    return (await db.execute(query)).scalars().all()

async def get_active_roles(db: AsyncSession, tenant_id: int) -> List[models.Rol]:
    query = (
        select(models.Rol)
        .filter(models.Rol.tenant_id == tenant_id, models.Rol.activo == True)
        .order_by(models.Rol.modulo.asc(), models.Rol.orden.asc())
    )
    return (await db.execute(query)).scalars().all()

async def get_roles(
    db: AsyncSession,
    tenant_id: int,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    modulo: Optional[Modulo] = None,
    activo: Optional[bool] = None
):
    conditions = [models.Rol.tenant_id == tenant_id]
    if modulo is not None:
        conditions.append(models.Rol.modulo == modulo)
    if activo is not None:
        conditions.append(models.Rol.activo == activo)

    text_filter = search_filter(search, models.Rol.codigo, models.Rol.nombre)
    if text_filter is not None:
        conditions.append(text_filter)

    return await paginate(
        db, models.Rol, conditions, page, limit,
        order_by=(models.Rol.orden.asc(), models.Rol.codigo.asc())
    )

async def create_role(db: AsyncSession, tenant_id: int, data: schemas.RoleCreate) -> models.Rol:
    if await get_role_by_code(db, tenant_id, data.codigo):
        raise ConflictError(f"Ya existe un rol con el código {data.codigo}")

    role = models.Rol(tenant_id=tenant_id, activo=True, **data.model_dump())
    db.add(role)
    await db.commit()
    await db.refresh(role)
    return role

async def update_role(db: AsyncSession, tenant_id: int, role_id: int, data: schemas.RoleUpdate) -> models.Rol:
    role = await get_role(db, tenant_id, role_id)
    update_data = data.model_dump(exclude_unset=True, exclude_none=True)

    if "codigo" in update_data and update_data["codigo"] != role.codigo:
        if await get_role_by_code(db, tenant_id, update_data["codigo"]):
            raise ConflictError(f"Ya existe un rol con el código {update_data['codigo']}")

    for key, value in update_data.items():
        setattr(role, key, value)

    await db.commit()
    await db.refresh(role)
    return role

async def deactivate_role(db: AsyncSession, tenant_id: int, role_id: int) -> models.Rol:
    # Los vínculos se conservan; la resolución de permisos ignora roles inactivos
    role = await get_role(db, tenant_id, role_id)
    role.activo = False
    await db.commit()
    await db.refresh(role)
    return role
