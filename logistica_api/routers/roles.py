from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from logistica_common.errors import NotFoundError
from logistica_common.permissions import Modulo, TipoAccion
from .. import schemas
from ..crud import roles as crud
from ..crud.common import DEFAULT_LIMIT, MAX_LIMIT
from ..database import get_db
from ..security import Actor, RequireModulePermission

router = APIRouter(prefix="/roles", tags=["Roles"])


@router.get("", response_model=schemas.PaginatedResponse[schemas.RoleResponse])
async def read_roles(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    search: Optional[str] = None,
    modulo: Optional[Modulo] = None,
    activo: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ROLES, TipoAccion.VER))
):
    return await crud.get_roles(db, actor.tenant_id, page, limit, search, modulo, activo)


@router.post("/by-ids", response_model=List[schemas.RoleResponse])
async def read_roles_by_ids(
    data: schemas.RolesByIdsRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ROLES, TipoAccion.VER))
):
    return await crud.get_roles_by_ids(db, actor.tenant_id, data.ids)


@router.get("/code/{codigo}", response_model=schemas.RoleResponse)
async def read_role_by_code(
    codigo: str,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ROLES, TipoAccion.VER))
):
    role = await crud.get_role_by_code(db, actor.tenant_id, codigo)
    if not role:
        raise NotFoundError("Rol no encontrado")
    return role


@router.get("/{role_id}", response_model=schemas.RoleResponse)
async def read_role(
    role_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ROLES, TipoAccion.VER))
):
    return await crud.get_role(db, actor.tenant_id, role_id)


@router.post("", response_model=schemas.RoleResponse, status_code=201)
async def create_role(
    data: schemas.RoleCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ROLES, TipoAccion.CREAR))
):
    return await crud.create_role(db, actor.tenant_id, data)


@router.put("/{role_id}", response_model=schemas.RoleResponse)
async def update_role(
    role_id: int,
    data: schemas.RoleUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ROLES, TipoAccion.EDITAR))
):
    return await crud.update_role(db, actor.tenant_id, role_id, data)


@router.delete("/{role_id}", response_model=schemas.RoleResponse)
async def deactivate_role(
    role_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ROLES, TipoAccion.ELIMINAR))
):
    return await crud.deactivate_role(db, actor.tenant_id, role_id)
