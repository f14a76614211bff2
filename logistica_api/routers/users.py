from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from logistica_common.permissions import Modulo, TipoAccion
from .. import schemas
from ..crud import users as crud
from ..crud.common import DEFAULT_LIMIT, MAX_LIMIT
from ..database import get_db
from ..security import Actor, RequireModulePermission

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=schemas.PaginatedResponse[schemas.UserResponse])
async def read_users(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    search: Optional[str] = None,
    activo: Optional[bool] = None,
    perfil_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.USUARIOS, TipoAccion.VER))
):
    return await crud.get_users(db, actor.tenant_id, page, limit, search, activo, perfil_id)


@router.get("/{user_id}", response_model=schemas.UserResponse)
async def read_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.USUARIOS, TipoAccion.VER))
):
    return await crud.get_user(db, actor.tenant_id, user_id)


@router.post("", response_model=schemas.UserResponse, status_code=201)
async def create_user(
    data: schemas.UserCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.USUARIOS, TipoAccion.CREAR))
):
    """
    **Crear Usuario**

    El usuario queda en el tenant de quien lo crea. Sin contraseña queda
    en estado PENDIENTE hasta que se le asigne una.
    """
    return await crud.create_user(db, actor.tenant_id, data)


@router.put("/{user_id}", response_model=schemas.UserResponse)
async def update_user(
    user_id: int,
    data: schemas.UserUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.USUARIOS, TipoAccion.EDITAR))
):
    return await crud.update_user(db, actor.tenant_id, user_id, data)


@router.delete("/{user_id}", response_model=schemas.UserResponse)
async def deactivate_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.USUARIOS, TipoAccion.ELIMINAR))
):
    return await crud.set_user_active(db, actor.tenant_id, user_id, False)


@router.post("/{user_id}/activate", response_model=schemas.UserResponse)
async def activate_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.USUARIOS, TipoAccion.ACTIVAR))
):
    return await crud.set_user_active(db, actor.tenant_id, user_id, True)
