from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from logistica_common.permissions import Modulo, TipoAccion
from .. import schemas
from ..crud import profiles as crud
from ..crud.common import DEFAULT_LIMIT, MAX_LIMIT
from ..database import get_db
from ..models import TipoPerfil
from ..security import Actor, RequireModulePermission
from ..services.permissions import resolve_profile_permissions

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.get("", response_model=schemas.PaginatedResponse[schemas.ProfileResponse])
async def read_profiles(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    search: Optional[str] = None,
    activo: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.PERFILES, TipoAccion.VER))
):
    return await crud.get_profiles(db, actor.tenant_id, page, limit, search, activo)


@router.get("/types", response_model=List[schemas.ProfileTypeResponse])
async def read_profile_types(
    actor: Actor = Depends(RequireModulePermission(Modulo.PERFILES, TipoAccion.VER))
):
    return [{"tipo": tipo} for tipo in TipoPerfil]


@router.get("/{profile_id}", response_model=schemas.ProfileDetailResponse)
async def read_profile(
    profile_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.PERFILES, TipoAccion.VER))
):
    return await crud.get_profile_detail(db, actor.tenant_id, profile_id)


@router.get("/{profile_id}/roles", response_model=List[schemas.AvailableRole])
async def read_available_roles(
    profile_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.PERFILES, TipoAccion.VER))
):
    """Roles activos del tenant con la marca `asignado` para este perfil."""
    return await crud.get_available_roles(db, actor.tenant_id, profile_id)


@router.get("/{profile_id}/permissions", response_model=schemas.PermissionsResponse)
async def read_profile_permissions(
    profile_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.PERFILES, TipoAccion.VER))
):
    profile = await crud.get_profile(db, actor.tenant_id, profile_id)
    permissions = await resolve_profile_permissions(db, actor.tenant_id, profile.id)
    return {
        "profile_id": profile.id,
        "permissions": [{"modulo": p.modulo, "accion": p.accion} for p in permissions],
        "codes": permissions.codes(),
    }


@router.post("", response_model=schemas.ProfileResponse, status_code=201)
async def create_profile(
    data: schemas.ProfileCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.PERFILES, TipoAccion.CREAR))
):
    return await crud.create_profile(db, actor.tenant_id, data)


@router.put("/{profile_id}", response_model=schemas.ProfileResponse)
async def update_profile(
    profile_id: int,
    data: schemas.ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.PERFILES, TipoAccion.EDITAR))
):
    return await crud.update_profile(db, actor.tenant_id, profile_id, data)


@router.put("/{profile_id}/roles", response_model=schemas.ProfileDetailResponse)
async def assign_roles(
    profile_id: int,
    data: schemas.AssignRolesRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.PERFILES, TipoAccion.EDITAR))
):
    """Reemplaza los roles del perfil. 400 si algún rol no es del tenant."""
    return await crud.assign_roles(db, actor.tenant_id, profile_id, data.role_ids)


@router.delete("/{profile_id}", response_model=schemas.ProfileResponse)
async def deactivate_profile(
    profile_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.PERFILES, TipoAccion.ELIMINAR))
):
    return await crud.deactivate_profile(db, actor.tenant_id, profile_id)
