from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from logistica_common.permissions import Modulo, TipoAccion
from .. import schemas
from ..crud import addresses as crud
from ..crud.common import DEFAULT_LIMIT, MAX_LIMIT
from ..database import get_db
from ..models import OrigenDireccion
from ..security import Actor, RequireModulePermission

router = APIRouter(prefix="/direcciones", tags=["Direcciones"])


@router.get("", response_model=schemas.PaginatedResponse[schemas.AddressResponse])
async def read_addresses(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    search: Optional[str] = None,
    activo: Optional[bool] = None,
    comuna_id: Optional[int] = None,
    origen: Optional[OrigenDireccion] = None,
    es_principal: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.DIRECCIONES, TipoAccion.VER))
):
    """Orden: principal, activas, más usadas y más recientes primero."""
    return await crud.get_addresses(
        db, actor.tenant_id, page, limit,
        search=search, activo=activo, comuna_id=comuna_id, origen=origen, es_principal=es_principal
    )


@router.get("/stats", response_model=schemas.AddressStats)
async def read_address_stats(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.DIRECCIONES, TipoAccion.VER))
):
    return await crud.get_address_stats(db, actor.tenant_id)


@router.get("/comuna/{comuna_id}", response_model=List[schemas.AddressResponse])
async def read_addresses_by_comuna(
    comuna_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.DIRECCIONES, TipoAccion.VER))
):
    return await crud.get_addresses_by_comuna(db, actor.tenant_id, comuna_id)


@router.get("/{address_id}", response_model=schemas.AddressResponse)
async def read_address(
    address_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.DIRECCIONES, TipoAccion.VER))
):
    return await crud.get_address(db, actor.tenant_id, address_id)


@router.post("", response_model=schemas.AddressResponse, status_code=201)
async def create_address(
    data: schemas.AddressCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.DIRECCIONES, TipoAccion.CREAR))
):
    return await crud.create_address(db, actor.tenant_id, data)


@router.put("/{address_id}", response_model=schemas.AddressResponse)
async def update_address(
    address_id: int,
    data: schemas.AddressUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.DIRECCIONES, TipoAccion.EDITAR))
):
    return await crud.update_address(db, actor.tenant_id, address_id, data)


@router.delete("/{address_id}", response_model=schemas.AddressResponse)
async def deactivate_address(
    address_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.DIRECCIONES, TipoAccion.ELIMINAR))
):
    """409 si alguna orden usa la dirección."""
    return await crud.deactivate_address(db, actor.tenant_id, address_id)
