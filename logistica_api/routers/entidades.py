from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from logistica_common.permissions import Modulo, TipoAccion
from .. import schemas
from ..crud import entidades as crud
from ..crud.common import DEFAULT_LIMIT, MAX_LIMIT
from ..database import get_db
from ..models import TipoEntidad
from ..security import Actor, RequireModulePermission

router = APIRouter(prefix="/entidades", tags=["Entidades"])


@router.get("", response_model=schemas.PaginatedResponse[schemas.EntidadResponse])
async def read_entidades(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    search: Optional[str] = None,
    activo: Optional[bool] = None,
    es_persona: Optional[bool] = None,
    tipo_entidad: Optional[TipoEntidad] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ENTIDADES, TipoAccion.VER))
):
    return await crud.get_entidades(db, actor.tenant_id, page, limit, search, activo, es_persona, tipo_entidad)


@router.get("/rut/{rut}", response_model=schemas.EntidadResponse)
async def read_entidad_by_rut(
    rut: str,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ENTIDADES, TipoAccion.VER))
):
    return await crud.get_entidad_by_rut(db, actor.tenant_id, rut)


@router.get("/{entidad_id}", response_model=schemas.EntidadResponse)
async def read_entidad(
    entidad_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ENTIDADES, TipoAccion.VER))
):
    return await crud.get_entidad(db, actor.tenant_id, entidad_id)


@router.post("", response_model=schemas.EntidadResponse, status_code=201)
async def create_entidad(
    data: schemas.EntidadCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ENTIDADES, TipoAccion.CREAR))
):
    """Remitentes, destinatarios y demás partes que no son clientes/carriers/embarcadores."""
    return await crud.create_entidad(db, actor.tenant_id, data)
