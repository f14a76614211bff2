from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from logistica_common.errors import NotFoundError
from logistica_common.permissions import Modulo, TipoAccion
from .. import schemas
from ..crud import contactos as crud
from ..crud.common import DEFAULT_LIMIT, MAX_LIMIT
from ..database import get_db
from ..security import Actor, RequireModulePermission

router = APIRouter(prefix="/contactos", tags=["Contactos"])


@router.get("", response_model=schemas.PaginatedResponse[schemas.ContactoResponse])
async def read_contactos(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    search: Optional[str] = None,
    activo: Optional[bool] = None,
    es_persona: Optional[bool] = None,
    entidad_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.CONTACTOS, TipoAccion.VER))
):
    return await crud.get_contactos(
        db, actor.tenant_id, page, limit,
        search=search, activo=activo, es_persona=es_persona, entidad_id=entidad_id
    )


@router.get("/rut/{rut}", response_model=schemas.ContactoResponse)
async def read_contacto_by_rut(
    rut: str,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.CONTACTOS, TipoAccion.VER))
):
    contacto = await crud.get_contacto_by_rut(db, actor.tenant_id, rut)
    if not contacto:
        raise NotFoundError("Contacto no encontrado")
    return contacto


@router.get("/entidad/{entidad_id}", response_model=List[schemas.ContactoResponse])
async def read_contactos_by_entidad(
    entidad_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.CONTACTOS, TipoAccion.VER))
):
    return await crud.get_contactos_by_entidad(db, actor.tenant_id, entidad_id)


@router.get("/{contacto_id}", response_model=schemas.ContactoResponse)
async def read_contacto(
    contacto_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.CONTACTOS, TipoAccion.VER))
):
    return await crud.get_contacto(db, actor.tenant_id, contacto_id)


@router.post("", response_model=schemas.ContactoResponse, status_code=201)
async def create_contacto(
    data: schemas.ContactoCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.CONTACTOS, TipoAccion.CREAR))
):
    """
    - 409 si el RUT ya existe en el tenant.
    - 400 si la comuna no existe o la entidad no es del tenant.
    """
    return await crud.create_contacto(db, actor.tenant_id, data)


@router.put("/{contacto_id}", response_model=schemas.ContactoResponse)
async def update_contacto(
    contacto_id: int,
    data: schemas.ContactoUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.CONTACTOS, TipoAccion.EDITAR))
):
    return await crud.update_contacto(db, actor.tenant_id, contacto_id, data)


@router.delete("/{contacto_id}", response_model=schemas.ContactoResponse)
async def deactivate_contacto(
    contacto_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.CONTACTOS, TipoAccion.ELIMINAR))
):
    return await crud.set_contacto_active(db, actor.tenant_id, contacto_id, False)


@router.post("/{contacto_id}/activate", response_model=schemas.ContactoResponse)
async def activate_contacto(
    contacto_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.CONTACTOS, TipoAccion.ACTIVAR))
):
    return await crud.set_contacto_active(db, actor.tenant_id, contacto_id, True)
