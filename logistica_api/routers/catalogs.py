from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from logistica_common.permissions import Modulo, TipoAccion
from .. import models, schemas
from ..crud import catalogs as crud
from ..database import get_db
from ..security import Actor, RequireModulePermission, get_current_actor

router = APIRouter(tags=["Catálogos"])


# --- GEOGRAFÍA ---
@router.get("/regiones", response_model=List[schemas.RegionResponse])
async def read_regiones(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    return await crud.get_regiones(db)


@router.get("/comunas", response_model=List[schemas.ComunaResponse])
async def read_comunas(
    region_id: Optional[int] = None,
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    return await crud.get_comunas(db, region_id, search)


# --- TIPOS DE CARGA / SERVICIO ---
def build_catalog_router(model, prefix: str, tag: str) -> APIRouter:
    """Mismo contrato para tipos de carga y tipos de servicio."""
    catalog_router = APIRouter(prefix=prefix, tags=[tag])

    @catalog_router.get("", response_model=List[schemas.CatalogItemResponse])
    async def read_items(
        activo: Optional[bool] = True,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(Modulo.CATALOGOS, TipoAccion.VER))
    ):
        return await crud.get_catalog_items(db, model, actor.tenant_id, activo)

    @catalog_router.get("/{item_id}", response_model=schemas.CatalogItemResponse)
    async def read_item(
        item_id: int,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(Modulo.CATALOGOS, TipoAccion.VER))
    ):
        return await crud.get_catalog_item(db, model, actor.tenant_id, item_id)

    @catalog_router.post("", response_model=schemas.CatalogItemResponse, status_code=201)
    async def create_item(
        data: schemas.CatalogItemCreate,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(Modulo.CATALOGOS, TipoAccion.CREAR))
    ):
        return await crud.create_catalog_item(db, model, actor.tenant_id, data)

    @catalog_router.put("/{item_id}", response_model=schemas.CatalogItemResponse)
    async def update_item(
        item_id: int,
        data: schemas.CatalogItemUpdate,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(Modulo.CATALOGOS, TipoAccion.EDITAR))
    ):
        """409 si el nuevo nombre ya existe en el catálogo del tenant."""
        return await crud.update_catalog_item(db, model, actor.tenant_id, item_id, data)

    @catalog_router.patch("/{item_id}/deactivate", response_model=schemas.CatalogItemResponse)
    async def deactivate_item(
        item_id: int,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(Modulo.CATALOGOS, TipoAccion.EDITAR))
    ):
        return await crud.set_catalog_item_active(db, model, actor.tenant_id, item_id, False)

    @catalog_router.post("/{item_id}/activate", response_model=schemas.CatalogItemResponse)
    async def activate_item(
        item_id: int,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(Modulo.CATALOGOS, TipoAccion.ACTIVAR))
    ):
        return await crud.set_catalog_item_active(db, model, actor.tenant_id, item_id, True)

    @catalog_router.delete("/{item_id}", status_code=204)
    async def delete_item(
        item_id: int,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(Modulo.CATALOGOS, TipoAccion.ELIMINAR))
    ):
        """Borrado definitivo. 409 mientras alguna orden lo use."""
        await crud.delete_catalog_item(db, model, actor.tenant_id, item_id)
        return

    return catalog_router


tipos_carga_router = build_catalog_router(models.TipoCarga, "/tipos-carga", "Tipos de carga")
tipos_servicio_router = build_catalog_router(models.TipoServicio, "/tipos-servicio", "Tipos de servicio")


# --- EQUIPOS ---
@router.get("/equipos", response_model=List[schemas.EquipoResponse])
async def read_equipos(
    carrier_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.CATALOGOS, TipoAccion.VER))
):
    return await crud.get_equipos(db, actor.tenant_id, carrier_id)


@router.post("/equipos", response_model=schemas.EquipoResponse, status_code=201)
async def create_equipo(
    data: schemas.EquipoCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.CATALOGOS, TipoAccion.CREAR))
):
    return await crud.create_equipo(db, actor.tenant_id, data)
