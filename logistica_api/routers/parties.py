from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from logistica_common.errors import NotFoundError
from logistica_common.permissions import Modulo, TipoAccion
from .. import schemas
from ..crud.common import DEFAULT_LIMIT, MAX_LIMIT
from ..crud.parties import PartyCrud, clientes, carriers, embarcadores
from ..database import get_db
from ..security import Actor, RequireModulePermission


def build_party_router(crud: PartyCrud, modulo: Modulo, prefix: str, tag: str,
                       create_schema, update_schema, response_schema) -> APIRouter:
    """
    Endpoints de una especialización de Entidad.

    Mismo contrato para clientes, carriers y embarcadores; solo cambian el
    módulo de permisos y los esquemas.
    """
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("", response_model=schemas.PaginatedResponse[response_schema])
    async def list_parties(
        page: int = Query(1, ge=1),
        limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
        search: Optional[str] = None,
        activo: Optional[bool] = None,
        es_persona: Optional[bool] = None,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(modulo, TipoAccion.VER))
    ):
        return await crud.list(db, actor.tenant_id, page, limit, search, activo, es_persona)

    @router.get("/stats", response_model=schemas.PartyStats)
    async def party_stats(
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(modulo, TipoAccion.VER))
    ):
        return await crud.stats(db, actor.tenant_id)

    @router.get("/rut/{rut}", response_model=response_schema)
    async def read_party_by_rut(
        rut: str,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(modulo, TipoAccion.VER))
    ):
        party = await crud.get_by_rut(db, actor.tenant_id, rut)
        if not party:
            raise NotFoundError(f"{crud.label} no encontrado")
        return party

    @router.get("/{party_id}", response_model=response_schema)
    async def read_party(
        party_id: int,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(modulo, TipoAccion.VER))
    ):
        return await crud.get(db, actor.tenant_id, party_id)

    @router.post("", response_model=response_schema, status_code=201)
    async def create_party(
        data: create_schema,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(modulo, TipoAccion.CREAR))
    ):
        """
        Alta con reutilización de Entidad.

        - 409 si ya existe la especialización con ese RUT en el tenant.
        - Si existe una Entidad con ese RUT se reutiliza y se refrescan sus datos.
        """
        return await crud.create(db, actor.tenant_id, data)

    @router.put("/{party_id}", response_model=response_schema)
    async def update_party(
        party_id: int,
        data: update_schema,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(modulo, TipoAccion.EDITAR))
    ):
        return await crud.update(db, actor.tenant_id, party_id, data)

    @router.delete("/{party_id}", response_model=response_schema)
    async def deactivate_party(
        party_id: int,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(modulo, TipoAccion.ELIMINAR))
    ):
        return await crud.set_active(db, actor.tenant_id, party_id, False)

    @router.post("/{party_id}/activate", response_model=response_schema)
    async def activate_party(
        party_id: int,
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(RequireModulePermission(modulo, TipoAccion.ACTIVAR))
    ):
        return await crud.set_active(db, actor.tenant_id, party_id, True)

    return router


clients_router = build_party_router(
    clientes, Modulo.CLIENTES, "/clients", "Clients",
    schemas.ClientCreate, schemas.ClientUpdate, schemas.ClientResponse
)
carriers_router = build_party_router(
    carriers, Modulo.CARRIERS, "/carriers", "Carriers",
    schemas.CarrierCreate, schemas.CarrierUpdate, schemas.CarrierResponse
)
shippers_router = build_party_router(
    embarcadores, Modulo.EMBARCADORES, "/embarcadores", "Shippers",
    schemas.ShipperCreate, schemas.ShipperUpdate, schemas.ShipperResponse
)
