from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from logistica_common.permissions import Modulo, TipoAccion
from .. import schemas
from ..crud import tenants as crud
from ..database import get_db
from ..security import Actor, RequireModulePermission, get_current_actor, require_admin_tenant
from ..services.provisioning import provision_tenant

router = APIRouter(prefix="/tenants", tags=["Tenants"])


@router.get("/current", response_model=schemas.TenantResponse)
async def read_current_tenant(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Tenant del usuario autenticado (no requiere ser administrador)."""
    return await crud.get_tenant_or_404(db, actor.tenant_id)


@router.get("", response_model=List[schemas.TenantResponse], dependencies=[Depends(require_admin_tenant)])
async def read_tenants(
    activo: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.TENANTS, TipoAccion.VER))
):
    return await crud.get_tenants(db, activo)


@router.get("/{tenant_id}", response_model=schemas.TenantResponse, dependencies=[Depends(require_admin_tenant)])
async def read_tenant(
    tenant_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.TENANTS, TipoAccion.VER))
):
    return await crud.get_tenant_or_404(db, tenant_id)


@router.get("/{tenant_id}/stats", response_model=schemas.TenantStats, dependencies=[Depends(require_admin_tenant)])
async def read_tenant_stats(
    tenant_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.TENANTS, TipoAccion.VER))
):
    return await crud.get_tenant_stats(db, tenant_id)


@router.post("", response_model=schemas.TenantResponse, status_code=201, dependencies=[Depends(require_admin_tenant)])
async def create_tenant(
    data: schemas.TenantCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.TENANTS, TipoAccion.CREAR))
):
    """
    **Alta de Tenant**

    Crea el tenant con su catálogo de roles, un perfil Administrador y,
    opcionalmente, el primer usuario. El RUT se guarda sin puntos y debe
    ser único en todo el sistema (409 si ya existe).
    """
    result = await provision_tenant(db, data)
    return result.tenant


@router.put("/{tenant_id}", response_model=schemas.TenantResponse, dependencies=[Depends(require_admin_tenant)])
async def update_tenant(
    tenant_id: int,
    data: schemas.TenantUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.TENANTS, TipoAccion.EDITAR))
):
    return await crud.update_tenant(db, tenant_id, data)


@router.delete("/{tenant_id}", response_model=schemas.TenantResponse, dependencies=[Depends(require_admin_tenant)])
async def deactivate_tenant(
    tenant_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.TENANTS, TipoAccion.ELIMINAR))
):
    """Soft delete. 409 si el tenant aún tiene usuarios activos."""
    return await crud.set_tenant_active(db, tenant_id, False)


@router.post("/{tenant_id}/activate", response_model=schemas.TenantResponse, dependencies=[Depends(require_admin_tenant)])
async def activate_tenant(
    tenant_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.TENANTS, TipoAccion.ACTIVAR))
):
    return await crud.set_tenant_active(db, tenant_id, True)
