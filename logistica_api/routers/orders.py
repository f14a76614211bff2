from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from datetime import date

from logistica_common.permissions import Modulo, TipoAccion
from .. import schemas
from ..crud import orders as crud
from ..crud.common import DEFAULT_LIMIT, MAX_LIMIT
from ..database import get_db
from ..models import OrdenEstado
from ..security import Actor, RequireModulePermission

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get("", response_model=schemas.PaginatedResponse[schemas.OrderResponse])
async def read_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    search: Optional[str] = None,
    estado: Optional[OrdenEstado] = None,
    cliente_id: Optional[int] = None,
    fecha_desde: Optional[date] = None,
    fecha_hasta: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ORDENES, TipoAccion.VER))
):
    return await crud.get_orders(
        db, actor.tenant_id, page, limit, search, estado, cliente_id, fecha_desde, fecha_hasta
    )


@router.get("/{order_id}", response_model=schemas.OrderResponse)
async def read_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ORDENES, TipoAccion.VER))
):
    return await crud.get_order(db, actor.tenant_id, order_id)


@router.post("", response_model=schemas.OrderResponse, status_code=201)
async def create_order(
    data: schemas.OrderCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ORDENES, TipoAccion.CREAR))
):
    """
    **Crear Orden**

    - Todas las referencias (cliente, partes, direcciones, catálogos) deben ser del tenant (400).
    - Sin `codigo` se genera `ORD-YYYYMMDD-NNN` correlativo por día y tenant.
    - La orden nace en estado PENDIENTE.
    """
    return await crud.create_order(db, actor.tenant_id, data)


@router.put("/{order_id}", response_model=schemas.OrderResponse)
async def update_order(
    order_id: int,
    data: schemas.OrderUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ORDENES, TipoAccion.EDITAR))
):
    return await crud.update_order(db, actor.tenant_id, order_id, data)


@router.patch("/{order_id}/status", response_model=schemas.OrderResponse)
async def change_order_status(
    order_id: int,
    data: schemas.OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ORDENES, TipoAccion.EDITAR))
):
    """PENDIENTE -> PLANIFICADA -> EN_TRANSPORTE -> ENTREGADA; CANCELADA desde cualquier estado abierto."""
    return await crud.change_status(db, actor.tenant_id, order_id, data.estado)


@router.delete("/{order_id}", response_model=schemas.OrderResponse)
async def cancel_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(RequireModulePermission(Modulo.ORDENES, TipoAccion.ELIMINAR))
):
    return await crud.cancel_order(db, actor.tenant_id, order_id)
