from typing import Optional, Iterable, List, Dict, Any
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy import func, or_, update

from logistica_common.errors import NotFoundError, ConflictError
from .. import models, schemas
from .common import paginate, search_filter, ensure_comuna


def _conditions(tenant_id: int, search: Optional[str] = None, activo: Optional[bool] = None,
                comuna_id: Optional[int] = None, origen: Optional[models.OrigenDireccion] = None,
                es_principal: Optional[bool] = None):
    conditions = [models.Direccion.tenant_id == tenant_id]
    if activo is not None:
        conditions.append(models.Direccion.activo == activo)
    if comuna_id is not None:
        conditions.append(models.Direccion.comuna_id == comuna_id)
    if origen is not None:
        conditions.append(models.Direccion.origen == origen)
    if es_principal is not None:
        conditions.append(models.Direccion.es_principal == es_principal)

    text_filter = search_filter(
        search,
        models.Direccion.direccion_texto,
        models.Direccion.nombre,
        models.Direccion.calle,
        models.Direccion.contacto,
        models.Direccion.referencia
    )
    if text_filter is not None:
        conditions.append(text_filter)
    return conditions

# Principal primero, luego las más usadas y recientes
ADDRESS_ORDER = (
    models.Direccion.es_principal.desc(),
    models.Direccion.activo.desc(),
    models.Direccion.frecuencia.desc(),
    models.Direccion.ultima_vez_usada.desc(),
    models.Direccion.id.asc(),
)


# --- LECTURA ---
async def get_address(db: AsyncSession, tenant_id: int, address_id: int) -> models.Direccion:
    query = (
        select(models.Direccion)
        .options(selectinload(models.Direccion.comuna))
        .filter(models.Direccion.id == address_id, models.Direccion.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    address = (await db.execute(query)).scalars().first()
    if not address:
        raise NotFoundError("Dirección no encontrada")
    return address

async def get_addresses(db: AsyncSession, tenant_id: int, page: int = 1, limit: int = 10, **filters):
    return await paginate(
        db, models.Direccion, _conditions(tenant_id, **filters), page, limit,
        order_by=ADDRESS_ORDER,
        options=(selectinload(models.Direccion.comuna),)
    )

async def get_addresses_by_comuna(db: AsyncSession, tenant_id: int, comuna_id: int) -> List[models.Direccion]:
    query = (
        select(models.Direccion)
        .options(selectinload(models.Direccion.comuna))
        .filter(*_conditions(tenant_id, activo=True, comuna_id=comuna_id))
        .order_by(*ADDRESS_ORDER)
    )
    return (await db.execute(query)).scalars().all()

async def get_address_stats(db: AsyncSession, tenant_id: int) -> Dict[str, Any]:
    base = select(func.count(models.Direccion.id)).filter(models.Direccion.tenant_id == tenant_id)
    total = (await db.execute(base)).scalar() or 0
    activas = (await db.execute(base.filter(models.Direccion.activo == True))).scalar() or 0

    origen_query = (
        select(models.Direccion.origen, func.count(models.Direccion.id))
        .filter(models.Direccion.tenant_id == tenant_id)
        .group_by(models.Direccion.origen)
    )
    por_origen = {origen.value: count for origen, count in (await db.execute(origen_query)).all()}

    return {"total": total, "activas": activas, "inactivas": total - activas, "por_origen": por_origen}


# --- ESCRITURA ---
async def _clear_principal(db: AsyncSession, tenant_id: int, keep_id: Optional[int] = None):
    """Solo una dirección principal por tenant."""
    stmt = (
        update(models.Direccion)
        .where(models.Direccion.tenant_id == tenant_id, models.Direccion.es_principal == True)
        .values(es_principal=False)
        .execution_options(synchronize_session=False)
    )
    if keep_id is not None:
        stmt = stmt.where(models.Direccion.id != keep_id)
    await db.execute(stmt)

async def create_address(db: AsyncSession, tenant_id: int, data: schemas.AddressCreate) -> models.Direccion:
    await ensure_comuna(db, data.comuna_id)

    try:
        if data.es_principal:
            await _clear_principal(db, tenant_id)
        address = models.Direccion(
            tenant_id=tenant_id,
            frecuencia=1,
            activo=True,
            **data.model_dump()
        )
        db.add(address)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return await get_address(db, tenant_id, address.id)

async def update_address(db: AsyncSession, tenant_id: int, address_id: int, data: schemas.AddressUpdate) -> models.Direccion:
    address = await get_address(db, tenant_id, address_id)
    update_data = data.model_dump(exclude_unset=True)

    for key in ("comuna_id", "direccion_texto", "origen", "es_principal"):
        if key in update_data and update_data[key] is None:
            update_data.pop(key)
    if "comuna_id" in update_data:
        await ensure_comuna(db, update_data["comuna_id"])

    try:
        if update_data.get("es_principal"):
            await _clear_principal(db, tenant_id, keep_id=address.id)
        for key, value in update_data.items():
            setattr(address, key, value)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return await get_address(db, tenant_id, address_id)

async def deactivate_address(db: AsyncSession, tenant_id: int, address_id: int) -> models.Direccion:
    address = await get_address(db, tenant_id, address_id)

    in_use_query = select(func.count(models.Orden.id)).filter(
        models.Orden.tenant_id == tenant_id,
        or_(
            models.Orden.direccion_origen_id == address.id,
            models.Orden.direccion_destino_id == address.id
        )
    )
    in_use = (await db.execute(in_use_query)).scalar() or 0
    if in_use > 0:
        raise ConflictError(f"No se puede desactivar la dirección: la usan {in_use} orden(es)")

    address.activo = False
    address.es_principal = False
    await db.commit()
    return await get_address(db, tenant_id, address_id)

async def register_address_use(db: AsyncSession, tenant_id: int, address_ids: Iterable[int]):
    """
    Suma un uso a cada dirección y marca la fecha. No hace commit: corre
    dentro de la transacción de quien la llama (creación de órdenes).
    """
    ids = set(address_ids)
    if not ids:
        return
    await db.execute(
        update(models.Direccion)
        .where(models.Direccion.id.in_(ids), models.Direccion.tenant_id == tenant_id)
        .values(
            frecuencia=models.Direccion.frecuencia + 1,
            ultima_vez_usada=datetime.now(timezone.utc)
        )
        .execution_options(synchronize_session=False)
    )
