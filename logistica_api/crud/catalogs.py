from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy import func
import logging

from logistica_common.errors import ConflictError, NotFoundError
from .. import models, schemas
from .common import ensure_owned, like_pattern

logger = logging.getLogger("logistica.catalogs")


# --- GEOGRAFÍA (global) ---
async def get_regiones(db: AsyncSession) -> List[models.Region]:
    query = select(models.Region).order_by(models.Region.ordinal.asc())
    return (await db.execute(query)).scalars().all()

async def get_comunas(db: AsyncSession, region_id: Optional[int] = None, search: Optional[str] = None) -> List[models.Comuna]:
    query = select(models.Comuna).options(selectinload(models.Comuna.region))
    if region_id is not None:
        query = query.filter(models.Comuna.region_id == region_id)
    if search and search.strip():
        query = query.filter(models.Comuna.nombre.ilike(like_pattern(search.strip()), escape="\\"))
    return (await db.execute(query.order_by(models.Comuna.nombre.asc()))).scalars().all()


# --- CATÁLOGOS DEL TENANT ---
CATALOG_LABELS = {
    models.TipoCarga: "Tipo de carga",
    models.TipoServicio: "Tipo de servicio",
}

# Columna de la orden que referencia cada catálogo
ORDER_REFERENCES = {
    models.TipoCarga: models.Orden.tipo_carga_id,
    models.TipoServicio: models.Orden.tipo_servicio_id,
}


async def get_catalog_items(db: AsyncSession, model, tenant_id: int, activo: Optional[bool] = True):
    """Tipos de carga / tipos de servicio del tenant."""
    query = select(model).filter(model.tenant_id == tenant_id)
    if activo is not None:
        query = query.filter(model.activo == activo)
    return (await db.execute(query.order_by(model.nombre.asc()))).scalars().all()

async def get_catalog_item(db: AsyncSession, model, tenant_id: int, item_id: int):
    query = (
        select(model)
        .filter(model.id == item_id, model.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    item = (await db.execute(query)).scalars().first()
    if not item:
        raise NotFoundError(f"{CATALOG_LABELS[model]} no encontrado")
    return item

async def _ensure_name_available(db: AsyncSession, model, tenant_id: int, nombre: str, exclude_id: Optional[int] = None):
    query = select(model.id).filter(
        model.tenant_id == tenant_id,
        func.lower(model.nombre) == nombre.strip().lower()
    )
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if (await db.execute(query)).scalar() is not None:
        raise ConflictError(f"Ya existe '{nombre}' en el catálogo")

async def create_catalog_item(db: AsyncSession, model, tenant_id: int, data: schemas.CatalogItemCreate):
    await _ensure_name_available(db, model, tenant_id, data.nombre)

    item = model(tenant_id=tenant_id, activo=True, **data.model_dump())
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item

async def update_catalog_item(db: AsyncSession, model, tenant_id: int, item_id: int, data: schemas.CatalogItemUpdate):
    item = await get_catalog_item(db, model, tenant_id, item_id)
    update_data = data.model_dump(exclude_unset=True)

    if update_data.get("nombre") is None:
        update_data.pop("nombre", None)
    else:
        await _ensure_name_available(db, model, tenant_id, update_data["nombre"], exclude_id=item.id)

    for key, value in update_data.items():
        setattr(item, key, value)
    await db.commit()
    return await get_catalog_item(db, model, tenant_id, item_id)

async def set_catalog_item_active(db: AsyncSession, model, tenant_id: int, item_id: int, activo: bool):
    """Desactivar lo retira de los listados sin tocar las órdenes que ya lo usan."""
    item = await get_catalog_item(db, model, tenant_id, item_id)
    item.activo = activo
    await db.commit()
    logger.info(f"{CATALOG_LABELS[model]} {item_id} {'activado' if activo else 'desactivado'} (tenant {tenant_id})")
    return await get_catalog_item(db, model, tenant_id, item_id)

async def delete_catalog_item(db: AsyncSession, model, tenant_id: int, item_id: int):
    """Borrado definitivo; solo si ninguna orden del tenant lo referencia."""
    item = await get_catalog_item(db, model, tenant_id, item_id)

    column = ORDER_REFERENCES[model]
    in_use_query = select(func.count(models.Orden.id)).filter(
        models.Orden.tenant_id == tenant_id,
        column == item.id
    )
    in_use = (await db.execute(in_use_query)).scalar() or 0
    if in_use > 0:
        raise ConflictError(
            f"No se puede eliminar {CATALOG_LABELS[model].lower()}: lo usan {in_use} orden(es)"
        )

    await db.delete(item)
    await db.commit()
    logger.info(f"🗑️ {CATALOG_LABELS[model]} {item_id} eliminado (tenant {tenant_id})")

async def get_equipos(db: AsyncSession, tenant_id: int, carrier_id: Optional[int] = None) -> List[models.Equipo]:
    query = select(models.Equipo).filter(
        models.Equipo.tenant_id == tenant_id,
        models.Equipo.activo == True
    )
    if carrier_id is not None:
        query = query.filter(models.Equipo.carrier_id == carrier_id)
    return (await db.execute(query.order_by(models.Equipo.patente.asc()))).scalars().all()

async def create_equipo(db: AsyncSession, tenant_id: int, data: schemas.EquipoCreate) -> models.Equipo:
    if data.carrier_id is not None:
        await ensure_owned(db, models.Carrier, tenant_id, data.carrier_id, "El carrier indicado no existe")

    exists_query = select(models.Equipo.id).filter(
        models.Equipo.tenant_id == tenant_id,
        models.Equipo.patente == data.patente
    )
    if (await db.execute(exists_query)).scalar() is not None:
        raise ConflictError(f"Ya existe un equipo con la patente {data.patente}")

    equipo = models.Equipo(tenant_id=tenant_id, activo=True, **data.model_dump())
    db.add(equipo)
    await db.commit()
    await db.refresh(equipo)
    return equipo
