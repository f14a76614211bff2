"""
Contactos: personas de contacto de una Entidad del tenant.

El RUT es único por tenant; la comuna es un catálogo global y la entidad
debe pertenecer al mismo tenant que el contacto.
"""
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import IntegrityError
import logging

from logistica_common.errors import NotFoundError, ConflictError
from logistica_common.rut import normalize_rut
from .. import models, schemas
from .common import paginate, search_filter, ensure_owned, ensure_comuna

logger = logging.getLogger("logistica.contactos")

CONTACTO_OPTIONS = (
    selectinload(models.Contacto.entidad),
    selectinload(models.Contacto.comuna),
)


def _conditions(tenant_id: int, search: Optional[str] = None, activo: Optional[bool] = None,
                es_persona: Optional[bool] = None, entidad_id: Optional[int] = None):
    conditions = [models.Contacto.tenant_id == tenant_id]
    if activo is not None:
        conditions.append(models.Contacto.activo == activo)
    if es_persona is not None:
        conditions.append(models.Contacto.es_persona == es_persona)
    if entidad_id is not None:
        conditions.append(models.Contacto.entidad_id == entidad_id)

    text_filter = search_filter(
        search,
        models.Contacto.nombre,
        models.Contacto.email,
        models.Contacto.cargo,
        models.Contacto.contacto,
        rut_columns=(models.Contacto.rut,)
    )
    if text_filter is not None:
        conditions.append(text_filter)
    return conditions


async def _ensure_entidad(db: AsyncSession, tenant_id: int, entidad_id: int):
    await ensure_owned(db, models.Entidad, tenant_id, entidad_id, "La entidad indicada no existe")


# --- LECTURA ---
async def get_contacto(db: AsyncSession, tenant_id: int, contacto_id: int) -> models.Contacto:
    query = (
        select(models.Contacto)
        .options(*CONTACTO_OPTIONS)
        .filter(models.Contacto.id == contacto_id, models.Contacto.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    contacto = (await db.execute(query)).scalars().first()
    if not contacto:
        raise NotFoundError("Contacto no encontrado")
    return contacto

async def get_contacto_by_rut(db: AsyncSession, tenant_id: int, rut: str) -> Optional[models.Contacto]:
    query = (
        select(models.Contacto)
        .options(*CONTACTO_OPTIONS)
        .filter(models.Contacto.tenant_id == tenant_id, models.Contacto.rut == normalize_rut(rut))
    )
    return (await db.execute(query)).scalars().first()

async def get_contactos(db: AsyncSession, tenant_id: int, page: int = 1, limit: int = 10, **filters):
    return await paginate(
        db, models.Contacto, _conditions(tenant_id, **filters), page, limit,
        order_by=(models.Contacto.activo.desc(), models.Contacto.nombre.asc()),
        options=CONTACTO_OPTIONS
    )

async def get_contactos_by_entidad(db: AsyncSession, tenant_id: int, entidad_id: int) -> List[models.Contacto]:
    """Contactos activos de una entidad."""
    query = (
        select(models.Contacto)
        .options(*CONTACTO_OPTIONS)
        .filter(*_conditions(tenant_id, activo=True, entidad_id=entidad_id))
        .order_by(models.Contacto.nombre.asc())
    )
    return (await db.execute(query)).scalars().all()


# --- ESCRITURA ---
async def create_contacto(db: AsyncSession, tenant_id: int, data: schemas.ContactoCreate) -> models.Contacto:
    rut = normalize_rut(data.rut)

    # 1. Validaciones antes de escribir
    if await get_contacto_by_rut(db, tenant_id, rut):
        raise ConflictError(f"Ya existe un contacto con el RUT {rut}")
    await ensure_comuna(db, data.comuna_id)
    await _ensure_entidad(db, tenant_id, data.entidad_id)

    # 2. Alta
    contacto = models.Contacto(
        tenant_id=tenant_id,
        activo=True,
        **{**data.model_dump(), "rut": rut}
    )
    db.add(contacto)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Ya existe un contacto con el RUT {rut}")

    logger.info(f"📇 Contacto creado: {rut} (tenant {tenant_id})")
    return await get_contacto(db, tenant_id, contacto.id)

async def update_contacto(db: AsyncSession, tenant_id: int, contacto_id: int, data: schemas.ContactoUpdate) -> models.Contacto:
    contacto = await get_contacto(db, tenant_id, contacto_id)
    update_data = data.model_dump(exclude_unset=True)

    # Columnas obligatorias: un null explícito no las borra
    for key in ("nombre", "rut", "es_persona", "comuna_id", "entidad_id"):
        if key in update_data and update_data[key] is None:
            update_data.pop(key)

    if "rut" in update_data:
        update_data["rut"] = normalize_rut(update_data["rut"])
        if update_data["rut"] != contacto.rut and await get_contacto_by_rut(db, tenant_id, update_data["rut"]):
            raise ConflictError(f"Ya existe otro contacto con el RUT {update_data['rut']}")
    if "comuna_id" in update_data:
        await ensure_comuna(db, update_data["comuna_id"])
    if "entidad_id" in update_data:
        await _ensure_entidad(db, tenant_id, update_data["entidad_id"])

    try:
        for key, value in update_data.items():
            setattr(contacto, key, value)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Ya existe otro contacto con ese RUT")

    return await get_contacto(db, tenant_id, contacto_id)

async def set_contacto_active(db: AsyncSession, tenant_id: int, contacto_id: int, activo: bool) -> models.Contacto:
    """Soft delete (activo=False) o reactivación."""
    contacto = await get_contacto(db, tenant_id, contacto_id)
    contacto.activo = activo
    await db.commit()
    logger.info(f"Contacto {contacto_id} {'activado' if activo else 'desactivado'} (tenant {tenant_id})")
    return await get_contacto(db, tenant_id, contacto_id)
