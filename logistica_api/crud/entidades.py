from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from logistica_common.errors import NotFoundError, ConflictError
from logistica_common.rut import normalize_rut
from .. import models, schemas
from .common import paginate, ensure_comuna
from .parties import identity_fields, party_conditions, find_entidad_by_rut


async def get_entidad(db: AsyncSession, tenant_id: int, entidad_id: int) -> models.Entidad:
    query = select(models.Entidad).filter(
        models.Entidad.id == entidad_id,
        models.Entidad.tenant_id == tenant_id
    )
    entidad = (await db.execute(query)).scalars().first()
    if not entidad:
        raise NotFoundError("Entidad no encontrada")
    return entidad

async def get_entidad_by_rut(db: AsyncSession, tenant_id: int, rut: str) -> models.Entidad:
    entidad = await find_entidad_by_rut(db, tenant_id, rut)
    if not entidad:
        raise NotFoundError("Entidad no encontrada")
    return entidad

async def get_entidades(
    db: AsyncSession,
    tenant_id: int,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    activo: Optional[bool] = None,
    es_persona: Optional[bool] = None,
    tipo_entidad: Optional[models.TipoEntidad] = None
):
    conditions = party_conditions(models.Entidad, tenant_id, search, activo, es_persona)
    if tipo_entidad is not None:
        conditions.append(models.Entidad.tipo_entidad == tipo_entidad)

    return await paginate(
        db, models.Entidad, conditions, page, limit,
        order_by=(models.Entidad.nombre.asc(),)
    )

async def create_entidad(db: AsyncSession, tenant_id: int, data: schemas.EntidadCreate) -> models.Entidad:
    """Alta de una parte suelta (remitente, destinatario...). El RUT es único por tenant."""
    rut = normalize_rut(data.rut)
    if await find_entidad_by_rut(db, tenant_id, rut):
        raise ConflictError(f"Ya existe una entidad con el RUT {rut}")
    await ensure_comuna(db, data.comuna_id)

    entidad = models.Entidad(
        tenant_id=tenant_id,
        tipo_entidad=data.tipo_entidad,
        rut=rut,
        contacto=data.contacto,
        email=data.email,
        telefono=data.telefono,
        direccion=data.direccion,
        comuna_id=data.comuna_id,
        activo=True,
        **identity_fields(data.identidad)
    )
    db.add(entidad)
    await db.commit()
    await db.refresh(entidad)
    return entidad
