from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
import logging

from logistica_common.errors import NotFoundError, ConflictError
from logistica_common.rut import normalize_rut
from .. import models, schemas

logger = logging.getLogger("logistica.tenants")


# --- LECTURA ---
async def get_tenant(db: AsyncSession, tenant_id: int) -> Optional[models.Tenant]:
    query = select(models.Tenant).filter(models.Tenant.id == tenant_id)
    result = await db.execute(query)
    return result.scalars().first()

async def get_tenant_or_404(db: AsyncSession, tenant_id: int) -> models.Tenant:
    tenant = await get_tenant(db, tenant_id)
    if not tenant:
        raise NotFoundError("Tenant no encontrado")
    return tenant

async def get_tenant_by_rut(db: AsyncSession, rut: str) -> Optional[models.Tenant]:
    """El RUT se compara siempre normalizado (sin puntos)."""
    query = select(models.Tenant).filter(models.Tenant.rut == normalize_rut(rut))
    result = await db.execute(query)
    return result.scalars().first()

async def get_tenants(db: AsyncSession, activo: Optional[bool] = None) -> List[models.Tenant]:
    query = select(models.Tenant)
    if activo is not None:
        query = query.filter(models.Tenant.activo == activo)
    result = await db.execute(query.order_by(models.Tenant.nombre.asc()))
    return result.scalars().all()

async def count_active_users(db: AsyncSession, tenant_id: int) -> int:
    query = select(func.count(models.Usuario.id)).filter(
        models.Usuario.tenant_id == tenant_id,
        models.Usuario.activo == True
    )
    return (await db.execute(query)).scalar() or 0


# --- ESCRITURA ---
def build_tenant(data: schemas.TenantCreate) -> models.Tenant:
    return models.Tenant(
        nombre=data.nombre,
        rut=normalize_rut(data.rut),
        contacto=data.contacto,
        tipo_tenant=data.tipo_tenant,
        logo_url=data.logo_url,
        activo=True
    )

async def ensure_rut_available(db: AsyncSession, rut: str, exclude_id: Optional[int] = None):
    existing = await get_tenant_by_rut(db, rut)
    if existing and existing.id != exclude_id:
        raise ConflictError("Ya existe un tenant con este RUT")

async def update_tenant(db: AsyncSession, tenant_id: int, data: schemas.TenantUpdate) -> models.Tenant:
    tenant = await get_tenant_or_404(db, tenant_id)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("rut") is None:
        update_data.pop("rut", None)
    else:
        update_data["rut"] = normalize_rut(update_data["rut"])
        await ensure_rut_available(db, update_data["rut"], exclude_id=tenant.id)

    for key, value in update_data.items():
        if value is not None or key == "logo_url":
            setattr(tenant, key, value)

    await db.commit()
    await db.refresh(tenant)
    return tenant

async def set_tenant_active(db: AsyncSession, tenant_id: int, activo: bool) -> models.Tenant:
    """Soft delete / reactivación. No se desactiva un tenant con usuarios activos."""
    tenant = await get_tenant_or_404(db, tenant_id)

    if not activo:
        active_users = await count_active_users(db, tenant_id)
        if active_users > 0:
            raise ConflictError(
                f"No se puede desactivar el tenant: tiene {active_users} usuario(s) activo(s)"
            )

    tenant.activo = activo
    await db.commit()
    await db.refresh(tenant)
    logger.info(f"Tenant {tenant.id} {'activado' if activo else 'desactivado'}")
    return tenant

async def get_tenant_stats(db: AsyncSession, tenant_id: int) -> dict:
    tenant = await get_tenant_or_404(db, tenant_id)

    def _count(model, *conditions):
        return select(func.count(model.id)).filter(model.tenant_id == tenant_id, *conditions)

    total_usuarios = (await db.execute(_count(models.Usuario))).scalar() or 0
    usuarios_activos = (await db.execute(_count(models.Usuario, models.Usuario.activo == True))).scalar() or 0
    total_perfiles = (await db.execute(_count(models.Perfil))).scalar() or 0
    total_roles = (await db.execute(_count(models.Rol))).scalar() or 0

    return {
        "tenant": tenant,
        "total_usuarios": total_usuarios,
        "usuarios_activos": usuarios_activos,
        "total_perfiles": total_perfiles,
        "total_roles": total_roles,
    }
