from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
import logging

from logistica_common import security
from logistica_common.errors import NotFoundError, ConflictError, InvalidReferenceError
from logistica_common.rut import normalize_rut
from .. import models, schemas
from .common import paginate, search_filter, ensure_owned

logger = logging.getLogger("logistica.users")


# --- LECTURA ---
async def get_user_by_email(db: AsyncSession, email: str) -> Optional[models.Usuario]:
    """Búsqueda global (login). El correo es único en todo el sistema."""
    query = (
        select(models.Usuario)
        .options(selectinload(models.Usuario.perfil))
        .filter(models.Usuario.correo == email.strip().lower())
    )
    result = await db.execute(query)
    return result.scalars().first()

async def find_user(db: AsyncSession, tenant_id: int, user_id: int) -> Optional[models.Usuario]:
    query = (
        select(models.Usuario)
        .options(selectinload(models.Usuario.perfil))
        .filter(models.Usuario.id == user_id, models.Usuario.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    return result.scalars().first()

async def get_user(db: AsyncSession, tenant_id: int, user_id: int) -> models.Usuario:
    user = await find_user(db, tenant_id, user_id)
    if not user:
        raise NotFoundError("Usuario no encontrado")
    return user

async def get_users(
    db: AsyncSession,
    tenant_id: int,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    activo: Optional[bool] = None,
    perfil_id: Optional[int] = None
):
    conditions = [models.Usuario.tenant_id == tenant_id]
    if activo is not None:
        conditions.append(models.Usuario.activo == activo)
    if perfil_id is not None:
        conditions.append(models.Usuario.perfil_id == perfil_id)

    text_filter = search_filter(
        search, models.Usuario.nombre, models.Usuario.correo, rut_columns=(models.Usuario.rut,)
    )
    if text_filter is not None:
        conditions.append(text_filter)

    return await paginate(
        db, models.Usuario, conditions, page, limit,
        order_by=(models.Usuario.nombre.asc(),),
        options=(selectinload(models.Usuario.perfil),)
    )


# --- ESCRITURA ---
async def _ensure_email_available(db: AsyncSession, correo: str, exclude_id: Optional[int] = None):
    existing = await get_user_by_email(db, correo)
    if existing and existing.id != exclude_id:
        raise ConflictError("El correo ya está registrado")

async def _ensure_profile(db: AsyncSession, tenant_id: int, perfil_id: int):
    # Perfil del mismo tenant y activo
    await ensure_owned(db, models.Perfil, tenant_id, perfil_id, "El perfil indicado no existe")
    query = select(models.Perfil.activo).filter(models.Perfil.id == perfil_id)
    if not (await db.execute(query)).scalar():
        raise InvalidReferenceError("El perfil indicado está inactivo")

async def create_user(db: AsyncSession, tenant_id: int, data: schemas.UserCreate) -> models.Usuario:
    await _ensure_email_available(db, data.correo)
    await _ensure_profile(db, tenant_id, data.perfil_id)

    user = models.Usuario(
        tenant_id=tenant_id,
        perfil_id=data.perfil_id,
        correo=data.correo.lower(),
        nombre=data.nombre,
        rut=normalize_rut(data.rut),
        telefono=data.telefono,
        hashed_password=security.get_password_hash(data.password) if data.password else None,
        # Sin contraseña el usuario queda pendiente de activar su acceso
        estado=models.EstadoUsuario.ACTIVO if data.password else models.EstadoUsuario.PENDIENTE,
        activo=True
    )
    db.add(user)
    await db.commit()
    logger.info(f"👤 Usuario creado: {user.correo} (tenant {tenant_id})")
    return await get_user(db, tenant_id, user.id)

async def update_user(db: AsyncSession, tenant_id: int, user_id: int, data: schemas.UserUpdate) -> models.Usuario:
    user = await get_user(db, tenant_id, user_id)
    update_data = data.model_dump(exclude_unset=True)

    if update_data.get("correo"):
        update_data["correo"] = update_data["correo"].lower()
        await _ensure_email_available(db, update_data["correo"], exclude_id=user.id)
    if update_data.get("perfil_id") is not None:
        await _ensure_profile(db, tenant_id, update_data["perfil_id"])
    if "rut" in update_data:
        update_data["rut"] = normalize_rut(update_data["rut"])

    password = update_data.pop("password", None)
    if password:
        user.hashed_password = security.get_password_hash(password)
        if user.estado == models.EstadoUsuario.PENDIENTE:
            user.estado = models.EstadoUsuario.ACTIVO

    for key, value in update_data.items():
        if value is not None or key in ("rut", "telefono"):
            setattr(user, key, value)

    await db.commit()
    return await get_user(db, tenant_id, user.id)

async def set_user_active(db: AsyncSession, tenant_id: int, user_id: int, activo: bool) -> models.Usuario:
    user = await get_user(db, tenant_id, user_id)
    user.activo = activo
    user.estado = models.EstadoUsuario.ACTIVO if activo else models.EstadoUsuario.INACTIVO
    await db.commit()
    logger.info(f"Usuario {user.id} {'activado' if activo else 'desactivado'} (tenant {tenant_id})")
    return await get_user(db, tenant_id, user.id)
