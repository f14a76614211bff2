from typing import Optional, Dict, Any
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import IntegrityError
from tenacity import retry, stop_after_attempt, retry_if_exception_type
import logging

from logistica_common.errors import NotFoundError, ConflictError, BadRequestError
from .. import models, schemas
from .common import paginate, search_filter, ensure_owned
from .addresses import register_address_use

logger = logging.getLogger("logistica.orders")

ORDER_CODE_PREFIX = "ORD"
MAX_CODE_ATTEMPTS = 5

# Flujo lineal; CANCELADA alcanzable desde cualquier estado no terminal
TRANSICIONES = {
    models.OrdenEstado.PENDIENTE: {models.OrdenEstado.PLANIFICADA, models.OrdenEstado.CANCELADA},
    models.OrdenEstado.PLANIFICADA: {models.OrdenEstado.EN_TRANSPORTE, models.OrdenEstado.CANCELADA},
    models.OrdenEstado.EN_TRANSPORTE: {models.OrdenEstado.ENTREGADA, models.OrdenEstado.CANCELADA},
    models.OrdenEstado.ENTREGADA: set(),
    models.OrdenEstado.CANCELADA: set(),
}

# (campo, modelo, mensaje) de cada referencia que debe pertenecer al tenant
REFERENCIAS = (
    ("cliente_id", models.Cliente, "El cliente indicado no existe"),
    ("remitente_id", models.Entidad, "El remitente indicado no existe"),
    ("destinatario_id", models.Entidad, "El destinatario indicado no existe"),
    ("direccion_origen_id", models.Direccion, "La dirección de origen no existe"),
    ("direccion_destino_id", models.Direccion, "La dirección de destino no existe"),
    ("tipo_carga_id", models.TipoCarga, "El tipo de carga indicado no existe"),
    ("tipo_servicio_id", models.TipoServicio, "El tipo de servicio indicado no existe"),
    ("equipo_id", models.Equipo, "El equipo indicado no existe"),
)

ORDER_RELATIONS = (
    selectinload(models.Orden.cliente),
    selectinload(models.Orden.remitente),
    selectinload(models.Orden.destinatario),
    selectinload(models.Orden.direccion_origen),
    selectinload(models.Orden.direccion_destino),
    selectinload(models.Orden.tipo_carga),
    selectinload(models.Orden.tipo_servicio),
    selectinload(models.Orden.equipo),
)


class OrderCodeCollision(Exception):
    """El código generado ya fue tomado por otra petición concurrente."""


# --- LECTURA ---
async def get_order(db: AsyncSession, tenant_id: int, order_id: int) -> models.Orden:
    query = (
        select(models.Orden)
        .options(*ORDER_RELATIONS)
        .filter(models.Orden.id == order_id, models.Orden.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    order = (await db.execute(query)).scalars().first()
    if not order:
        raise NotFoundError("Orden no encontrada")
    return order

async def get_orders(
    db: AsyncSession,
    tenant_id: int,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    estado: Optional[models.OrdenEstado] = None,
    cliente_id: Optional[int] = None,
    fecha_desde: Optional[date] = None,
    fecha_hasta: Optional[date] = None
) -> Dict[str, Any]:
    conditions = [models.Orden.tenant_id == tenant_id]
    if estado is not None:
        conditions.append(models.Orden.estado == estado)
    if cliente_id is not None:
        conditions.append(models.Orden.cliente_id == cliente_id)
    if fecha_desde is not None:
        conditions.append(models.Orden.fecha >= fecha_desde)
    if fecha_hasta is not None:
        conditions.append(models.Orden.fecha <= fecha_hasta)

    text_filter = search_filter(search, models.Orden.codigo, models.Orden.numero_ot, models.Orden.observaciones)
    if text_filter is not None:
        conditions.append(text_filter)

    return await paginate(
        db, models.Orden, conditions, page, limit,
        order_by=(models.Orden.fecha.desc(), models.Orden.id.desc()),
        options=ORDER_RELATIONS
    )

async def next_order_code(db: AsyncSession, tenant_id: int, day: date) -> str:
    """
    Siguiente código ORD-YYYYMMDD-NNN del día para el tenant.

    Toma el mayor sufijo numérico existente con ese prefijo (solo del mismo
    tenant) y suma 1. Sufijos no numéricos se ignoran.
    """
    prefix = f"{ORDER_CODE_PREFIX}-{day:%Y%m%d}-"
    query = select(models.Orden.codigo).filter(
        models.Orden.tenant_id == tenant_id,
        models.Orden.codigo.like(f"{prefix}%")
    )
    codes = (await db.execute(query)).scalars().all()

    max_suffix = 0
    for code in codes:
        suffix = code[len(prefix):]
        if suffix.isdecimal():
            max_suffix = max(max_suffix, int(suffix))
    return f"{prefix}{max_suffix + 1:03d}"


# --- VALIDACIONES ---
async def verify_references(db: AsyncSession, tenant_id: int, values: Dict[str, Any]):
    """Toda FK enviada debe existir dentro del tenant; si no, InvalidReferenceError."""
    for field, model, message in REFERENCIAS:
        value = values.get(field)
        if value is not None:
            await ensure_owned(db, model, tenant_id, value, message)

async def _ensure_unique(db: AsyncSession, tenant_id: int, column, value: str, message: str,
                         exclude_id: Optional[int] = None):
    query = select(models.Orden.id).filter(models.Orden.tenant_id == tenant_id, column == value)
    if exclude_id is not None:
        query = query.filter(models.Orden.id != exclude_id)
    if (await db.execute(query)).scalar() is not None:
        raise ConflictError(message)

def validate_transition(actual: models.OrdenEstado, nuevo: models.OrdenEstado):
    if nuevo not in TRANSICIONES[actual]:
        raise BadRequestError(f"Transición de estado no permitida: {actual.value} -> {nuevo.value}")


# --- ESCRITURA ---
@retry(
    stop=stop_after_attempt(MAX_CODE_ATTEMPTS),
    retry=retry_if_exception_type(OrderCodeCollision),
    reraise=True
)
async def _insert_order(db: AsyncSession, tenant_id: int, values: Dict[str, Any],
                        codigo: Optional[str], day: date) -> int:
    await _ensure_unique(db, tenant_id, models.Orden.numero_ot, values["numero_ot"],
                         f"Ya existe una orden con la OT {values['numero_ot']}")

    generated = codigo is None
    if generated:
        codigo = await next_order_code(db, tenant_id, day)

    order = models.Orden(
        tenant_id=tenant_id,
        codigo=codigo,
        estado=models.OrdenEstado.PENDIENTE,
        **values
    )

    try:
        db.add(order)
        # El UPDATE hace autoflush: la orden se inserta aquí mismo
        await register_address_use(
            db, tenant_id, (values["direccion_origen_id"], values["direccion_destino_id"])
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        if generated:
            logger.warning(f"⚠️ Código {codigo} tomado por otra petición (tenant {tenant_id}), reintentando")
            raise OrderCodeCollision(codigo)
        raise ConflictError(f"Ya existe una orden con el código {codigo} o la misma OT")
    except Exception:
        await db.rollback()
        raise

    return order.id

async def create_order(db: AsyncSession, tenant_id: int, data: schemas.OrderCreate,
                       day: Optional[date] = None) -> models.Orden:
    values = data.model_dump(exclude={"codigo"})
    await verify_references(db, tenant_id, values)

    codigo = data.codigo.strip() if data.codigo else None
    if codigo:
        await _ensure_unique(db, tenant_id, models.Orden.codigo, codigo,
                             f"Ya existe una orden con el código {codigo}")

    try:
        order_id = await _insert_order(db, tenant_id, values, codigo or None, day or date.today())
    except OrderCodeCollision:
        raise ConflictError("No fue posible generar un código de orden único, intente nuevamente")

    logger.info(f"📦 Orden {order_id} creada (tenant {tenant_id})")
    return await get_order(db, tenant_id, order_id)

async def update_order(db: AsyncSession, tenant_id: int, order_id: int, data: schemas.OrderUpdate) -> models.Orden:
    order = await get_order(db, tenant_id, order_id)
    if not TRANSICIONES[order.estado]:
        raise BadRequestError(f"No se puede modificar una orden {order.estado.value.lower()}")

    update_data = data.model_dump(exclude_unset=True)
    nullable = {"fecha_entrega_estimada", "equipo_id", "observaciones", "peso_total_kg",
                "volumen_total_m3", "alto_cm", "largo_cm", "ancho_cm"}
    update_data = {k: v for k, v in update_data.items() if v is not None or k in nullable}

    await verify_references(db, tenant_id, update_data)
    if "numero_ot" in update_data and update_data["numero_ot"] != order.numero_ot:
        await _ensure_unique(db, tenant_id, models.Orden.numero_ot, update_data["numero_ot"],
                             f"Ya existe una orden con la OT {update_data['numero_ot']}",
                             exclude_id=order.id)

    for key, value in update_data.items():
        setattr(order, key, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Ya existe una orden con la misma OT")

    return await get_order(db, tenant_id, order_id)

async def change_status(db: AsyncSession, tenant_id: int, order_id: int, estado: models.OrdenEstado) -> models.Orden:
    order = await get_order(db, tenant_id, order_id)
    validate_transition(order.estado, estado)

    previous = order.estado
    order.estado = estado
    await db.commit()
    logger.info(f"Orden {order.codigo}: {previous.value} -> {estado.value} (tenant {tenant_id})")
    return await get_order(db, tenant_id, order_id)

async def cancel_order(db: AsyncSession, tenant_id: int, order_id: int) -> models.Orden:
    return await change_status(db, tenant_id, order_id, models.OrdenEstado.CANCELADA)
