from typing import Optional, Dict, Any, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func, or_

from logistica_common.errors import BadRequestError, InvalidReferenceError
from .. import models

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def compute_offset(page: int, limit: int) -> int:
    """Valida la paginación (page >= 1, 1 <= limit <= 100) y devuelve el offset."""
    if page < 1:
        raise BadRequestError("El parámetro page debe ser mayor o igual a 1")
    if limit < 1 or limit > MAX_LIMIT:
        raise BadRequestError(f"El parámetro limit debe estar entre 1 y {MAX_LIMIT}")
    return (page - 1) * limit


def like_pattern(term: str) -> str:
    """'%term%' con los comodines de LIKE escapados (se usa con escape='\\')."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search_filter(search: Optional[str], *columns, rut_columns: Sequence = ()):
    """
    OR de ILIKE sobre las columnas indicadas. None si no hay término.

    Los RUT se guardan sin puntos, así que contra `rut_columns` se busca el
    término sin puntos ("12.345" encuentra "12345678-5").
    """
    term = search.strip() if search else ""
    if not term:
        return None
    search_term = like_pattern(term)
    clauses = [column.ilike(search_term, escape="\\") for column in columns]

    rut_term = term.replace(".", "")
    if rut_term:
        clauses.extend(column.ilike(like_pattern(rut_term), escape="\\") for column in rut_columns)
    return or_(*clauses)


async def paginate(
    db: AsyncSession,
    model,
    conditions: Sequence,
    page: int,
    limit: int,
    order_by: Sequence = (),
    options: Sequence = (),
) -> Dict[str, Any]:
    """
    Página de resultados + total en una sola consulta.

    El total sale de `count(*) OVER ()` sobre las mismas condiciones, así
    filas y conteo corresponden a la misma foto de la tabla. Solo si la
    página viene vacía (page fuera de rango) se hace un conteo aparte.

    Returns:
        Dict: {'items', 'total', 'page', 'limit', 'total_pages'}
    """
    offset = compute_offset(page, limit)

    query = (
        select(model, func.count().over().label("total_count"))
        .options(*options)
        .filter(*conditions)
        .order_by(*order_by)
        .offset(offset)
        .limit(limit)
    )
    rows = (await db.execute(query)).all()

    if rows:
        total = rows[0][1]
    elif offset == 0:
        total = 0
    else:
        count_query = select(func.count(model.id)).filter(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

    total_pages = (total + limit - 1) // limit if limit > 0 else 0

    return {
        "items": [row[0] for row in rows],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
    }


async def ensure_owned(db: AsyncSession, model, tenant_id: int, record_id: int, message: str):
    """Lanza InvalidReferenceError si el id no existe dentro del tenant."""
    query = select(model.id).filter(model.id == record_id, model.tenant_id == tenant_id)
    if (await db.execute(query)).scalar() is None:
        raise InvalidReferenceError(message)


async def ensure_comuna(db: AsyncSession, comuna_id: Optional[int]):
    # Las comunas son un catálogo global, no pertenecen a ningún tenant
    if comuna_id is None:
        return
    query = select(models.Comuna.id).filter(models.Comuna.id == comuna_id)
    if (await db.execute(query)).scalar() is None:
        raise InvalidReferenceError("La comuna indicada no existe")
