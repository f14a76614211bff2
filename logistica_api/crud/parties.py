"""
Clientes, carriers y embarcadores.

Las tres son especializaciones de Entidad con el mismo ciclo de vida: al
crearlas se reutiliza (y refresca) la Entidad del tenant con el mismo RUT o
se crea una nueva, todo en una única transacción.
"""
from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
import logging

from logistica_common.errors import NotFoundError, ConflictError
from logistica_common.rut import normalize_rut
from .. import models, schemas
from .common import paginate, search_filter, ensure_comuna

logger = logging.getLogger("logistica.parties")

CONTACT_FIELDS = ("contacto", "email", "telefono", "direccion", "comuna_id")


def identity_fields(identidad) -> Dict[str, Any]:
    """Persona -> nombre; organización -> razón social (también como nombre a mostrar)."""
    if isinstance(identidad, schemas.Persona):
        return {"es_persona": True, "nombre": identidad.nombre, "razon_social": None}
    return {"es_persona": False, "nombre": identidad.razon_social, "razon_social": identidad.razon_social}


def party_conditions(model, tenant_id: int, search: Optional[str] = None,
                     activo: Optional[bool] = None, es_persona: Optional[bool] = None):
    conditions = [model.tenant_id == tenant_id]
    if activo is not None:
        conditions.append(model.activo == activo)
    if es_persona is not None:
        conditions.append(model.es_persona == es_persona)

    text_filter = search_filter(
        search, model.nombre, model.razon_social, model.contacto, model.email,
        rut_columns=(model.rut,)
    )
    if text_filter is not None:
        conditions.append(text_filter)
    return conditions


async def find_entidad_by_rut(db: AsyncSession, tenant_id: int, rut: str) -> Optional[models.Entidad]:
    query = select(models.Entidad).filter(
        models.Entidad.tenant_id == tenant_id,
        models.Entidad.rut == normalize_rut(rut)
    )
    return (await db.execute(query)).scalars().first()


class PartyCrud:
    """Operaciones de una especialización concreta (Cliente, Carrier o Embarcador)."""

    def __init__(self, model, tipo_entidad: models.TipoEntidad, label: str):
        self.model = model
        self.tipo_entidad = tipo_entidad
        self.label = label

    # --- LECTURA ---
    async def get(self, db: AsyncSession, tenant_id: int, party_id: int):
        query = select(self.model).filter(
            self.model.id == party_id,
            self.model.tenant_id == tenant_id
        )
        party = (await db.execute(query)).scalars().first()
        if not party:
            raise NotFoundError(f"{self.label} no encontrado")
        return party

    async def get_by_rut(self, db: AsyncSession, tenant_id: int, rut: str):
        query = select(self.model).filter(
            self.model.tenant_id == tenant_id,
            self.model.rut == normalize_rut(rut)
        )
        return (await db.execute(query)).scalars().first()

    async def list(
        self,
        db: AsyncSession,
        tenant_id: int,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        activo: Optional[bool] = None,
        es_persona: Optional[bool] = None
    ):
        conditions = party_conditions(self.model, tenant_id, search, activo, es_persona)
        return await paginate(
            db, self.model, conditions, page, limit,
            order_by=(self.model.activo.desc(), self.model.nombre.asc())
        )

    async def stats(self, db: AsyncSession, tenant_id: int) -> Dict[str, int]:
        def _count(*conditions):
            return select(func.count(self.model.id)).filter(self.model.tenant_id == tenant_id, *conditions)

        total = (await db.execute(_count())).scalar() or 0
        activos = (await db.execute(_count(self.model.activo == True))).scalar() or 0
        personas = (await db.execute(_count(self.model.es_persona == True))).scalar() or 0
        return {
            "total": total,
            "activos": activos,
            "inactivos": total - activos,
            "personas": personas,
            "organizaciones": total - personas,
        }

    # --- ESCRITURA ---
    async def create(self, db: AsyncSession, tenant_id: int, data: schemas.PartyCreate):
        rut = normalize_rut(data.rut)

        # 1. Unicidad de la especialización dentro del tenant
        if await self.get_by_rut(db, tenant_id, rut):
            raise ConflictError(f"Ya existe un {self.label.lower()} con el RUT {rut}")
        await ensure_comuna(db, data.comuna_id)

        fields = {**identity_fields(data.identidad), "rut": rut}
        contact = {key: getattr(data, key) for key in CONTACT_FIELDS}

        try:
            # 2. Entidad: reutilizar la existente o crearla
            entidad = await find_entidad_by_rut(db, tenant_id, rut)
            if entidad:
                logger.info(f"♻️ Reutilizando entidad {entidad.id} para nuevo {self.label.lower()} (tenant {tenant_id})")
                for key, value in fields.items():
                    setattr(entidad, key, value)
                for key, value in contact.items():
                    if value is not None:
                        setattr(entidad, key, value)
                entidad.tipo_entidad = self.tipo_entidad
                entidad.activo = True
            else:
                entidad = models.Entidad(
                    tenant_id=tenant_id,
                    tipo_entidad=self.tipo_entidad,
                    activo=True,
                    **fields,
                    **contact
                )
                db.add(entidad)
            await db.flush()

            # 3. Especialización enlazada a la entidad
            party = self.model(
                tenant_id=tenant_id,
                entidad_id=entidad.id,
                activo=True,
                **fields,
                **contact
            )
            db.add(party)
            await db.commit()
        except IntegrityError:
            # Otra petición insertó el mismo RUT entre la verificación y el commit
            await db.rollback()
            raise ConflictError(f"Ya existe un {self.label.lower()} con el RUT {rut}")
        except Exception:
            await db.rollback()
            raise

        await db.refresh(party)
        return party

    async def _siblings(self, db: AsyncSession, tenant_id: int, party) -> List[Any]:
        """Otras especializaciones (cliente, carrier, embarcador) de la misma Entidad."""
        siblings = []
        for model in PARTY_MODELS:
            query = select(model).filter(
                model.tenant_id == tenant_id,
                model.entidad_id == party.entidad_id
            )
            if model is self.model:
                query = query.filter(model.id != party.id)
            siblings.extend((await db.execute(query)).scalars().all())
        return siblings

    async def update(self, db: AsyncSession, tenant_id: int, party_id: int, data: schemas.PartyUpdate):
        party = await self.get(db, tenant_id, party_id)
        update_data = data.model_dump(exclude_unset=True, exclude={"identidad"})

        if data.identidad is not None:
            update_data.update(identity_fields(data.identidad))

        siblings = []
        if update_data.get("rut") is None:
            update_data.pop("rut", None)
        else:
            update_data["rut"] = normalize_rut(update_data["rut"])
            if update_data["rut"] != party.rut:
                if await self.get_by_rut(db, tenant_id, update_data["rut"]):
                    raise ConflictError(f"Ya existe un {self.label.lower()} con el RUT {update_data['rut']}")
                other = await find_entidad_by_rut(db, tenant_id, update_data["rut"])
                if other and other.id != party.entidad_id:
                    raise ConflictError("El RUT pertenece a otra entidad del tenant")
                # El RUT identifica a la Entidad: toda especialización que la comparte lo sigue
                siblings = await self._siblings(db, tenant_id, party)

        if "comuna_id" in update_data:
            await ensure_comuna(db, update_data["comuna_id"])

        entidad_query = select(models.Entidad).filter(
            models.Entidad.id == party.entidad_id,
            models.Entidad.tenant_id == tenant_id
        )
        entidad = (await db.execute(entidad_query)).scalars().first()

        try:
            for key, value in update_data.items():
                setattr(party, key, value)
                if entidad:
                    setattr(entidad, key, value)
            for sibling in siblings:
                sibling.rut = update_data["rut"]
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(f"Ya existe un {self.label.lower()} con ese RUT")
        except Exception:
            await db.rollback()
            raise

        await db.refresh(party)
        return party

    async def set_active(self, db: AsyncSession, tenant_id: int, party_id: int, activo: bool):
        """Soft delete (activo=False) o reactivación; la entidad base acompaña el cambio."""
        party = await self.get(db, tenant_id, party_id)
        party.activo = activo

        entidad_query = select(models.Entidad).filter(
            models.Entidad.id == party.entidad_id,
            models.Entidad.tenant_id == tenant_id
        )
        entidad = (await db.execute(entidad_query)).scalars().first()
        if entidad:
            entidad.activo = activo

        await db.commit()
        await db.refresh(party)
        logger.info(f"{self.label} {party.id} {'activado' if activo else 'desactivado'} (tenant {tenant_id})")
        return party


clientes = PartyCrud(models.Cliente, models.TipoEntidad.CLIENTE, "Cliente")
carriers = PartyCrud(models.Carrier, models.TipoEntidad.CARRIER, "Carrier")
embarcadores = PartyCrud(models.Embarcador, models.TipoEntidad.EMBARCADOR, "Embarcador")

PARTY_MODELS = (models.Cliente, models.Carrier, models.Embarcador)
