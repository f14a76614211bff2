import asyncio
import os
from sqlalchemy.future import select

from logistica_api import models, schemas
from logistica_api.database import AsyncSessionLocal, db_manager
from logistica_api.crud.tenants import get_tenant_by_rut
from logistica_api.services.provisioning import provision_tenant

# ==============================================================================
#  REGIONES Y COMUNAS DE CHILE (capitales y comunas principales)
# ==============================================================================
REGIONES = [
    {"codigo": "XV", "nombre": "Arica y Parinacota", "ordinal": 1, "comunas": ["Arica", "Putre"]},
    {"codigo": "I", "nombre": "Tarapacá", "ordinal": 2, "comunas": ["Iquique", "Alto Hospicio", "Pozo Almonte"]},
    {"codigo": "II", "nombre": "Antofagasta", "ordinal": 3, "comunas": ["Antofagasta", "Calama", "Mejillones", "Tocopilla"]},
    {"codigo": "III", "nombre": "Atacama", "ordinal": 4, "comunas": ["Copiapó", "Vallenar", "Caldera"]},
    {"codigo": "IV", "nombre": "Coquimbo", "ordinal": 5, "comunas": ["La Serena", "Coquimbo", "Ovalle"]},
    {"codigo": "V", "nombre": "Valparaíso", "ordinal": 6, "comunas": ["Valparaíso", "Viña del Mar", "San Antonio", "Quillota", "Los Andes"]},
    {"codigo": "RM", "nombre": "Metropolitana de Santiago", "ordinal": 7, "comunas": [
        "Santiago", "Providencia", "Las Condes", "Ñuñoa", "Maipú", "Puente Alto", "Quilicura",
        "Pudahuel", "San Bernardo", "Lampa", "Colina", "Estación Central"
    ]},
    {"codigo": "VI", "nombre": "Libertador General Bernardo O'Higgins", "ordinal": 8, "comunas": ["Rancagua", "San Fernando", "Rengo"]},
    {"codigo": "VII", "nombre": "Maule", "ordinal": 9, "comunas": ["Talca", "Curicó", "Linares"]},
    {"codigo": "XVI", "nombre": "Ñuble", "ordinal": 10, "comunas": ["Chillán", "San Carlos"]},
    {"codigo": "VIII", "nombre": "Biobío", "ordinal": 11, "comunas": ["Concepción", "Talcahuano", "Los Ángeles", "Coronel"]},
    {"codigo": "IX", "nombre": "La Araucanía", "ordinal": 12, "comunas": ["Temuco", "Angol", "Villarrica"]},
    {"codigo": "XIV", "nombre": "Los Ríos", "ordinal": 13, "comunas": ["Valdivia", "La Unión"]},
    {"codigo": "X", "nombre": "Los Lagos", "ordinal": 14, "comunas": ["Puerto Montt", "Osorno", "Castro"]},
    {"codigo": "XI", "nombre": "Aysén del General Carlos Ibáñez del Campo", "ordinal": 15, "comunas": ["Coyhaique", "Aysén"]},
    {"codigo": "XII", "nombre": "Magallanes y de la Antártica Chilena", "ordinal": 16, "comunas": ["Punta Arenas", "Puerto Natales"]},
]

# Tenant administrador inicial
ADMIN_TENANT = {
    "nombre": os.getenv("ADMIN_TENANT_NAME", "Logística Central"),
    "rut": os.getenv("ADMIN_TENANT_RUT", "76.354.771-K"),
    "contacto": os.getenv("ADMIN_TENANT_CONTACT", "Administración"),
}
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@logistica.cl")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")


async def seed_geografia(db) -> int:
    """Inserta regiones y comunas que falten. Idempotente."""
    inserted = 0
    for data in REGIONES:
        region = (await db.execute(
            select(models.Region).filter(models.Region.codigo == data["codigo"])
        )).scalars().first()
        if not region:
            region = models.Region(codigo=data["codigo"], nombre=data["nombre"], ordinal=data["ordinal"])
            db.add(region)
            await db.flush()

        existing = set((await db.execute(
            select(models.Comuna.nombre).filter(models.Comuna.region_id == region.id)
        )).scalars().all())
        for nombre in data["comunas"]:
            if nombre not in existing:
                db.add(models.Comuna(nombre=nombre, region_id=region.id))
                inserted += 1

    await db.commit()
    return inserted


async def seed():
    await db_manager.create_all()

    async with AsyncSessionLocal() as db:
        try:
            inserted = await seed_geografia(db)
            print(f"✅ [SEED] Geografía: {inserted} comuna(s) nuevas")

            if await get_tenant_by_rut(db, ADMIN_TENANT["rut"]):
                print("ℹ️ [SEED] El tenant administrador ya existe, se omite")
                return

            data = schemas.TenantCreate(
                **ADMIN_TENANT,
                tipo_tenant=models.TipoTenant.ADMIN,
                administrador={"correo": ADMIN_EMAIL, "nombre": "Administrador", "password": ADMIN_PASSWORD}
            )
            result = await provision_tenant(db, data)
            print(f"✅ [SEED] Tenant administrador {result.tenant.nombre} creado (usuario {ADMIN_EMAIL})")
        except Exception as e:
            print(f"❌ [SEED] Error crítico: {e}")
            await db.rollback()
            raise

    await db_manager.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
