import os

# Configuración de entorno antes de importar la app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENV_MODE", "test")
os.environ.setdefault("JWT_SECRET_KEY", "clave-de-pruebas")

from datetime import date
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from logistica_common.database import Base
from logistica_common.security import create_access_token
from logistica_api import models, schemas
from logistica_api.database import get_db
from logistica_api.main import app
from logistica_api.crud import addresses as crud_addresses
from logistica_api.crud import catalogs as crud_catalogs
from logistica_api.crud import entidades as crud_entidades
from logistica_api.crud.parties import clientes
from logistica_api.services.provisioning import provision_tenant


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Base SQLite en archivo por test: cada sesión usa su propia conexión."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'logistica.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(tenant_id, user_id=None, profile_id=None, sub="tester@logistica.cl", **extra):
    claims = {"sub": sub, "tenant_id": tenant_id, **extra}
    if user_id is not None:
        claims["user_id"] = user_id
    if profile_id is not None:
        claims["profile_id"] = profile_id
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


async def provision(db, nombre, rut, correo, tipo=models.TipoTenant.SHIPPER, password=None):
    """Tenant con roles completos, perfil Administrador y un usuario administrador."""
    result = await provision_tenant(db, schemas.TenantCreate(
        nombre=nombre,
        rut=rut,
        contacto="Contacto Pruebas",
        tipo_tenant=tipo,
        administrador={"correo": correo, "nombre": f"Admin {nombre}", "password": password},
    ))
    return SimpleNamespace(
        tenant_id=result.tenant.id,
        profile_id=result.perfil.id,
        user_id=result.usuario.id,
        correo=result.usuario.correo,
        headers=auth_headers(result.tenant.id, result.usuario.id, result.perfil.id, sub=result.usuario.correo),
    )


@pytest_asyncio.fixture
async def admin_tenant(db):
    return await provision(db, "Logística Central", "76354771-K", "admin@logistica.cl", tipo=models.TipoTenant.ADMIN)


@pytest_asyncio.fixture
async def tenant_a(db):
    return await provision(db, "Transportes Andes", "11111111-1", "ana@andes.cl")


@pytest_asyncio.fixture
async def tenant_b(db):
    return await provision(db, "Cargas Biobío", "22222222-2", "beto@biobio.cl")


@pytest_asyncio.fixture
async def comuna_id(db):
    region = models.Region(codigo="RM", nombre="Metropolitana de Santiago", ordinal=7)
    db.add(region)
    await db.flush()
    comuna = models.Comuna(nombre="Santiago", region_id=region.id)
    db.add(comuna)
    await db.commit()
    return comuna.id


@pytest.fixture
def persona():
    return {"tipo": "PERSONA", "nombre": "Juan Pérez"}


@pytest.fixture
def organizacion():
    return {"tipo": "ORGANIZACION", "razon_social": "Comercial Los Robles SpA"}


DIA = date(2024, 6, 1)


async def build_route(db, tenant_id, comuna_id):
    """Cliente, remitente, destinatario, dos direcciones y catálogos de un tenant."""
    cliente = await clientes.create(db, tenant_id, schemas.ClientCreate(
        identidad={"tipo": "ORGANIZACION", "razon_social": "Comercial Los Robles SpA"}, rut="12345678-5"
    ))
    remitente = await crud_entidades.create_entidad(db, tenant_id, schemas.EntidadCreate(
        identidad={"tipo": "PERSONA", "nombre": "Rosa Remitente"}, rut="77777777-7",
        tipo_entidad=models.TipoEntidad.REMITENTE
    ))
    destinatario = await crud_entidades.create_entidad(db, tenant_id, schemas.EntidadCreate(
        identidad={"tipo": "PERSONA", "nombre": "Diego Destino"}, rut="88888888-8",
        tipo_entidad=models.TipoEntidad.DESTINATARIO
    ))
    origen = await crud_addresses.create_address(db, tenant_id, schemas.AddressCreate(
        comuna_id=comuna_id, direccion_texto="Av. Matta 1200"
    ))
    destino = await crud_addresses.create_address(db, tenant_id, schemas.AddressCreate(
        comuna_id=comuna_id, direccion_texto="San Diego 450"
    ))
    carga = await crud_catalogs.create_catalog_item(
        db, models.TipoCarga, tenant_id, schemas.CatalogItemCreate(nombre="Pallets")
    )
    servicio = await crud_catalogs.create_catalog_item(
        db, models.TipoServicio, tenant_id, schemas.CatalogItemCreate(nombre="Express")
    )
    return SimpleNamespace(
        cliente_id=cliente.id,
        remitente_id=remitente.id,
        destinatario_id=destinatario.id,
        direccion_origen_id=origen.id,
        direccion_destino_id=destino.id,
        tipo_carga_id=carga.id,
        tipo_servicio_id=servicio.id,
    )


def order_payload(route, numero_ot="OT-1", **extra):
    return schemas.OrderCreate(numero_ot=numero_ot, fecha=DIA, peso_total_kg=120.5, **vars(route), **extra)

