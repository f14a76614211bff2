from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os

from logistica_common.errors import register_exception_handlers
from . import models
from .database import db_manager
from .routers import (
    auth, tenants, users, profiles, roles, entidades, parties, contactos, addresses, orders, catalogs
)

# Logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger("logistica-api")

ENV_MODE = os.getenv("ENV_MODE", "dev")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # En desarrollo se crean las tablas al vuelo; en producción manda Alembic
    if ENV_MODE == "dev":
        await db_manager.create_all()
        logger.info("🗄️ Tablas verificadas (modo dev)")
    logger.info(f"🚚 Logistica API iniciada ({len(models.Base.metadata.tables)} tablas registradas)")

    yield

    await db_manager.dispose()
    logger.info("🛑 Logistica API detenida")


# --- Configuración de FastAPI ---
app = FastAPI(
    title="Logistica API",
    description="API multi-tenant de gestión logística: clientes, carriers, direcciones y órdenes de transporte.",
    version="1.0.0",
    lifespan=lifespan
)

origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

for router in (
    auth.router,
    tenants.router,
    users.router,
    profiles.router,
    roles.router,
    entidades.router,
    parties.clients_router,
    parties.carriers_router,
    parties.shippers_router,
    contactos.router,
    addresses.router,
    orders.router,
    catalogs.router,
    catalogs.tipos_carga_router,
    catalogs.tipos_servicio_router,
):
    app.include_router(router, prefix="/api")


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "logistica-api"}
