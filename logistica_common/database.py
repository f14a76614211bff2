import os
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base

# Base declarativa común para todos los modelos
Base = declarative_base()

class DatabaseManager:
    """
    Dueño del engine y de la fábrica de sesiones.

    Se instancia una vez por proceso y se inyecta a los endpoints vía
    `Depends(get_db)`; ninguna función de acceso a datos toma la sesión
    de un global.
    """
    def __init__(self, database_url: str, **engine_kwargs):
        self.database_url = database_url
        # Detectar si estamos en modo debug
        self.debug = os.getenv("ENV_MODE", "dev") == "dev"

        self.engine = create_async_engine(
            self.database_url,
            echo=self.debug,
            future=True,
            **engine_kwargs
        )
        self.session_factory = sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    async def get_db(self):
        async with self.session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    async def create_all(self):
        """Crea las tablas declaradas (solo desarrollo/tests; producción usa Alembic)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()
