from sqlalchemy.ext.asyncio import AsyncSession
from datetime import timedelta
import logging

from logistica_common import security
from logistica_common.errors import UnauthorizedOperation
from .. import models
from ..crud import tenants as crud_tenants
from ..crud import users as crud_users
from .permissions import resolve_profile_permissions

logger = logging.getLogger("logistica.auth")


class AuthService:

    @staticmethod
    async def authenticate_user(db: AsyncSession, email: str, password: str):
        # 1. Validar credenciales
        user = await crud_users.get_user_by_email(db, email)
        if not user or not user.hashed_password or not security.verify_password(password, user.hashed_password):
            logger.info(f"Login fallido para {email}")
            raise UnauthorizedOperation("Credenciales inválidas")

        if not user.activo or user.estado != models.EstadoUsuario.ACTIVO:
            raise UnauthorizedOperation("Usuario inactivo")

        # 2. El tenant debe seguir activo
        tenant = await crud_tenants.get_tenant(db, user.tenant_id)
        if not tenant or not tenant.activo:
            raise UnauthorizedOperation("El tenant del usuario está inactivo")

        # 3. Permisos efectivos (informativos en el token; la API los vuelve a resolver)
        permissions = await resolve_profile_permissions(db, user.tenant_id, user.perfil_id)

        # 4. Generar token
        access_token = security.create_access_token(
            data={
                "sub": user.correo,
                "tenant_id": user.tenant_id,
                "user_id": user.id,
                "profile_id": user.perfil_id,
                "permissions": permissions.codes()
            },
            expires_delta=timedelta(minutes=int(security.ACCESS_TOKEN_EXPIRE_MINUTES))
        )
        logger.info(f"🔓 Login de {user.correo} (tenant {user.tenant_id})")
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "user": {
                "id": user.id,
                "email": user.correo,
                "name": user.nombre,
                "tenant_id": user.tenant_id,
                "profile_id": user.perfil_id,
                "permissions": permissions.codes(),
            },
        }
