from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from logistica_common.errors import UnauthorizedOperation
from .. import schemas
from ..crud import users as crud_users
from ..database import get_db
from ..security import Actor, get_current_actor
from ..services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=schemas.Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    """Login con correo (username) y contraseña. Devuelve JWT con tenant y perfil."""
    return await AuthService.authenticate_user(db, form_data.username, form_data.password)


@router.get("/me", response_model=schemas.MeResponse)
async def read_me(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Usuario autenticado y sus permisos efectivos (para mostrar/ocultar acciones en la UI)."""
    if actor.user.user_id is not None:
        user = await crud_users.get_user(db, actor.tenant_id, actor.user.user_id)
    else:
        user = await crud_users.get_user_by_email(db, actor.user.sub)
        if not user or user.tenant_id != actor.tenant_id:
            raise UnauthorizedOperation("Usuario no encontrado en el tenant del token")
    return {"user": user, "permissions": actor.permissions.codes()}
