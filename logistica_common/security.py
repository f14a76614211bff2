from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from datetime import datetime, timedelta
from typing import Optional, Mapping, Any
import os
import logging

from .errors import UnauthorizedOperation

# Configuración Criptográfica
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "SECRET_SUPER_SECRETO_CAMBIAME")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

logger = logging.getLogger("logistica.security")

# --- UTILIDADES ---
def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "type": "access"})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt

def decode_token(token: str):
    """Decodifica y verifica firma/expiración. Devuelve None si el token no es válido."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"Intento de acceso con token inválido: {e}")
        return None

# --- RESOLUCIÓN DE TENANT ---
def resolve_tenant_id(claims: Optional[Mapping[str, Any]]):
    """
    Extrae el tenant de los claims ya verificados.

    Orden de prioridad: `tenant_id`, `tenantId` y por último `tenant.id`.
    Sin efectos secundarios; si no hay tenant lanza UnauthorizedOperation
    antes de que corra cualquier servicio.
    """
    if not claims:
        raise UnauthorizedOperation("Tenant no encontrado en el token")

    tenant_id = claims.get("tenant_id")
    if tenant_id is None:
        tenant_id = claims.get("tenantId")
    if tenant_id is None:
        tenant = claims.get("tenant")
        if isinstance(tenant, Mapping):
            tenant_id = tenant.get("id")

    if tenant_id is None or tenant_id == "":
        raise UnauthorizedOperation("Tenant no encontrado en el token")
    return tenant_id

# --- DEPENDENCIAS FASTAPI ---
class UserPayload:
    def __init__(self, sub: str, tenant_id: int, user_id: Optional[int] = None,
                 profile_id: Optional[int] = None, email: Optional[str] = None):
        self.sub = sub
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.profile_id = profile_id
        self.email = email

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "UserPayload":
        sub = claims.get("sub")
        if sub is None:
            raise UnauthorizedOperation()
        tenant_id = resolve_tenant_id(claims)
        profile_id = claims.get("profile_id", claims.get("profileId"))
        return cls(
            sub=str(sub),
            tenant_id=_as_int(tenant_id),
            user_id=_as_int(claims.get("user_id")),
            profile_id=_as_int(profile_id),
            email=claims.get("email"),
        )

def _as_int(value):
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise UnauthorizedOperation("Identificadores del token con formato inválido")

def get_current_user(token: str = Depends(oauth2_scheme)) -> UserPayload:
    payload = decode_token(token)
    if payload is None or payload.get("type", "access") != "access":
        raise UnauthorizedOperation()
    return UserPayload.from_claims(payload)

def get_current_tenant_id(user: UserPayload = Depends(get_current_user)) -> int:
    return user.tenant_id
