from http import HTTPStatus
from typing import Optional, Dict
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("logistica.errors")

# ==============================================================================
# TAXONOMÍA DE ERRORES
# ==============================================================================

class ServiceError(HTTPException):
    """
    Error de negocio con código HTTP fijo.

    Hereda de HTTPException para que FastAPI lo trate igual que al resto,
    pero el manejador global lo serializa como {message, statusCode, error}.
    """
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.http_status, detail=message, headers=headers)
        self.message = message


class NotFoundError(ServiceError):
    """El id (dentro del tenant) no corresponde a ningún registro."""
    http_status = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    """Violación de unicidad o de integridad de estado (RUT duplicado, código repetido...)."""
    http_status = status.HTTP_409_CONFLICT


class InvalidReferenceError(ServiceError):
    """Una FK enviada no existe o pertenece a otro tenant."""
    http_status = status.HTTP_400_BAD_REQUEST


class BadRequestError(ServiceError):
    """Entrada bien formada pero no aplicable (paginación, transición de estado)."""
    http_status = status.HTTP_400_BAD_REQUEST


class UnauthorizedOperation(ServiceError):
    """Identidad o tenant ausentes/no verificables en el contexto de la petición."""
    http_status = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Credenciales inválidas o expiradas"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(ServiceError):
    """Identidad resuelta pero sin el permiso módulo+acción requerido."""
    http_status = status.HTTP_403_FORBIDDEN


# ==============================================================================
# SERIALIZACIÓN
# ==============================================================================

def error_body(status_code: int, message) -> dict:
    try:
        error = HTTPStatus(status_code).phrase
    except ValueError:
        error = "Error"
    return {"message": message, "statusCode": status_code, "error": error}


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Los errores de pydantic pueden traer objetos no serializables en 'ctx'
    details = jsonable_encoder(exc.errors(), custom_encoder={Exception: str})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(status.HTTP_422_UNPROCESSABLE_ENTITY, details),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Error no controlado en {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error interno del servidor"),
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
