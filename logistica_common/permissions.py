import enum
from typing import Iterable, NamedTuple, Optional, List

# ==============================================================================
# 🛡️ VOCABULARIO FIJO DE PERMISOS
# ==============================================================================

class Modulo(str, enum.Enum):
    SISTEMA = "sistema"
    DASHBOARD = "dashboard"
    TENANTS = "tenants"
    USUARIOS = "usuarios"
    PERFILES = "perfiles"
    ROLES = "roles"
    ORDENES = "ordenes"
    CLIENTES = "clientes"
    CARRIERS = "carriers"
    EMBARCADORES = "embarcadores"
    DIRECCIONES = "direcciones"
    ENTIDADES = "entidades"
    CONTACTOS = "contactos"
    CATALOGOS = "catalogos"


class TipoAccion(str, enum.Enum):
    VER = "VER"
    CREAR = "CREAR"
    EDITAR = "EDITAR"
    ELIMINAR = "ELIMINAR"
    ACTIVAR = "ACTIVAR"  # Reactivar registros desactivados


class Permission(NamedTuple):
    modulo: Modulo
    accion: TipoAccion

    @property
    def code(self) -> str:
        return f"{self.modulo.value}:{self.accion.value.lower()}"


def _as_modulo(value) -> Modulo:
    if isinstance(value, Modulo):
        return value
    return Modulo(value.strip().lower())


def _as_accion(value) -> TipoAccion:
    if isinstance(value, TipoAccion):
        return value
    return TipoAccion(value.strip().upper())


class PermissionSet:
    """
    Conjunto inmutable de pares (módulo, acción).

    Los pares duplicados que llegan desde bindings solapados colapsan;
    la iteración es ordenada para que la salida sea estable.
    """
    __slots__ = ("_grants",)

    def __init__(self, grants: Iterable = ()):
        self._grants = frozenset(
            Permission(_as_modulo(modulo), _as_accion(accion)) for modulo, accion in grants
        )

    @classmethod
    def empty(cls) -> "PermissionSet":
        return cls()

    def allows(self, modulo, accion) -> bool:
        return Permission(_as_modulo(modulo), _as_accion(accion)) in self._grants

    def codes(self) -> List[str]:
        return [p.code for p in self]

    def __contains__(self, item) -> bool:
        return item in self._grants

    def __iter__(self):
        return iter(sorted(self._grants, key=lambda p: (p.modulo.value, p.accion.value)))

    def __len__(self) -> int:
        return len(self._grants)

    def __bool__(self) -> bool:
        return bool(self._grants)

    def __eq__(self, other) -> bool:
        if isinstance(other, PermissionSet):
            return self._grants == other._grants
        return NotImplemented

    def __hash__(self):
        return hash(self._grants)

    def __repr__(self):
        return f"PermissionSet({self.codes()!r})"


# ==============================================================================
# 🔐 COMPUERTA PARA AFORDANZAS DE UI
# ==============================================================================

def has_module_permission(permissions: Optional[PermissionSet], modulo, accion) -> bool:
    """
    Predicado para mostrar/ocultar acciones en la interfaz.

    Nunca lanza: permisos aún no cargados (None), módulo o acción fuera del
    vocabulario, o cualquier otra duda devuelven False. La frontera de la API
    no usa esta función; allí se rechaza con 403 (ver RequireModulePermission).
    """
    if permissions is None:
        return False
    try:
        return permissions.allows(modulo, accion)
    except (ValueError, TypeError, AttributeError):
        return False
