from pydantic import (
    BaseModel, EmailStr, ConfigDict, Field, AfterValidator, computed_field,
    field_serializer, field_validator
)
from typing import Optional, List, Dict, Generic, TypeVar, Union, Literal, Annotated
from datetime import datetime, date

from logistica_common.permissions import Modulo, TipoAccion
from logistica_common.rut import RUT_PATTERN, normalize_rut, format_rut, validate_rut
from .models import (
    TipoTenant, EstadoUsuario, TipoPerfil, TipoEntidad, OrigenDireccion,
    OrdenEstado, TipoTarifa
)

T = TypeVar("T")


def _check_rut(value: str) -> str:
    value = value.strip()
    if not RUT_PATTERN.match(value):
        raise ValueError("El RUT debe tener formato 12.345.678-9 o 12345678-9")
    if not validate_rut(value):
        raise ValueError("RUT inválido: el dígito verificador no corresponde")
    return normalize_rut(value)


# RUT validado y normalizado (sin puntos) al entrar
RutStr = Annotated[str, AfterValidator(_check_rut)]


class PaginatedResponse(BaseModel, Generic[T]):
    """Estructura genérica para devolver listas paginadas."""
    items: List[T]
    total: int
    page: int
    limit: int
    total_pages: int

class MessageResponse(BaseModel):
    message: str


# --- TENANTS ---
class TenantAdminCreate(BaseModel):
    """Primer usuario administrador creado junto al tenant."""
    correo: EmailStr
    nombre: str = Field(..., min_length=2, max_length=100)
    password: Optional[str] = Field(None, min_length=6)

class TenantBase(BaseModel):
    nombre: str = Field(..., min_length=2, max_length=100, description="Nombre de la empresa")
    contacto: str = Field(..., min_length=2, max_length=100)
    tipo_tenant: TipoTenant = TipoTenant.SHIPPER
    logo_url: Optional[str] = None

class TenantCreate(TenantBase):
    rut: RutStr
    administrador: Optional[TenantAdminCreate] = None

class TenantUpdate(BaseModel):
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    contacto: Optional[str] = Field(None, min_length=2, max_length=100)
    rut: Optional[RutStr] = None
    tipo_tenant: Optional[TipoTenant] = None
    logo_url: Optional[str] = None

class TenantResponse(TenantBase):
    id: int
    rut: str
    activo: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("rut")
    def display_rut(self, rut: str) -> str:
        return format_rut(rut)

class TenantStats(BaseModel):
    tenant: TenantResponse
    total_usuarios: int
    usuarios_activos: int
    total_perfiles: int
    total_roles: int


# --- PERFILES Y ROLES ---
class ProfileBase(BaseModel):
    nombre: str = Field(..., min_length=2, max_length=100)
    descripcion: Optional[str] = Field(None, max_length=255)
    tipo: TipoPerfil = TipoPerfil.BASICO

class ProfileCreate(ProfileBase):
    pass

class ProfileUpdate(BaseModel):
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    descripcion: Optional[str] = Field(None, max_length=255)
    tipo: Optional[TipoPerfil] = None

class ProfileResponse(ProfileBase):
    id: int
    tenant_id: int
    activo: bool

    model_config = ConfigDict(from_attributes=True)

class ProfileDetailResponse(ProfileResponse):
    roles: List[str] = []

class ProfileTypeResponse(BaseModel):
    tipo: TipoPerfil

class AssignRolesRequest(BaseModel):
    role_ids: List[int] = Field(default_factory=list)

class PermissionItem(BaseModel):
    modulo: Modulo
    accion: TipoAccion

class PermissionsResponse(BaseModel):
    profile_id: int
    permissions: List[PermissionItem]
    codes: List[str]


class RoleBase(BaseModel):
    codigo: str = Field(..., min_length=2, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    nombre: str = Field(..., min_length=2, max_length=100)
    modulo: Modulo
    tipo_accion: TipoAccion
    orden: int = 0
    visible: bool = True

    @field_validator("modulo", mode="before")
    @classmethod
    def lower_modulo(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("tipo_accion", mode="before")
    @classmethod
    def upper_accion(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

class RoleCreate(RoleBase):
    pass

class RoleUpdate(BaseModel):
    codigo: Optional[str] = Field(None, min_length=2, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    modulo: Optional[Modulo] = None
    tipo_accion: Optional[TipoAccion] = None
    orden: Optional[int] = None
    visible: Optional[bool] = None

    @field_validator("modulo", mode="before")
    @classmethod
    def lower_modulo(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("tipo_accion", mode="before")
    @classmethod
    def upper_accion(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

class RoleResponse(RoleBase):
    id: int
    tenant_id: int
    activo: bool

    model_config = ConfigDict(from_attributes=True)

class AvailableRole(BaseModel):
    id: int
    codigo: str
    nombre: str
    modulo: Modulo
    tipo_accion: TipoAccion
    asignado: bool

class RolesByIdsRequest(BaseModel):
    ids: List[int]


# --- USUARIOS ---
class PerfilResumen(BaseModel):
    id: int
    nombre: str
    tipo: TipoPerfil

    model_config = ConfigDict(from_attributes=True)

class UserBase(BaseModel):
    correo: EmailStr
    nombre: str = Field(..., min_length=2, max_length=100)
    rut: Optional[RutStr] = None
    telefono: Optional[str] = None

class UserCreate(UserBase):
    perfil_id: int
    password: Optional[str] = Field(None, min_length=6)

class UserUpdate(BaseModel):
    correo: Optional[EmailStr] = None
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    rut: Optional[RutStr] = None
    telefono: Optional[str] = None
    perfil_id: Optional[int] = None
    password: Optional[str] = Field(None, min_length=6)

class UserResponse(BaseModel):
    id: int
    tenant_id: int
    correo: str
    nombre: str
    rut: Optional[str] = None
    telefono: Optional[str] = None
    estado: EstadoUsuario
    activo: bool
    perfil_id: int
    perfil: Optional[PerfilResumen] = None

    model_config = ConfigDict(from_attributes=True)


# --- AUTH ---
class LoginUser(BaseModel):
    id: int
    email: str
    name: str
    tenant_id: int
    profile_id: int
    permissions: List[str]

class Token(BaseModel):
    access_token: str
    token_type: str
    user: LoginUser

class MeResponse(BaseModel):
    user: UserResponse
    permissions: List[str]


# --- PARTES (Entidades, Clientes, Carriers, Embarcadores) ---
class Persona(BaseModel):
    tipo: Literal["PERSONA"]
    nombre: str = Field(..., min_length=2, max_length=150)

class Organizacion(BaseModel):
    tipo: Literal["ORGANIZACION"]
    razon_social: str = Field(..., min_length=2, max_length=150)

# Persona natural u organización: nunca ambos ni ninguno
Identidad = Annotated[Union[Persona, Organizacion], Field(discriminator="tipo")]

class PartyContact(BaseModel):
    contacto: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    telefono: Optional[str] = Field(None, max_length=30)
    direccion: Optional[str] = Field(None, max_length=255)
    comuna_id: Optional[int] = None

class PartyCreate(PartyContact):
    identidad: Identidad
    rut: RutStr

class PartyUpdate(PartyContact):
    identidad: Optional[Identidad] = None
    rut: Optional[RutStr] = None

class PartyResponse(BaseModel):
    id: int
    tenant_id: int
    es_persona: bool
    nombre: str
    razon_social: Optional[str] = None
    rut: str
    contacto: Optional[str] = None
    email: Optional[str] = None
    telefono: Optional[str] = None
    direccion: Optional[str] = None
    comuna_id: Optional[int] = None
    activo: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def nombre_visible(self) -> str:
        if self.es_persona:
            return self.nombre
        return self.razon_social or self.nombre

class ClientCreate(PartyCreate):
    pass

class ClientUpdate(PartyUpdate):
    pass

class ClientResponse(PartyResponse):
    entidad_id: int

class CarrierCreate(PartyCreate):
    pass

class CarrierUpdate(PartyUpdate):
    pass

class CarrierResponse(PartyResponse):
    entidad_id: int

class ShipperCreate(PartyCreate):
    pass

class ShipperUpdate(PartyUpdate):
    pass

class ShipperResponse(PartyResponse):
    entidad_id: int

class PartyStats(BaseModel):
    total: int
    activos: int
    inactivos: int
    personas: int
    organizaciones: int

class EntidadCreate(PartyCreate):
    tipo_entidad: TipoEntidad = TipoEntidad.PERSONA

class EntidadResponse(PartyResponse):
    tipo_entidad: TipoEntidad


# --- DIRECCIONES ---
class ComunaResumen(BaseModel):
    id: int
    nombre: str
    region_id: int

    model_config = ConfigDict(from_attributes=True)

class AddressBase(BaseModel):
    direccion_texto: str = Field(..., min_length=3, max_length=255)
    nombre: Optional[str] = Field(None, max_length=100)
    calle: Optional[str] = Field(None, max_length=150)
    numero: Optional[str] = Field(None, max_length=20)
    contacto: Optional[str] = Field(None, max_length=100)
    telefono: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    referencia: Optional[str] = Field(None, max_length=255)
    latitud: Optional[float] = Field(None, ge=-90, le=90)
    longitud: Optional[float] = Field(None, ge=-180, le=180)

class AddressCreate(AddressBase):
    comuna_id: int
    origen: OrigenDireccion = OrigenDireccion.MANUAL
    es_principal: bool = False

class AddressUpdate(BaseModel):
    comuna_id: Optional[int] = None
    direccion_texto: Optional[str] = Field(None, min_length=3, max_length=255)
    nombre: Optional[str] = Field(None, max_length=100)
    calle: Optional[str] = Field(None, max_length=150)
    numero: Optional[str] = Field(None, max_length=20)
    contacto: Optional[str] = Field(None, max_length=100)
    telefono: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    referencia: Optional[str] = Field(None, max_length=255)
    latitud: Optional[float] = Field(None, ge=-90, le=90)
    longitud: Optional[float] = Field(None, ge=-180, le=180)
    origen: Optional[OrigenDireccion] = None
    es_principal: Optional[bool] = None

class AddressResponse(AddressBase):
    id: int
    tenant_id: int
    comuna_id: int
    email: Optional[str] = None
    origen: OrigenDireccion
    es_principal: bool
    activo: bool
    frecuencia: int
    ultima_vez_usada: Optional[datetime] = None
    comuna: Optional[ComunaResumen] = None

    model_config = ConfigDict(from_attributes=True)

class AddressStats(BaseModel):
    total: int
    activas: int
    inactivas: int
    por_origen: Dict[str, int]


# --- CONTACTOS ---
class EntidadResumen(BaseModel):
    id: int
    nombre: str
    rut: str
    tipo_entidad: TipoEntidad

    model_config = ConfigDict(from_attributes=True)

class ContactoBase(BaseModel):
    nombre: str = Field(..., min_length=2, max_length=150)
    es_persona: bool = True
    cargo: Optional[str] = Field(None, max_length=100)
    contacto: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    telefono: Optional[str] = Field(None, max_length=30)
    direccion: Optional[str] = Field(None, max_length=255)

class ContactoCreate(ContactoBase):
    rut: RutStr
    comuna_id: int
    entidad_id: int

class ContactoUpdate(BaseModel):
    nombre: Optional[str] = Field(None, min_length=2, max_length=150)
    rut: Optional[RutStr] = None
    es_persona: Optional[bool] = None
    cargo: Optional[str] = Field(None, max_length=100)
    contacto: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    telefono: Optional[str] = Field(None, max_length=30)
    direccion: Optional[str] = Field(None, max_length=255)
    comuna_id: Optional[int] = None
    entidad_id: Optional[int] = None

class ContactoResponse(ContactoBase):
    id: int
    tenant_id: int
    rut: str
    email: Optional[str] = None
    comuna_id: int
    entidad_id: int
    activo: bool
    created_at: Optional[datetime] = None
    entidad: Optional[EntidadResumen] = None
    comuna: Optional[ComunaResumen] = None

    model_config = ConfigDict(from_attributes=True)


# --- CATÁLOGOS ---
class RegionResponse(BaseModel):
    id: int
    codigo: str
    nombre: str
    ordinal: int

    model_config = ConfigDict(from_attributes=True)

class ComunaResponse(ComunaResumen):
    region: Optional[RegionResponse] = None

class CatalogItemCreate(BaseModel):
    nombre: str = Field(..., min_length=2, max_length=100)
    descripcion: Optional[str] = Field(None, max_length=255)

class CatalogItemUpdate(BaseModel):
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    descripcion: Optional[str] = Field(None, max_length=255)

class CatalogItemResponse(CatalogItemCreate):
    id: int
    tenant_id: int
    activo: bool

    model_config = ConfigDict(from_attributes=True)

class EquipoCreate(BaseModel):
    patente: str = Field(..., min_length=4, max_length=10)
    nombre: Optional[str] = Field(None, max_length=100)
    carrier_id: Optional[int] = None

    @field_validator("patente")
    @classmethod
    def upper_patente(cls, value: str) -> str:
        return value.strip().upper()

class EquipoResponse(BaseModel):
    id: int
    tenant_id: int
    patente: str
    nombre: Optional[str] = None
    carrier_id: Optional[int] = None
    activo: bool

    model_config = ConfigDict(from_attributes=True)


# --- ÓRDENES ---
class ParteResumen(BaseModel):
    id: int
    nombre: str
    rut: str

    model_config = ConfigDict(from_attributes=True)

class DireccionResumen(BaseModel):
    id: int
    direccion_texto: str
    comuna_id: int

    model_config = ConfigDict(from_attributes=True)

class CatalogoResumen(BaseModel):
    id: int
    nombre: str

    model_config = ConfigDict(from_attributes=True)

class EquipoResumen(BaseModel):
    id: int
    patente: str

    model_config = ConfigDict(from_attributes=True)

class OrderMeasures(BaseModel):
    peso_total_kg: Optional[float] = Field(None, ge=0, le=50000)
    volumen_total_m3: Optional[float] = Field(None, ge=0, le=1000)
    alto_cm: Optional[float] = Field(None, ge=0, le=1000)
    largo_cm: Optional[float] = Field(None, ge=0, le=1000)
    ancho_cm: Optional[float] = Field(None, ge=0, le=1000)
    observaciones: Optional[str] = None

class OrderCreate(OrderMeasures):
    codigo: Optional[str] = Field(None, min_length=3, max_length=50, description="Si se omite se genera ORD-YYYYMMDD-NNN")
    numero_ot: str = Field(..., min_length=1, max_length=50)
    fecha: date
    fecha_entrega_estimada: Optional[date] = None
    tipo_tarifa: TipoTarifa = TipoTarifa.PESO_VOLUMEN
    cliente_id: int
    remitente_id: int
    destinatario_id: int
    direccion_origen_id: int
    direccion_destino_id: int
    tipo_carga_id: int
    tipo_servicio_id: int
    equipo_id: Optional[int] = None

class OrderUpdate(OrderMeasures):
    numero_ot: Optional[str] = Field(None, min_length=1, max_length=50)
    fecha: Optional[date] = None
    fecha_entrega_estimada: Optional[date] = None
    tipo_tarifa: Optional[TipoTarifa] = None
    cliente_id: Optional[int] = None
    remitente_id: Optional[int] = None
    destinatario_id: Optional[int] = None
    direccion_origen_id: Optional[int] = None
    direccion_destino_id: Optional[int] = None
    tipo_carga_id: Optional[int] = None
    tipo_servicio_id: Optional[int] = None
    equipo_id: Optional[int] = None

class OrderStatusUpdate(BaseModel):
    estado: OrdenEstado

class OrderResponse(OrderMeasures):
    id: int
    tenant_id: int
    codigo: str
    numero_ot: str
    fecha: date
    fecha_entrega_estimada: Optional[date] = None
    estado: OrdenEstado
    tipo_tarifa: TipoTarifa
    cliente_id: int
    remitente_id: int
    destinatario_id: int
    direccion_origen_id: int
    direccion_destino_id: int
    tipo_carga_id: int
    tipo_servicio_id: int
    equipo_id: Optional[int] = None
    created_at: Optional[datetime] = None

    cliente: Optional[ParteResumen] = None
    remitente: Optional[ParteResumen] = None
    destinatario: Optional[ParteResumen] = None
    direccion_origen: Optional[DireccionResumen] = None
    direccion_destino: Optional[DireccionResumen] = None
    tipo_carga: Optional[CatalogoResumen] = None
    tipo_servicio: Optional[CatalogoResumen] = None
    equipo: Optional[EquipoResumen] = None

    model_config = ConfigDict(from_attributes=True)
