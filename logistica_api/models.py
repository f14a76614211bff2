from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Float, Text, ForeignKey,
    UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.orm import relationship, declared_attr
from sqlalchemy.sql import func
from logistica_common.permissions import Modulo, TipoAccion
from logistica_common.database import Base
import enum

# --- ENUMS ---
class TipoTenant(str, enum.Enum):
    ADMIN = "ADMIN"
    SHIPPER = "SHIPPER"
    CARRIER = "CARRIER"

class EstadoUsuario(str, enum.Enum):
    ACTIVO = "ACTIVO"
    INACTIVO = "INACTIVO"
    PENDIENTE = "PENDIENTE"

class TipoPerfil(str, enum.Enum):
    BASICO = "básico"
    AVANZADO = "avanzado"
    ADMINISTRADOR = "administrador"

class TipoEntidad(str, enum.Enum):
    CLIENTE = "CLIENTE"
    CARRIER = "CARRIER"
    EMBARCADOR = "EMBARCADOR"
    REMITENTE = "REMITENTE"
    DESTINATARIO = "DESTINATARIO"
    PERSONA = "PERSONA"

class OrigenDireccion(str, enum.Enum):
    MANUAL = "MANUAL"
    GEOCODIFICADA = "GEOCODIFICADA"
    REUTILIZADA = "REUTILIZADA"

class OrdenEstado(str, enum.Enum):
    PENDIENTE = "PENDIENTE"
    PLANIFICADA = "PLANIFICADA"
    EN_TRANSPORTE = "EN_TRANSPORTE"
    ENTREGADA = "ENTREGADA"
    CANCELADA = "CANCELADA"

class TipoTarifa(str, enum.Enum):
    PESO_VOLUMEN = "PESO_VOLUMEN"
    PESO = "PESO"
    VOLUMEN = "VOLUMEN"
    FIJA = "FIJA"


class TenantScoped:
    """Columna tenant_id obligatoria para toda tabla perteneciente a un tenant."""

    @declared_attr
    def tenant_id(cls):
        return Column(Integer, ForeignKey("tenants.id"), index=True, nullable=False)


# --- SEGURIDAD Y ORGANIZACIÓN ---
class Tenant(Base):
    """
    Límite de aislamiento: cada registro de negocio pertenece a exactamente uno.

    Attributes:
        rut: RUT normalizado (sin puntos). Único en todo el sistema.
    """
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String, index=True, nullable=False)
    rut = Column(String, unique=True, index=True, nullable=False)
    contacto = Column(String, nullable=False)
    logo_url = Column(String, nullable=True)
    tipo_tenant = Column(SQLEnum(TipoTenant), default=TipoTenant.SHIPPER, nullable=False)
    activo = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    usuarios = relationship("Usuario", back_populates="tenant")


class Perfil(TenantScoped, Base):
    """Paquete nombrado de permisos asignable a usuarios."""
    __tablename__ = "perfiles"
    __table_args__ = (UniqueConstraint("tenant_id", "nombre", name="uq_perfil_tenant_nombre"),)

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String, nullable=False)
    descripcion = Column(String, nullable=True)
    tipo = Column(SQLEnum(TipoPerfil), default=TipoPerfil.BASICO, nullable=False)
    activo = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    roles_asignados = relationship("PerfilRol", back_populates="perfil")


class Rol(TenantScoped, Base):
    """Un único permiso (módulo, acción). El código es único por tenant."""
    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("tenant_id", "codigo", name="uq_rol_tenant_codigo"),)

    id = Column(Integer, primary_key=True, index=True)
    codigo = Column(String, nullable=False)
    nombre = Column(String, nullable=False)
    modulo = Column(SQLEnum(Modulo), nullable=False)
    tipo_accion = Column(SQLEnum(TipoAccion), nullable=False)
    orden = Column(Integer, default=0)
    visible = Column(Boolean, default=True)
    activo = Column(Boolean, default=True)


class PerfilRol(TenantScoped, Base):
    """Vínculo perfil-rol. También lleva tenant_id: ambos extremos deben coincidir con él."""
    __tablename__ = "perfiles_roles"
    __table_args__ = (UniqueConstraint("perfil_id", "rol_id", name="uq_perfil_rol"),)

    id = Column(Integer, primary_key=True, index=True)
    perfil_id = Column(Integer, ForeignKey("perfiles.id"), nullable=False, index=True)
    rol_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)

    perfil = relationship("Perfil", back_populates="roles_asignados")
    rol = relationship("Rol")


class Usuario(TenantScoped, Base):
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    correo = Column(String, unique=True, index=True, nullable=False)
    nombre = Column(String, nullable=False)
    rut = Column(String, nullable=True)
    telefono = Column(String, nullable=True)
    hashed_password = Column(String, nullable=True)
    estado = Column(SQLEnum(EstadoUsuario), default=EstadoUsuario.ACTIVO, nullable=False)
    activo = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    perfil_id = Column(Integer, ForeignKey("perfiles.id"), nullable=False)
    perfil = relationship("Perfil")
    tenant = relationship("Tenant", back_populates="usuarios")


# --- CATÁLOGOS GEOGRÁFICOS (globales) ---
class Region(Base):
    __tablename__ = "regiones"

    id = Column(Integer, primary_key=True, index=True)
    codigo = Column(String, unique=True, nullable=False)
    nombre = Column(String, nullable=False)
    ordinal = Column(Integer, default=0)

    comunas = relationship("Comuna", back_populates="region")


class Comuna(Base):
    __tablename__ = "comunas"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String, index=True, nullable=False)
    region_id = Column(Integer, ForeignKey("regiones.id"), nullable=False)

    region = relationship("Region", back_populates="comunas")


# --- PARTES (Entidad y especializaciones) ---
class PartyColumns(TenantScoped):
    """
    Columnas de identidad/contacto compartidas por Entidad, Cliente, Carrier y Embarcador.

    `nombre` siempre guarda el nombre a mostrar; `razon_social` solo existe
    para organizaciones (es_persona=False).
    """
    es_persona = Column(Boolean, default=False, nullable=False)
    nombre = Column(String, index=True, nullable=False)
    razon_social = Column(String, nullable=True)
    rut = Column(String, index=True, nullable=False)
    contacto = Column(String, nullable=True)
    email = Column(String, nullable=True)
    telefono = Column(String, nullable=True)
    direccion = Column(String, nullable=True)
    activo = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @declared_attr
    def comuna_id(cls):
        return Column(Integer, ForeignKey("comunas.id"), nullable=True)


class Entidad(PartyColumns, Base):
    """Supertipo de cualquier parte (cliente, carrier, embarcador, remitente...)."""
    __tablename__ = "entidades"
    __table_args__ = (UniqueConstraint("tenant_id", "rut", name="uq_entidad_tenant_rut"),)

    id = Column(Integer, primary_key=True, index=True)
    tipo_entidad = Column(SQLEnum(TipoEntidad), nullable=False)


class Cliente(PartyColumns, Base):
    __tablename__ = "clientes"
    __table_args__ = (UniqueConstraint("tenant_id", "rut", name="uq_cliente_tenant_rut"),)

    id = Column(Integer, primary_key=True, index=True)
    entidad_id = Column(Integer, ForeignKey("entidades.id"), nullable=False)
    entidad = relationship("Entidad")


class Carrier(PartyColumns, Base):
    __tablename__ = "carriers"
    __table_args__ = (UniqueConstraint("tenant_id", "rut", name="uq_carrier_tenant_rut"),)

    id = Column(Integer, primary_key=True, index=True)
    entidad_id = Column(Integer, ForeignKey("entidades.id"), nullable=False)
    entidad = relationship("Entidad")


class Embarcador(PartyColumns, Base):
    __tablename__ = "embarcadores"
    __table_args__ = (UniqueConstraint("tenant_id", "rut", name="uq_embarcador_tenant_rut"),)

    id = Column(Integer, primary_key=True, index=True)
    entidad_id = Column(Integer, ForeignKey("entidades.id"), nullable=False)
    entidad = relationship("Entidad")


# --- CONTACTOS ---
class Contacto(TenantScoped, Base):
    """
    Persona de contacto asociada a una Entidad del tenant.

    El RUT es único por tenant; la comuna es obligatoria.
    """
    __tablename__ = "contactos"
    __table_args__ = (UniqueConstraint("tenant_id", "rut", name="uq_contacto_tenant_rut"),)

    id = Column(Integer, primary_key=True, index=True)
    entidad_id = Column(Integer, ForeignKey("entidades.id"), nullable=False, index=True)
    comuna_id = Column(Integer, ForeignKey("comunas.id"), nullable=False)
    nombre = Column(String, index=True, nullable=False)
    rut = Column(String, nullable=False)
    es_persona = Column(Boolean, default=True, nullable=False)
    cargo = Column(String, nullable=True)
    contacto = Column(String, nullable=True)
    email = Column(String, nullable=True)
    telefono = Column(String, nullable=True)
    direccion = Column(String, nullable=True)
    activo = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    entidad = relationship("Entidad")
    comuna = relationship("Comuna")


# --- DIRECCIONES ---
class Direccion(TenantScoped, Base):
    __tablename__ = "direcciones"

    id = Column(Integer, primary_key=True, index=True)
    comuna_id = Column(Integer, ForeignKey("comunas.id"), nullable=False)
    direccion_texto = Column(String, nullable=False)
    nombre = Column(String, nullable=True)
    calle = Column(String, nullable=True)
    numero = Column(String, nullable=True)
    contacto = Column(String, nullable=True)
    telefono = Column(String, nullable=True)
    email = Column(String, nullable=True)
    referencia = Column(String, nullable=True)
    latitud = Column(Float, nullable=True)
    longitud = Column(Float, nullable=True)

    # --- USO ---
    frecuencia = Column(Integer, default=1, nullable=False)
    ultima_vez_usada = Column(DateTime(timezone=True), nullable=True)
    origen = Column(SQLEnum(OrigenDireccion), default=OrigenDireccion.MANUAL, nullable=False)
    es_principal = Column(Boolean, default=False)  # Máximo una por tenant
    activo = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    comuna = relationship("Comuna")


# --- CATÁLOGOS DEL TENANT ---
class TipoCarga(TenantScoped, Base):
    __tablename__ = "tipos_carga"
    __table_args__ = (UniqueConstraint("tenant_id", "nombre", name="uq_tipo_carga_tenant_nombre"),)

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String, nullable=False)
    descripcion = Column(String, nullable=True)
    activo = Column(Boolean, default=True)


class TipoServicio(TenantScoped, Base):
    __tablename__ = "tipos_servicio"
    __table_args__ = (UniqueConstraint("tenant_id", "nombre", name="uq_tipo_servicio_tenant_nombre"),)

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String, nullable=False)
    descripcion = Column(String, nullable=True)
    activo = Column(Boolean, default=True)


class Equipo(TenantScoped, Base):
    """Camión, rampla u otro equipo de transporte."""
    __tablename__ = "equipos"
    __table_args__ = (UniqueConstraint("tenant_id", "patente", name="uq_equipo_tenant_patente"),)

    id = Column(Integer, primary_key=True, index=True)
    patente = Column(String, nullable=False)
    nombre = Column(String, nullable=True)
    carrier_id = Column(Integer, ForeignKey("carriers.id"), nullable=True)
    activo = Column(Boolean, default=True)


# --- ÓRDENES ---
class Orden(TenantScoped, Base):
    """
    Orden de transporte.

    El código es único por tenant (ORD-YYYYMMDD-NNN si no lo envía el cliente);
    la restricción única respalda el reintento ante colisiones concurrentes.
    """
    __tablename__ = "ordenes"
    __table_args__ = (
        UniqueConstraint("tenant_id", "codigo", name="uq_orden_tenant_codigo"),
        UniqueConstraint("tenant_id", "numero_ot", name="uq_orden_tenant_numero_ot"),
    )

    id = Column(Integer, primary_key=True, index=True)
    codigo = Column(String, index=True, nullable=False)
    numero_ot = Column(String, nullable=False)
    fecha = Column(Date, nullable=False)
    fecha_entrega_estimada = Column(Date, nullable=True)
    estado = Column(SQLEnum(OrdenEstado), default=OrdenEstado.PENDIENTE, nullable=False)
    tipo_tarifa = Column(SQLEnum(TipoTarifa), default=TipoTarifa.PESO_VOLUMEN, nullable=False)

    # --- PARTES Y RUTA ---
    cliente_id = Column(Integer, ForeignKey("clientes.id"), nullable=False)
    remitente_id = Column(Integer, ForeignKey("entidades.id"), nullable=False)
    destinatario_id = Column(Integer, ForeignKey("entidades.id"), nullable=False)
    direccion_origen_id = Column(Integer, ForeignKey("direcciones.id"), nullable=False)
    direccion_destino_id = Column(Integer, ForeignKey("direcciones.id"), nullable=False)
    tipo_carga_id = Column(Integer, ForeignKey("tipos_carga.id"), nullable=False)
    tipo_servicio_id = Column(Integer, ForeignKey("tipos_servicio.id"), nullable=False)
    equipo_id = Column(Integer, ForeignKey("equipos.id"), nullable=True)

    # --- MEDIDAS ---
    peso_total_kg = Column(Float, nullable=True)
    volumen_total_m3 = Column(Float, nullable=True)
    alto_cm = Column(Float, nullable=True)
    largo_cm = Column(Float, nullable=True)
    ancho_cm = Column(Float, nullable=True)
    observaciones = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    cliente = relationship("Cliente")
    remitente = relationship("Entidad", foreign_keys=[remitente_id])
    destinatario = relationship("Entidad", foreign_keys=[destinatario_id])
    direccion_origen = relationship("Direccion", foreign_keys=[direccion_origen_id])
    direccion_destino = relationship("Direccion", foreign_keys=[direccion_destino_id])
    tipo_carga = relationship("TipoCarga")
    tipo_servicio = relationship("TipoServicio")
    equipo = relationship("Equipo")
