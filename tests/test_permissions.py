import pytest

from logistica_common.permissions import (
    Modulo, TipoAccion, Permission, PermissionSet, has_module_permission
)
from logistica_api import models
from logistica_api.services.permissions import resolve_profile_permissions


class TestPermissionSet:
    def test_duplicates_collapse(self):
        grants = PermissionSet([
            (Modulo.CLIENTES, TipoAccion.VER),
            ("clientes", "VER"),
            ("CLIENTES", "ver"),
        ])
        assert len(grants) == 1
        assert grants.codes() == ["clientes:ver"]

    def test_allows_accepts_strings_and_enums(self):
        grants = PermissionSet([(Modulo.ORDENES, TipoAccion.CREAR)])
        assert grants.allows("ordenes", "CREAR")
        assert grants.allows(Modulo.ORDENES, TipoAccion.CREAR)
        assert not grants.allows(Modulo.ORDENES, TipoAccion.ELIMINAR)

    def test_contains_permission_tuple(self):
        grants = PermissionSet([(Modulo.ROLES, TipoAccion.EDITAR)])
        assert Permission(Modulo.ROLES, TipoAccion.EDITAR) in grants

    def test_empty_set_is_falsy(self):
        assert not PermissionSet.empty()

    def test_iteration_is_sorted(self):
        grants = PermissionSet([("usuarios", "VER"), ("clientes", "VER"), ("clientes", "CREAR")])
        assert grants.codes() == ["clientes:crear", "clientes:ver", "usuarios:ver"]


class TestHasModulePermission:
    def test_granted(self):
        grants = PermissionSet([(Modulo.CLIENTES, TipoAccion.CREAR)])
        assert has_module_permission(grants, "clientes", "CREAR") is True

    def test_not_granted(self):
        grants = PermissionSet([(Modulo.CLIENTES, TipoAccion.VER)])
        assert has_module_permission(grants, "clientes", "CREAR") is False

    def test_permissions_not_loaded(self):
        assert has_module_permission(None, "clientes", "VER") is False

    @pytest.mark.parametrize("modulo, accion", [
        ("bodegas", "VER"),
        ("clientes", "APROBAR"),
        (None, "VER"),
        ("clientes", 42),
    ])
    def test_unknown_vocabulary_is_denied_without_raising(self, modulo, accion):
        grants = PermissionSet([(Modulo.CLIENTES, TipoAccion.VER)])
        assert has_module_permission(grants, modulo, accion) is False


async def _profile_with_roles(db, tenant_id, nombre, roles):
    perfil = models.Perfil(tenant_id=tenant_id, nombre=nombre, tipo=models.TipoPerfil.BASICO, activo=True)
    db.add(perfil)
    await db.flush()
    for codigo, modulo, accion, activo in roles:
        rol = models.Rol(tenant_id=tenant_id, codigo=codigo, nombre=codigo, modulo=modulo,
                         tipo_accion=accion, activo=activo)
        db.add(rol)
        await db.flush()
        db.add(models.PerfilRol(tenant_id=tenant_id, perfil_id=perfil.id, rol_id=rol.id))
    await db.commit()
    return perfil.id


class TestResolveProfilePermissions:
    async def test_profile_without_roles_denies_everything(self, db, tenant_a):
        perfil_id = await _profile_with_roles(db, tenant_a.tenant_id, "Sin permisos", [])
        permissions = await resolve_profile_permissions(db, tenant_a.tenant_id, perfil_id)
        assert permissions == PermissionSet.empty()
        assert not has_module_permission(permissions, "clientes", "VER")

    async def test_none_profile_is_empty(self, db, tenant_a):
        assert not await resolve_profile_permissions(db, tenant_a.tenant_id, None)

    async def test_overlapping_roles_collapse(self, db, tenant_a):
        perfil_id = await _profile_with_roles(db, tenant_a.tenant_id, "Solapado", [
            ("ver_clientes_a", Modulo.CLIENTES, TipoAccion.VER, True),
            ("ver_clientes_b", Modulo.CLIENTES, TipoAccion.VER, True),
        ])
        permissions = await resolve_profile_permissions(db, tenant_a.tenant_id, perfil_id)
        assert permissions.codes() == ["clientes:ver"]

    async def test_inactive_roles_are_ignored(self, db, tenant_a):
        perfil_id = await _profile_with_roles(db, tenant_a.tenant_id, "Mixto", [
            ("ver_ordenes_x", Modulo.ORDENES, TipoAccion.VER, True),
            ("crear_ordenes_x", Modulo.ORDENES, TipoAccion.CREAR, False),
        ])
        permissions = await resolve_profile_permissions(db, tenant_a.tenant_id, perfil_id)
        assert permissions.codes() == ["ordenes:ver"]

    async def test_other_tenant_cannot_resolve_profile(self, db, tenant_a, tenant_b):
        permissions = await resolve_profile_permissions(db, tenant_b.tenant_id, tenant_a.profile_id)
        assert not permissions

    async def test_binding_from_another_tenant_is_ignored(self, db, tenant_a, tenant_b):
        perfil_id = await _profile_with_roles(db, tenant_a.tenant_id, "Cruzado", [])
        rol_ajeno = models.Rol(tenant_id=tenant_b.tenant_id, codigo="ver_tenants_ajeno", nombre="ajeno",
                               modulo=Modulo.TENANTS, tipo_accion=TipoAccion.VER, activo=True)
        db.add(rol_ajeno)
        await db.flush()
        db.add(models.PerfilRol(tenant_id=tenant_a.tenant_id, perfil_id=perfil_id, rol_id=rol_ajeno.id))
        await db.commit()

        permissions = await resolve_profile_permissions(db, tenant_a.tenant_id, perfil_id)
        assert not permissions

    async def test_provisioned_admin_has_full_vocabulary(self, db, tenant_a):
        permissions = await resolve_profile_permissions(db, tenant_a.tenant_id, tenant_a.profile_id)
        assert len(permissions) == len(Modulo) * len(TipoAccion)
